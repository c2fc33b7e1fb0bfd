#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ------------------------------------------------------------------------------
#
#   Copyright 2025 Valory AG
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.
#
# ------------------------------------------------------------------------------

"""Human readable rendering of error envelopes."""

import json
import typing as t

from crossbridge.serialization import serialize


if t.TYPE_CHECKING:
    from crossbridge.errors.exceptions import ErrorEnvelope  # pragma: no cover


LABEL_WIDTH = 10
INDENT = " " * 14


def _elide_middle(text: str, max_len: int = 96) -> str:
    if len(text) <= max_len:
        return text
    keep = max(10, (max_len - 1) // 2)
    return f"{text[:keep]}…{text[-keep:]}"


def _short_json(value: t.Any, max_len: int = 240) -> str:
    try:
        text = json.dumps(serialize(value))
    except (TypeError, ValueError):
        text = str(value)
    return _elide_middle(text, max_len)


def _kv(label: str, value: str) -> str:
    return f"  {label.ljust(LABEL_WIDTH)}: {value}"


def _context_line(context: t.Dict[str, t.Any]) -> t.Optional[str]:
    tx_hash = context.get("txHash", context.get("l1TxHash", context.get("hash")))
    nonce = context.get("nonce")
    parts = []
    if tx_hash is not None:
        parts.append(f"txHash={tx_hash}")
    if nonce is not None:
        parts.append(f"nonce={nonce}")
    return _kv("Context", "  •  ".join(parts)) if parts else None


def _revert_lines(envelope: "ErrorEnvelope") -> t.List[str]:
    revert = envelope.revert
    if revert is None:
        return []
    lines = [_kv("Revert", f"selector={revert.selector}")]
    if revert.name:
        lines.append(f"{INDENT}name={revert.name}")
    if revert.contract:
        lines.append(f"{INDENT}contract={revert.contract}")
    if revert.args:
        lines.append(f"{INDENT}args={_short_json(revert.args, 120)}")
    return lines


def _cause_lines(cause: t.Optional[t.Dict[str, t.Any]]) -> t.List[str]:
    if not cause:
        return []
    lines = []
    head = [f"{key}={cause[key]}" for key in ("name", "code") if cause.get(key) is not None]
    if head:
        lines.append(_kv("Cause", "  ".join(head)))
    if cause.get("message"):
        lines.append(f"{INDENT}message={_elide_middle(str(cause['message']), 600)}")
    if cause.get("data"):
        lines.append(f"{INDENT}data={cause['data']}")
    return lines


def format_envelope(envelope: "ErrorEnvelope") -> str:
    """Render an error envelope as a multi-line report."""
    lines = [
        f"BridgeError [{envelope.kind}]",
        _kv("Message", envelope.message),
        "",
        _kv("Operation", envelope.operation),
    ]
    context = envelope.context or {}
    context_line = _context_line(context)
    if context_line:
        lines.append(context_line)
    if isinstance(context.get("step"), str):
        lines.append(_kv("Step", context["step"]))
    revert_lines = _revert_lines(envelope)
    lines.extend(revert_lines)
    cause_lines = _cause_lines(envelope.cause)
    if cause_lines and not context_line and not revert_lines:
        lines.append("")
    lines.extend(cause_lines)
    return "\n".join(lines)
