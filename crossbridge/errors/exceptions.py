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

"""Exceptions."""

import enum
import re
import typing as t
from dataclasses import dataclass, field

from web3.exceptions import TransactionNotFound

from crossbridge.errors.formatter import format_envelope
from crossbridge.resource import Resource


RECEIPT_NOT_FOUND_NAMES = (
    "TransactionReceiptNotFoundError",
    "TransactionNotFoundError",
    "TransactionNotFound",
    "NotFoundError",
)
RECEIPT_NOT_FOUND_CODES = ("TRANSACTION_NOT_FOUND", "RECEIPT_NOT_FOUND", "NOT_FOUND", -32000)
RECEIPT_NOT_FOUND_RE = re.compile(
    r"(transaction|receipt).*?(not\s+(?:be\s+)?found|missing)", re.IGNORECASE | re.DOTALL
)


class ErrorKind(str, enum.Enum):
    """Error taxonomy."""

    VALIDATION = "VALIDATION"
    STATE = "STATE"
    EXECUTION = "EXECUTION"
    RPC = "RPC"
    INTERNAL = "INTERNAL"
    VERIFICATION = "VERIFICATION"
    CONTRACT = "CONTRACT"
    TIMEOUT = "TIMEOUT"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class ErrorResource(str, enum.Enum):
    """Resource an error originates from."""

    DEPOSITS = "deposits"
    WITHDRAWALS = "withdrawals"
    WITHDRAWAL_FINALIZATION = "withdrawal-finalization"
    INTEROP = "interop"
    TOKENS = "tokens"
    CONTRACTS = "contracts"
    HELPERS = "helpers"
    ZKSRPC = "zksrpc"
    CLIENT = "client"

    def __str__(self) -> str:
        """__str__"""
        return self.value


@dataclass(frozen=True)
class DecodedRevert(Resource):
    """DecodedRevert"""

    selector: str
    name: t.Optional[str] = None
    args: t.Optional[t.List[t.Any]] = None
    contract: t.Optional[str] = None


@dataclass(frozen=True)
class ErrorEnvelope(Resource):
    """ErrorEnvelope"""

    kind: ErrorKind
    resource: ErrorResource
    operation: str
    message: str
    context: t.Dict[str, t.Any] = field(default_factory=dict)
    revert: t.Optional[DecodedRevert] = None
    cause: t.Optional[t.Dict[str, t.Any]] = None


class BridgeError(Exception):
    """Bridge error carrying a structured envelope."""

    def __init__(self, envelope: ErrorEnvelope) -> None:
        """Initialize object."""
        super().__init__(envelope.message)
        self.envelope = envelope

    @property
    def kind(self) -> ErrorKind:
        """Error kind."""
        return self.envelope.kind

    @property
    def operation(self) -> str:
        """Failing operation."""
        return self.envelope.operation

    def __str__(self) -> str:
        """__str__"""
        return format_envelope(self.envelope)


def is_bridge_error(err: t.Any) -> bool:
    """Whether the error is already a structured bridge error."""
    return isinstance(err, BridgeError)


def lookup(obj: t.Any, *path: str) -> t.Any:
    """Follow a path of keys or attributes, returning None when a hop is missing."""
    current = obj
    for key in path:
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, (str, bytes, int, float, bool)):
            return None
        else:
            current = getattr(current, key, None)
    return current


def error_message(err: t.Any) -> t.Optional[str]:
    """Best effort human readable message of an arbitrary error."""
    for key in ("short_message", "message"):
        value = lookup(err, key)
        if isinstance(value, str) and value:
            return value
    if isinstance(err, BaseException):
        return str(err) or None
    return None


def shape_cause(err: t.Any) -> t.Dict[str, t.Any]:
    """Shape an arbitrary error into a small JSON-like summary."""
    data = lookup(err, "data", "data")
    if data is None:
        data = lookup(err, "error", "data")
    if data is None:
        data = lookup(err, "data")

    return {
        "name": type(err).__name__ if isinstance(err, BaseException) else lookup(err, "name"),
        "message": error_message(err),
        "code": lookup(err, "code"),
        "data": f"{data[:10]}…" if isinstance(data, str) and data.startswith("0x") else None,
    }


def _cause_chain(err: t.Any) -> t.List[t.Any]:
    chain = []
    current = err
    while current is not None and len(chain) < 8 and current not in chain:
        chain.append(current)
        current = getattr(current, "__cause__", None) or lookup(current, "cause")
    return chain


def is_receipt_not_found(err: t.Any) -> bool:
    """Whether the error means a transaction receipt is not available yet."""
    for node in _cause_chain(err):
        if isinstance(node, TransactionNotFound):
            return True
        name = type(node).__name__ if isinstance(node, BaseException) else lookup(node, "name")
        if name in RECEIPT_NOT_FOUND_NAMES:
            return True
        code = lookup(node, "code")
        if code is not None and code in RECEIPT_NOT_FOUND_CODES:
            return True
        message = error_message(node)
        if message and RECEIPT_NOT_FOUND_RE.search(message):
            return True
    return False
