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

"""Revert data extraction and decoding."""

import threading
import typing as t
from dataclasses import dataclass

from aea.helpers.logging import setup_logger
from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector
from eth_utils.abi import collapse_if_tuple

from crossbridge.abis import (
    IBRIDGEHUB_ABI,
    IERC20_ABI,
    IL1_NULLIFIER_ABI,
    L2_NATIVE_TOKEN_VAULT_ABI,
)
from crossbridge.errors.exceptions import DecodedRevert, lookup
from crossbridge.utils import to_bytes, to_hex_str


ERROR_STRING_SELECTOR = "0x08c379a0"
PANIC_SELECTOR = "0x4e487b71"

# Locations tried, in order, when looking for raw revert data inside an error
REVERT_DATA_PATHS: t.Tuple[t.Tuple[str, ...], ...] = (
    ("data", "data"),
    ("error", "data"),
    ("data",),
    ("error", "error", "data"),
    ("info", "error", "data"),
)

logger = setup_logger(name="crossbridge.errors.revert")


@dataclass(frozen=True)
class _ErrorSignature:
    name: str
    types: t.List[str]


@dataclass(frozen=True)
class _RegisteredAbi:
    name: str
    errors: t.Dict[str, _ErrorSignature]


def _error_signatures(abi: t.List[t.Dict]) -> t.Dict[str, _ErrorSignature]:
    signatures = {}
    for item in abi:
        if item.get("type") != "error":
            continue
        types = [collapse_if_tuple(dict(param)) for param in item.get("inputs", [])]
        text = f"{item['name']}({','.join(types)})"
        selector = to_hex_str(function_signature_to_4byte_selector(text))
        signatures[selector] = _ErrorSignature(name=item["name"], types=types)
    return signatures


def _normalize_arg(value: t.Any) -> t.Any:
    if isinstance(value, (bytes, bytearray)):
        return to_hex_str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_arg(item) for item in value]
    return value


def _is_revert_hex(value: t.Any) -> bool:
    return isinstance(value, str) and value.startswith("0x") and len(value) >= 10


def extract_revert_data(err: t.Any) -> t.Optional[str]:
    """Find raw revert bytes inside an arbitrary error object."""
    for path in REVERT_DATA_PATHS:
        value = lookup(err, *path)
        if _is_revert_hex(value):
            return value

    # web3 raises ContractLogicError(message, data) and provider errors as ValueError(dict)
    for arg in getattr(err, "args", ()) or ():
        if isinstance(arg, dict):
            for path in REVERT_DATA_PATHS:
                value = lookup(arg, *path)
                if _is_revert_hex(value):
                    return value
        elif _is_revert_hex(arg) and len(arg) % 2 == 0:
            try:
                to_bytes(arg)
            except ValueError:
                continue
            return arg
    return None


class ErrorAbiRegistry:
    """Registry of contract ABIs used to decode custom revert errors."""

    def __init__(self) -> None:
        """Initialize object."""
        self._lock = threading.RLock()
        self._entries: t.List[_RegisteredAbi] = []

    def register(self, name: str, abi: t.List[t.Dict]) -> None:
        """Register an ABI, replacing a previous registration with the same name."""
        entry = _RegisteredAbi(name=name, errors=_error_signatures(abi))
        with self._lock:
            for index, existing in enumerate(self._entries):
                if existing.name == name:
                    self._entries[index] = entry
                    break
            else:
                self._entries.append(entry)
        logger.debug(f"[ERRORS] Registered error ABI {name} ({len(entry.errors)} errors).")

    @property
    def names(self) -> t.List[str]:
        """Registered ABI names, in registration order."""
        with self._lock:
            return [entry.name for entry in self._entries]

    def decode(self, data: str) -> DecodedRevert:
        """Decode revert data; unknown selectors decode to the bare selector."""
        selector = data[:10].lower()
        payload = to_bytes(data)[4:]

        if selector == ERROR_STRING_SELECTOR:
            try:
                (reason,) = decode(["string"], payload)
                return DecodedRevert(selector=selector, name="Error", args=[reason])
            except (DecodingError, ValueError, OverflowError):
                pass

        if selector == PANIC_SELECTOR:
            try:
                (code,) = decode(["uint256"], payload)
                return DecodedRevert(selector=selector, name="Panic", args=[code])
            except (DecodingError, ValueError, OverflowError):
                pass

        with self._lock:
            entries = list(self._entries)

        for entry in entries:
            signature = entry.errors.get(selector)
            if signature is None:
                continue
            try:
                args = decode(signature.types, payload)
            except (DecodingError, ValueError, OverflowError):
                continue
            return DecodedRevert(
                selector=selector,
                name=signature.name,
                args=[_normalize_arg(arg) for arg in args],
                contract=entry.name,
            )

        return DecodedRevert(selector=selector)


def _default_registry() -> ErrorAbiRegistry:
    registry = ErrorAbiRegistry()
    registry.register("IL1Nullifier", IL1_NULLIFIER_ABI)
    registry.register("IERC20", IERC20_ABI)
    registry.register("L2NativeTokenVault", L2_NATIVE_TOKEN_VAULT_ABI)
    registry.register("IBridgehub", IBRIDGEHUB_ABI)
    return registry


ERROR_ABI_REGISTRY = _default_registry()


def register_error_abi(name: str, abi: t.List[t.Dict]) -> None:
    """Register an additional ABI in the process-wide registry."""
    ERROR_ABI_REGISTRY.register(name, abi)


def decode_revert(
    err: t.Any, registry: t.Optional[ErrorAbiRegistry] = None
) -> t.Optional[DecodedRevert]:
    """Decode the revert carried by an arbitrary error, if any."""
    data = extract_revert_data(err)
    if data is None:
        return None
    try:
        return (registry or ERROR_ABI_REGISTRY).decode(data)
    except ValueError:
        return None
