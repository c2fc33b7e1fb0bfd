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

"""Helper utilities."""

import typing as t

from web3 import Web3

from crossbridge.constants import (
    ETH_ADDRESS,
    FORMAL_ETH_ADDRESS,
    GAS_ESTIMATE_BUFFER_PERCENT,
    L2_BASE_TOKEN_ADDRESS,
)


def to_hex_str(value: t.Any) -> str:
    """Render bytes or a hex string as a lowercase 0x-prefixed string."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value).lower()
    return text if text.startswith("0x") else f"0x{text}"


def to_bytes(value: t.Any) -> bytes:
    """Convert a hex string or bytes-like value to bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = str(value)
    return bytes.fromhex(text[2:] if text.lower().startswith("0x") else text)


def to_int(value: t.Any) -> int:
    """Integer of a raw RPC quantity, given as a hex string or a number."""
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    return int(value)


def checksum(address: str) -> str:
    """Checksum an address."""
    return Web3.to_checksum_address(address)


def is_address_eq(a: t.Optional[str], b: t.Optional[str]) -> bool:
    """Case-insensitive address equality, tolerant to a missing 0x prefix."""
    if not a or not b:
        return False
    return to_hex_str(a) == to_hex_str(b)


def is_eth(token: str) -> bool:
    """Whether the token is any of the known ETH aliases."""
    return any(
        is_address_eq(token, alias)
        for alias in (FORMAL_ETH_ADDRESS, ETH_ADDRESS, L2_BASE_TOKEN_ADDRESS)
    )


def normalize_l1_token(token: str) -> str:
    """Map the formal ETH alias (zero address) to the L1 ETH sentinel."""
    return ETH_ADDRESS if is_address_eq(token, FORMAL_ETH_ADDRESS) else token


def is_hash66(value: t.Optional[str]) -> bool:
    """Whether the value is a 0x-prefixed 32 byte hex string."""
    return isinstance(value, str) and value.startswith("0x") and len(value) == 66


def with_gas_buffer(gas: int) -> int:
    """Apply the safety margin to a gas estimate."""
    return int(gas) * (100 + GAS_ESTIMATE_BUFFER_PERCENT) // 100
