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

"""Calldata and payload encoding helpers."""

import typing as t

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector
from eth_utils.abi import collapse_if_tuple
from web3 import Web3

from crossbridge.abis import (
    IBRIDGEHUB_ABI,
    IERC20_ABI,
    IERC7786_ATTRIBUTES_ABI,
    IL1_ASSET_ROUTER_ABI,
    IL1_NULLIFIER_ABI,
    IL2_ASSET_ROUTER_ABI,
    IL2_BASE_TOKEN_ABI,
    INTEROP_CENTER_ABI,
    L2_NATIVE_TOKEN_VAULT_ABI,
)
from crossbridge.constants import ETH_ADDRESS
from crossbridge.utils import checksum, to_bytes, to_hex_str


ERC7930_EVM_CHAIN_PREFIX = bytes.fromhex("00010000")
ERC7930_EVM_ADDRESS_PREFIX = bytes.fromhex("000100000014")
SECOND_BRIDGE_DATA_V1 = b"\x01"


def _checksum_output(type_: str, value: t.Any) -> t.Any:
    """Addresses are decoded lowercase, return them checksummed."""
    if type_ == "address":
        return checksum(value)
    if type_ == "address[]":
        return tuple(checksum(item) for item in value)
    return value


class ContractInterface:
    """Calldata codec of a contract ABI."""

    def __init__(self, abi: t.List[t.Dict]) -> None:
        """Initialize object."""
        self.abi = abi
        self._contract = Web3().eth.contract(abi=abi)
        self._functions = {
            item["name"]: item for item in abi if item.get("type") == "function"
        }

    def encode(self, fn_name: str, *args: t.Any) -> str:
        """Encode a function call."""
        return to_hex_str(self._contract.encodeABI(fn_name=fn_name, args=list(args)))

    def decode_output(self, fn_name: str, data: t.Any) -> t.Tuple:
        """Decode the raw return data of a function call."""
        outputs = self._functions[fn_name].get("outputs", [])
        types = [collapse_if_tuple(dict(output)) for output in outputs]
        values = decode(types, to_bytes(data))
        return tuple(
            _checksum_output(type_, value) for type_, value in zip(types, values)
        )

    def decode_input(self, fn_name: str, data: t.Any) -> t.Tuple:
        """Decode the arguments of encoded calldata (selector included)."""
        inputs = self._functions[fn_name].get("inputs", [])
        types = [collapse_if_tuple(dict(param)) for param in inputs]
        return decode(types, to_bytes(data)[4:])

    def selector(self, fn_name: str) -> str:
        """4-byte selector of a function."""
        inputs = self._functions[fn_name].get("inputs", [])
        types = ",".join(collapse_if_tuple(dict(param)) for param in inputs)
        return to_hex_str(function_signature_to_4byte_selector(f"{fn_name}({types})"))


BRIDGEHUB = ContractInterface(IBRIDGEHUB_ABI)
L1_ASSET_ROUTER = ContractInterface(IL1_ASSET_ROUTER_ABI)
L1_NULLIFIER = ContractInterface(IL1_NULLIFIER_ABI)
ERC20 = ContractInterface(IERC20_ABI)
L2_BASE_TOKEN = ContractInterface(IL2_BASE_TOKEN_ABI)
L2_ASSET_ROUTER = ContractInterface(IL2_ASSET_ROUTER_ABI)
L2_NATIVE_TOKEN_VAULT = ContractInterface(L2_NATIVE_TOKEN_VAULT_ABI)
INTEROP_CENTER = ContractInterface(INTEROP_CENTER_ABI)
ERC7786_ATTRIBUTES = ContractInterface(IERC7786_ATTRIBUTES_ABI)


def build_direct_request(  # pylint: disable=too-many-arguments
    chain_id: int,
    mint_value: int,
    l2_contract: str,
    l2_value: int,
    l2_gas_limit: int,
    gas_per_pubdata: int,
    refund_recipient: str,
) -> t.Tuple:
    """Build the `requestL2TransactionDirect` request struct."""
    return (
        chain_id,
        mint_value,
        checksum(l2_contract),
        l2_value,
        b"",
        l2_gas_limit,
        gas_per_pubdata,
        [],
        checksum(refund_recipient),
    )


def build_two_bridges_request(  # pylint: disable=too-many-arguments
    chain_id: int,
    mint_value: int,
    l2_value: int,
    l2_gas_limit: int,
    gas_per_pubdata: int,
    refund_recipient: str,
    second_bridge_address: str,
    second_bridge_value: int,
    second_bridge_calldata: str,
) -> t.Tuple:
    """Build the `requestL2TransactionTwoBridges` request struct."""
    return (
        chain_id,
        mint_value,
        l2_value,
        l2_gas_limit,
        gas_per_pubdata,
        checksum(refund_recipient),
        checksum(second_bridge_address),
        second_bridge_value,
        to_bytes(second_bridge_calldata),
    )


def encode_second_bridge_args(token: str, amount: int, l2_receiver: str) -> str:
    """Encode the asset router leg of a two-bridges deposit."""
    return to_hex_str(
        encode(
            ["address", "uint256", "address"],
            [checksum(token), amount, checksum(l2_receiver)],
        )
    )


def encode_second_bridge_eth_args(amount: int, l2_receiver: str) -> str:
    """Encode the asset router leg of an ETH deposit to a non-ETH based chain."""
    return encode_second_bridge_args(ETH_ADDRESS, amount, l2_receiver)


def encode_ntv_transfer_data(amount: int, receiver: str, token: str) -> str:
    """Encode native token vault transfer data."""
    return to_hex_str(
        encode(
            ["uint256", "address", "address"],
            [amount, checksum(receiver), checksum(token)],
        )
    )


def encode_second_bridge_data_v1(asset_id: str, transfer_data: str) -> str:
    """Encode versioned asset router data (version byte 0x01)."""
    data = encode(["bytes32", "bytes"], [to_bytes(asset_id), to_bytes(transfer_data)])
    return to_hex_str(SECOND_BRIDGE_DATA_V1 + data)


def encode_withdraw_asset_data(amount: int, l1_receiver: str, l2_token: str) -> str:
    """Encode the asset data of an asset router withdrawal."""
    return encode_ntv_transfer_data(amount, l1_receiver, l2_token)


def _minimal_big_endian(value: int) -> bytes:
    if value < 0:
        raise ValueError("Chain ID must be non-negative.")
    if value == 0:
        return b"\x00"
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def format_interop_evm_chain(chain_id: int) -> str:
    """ERC-7930 interoperable address of an EVM chain (no address)."""
    chain_ref = _minimal_big_endian(chain_id)
    if len(chain_ref) > 0xFF:
        raise ValueError("Chain reference length must fit within uint8.")
    return to_hex_str(
        ERC7930_EVM_CHAIN_PREFIX + bytes([len(chain_ref)]) + chain_ref + b"\x00"
    )


def format_interop_evm_address(address: str) -> str:
    """ERC-7930 interoperable address of an EVM address (no chain)."""
    address_bytes = to_bytes(checksum(address))
    if len(address_bytes) != 20:
        raise ValueError("Interop address encoding requires a 20-byte EVM address.")
    return to_hex_str(ERC7930_EVM_ADDRESS_PREFIX + address_bytes)


def interop_call_value(value: int) -> str:
    """Call attribute carrying the native value of a call."""
    return ERC7786_ATTRIBUTES.encode("interopCallValue", value)


def indirect_call(message_value: int) -> str:
    """Call attribute routing the call through the asset router."""
    return ERC7786_ATTRIBUTES.encode("indirectCall", message_value)


def execution_address(address: str) -> str:
    """Bundle attribute restricting who can execute the bundle."""
    return ERC7786_ATTRIBUTES.encode(
        "executionAddress", to_bytes(format_interop_evm_address(address))
    )


def unbundler_address(address: str) -> str:
    """Bundle attribute naming who can unbundle the bundle."""
    return ERC7786_ATTRIBUTES.encode(
        "unbundlerAddress", to_bytes(format_interop_evm_address(address))
    )


def decode_attribute(attribute: str) -> t.Dict[str, t.Any]:
    """Decode an ERC-7786 attribute; unknown selectors decode to name `unknown`."""
    selector = attribute[:10].lower()
    for item in IERC7786_ATTRIBUTES_ABI:
        name = item["name"]
        if ERC7786_ATTRIBUTES.selector(name) != selector:
            continue
        types = [collapse_if_tuple(dict(param)) for param in item["inputs"]]
        args = decode(types, to_bytes(attribute)[4:])
        return {
            "selector": selector,
            "name": name,
            "signature": f"{name}({','.join(types)})",
            "args": [to_hex_str(arg) if isinstance(arg, bytes) else arg for arg in args],
        }
    return {"selector": selector, "name": "unknown", "args": [attribute]}
