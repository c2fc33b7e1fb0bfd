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

"""
Fixtures for pytest

The conftest.py file serves as a means of providing fixtures for an entire
directory. Fixtures defined in a conftest.py can be used by any test in that
package without needing to import them (pytest will automatically discover them).

The bridge engine only talks to chains through `ChainClient`, so every test
runs against `FakeChain`, an in-memory client answering contract calls by
(address, selector).

See https://docs.pytest.org/en/stable/reference/fixtures.html
"""

import typing as t

import pytest
from eth_abi import encode
from eth_utils.abi import collapse_if_tuple
from web3.exceptions import TransactionNotFound

from crossbridge.chain import ChainClient
from crossbridge.client import BridgeClient
from crossbridge.constants import ETH_ADDRESS
from crossbridge.utils import to_hex_str
from crossbridge.utils.encoding import BRIDGEHUB, ContractInterface


SENDER = "0x" + "a" * 40
RECEIVER = "0x" + "b" * 40
TOKEN = "0x" + "c" * 40  # an ERC-20 that is not a base token
BASE_TOKEN = "0x" + "d" * 40  # ERC-20 base token of a non-ETH based chain

BRIDGEHUB_ADDR = "0x" + "1" * 40
L1_ASSET_ROUTER_ADDR = "0x" + "2" * 40
L1_NULLIFIER_ADDR = "0x" + "3" * 40
L1_NATIVE_TOKEN_VAULT_ADDR = "0x" + "4" * 40

L1_CHAIN_ID = 1
L2_CHAIN_ID = 324
DST_CHAIN_ID = 325

ADDRESS_OVERRIDES = {
    "bridgehub": BRIDGEHUB_ADDR,
    "l1_asset_router": L1_ASSET_ROUTER_ADDR,
    "l1_nullifier": L1_NULLIFIER_ADDR,
    "l1_native_token_vault": L1_NATIVE_TOKEN_VAULT_ADDR,
}

CallResponse = t.Union[str, Exception, t.Callable[[t.Dict], str]]


def tx_hash(index: int) -> str:
    """Hash `FakeChain` assigns to the index-th (1-based) sent transaction."""
    return "0x" + f"{index:064x}"


def encode_output(interface: ContractInterface, fn_name: str, *values: t.Any) -> str:
    """ABI-encode the return values of a function."""
    item = next(
        item
        for item in interface.abi
        if item.get("type") == "function" and item["name"] == fn_name
    )
    types = [collapse_if_tuple(dict(output)) for output in item["outputs"]]
    return to_hex_str(encode(types, list(values)))


class FakeChain(ChainClient):  # pylint: disable=too-many-instance-attributes
    """In-memory chain client."""

    def __init__(self, chain_id: int, sender: t.Optional[str] = SENDER) -> None:
        """Initialize object."""
        self._chain_id = chain_id
        self._sender = sender
        self.fees: t.Union[t.Dict[str, int], Exception] = {
            "maxFeePerGas": 100,
            "maxPriorityFeePerGas": 2,
        }
        self.gas_estimate: t.Union[int, Exception] = 50_000
        self.balance = 10**21
        self.codes: t.Dict[str, str] = {}
        self.nonce = 7
        self.receipts: t.Dict[str, t.Dict] = {}
        self.receipt_error: t.Optional[Exception] = None
        self.wait_errors: t.Dict[str, Exception] = {}
        self.send_error: t.Optional[Exception] = None
        self.rpc_results: t.Dict[str, t.Any] = {}
        self.calls: t.List[t.Dict] = []
        self.estimates: t.List[t.Tuple[t.Dict, t.Optional[t.Dict]]] = []
        self.sent: t.List[t.Dict] = []
        self._responses: t.Dict[t.Tuple[str, str], CallResponse] = {}

    def respond(self, address: str, selector: str, response: CallResponse) -> None:
        """Answer calls to address whose calldata starts with selector."""
        self._responses[(to_hex_str(address), selector.lower())] = response

    def on_call(
        self,
        address: str,
        interface: ContractInterface,
        fn_name: str,
        response: CallResponse,
    ) -> None:
        """Answer calls of a contract function."""
        self.respond(address, interface.selector(fn_name), response)

    def returns(
        self, address: str, interface: ContractInterface, fn_name: str, *values: t.Any
    ) -> None:
        """Answer calls of a contract function with fixed return values."""
        self.on_call(address, interface, fn_name, encode_output(interface, fn_name, *values))

    @property
    def chain_id(self) -> int:
        """Chain id."""
        return self._chain_id

    @property
    def sender(self) -> t.Optional[str]:
        """Address of the signer, if any."""
        return self._sender

    def call(self, tx: t.Dict) -> str:
        """Execute a read-only call and return the raw hex output."""
        self.calls.append(tx)
        key = (to_hex_str(tx["to"]), str(tx.get("data") or "0x")[:10].lower())
        if key not in self._responses:
            raise ValueError(f"execution reverted: no response for {key}")
        response = self._responses[key]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(tx)
        return response

    def estimate_gas(
        self, tx: t.Dict, state_overrides: t.Optional[t.Dict] = None
    ) -> int:
        """Estimate the gas of a call, optionally against overridden state."""
        self.estimates.append((dict(tx), state_overrides))
        if isinstance(self.gas_estimate, Exception):
            raise self.gas_estimate
        return self.gas_estimate

    def fee_data(self) -> t.Dict[str, int]:
        """Current fee market data."""
        if isinstance(self.fees, Exception):
            raise self.fees
        return dict(self.fees)

    def get_balance(self, address: str) -> int:
        """Native balance of an address."""
        return self.balance

    def get_code(self, address: str) -> str:
        """Deployed bytecode of an address."""
        return self.codes.get(to_hex_str(address), "0x")

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Transaction count of an address."""
        return self.nonce

    def send_transaction(self, tx: t.Dict) -> str:
        """Record a transaction and return its hash."""
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(dict(tx))
        return tx_hash(len(self.sent))

    def get_transaction_receipt(self, tx_hash: str) -> t.Dict:  # pylint: disable=redefined-outer-name
        """Get a receipt; raises `TransactionNotFound` when not available yet."""
        if self.receipt_error is not None:
            raise self.receipt_error
        if tx_hash in self.receipts:
            return self.receipts[tx_hash]
        raise TransactionNotFound(f"Transaction with hash: '{tx_hash}' not found.")

    def wait_for_receipt(
        self, tx_hash: str, timeout: t.Optional[float] = None  # pylint: disable=redefined-outer-name
    ) -> t.Dict:
        """Receipt of a transaction, successful unless configured otherwise."""
        if tx_hash in self.wait_errors:
            raise self.wait_errors[tx_hash]
        return self.receipts.get(
            tx_hash, {"status": 1, "transactionHash": tx_hash, "logs": []}
        )

    def rpc(self, method: str, params: t.List[t.Any]) -> t.Any:
        """Perform a raw JSON-RPC request; results may be errors or callables."""
        result = self.rpc_results[method]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(params)
        return result


def register_base_tokens(
    l1: FakeChain, base_tokens: t.Dict[int, str], default: str = ETH_ADDRESS
) -> None:
    """Answer `Bridgehub.baseToken(chainId)` from a mapping."""

    def _base_token(tx: t.Dict) -> str:
        (chain_id,) = BRIDGEHUB.decode_input("baseToken", tx["data"])
        return encode_output(BRIDGEHUB, "baseToken", base_tokens.get(chain_id, default))

    l1.on_call(BRIDGEHUB_ADDR, BRIDGEHUB, "baseToken", _base_token)


def make_client(
    l1: FakeChain,
    l2: FakeChain,
    base_token: str = ETH_ADDRESS,
    base_tokens: t.Optional[t.Dict[int, str]] = None,
) -> BridgeClient:
    """Build a bridge client on fake chains, with the L1 addresses pinned."""
    register_base_tokens(l1, {L2_CHAIN_ID: base_token, **(base_tokens or {})})
    return BridgeClient(l1=l1, l2=l2, overrides=dict(ADDRESS_OVERRIDES))


@pytest.fixture
def l1() -> FakeChain:
    """Fake L1."""
    return FakeChain(L1_CHAIN_ID)


@pytest.fixture
def l2() -> FakeChain:
    """Fake L2."""
    return FakeChain(L2_CHAIN_ID)


@pytest.fixture
def client(l1: FakeChain, l2: FakeChain) -> BridgeClient:  # pylint: disable=redefined-outer-name
    """Bridge client of an ETH based chain."""
    return make_client(l1, l2)
