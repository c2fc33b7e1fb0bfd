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

"""Chain client adapter.

The bridge engine talks to both layers exclusively through `ChainClient`.
`LedgerApiChainClient` is the concrete implementation on top of an open-aea
`LedgerApi` (web3 under the hood) and an optional `Crypto` signer.

Receipts, logs and call results are normalized to plain python values
(dicts, lists, ints and lowercase 0x-prefixed strings).
"""

import typing as t
from abc import ABC, abstractmethod

from aea.crypto.base import Crypto, LedgerApi
from aea.helpers.logging import setup_logger
from eth_utils import to_hex
from hexbytes import HexBytes
from web3.datastructures import AttributeDict

from crossbridge.constants import ON_CHAIN_INTERACT_SLEEP, ON_CHAIN_INTERACT_TIMEOUT
from crossbridge.utils import checksum, to_hex_str


if t.TYPE_CHECKING:
    from crossbridge.utils.encoding import ContractInterface  # pragma: no cover


QUANTITY_KEYS = (
    "value",
    "gas",
    "gasPrice",
    "maxFeePerGas",
    "maxPriorityFeePerGas",
    "nonce",
    "chainId",
)
ADDRESS_KEYS = ("to", "from")


def normalize(value: t.Any) -> t.Any:
    """Convert web3 return values to plain python values."""
    if isinstance(value, (AttributeDict, dict)):
        return {key: normalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize(item) for item in value]
    if isinstance(value, (HexBytes, bytes, bytearray)):
        return to_hex_str(value)
    return value


def to_web3_tx(tx: t.Dict) -> t.Dict:
    """Prepare a transaction dict for web3 (checksummed addresses, no empty fields)."""
    web3_tx = {key: value for key, value in tx.items() if value is not None}
    for key in ADDRESS_KEYS:
        if key in web3_tx:
            web3_tx[key] = checksum(web3_tx[key])
    return web3_tx


def to_rpc_tx(tx: t.Dict) -> t.Dict:
    """Prepare a transaction dict for a raw JSON-RPC request."""
    rpc_tx = to_web3_tx(tx)
    for key in QUANTITY_KEYS:
        if key in rpc_tx:
            rpc_tx[key] = to_hex(int(rpc_tx[key]))
    return rpc_tx


class ChainClient(ABC):
    """Blockchain client used by the bridge engine."""

    @property
    @abstractmethod
    def chain_id(self) -> int:
        """Chain id."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def sender(self) -> t.Optional[str]:
        """Address of the signer, if any."""
        raise NotImplementedError()

    @abstractmethod
    def call(self, tx: t.Dict) -> str:
        """Execute a read-only call and return the raw hex output."""
        raise NotImplementedError()

    @abstractmethod
    def estimate_gas(
        self, tx: t.Dict, state_overrides: t.Optional[t.Dict] = None
    ) -> int:
        """Estimate the gas of a call, optionally against overridden state."""
        raise NotImplementedError()

    @abstractmethod
    def fee_data(self) -> t.Dict[str, int]:
        """Current fee market data (maxFeePerGas/maxPriorityFeePerGas and/or gasPrice)."""
        raise NotImplementedError()

    @abstractmethod
    def get_balance(self, address: str) -> int:
        """Native balance of an address."""
        raise NotImplementedError()

    @abstractmethod
    def get_code(self, address: str) -> str:
        """Deployed bytecode of an address."""
        raise NotImplementedError()

    @abstractmethod
    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Transaction count of an address."""
        raise NotImplementedError()

    @abstractmethod
    def send_transaction(self, tx: t.Dict) -> str:
        """Sign and send a transaction, returning its hash."""
        raise NotImplementedError()

    @abstractmethod
    def get_transaction_receipt(self, tx_hash: str) -> t.Dict:
        """Get a receipt; raises `TransactionNotFound` when not available yet."""
        raise NotImplementedError()

    @abstractmethod
    def wait_for_receipt(
        self, tx_hash: str, timeout: t.Optional[float] = None
    ) -> t.Dict:
        """Block until a receipt is available."""
        raise NotImplementedError()

    @abstractmethod
    def rpc(self, method: str, params: t.List[t.Any]) -> t.Any:
        """Perform a raw JSON-RPC request."""
        raise NotImplementedError()


class LedgerApiChainClient(ChainClient):
    """Chain client backed by an open-aea ledger API."""

    def __init__(
        self,
        ledger_api: LedgerApi,
        crypto: t.Optional[Crypto] = None,
        logger: t.Optional[t.Any] = None,
    ) -> None:
        """Initialize object."""
        self.ledger_api = ledger_api
        self.crypto = crypto
        self.logger = logger or setup_logger(name="crossbridge.chain")
        self._chain_id: t.Optional[int] = None

    @property
    def w3(self) -> t.Any:
        """Underlying web3 instance."""
        return self.ledger_api.api

    @property
    def chain_id(self) -> int:
        """Chain id."""
        if self._chain_id is None:
            self._chain_id = int(self.w3.eth.chain_id)
        return self._chain_id

    @property
    def sender(self) -> t.Optional[str]:
        """Address of the signer, if any."""
        return self.crypto.address if self.crypto is not None else None

    def call(self, tx: t.Dict) -> str:
        """Execute a read-only call and return the raw hex output."""
        return to_hex_str(self.w3.eth.call(to_web3_tx(tx), "latest"))

    def estimate_gas(
        self, tx: t.Dict, state_overrides: t.Optional[t.Dict] = None
    ) -> int:
        """Estimate the gas of a call, optionally against overridden state."""
        if not state_overrides:
            return int(self.w3.eth.estimate_gas(to_web3_tx(tx)))

        response = self.w3.provider.make_request(
            "eth_estimateGas", [to_rpc_tx(tx), "latest", state_overrides]
        )
        if "error" in response:
            raise ValueError(response["error"])
        return int(response["result"], 16)

    def fee_data(self) -> t.Dict[str, int]:
        """Current fee market data (maxFeePerGas/maxPriorityFeePerGas and/or gasPrice)."""
        gas_pricing = self.ledger_api.try_get_gas_pricing() or {}
        fees = {
            key: int(gas_pricing[key])
            for key in ("maxFeePerGas", "maxPriorityFeePerGas", "gasPrice")
            if gas_pricing.get(key) is not None
        }
        if not fees:
            fees["gasPrice"] = int(self.w3.eth.gas_price)
        return fees

    def get_balance(self, address: str) -> int:
        """Native balance of an address."""
        return int(self.w3.eth.get_balance(checksum(address)))

    def get_code(self, address: str) -> str:
        """Deployed bytecode of an address."""
        return to_hex_str(self.w3.eth.get_code(checksum(address)))

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Transaction count of an address."""
        return int(self.w3.eth.get_transaction_count(checksum(address), block))

    def send_transaction(self, tx: t.Dict) -> str:
        """Sign and send a transaction, returning its hash."""
        if self.crypto is None:
            raise RuntimeError("Cannot send a transaction without a signer.")

        tx = to_web3_tx(tx)
        tx.setdefault("from", checksum(self.crypto.address))
        tx.setdefault("chainId", self.chain_id)
        tx.setdefault("value", 0)
        if "nonce" not in tx:
            tx["nonce"] = self.get_transaction_count(tx["from"])
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            fees = self.fee_data()
            if "maxFeePerGas" in fees:
                tx["maxFeePerGas"] = fees["maxFeePerGas"]
                tx["maxPriorityFeePerGas"] = fees.get("maxPriorityFeePerGas", 0)
            else:
                tx["gasPrice"] = fees["gasPrice"]
        if "gas" not in tx:
            tx["gas"] = self.estimate_gas(tx)

        self.logger.debug(
            f"[CHAIN] Sending transaction to={tx.get('to')} nonce={tx['nonce']} gas={tx['gas']}."
        )
        signed = self.crypto.sign_transaction(tx)
        tx_hash = self.ledger_api.send_signed_transaction(signed, raise_on_try=True)
        if tx_hash is None:
            raise RuntimeError("Transaction was not sent.")
        return to_hex_str(tx_hash)

    def get_transaction_receipt(self, tx_hash: str) -> t.Dict:
        """Get a receipt; raises `TransactionNotFound` when not available yet."""
        return normalize(self.w3.eth.get_transaction_receipt(tx_hash))

    def wait_for_receipt(
        self, tx_hash: str, timeout: t.Optional[float] = None
    ) -> t.Dict:
        """Block until a receipt is available."""
        return normalize(
            self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=timeout or ON_CHAIN_INTERACT_TIMEOUT,
                poll_latency=ON_CHAIN_INTERACT_SLEEP,
            )
        )

    def rpc(self, method: str, params: t.List[t.Any]) -> t.Any:
        """Perform a raw JSON-RPC request."""
        response = self.w3.provider.make_request(method, params)
        if "error" in response:
            raise ValueError(response["error"])
        return normalize(response.get("result"))


def read_contract(
    client: ChainClient,
    address: str,
    interface: "ContractInterface",
    fn_name: str,
    *args: t.Any,
    sender: t.Optional[str] = None,
) -> t.Any:
    """Call a view function and decode its return value."""
    tx = {"to": address, "data": interface.encode(fn_name, *args)}
    if sender is not None:
        tx["from"] = sender
    output = interface.decode_output(fn_name, client.call(tx))
    return output[0] if len(output) == 1 else output
