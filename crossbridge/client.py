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

"""Bridge client: paired L1/L2 chain clients and system contract addresses."""

import logging
import typing as t

from aea.crypto.base import Crypto
from aea.helpers.logging import setup_logger

from crossbridge.bridge_types import ResolvedAddresses
from crossbridge.chain import ChainClient, LedgerApiChainClient, read_contract
from crossbridge.constants import (
    L2_ASSET_ROUTER_ADDRESS,
    L2_BASE_TOKEN_ADDRESS,
    L2_INTEROP_CENTER_ADDRESS,
    L2_NATIVE_TOKEN_VAULT_ADDRESS,
)
from crossbridge.errors import ErrorHandlers, ErrorKind, ErrorResource
from crossbridge.ledger import (
    L1_CHAIN_ID,
    L2_CHAIN_ID,
    get_default_rpc,
    make_chain_ledger_api,
)
from crossbridge.utils.encoding import BRIDGEHUB, L1_ASSET_ROUTER, L1_NULLIFIER


OP_ENSURE_ADDRESSES = "client.ensureAddresses"
OP_BASE_TOKEN = "client.baseToken"
ZKS_GET_BRIDGEHUB_CONTRACT = "zks_getBridgehubContract"


class BridgeClient:
    """L1/L2 client pair with cached system contract addresses.

    Expected usage:
        client = BridgeClient(l1=l1_chain_client, l2=l2_chain_client)

        addresses = client.ensure_addresses()
        base_token = client.base_token(client.l2.chain_id)
    """

    def __init__(
        self,
        l1: ChainClient,
        l2: ChainClient,
        overrides: t.Optional[t.Dict[str, str]] = None,
        logger: t.Optional[logging.Logger] = None,
    ) -> None:
        """Initialize object."""
        self.l1 = l1
        self.l2 = l2
        self.overrides = dict(overrides or {})
        self.logger = logger or setup_logger(name="crossbridge.client")
        self._handlers = ErrorHandlers(ErrorResource.CLIENT)
        self._addresses: t.Optional[ResolvedAddresses] = None

    @property
    def sender(self) -> str:
        """Address of the L1 signer."""
        sender = self.l1.sender or self.l2.sender
        if sender is None:
            raise self._handlers.error(
                ErrorKind.STATE,
                "client.sender",
                "The bridge client has no signer configured.",
            )
        return sender

    def _resolve(self) -> ResolvedAddresses:
        bridgehub = self.overrides.get("bridgehub") or self._handlers.wrap_as(
            ErrorKind.RPC,
            OP_ENSURE_ADDRESSES,
            lambda: self.l2.rpc(ZKS_GET_BRIDGEHUB_CONTRACT, []),
            context={"where": ZKS_GET_BRIDGEHUB_CONTRACT},
            message="Failed to fetch the Bridgehub address.",
        )
        l1_asset_router = self.overrides.get("l1_asset_router") or self._read(
            bridgehub, BRIDGEHUB, "assetRouter"
        )
        l1_nullifier = self.overrides.get("l1_nullifier") or self._read(
            l1_asset_router, L1_ASSET_ROUTER, "L1_NULLIFIER"
        )
        l1_native_token_vault = self.overrides.get(
            "l1_native_token_vault"
        ) or self._read(l1_nullifier, L1_NULLIFIER, "l1NativeTokenVault")

        return ResolvedAddresses(
            bridgehub=bridgehub,
            l1_asset_router=l1_asset_router,
            l1_nullifier=l1_nullifier,
            l1_native_token_vault=l1_native_token_vault,
            l2_asset_router=self.overrides.get(
                "l2_asset_router", L2_ASSET_ROUTER_ADDRESS
            ),
            l2_native_token_vault=self.overrides.get(
                "l2_native_token_vault", L2_NATIVE_TOKEN_VAULT_ADDRESS
            ),
            l2_base_token=self.overrides.get("l2_base_token", L2_BASE_TOKEN_ADDRESS),
            interop_center=self.overrides.get(
                "interop_center", L2_INTEROP_CENTER_ADDRESS
            ),
        )

    def _read(self, address: str, interface: t.Any, fn_name: str) -> str:
        return self._handlers.wrap_as(
            ErrorKind.CONTRACT,
            OP_ENSURE_ADDRESSES,
            lambda: read_contract(self.l1, address, interface, fn_name),
            context={"where": fn_name, "address": address},
            message=f"Failed to read {fn_name}.",
        )

    def ensure_addresses(self) -> ResolvedAddresses:
        """Resolve the system contract addresses, once."""
        if self._addresses is None:
            self._addresses = self._resolve()
            self.logger.debug(
                f"[CLIENT] Resolved addresses bridgehub={self._addresses.bridgehub} "
                f"l1_asset_router={self._addresses.l1_asset_router}."
            )
        return self._addresses

    def refresh(self) -> None:
        """Drop the cached addresses."""
        self._addresses = None

    def base_token(self, chain_id: int) -> str:
        """Base token of a chain, as registered in the Bridgehub."""
        bridgehub = self.ensure_addresses().bridgehub
        return self._handlers.wrap_as(
            ErrorKind.CONTRACT,
            OP_BASE_TOKEN,
            lambda: read_contract(self.l1, bridgehub, BRIDGEHUB, "baseToken", chain_id),
            context={"chainId": str(chain_id), "bridgehub": bridgehub},
            message="Failed to read the base token.",
        )


def make_bridge_client(
    crypto: t.Optional[Crypto] = None,
    l1_rpc: t.Optional[str] = None,
    l2_rpc: t.Optional[str] = None,
    l1_chain_id: t.Optional[int] = None,
    l2_chain_id: t.Optional[int] = None,
    overrides: t.Optional[t.Dict[str, str]] = None,
) -> BridgeClient:
    """Build a bridge client from RPC endpoints (environment defaults when omitted)."""
    l1_api = make_chain_ledger_api(
        chain_id=l1_chain_id or L1_CHAIN_ID,
        rpc=l1_rpc or get_default_rpc("l1"),
    )
    l2_api = make_chain_ledger_api(
        chain_id=l2_chain_id or L2_CHAIN_ID,
        rpc=l2_rpc or get_default_rpc("l2"),
        l2=True,
    )
    return BridgeClient(
        l1=LedgerApiChainClient(l1_api, crypto),
        l2=LedgerApiChainClient(l2_api, crypto),
        overrides=overrides,
    )
