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

"""Unit tests for the bridge client and ledger helpers (no network/blockchain calls)."""

from unittest.mock import MagicMock, patch

import pytest
from aea_ledger_ethereum import EIP1559

from crossbridge.chain import LedgerApiChainClient
from crossbridge.client import BridgeClient, make_bridge_client
from crossbridge.constants import L2_ASSET_ROUTER_ADDRESS, L2_INTEROP_CENTER_ADDRESS
from crossbridge.errors import BridgeError, ErrorKind
from crossbridge.ledger import (
    L2_FALLBACK_MAX_FEE_PER_GAS,
    get_default_rpc,
    make_chain_ledger_api,
)
from crossbridge.utils import is_address_eq
from crossbridge.utils.encoding import BRIDGEHUB, L1_ASSET_ROUTER, L1_NULLIFIER
from tests.conftest import (
    ADDRESS_OVERRIDES,
    BASE_TOKEN,
    BRIDGEHUB_ADDR,
    L1_ASSET_ROUTER_ADDR,
    L1_CHAIN_ID,
    L1_NATIVE_TOKEN_VAULT_ADDR,
    L1_NULLIFIER_ADDR,
    L2_CHAIN_ID,
    FakeChain,
    make_client,
)


def _wire_discovery(l1: FakeChain, l2: FakeChain) -> None:
    """Answer the address discovery calls."""
    l2.rpc_results["zks_getBridgehubContract"] = BRIDGEHUB_ADDR
    l1.returns(BRIDGEHUB_ADDR, BRIDGEHUB, "assetRouter", L1_ASSET_ROUTER_ADDR)
    l1.returns(L1_ASSET_ROUTER_ADDR, L1_ASSET_ROUTER, "L1_NULLIFIER", L1_NULLIFIER_ADDR)
    l1.returns(
        L1_NULLIFIER_ADDR,
        L1_NULLIFIER,
        "l1NativeTokenVault",
        L1_NATIVE_TOKEN_VAULT_ADDR,
    )


# ---------------------------------------------------------------------------
# BridgeClient
# ---------------------------------------------------------------------------


class TestEnsureAddresses:
    """Tests for BridgeClient.ensure_addresses."""

    def test_discovery(self, l1: FakeChain, l2: FakeChain) -> None:
        """Test addresses are discovered from the L2 RPC and L1 contracts."""
        _wire_discovery(l1, l2)
        client = BridgeClient(l1=l1, l2=l2)

        addresses = client.ensure_addresses()

        assert is_address_eq(addresses.bridgehub, BRIDGEHUB_ADDR)
        assert is_address_eq(addresses.l1_asset_router, L1_ASSET_ROUTER_ADDR)
        assert is_address_eq(addresses.l1_nullifier, L1_NULLIFIER_ADDR)
        assert is_address_eq(
            addresses.l1_native_token_vault, L1_NATIVE_TOKEN_VAULT_ADDR
        )
        assert addresses.l2_asset_router == L2_ASSET_ROUTER_ADDRESS
        assert addresses.interop_center == L2_INTEROP_CENTER_ADDRESS

    def test_cached(self, l1: FakeChain, l2: FakeChain) -> None:
        """Test addresses are resolved once until refreshed."""
        _wire_discovery(l1, l2)
        client = BridgeClient(l1=l1, l2=l2)

        first = client.ensure_addresses()
        assert client.ensure_addresses() is first
        assert len(l1.calls) == 3

        client.refresh()
        client.ensure_addresses()
        assert len(l1.calls) == 6

    def test_overrides_skip_discovery(self, l1: FakeChain, l2: FakeChain) -> None:
        """Test pinned addresses are used without any call."""
        client = BridgeClient(
            l1=l1, l2=l2, overrides={**ADDRESS_OVERRIDES, "interop_center": BASE_TOKEN}
        )

        addresses = client.ensure_addresses()

        assert addresses.bridgehub == BRIDGEHUB_ADDR
        assert addresses.interop_center == BASE_TOKEN
        assert l1.calls == []

    def test_rpc_failure(self, l1: FakeChain, l2: FakeChain) -> None:
        """Test a failing Bridgehub lookup is an RPC error."""
        client = BridgeClient(l1=l1, l2=l2)

        with pytest.raises(BridgeError) as exc_info:
            client.ensure_addresses()

        assert exc_info.value.kind == ErrorKind.RPC
        assert exc_info.value.envelope.operation == "client.ensureAddresses"

    def test_contract_failure(self, l1: FakeChain, l2: FakeChain) -> None:
        """Test a failing contract read is a CONTRACT error naming the function."""
        l2.rpc_results["zks_getBridgehubContract"] = BRIDGEHUB_ADDR
        client = BridgeClient(l1=l1, l2=l2)

        with pytest.raises(BridgeError) as exc_info:
            client.ensure_addresses()

        assert exc_info.value.kind == ErrorKind.CONTRACT
        assert exc_info.value.envelope.context["where"] == "assetRouter"


class TestBaseToken:
    """Tests for BridgeClient.base_token."""

    def test_read(self, l1: FakeChain, l2: FakeChain) -> None:
        """Test the base token is read from the Bridgehub for the chain."""
        client = make_client(l1, l2, base_tokens={L2_CHAIN_ID: BASE_TOKEN})

        assert is_address_eq(client.base_token(L2_CHAIN_ID), BASE_TOKEN)

    def test_failure(self, l1: FakeChain, l2: FakeChain) -> None:
        """Test a failing read is a CONTRACT error."""
        client = BridgeClient(l1=l1, l2=l2, overrides=dict(ADDRESS_OVERRIDES))

        with pytest.raises(BridgeError) as exc_info:
            client.base_token(L2_CHAIN_ID)

        assert exc_info.value.kind == ErrorKind.CONTRACT
        assert exc_info.value.envelope.operation == "client.baseToken"
        assert exc_info.value.envelope.context["chainId"] == str(L2_CHAIN_ID)


class TestSender:
    """Tests for BridgeClient.sender."""

    def test_l1_signer(self, client: BridgeClient, l1: FakeChain) -> None:
        """Test the sender is the L1 signer."""
        assert client.sender == l1.sender

    def test_no_signer(self) -> None:
        """Test a client without signer cannot name a sender."""
        client = BridgeClient(
            l1=FakeChain(L1_CHAIN_ID, sender=None),
            l2=FakeChain(L2_CHAIN_ID, sender=None),
        )

        with pytest.raises(BridgeError) as exc_info:
            _ = client.sender

        assert exc_info.value.kind == ErrorKind.STATE


class TestMakeBridgeClient:
    """Tests for make_bridge_client."""

    def test_uses_default_rpcs(self) -> None:
        """Test omitted endpoints fall back to the environment defaults."""
        crypto = MagicMock()
        with patch(
            "crossbridge.client.make_chain_ledger_api", return_value=MagicMock()
        ) as mock_make_api:
            client = make_bridge_client(crypto=crypto, overrides={"bridgehub": "0x1"})

        assert mock_make_api.call_args_list[0].kwargs == {
            "chain_id": L1_CHAIN_ID,
            "rpc": get_default_rpc("l1"),
        }
        assert mock_make_api.call_args_list[1].kwargs["l2"] is True
        assert isinstance(client.l1, LedgerApiChainClient)
        assert client.l1.crypto is crypto
        assert client.overrides == {"bridgehub": "0x1"}


# ---------------------------------------------------------------------------
# Ledger helpers
# ---------------------------------------------------------------------------


class TestLedger:
    """Tests for crossbridge.ledger."""

    def test_default_rpc(self) -> None:
        """Test unknown layers are rejected."""
        with pytest.raises(ValueError, match="Unknown layer"):
            get_default_rpc("l3")

    def test_make_chain_ledger_api_is_cached(self) -> None:
        """Test ledger APIs are created once per endpoint and chain."""
        with patch.dict("crossbridge.ledger.DEFAULT_LEDGER_APIS", clear=True), patch(
            "crossbridge.ledger.make_ledger_api", side_effect=lambda *a, **kw: MagicMock()
        ) as mock_make:
            first = make_chain_ledger_api(chain_id=1, rpc="http://l1")
            assert make_chain_ledger_api(chain_id=1, rpc="http://l1") is first
            make_chain_ledger_api(chain_id=2, rpc="http://l1")

        assert mock_make.call_count == 2

    def test_l2_fee_fallback(self) -> None:
        """Test L2 ledger APIs get a capped fallback max fee."""
        with patch.dict("crossbridge.ledger.DEFAULT_LEDGER_APIS", clear=True), patch(
            "crossbridge.ledger.make_ledger_api"
        ) as mock_make:
            make_chain_ledger_api(chain_id=324, rpc="http://l2", l2=True)

        strategies = mock_make.call_args.kwargs["gas_price_strategies"]
        assert (
            strategies[EIP1559]["fallback_estimate"]["maxFeePerGas"]
            == L2_FALLBACK_MAX_FEE_PER_GAS
        )
