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

"""Unit tests for fee and gas quoting (no network/blockchain calls)."""

import typing as t

import pytest

from crossbridge.bridge.gas import (
    build_fee_breakdown,
    fetch_fees,
    quote_l1_gas,
    quote_l2_base_cost,
    quote_l2_gas,
)
from crossbridge.bridge_types import DepositRoute, GasQuote, TxOverrides
from crossbridge.errors import BridgeError, ErrorHandlers, ErrorKind, ErrorResource
from crossbridge.utils import with_gas_buffer
from crossbridge.utils.encoding import BRIDGEHUB
from tests.conftest import BRIDGEHUB_ADDR, RECEIVER, FakeChain


TX = {"to": RECEIVER, "data": "0x", "value": 0}


class TestFetchFees:
    """Tests for fetch_fees."""

    def test_eip1559(self, l1: FakeChain) -> None:
        """Test EIP-1559 fee data."""
        assert fetch_fees(l1) == (100, 2)

    def test_legacy_gas_price(self, l1: FakeChain) -> None:
        """Test a gas price only market has no priority fee."""
        l1.fees = {"gasPrice": 33}

        assert fetch_fees(l1) == (33, 0)

    def test_failure(self, l1: FakeChain) -> None:
        """Test fee data failures yield zeros."""
        l1.fees = ConnectionError("down")

        assert fetch_fees(l1) == (0, 0)


class TestQuoteL1Gas:
    """Tests for quote_l1_gas."""

    def test_estimate_is_buffered(self, l1: FakeChain) -> None:
        """Test the estimate gets the safety margin."""
        quote = quote_l1_gas(l1, dict(TX))

        assert quote == GasQuote(
            gas_limit=with_gas_buffer(50_000),
            max_fee_per_gas=100,
            max_priority_fee_per_gas=2,
        )

    def test_overrides_win(self, l1: FakeChain) -> None:
        """Test explicit overrides skip estimation and the fee market."""
        l1.fees = ConnectionError("down")
        quote = quote_l1_gas(
            l1,
            dict(TX),
            TxOverrides(gas_limit=1, max_fee_per_gas=9, max_priority_fee_per_gas=0),
        )

        assert quote == GasQuote(gas_limit=1, max_fee_per_gas=9, max_priority_fee_per_gas=0)
        assert l1.estimates == []

    @pytest.mark.parametrize("fallback, expected", [(700_000, 700_000), (None, None)])
    def test_estimate_failure(
        self, l1: FakeChain, fallback: t.Optional[int], expected: t.Optional[int]
    ) -> None:
        """Test estimation failures use the fallback, when there is one."""
        l1.gas_estimate = ValueError("execution reverted")
        quote = quote_l1_gas(l1, dict(TX), fallback_gas_limit=fallback)

        if expected is None:
            assert quote is None
        else:
            assert quote is not None and quote.gas_limit == expected


class TestQuoteL2Gas:
    """Tests for quote_l2_gas."""

    def test_erc20_nonbase_footprint(self, l2: FakeChain) -> None:
        """Test the larger ERC-20 footprint and the custom pubdata price."""
        quote = quote_l2_gas(l2, DepositRoute.ERC20_NONBASE, tx=dict(TX), gas_per_pubdata=50)

        # (50_000 + 10_000 + 500 * 10 + 200 * 50) * 115 // 100
        assert quote.gas_limit == 86_250
        assert quote.gas_per_pubdata == 50
        assert quote.max_fee_per_gas == 100

    def test_hint_without_tx(self, l2: FakeChain) -> None:
        """Test the hint is used as is when there is nothing to estimate."""
        quote = quote_l2_gas(l2, DepositRoute.ETH_BASE, l2_gas_limit_hint=123)

        assert quote.gas_limit == 123
        assert l2.estimates == []

    def test_priority_fee_only_market(self, l2: FakeChain) -> None:
        """Test the priority fee is used when the market has no max fee."""
        l2.fees = {"maxFeePerGas": 0, "maxPriorityFeePerGas": 4}

        assert quote_l2_gas(l2, DepositRoute.ETH_BASE, tx=dict(TX)).max_fee_per_gas == 4


class TestBaseCost:
    """Tests for quote_l2_base_cost."""

    handlers = ErrorHandlers(ErrorResource.DEPOSITS)

    def test_read_at_current_gas_price(self, l1: FakeChain) -> None:
        """Test the base cost is read with the L1 max fee as gas price."""
        l1.returns(BRIDGEHUB_ADDR, BRIDGEHUB, "l2TransactionBaseCost", 777)

        base_cost = quote_l2_base_cost(
            l1, BRIDGEHUB_ADDR, 324, 300_000, 800, self.handlers, "deposits.op"
        )

        assert base_cost == 777
        args = BRIDGEHUB.decode_input("l2TransactionBaseCost", l1.calls[0]["data"])
        assert args == (324, 100, 300_000, 800)

    def test_missing_gas_price(self, l1: FakeChain) -> None:
        """Test a missing gas price is a CONTRACT error."""
        l1.fees = {}

        with pytest.raises(BridgeError) as exc_info:
            quote_l2_base_cost(
                l1, BRIDGEHUB_ADDR, 324, 300_000, 800, self.handlers, "deposits.op"
            )

        assert exc_info.value.kind == ErrorKind.CONTRACT
        assert l1.calls == []


class TestFeeBreakdown:
    """Tests for build_fee_breakdown."""

    def test_totals(self) -> None:
        """Test the total is the L1 max cost plus base cost and tip."""
        l1_gas = GasQuote(gas_limit=100, max_fee_per_gas=3, max_priority_fee_per_gas=1)
        l2_gas = GasQuote(gas_limit=500, max_fee_per_gas=1, gas_per_pubdata=800)

        fees = build_fee_breakdown("0xtoken", l1_gas, l2_gas, 40, 2, 142)

        assert fees.max_total == 300 + 42
        assert fees.l1 is not None and fees.l1.max_total == 300
        assert fees.l2 is not None and fees.l2.total == 42
        assert fees.l2.gas_limit == 500
        assert fees.mint_value == 142

    def test_without_l1_quote(self) -> None:
        """Test a missing L1 quote counts as zero."""
        fees = build_fee_breakdown(
            "0xtoken", None, GasQuote(gas_limit=1, max_fee_per_gas=1), 10, 0, 10
        )

        assert fees.max_total == 10
        assert fees.l1 is not None and fees.l1.gas_limit == 0
