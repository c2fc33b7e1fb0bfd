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

"""Unit tests for plan execution (no network/blockchain calls)."""

import typing as t

import pytest
from web3.exceptions import TimeExhausted

from crossbridge.bridge import Bridge
from crossbridge.bridge.base import approval_step
from crossbridge.bridge.execution import (
    MESSAGE_STEP_REVERTED,
    MESSAGE_STEP_TIMEOUT,
    ExecutionEngine,
)
from crossbridge.bridge_types import (
    DepositParams,
    HandleKind,
    Plan,
    PlanStep,
    Quote,
    StepKind,
    TxOverrides,
)
from crossbridge.constants import ETH_ADDRESS
from crossbridge.errors import BridgeError, ErrorKind, ErrorResource
from crossbridge.utils.encoding import BRIDGEHUB, ERC20
from tests.conftest import (
    BRIDGEHUB_ADDR,
    L1_ASSET_ROUTER_ADDR,
    SENDER,
    TOKEN,
    FakeChain,
    make_client,
    tx_hash,
)


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------


def _bridge_step(gas: t.Optional[int] = 200_000) -> PlanStep:
    """Build a bridge-like step."""
    tx: t.Dict[str, t.Any] = {"to": BRIDGEHUB_ADDR, "data": "0x1234", "value": 5}
    if gas is not None:
        tx["gas"] = gas
    return PlanStep(
        key="bridgehub:direct",
        kind=StepKind.BRIDGEHUB_DIRECT,
        description="bridge",
        tx=tx,
    )


def _make_plan(*steps: PlanStep) -> Plan:
    """Build a plan from steps."""
    return Plan(
        route="eth-base",
        summary=Quote(route="eth-base", token=ETH_ADDRESS, amount=5),
        steps=list(steps),
    )


def _engine(chain: FakeChain) -> ExecutionEngine:
    return ExecutionEngine(chain, ErrorResource.DEPOSITS)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestExecutionEngine:
    """Tests for ExecutionEngine."""

    def test_steps_are_sent_in_order_with_increasing_nonces(
        self, l1: FakeChain
    ) -> None:
        """Test nonces start at the pending count and increase per sent step."""
        l1.returns(TOKEN, ERC20, "allowance", 0)
        plan = _make_plan(
            approval_step(TOKEN, L1_ASSET_ROUTER_ADDR, 10, SENDER, "approve"),
            _bridge_step(),
        )

        handle = _engine(l1).execute(plan, SENDER, HandleKind.DEPOSIT)

        assert [tx["nonce"] for tx in l1.sent] == [7, 8]
        assert l1.sent[0]["to"] == TOKEN
        assert handle.tx_hash == tx_hash(2)
        assert handle.step_hashes == {
            "approve": tx_hash(1),
            "bridgehub:direct": tx_hash(2),
        }
        assert handle.kind == HandleKind.DEPOSIT

    def test_satisfied_approval_is_skipped(self, l1: FakeChain) -> None:
        """Test an approval is not sent when the allowance became sufficient."""
        l1.returns(TOKEN, ERC20, "allowance", 10)
        plan = _make_plan(
            approval_step(TOKEN, L1_ASSET_ROUTER_ADDR, 10, SENDER, "approve"),
            _bridge_step(),
        )

        handle = _engine(l1).execute(plan, SENDER, HandleKind.DEPOSIT)

        assert len(l1.sent) == 1
        assert l1.sent[0]["nonce"] == 7
        assert list(handle.step_hashes) == ["bridgehub:direct"]

    def test_deferred_step_is_estimated_just_in_time(self, l1: FakeChain) -> None:
        """Test a step without gas is estimated and buffered before sending."""
        l1.gas_estimate = 80_000
        _engine(l1).execute(_make_plan(_bridge_step(gas=None)), SENDER, HandleKind.DEPOSIT)

        assert l1.sent[0]["gas"] == 92_000
        assert l1.sent[0]["from"] == SENDER

    def test_failed_estimate_sends_without_gas(self, l1: FakeChain) -> None:
        """Test a failing just-in-time estimate leaves the gas to the signer."""
        l1.gas_estimate = ValueError("estimation failed")
        _engine(l1).execute(_make_plan(_bridge_step(gas=None)), SENDER, HandleKind.DEPOSIT)

        assert "gas" not in l1.sent[0]

    def test_overrides(self, l1: FakeChain) -> None:
        """Test caller overrides win over planned fields, nonce included."""
        overrides = TxOverrides(
            gas_limit=300_000, max_fee_per_gas=50, max_priority_fee_per_gas=1, nonce=42
        )
        _engine(l1).execute(
            _make_plan(_bridge_step(), _bridge_step()),
            SENDER,
            HandleKind.DEPOSIT,
            overrides=overrides,
        )

        assert [tx["nonce"] for tx in l1.sent] == [42, 43]
        assert l1.sent[0]["gas"] == 300_000
        assert l1.sent[0]["maxFeePerGas"] == 50
        assert l1.sent[0]["maxPriorityFeePerGas"] == 1

    def test_reverted_receipt(self, l1: FakeChain) -> None:
        """Test a reverted step stops execution with an EXECUTION error."""
        l1.receipts[tx_hash(1)] = {"status": 0, "transactionHash": tx_hash(1)}

        with pytest.raises(BridgeError) as exc_info:
            _engine(l1).execute(
                _make_plan(_bridge_step(), _bridge_step()), SENDER, HandleKind.DEPOSIT
            )

        error = exc_info.value
        assert error.kind == ErrorKind.EXECUTION
        assert error.operation == "deposits.create:sendStep"
        assert error.envelope.message == MESSAGE_STEP_REVERTED
        assert error.envelope.context["txHash"] == tx_hash(1)
        assert error.envelope.context["nonce"] == "7"
        assert error.envelope.context["step"] == "bridgehub:direct"
        assert len(l1.sent) == 1

    def test_send_failure(self, l1: FakeChain) -> None:
        """Test a failing send is an EXECUTION error."""
        l1.send_error = ValueError("nonce too low")

        with pytest.raises(BridgeError) as exc_info:
            _engine(l1).execute(_make_plan(_bridge_step()), SENDER, HandleKind.DEPOSIT)

        assert exc_info.value.kind == ErrorKind.EXECUTION
        assert exc_info.value.envelope.cause is not None
        assert exc_info.value.envelope.cause["message"] == "nonce too low"

    def test_receipt_timeout(self, l1: FakeChain) -> None:
        """Test a receipt wait timeout is a TIMEOUT error."""
        l1.wait_errors[tx_hash(1)] = TimeExhausted("timed out")

        with pytest.raises(BridgeError) as exc_info:
            _engine(l1).execute(_make_plan(_bridge_step()), SENDER, HandleKind.DEPOSIT)

        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert exc_info.value.envelope.message == MESSAGE_STEP_TIMEOUT

    def test_empty_plan(self, l1: FakeChain) -> None:
        """Test an empty plan cannot be executed."""
        with pytest.raises(BridgeError) as exc_info:
            _engine(l1).execute(_make_plan(), SENDER, HandleKind.DEPOSIT)

        assert exc_info.value.kind == ErrorKind.STATE


class TestCreate:
    """Tests for the create operations of the resources."""

    def test_deposit_create(self, l1: FakeChain, l2: FakeChain) -> None:
        """Test create builds, sends and returns a handle of the deposit."""
        l1.returns(BRIDGEHUB_ADDR, BRIDGEHUB, "l2TransactionBaseCost", 2000)
        bridge = Bridge(make_client(l1, l2))

        handle = bridge.deposits.create(DepositParams(token=ETH_ADDRESS, amount=1234))

        assert handle.kind == HandleKind.DEPOSIT
        assert handle.tx_hash == tx_hash(1)
        assert l1.sent[0]["value"] == 3234
        assert l1.sent[0]["nonce"] == 7
        assert handle.plan.summary.mint_value == 3234
        assert l2.sent == []

    def test_try_create_returns_error(self, l1: FakeChain, l2: FakeChain) -> None:
        """Test try_create captures execution failures."""
        l1.returns(BRIDGEHUB_ADDR, BRIDGEHUB, "l2TransactionBaseCost", 2000)
        l1.send_error = ValueError("insufficient funds")
        bridge = Bridge(make_client(l1, l2))

        result = bridge.deposits.try_create(DepositParams(token=ETH_ADDRESS, amount=1))

        assert not result.ok
        assert result.error is not None
        assert result.error.kind == ErrorKind.EXECUTION
