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

"""Unit tests for status tracking (no network/blockchain calls)."""

import typing as t

import pytest
from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

from crossbridge.bridge import Bridge, StatusTracker, extract_l2_tx_hash_from_l1_logs
from crossbridge.bridge.status import NEW_PRIORITY_REQUEST_TOPIC
from crossbridge.bridge_types import (
    DepositPhase,
    Handle,
    HandleKind,
    InteropPhase,
    Plan,
    Quote,
    ReadinessKind,
    WithdrawalPhase,
)
from crossbridge.client import BridgeClient
from crossbridge.constants import (
    ETH_ADDRESS,
    TOPIC_CANONICAL_ASSIGNED,
    TOPIC_CANONICAL_SUCCESS,
)
from crossbridge.errors import BridgeError, ErrorKind
from crossbridge.utils import to_hex_str
from tests.conftest import L1_NULLIFIER_ADDR, FakeChain, tx_hash


L1_HASH = "0x" + "1" * 64
L2_HASH = "0x" + "2" * 64
FINALIZE_SELECTOR = "0x11223344"


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------


def _priority_request_log(l2_hash: str = L2_HASH) -> t.Dict:
    """Build a NewPriorityRequest log announcing an L2 hash."""
    return {
        "topics": [NEW_PRIORITY_REQUEST_TOPIC, "0x" + "0" * 64, "0x" + "0" * 64],
        "data": to_hex_str(
            encode(["bytes32", "uint256", "bytes"], [bytes.fromhex(l2_hash[2:]), 5, b""])
        ),
    }


def _handle(hash_: str = L1_HASH) -> Handle:
    """Build a deposit handle."""
    return Handle(
        kind=HandleKind.DEPOSIT,
        tx_hash=hash_,
        step_hashes={"bridgehub:direct": hash_},
        plan=Plan(
            route="eth-base",
            summary=Quote(route="eth-base", token=ETH_ADDRESS, amount=1),
            steps=[],
        ),
    )


def _error_selector(signature: str) -> str:
    """Selector of a custom error."""
    return to_hex_str(function_signature_to_4byte_selector(signature))


# ---------------------------------------------------------------------------
# Log parsing
# ---------------------------------------------------------------------------


class TestExtractL2TxHash:
    """Tests for extract_l2_tx_hash_from_l1_logs."""

    def test_new_priority_request(self) -> None:
        """Test the hash is decoded from the NewPriorityRequest data."""
        assert extract_l2_tx_hash_from_l1_logs([_priority_request_log()]) == L2_HASH

    def test_legacy_topics(self) -> None:
        """Test the legacy canonical transaction topics."""
        assigned = {"topics": [TOPIC_CANONICAL_ASSIGNED, "0x" + "0" * 64, L2_HASH]}
        success = {
            "topics": [TOPIC_CANONICAL_SUCCESS, "0x" + "0" * 64, "0x" + "0" * 64, L2_HASH]
        }

        assert extract_l2_tx_hash_from_l1_logs([assigned]) == L2_HASH
        assert extract_l2_tx_hash_from_l1_logs([success]) == L2_HASH

    def test_priority_request_wins_over_legacy(self) -> None:
        """Test NewPriorityRequest is preferred regardless of log order."""
        legacy = {"topics": [TOPIC_CANONICAL_ASSIGNED, "0x" + "0" * 64, "0x" + "9" * 64]}

        assert extract_l2_tx_hash_from_l1_logs([legacy, _priority_request_log()]) == L2_HASH

    def test_no_match(self) -> None:
        """Test unrelated or malformed logs yield nothing."""
        logs = [
            {"topics": ["0x" + "f" * 64]},
            {"topics": [NEW_PRIORITY_REQUEST_TOPIC], "data": "0x1234"},
            {"topics": [TOPIC_CANONICAL_ASSIGNED, "0x" + "0" * 64, "0x1234"]},
            {"topics": []},
        ]

        assert extract_l2_tx_hash_from_l1_logs(logs) is None


# ---------------------------------------------------------------------------
# Deposits
# ---------------------------------------------------------------------------


class TestDepositStatus:
    """Tests for deposit status and waits."""

    def test_unknown_without_hash(self, client: BridgeClient) -> None:
        """Test a missing hash is UNKNOWN."""
        assert StatusTracker(client).deposit_status(None).phase == DepositPhase.UNKNOWN

    def test_l1_pending(self, client: BridgeClient) -> None:
        """Test a missing L1 receipt is L1_PENDING."""
        status = StatusTracker(client).deposit_status(L1_HASH)

        assert status.phase == DepositPhase.L1_PENDING
        assert status.l1_tx_hash == L1_HASH

    def test_l1_included_without_matching_log(
        self, client: BridgeClient, l1: FakeChain
    ) -> None:
        """Test an L1 receipt without a priority request log is L1_INCLUDED."""
        l1.receipts[L1_HASH] = {"status": 1, "logs": [{"topics": ["0x" + "f" * 64]}]}

        status = StatusTracker(client).deposit_status(_handle())

        assert status.phase == DepositPhase.L1_INCLUDED
        assert status.l2_tx_hash is None

    def test_l2_pending(self, client: BridgeClient, l1: FakeChain) -> None:
        """Test a missing L2 receipt is L2_PENDING."""
        l1.receipts[L1_HASH] = {"status": 1, "logs": [_priority_request_log()]}

        status = StatusTracker(client).deposit_status(_handle())

        assert status.phase == DepositPhase.L2_PENDING
        assert status.l2_tx_hash == L2_HASH

    @pytest.mark.parametrize(
        "l2_status, phase",
        [(1, DepositPhase.L2_EXECUTED), (0, DepositPhase.L2_FAILED)],
    )
    def test_l2_outcome(
        self,
        client: BridgeClient,
        l1: FakeChain,
        l2: FakeChain,
        l2_status: int,
        phase: DepositPhase,
    ) -> None:
        """Test the L2 receipt status decides the final phase."""
        l1.receipts[L1_HASH] = {"status": 1, "logs": [_priority_request_log()]}
        l2.receipts[L2_HASH] = {"status": l2_status}

        assert StatusTracker(client).deposit_status(_handle()).phase == phase

    def test_receipt_rpc_failure(self, client: BridgeClient, l1: FakeChain) -> None:
        """Test non not-found receipt errors are RPC errors."""

        def _boom(tx_hash_: str) -> t.Dict:
            raise ConnectionError("connection refused")

        l1.get_transaction_receipt = _boom  # type: ignore

        with pytest.raises(BridgeError) as exc_info:
            StatusTracker(client).deposit_status(L1_HASH)

        assert exc_info.value.kind == ErrorKind.RPC

    def test_wait_for_l1(self, client: BridgeClient, l1: FakeChain) -> None:
        """Test waiting for L1 returns the L1 receipt."""
        l1.receipts[L1_HASH] = {"status": 1, "logs": [], "transactionHash": L1_HASH}

        receipt = Bridge(client).deposits.wait(L1_HASH, for_="l1")

        assert receipt["transactionHash"] == L1_HASH

    def test_wait_for_l2(self, client: BridgeClient, l1: FakeChain) -> None:
        """Test waiting for L2 follows the announced L2 hash."""
        l1.receipts[L1_HASH] = {"status": 1, "logs": [_priority_request_log()]}

        receipt = Bridge(client).deposits.wait(_handle())

        assert receipt["transactionHash"] == L2_HASH

    def test_wait_invalid_target(self, client: BridgeClient) -> None:
        """Test the wait target is validated."""
        with pytest.raises(BridgeError) as exc_info:
            Bridge(client).deposits.wait(L1_HASH, for_="l3")

        assert exc_info.value.kind == ErrorKind.VALIDATION

    def test_wait_without_hash(self, client: BridgeClient) -> None:
        """Test waiting on a handle without a hash is a STATE error."""
        with pytest.raises(BridgeError) as exc_info:
            Bridge(client).deposits.wait(None)

        assert exc_info.value.kind == ErrorKind.STATE

    def test_wait_missing_l2_hash(self, client: BridgeClient) -> None:
        """Test an L1 receipt without the L2 hash fails verification."""
        result = Bridge(client).deposits.try_wait(L1_HASH)

        assert not result.ok
        assert result.error is not None
        assert result.error.kind == ErrorKind.VERIFICATION
        assert result.error.envelope.context["l1TxHash"] == L1_HASH

    def test_wait_failed_l2(self, client: BridgeClient, l1: FakeChain, l2: FakeChain) -> None:
        """Test a failed L2 execution fails verification."""
        l1.receipts[L1_HASH] = {"status": 1, "logs": [_priority_request_log()]}
        l2.receipts[L2_HASH] = {"status": 0}

        with pytest.raises(BridgeError, match="L2 transaction execution failed") as exc_info:
            Bridge(client).deposits.wait(_handle(), for_="l2")

        assert exc_info.value.kind == ErrorKind.VERIFICATION


# ---------------------------------------------------------------------------
# Withdrawals and interop
# ---------------------------------------------------------------------------


class TestWithdrawalStatus:
    """Tests for withdrawal status, waits and finalization readiness."""

    def test_phases(self, client: BridgeClient, l2: FakeChain) -> None:
        """Test the L2 receipt decides the phase until a proof exists."""
        bridge = Bridge(client)
        assert bridge.withdrawals.status(None).phase == WithdrawalPhase.UNKNOWN
        assert bridge.withdrawals.status(tx_hash(1)).phase == WithdrawalPhase.L2_PENDING

        l2.receipts[tx_hash(1)] = {"status": 1}
        l2.rpc_results["eth_getTransactionReceipt"] = None
        status = bridge.withdrawals.status(tx_hash(1))
        assert status.phase == WithdrawalPhase.PENDING
        assert status.key is None

        l2.receipts[tx_hash(1)] = {"status": 0}
        assert bridge.withdrawals.status(tx_hash(1)).phase == WithdrawalPhase.L2_FAILED

    def test_wait_failed(self, client: BridgeClient, l2: FakeChain) -> None:
        """Test waiting on a failed withdrawal fails verification."""
        l2.receipts[tx_hash(1)] = {"status": 0}

        with pytest.raises(BridgeError) as exc_info:
            Bridge(client).withdrawals.wait(tx_hash(1))

        assert exc_info.value.kind == ErrorKind.VERIFICATION

    def test_finalization_ready(self, client: BridgeClient, l1: FakeChain) -> None:
        """Test a successful simulation is READY."""
        l1.respond(L1_NULLIFIER_ADDR, FINALIZE_SELECTOR, "0x")

        readiness = Bridge(client).withdrawals.finalization_readiness(
            {"to": L1_NULLIFIER_ADDR, "data": FINALIZE_SELECTOR + "00" * 32}
        )

        assert readiness.kind == ReadinessKind.READY

    @pytest.mark.parametrize(
        "signature, kind, reason",
        [
            ("WithdrawalAlreadyFinalized()", ReadinessKind.FINALIZED, None),
            ("LocalRootIsZero()", ReadinessKind.NOT_READY, "root-missing"),
            ("InvalidProof()", ReadinessKind.UNFINALIZABLE, "message-invalid"),
        ],
    )
    def test_finalization_reverts(
        self,
        client: BridgeClient,
        l1: FakeChain,
        signature: str,
        kind: ReadinessKind,
        reason: t.Optional[str],
    ) -> None:
        """Test simulation reverts are classified."""
        error = ValueError({"code": 3, "data": _error_selector(signature)})
        l1.respond(L1_NULLIFIER_ADDR, FINALIZE_SELECTOR, error)

        readiness = Bridge(client).withdrawals.finalization_readiness(
            {"to": L1_NULLIFIER_ADDR, "data": FINALIZE_SELECTOR}
        )

        assert readiness.kind == kind
        assert readiness.reason == reason


class TestInteropStatus:
    """Tests for interop status and waits."""

    def test_phases(self, client: BridgeClient, l2: FakeChain) -> None:
        """Test the source receipt decides the phase."""
        bridge = Bridge(client)
        assert bridge.interop.status(None).phase == InteropPhase.UNKNOWN
        assert bridge.interop.status(tx_hash(3)).phase == InteropPhase.PENDING

        l2.receipts[tx_hash(3)] = {"status": 1}
        assert bridge.interop.status(tx_hash(3)).phase == InteropPhase.SENT

        l2.receipts[tx_hash(3)] = {"status": 0}
        assert bridge.interop.status(tx_hash(3)).phase == InteropPhase.FAILED

    def test_wait(self, client: BridgeClient) -> None:
        """Test waiting returns the source receipt."""
        receipt = Bridge(client).interop.wait(tx_hash(3))

        assert receipt["transactionHash"] == tx_hash(3)


# ---------------------------------------------------------------------------
# Non-raising status
# ---------------------------------------------------------------------------


class TestTryStatus:
    """Tests for the non-raising status form of every resource."""

    @pytest.mark.parametrize("resource", ["deposits", "withdrawals", "interop"])
    def test_rpc_failure(
        self, client: BridgeClient, l1: FakeChain, l2: FakeChain, resource: str
    ) -> None:
        """Test a failing receipt lookup is returned as an RPC error result."""
        l1.receipt_error = ConnectionError("connection refused")
        l2.receipt_error = ConnectionError("connection refused")

        result = getattr(Bridge(client), resource).try_status(tx_hash(1))

        assert result.ok is False
        assert result.value is None
        assert isinstance(result.error, BridgeError)
        assert result.error.kind == ErrorKind.RPC
        assert result.error.envelope.context["txHash"] == tx_hash(1)

    def test_success(self, client: BridgeClient, l2: FakeChain) -> None:
        """Test a successful status is returned as the result value."""
        l2.receipts[tx_hash(3)] = {"status": 1}

        result = Bridge(client).interop.try_status(tx_hash(3))

        assert result.ok is True
        assert result.value is not None
        assert result.value.phase == InteropPhase.SENT
