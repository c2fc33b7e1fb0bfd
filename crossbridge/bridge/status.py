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

"""Cross-chain status tracking.

Statuses are recomputed from chain data on every query; nothing is cached.
A deposit is followed on L1 first, then on L2 through the canonical L2
transaction hash announced in the L1 receipt logs. A withdrawal is followed
on L2, then through its L2 to L1 log proof and the L1 nullifier.
"""

import logging
import time
import typing as t

from aea.helpers.logging import setup_logger
from eth_abi import decode
from eth_utils import event_abi_to_log_topic

from crossbridge.abis import NEW_PRIORITY_REQUEST_EVENT
from crossbridge.bridge.finalization import FinalizationService, simulate_finalization
from crossbridge.bridge.operations import READINESS, STATUS, WAIT, flow_op
from crossbridge.bridge_types import (
    DepositPhase,
    DepositStatus,
    FinalizeReadiness,
    Handle,
    InteropPhase,
    InteropStatus,
    ReadinessKind,
    WithdrawalPhase,
    WithdrawalStatus,
)
from crossbridge.chain import ChainClient
from crossbridge.client import BridgeClient
from crossbridge.constants import (
    FINALIZATION_POLL_INTERVAL,
    TOPIC_CANONICAL_ASSIGNED,
    TOPIC_CANONICAL_SUCCESS,
)
from crossbridge.errors import (
    BridgeError,
    ErrorHandlers,
    ErrorKind,
    ErrorResource,
    is_receipt_not_found,
)
from crossbridge.utils import is_hash66, to_bytes, to_hex_str


HandleLike = t.Union[Handle, str, None]

NEW_PRIORITY_REQUEST_TOPIC = to_hex_str(
    event_abi_to_log_topic(NEW_PRIORITY_REQUEST_EVENT)  # type: ignore
)
NEW_PRIORITY_REQUEST_DATA_TYPES = ["bytes32", "uint256", "bytes"]

WITHDRAWAL_WAIT_TARGETS = ("l2", "ready", "finalized")
READINESS_TO_PHASE = {
    ReadinessKind.READY: WithdrawalPhase.READY_TO_FINALIZE,
    ReadinessKind.FINALIZED: WithdrawalPhase.FINALIZED,
}

LOGGER = setup_logger(name="crossbridge.status")


def origin_hash(handle: HandleLike) -> t.Optional[str]:
    """Origin transaction hash of a handle (or of a bare hash)."""
    if handle is None:
        return None
    if isinstance(handle, Handle):
        return handle.tx_hash or None
    return handle or None


def _topics(log: t.Dict) -> t.List[str]:
    return [to_hex_str(topic) for topic in log.get("topics") or []]


def _decode_new_priority_request(log: t.Dict) -> t.Optional[str]:
    topics = _topics(log)
    if not topics or topics[0] != NEW_PRIORITY_REQUEST_TOPIC:
        return None
    try:
        tx_hash, _, _ = decode(NEW_PRIORITY_REQUEST_DATA_TYPES, to_bytes(log["data"]))
    except Exception:  # pylint: disable=broad-except
        return None
    return to_hex_str(tx_hash)


def extract_l2_tx_hash_from_l1_logs(logs: t.Sequence[t.Dict]) -> t.Optional[str]:
    """Canonical L2 transaction hash announced in L1 receipt logs.

    `NewPriorityRequest` events are tried first, then the legacy canonical
    transaction topics. Only 32 byte hashes are accepted.
    """
    for log in logs:
        tx_hash = _decode_new_priority_request(log)
        if is_hash66(tx_hash):
            return tx_hash

    for log in logs:
        topics = _topics(log)
        if not topics:
            continue
        if topics[0] == TOPIC_CANONICAL_ASSIGNED and len(topics) > 2:
            if is_hash66(topics[2]):
                return topics[2]
        if topics[0] == TOPIC_CANONICAL_SUCCESS and len(topics) > 3:
            if is_hash66(topics[3]):
                return topics[3]
    return None


class StatusTracker:
    """Status queries and blocking waits for handles of every flow."""

    def __init__(
        self, client: BridgeClient, logger: t.Optional[logging.Logger] = None
    ) -> None:
        """Initialize object."""
        self.client = client
        self.logger = logger or LOGGER
        self.finalization = FinalizationService(client, logger=self.logger)

    @staticmethod
    def _receipt(
        chain: ChainClient,
        tx_hash: str,
        handlers: ErrorHandlers,
        operation: str,
        where: str,
    ) -> t.Optional[t.Dict]:
        """Receipt of a transaction, None while it is not found."""
        try:
            return chain.get_transaction_receipt(tx_hash)
        except Exception as e:  # pylint: disable=broad-except
            if is_receipt_not_found(e):
                return None
            raise handlers.to_error(
                ErrorKind.RPC,
                operation,
                e,
                context={"where": where, "txHash": tx_hash},
                message="Failed to fetch the transaction receipt.",
            ) from e

    @staticmethod
    def _wait_receipt(
        chain: ChainClient,
        tx_hash: str,
        handlers: ErrorHandlers,
        operation: str,
        kind: ErrorKind,
        where: str,
        timeout: t.Optional[float] = None,
    ) -> t.Dict:
        return handlers.wrap_as(
            kind,
            operation,
            lambda: chain.wait_for_receipt(tx_hash, timeout=timeout),
            context={"where": where, "txHash": tx_hash},
            message="Failed while waiting for the transaction receipt.",
        )

    @staticmethod
    def _require_hash(
        handle: HandleLike, handlers: ErrorHandlers, operation: str
    ) -> str:
        tx_hash = origin_hash(handle)
        if tx_hash is None:
            raise handlers.error(
                ErrorKind.STATE,
                operation,
                "The handle has no transaction hash to wait for.",
            )
        return tx_hash

    def deposit_status(self, handle: HandleLike) -> DepositStatus:
        """Current phase of a deposit."""
        handlers = ErrorHandlers(ErrorResource.DEPOSITS)
        operation = flow_op(ErrorResource.DEPOSITS, STATUS)
        l1_tx_hash = origin_hash(handle)
        if l1_tx_hash is None:
            return DepositStatus(phase=DepositPhase.UNKNOWN)

        l1_receipt = self._receipt(
            self.client.l1, l1_tx_hash, handlers, operation, "l1.getTransactionReceipt"
        )
        if l1_receipt is None:
            return DepositStatus(phase=DepositPhase.L1_PENDING, l1_tx_hash=l1_tx_hash)

        l2_tx_hash = extract_l2_tx_hash_from_l1_logs(l1_receipt.get("logs") or [])
        if l2_tx_hash is None:
            return DepositStatus(phase=DepositPhase.L1_INCLUDED, l1_tx_hash=l1_tx_hash)

        l2_receipt = self._receipt(
            self.client.l2, l2_tx_hash, handlers, operation, "l2.getTransactionReceipt"
        )
        if l2_receipt is None:
            phase = DepositPhase.L2_PENDING
        elif int(l2_receipt.get("status", 0)) == 1:
            phase = DepositPhase.L2_EXECUTED
        else:
            phase = DepositPhase.L2_FAILED

        self.logger.debug(f"[STATUS] Deposit {l1_tx_hash}: {phase}.")
        return DepositStatus(phase=phase, l1_tx_hash=l1_tx_hash, l2_tx_hash=l2_tx_hash)

    def wait_deposit(
        self,
        handle: HandleLike,
        for_: str = "l2",
        timeout: t.Optional[float] = None,
    ) -> t.Dict:
        """Block until the deposit is included on L1 (`l1`) or executed on L2 (`l2`)."""
        handlers = ErrorHandlers(ErrorResource.DEPOSITS)
        operation = flow_op(ErrorResource.DEPOSITS, WAIT)
        if for_ not in ("l1", "l2"):
            raise handlers.error(
                ErrorKind.VALIDATION,
                operation,
                f"Unknown wait target {for_!r}, expected 'l1' or 'l2'.",
            )
        l1_tx_hash = self._require_hash(handle, handlers, operation)

        l1_receipt = self._wait_receipt(
            self.client.l1,
            l1_tx_hash,
            handlers,
            operation,
            ErrorKind.RPC,
            "l1.waitForTransactionReceipt",
            timeout,
        )
        if for_ == "l1":
            return l1_receipt

        logs = l1_receipt.get("logs") or []
        l2_tx_hash = extract_l2_tx_hash_from_l1_logs(logs)
        if l2_tx_hash is None:
            raise handlers.error(
                ErrorKind.VERIFICATION,
                operation,
                "Failed to extract the L2 transaction hash from L1 logs.",
                context={"l1TxHash": l1_tx_hash, "logCount": str(len(logs))},
            )

        self.logger.info(f"[STATUS] Waiting for L2 execution of {l2_tx_hash}.")
        l2_receipt = self._wait_receipt(
            self.client.l2,
            l2_tx_hash,
            handlers,
            operation,
            ErrorKind.VERIFICATION,
            "l2.waitForTransactionReceipt",
            timeout,
        )
        if int(l2_receipt.get("status", 0)) != 1:
            raise handlers.error(
                ErrorKind.VERIFICATION,
                operation,
                "L2 transaction execution failed.",
                context={
                    "l1TxHash": l1_tx_hash,
                    "l2TxHash": l2_tx_hash,
                    "status": str(l2_receipt.get("status")),
                },
            )
        return l2_receipt

    def withdrawal_status(self, handle: HandleLike) -> WithdrawalStatus:
        """Current phase of a withdrawal, from L2 inclusion to L1 finalization."""
        handlers = ErrorHandlers(ErrorResource.WITHDRAWALS)
        l2_tx_hash = origin_hash(handle)
        if l2_tx_hash is None:
            return WithdrawalStatus(phase=WithdrawalPhase.UNKNOWN)

        receipt = self._receipt(
            self.client.l2,
            l2_tx_hash,
            handlers,
            flow_op(ErrorResource.WITHDRAWALS, STATUS),
            "l2.getTransactionReceipt",
        )
        if receipt is None:
            return WithdrawalStatus(WithdrawalPhase.L2_PENDING, l2_tx_hash=l2_tx_hash)
        if int(receipt.get("status", 0)) != 1:
            return WithdrawalStatus(WithdrawalPhase.L2_FAILED, l2_tx_hash=l2_tx_hash)

        try:
            params = self.finalization.fetch_finalize_deposit_params(l2_tx_hash)
        except BridgeError as e:
            if e.kind == ErrorKind.RPC:
                raise
            self.logger.debug(
                f"[STATUS] Withdrawal {l2_tx_hash} not provable yet: {e.envelope.message}"
            )
            return WithdrawalStatus(WithdrawalPhase.PENDING, l2_tx_hash=l2_tx_hash)

        readiness = self.finalization.readiness(params)
        phase = READINESS_TO_PHASE.get(readiness.kind, WithdrawalPhase.PENDING)
        self.logger.debug(f"[STATUS] Withdrawal {l2_tx_hash}: {phase}.")
        return WithdrawalStatus(phase=phase, l2_tx_hash=l2_tx_hash, key=params.key)

    def _wait_withdrawal_l2(
        self, handle: HandleLike, timeout: t.Optional[float] = None
    ) -> t.Dict:
        handlers = ErrorHandlers(ErrorResource.WITHDRAWALS)
        operation = flow_op(ErrorResource.WITHDRAWALS, WAIT)
        l2_tx_hash = self._require_hash(handle, handlers, operation)
        receipt = self._wait_receipt(
            self.client.l2,
            l2_tx_hash,
            handlers,
            operation,
            ErrorKind.RPC,
            "l2.waitForTransactionReceipt",
            timeout,
        )
        if int(receipt.get("status", 0)) != 1:
            raise handlers.error(
                ErrorKind.VERIFICATION,
                operation,
                "L2 withdrawal transaction failed.",
                context={"l2TxHash": l2_tx_hash, "status": str(receipt.get("status"))},
            )
        return receipt

    def wait_withdrawal(
        self,
        handle: HandleLike,
        for_: str = "l2",
        timeout: t.Optional[float] = None,
        poll_interval: t.Optional[float] = None,
    ) -> t.Optional[t.Dict]:
        """Block until the withdrawal reaches a phase.

        `l2` waits for L2 inclusion and returns the L2 receipt. `ready`
        polls until the withdrawal can be finalized (or already is) and
        returns None. `finalized` polls until the nullifier reports the
        withdrawal finalized and returns the L1 receipt when the
        finalization was sent through this tracker, None otherwise.
        """
        handlers = ErrorHandlers(ErrorResource.WITHDRAWALS)
        operation = flow_op(ErrorResource.WITHDRAWALS, WAIT)
        if for_ not in WITHDRAWAL_WAIT_TARGETS:
            raise handlers.error(
                ErrorKind.VALIDATION,
                operation,
                f"Unknown wait target {for_!r}, expected 'l2', 'ready' or 'finalized'.",
            )
        if for_ == "l2":
            return self._wait_withdrawal_l2(handle, timeout=timeout)

        l2_tx_hash = self._require_hash(handle, handlers, operation)
        targets = (
            (WithdrawalPhase.READY_TO_FINALIZE, WithdrawalPhase.FINALIZED)
            if for_ == "ready"
            else (WithdrawalPhase.FINALIZED,)
        )
        interval = (
            FINALIZATION_POLL_INTERVAL if poll_interval is None else poll_interval
        )
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            status = self.withdrawal_status(l2_tx_hash)
            if status.phase == WithdrawalPhase.L2_FAILED:
                raise handlers.error(
                    ErrorKind.VERIFICATION,
                    operation,
                    "L2 withdrawal transaction failed.",
                    context={"l2TxHash": l2_tx_hash},
                )
            if status.phase in targets:
                break
            if deadline is not None and time.monotonic() >= deadline:
                raise handlers.error(
                    ErrorKind.TIMEOUT,
                    operation,
                    f"Timed out waiting for the withdrawal to reach {for_!r}.",
                    context={"l2TxHash": l2_tx_hash, "phase": str(status.phase)},
                )
            self.logger.debug(
                f"[STATUS] Withdrawal {l2_tx_hash} is {status.phase}, waiting for {for_}."
            )
            time.sleep(interval)

        if for_ == "ready":
            return None
        return self._finalize_receipt(l2_tx_hash, handlers, operation)

    def _finalize_receipt(
        self, l2_tx_hash: str, handlers: ErrorHandlers, operation: str
    ) -> t.Optional[t.Dict]:
        l1_tx_hash = self.finalization.finalize_hashes.get(l2_tx_hash)
        if l1_tx_hash is None:
            return None
        receipt = self._receipt(
            self.client.l1, l1_tx_hash, handlers, operation, "l1.getTransactionReceipt"
        )
        if receipt is not None:
            self.finalization.finalize_hashes.pop(l2_tx_hash, None)
        return receipt

    def finalization_readiness(
        self, target: t.Union[t.Dict, HandleLike]
    ) -> FinalizeReadiness:
        """Whether a withdrawal can be finalized right now.

        `target` is either a prepared finalization transaction, which is
        simulated as is, or a withdrawal handle/hash whose finalization
        arguments are fetched from L2 first.
        """
        if isinstance(target, dict):
            return simulate_finalization(self.client.l1, target, self.logger)

        handlers = ErrorHandlers(ErrorResource.WITHDRAWAL_FINALIZATION)
        operation = flow_op(ErrorResource.WITHDRAWAL_FINALIZATION, READINESS)
        l2_tx_hash = self._require_hash(target, handlers, operation)
        params = self.finalization.fetch_finalize_deposit_params(l2_tx_hash)
        return self.finalization.readiness(params)

    def interop_status(self, handle: HandleLike) -> InteropStatus:
        """Phase of an interop bundle on the source chain."""
        handlers = ErrorHandlers(ErrorResource.INTEROP)
        tx_hash = origin_hash(handle)
        if tx_hash is None:
            return InteropStatus(phase=InteropPhase.UNKNOWN)

        receipt = self._receipt(
            self.client.l2,
            tx_hash,
            handlers,
            flow_op(ErrorResource.INTEROP, STATUS),
            "l2.getTransactionReceipt",
        )
        if receipt is None:
            phase = InteropPhase.PENDING
        elif int(receipt.get("status", 0)) == 1:
            phase = InteropPhase.SENT
        else:
            phase = InteropPhase.FAILED
        return InteropStatus(phase=phase, tx_hash=tx_hash)

    def wait_interop(
        self, handle: HandleLike, timeout: t.Optional[float] = None
    ) -> t.Dict:
        """Block until the bundle is sent on the source chain."""
        handlers = ErrorHandlers(ErrorResource.INTEROP)
        operation = flow_op(ErrorResource.INTEROP, WAIT)
        tx_hash = self._require_hash(handle, handlers, operation)
        receipt = self._wait_receipt(
            self.client.l2,
            tx_hash,
            handlers,
            operation,
            ErrorKind.RPC,
            "l2.waitForTransactionReceipt",
            timeout,
        )
        if int(receipt.get("status", 0)) != 1:
            raise handlers.error(
                ErrorKind.VERIFICATION,
                operation,
                "Interop bundle transaction failed.",
                context={"txHash": tx_hash, "status": str(receipt.get("status"))},
            )
        return receipt
