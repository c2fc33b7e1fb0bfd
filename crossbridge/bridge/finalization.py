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

"""Withdrawal finalization on L1.

A withdrawal is finalized by proving its L2 to L1 message to the L1
nullifier. The proof becomes available once the batch holding the
withdrawal is committed, and `finalizeDeposit` only succeeds after that
batch is executed on L1.
"""

import logging
import typing as t
from dataclasses import dataclass, field

from aea.helpers.logging import setup_logger
from eth_abi import decode
from eth_utils import event_abi_to_log_topic

from crossbridge.abis import L1_MESSAGE_SENT_EVENT, L1_MESSAGE_SENT_LEGACY_EVENT
from crossbridge.bridge.operations import (
    DECODE_MESSAGE,
    FETCH_NETWORK,
    FETCH_PROOF,
    FETCH_RECEIPT,
    FIND_MESSAGE,
    IS_FINALIZED,
    MESSENGER_INDEX,
    SEND_FINALIZE,
    WAIT_FINALIZE,
    flow_op,
)
from crossbridge.bridge_types import (
    FinalizeDepositParams,
    FinalizeReadiness,
    ReadinessKind,
    WithdrawalKey,
)
from crossbridge.chain import ChainClient, read_contract
from crossbridge.client import BridgeClient
from crossbridge.constants import L1_MESSENGER_ADDRESS, L2_ASSET_ROUTER_ADDRESS
from crossbridge.errors import (
    BridgeError,
    ErrorHandlers,
    ErrorKind,
    ErrorResource,
    classify_readiness,
)
from crossbridge.utils import checksum, is_address_eq, to_bytes, to_hex_str, to_int
from crossbridge.utils.encoding import L1_NULLIFIER


ZKS_GET_L2_TO_L1_LOG_PROOF = "zks_getL2ToL1LogProof"
ETH_GET_TRANSACTION_RECEIPT = "eth_getTransactionReceipt"

L1_MESSAGE_SENT_TOPICS = tuple(
    to_hex_str(event_abi_to_log_topic(event))  # type: ignore
    for event in (L1_MESSAGE_SENT_EVENT, L1_MESSAGE_SENT_LEGACY_EVENT)
)

LOGGER = setup_logger(name="crossbridge.finalization")


@dataclass(frozen=True)
class LogProof:
    """Normalized `zks_getL2ToL1LogProof` response."""

    id: int
    batch_number: t.Optional[int] = None
    proof: t.List[str] = field(default_factory=list)
    root: t.Optional[str] = None


def normalize_proof(raw: t.Any) -> LogProof:
    """Normalize a log proof. Nodes that omit the batch number leave it unset."""
    handlers = ErrorHandlers(ErrorResource.ZKSRPC)
    operation = "zksrpc.normalizeProof"
    if not isinstance(raw, dict) or raw.get("id", raw.get("index")) is None:
        raise handlers.error(
            ErrorKind.RPC,
            operation,
            "Malformed proof: missing id.",
            context={"keys": sorted(raw) if isinstance(raw, dict) else []},
        )

    def _normalize() -> LogProof:
        batch_number = raw.get("batch_number", raw.get("batchNumber"))
        return LogProof(
            id=to_int(raw.get("id", raw.get("index"))),
            batch_number=None if batch_number is None else to_int(batch_number),
            proof=[to_hex_str(item) for item in raw.get("proof") or []],
            root=raw.get("root"),
        )

    return handlers.wrap_as(
        ErrorKind.RPC, operation, _normalize, message="Failed to normalize proof."
    )


def find_l1_message_sent_log(
    logs: t.Sequence[t.Dict], prefer: str = L1_MESSENGER_ADDRESS, index: int = 0
) -> t.Dict:
    """`L1MessageSent` log of an L2 receipt.

    The log emitted by `prefer` wins; otherwise the match at `index` (or the
    first match) is returned.
    """
    matches = [
        log
        for log in logs
        if log.get("topics")
        and to_hex_str(log["topics"][0]) in L1_MESSAGE_SENT_TOPICS
    ]
    if not matches:
        raise ValueError("No L1MessageSent event found in L2 receipt logs.")
    for log in matches:
        if is_address_eq(log.get("address"), prefer):
            return log
    return matches[index] if index < len(matches) else matches[0]


def messenger_log_index(
    receipt: t.Dict, messenger: str = L1_MESSENGER_ADDRESS, index: int = 0
) -> int:
    """Position of the messenger's entry in the receipt `l2ToL1Logs`."""
    hits = [
        position
        for position, log in enumerate(receipt.get("l2ToL1Logs") or [])
        if is_address_eq((log or {}).get("sender"), messenger)
    ]
    if not hits:
        raise ValueError("No L2 to L1 messenger logs found in receipt.")
    return hits[index] if index < len(hits) else hits[0]


def finalize_deposit_args(params: FinalizeDepositParams) -> t.Tuple:
    """`FinalizeL1DepositParams` struct of `finalizeDeposit`."""
    return (
        params.chain_id,
        params.l2_batch_number,
        params.l2_message_index,
        checksum(params.l2_sender),
        params.l2_tx_number_in_batch,
        to_bytes(params.message),
        [to_bytes(item) for item in params.merkle_proof],
    )


def simulate_finalization(
    chain: ChainClient, finalize_tx: t.Dict, logger: logging.Logger = LOGGER
) -> FinalizeReadiness:
    """Simulate a finalization call and classify the outcome."""
    try:
        chain.call(finalize_tx)
    except Exception as e:  # pylint: disable=broad-except
        readiness = classify_readiness(e)
        logger.debug(
            f"[FINALIZATION] Finalization not possible: {readiness.kind} ({readiness.reason})."
        )
        return readiness
    return FinalizeReadiness(kind=ReadinessKind.READY)


class FinalizationService:
    """Builds, checks and sends withdrawal finalizations on the L1 nullifier.

    Hashes of the finalization transactions sent through the service are
    remembered per L2 withdrawal hash, so a later wait can return the L1
    receipt.
    """

    def __init__(
        self, client: BridgeClient, logger: t.Optional[logging.Logger] = None
    ) -> None:
        """Initialize object."""
        self.client = client
        self.logger = logger or LOGGER
        self.handlers = ErrorHandlers(ErrorResource.WITHDRAWALS)
        self.finalize_hashes: t.Dict[str, str] = {}

    @staticmethod
    def _op(name: str) -> str:
        return flow_op(ErrorResource.WITHDRAWALS, name)

    def l2_receipt(self, l2_tx_hash: str) -> t.Dict:
        """Raw L2 receipt, including the L2 to L1 logs and batch fields."""
        receipt = self.handlers.wrap_as(
            ErrorKind.RPC,
            self._op(FETCH_RECEIPT),
            lambda: self.client.l2.rpc(ETH_GET_TRANSACTION_RECEIPT, [l2_tx_hash]),
            context={"where": ETH_GET_TRANSACTION_RECEIPT, "l2TxHash": l2_tx_hash},
            message="Failed to fetch L2 receipt (with L2 to L1 logs).",
        )
        if not receipt:
            raise self.handlers.error(
                ErrorKind.STATE,
                self._op(FETCH_RECEIPT),
                "L2 receipt not found.",
                context={"l2TxHash": l2_tx_hash},
            )
        return receipt

    def fetch_finalize_deposit_params(self, l2_tx_hash: str) -> FinalizeDepositParams:
        """Build the `finalizeDeposit` arguments of a withdrawal."""
        receipt = self.l2_receipt(l2_tx_hash)
        log = self.handlers.wrap(
            self._op(FIND_MESSAGE),
            lambda: find_l1_message_sent_log(receipt.get("logs") or []),
            context={"l2TxHash": l2_tx_hash},
            message="Failed to locate L1MessageSent event in L2 receipt.",
        )
        (message,) = self.handlers.wrap(
            self._op(DECODE_MESSAGE),
            lambda: decode(["bytes"], to_bytes(log["data"])),
            context={"l2TxHash": l2_tx_hash, "data": log.get("data")},
            message="Failed to decode withdrawal message.",
        )
        log_index = self.handlers.wrap(
            self._op(MESSENGER_INDEX),
            lambda: messenger_log_index(receipt),
            context={"l2TxHash": l2_tx_hash},
            message="Failed to derive messenger log index.",
        )

        context = {"l2TxHash": l2_tx_hash, "messengerLogIndex": str(log_index)}
        raw_proof = self.handlers.wrap_as(
            ErrorKind.RPC,
            self._op(FETCH_PROOF),
            lambda: self.client.l2.rpc(
                ZKS_GET_L2_TO_L1_LOG_PROOF, [l2_tx_hash, log_index]
            ),
            context=context,
            message="Failed to fetch L2 to L1 log proof.",
        )
        if raw_proof is None:
            raise self.handlers.error(
                ErrorKind.STATE,
                self._op(FETCH_PROOF),
                "L2 to L1 log proof is not available yet.",
                context=context,
            )
        proof = normalize_proof(raw_proof)

        batch_number = proof.batch_number
        if batch_number is None:
            if receipt.get("l1BatchNumber") is None:
                raise self.handlers.error(
                    ErrorKind.STATE,
                    self._op(FETCH_PROOF),
                    "The batch of the withdrawal is not known yet.",
                    context=context,
                )
            batch_number = to_int(receipt["l1BatchNumber"])

        tx_number = receipt.get("l1BatchTxIndex")
        if tx_number is None:
            tx_number = receipt.get("transactionIndex", 0)

        chain_id = self.handlers.wrap_as(
            ErrorKind.RPC,
            self._op(FETCH_NETWORK),
            lambda: self.client.l2.chain_id,
            context={"where": "l2.chainId"},
            message="Failed to read L2 network.",
        )
        params = FinalizeDepositParams(
            chain_id=chain_id,
            l2_batch_number=batch_number,
            l2_message_index=proof.id,
            l2_sender=L2_ASSET_ROUTER_ADDRESS,
            l2_tx_number_in_batch=to_int(tx_number),
            message=to_hex_str(message),
            merkle_proof=proof.proof,
        )
        self.logger.debug(
            f"[FINALIZATION] Params of {l2_tx_hash}: batch={batch_number} "
            f"index={proof.id} proof={len(proof.proof)} node(s)."
        )
        return params

    def is_withdrawal_finalized(self, key: WithdrawalKey) -> bool:
        """Read the nullifier's finalization flag of a withdrawal."""
        nullifier = self.client.ensure_addresses().l1_nullifier
        return bool(
            self.handlers.wrap_as(
                ErrorKind.RPC,
                self._op(IS_FINALIZED),
                lambda: read_contract(
                    self.client.l1,
                    nullifier,
                    L1_NULLIFIER,
                    "isWithdrawalFinalized",
                    key.chain_id_l2,
                    key.l2_batch_number,
                    key.l2_message_index,
                ),
                context={"where": "isWithdrawalFinalized", **key.json},
                message="Failed to read finalization status.",
            )
        )

    def finalize_tx(self, params: FinalizeDepositParams) -> t.Dict:
        """Unsigned `finalizeDeposit` transaction."""
        data = L1_NULLIFIER.encode("finalizeDeposit", finalize_deposit_args(params))
        tx = {"to": self.client.ensure_addresses().l1_nullifier, "data": data}
        if self.client.l1.sender is not None:
            tx["from"] = self.client.l1.sender
        return tx

    def readiness(self, params: FinalizeDepositParams) -> FinalizeReadiness:
        """Whether the withdrawal is finalized, or could be finalized right now."""
        try:
            if self.is_withdrawal_finalized(params.key):
                return FinalizeReadiness(kind=ReadinessKind.FINALIZED)
        except BridgeError as e:
            self.logger.debug(
                "[FINALIZATION] Finalized flag unavailable, simulating instead: "
                f"{e.envelope.message}"
            )
        tx = self.finalize_tx(params)
        return simulate_finalization(self.client.l1, tx, self.logger)

    def finalize_deposit(
        self, params: FinalizeDepositParams, l2_tx_hash: str
    ) -> t.Dict:
        """Send `finalizeDeposit` on L1 and wait for its receipt."""
        tx = self.finalize_tx(params)
        context = {
            "chainIdL2": str(params.chain_id),
            "l2BatchNumber": str(params.l2_batch_number),
            "l2MessageIndex": str(params.l2_message_index),
            "nullifier": tx["to"],
        }
        l1_tx_hash = self.handlers.wrap_as(
            ErrorKind.EXECUTION,
            self._op(SEND_FINALIZE),
            lambda: self.client.l1.send_transaction(tx),
            context=context,
            message="Failed to send finalizeDeposit transaction.",
        )
        self.finalize_hashes[l2_tx_hash] = l1_tx_hash
        self.logger.info(
            f"[FINALIZATION] Sent finalizeDeposit {l1_tx_hash} for withdrawal {l2_tx_hash}."
        )

        receipt = self.handlers.wrap_as(
            ErrorKind.EXECUTION,
            self._op(WAIT_FINALIZE),
            lambda: self.client.l1.wait_for_receipt(l1_tx_hash),
            context={"txHash": l1_tx_hash},
            message="Failed while waiting for finalizeDeposit transaction.",
        )
        if to_int(receipt.get("status", 0)) != 1:
            raise self.handlers.error(
                ErrorKind.EXECUTION,
                self._op(WAIT_FINALIZE),
                "finalizeDeposit transaction reverted.",
                context={"txHash": l1_tx_hash, **context},
            )
        return receipt
