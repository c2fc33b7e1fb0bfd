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

"""Types module."""

import enum
import typing as t
from dataclasses import dataclass, field

from crossbridge.resource import Resource


class DepositRoute(str, enum.Enum):
    """Deposit route."""

    ETH_BASE = "eth-base"
    ETH_NONBASE = "eth-nonbase"
    ERC20_BASE = "erc20-base"
    ERC20_NONBASE = "erc20-nonbase"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class WithdrawRoute(str, enum.Enum):
    """Withdrawal route."""

    ETH_BASE = "eth-base"
    ETH_NONBASE = "eth-nonbase"
    ERC20_NONBASE = "erc20-nonbase"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class InteropRoute(str, enum.Enum):
    """Interop route."""

    DIRECT = "direct"
    INDIRECT = "indirect"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class StepKind(str, enum.Enum):
    """Plan step kind."""

    APPROVE = "approve"
    BRIDGEHUB_DIRECT = "bridgehub:direct"
    BRIDGEHUB_TWO_BRIDGES = "bridgehub:two-bridges"
    L2_BASE_TOKEN_WITHDRAW = "l2-base-token:withdraw"
    L2_ASSET_ROUTER_WITHDRAW = "l2-asset-router:withdraw"
    INTEROP_SEND_BUNDLE = "interop-center:send-bundle"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class HandleKind(str, enum.Enum):
    """Handle kind."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INTEROP = "interop"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class DepositPhase(str, enum.Enum):
    """Deposit phase."""

    UNKNOWN = "UNKNOWN"
    L1_PENDING = "L1_PENDING"
    L1_INCLUDED = "L1_INCLUDED"
    L2_PENDING = "L2_PENDING"
    L2_EXECUTED = "L2_EXECUTED"
    L2_FAILED = "L2_FAILED"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class WithdrawalPhase(str, enum.Enum):
    """Withdrawal phase."""

    UNKNOWN = "UNKNOWN"
    L2_PENDING = "L2_PENDING"
    PENDING = "PENDING"
    READY_TO_FINALIZE = "READY_TO_FINALIZE"
    FINALIZED = "FINALIZED"
    L2_FAILED = "L2_FAILED"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class InteropPhase(str, enum.Enum):
    """Interop phase (source chain)."""

    UNKNOWN = "UNKNOWN"
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class ReadinessKind(str, enum.Enum):
    """Withdrawal finalization readiness."""

    READY = "READY"
    FINALIZED = "FINALIZED"
    NOT_READY = "NOT_READY"
    UNFINALIZABLE = "UNFINALIZABLE"

    def __str__(self) -> str:
        """__str__"""
        return self.value


class InteropActionKind(str, enum.Enum):
    """Interop action kind."""

    SEND_NATIVE = "sendNative"
    SEND_ERC20 = "sendErc20"
    CALL = "call"

    def __str__(self) -> str:
        """__str__"""
        return self.value


@dataclass(frozen=True)
class TxOverrides(Resource):
    """Caller supplied transaction overrides."""

    gas_limit: t.Optional[int] = None
    max_fee_per_gas: t.Optional[int] = None
    max_priority_fee_per_gas: t.Optional[int] = None
    nonce: t.Optional[int] = None


@dataclass(frozen=True)
class DepositParams(Resource):
    """DepositParams"""

    token: str
    amount: int
    to: t.Optional[str] = None
    refund_recipient: t.Optional[str] = None
    operator_tip: t.Optional[int] = None
    l2_gas_limit: t.Optional[int] = None
    gas_per_pubdata: t.Optional[int] = None
    l1_tx_overrides: t.Optional[TxOverrides] = None


@dataclass(frozen=True)
class WithdrawParams(Resource):
    """WithdrawParams"""

    token: str
    amount: int
    to: t.Optional[str] = None
    l2_tx_overrides: t.Optional[TxOverrides] = None


@dataclass(frozen=True)
class InteropAction(Resource):
    """A single action of an interop bundle."""

    kind: InteropActionKind
    to: str
    amount: int = 0
    token: t.Optional[str] = None
    data: str = "0x"
    value: int = 0


@dataclass(frozen=True)
class InteropParams(Resource):
    """InteropParams"""

    dst_chain_id: int
    actions: t.List[InteropAction]
    execution_only: t.Optional[str] = None
    unbundler: t.Optional[str] = None
    tx_overrides: t.Optional[TxOverrides] = None


@dataclass(frozen=True)
class ResolvedAddresses(Resource):
    """System contract addresses used by the bridge."""

    bridgehub: str
    l1_asset_router: str
    l1_nullifier: str
    l1_native_token_vault: str
    l2_asset_router: str
    l2_native_token_vault: str
    l2_base_token: str
    interop_center: t.Optional[str] = None


@dataclass(frozen=True)
class ApprovalNeed(Resource):
    """ApprovalNeed"""

    token: str
    spender: str
    amount: int


@dataclass
class PlanStep(Resource):
    """PlanStep"""

    key: str
    kind: StepKind
    description: str
    tx: t.Dict


@dataclass(frozen=True)
class GasQuote(Resource):
    """GasQuote"""

    gas_limit: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int = 0
    gas_per_pubdata: t.Optional[int] = None

    @property
    def max_cost(self) -> int:
        """Upper bound of the gas cost."""
        return self.gas_limit * self.max_fee_per_gas


@dataclass(frozen=True)
class L1FeeComponent(Resource):
    """L1 fee component."""

    gas_limit: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    max_total: int


@dataclass(frozen=True)
class L2FeeComponent(Resource):
    """L2 fee component."""

    total: int
    base_cost: int
    operator_tip: int
    gas_limit: int
    max_fee_per_gas: int
    gas_per_pubdata: t.Optional[int]


@dataclass(frozen=True)
class FeeBreakdown(Resource):
    """FeeBreakdown"""

    token: str
    max_total: int
    mint_value: t.Optional[int]
    l1: t.Optional[L1FeeComponent]
    l2: t.Optional[L2FeeComponent]


@dataclass
class Quote(Resource):
    """Plan summary."""

    route: str
    token: str
    amount: int
    approvals: t.List[ApprovalNeed] = field(default_factory=list)
    base_cost: t.Optional[int] = None
    mint_value: t.Optional[int] = None
    fees: t.Optional[FeeBreakdown] = None
    extras: t.Dict = field(default_factory=dict)


@dataclass
class Plan(Resource):
    """Plan"""

    route: str
    summary: Quote
    steps: t.List[PlanStep]

    @property
    def approvals(self) -> t.List[ApprovalNeed]:
        """Approvals required by the plan."""
        return self.summary.approvals


@dataclass(frozen=True)
class Handle(Resource):
    """Handle of an executed plan."""

    kind: HandleKind
    tx_hash: str
    step_hashes: t.Dict[str, str]
    plan: Plan


@dataclass(frozen=True)
class DepositStatus(Resource):
    """DepositStatus"""

    phase: DepositPhase
    l1_tx_hash: t.Optional[str] = None
    l2_tx_hash: t.Optional[str] = None


@dataclass(frozen=True)
class WithdrawalKey(Resource):
    """Identifies a withdrawal message in the L1 nullifier."""

    chain_id_l2: int
    l2_batch_number: int
    l2_message_index: int


@dataclass(frozen=True)
class WithdrawalStatus(Resource):
    """WithdrawalStatus"""

    phase: WithdrawalPhase
    l2_tx_hash: t.Optional[str] = None
    key: t.Optional[WithdrawalKey] = None


@dataclass(frozen=True)
class FinalizeDepositParams(Resource):
    """Arguments of `finalizeDeposit` on the L1 nullifier."""

    chain_id: int
    l2_batch_number: int
    l2_message_index: int
    l2_sender: str
    l2_tx_number_in_batch: int
    message: str
    merkle_proof: t.List[str] = field(default_factory=list)

    @property
    def key(self) -> WithdrawalKey:
        """Nullifier key of the withdrawal."""
        return WithdrawalKey(
            chain_id_l2=self.chain_id,
            l2_batch_number=self.l2_batch_number,
            l2_message_index=self.l2_message_index,
        )


@dataclass(frozen=True)
class FinalizeResult(Resource):
    """Outcome of a finalization: the refreshed status and the L1 receipt, if sent."""

    status: WithdrawalStatus
    receipt: t.Optional[t.Dict] = None


@dataclass(frozen=True)
class InteropStatus(Resource):
    """InteropStatus"""

    phase: InteropPhase
    tx_hash: t.Optional[str] = None


@dataclass(frozen=True)
class FinalizeReadiness(Resource):
    """FinalizeReadiness"""

    kind: ReadinessKind
    reason: t.Optional[str] = None
    detail: t.Optional[str] = None
