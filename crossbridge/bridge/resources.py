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

"""Deposit, withdrawal and interop resources.

Every operation has a raising form and a `try_*` form that returns a
`Result` carrying the same structured error instead of raising.

Expected usage:
    bridge = Bridge(make_bridge_client(crypto))

    quote = bridge.deposits.quote(DepositParams(token=ETH_ADDRESS, amount=10**16))
    handle = bridge.deposits.create(DepositParams(token=ETH_ADDRESS, amount=10**16))
    bridge.deposits.wait(handle, for_="l2")

    handle = bridge.withdrawals.create(WithdrawParams(token=ETH_ADDRESS, amount=10**16))
    bridge.withdrawals.wait(handle, for_="ready")
    bridge.withdrawals.finalize(handle)
"""

import logging
import typing as t
from abc import ABC, abstractmethod

from aea.helpers.logging import setup_logger

from crossbridge.bridge.base import RouteStrategy
from crossbridge.bridge.context import (
    build_deposit_context,
    build_interop_context,
    build_withdraw_context,
)
from crossbridge.bridge.deposits import DEPOSIT_ROUTES
from crossbridge.bridge.execution import ExecutionEngine
from crossbridge.bridge.interop import INTEROP_ROUTES
from crossbridge.bridge.operations import (
    CREATE,
    FINALIZE,
    PREPARE,
    QUOTE,
    READINESS,
    SIMULATE,
    STATUS,
    TRY_CREATE,
    TRY_FINALIZE,
    TRY_PREPARE,
    TRY_QUOTE,
    TRY_READINESS,
    TRY_STATUS,
    TRY_WAIT,
    WAIT,
    flow_op,
)
from crossbridge.bridge.route import sum_action_msg_value
from crossbridge.bridge.status import HandleLike, StatusTracker, origin_hash
from crossbridge.bridge.withdrawals import WITHDRAW_ROUTES
from crossbridge.bridge_types import (
    DepositParams,
    DepositStatus,
    FinalizeReadiness,
    FinalizeResult,
    Handle,
    HandleKind,
    InteropParams,
    InteropStatus,
    Plan,
    Quote,
    ReadinessKind,
    TxOverrides,
    WithdrawalPhase,
    WithdrawalStatus,
    WithdrawParams,
)
from crossbridge.chain import ChainClient
from crossbridge.client import BridgeClient
from crossbridge.errors import (
    BridgeError,
    ErrorHandlers,
    ErrorKind,
    ErrorResource,
    Result,
)


P = t.TypeVar("P")


class FlowResource(ABC, t.Generic[P]):
    """Quote, prepare and execute plans of one flow."""

    resource: ErrorResource
    handle_kind: HandleKind
    routes: t.Mapping[t.Any, t.Type[RouteStrategy]]

    def __init__(
        self,
        client: BridgeClient,
        logger: t.Optional[logging.Logger] = None,
        tracker: t.Optional[StatusTracker] = None,
    ) -> None:
        """Initialize object."""
        self.client = client
        self.logger = logger or setup_logger(name=f"crossbridge.{self.resource}")
        self.handlers = ErrorHandlers(self.resource)
        self.tracker = tracker or StatusTracker(client, logger=self.logger)

    @property
    def tag(self) -> str:
        """Log tag of the resource."""
        return f"[{str(self.resource).upper()}]"

    @abstractmethod
    def context(self, params: P) -> t.Any:
        """Resolve the build context of a call."""
        raise NotImplementedError()

    @abstractmethod
    def chain(self) -> ChainClient:
        """Chain the plan transactions are sent on."""
        raise NotImplementedError()

    @abstractmethod
    def overrides(self, params: P) -> t.Optional[TxOverrides]:
        """Caller transaction overrides."""
        raise NotImplementedError()

    @abstractmethod
    def describe(self, params: P) -> t.Dict[str, t.Any]:
        """Error context describing the parameters."""
        raise NotImplementedError()

    @abstractmethod
    def summary_asset(self, params: P, ctx: t.Any) -> t.Tuple[str, int]:
        """Token and amount reported in the quote."""
        raise NotImplementedError()

    @abstractmethod
    def status(self, handle: HandleLike) -> t.Any:
        """Current phase of the operation."""
        raise NotImplementedError()

    @abstractmethod
    def wait(
        self, handle: HandleLike, timeout: t.Optional[float] = None
    ) -> t.Optional[t.Dict]:
        """Block until the operation reaches its next awaited phase."""
        raise NotImplementedError()

    def _build_plan(self, params: P) -> Plan:
        ctx = self.context(params)
        strategy = self.routes[ctx.route](logger=self.logger)
        strategy.preflight(params, ctx)
        build = strategy.build(params, ctx)

        token, amount = self.summary_asset(params, ctx)
        summary = Quote(
            route=str(ctx.route),
            token=token,
            amount=amount,
            approvals=build.approvals,
            base_cost=build.base_cost,
            mint_value=build.mint_value,
            fees=build.fees,
            extras=build.extras,
        )
        self.logger.info(
            f"{self.tag} Built {ctx.route} plan: {len(build.steps)} step(s), "
            f"{len(build.approvals)} approval(s)."
        )
        return Plan(route=str(ctx.route), summary=summary, steps=build.steps)

    def quote(self, params: P) -> Quote:
        """Quote the operation without building transactions for execution."""
        return self.handlers.wrap(
            flow_op(self.resource, QUOTE),
            lambda: self._build_plan(params).summary,
            context=self.describe(params),
            message=f"Internal error while quoting {self.resource}.",
        )

    def try_quote(self, params: P) -> Result[Quote]:
        """Non-raising form of `quote`."""
        return self.handlers.to_result(
            flow_op(self.resource, TRY_QUOTE),
            lambda: self.quote(params),
            context=self.describe(params),
        )

    def prepare(self, params: P) -> Plan:
        """Build the plan of the operation."""
        return self.handlers.wrap(
            flow_op(self.resource, PREPARE),
            lambda: self._build_plan(params),
            context=self.describe(params),
            message=f"Internal error while preparing {self.resource}.",
        )

    def try_prepare(self, params: P) -> Result[Plan]:
        """Non-raising form of `prepare`."""
        return self.handlers.to_result(
            flow_op(self.resource, TRY_PREPARE),
            lambda: self.prepare(params),
            context=self.describe(params),
        )

    def _create(self, params: P) -> Handle:
        plan = self.prepare(params)
        engine = ExecutionEngine(self.chain(), self.resource, logger=self.logger)
        return engine.execute(
            plan,
            sender=self.client.sender,
            kind=self.handle_kind,
            overrides=self.overrides(params),
        )

    def create(self, params: P) -> Handle:
        """Build and execute the plan of the operation."""
        return self.handlers.wrap(
            flow_op(self.resource, CREATE),
            lambda: self._create(params),
            context=self.describe(params),
            message=f"Internal error while creating {self.resource}.",
        )

    def try_create(self, params: P) -> Result[Handle]:
        """Non-raising form of `create`."""
        return self.handlers.to_result(
            flow_op(self.resource, TRY_CREATE),
            lambda: self.create(params),
            context=self.describe(params),
        )

    def try_status(self, handle: HandleLike) -> Result[t.Any]:
        """Non-raising form of `status`."""
        return self.handlers.to_result(
            flow_op(self.resource, TRY_STATUS),
            lambda: self.status(handle),
        )

    def try_wait(
        self, handle: HandleLike, **kwargs: t.Any
    ) -> Result[t.Optional[t.Dict]]:
        """Non-raising form of `wait`."""
        return self.handlers.to_result(
            flow_op(self.resource, TRY_WAIT),
            lambda: self.wait(handle, **kwargs),
        )


class DepositsResource(FlowResource[DepositParams]):
    """L1 to L2 deposits."""

    resource = ErrorResource.DEPOSITS
    handle_kind = HandleKind.DEPOSIT
    routes = DEPOSIT_ROUTES

    def context(self, params: DepositParams) -> t.Any:
        """Resolve the build context of a call."""
        return build_deposit_context(self.client, params)

    def chain(self) -> ChainClient:
        """Chain the plan transactions are sent on."""
        return self.client.l1

    def overrides(self, params: DepositParams) -> t.Optional[TxOverrides]:
        """Caller transaction overrides."""
        return params.l1_tx_overrides

    def describe(self, params: DepositParams) -> t.Dict[str, t.Any]:
        """Error context describing the parameters."""
        return {"token": params.token, "amount": str(params.amount), "to": params.to}

    def summary_asset(self, params: DepositParams, ctx: t.Any) -> t.Tuple[str, int]:
        """Token and amount reported in the quote."""
        return params.token, params.amount

    def status(self, handle: HandleLike) -> DepositStatus:
        """Current phase of a deposit."""
        return self.handlers.wrap(
            flow_op(self.resource, STATUS),
            lambda: self.tracker.deposit_status(handle),
            message="Internal error while checking deposit status.",
        )

    def wait(
        self, handle: HandleLike, timeout: t.Optional[float] = None, for_: str = "l2"
    ) -> t.Dict:
        """Block until the deposit reaches L1 inclusion or L2 execution."""
        return self.handlers.wrap(
            flow_op(self.resource, WAIT),
            lambda: self.tracker.wait_deposit(handle, for_=for_, timeout=timeout),
            context={"for": for_},
            message="Internal error while waiting for deposit.",
        )


class WithdrawalsResource(FlowResource[WithdrawParams]):
    """L2 to L1 withdrawals, from the L2 send to the L1 finalization."""

    resource = ErrorResource.WITHDRAWALS
    handle_kind = HandleKind.WITHDRAWAL
    routes = WITHDRAW_ROUTES

    def __init__(
        self,
        client: BridgeClient,
        logger: t.Optional[logging.Logger] = None,
        tracker: t.Optional[StatusTracker] = None,
    ) -> None:
        """Initialize object."""
        super().__init__(client, logger=logger, tracker=tracker)
        self.finalization_handlers = ErrorHandlers(
            ErrorResource.WITHDRAWAL_FINALIZATION
        )

    def context(self, params: WithdrawParams) -> t.Any:
        """Resolve the build context of a call."""
        return build_withdraw_context(self.client, params)

    def chain(self) -> ChainClient:
        """Chain the plan transactions are sent on."""
        return self.client.l2

    def overrides(self, params: WithdrawParams) -> t.Optional[TxOverrides]:
        """Caller transaction overrides."""
        return params.l2_tx_overrides

    def describe(self, params: WithdrawParams) -> t.Dict[str, t.Any]:
        """Error context describing the parameters."""
        return {"token": params.token, "amount": str(params.amount), "to": params.to}

    def summary_asset(self, params: WithdrawParams, ctx: t.Any) -> t.Tuple[str, int]:
        """Token and amount reported in the quote."""
        return ctx.token, params.amount

    def status(self, handle: HandleLike) -> WithdrawalStatus:
        """Current phase of a withdrawal."""
        return self.handlers.wrap(
            flow_op(self.resource, STATUS),
            lambda: self.tracker.withdrawal_status(handle),
            message="Internal error while checking withdrawal status.",
        )

    def wait(
        self,
        handle: HandleLike,
        timeout: t.Optional[float] = None,
        for_: str = "l2",
        poll_interval: t.Optional[float] = None,
    ) -> t.Optional[t.Dict]:
        """Block until the withdrawal is included on L2, finalizable or finalized."""
        return self.handlers.wrap(
            flow_op(self.resource, WAIT),
            lambda: self.tracker.wait_withdrawal(
                handle, for_=for_, timeout=timeout, poll_interval=poll_interval
            ),
            context={"for": for_},
            message="Internal error while waiting for withdrawal.",
        )

    def finalization_readiness(
        self, target: t.Union[t.Dict, HandleLike]
    ) -> FinalizeReadiness:
        """Whether a withdrawal (or a prepared finalization call) can go through."""
        return self.finalization_handlers.wrap(
            flow_op(ErrorResource.WITHDRAWAL_FINALIZATION, READINESS),
            lambda: self.tracker.finalization_readiness(target),
            message="Internal error while checking finalization readiness.",
        )

    def try_finalization_readiness(
        self, target: t.Union[t.Dict, HandleLike]
    ) -> Result[FinalizeReadiness]:
        """Non-raising form of `finalization_readiness`."""
        return self.finalization_handlers.to_result(
            flow_op(ErrorResource.WITHDRAWAL_FINALIZATION, TRY_READINESS),
            lambda: self.finalization_readiness(target),
        )

    def _finalize(self, handle: HandleLike) -> FinalizeResult:
        l2_tx_hash = origin_hash(handle)
        if l2_tx_hash is None:
            raise self.handlers.error(
                ErrorKind.STATE,
                flow_op(self.resource, FINALIZE),
                "The handle has no transaction hash to finalize.",
            )

        service = self.tracker.finalization
        try:
            params = service.fetch_finalize_deposit_params(l2_tx_hash)
        except BridgeError as e:
            if e.kind == ErrorKind.RPC:
                raise
            raise self.handlers.error(
                ErrorKind.STATE,
                e.operation,
                "Withdrawal not ready: finalize params unavailable.",
                context={"l2TxHash": l2_tx_hash, "reason": e.envelope.message},
            ) from e

        readiness = service.readiness(params)
        if readiness.kind == ReadinessKind.FINALIZED:
            self.logger.info(f"{self.tag} Withdrawal {l2_tx_hash} already finalized.")
            return FinalizeResult(status=self.tracker.withdrawal_status(l2_tx_hash))
        if readiness.kind != ReadinessKind.READY:
            raise self.handlers.error(
                ErrorKind.STATE,
                flow_op(self.resource, SIMULATE),
                "Withdrawal not ready to finalize.",
                context={"l2TxHash": l2_tx_hash, **readiness.json},
            )

        try:
            receipt = service.finalize_deposit(params, l2_tx_hash)
        except BridgeError:
            # Finalized by someone else in the meantime
            status = self.tracker.withdrawal_status(l2_tx_hash)
            if status.phase == WithdrawalPhase.FINALIZED:
                return FinalizeResult(status=status)
            raise
        return FinalizeResult(
            status=self.tracker.withdrawal_status(l2_tx_hash), receipt=receipt
        )

    def finalize(self, handle: HandleLike) -> FinalizeResult:
        """Finalize the withdrawal on L1, unless it already is."""
        return self.handlers.wrap(
            flow_op(self.resource, FINALIZE),
            lambda: self._finalize(handle),
            context={"l2TxHash": origin_hash(handle)},
            message="Internal error while attempting to finalize withdrawal.",
        )

    def try_finalize(self, handle: HandleLike) -> Result[FinalizeResult]:
        """Non-raising form of `finalize`."""
        return self.handlers.to_result(
            flow_op(self.resource, TRY_FINALIZE),
            lambda: self.finalize(handle),
            context={"l2TxHash": origin_hash(handle)},
        )


class InteropResource(FlowResource[InteropParams]):
    """L2 to L2 interop bundles (source side)."""

    resource = ErrorResource.INTEROP
    handle_kind = HandleKind.INTEROP
    routes = INTEROP_ROUTES

    def context(self, params: InteropParams) -> t.Any:
        """Resolve the build context of a call."""
        return build_interop_context(self.client, params)

    def chain(self) -> ChainClient:
        """Chain the plan transactions are sent on."""
        return self.client.l2

    def overrides(self, params: InteropParams) -> t.Optional[TxOverrides]:
        """Caller transaction overrides."""
        return params.tx_overrides

    def describe(self, params: InteropParams) -> t.Dict[str, t.Any]:
        """Error context describing the parameters."""
        return {
            "dstChainId": str(params.dst_chain_id),
            "actions": str(len(params.actions)),
        }

    def summary_asset(self, params: InteropParams, ctx: t.Any) -> t.Tuple[str, int]:
        """Token and amount reported in the quote."""
        return ctx.base_token_src, sum_action_msg_value(params.actions)

    def status(self, handle: HandleLike) -> InteropStatus:
        """Phase of an interop bundle on the source chain."""
        return self.handlers.wrap(
            flow_op(self.resource, STATUS),
            lambda: self.tracker.interop_status(handle),
            message="Internal error while checking interop status.",
        )

    def wait(self, handle: HandleLike, timeout: t.Optional[float] = None) -> t.Dict:
        """Block until the bundle is sent on the source chain."""
        return self.handlers.wrap(
            flow_op(self.resource, WAIT),
            lambda: self.tracker.wait_interop(handle, timeout=timeout),
            message="Internal error while waiting for interop bundle.",
        )


class Bridge:
    """Entry point bundling the deposit, withdrawal and interop resources."""

    def __init__(
        self, client: BridgeClient, logger: t.Optional[logging.Logger] = None
    ) -> None:
        """Initialize object."""
        self.client = client
        self.tracker = StatusTracker(client, logger=logger)
        self.deposits = DepositsResource(client, logger=logger, tracker=self.tracker)
        self.withdrawals = WithdrawalsResource(
            client, logger=logger, tracker=self.tracker
        )
        self.interop = InteropResource(client, logger=logger, tracker=self.tracker)
