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

"""Withdrawal plan builders, one strategy per route."""

import typing as t

from crossbridge.bridge.base import (
    RouteBuild,
    RouteStrategy,
    plan_approval,
    quote_step_gas,
    resolve_asset_id,
)
from crossbridge.bridge.context import WithdrawContext
from crossbridge.bridge.operations import (
    ALLOWANCE,
    ASSERT_BASE,
    ASSERT_NON_ETH_BASE,
    ENSURE_REGISTERED,
)
from crossbridge.bridge_types import (
    ApprovalNeed,
    FeeBreakdown,
    GasQuote,
    L2FeeComponent,
    PlanStep,
    StepKind,
    WithdrawParams,
    WithdrawRoute,
)
from crossbridge.constants import ETH_ADDRESS, L2_BASE_TOKEN_ADDRESS
from crossbridge.errors import ErrorResource
from crossbridge.utils import checksum, is_address_eq, to_bytes, to_hex_str
from crossbridge.utils.encoding import (
    L2_ASSET_ROUTER,
    L2_BASE_TOKEN,
    encode_withdraw_asset_data,
)


class WithdrawRouteStrategy(RouteStrategy[WithdrawParams, WithdrawContext]):
    """Withdrawal route strategy."""

    resource = ErrorResource.WITHDRAWALS
    route: WithdrawRoute

    def withdraw_step(  # pylint: disable=too-many-arguments
        self,
        ctx: WithdrawContext,
        key: str,
        kind: StepKind,
        tx: t.Dict,
        description: str,
        deferred: bool,
    ) -> t.Tuple[PlanStep, t.Optional[GasQuote]]:
        """Build the L2 withdrawal step and quote its gas."""
        l2_gas = quote_step_gas(
            ctx.client.l2,
            tx,
            ctx.gas_overrides,
            deferred=deferred,
            logger=self.logger,
        )
        return PlanStep(key=key, kind=kind, description=description, tx=tx), l2_gas

    def finish(
        self,
        ctx: WithdrawContext,
        steps: t.List[PlanStep],
        approvals: t.List[ApprovalNeed],
        l2_gas: t.Optional[GasQuote],
        extras: t.Optional[t.Dict[str, t.Any]] = None,
    ) -> RouteBuild:
        """Assemble the route output."""
        fees = None
        if l2_gas is not None:
            fees = FeeBreakdown(
                token=ETH_ADDRESS if ctx.base_is_eth else ctx.base_token,
                max_total=l2_gas.max_cost,
                mint_value=None,
                l1=None,
                l2=L2FeeComponent(
                    total=l2_gas.max_cost,
                    base_cost=0,
                    operator_tip=0,
                    gas_limit=l2_gas.gas_limit,
                    max_fee_per_gas=l2_gas.max_fee_per_gas,
                    gas_per_pubdata=None,
                ),
            )
        return RouteBuild(
            steps=steps, approvals=approvals, fees=fees, extras=dict(extras or {})
        )


class EthBaseWithdrawal(WithdrawRouteStrategy):
    """ETH from a chain whose base token is ETH, via the L2 base token system contract."""

    route = WithdrawRoute.ETH_BASE

    def build(self, params: WithdrawParams, ctx: WithdrawContext) -> RouteBuild:
        """Build the plan steps of the route."""
        tx = {
            "to": ctx.addresses.l2_base_token,
            "from": ctx.sender,
            "data": L2_BASE_TOKEN.encode("withdraw", checksum(params.to or ctx.sender)),
            "value": params.amount,
        }
        step, l2_gas = self.withdraw_step(
            ctx,
            "l2-base-token:withdraw",
            StepKind.L2_BASE_TOKEN_WITHDRAW,
            tx,
            "Withdraw the base token via the L2 base token system contract",
            deferred=False,
        )
        return self.finish(ctx, [step], [], l2_gas)


class EthNonBaseWithdrawal(EthBaseWithdrawal):
    """The base token of a chain whose base token is not ETH."""

    route = WithdrawRoute.ETH_NONBASE

    def preflight(self, params: WithdrawParams, ctx: WithdrawContext) -> None:
        """Validate that the route accepts the parameters."""
        self.require(
            is_address_eq(ctx.token, L2_BASE_TOKEN_ADDRESS),
            ASSERT_BASE,
            "eth-nonbase route requires the L2 base token alias.",
            context={"token": params.token},
        )
        self.require(
            not ctx.base_is_eth,
            ASSERT_NON_ETH_BASE,
            "eth-nonbase route requires the chain base token to be non-ETH.",
            context={"baseToken": ctx.base_token},
        )


class Erc20NonBaseWithdrawal(WithdrawRouteStrategy):
    """An ERC-20 through the L2 asset router."""

    route = WithdrawRoute.ERC20_NONBASE

    def build(self, params: WithdrawParams, ctx: WithdrawContext) -> RouteBuild:
        """Build the plan steps of the route."""
        vault = ctx.addresses.l2_native_token_vault
        approvals, steps = plan_approval(
            ctx.client.l2,
            params.token,
            ctx.sender,
            vault,
            params.amount,
            f"approve:l2:{params.token}:{vault}",
            self.handlers,
            self.op(ALLOWANCE),
        )

        asset_id = resolve_asset_id(
            ctx.client.l2,
            vault,
            params.token,
            ctx.sender,
            self.handlers,
            self.op(ENSURE_REGISTERED),
            logger=self.logger,
        )
        asset_data = encode_withdraw_asset_data(
            params.amount, params.to or ctx.sender, params.token
        )
        tx = {
            "to": ctx.addresses.l2_asset_router,
            "from": ctx.sender,
            "data": L2_ASSET_ROUTER.encode(
                "withdraw", asset_id, to_bytes(asset_data)
            ),
            "value": 0,
        }
        step, l2_gas = self.withdraw_step(
            ctx,
            "l2-asset-router:withdraw",
            StepKind.L2_ASSET_ROUTER_WITHDRAW,
            tx,
            "Burn on L2 and send the L2 to L1 message",
            deferred=bool(approvals),
        )
        return self.finish(
            ctx,
            steps + [step],
            approvals,
            l2_gas,
            extras={"assetId": to_hex_str(asset_id)},
        )


WITHDRAW_ROUTES: t.Dict[WithdrawRoute, t.Type[WithdrawRouteStrategy]] = {
    WithdrawRoute.ETH_BASE: EthBaseWithdrawal,
    WithdrawRoute.ETH_NONBASE: EthNonBaseWithdrawal,
    WithdrawRoute.ERC20_NONBASE: Erc20NonBaseWithdrawal,
}

assert set(WITHDRAW_ROUTES) == set(WithdrawRoute), "Unhandled withdrawal route."  # nosec
