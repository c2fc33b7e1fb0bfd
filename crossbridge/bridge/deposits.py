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

"""Deposit plan builders, one strategy per route."""

import typing as t
from dataclasses import replace

from crossbridge.bridge.base import (
    RouteBuild,
    RouteStrategy,
    plan_approval,
    quote_step_gas,
)
from crossbridge.bridge.context import DepositContext
from crossbridge.bridge.gas import (
    build_fee_breakdown,
    determine_erc20_l2_gas,
    quote_l2_base_cost,
    quote_l2_gas,
)
from crossbridge.bridge.operations import (
    ALLOWANCE,
    ASSERT_BALANCE,
    ASSERT_ETH_ASSET,
    ASSERT_MATCHES_BASE,
    ASSERT_NON_BASE_TOKEN,
    ASSERT_NON_ETH_BASE,
    ASSERT_NOT_ETH_ASSET,
    BALANCE,
    BASE_COST,
)
from crossbridge.bridge_types import (
    ApprovalNeed,
    DepositParams,
    DepositRoute,
    GasQuote,
    PlanStep,
    StepKind,
)
from crossbridge.constants import (
    DEFAULT_SAFE_L2_GAS_LIMIT,
    ETH_ADDRESS,
    MIN_L2_GAS_FOR_ERC20,
    SAFE_L1_BRIDGE_GAS,
)
from crossbridge.errors import ErrorKind, ErrorResource
from crossbridge.utils import is_address_eq, is_eth
from crossbridge.utils.encoding import (
    BRIDGEHUB,
    build_direct_request,
    build_two_bridges_request,
    encode_second_bridge_args,
    encode_second_bridge_eth_args,
)


# Lets the sender pass balance checks while the L2 leg is simulated
UNLIMITED_BALANCE = "0xffffffffffffffffffff"


class DepositRouteStrategy(RouteStrategy[DepositParams, DepositContext]):
    """Deposit route strategy."""

    resource = ErrorResource.DEPOSITS
    route: DepositRoute

    def quote_l2(
        self,
        params: DepositParams,
        ctx: DepositContext,
        value: int = 0,
        state_overrides: t.Optional[t.Dict] = None,
    ) -> GasQuote:
        """Quote the L2 leg against a plain transfer to the receiver."""
        model_tx = {
            "to": params.to or ctx.sender,
            "from": ctx.sender,
            "data": "0x",
            "value": value,
        }
        return quote_l2_gas(
            ctx.client.l2,
            self.route,
            tx=model_tx,
            gas_per_pubdata=ctx.gas_per_pubdata,
            l2_gas_limit_hint=DEFAULT_SAFE_L2_GAS_LIMIT,
            override_gas_limit=ctx.l2_gas_limit,
            state_overrides=state_overrides,
            logger=self.logger,
        )

    def base_cost(self, ctx: DepositContext, l2_gas: GasQuote) -> int:
        """Read the L2 base cost of the deposit."""
        return quote_l2_base_cost(
            ctx.client.l1,
            ctx.addresses.bridgehub,
            ctx.chain_id_l2,
            l2_gas.gas_limit,
            ctx.gas_per_pubdata,
            self.handlers,
            self.op(BASE_COST),
            logger=self.logger,
        )

    def approval(
        self,
        ctx: DepositContext,
        token: str,
        amount: int,
        name: str = ALLOWANCE,
    ) -> t.Tuple[t.List[ApprovalNeed], t.List[PlanStep]]:
        """Approval of token to the L1 asset router, if the allowance is short."""
        spender = ctx.addresses.l1_asset_router
        return plan_approval(
            ctx.client.l1,
            token,
            ctx.sender,
            spender,
            amount,
            f"approve:{token}:{spender}",
            self.handlers,
            self.op(name),
        )

    def bridge_step(  # pylint: disable=too-many-arguments
        self,
        ctx: DepositContext,
        key: str,
        kind: StepKind,
        request: t.Tuple,
        value: int,
        deferred: bool,
        fallback_gas_limit: t.Optional[int] = SAFE_L1_BRIDGE_GAS,
    ) -> t.Tuple[PlanStep, t.Optional[GasQuote]]:
        """Build the Bridgehub request step and quote its L1 gas."""
        fn_name = (
            "requestL2TransactionDirect"
            if kind == StepKind.BRIDGEHUB_DIRECT
            else "requestL2TransactionTwoBridges"
        )
        tx = {
            "to": ctx.addresses.bridgehub,
            "from": ctx.sender,
            "data": BRIDGEHUB.encode(fn_name, request),
            "value": value,
        }
        l1_gas = quote_step_gas(
            ctx.client.l1,
            tx,
            ctx.gas_overrides,
            deferred=deferred,
            fallback_gas_limit=fallback_gas_limit,
            logger=self.logger,
        )
        step = PlanStep(
            key=key,
            kind=kind,
            description=f"Bridge {self.route} deposit via Bridgehub.{fn_name}",
            tx=tx,
        )
        return step, l1_gas

    def finish(  # pylint: disable=too-many-arguments
        self,
        ctx: DepositContext,
        steps: t.List[PlanStep],
        approvals: t.List[ApprovalNeed],
        l1_gas: t.Optional[GasQuote],
        l2_gas: GasQuote,
        base_cost: int,
        mint_value: int,
    ) -> RouteBuild:
        """Assemble the route output."""
        fee_token = ETH_ADDRESS if ctx.base_is_eth else ctx.base_token
        self.logger.debug(
            f"[DEPOSITS] Route {self.route}: base_cost={base_cost} mint_value={mint_value} "
            f"l2_gas_limit={l2_gas.gas_limit} approvals={len(approvals)}."
        )
        return RouteBuild(
            steps=steps,
            approvals=approvals,
            fees=build_fee_breakdown(
                fee_token, l1_gas, l2_gas, base_cost, ctx.operator_tip, mint_value
            ),
            base_cost=base_cost,
            mint_value=mint_value,
            extras={
                "baseToken": ctx.base_token,
                "baseIsEth": ctx.base_is_eth,
                "l2GasLimit": l2_gas.gas_limit,
                "gasPerPubdata": ctx.gas_per_pubdata,
            },
        )


class EthBaseDeposit(DepositRouteStrategy):
    """ETH to a chain whose base token is ETH, as a direct request."""

    route = DepositRoute.ETH_BASE

    def build(self, params: DepositParams, ctx: DepositContext) -> RouteBuild:
        """Build the plan steps of the route."""
        l2_gas = self.quote_l2(
            params,
            ctx,
            value=params.amount,
            state_overrides={ctx.sender: {"balance": UNLIMITED_BALANCE}},
        )
        base_cost = self.base_cost(ctx, l2_gas)
        mint_value = base_cost + ctx.operator_tip + params.amount

        request = build_direct_request(
            chain_id=ctx.chain_id_l2,
            mint_value=mint_value,
            l2_contract=params.to or ctx.sender,
            l2_value=params.amount,
            l2_gas_limit=l2_gas.gas_limit,
            gas_per_pubdata=ctx.gas_per_pubdata,
            refund_recipient=ctx.refund_recipient,
        )
        step, l1_gas = self.bridge_step(
            ctx,
            "bridgehub:direct",
            StepKind.BRIDGEHUB_DIRECT,
            request,
            value=mint_value,
            deferred=False,
            fallback_gas_limit=None,
        )
        return self.finish(ctx, [step], [], l1_gas, l2_gas, base_cost, mint_value)


class Erc20BaseDeposit(DepositRouteStrategy):
    """The base token of a non-ETH based chain, as a direct request."""

    route = DepositRoute.ERC20_BASE

    def preflight(self, params: DepositParams, ctx: DepositContext) -> None:
        """Validate that the route accepts the parameters."""
        self.require(
            not is_eth(params.token),
            "assertErc20Asset",
            "erc20-base route requires an ERC-20 token (not ETH).",
            context={"token": params.token},
        )
        self.require(
            is_address_eq(params.token, ctx.base_token),
            ASSERT_MATCHES_BASE,
            "Provided token is not the base token for the target chain.",
            context={"token": params.token, "baseToken": ctx.base_token},
        )

    def build(self, params: DepositParams, ctx: DepositContext) -> RouteBuild:
        """Build the plan steps of the route."""
        l2_gas = self.quote_l2(params, ctx)
        base_cost = self.base_cost(ctx, l2_gas)
        mint_value = base_cost + ctx.operator_tip + params.amount

        approvals, steps = self.approval(ctx, ctx.base_token, mint_value)
        request = build_direct_request(
            chain_id=ctx.chain_id_l2,
            mint_value=mint_value,
            l2_contract=params.to or ctx.sender,
            l2_value=params.amount,
            l2_gas_limit=l2_gas.gas_limit,
            gas_per_pubdata=ctx.gas_per_pubdata,
            refund_recipient=ctx.refund_recipient,
        )
        step, l1_gas = self.bridge_step(
            ctx,
            "bridgehub:direct:erc20-base",
            StepKind.BRIDGEHUB_DIRECT,
            request,
            value=0,
            deferred=bool(approvals),
        )
        return self.finish(
            ctx, steps + [step], approvals, l1_gas, l2_gas, base_cost, mint_value
        )


class EthNonBaseDeposit(DepositRouteStrategy):
    """ETH to a chain whose base token is an ERC-20, through the asset router."""

    route = DepositRoute.ETH_NONBASE

    def preflight(self, params: DepositParams, ctx: DepositContext) -> None:
        """Validate that the route accepts the parameters."""
        self.require(
            is_eth(params.token),
            ASSERT_ETH_ASSET,
            "eth-nonbase route requires ETH as the deposit asset.",
            context={"token": params.token},
        )
        self.require(
            not ctx.base_is_eth,
            ASSERT_NON_ETH_BASE,
            "eth-nonbase route requires the target chain base token to be non-ETH.",
            context={"baseToken": ctx.base_token},
        )
        balance = self.handlers.wrap_as(
            ErrorKind.RPC,
            self.op(BALANCE),
            lambda: ctx.client.l1.get_balance(ctx.sender),
            context={"sender": ctx.sender},
            message="Failed to read the L1 ETH balance.",
        )
        self.require(
            balance >= params.amount,
            ASSERT_BALANCE,
            "Insufficient L1 ETH balance to cover deposit amount.",
            context={"required": str(params.amount), "balance": str(balance)},
        )

    def build(self, params: DepositParams, ctx: DepositContext) -> RouteBuild:
        """Build the plan steps of the route."""
        l2_gas = self.quote_l2(params, ctx)
        base_cost = self.base_cost(ctx, l2_gas)
        mint_value = base_cost + ctx.operator_tip

        approvals, steps = self.approval(ctx, ctx.base_token, mint_value)
        request = build_two_bridges_request(
            chain_id=ctx.chain_id_l2,
            mint_value=mint_value,
            l2_value=params.amount,
            l2_gas_limit=l2_gas.gas_limit,
            gas_per_pubdata=ctx.gas_per_pubdata,
            refund_recipient=ctx.refund_recipient,
            second_bridge_address=ctx.addresses.l1_asset_router,
            second_bridge_value=params.amount,
            second_bridge_calldata=encode_second_bridge_eth_args(
                params.amount, params.to or ctx.sender
            ),
        )
        step, l1_gas = self.bridge_step(
            ctx,
            "bridgehub:two-bridges:eth-nonbase",
            StepKind.BRIDGEHUB_TWO_BRIDGES,
            request,
            value=params.amount,
            deferred=bool(approvals),
        )
        return self.finish(
            ctx, steps + [step], approvals, l1_gas, l2_gas, base_cost, mint_value
        )


class Erc20NonBaseDeposit(DepositRouteStrategy):
    """An ERC-20 that is not the chain base token, through the asset router."""

    route = DepositRoute.ERC20_NONBASE

    def preflight(self, params: DepositParams, ctx: DepositContext) -> None:
        """Validate that the route accepts the parameters."""
        self.require(
            not is_eth(params.token),
            ASSERT_NOT_ETH_ASSET,
            "erc20-nonbase route requires an ERC-20 deposit token.",
            context={"token": params.token},
        )
        self.require(
            not is_address_eq(params.token, ctx.base_token),
            ASSERT_NON_BASE_TOKEN,
            "erc20-nonbase route requires a token that is not the chain base token.",
            context={"token": params.token, "baseToken": ctx.base_token},
        )

    def build(self, params: DepositParams, ctx: DepositContext) -> RouteBuild:
        """Build the plan steps of the route."""
        l2_gas = determine_erc20_l2_gas(
            ctx.client.l2,
            ctx.addresses.l2_native_token_vault,
            params.token,
            model_tx={
                "to": params.to or ctx.sender,
                "from": ctx.sender,
                "data": "0x",
                "value": 0,
            },
            gas_per_pubdata=ctx.gas_per_pubdata,
            l2_gas_limit=ctx.l2_gas_limit,
            logger=self.logger,
        )
        if l2_gas.gas_limit < MIN_L2_GAS_FOR_ERC20:
            l2_gas = replace(l2_gas, gas_limit=MIN_L2_GAS_FOR_ERC20)
        base_cost = self.base_cost(ctx, l2_gas)
        mint_value = base_cost + ctx.operator_tip

        approvals, steps = self.approval(
            ctx, params.token, params.amount, "allowanceToken"
        )
        if not ctx.base_is_eth:
            base_approvals, base_steps = self.approval(
                ctx, ctx.base_token, mint_value, "allowanceBase"
            )
            approvals += base_approvals
            steps += base_steps

        request = build_two_bridges_request(
            chain_id=ctx.chain_id_l2,
            mint_value=mint_value,
            l2_value=0,
            l2_gas_limit=l2_gas.gas_limit,
            gas_per_pubdata=ctx.gas_per_pubdata,
            refund_recipient=ctx.refund_recipient,
            second_bridge_address=ctx.addresses.l1_asset_router,
            second_bridge_value=0,
            second_bridge_calldata=encode_second_bridge_args(
                params.token, params.amount, params.to or ctx.sender
            ),
        )
        step, l1_gas = self.bridge_step(
            ctx,
            "bridgehub:two-bridges:nonbase",
            StepKind.BRIDGEHUB_TWO_BRIDGES,
            request,
            value=mint_value if ctx.base_is_eth else 0,
            deferred=bool(approvals),
        )
        return self.finish(
            ctx, steps + [step], approvals, l1_gas, l2_gas, base_cost, mint_value
        )


DEPOSIT_ROUTES: t.Dict[DepositRoute, t.Type[DepositRouteStrategy]] = {
    DepositRoute.ETH_BASE: EthBaseDeposit,
    DepositRoute.ERC20_BASE: Erc20BaseDeposit,
    DepositRoute.ETH_NONBASE: EthNonBaseDeposit,
    DepositRoute.ERC20_NONBASE: Erc20NonBaseDeposit,
}

assert set(DEPOSIT_ROUTES) == set(DepositRoute), "Unhandled deposit route."  # nosec
