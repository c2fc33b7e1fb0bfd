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

"""Interop bundle builders.

A bundle is sent on the source L2 through `InteropCenter.sendBundle`. Each
action becomes a call starter `(to, data, attributes)` with ERC-7930 encoded
destination addresses. The `direct` route carries native value as call value;
the `indirect` route goes through the L2 asset router for ERC-20 transfers
and for native value crossing chains with different base tokens.
"""

import typing as t
from abc import abstractmethod
from collections import OrderedDict

from crossbridge.bridge.base import (
    RouteBuild,
    RouteStrategy,
    plan_approval,
    quote_step_gas,
    resolve_asset_id,
)
from crossbridge.bridge.context import InteropContext
from crossbridge.bridge.operations import (
    ALLOWANCE,
    BASE_TOKEN_ASSET_ID,
    ENSURE_REGISTERED,
    PREFLIGHT,
)
from crossbridge.bridge.route import sum_action_msg_value, sum_erc20_amounts
from crossbridge.bridge_types import (
    ApprovalNeed,
    FeeBreakdown,
    InteropAction,
    InteropActionKind,
    InteropParams,
    InteropRoute,
    L2FeeComponent,
    PlanStep,
    StepKind,
)
from crossbridge.chain import read_contract
from crossbridge.constants import ETH_ADDRESS, FORMAL_ETH_ADDRESS
from crossbridge.errors import ErrorKind, ErrorResource
from crossbridge.utils import is_address_eq, is_eth, to_bytes, to_hex_str
from crossbridge.utils.encoding import (
    INTEROP_CENTER,
    L2_NATIVE_TOKEN_VAULT,
    encode_ntv_transfer_data,
    encode_second_bridge_data_v1,
    execution_address,
    format_interop_evm_address,
    format_interop_evm_chain,
    indirect_call,
    interop_call_value,
    unbundler_address,
)


CallStarter = t.Tuple[bytes, bytes, t.List[bytes]]


def bundle_attributes(params: InteropParams) -> t.List[str]:
    """Bundle level attributes."""
    attributes = []
    if params.execution_only:
        attributes.append(execution_address(params.execution_only))
    if params.unbundler:
        attributes.append(unbundler_address(params.unbundler))
    return attributes


def direct_call_attributes(action: InteropAction) -> t.List[str]:
    """Call attributes of an action delivered directly."""
    if action.kind == InteropActionKind.SEND_NATIVE:
        return [interop_call_value(action.amount)]
    if action.kind == InteropActionKind.CALL and action.value > 0:
        return [interop_call_value(action.value)]
    return []


def call_starter(to: str, data: str, attributes: t.List[str]) -> CallStarter:
    """Call starter struct, as passed to `sendBundle`."""
    return (
        to_bytes(to),
        to_bytes(data or "0x"),
        [to_bytes(attribute) for attribute in attributes],
    )


class InteropRouteStrategy(RouteStrategy[InteropParams, InteropContext]):
    """Interop route strategy."""

    resource = ErrorResource.INTEROP
    route: InteropRoute

    @abstractmethod
    def starters(
        self, params: InteropParams, ctx: InteropContext
    ) -> t.List[CallStarter]:
        """Call starters of the bundle."""
        raise NotImplementedError()

    def validate_actions(self, params: InteropParams) -> None:
        """Reject negative amounts and values."""
        for action in params.actions:
            self.require(
                action.amount >= 0 and action.value >= 0,
                PREFLIGHT,
                f"{action.kind}.amount and value must be >= 0.",
                context={"to": action.to, "amount": str(action.amount)},
            )

    def send_bundle(
        self,
        params: InteropParams,
        ctx: InteropContext,
        steps: t.List[PlanStep],
        approvals: t.List[ApprovalNeed],
    ) -> RouteBuild:
        """Append the `sendBundle` step and assemble the route output."""
        total_value = sum_action_msg_value(params.actions)
        tx = {
            "to": ctx.interop_center,
            "from": ctx.sender,
            "data": INTEROP_CENTER.encode(
                "sendBundle",
                to_bytes(format_interop_evm_chain(ctx.dst_chain_id)),
                self.starters(params, ctx),
                [to_bytes(attribute) for attribute in bundle_attributes(params)],
            ),
            "value": total_value,
        }
        gas = quote_step_gas(
            ctx.client.l2,
            tx,
            ctx.gas_overrides,
            deferred=bool(approvals),
            logger=self.logger,
        )
        steps = steps + [
            PlanStep(
                key="interop-center:send-bundle",
                kind=StepKind.INTEROP_SEND_BUNDLE,
                description=f"Send interop bundle ({self.route} route) to chain {ctx.dst_chain_id}",
                tx=tx,
            )
        ]

        fees = None
        if gas is not None:
            fees = FeeBreakdown(
                token=ETH_ADDRESS if is_eth(ctx.base_token_src) else ctx.base_token_src,
                max_total=gas.max_cost,
                mint_value=None,
                l1=None,
                l2=L2FeeComponent(
                    total=gas.max_cost,
                    base_cost=0,
                    operator_tip=0,
                    gas_limit=gas.gas_limit,
                    max_fee_per_gas=gas.max_fee_per_gas,
                    gas_per_pubdata=None,
                ),
            )
        self.logger.debug(
            f"[INTEROP] Route {self.route}: actions={len(params.actions)} value={total_value} "
            f"approvals={len(approvals)}."
        )
        return RouteBuild(
            steps=steps,
            approvals=approvals,
            fees=fees,
            extras={
                "totalActionValue": total_value,
                "bridgedTokenTotal": sum_erc20_amounts(params.actions),
                "dstChainId": ctx.dst_chain_id,
            },
        )


class DirectInterop(InteropRouteStrategy):
    """Native value and calls between chains sharing a base token."""

    route = InteropRoute.DIRECT

    def preflight(self, params: InteropParams, ctx: InteropContext) -> None:
        """Validate that the route accepts the parameters."""
        self.require(
            all(a.kind != InteropActionKind.SEND_ERC20 for a in params.actions),
            PREFLIGHT,
            'route "direct" does not support ERC-20 actions; use the indirect route.',
        )
        self.require(
            is_address_eq(ctx.base_token_src, ctx.base_token_dst),
            PREFLIGHT,
            'route "direct" requires matching base tokens between source and destination.',
            context={"baseTokenSrc": ctx.base_token_src, "baseTokenDst": ctx.base_token_dst},
        )
        self.validate_actions(params)

    def starters(
        self, params: InteropParams, ctx: InteropContext
    ) -> t.List[CallStarter]:
        """Call starters of the bundle."""
        return [
            call_starter(
                format_interop_evm_address(action.to),
                action.data if action.kind == InteropActionKind.CALL else "0x",
                direct_call_attributes(action),
            )
            for action in params.actions
        ]

    def build(self, params: InteropParams, ctx: InteropContext) -> RouteBuild:
        """Build the plan steps of the route."""
        return self.send_bundle(params, ctx, [], [])


class IndirectInterop(InteropRouteStrategy):
    """ERC-20 transfers and cross-base value through the L2 asset router."""

    route = InteropRoute.INDIRECT

    def preflight(self, params: InteropParams, ctx: InteropContext) -> None:
        """Validate that the route accepts the parameters."""
        has_erc20 = any(
            a.kind == InteropActionKind.SEND_ERC20 for a in params.actions
        )
        base_matches = is_address_eq(ctx.base_token_src, ctx.base_token_dst)
        self.require(
            has_erc20 or not base_matches,
            PREFLIGHT,
            'route "indirect" requires ERC-20 actions or mismatched base tokens; '
            "use the direct route instead.",
        )
        self.validate_actions(params)
        for action in params.actions:
            if action.kind == InteropActionKind.SEND_ERC20:
                self.require(
                    bool(action.token),
                    PREFLIGHT,
                    "sendErc20 actions require a token.",
                    context={"to": action.to},
                )
            if action.kind == InteropActionKind.CALL:
                self.require(
                    action.value == 0 or base_matches,
                    PREFLIGHT,
                    "indirect route does not support call.value when base tokens differ.",
                    context={"value": str(action.value)},
                )

    def starters(
        self, params: InteropParams, ctx: InteropContext
    ) -> t.List[CallStarter]:
        """Call starters of the bundle."""
        base_matches = is_address_eq(ctx.base_token_src, ctx.base_token_dst)
        router = format_interop_evm_address(ctx.addresses.l2_asset_router)
        starters = []
        for action in params.actions:
            if action.kind == InteropActionKind.SEND_ERC20:
                asset_id = self.asset_id(ctx, str(action.token))
                starters.append(
                    call_starter(
                        router,
                        self.router_payload(asset_id, action),
                        [indirect_call(0)],
                    )
                )
            elif action.kind == InteropActionKind.SEND_NATIVE and not base_matches:
                starters.append(
                    call_starter(
                        router,
                        self.router_payload(self.base_token_asset_id(ctx), action),
                        [indirect_call(action.amount)],
                    )
                )
            else:
                starters.append(
                    call_starter(
                        format_interop_evm_address(action.to),
                        action.data if action.kind == InteropActionKind.CALL else "0x",
                        direct_call_attributes(action),
                    )
                )
        return starters

    @staticmethod
    def router_payload(asset_id: bytes, action: InteropAction) -> str:
        """Asset router payload transferring the action amount to its receiver."""
        return encode_second_bridge_data_v1(
            to_hex_str(asset_id),
            encode_ntv_transfer_data(action.amount, action.to, FORMAL_ETH_ADDRESS),
        )

    def asset_id(self, ctx: InteropContext, token: str) -> bytes:
        """Asset id of an L2 token."""
        return resolve_asset_id(
            ctx.client.l2,
            ctx.addresses.l2_native_token_vault,
            token,
            ctx.sender,
            self.handlers,
            self.op(ENSURE_REGISTERED),
            logger=self.logger,
        )

    def base_token_asset_id(self, ctx: InteropContext) -> bytes:
        """Asset id of the source chain base token."""
        vault = ctx.addresses.l2_native_token_vault
        return self.handlers.wrap_as(
            ErrorKind.CONTRACT,
            self.op(BASE_TOKEN_ASSET_ID),
            lambda: read_contract(
                ctx.client.l2, vault, L2_NATIVE_TOKEN_VAULT, "BASE_TOKEN_ASSET_ID"
            ),
            context={"vault": vault},
            message="Failed to read the base token asset id.",
        )

    def build(self, params: InteropParams, ctx: InteropContext) -> RouteBuild:
        """Build the plan steps of the route."""
        totals: t.Dict[str, int] = OrderedDict()
        for action in params.actions:
            if action.kind == InteropActionKind.SEND_ERC20:
                token = str(action.token)
                totals[token] = totals.get(token, 0) + action.amount

        vault = ctx.addresses.l2_native_token_vault
        approvals: t.List[ApprovalNeed] = []
        steps: t.List[PlanStep] = []
        for token, amount in totals.items():
            token_approvals, token_steps = plan_approval(
                ctx.client.l2,
                token,
                ctx.sender,
                vault,
                amount,
                f"approve:{token}:{vault}",
                self.handlers,
                self.op(ALLOWANCE),
            )
            approvals += token_approvals
            steps += token_steps

        return self.send_bundle(params, ctx, steps, approvals)


INTEROP_ROUTES: t.Dict[InteropRoute, t.Type[InteropRouteStrategy]] = {
    InteropRoute.DIRECT: DirectInterop,
    InteropRoute.INDIRECT: IndirectInterop,
}

assert set(INTEROP_ROUTES) == set(InteropRoute), "Unhandled interop route."  # nosec
