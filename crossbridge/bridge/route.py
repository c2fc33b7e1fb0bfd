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

"""Route resolution."""

import typing as t

from crossbridge.bridge_types import (
    DepositRoute,
    InteropAction,
    InteropActionKind,
    InteropRoute,
    WithdrawRoute,
)
from crossbridge.constants import L2_BASE_TOKEN_ADDRESS
from crossbridge.utils import is_address_eq, is_eth


def pick_deposit_route(
    token: str, chain_id: int, base_token_lookup: t.Callable[[int], str]
) -> DepositRoute:
    """Pick the deposit route of a token towards a chain."""
    base_token = base_token_lookup(chain_id)
    if is_eth(token):
        return DepositRoute.ETH_BASE if is_eth(base_token) else DepositRoute.ETH_NONBASE
    if is_address_eq(token, base_token):
        return DepositRoute.ERC20_BASE
    return DepositRoute.ERC20_NONBASE


def normalize_withdraw_token(token: str) -> str:
    """Map any ETH alias to the L2 base token system address."""
    return L2_BASE_TOKEN_ADDRESS if is_eth(token) else token


def pick_withdraw_route(token: str, base_is_eth: bool) -> WithdrawRoute:
    """Pick the withdrawal route of an L2 token."""
    if is_address_eq(normalize_withdraw_token(token), L2_BASE_TOKEN_ADDRESS):
        return WithdrawRoute.ETH_BASE if base_is_eth else WithdrawRoute.ETH_NONBASE
    return WithdrawRoute.ERC20_NONBASE


def pick_interop_route(
    actions: t.Sequence[InteropAction], base_token_src: str, base_token_dst: str
) -> InteropRoute:
    """Pick the interop route of a bundle of actions."""
    has_erc20 = any(action.kind == InteropActionKind.SEND_ERC20 for action in actions)
    if has_erc20 or not is_address_eq(base_token_src, base_token_dst):
        return InteropRoute.INDIRECT
    return InteropRoute.DIRECT


def sum_action_msg_value(actions: t.Sequence[InteropAction]) -> int:
    """Native value carried by the actions (native sends plus call values)."""
    total = 0
    for action in actions:
        if action.kind == InteropActionKind.SEND_NATIVE:
            total += action.amount
        elif action.kind == InteropActionKind.CALL:
            total += action.value
    return total


def sum_erc20_amounts(actions: t.Sequence[InteropAction]) -> int:
    """Total ERC-20 amount bridged by the actions."""
    return sum(
        action.amount
        for action in actions
        if action.kind == InteropActionKind.SEND_ERC20
    )
