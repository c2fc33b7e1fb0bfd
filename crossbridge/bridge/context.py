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

"""Per-call build contexts."""

import typing as t
from dataclasses import dataclass

from crossbridge.bridge.route import (
    normalize_withdraw_token,
    pick_deposit_route,
    pick_interop_route,
    pick_withdraw_route,
)
from crossbridge.bridge_types import (
    DepositParams,
    DepositRoute,
    InteropParams,
    InteropRoute,
    ResolvedAddresses,
    TxOverrides,
    WithdrawParams,
    WithdrawRoute,
)
from crossbridge.client import BridgeClient
from crossbridge.constants import DEFAULT_GAS_PER_PUBDATA
from crossbridge.errors import ErrorHandlers, ErrorKind, ErrorResource
from crossbridge.utils import is_eth


@dataclass(frozen=True)
class DepositContext:  # pylint: disable=too-many-instance-attributes
    """Resolved facts of a single deposit call."""

    client: BridgeClient
    route: DepositRoute
    sender: str
    chain_id_l2: int
    addresses: ResolvedAddresses
    base_token: str
    base_is_eth: bool
    operator_tip: int
    gas_per_pubdata: int
    refund_recipient: str
    l2_gas_limit: t.Optional[int] = None
    gas_overrides: t.Optional[TxOverrides] = None


@dataclass(frozen=True)
class WithdrawContext:  # pylint: disable=too-many-instance-attributes
    """Resolved facts of a single withdrawal call."""

    client: BridgeClient
    route: WithdrawRoute
    token: str
    sender: str
    chain_id_l2: int
    addresses: ResolvedAddresses
    base_token: str
    base_is_eth: bool
    gas_overrides: t.Optional[TxOverrides] = None


@dataclass(frozen=True)
class InteropContext:  # pylint: disable=too-many-instance-attributes
    """Resolved facts of a single interop call."""

    client: BridgeClient
    route: InteropRoute
    sender: str
    src_chain_id: int
    dst_chain_id: int
    addresses: ResolvedAddresses
    base_token_src: str
    base_token_dst: str
    interop_center: str
    gas_overrides: t.Optional[TxOverrides] = None


def validate_tx_overrides(
    overrides: t.Optional[TxOverrides],
    handlers: ErrorHandlers,
    operation: str,
) -> None:
    """Reject fee overrides whose priority fee exceeds the max fee."""
    if overrides is None:
        return
    max_fee = overrides.max_fee_per_gas
    priority_fee = overrides.max_priority_fee_per_gas
    if max_fee is not None and priority_fee is not None and priority_fee > max_fee:
        raise handlers.error(
            ErrorKind.VALIDATION,
            operation,
            "maxPriorityFeePerGas cannot exceed maxFeePerGas.",
            context={
                "maxFeePerGas": str(max_fee),
                "maxPriorityFeePerGas": str(priority_fee),
            },
        )


def _validate_amount(
    amount: int, handlers: ErrorHandlers, operation: str, allow_zero: bool = False
) -> None:
    if amount < 0 or (amount == 0 and not allow_zero):
        raise handlers.error(
            ErrorKind.VALIDATION,
            operation,
            "Amount must not be negative."
            if allow_zero
            else "Amount must be greater than zero.",
            context={"amount": str(amount)},
        )


def build_deposit_context(
    client: BridgeClient, params: DepositParams
) -> DepositContext:
    """Resolve the context of a deposit."""
    handlers = ErrorHandlers(ErrorResource.DEPOSITS)
    _validate_amount(params.amount, handlers, "deposits.context")
    validate_tx_overrides(params.l1_tx_overrides, handlers, "deposits.context")

    addresses = client.ensure_addresses()
    chain_id = client.l2.chain_id
    sender = client.sender
    base_token = client.base_token(chain_id)
    route = pick_deposit_route(params.token, chain_id, lambda _: base_token)
    return DepositContext(
        client=client,
        route=route,
        sender=sender,
        chain_id_l2=chain_id,
        addresses=addresses,
        base_token=base_token,
        base_is_eth=is_eth(base_token),
        operator_tip=params.operator_tip or 0,
        gas_per_pubdata=params.gas_per_pubdata or DEFAULT_GAS_PER_PUBDATA,
        refund_recipient=params.refund_recipient or sender,
        l2_gas_limit=params.l2_gas_limit,
        gas_overrides=params.l1_tx_overrides,
    )


def build_withdraw_context(
    client: BridgeClient, params: WithdrawParams
) -> WithdrawContext:
    """Resolve the context of a withdrawal."""
    handlers = ErrorHandlers(ErrorResource.WITHDRAWALS)
    _validate_amount(params.amount, handlers, "withdrawals.context")
    validate_tx_overrides(params.l2_tx_overrides, handlers, "withdrawals.context")

    addresses = client.ensure_addresses()
    chain_id = client.l2.chain_id
    sender = client.sender
    base_token = client.base_token(chain_id)
    base_is_eth = is_eth(base_token)
    return WithdrawContext(
        client=client,
        route=pick_withdraw_route(params.token, base_is_eth),
        token=normalize_withdraw_token(params.token),
        sender=sender,
        chain_id_l2=chain_id,
        addresses=addresses,
        base_token=base_token,
        base_is_eth=base_is_eth,
        gas_overrides=params.l2_tx_overrides,
    )


def build_interop_context(
    client: BridgeClient, params: InteropParams
) -> InteropContext:
    """Resolve the context of an interop bundle."""
    handlers = ErrorHandlers(ErrorResource.INTEROP)
    if not params.actions:
        raise handlers.error(
            ErrorKind.VALIDATION,
            "interop.context",
            "An interop bundle needs at least one action.",
        )
    for action in params.actions:
        _validate_amount(action.amount, handlers, "interop.context", allow_zero=True)
        _validate_amount(action.value, handlers, "interop.context", allow_zero=True)
    validate_tx_overrides(params.tx_overrides, handlers, "interop.context")

    addresses = client.ensure_addresses()
    src_chain_id = client.l2.chain_id
    base_token_src = client.base_token(src_chain_id)
    base_token_dst = client.base_token(params.dst_chain_id)
    route = pick_interop_route(params.actions, base_token_src, base_token_dst)
    return InteropContext(
        client=client,
        route=route,
        sender=client.sender,
        src_chain_id=src_chain_id,
        dst_chain_id=params.dst_chain_id,
        addresses=addresses,
        base_token_src=base_token_src,
        base_token_dst=base_token_dst,
        interop_center=str(addresses.interop_center),
        gas_overrides=params.tx_overrides,
    )
