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

"""Shared plan building blocks."""

import logging
import typing as t
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from aea.helpers.logging import setup_logger

from crossbridge.bridge.gas import fetch_fees, quote_l1_gas
from crossbridge.bridge.operations import route_op
from crossbridge.bridge_types import (
    ApprovalNeed,
    FeeBreakdown,
    GasQuote,
    PlanStep,
    StepKind,
    TxOverrides,
)
from crossbridge.chain import ChainClient, read_contract
from crossbridge.errors import ErrorHandlers, ErrorKind, ErrorResource
from crossbridge.utils import checksum
from crossbridge.utils.encoding import ERC20, L2_NATIVE_TOKEN_VAULT


P = t.TypeVar("P")
C = t.TypeVar("C")


@dataclass
class RouteBuild:
    """Output of a route strategy."""

    steps: t.List[PlanStep]
    approvals: t.List[ApprovalNeed] = field(default_factory=list)
    fees: t.Optional[FeeBreakdown] = None
    base_cost: t.Optional[int] = None
    mint_value: t.Optional[int] = None
    extras: t.Dict[str, t.Any] = field(default_factory=dict)


class RouteStrategy(ABC, t.Generic[P, C]):
    """Preflight checks and plan construction of a single route."""

    resource: ErrorResource
    route: str

    def __init__(self, logger: t.Optional[logging.Logger] = None) -> None:
        """Initialize object."""
        self.logger = logger or setup_logger(name=f"crossbridge.{self.resource}")
        self.handlers = ErrorHandlers(self.resource)

    def op(self, name: str) -> str:
        """Operation name of a sub-step of this route."""
        return route_op(self.resource, self.route, name)

    def require(
        self,
        condition: bool,
        name: str,
        message: str,
        context: t.Optional[t.Dict[str, t.Any]] = None,
    ) -> None:
        """Raise a VALIDATION error unless the condition holds."""
        if not condition:
            raise self.handlers.error(
                ErrorKind.VALIDATION, self.op(name), message, context=context
            )

    def preflight(self, params: P, ctx: C) -> None:
        """Validate that the route accepts the parameters."""

    @abstractmethod
    def build(self, params: P, ctx: C) -> RouteBuild:
        """Build the plan steps of the route."""
        raise NotImplementedError()


def read_allowance(  # pylint: disable=too-many-arguments
    client: ChainClient,
    token: str,
    owner: str,
    spender: str,
    handlers: ErrorHandlers,
    operation: str,
) -> int:
    """Read an ERC-20 allowance."""
    return int(
        handlers.wrap_as(
            ErrorKind.CONTRACT,
            operation,
            lambda: read_contract(
                client, token, ERC20, "allowance", checksum(owner), checksum(spender)
            ),
            context={"token": token, "owner": owner, "spender": spender},
            message="Failed to read the token allowance.",
        )
    )


def approval_step(
    token: str, spender: str, amount: int, sender: str, key: str
) -> PlanStep:
    """Build an ERC-20 approval step."""
    return PlanStep(
        key=key,
        kind=StepKind.APPROVE,
        description=f"Approve {amount} of {token} to {spender}",
        tx={
            "to": token,
            "from": sender,
            "data": ERC20.encode("approve", checksum(spender), amount),
            "value": 0,
        },
    )


def plan_approval(  # pylint: disable=too-many-arguments
    client: ChainClient,
    token: str,
    owner: str,
    spender: str,
    amount: int,
    key: str,
    handlers: ErrorHandlers,
    operation: str,
) -> t.Tuple[t.List[ApprovalNeed], t.List[PlanStep]]:
    """Approval needs and steps required to let spender move amount of token."""
    allowance = read_allowance(client, token, owner, spender, handlers, operation)
    if allowance >= amount:
        return [], []
    return (
        [ApprovalNeed(token=token, spender=spender, amount=amount)],
        [approval_step(token, spender, amount, owner, key)],
    )


def apply_gas_quote(tx: t.Dict, quote: GasQuote, include_gas: bool = True) -> None:
    """Set the gas fields of a transaction from a quote."""
    if include_gas and quote.gas_limit:
        tx["gas"] = quote.gas_limit
    if quote.max_fee_per_gas:
        tx["maxFeePerGas"] = quote.max_fee_per_gas
        tx["maxPriorityFeePerGas"] = quote.max_priority_fee_per_gas


def quote_step_gas(  # pylint: disable=too-many-arguments
    client: ChainClient,
    tx: t.Dict,
    overrides: t.Optional[TxOverrides],
    deferred: bool,
    fallback_gas_limit: t.Optional[int] = None,
    logger: t.Optional[logging.Logger] = None,
) -> t.Optional[GasQuote]:
    """Quote a bridging step, simulating it only when nothing precedes it.

    Deferred steps depend on earlier steps (approvals) and would fail to
    estimate now; they only get fee fields and the quote uses the fallback
    limit. The execution engine estimates them just in time.
    """
    overrides = overrides or TxOverrides()
    if not deferred:
        quote = quote_l1_gas(client, tx, overrides, fallback_gas_limit, logger)
        if quote is not None:
            apply_gas_quote(tx, quote)
        return quote

    max_fee, priority_fee = fetch_fees(client, logger)
    quote = GasQuote(
        gas_limit=overrides.gas_limit or fallback_gas_limit or 0,
        max_fee_per_gas=overrides.max_fee_per_gas or max_fee,
        max_priority_fee_per_gas=(
            overrides.max_priority_fee_per_gas
            if overrides.max_priority_fee_per_gas is not None
            else priority_fee
        ),
    )
    apply_gas_quote(tx, quote, include_gas=overrides.gas_limit is not None)
    if logger is not None:
        logger.debug(
            f"[GAS] Deferred estimation of {tx.get('to')}, quoting gas={quote.gas_limit}."
        )
    return quote


def resolve_asset_id(  # pylint: disable=too-many-arguments
    client: ChainClient,
    vault: str,
    token: str,
    sender: str,
    handlers: ErrorHandlers,
    operation: str,
    logger: t.Optional[logging.Logger] = None,
) -> bytes:
    """Asset id of an L2 token.

    `ensureTokenIsRegistered` is called statically so that tokens not yet
    registered still resolve; `assetId(token)` is read when that call fails.
    """
    ensured = handlers.to_result(
        operation,
        lambda: read_contract(
            client,
            vault,
            L2_NATIVE_TOKEN_VAULT,
            "ensureTokenIsRegistered",
            checksum(token),
            sender=sender,
        ),
        kind=ErrorKind.CONTRACT,
    )
    if ensured.ok:
        return t.cast(bytes, ensured.value)

    if logger is not None:
        logger.debug(
            f"[ASSET] ensureTokenIsRegistered failed for {token}, reading assetId."
        )
    return handlers.wrap_as(
        ErrorKind.CONTRACT,
        operation,
        lambda: read_contract(
            client, vault, L2_NATIVE_TOKEN_VAULT, "assetId", checksum(token)
        ),
        context={"token": token, "vault": vault},
        message="Failed to resolve the asset id of the token.",
    )
