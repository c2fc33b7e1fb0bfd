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

"""Fee and gas quoting.

L1 quotes estimate the bridging call and add `GAS_ESTIMATE_BUFFER_PERCENT`.
L2 quotes model the execution on L2 (estimate plus fixed, memory and pubdata
overheads). The L2 base cost is read from the Bridgehub and is never buffered,
so that `mint_value` stays exact.
"""

import logging
import typing as t

from aea.helpers.logging import setup_logger

from crossbridge.bridge_types import (
    DepositRoute,
    FeeBreakdown,
    GasQuote,
    L1FeeComponent,
    L2FeeComponent,
    TxOverrides,
)
from crossbridge.chain import ChainClient, read_contract
from crossbridge.constants import (
    DEFAULT_ABI_BYTES,
    DEFAULT_GAS_PER_PUBDATA,
    DEFAULT_PUBDATA_BYTES,
    DEFAULT_SAFE_L2_GAS_LIMIT,
    ERC20_NONBASE_ABI_BYTES,
    ERC20_NONBASE_PUBDATA_BYTES,
    TX_MEMORY_OVERHEAD_GAS,
    TX_OVERHEAD_GAS,
    ZERO_ADDRESS,
)
from crossbridge.errors import ErrorHandlers, ErrorKind
from crossbridge.utils import checksum, is_address_eq, with_gas_buffer
from crossbridge.utils.encoding import BRIDGEHUB, L2_NATIVE_TOKEN_VAULT


LOGGER = setup_logger(name="crossbridge.gas")

# Modelled calldata and pubdata footprint of the L2 leg, per deposit route
L2_TX_FOOTPRINT: t.Dict[DepositRoute, t.Tuple[int, int]] = {
    DepositRoute.ETH_BASE: (DEFAULT_ABI_BYTES, DEFAULT_PUBDATA_BYTES),
    DepositRoute.ETH_NONBASE: (DEFAULT_ABI_BYTES, DEFAULT_PUBDATA_BYTES),
    DepositRoute.ERC20_BASE: (DEFAULT_ABI_BYTES, DEFAULT_PUBDATA_BYTES),
    DepositRoute.ERC20_NONBASE: (ERC20_NONBASE_ABI_BYTES, ERC20_NONBASE_PUBDATA_BYTES),
}


def fetch_fees(
    client: ChainClient, logger: t.Optional[logging.Logger] = None
) -> t.Tuple[int, int]:
    """Current (maxFeePerGas, maxPriorityFeePerGas); (0, 0) when unavailable."""
    logger = logger or LOGGER
    try:
        fees = client.fee_data()
    except Exception as e:  # pylint: disable=broad-except
        logger.warning(f"[GAS] Failed to fetch fee data: {e}")
        return 0, 0

    if fees.get("maxFeePerGas") is not None:
        return int(fees["maxFeePerGas"]), int(fees.get("maxPriorityFeePerGas") or 0)
    if fees.get("gasPrice") is not None:
        return int(fees["gasPrice"]), 0
    return 0, 0


def quote_l1_gas(
    client: ChainClient,
    tx: t.Dict,
    overrides: t.Optional[TxOverrides] = None,
    fallback_gas_limit: t.Optional[int] = None,
    logger: t.Optional[logging.Logger] = None,
) -> t.Optional[GasQuote]:
    """Quote an L1 transaction.

    An explicit gas limit (override or `tx["gas"]`) is used as is. Otherwise the
    transaction is estimated and buffered; when estimation fails the fallback
    limit is used, or None is returned if there is no fallback.
    """
    logger = logger or LOGGER
    overrides = overrides or TxOverrides()

    market: t.Optional[t.Tuple[int, int]] = None

    def _market() -> t.Tuple[int, int]:
        nonlocal market
        if market is None:
            market = fetch_fees(client, logger)
        return market

    max_fee = overrides.max_fee_per_gas or tx.get("maxFeePerGas") or _market()[0]
    if overrides.max_priority_fee_per_gas is not None:
        priority_fee = overrides.max_priority_fee_per_gas
    elif tx.get("maxPriorityFeePerGas") is not None:
        priority_fee = tx["maxPriorityFeePerGas"]
    else:
        priority_fee = _market()[1]

    explicit_limit = overrides.gas_limit or tx.get("gas")
    if explicit_limit:
        return GasQuote(
            gas_limit=int(explicit_limit),
            max_fee_per_gas=int(max_fee),
            max_priority_fee_per_gas=int(priority_fee),
        )

    try:
        gas_limit = with_gas_buffer(client.estimate_gas(tx))
    except Exception as e:  # pylint: disable=broad-except
        if fallback_gas_limit is None:
            logger.warning(f"[GAS] L1 gas estimation failed: {e}")
            return None
        logger.debug(
            f"[GAS] L1 gas estimation failed, using fallback {fallback_gas_limit}: {e}"
        )
        gas_limit = fallback_gas_limit

    return GasQuote(
        gas_limit=gas_limit,
        max_fee_per_gas=int(max_fee),
        max_priority_fee_per_gas=int(priority_fee),
    )


def quote_l2_gas(  # pylint: disable=too-many-arguments
    client: ChainClient,
    route: DepositRoute,
    tx: t.Optional[t.Dict] = None,
    gas_per_pubdata: t.Optional[int] = None,
    l2_gas_limit_hint: t.Optional[int] = None,
    override_gas_limit: t.Optional[int] = None,
    state_overrides: t.Optional[t.Dict] = None,
    logger: t.Optional[logging.Logger] = None,
) -> GasQuote:
    """Quote the L2 execution of a deposit.

    The estimate of the modelled L2 transaction is increased by a fixed
    overhead, a per-byte memory overhead and the pubdata cost, then buffered.
    Estimation failures fall back to the hint (0 when absent).
    """
    logger = logger or LOGGER
    max_fee, priority_fee = fetch_fees(client, logger)
    max_fee = max_fee or priority_fee

    explicit_limit = override_gas_limit or (tx or {}).get("gas")
    if explicit_limit:
        return GasQuote(
            gas_limit=int(explicit_limit),
            max_fee_per_gas=max_fee,
            gas_per_pubdata=gas_per_pubdata,
        )

    if tx is None:
        return GasQuote(
            gas_limit=l2_gas_limit_hint or 0,
            max_fee_per_gas=max_fee,
            gas_per_pubdata=gas_per_pubdata,
        )

    pubdata_price = gas_per_pubdata or DEFAULT_GAS_PER_PUBDATA
    memory_bytes, pubdata_bytes = L2_TX_FOOTPRINT[route]
    try:
        estimate = client.estimate_gas(tx, state_overrides=state_overrides)
    except Exception as e:  # pylint: disable=broad-except
        logger.warning(f"[GAS] L2 gas estimation failed for route {route}: {e}")
        return GasQuote(
            gas_limit=l2_gas_limit_hint or 0,
            max_fee_per_gas=max_fee,
            gas_per_pubdata=gas_per_pubdata,
        )

    gas_limit = (
        estimate
        + TX_OVERHEAD_GAS
        + memory_bytes * TX_MEMORY_OVERHEAD_GAS
        + pubdata_bytes * pubdata_price
    )
    return GasQuote(
        gas_limit=with_gas_buffer(gas_limit),
        max_fee_per_gas=max_fee,
        gas_per_pubdata=pubdata_price,
    )


def quote_l2_base_cost(  # pylint: disable=too-many-arguments
    client: ChainClient,
    bridgehub: str,
    chain_id: int,
    l2_gas_limit: int,
    gas_per_pubdata: int,
    handlers: ErrorHandlers,
    operation: str,
    logger: t.Optional[logging.Logger] = None,
) -> int:
    """Read the base cost of an L2 transaction from the Bridgehub, at the current L1 gas price."""
    max_fee, priority_fee = fetch_fees(client, logger)
    l1_gas_price = max_fee or priority_fee
    context = {
        "chainId": str(chain_id),
        "l2GasLimit": str(l2_gas_limit),
        "gasPerPubdata": str(gas_per_pubdata),
    }
    if not l1_gas_price:
        raise handlers.error(
            ErrorKind.CONTRACT,
            operation,
            "Could not fetch the L1 gas price for the L2 base cost (Bridgehub.l2TransactionBaseCost).",
            context=context,
        )

    return int(
        handlers.wrap_as(
            ErrorKind.CONTRACT,
            operation,
            lambda: read_contract(
                client,
                bridgehub,
                BRIDGEHUB,
                "l2TransactionBaseCost",
                chain_id,
                l1_gas_price,
                l2_gas_limit,
                gas_per_pubdata,
            ),
            context={**context, "l1GasPrice": str(l1_gas_price)},
            message="Failed to read the L2 base cost (Bridgehub.l2TransactionBaseCost).",
        )
    )


def build_fee_breakdown(  # pylint: disable=too-many-arguments
    fee_token: str,
    l1_gas: t.Optional[GasQuote],
    l2_gas: t.Optional[GasQuote],
    base_cost: int,
    operator_tip: int,
    mint_value: t.Optional[int],
) -> FeeBreakdown:
    """Assemble the fee breakdown of a deposit."""
    l1_total = l1_gas.max_cost if l1_gas is not None else 0
    l2_total = base_cost + operator_tip
    l1 = L1FeeComponent(
        gas_limit=l1_gas.gas_limit if l1_gas is not None else 0,
        max_fee_per_gas=l1_gas.max_fee_per_gas if l1_gas is not None else 0,
        max_priority_fee_per_gas=(
            l1_gas.max_priority_fee_per_gas if l1_gas is not None else 0
        ),
        max_total=l1_total,
    )
    l2 = L2FeeComponent(
        total=l2_total,
        base_cost=base_cost,
        operator_tip=operator_tip,
        gas_limit=l2_gas.gas_limit if l2_gas is not None else 0,
        max_fee_per_gas=l2_gas.max_fee_per_gas if l2_gas is not None else 0,
        gas_per_pubdata=l2_gas.gas_per_pubdata if l2_gas is not None else None,
    )
    return FeeBreakdown(
        token=fee_token,
        max_total=l1_total + l2_total,
        mint_value=mint_value,
        l1=l1,
        l2=l2,
    )


def determine_erc20_l2_gas(  # pylint: disable=too-many-arguments
    l2: ChainClient,
    l2_native_token_vault: str,
    l1_token: str,
    model_tx: t.Dict,
    gas_per_pubdata: t.Optional[int] = None,
    l2_gas_limit: t.Optional[int] = None,
    logger: t.Optional[logging.Logger] = None,
) -> GasQuote:
    """Quote the L2 leg of an ERC-20 deposit.

    Tokens not yet bridged have no L2 contract to simulate against, so they get
    `DEFAULT_SAFE_L2_GAS_LIMIT`; so do lookups and estimations that fail.
    """
    logger = logger or LOGGER
    if l2_gas_limit is not None:
        return quote_l2_gas(
            l2,
            DepositRoute.ERC20_NONBASE,
            gas_per_pubdata=gas_per_pubdata,
            override_gas_limit=l2_gas_limit,
            logger=logger,
        )

    safe_quote = quote_l2_gas(
        l2,
        DepositRoute.ERC20_NONBASE,
        gas_per_pubdata=gas_per_pubdata,
        l2_gas_limit_hint=DEFAULT_SAFE_L2_GAS_LIMIT,
        logger=logger,
    )
    try:
        l2_token = read_contract(
            l2,
            l2_native_token_vault,
            L2_NATIVE_TOKEN_VAULT,
            "l2TokenAddress",
            checksum(l1_token),
        )
        deployed = not is_address_eq(l2_token, ZERO_ADDRESS) and l2.get_code(
            l2_token
        ) not in ("", "0x")
    except Exception as e:  # pylint: disable=broad-except
        logger.warning(f"[GAS] Failed to look up the L2 token of {l1_token}: {e}")
        return safe_quote

    if not deployed:
        logger.debug(f"[GAS] Token {l1_token} has no L2 deployment yet.")
        return safe_quote

    return quote_l2_gas(
        l2,
        DepositRoute.ERC20_NONBASE,
        tx=model_tx,
        gas_per_pubdata=gas_per_pubdata,
        l2_gas_limit_hint=DEFAULT_SAFE_L2_GAS_LIMIT,
        logger=logger,
    )
