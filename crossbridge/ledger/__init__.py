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

"""Ledger helpers."""

import os
import typing as t
from copy import deepcopy

from aea.crypto.base import LedgerApi
from aea.crypto.registries import make_ledger_api
from aea_ledger_ethereum import DEFAULT_GAS_PRICE_STRATEGIES, EIP1559, GWEI, to_wei


LEDGER_TYPE = "ethereum"

L1_RPC = os.environ.get("CROSSBRIDGE_L1_RPC", "https://ethereum.publicnode.com")
L2_RPC = os.environ.get("CROSSBRIDGE_L2_RPC", "https://mainnet.era.zksync.io")

L1_CHAIN_ID = int(os.environ.get("CROSSBRIDGE_L1_CHAIN_ID", 1))
L2_CHAIN_ID = int(os.environ.get("CROSSBRIDGE_L2_CHAIN_ID", 324))

# L2 fee markets are cheap; cap the fallback so that quotes stay realistic
L2_FALLBACK_MAX_FEE_PER_GAS = to_wei(1, GWEI)

DEFAULT_LEDGER_APIS: t.Dict[t.Tuple[str, int], LedgerApi] = {}


def get_default_rpc(layer: str) -> str:
    """Get default RPC of a layer ("l1" or "l2")."""
    if layer == "l1":
        return L1_RPC
    if layer == "l2":
        return L2_RPC
    raise ValueError(f"Unknown layer {layer!r}.")


def make_chain_ledger_api(
    chain_id: int,
    rpc: str,
    l2: bool = False,
) -> LedgerApi:
    """Get the ledger API of a chain, reusing a previously created one."""
    key = (rpc, chain_id)
    if key not in DEFAULT_LEDGER_APIS:
        gas_price_strategies = deepcopy(DEFAULT_GAS_PRICE_STRATEGIES)
        if l2:
            gas_price_strategies[EIP1559]["fallback_estimate"][
                "maxFeePerGas"
            ] = L2_FALLBACK_MAX_FEE_PER_GAS

        DEFAULT_LEDGER_APIS[key] = make_ledger_api(
            LEDGER_TYPE,
            address=rpc,
            chain_id=chain_id,
            gas_price_strategies=gas_price_strategies,
        )

    return DEFAULT_LEDGER_APIS[key]
