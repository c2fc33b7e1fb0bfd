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

"""Stable operation names used in error envelopes."""

from crossbridge.errors import ErrorResource


QUOTE = "quote"
TRY_QUOTE = "tryQuote"
PREPARE = "prepare"
TRY_PREPARE = "tryPrepare"
CREATE = "create"
TRY_CREATE = "tryCreate"
STATUS = "status"
WAIT = "wait"
TRY_WAIT = "tryWait"
TRY_STATUS = "tryStatus"
FINALIZE = "finalize"
TRY_FINALIZE = "tryFinalize"
READINESS = "readiness"
TRY_READINESS = "tryReadiness"

ALLOWANCE = "allowance"
BASE_COST = "l2TransactionBaseCost"
BALANCE = "getEthBalance"
ENSURE_REGISTERED = "ensureTokenIsRegistered"
BASE_TOKEN_ASSET_ID = "baseTokenAssetId"
PREFLIGHT = "preflight"
SEND_STEP = "sendStep"

FETCH_RECEIPT = "finalize.fetchParams.receipt"
FIND_MESSAGE = "finalize.fetchParams.findMessage"
DECODE_MESSAGE = "finalize.fetchParams.decodeMessage"
MESSENGER_INDEX = "finalize.fetchParams.messengerIndex"
FETCH_PROOF = "finalize.fetchParams.proof"
FETCH_NETWORK = "finalize.fetchParams.network"
IS_FINALIZED = "finalize.isFinalized"
SIMULATE = "finalize.readiness.simulate"
SEND_FINALIZE = "finalize.send"
WAIT_FINALIZE = "finalize.wait"

ASSERT_MATCHES_BASE = "assertMatchesBase"
ASSERT_ETH_ASSET = "assertEthAsset"
ASSERT_NOT_ETH_ASSET = "assertNotEthAsset"
ASSERT_BASE = "assertBaseToken"
ASSERT_NON_ETH_BASE = "assertNonEthBase"
ASSERT_NON_BASE_TOKEN = "assertNonBaseToken"
ASSERT_BALANCE = "assertEthBalance"


def flow_op(resource: ErrorResource, name: str) -> str:
    """Operation name of a resource method, e.g. `deposits.quote`."""
    return f"{resource}.{name}"


def route_op(resource: ErrorResource, route: str, name: str) -> str:
    """Operation name of a route sub-step, e.g. `deposits.erc20-base:allowance`."""
    return f"{resource}.{route}:{name}"
