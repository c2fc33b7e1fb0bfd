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

"""Constants."""

import os


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# ETH aliases
FORMAL_ETH_ADDRESS = ZERO_ADDRESS
ETH_ADDRESS = "0x0000000000000000000000000000000000000001"

# L2 system contracts
L2_BASE_TOKEN_ADDRESS = "0x000000000000000000000000000000000000800A"
L2_ASSET_ROUTER_ADDRESS = "0x0000000000000000000000000000000000010003"
L2_NATIVE_TOKEN_VAULT_ADDRESS = "0x0000000000000000000000000000000000010004"
L2_INTEROP_CENTER_ADDRESS = "0x000000000000000000000000000000000001000d"
L1_MESSENGER_ADDRESS = "0x0000000000000000000000000000000000008008"

# Legacy priority request topics (L2 hash at topic index 2 and 3 respectively)
TOPIC_CANONICAL_ASSIGNED = (
    "0x779f441679936c5441b671969f37400b8c3ed0071cb47444431bf985754560df"
)
TOPIC_CANONICAL_SUCCESS = (
    "0xe4def01b981193a97a9e81230d7b9f31812ceaf23f864a828a82c687911cb2df"
)

# Gas model
GAS_ESTIMATE_BUFFER_PERCENT = 15
TX_OVERHEAD_GAS = 10_000
TX_MEMORY_OVERHEAD_GAS = 10
DEFAULT_ABI_BYTES = 400
DEFAULT_PUBDATA_BYTES = 155
ERC20_NONBASE_ABI_BYTES = 500
ERC20_NONBASE_PUBDATA_BYTES = 200
DEFAULT_GAS_PER_PUBDATA = 800
SAFE_L1_BRIDGE_GAS = 700_000
MIN_L2_GAS_FOR_ERC20 = 2_500_000
DEFAULT_SAFE_L2_GAS_LIMIT = 3_000_000

# Receipt waiting
ON_CHAIN_INTERACT_TIMEOUT = float(os.environ.get("CROSSBRIDGE_RECEIPT_TIMEOUT", 120.0))
ON_CHAIN_INTERACT_SLEEP = float(os.environ.get("CROSSBRIDGE_RECEIPT_POLL", 3.0))

# Withdrawal finalization polling
FINALIZATION_POLL_INTERVAL = float(os.environ.get("CROSSBRIDGE_FINALIZATION_POLL", 5.5))
