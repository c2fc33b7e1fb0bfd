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

"""Bridge engine: routes, quotes, plans, execution and status tracking."""

from crossbridge.bridge.finalization import FinalizationService
from crossbridge.bridge.resources import (
    Bridge,
    DepositsResource,
    InteropResource,
    WithdrawalsResource,
)
from crossbridge.bridge.status import StatusTracker, extract_l2_tx_hash_from_l1_logs


__all__ = [
    "Bridge",
    "DepositsResource",
    "FinalizationService",
    "InteropResource",
    "StatusTracker",
    "WithdrawalsResource",
    "extract_l2_tx_hash_from_l1_logs",
]
