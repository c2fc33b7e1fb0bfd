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

"""Structured errors, revert decoding and readiness classification."""

from crossbridge.errors.exceptions import (
    BridgeError,
    DecodedRevert,
    ErrorEnvelope,
    ErrorKind,
    ErrorResource,
    is_bridge_error,
    is_receipt_not_found,
    shape_cause,
)
from crossbridge.errors.formatter import format_envelope
from crossbridge.errors.ops import ErrorHandlers, Result
from crossbridge.errors.readiness import REVERT_TO_READINESS, classify_readiness
from crossbridge.errors.revert import (
    ERROR_ABI_REGISTRY,
    ErrorAbiRegistry,
    decode_revert,
    extract_revert_data,
    register_error_abi,
)


__all__ = [
    "BridgeError",
    "DecodedRevert",
    "ERROR_ABI_REGISTRY",
    "ErrorAbiRegistry",
    "ErrorEnvelope",
    "ErrorHandlers",
    "ErrorKind",
    "ErrorResource",
    "REVERT_TO_READINESS",
    "Result",
    "classify_readiness",
    "decode_revert",
    "extract_revert_data",
    "format_envelope",
    "is_bridge_error",
    "is_receipt_not_found",
    "register_error_abi",
    "shape_cause",
]
