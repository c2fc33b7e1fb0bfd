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

"""Withdrawal finalization readiness, classified from revert errors."""

import typing as t

from crossbridge.bridge_types import FinalizeReadiness, ReadinessKind
from crossbridge.errors.exceptions import error_message
from crossbridge.errors.revert import ErrorAbiRegistry, decode_revert


FINALIZED = FinalizeReadiness(kind=ReadinessKind.FINALIZED)

# Must be kept in sync with the L1 nullifier error set
REVERT_TO_READINESS: t.Dict[str, FinalizeReadiness] = {
    "WithdrawalAlreadyFinalized": FINALIZED,
    "BatchNotExecuted": FinalizeReadiness(
        kind=ReadinessKind.NOT_READY, reason="batch-not-executed"
    ),
    "LocalRootIsZero": FinalizeReadiness(
        kind=ReadinessKind.NOT_READY, reason="root-missing"
    ),
    **{
        name: FinalizeReadiness(
            kind=ReadinessKind.UNFINALIZABLE, reason="message-invalid"
        )
        for name in (
            "WrongL2Sender",
            "InvalidSelector",
            "L2WithdrawalMessageWrongLength",
            "WrongMsgLength",
            "TokenNotLegacy",
            "TokenIsLegacy",
            "InvalidProof",
        )
    },
    "InvalidChainId": FinalizeReadiness(
        kind=ReadinessKind.UNFINALIZABLE, reason="invalid-chain"
    ),
    "NotSettlementLayer": FinalizeReadiness(
        kind=ReadinessKind.UNFINALIZABLE, reason="settlement-layer"
    ),
    "OnlyEraSupported": FinalizeReadiness(
        kind=ReadinessKind.UNFINALIZABLE, reason="unsupported"
    ),
    "LocalRootMustBeZero": FinalizeReadiness(
        kind=ReadinessKind.UNFINALIZABLE, reason="unsupported"
    ),
}


def classify_readiness(
    err: t.Any, registry: t.Optional[ErrorAbiRegistry] = None
) -> FinalizeReadiness:
    """Classify whether a withdrawal can be finalized from the error a finalization attempt raised."""
    revert = decode_revert(err, registry)
    name = revert.name if revert is not None else None

    if name and name in REVERT_TO_READINESS:
        return REVERT_TO_READINESS[name]

    message = (error_message(err) or "").lower()
    if "paused" in message:
        return FinalizeReadiness(kind=ReadinessKind.NOT_READY, reason="paused")

    if revert is not None:
        return FinalizeReadiness(
            kind=ReadinessKind.UNFINALIZABLE,
            reason="unsupported",
            detail=name or revert.selector,
        )

    return FinalizeReadiness(
        kind=ReadinessKind.NOT_READY, reason="unknown", detail=message or None
    )
