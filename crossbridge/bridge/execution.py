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

"""Plan execution."""

import logging
import typing as t

from aea.helpers.logging import setup_logger
from web3.exceptions import TimeExhausted

from crossbridge.bridge.base import read_allowance
from crossbridge.bridge.operations import CREATE, SEND_STEP, flow_op
from crossbridge.bridge_types import (
    Handle,
    HandleKind,
    Plan,
    PlanStep,
    StepKind,
    TxOverrides,
)
from crossbridge.chain import ChainClient
from crossbridge.errors import ErrorHandlers, ErrorKind, ErrorResource
from crossbridge.utils import with_gas_buffer
from crossbridge.utils.encoding import ERC20


MESSAGE_STEP_REVERTED = "Transaction reverted during a plan step"
MESSAGE_STEP_FAILED = "Failed to send or confirm a plan step transaction"
MESSAGE_STEP_TIMEOUT = "Timed out waiting for a plan step transaction"


class ExecutionEngine:
    """Sends the steps of a plan, strictly in order, from a single sender.

    Each step is confirmed before the next one is sent. Nonces are assigned
    from a local counter that starts at the caller's explicit nonce or at the
    sender's pending transaction count.
    """

    def __init__(
        self,
        chain: ChainClient,
        resource: ErrorResource,
        logger: t.Optional[logging.Logger] = None,
    ) -> None:
        """Initialize object."""
        self.chain = chain
        self.resource = resource
        self.handlers = ErrorHandlers(resource)
        self.logger = logger or setup_logger(name="crossbridge.execution")
        self.operation = flow_op(resource, CREATE)

    def _approval_satisfied(self, step: PlanStep, sender: str) -> bool:
        spender, amount = ERC20.decode_input("approve", step.tx["data"])
        current = read_allowance(
            self.chain,
            step.tx["to"],
            sender,
            spender,
            self.handlers,
            f"{self.operation}:allowanceRecheck",
        )
        return current >= amount

    @staticmethod
    def _apply_overrides(tx: t.Dict, overrides: t.Optional[TxOverrides]) -> None:
        if overrides is None:
            return
        if overrides.max_fee_per_gas is not None:
            tx["maxFeePerGas"] = overrides.max_fee_per_gas
        if overrides.max_priority_fee_per_gas is not None:
            tx["maxPriorityFeePerGas"] = overrides.max_priority_fee_per_gas
        if overrides.gas_limit is not None:
            tx["gas"] = overrides.gas_limit

    def _estimate(self, step: PlanStep, tx: t.Dict) -> None:
        if tx.get("gas") is not None:
            return
        try:
            tx["gas"] = with_gas_buffer(self.chain.estimate_gas(tx))
        except Exception as e:  # pylint: disable=broad-except
            self.logger.warning(
                f"[EXECUTION] Gas estimation failed for step {step.key}, sending without a gas limit: {e}"
            )

    def _initial_nonce(self, sender: str, overrides: t.Optional[TxOverrides]) -> int:
        if overrides is not None and overrides.nonce is not None:
            return overrides.nonce
        return self.handlers.wrap_as(
            ErrorKind.RPC,
            self.operation,
            lambda: self.chain.get_transaction_count(sender, "pending"),
            context={"sender": sender},
            message="Failed to read the sender nonce.",
        )

    def _send(self, step: PlanStep, tx: t.Dict, nonce: int) -> str:
        context: t.Dict[str, t.Any] = {"step": step.key, "nonce": str(nonce)}
        operation = f"{self.operation}:{SEND_STEP}"
        try:
            tx_hash = self.chain.send_transaction(tx)
        except Exception as e:  # pylint: disable=broad-except
            raise self.handlers.to_error(
                ErrorKind.EXECUTION, operation, e, context, MESSAGE_STEP_FAILED
            ) from e

        context["txHash"] = tx_hash
        try:
            receipt = self.chain.wait_for_receipt(tx_hash)
        except TimeExhausted as e:
            raise self.handlers.to_error(
                ErrorKind.TIMEOUT, operation, e, context, MESSAGE_STEP_TIMEOUT
            ) from e
        except Exception as e:  # pylint: disable=broad-except
            raise self.handlers.to_error(
                ErrorKind.EXECUTION, operation, e, context, MESSAGE_STEP_FAILED
            ) from e

        if int(receipt.get("status", 0)) != 1:
            context["status"] = str(receipt.get("status"))
            raise self.handlers.error(
                ErrorKind.EXECUTION, operation, MESSAGE_STEP_REVERTED, context
            )
        return tx_hash

    def execute(
        self,
        plan: Plan,
        sender: str,
        kind: HandleKind,
        overrides: t.Optional[TxOverrides] = None,
    ) -> Handle:
        """Execute the plan and return a handle to track it."""
        if not plan.steps:
            raise self.handlers.error(
                ErrorKind.STATE, self.operation, "The plan has no steps to execute."
            )

        self.logger.info(
            f"[EXECUTION] Executing {plan.route} plan with {len(plan.steps)} step(s)."
        )
        nonce = self._initial_nonce(sender, overrides)
        step_hashes: t.Dict[str, str] = {}
        last_hash: t.Optional[str] = None

        for step in plan.steps:
            if step.kind == StepKind.APPROVE and self._approval_satisfied(step, sender):
                self.logger.info(
                    f"[EXECUTION] Skipping step {step.key}: allowance already sufficient."
                )
                continue

            tx = dict(step.tx)
            tx.setdefault("from", sender)
            self._apply_overrides(tx, overrides)
            tx["nonce"] = nonce
            self._estimate(step, tx)

            self.logger.info(f"[EXECUTION] Sending step {step.key} with nonce {nonce}.")
            last_hash = self._send(step, tx, nonce)
            step_hashes[step.key] = last_hash
            self.logger.info(f"[EXECUTION] Step {step.key} confirmed: {last_hash}.")
            nonce += 1

        if last_hash is None:
            raise self.handlers.error(
                ErrorKind.STATE,
                self.operation,
                "No plan step was sent.",
                context={"steps": [step.key for step in plan.steps]},
            )
        return Handle(kind=kind, tx_hash=last_hash, step_hashes=step_hashes, plan=plan)
