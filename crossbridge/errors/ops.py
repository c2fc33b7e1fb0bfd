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

"""Resource-scoped error wrapping with raising and result-returning forms."""

import typing as t
from dataclasses import dataclass

from crossbridge.errors.exceptions import (
    BridgeError,
    ErrorEnvelope,
    ErrorKind,
    ErrorResource,
    shape_cause,
)
from crossbridge.errors.revert import decode_revert


T = t.TypeVar("T")


@dataclass(frozen=True)
class Result(t.Generic[T]):
    """Outcome of a non-raising operation."""

    ok: bool
    value: t.Optional[T] = None
    error: t.Optional[BridgeError] = None

    def unwrap(self) -> T:
        """Return the value or raise the error."""
        if not self.ok:
            raise t.cast(BridgeError, self.error)
        return t.cast(T, self.value)


def default_message(operation: str) -> str:
    """Default message of a failing operation."""
    return f"Error during {operation}."


class ErrorHandlers:
    """Error handlers bound to a resource.

    Expected usage:
        handlers = ErrorHandlers(ErrorResource.DEPOSITS)

        handlers.wrap_as(ErrorKind.CONTRACT, "deposits.op", lambda: read(), context={...})
        result = handlers.to_result("deposits.op", lambda: read())
    """

    def __init__(self, resource: ErrorResource) -> None:
        """Initialize object."""
        self.resource = resource

    def to_error(
        self,
        kind: ErrorKind,
        operation: str,
        err: t.Any,
        context: t.Optional[t.Dict[str, t.Any]] = None,
        message: t.Optional[str] = None,
    ) -> BridgeError:
        """Shape an arbitrary error; structured errors are returned unchanged."""
        if isinstance(err, BridgeError):
            return err
        error = BridgeError(
            ErrorEnvelope(
                kind=kind,
                resource=self.resource,
                operation=operation,
                message=message or default_message(operation),
                context=dict(context or {}),
                revert=decode_revert(err),
                cause=shape_cause(err),
            )
        )
        if isinstance(err, BaseException):
            error.__cause__ = err
        return error

    def error(
        self,
        kind: ErrorKind,
        operation: str,
        message: str,
        context: t.Optional[t.Dict[str, t.Any]] = None,
    ) -> BridgeError:
        """Create a structured error that has no underlying cause."""
        return BridgeError(
            ErrorEnvelope(
                kind=kind,
                resource=self.resource,
                operation=operation,
                message=message,
                context=dict(context or {}),
            )
        )

    def to_result(
        self,
        operation: str,
        fn: t.Callable[[], T],
        kind: ErrorKind = ErrorKind.INTERNAL,
        context: t.Optional[t.Dict[str, t.Any]] = None,
        message: t.Optional[str] = None,
    ) -> Result[T]:
        """Run fn, capturing any failure as a structured error result."""
        try:
            return Result(ok=True, value=fn())
        except Exception as e:  # pylint: disable=broad-except
            return Result(
                ok=False,
                error=self.to_error(kind, operation, e, context=context, message=message),
            )

    def wrap_as(
        self,
        kind: ErrorKind,
        operation: str,
        fn: t.Callable[[], T],
        context: t.Optional[t.Dict[str, t.Any]] = None,
        message: t.Optional[str] = None,
    ) -> T:
        """Run fn, raising failures as structured errors of the given kind."""
        return self.to_result(
            operation, fn, kind=kind, context=context, message=message
        ).unwrap()

    def wrap(
        self,
        operation: str,
        fn: t.Callable[[], T],
        context: t.Optional[t.Dict[str, t.Any]] = None,
        message: t.Optional[str] = None,
    ) -> T:
        """Run fn, raising failures as INTERNAL structured errors."""
        return self.wrap_as(
            ErrorKind.INTERNAL, operation, fn, context=context, message=message
        )
