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

"""Serialization utilities."""

import enum
import types
import typing as t
from dataclasses import fields, is_dataclass


def serialize(obj: t.Any) -> t.Any:  # pylint: disable=too-many-return-statements
    """Serialize object.

    uint256 quantities do not fit a JSON number, so integers are rendered as
    decimal strings. Byte strings are rendered as 0x-prefixed hex.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: serialize(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {serialize(key): serialize(obj=value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [serialize(obj=value) for value in obj]
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, int):
        return str(obj)
    return obj


def deserialize(  # pylint: disable=too-many-return-statements
    obj: t.Any, otype: t.Any
) -> t.Any:
    """Deserialize a json object."""

    if obj is None:
        return None

    origin = getattr(otype, "__origin__", None)

    # Handle Union and Optional
    if origin is t.Union or isinstance(otype, types.UnionType):
        for arg in t.get_args(otype):
            if arg is type(None):  # noqa: E721
                continue
            try:
                return deserialize(obj, arg)
            except Exception:  # pylint: disable=broad-except  # nosec
                continue
        return None

    if origin in (list, t.List):
        (atype,) = t.get_args(otype) or (t.Any,)
        return [deserialize(arg, atype) for arg in obj]
    if origin in (dict, t.Dict):
        ktype, vtype = t.get_args(otype) or (t.Any, t.Any)
        return {
            deserialize(key, ktype): deserialize(val, vtype) for key, val in obj.items()
        }
    if isinstance(otype, enum.EnumMeta):
        return otype(obj)
    if is_dataclass(otype) and hasattr(otype, "from_json"):
        return otype.from_json(obj)
    if otype is bool:
        return bool(obj)
    if otype is int:
        return int(obj)
    if otype is bytes:
        return bytes.fromhex(obj[2:] if obj.startswith("0x") else obj)
    return obj
