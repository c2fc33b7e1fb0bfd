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

"""JSON resource representation."""

import typing as t
from dataclasses import fields

from crossbridge.serialization import deserialize, serialize


class Resource:
    """JSON-convertible dataclass mixin.

    Resources are never written to disk: every value is re-derivable from
    chain data, so only the conversion to and from JSON-like dicts is kept.
    """

    @property
    def json(self) -> t.Dict:
        """To dictionary object."""
        obj = {}
        for field in fields(self):  # type: ignore
            if field.name.startswith("_"):
                continue
            obj[field.name] = serialize(getattr(self, field.name))
        return obj

    @classmethod
    def from_json(cls, obj: t.Dict) -> "Resource":
        """Load resource from json."""
        hints = t.get_type_hints(cls)
        kwargs = {}
        for field in fields(cls):  # type: ignore
            if field.name.startswith("_") or field.name not in obj:
                continue
            kwargs[field.name] = deserialize(
                obj=obj[field.name], otype=hints[field.name]
            )
        return cls(**kwargs)
