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

"""Tests for crossbridge.serialization module."""

import typing as t

from crossbridge.bridge_types import DepositPhase, GasQuote, TxOverrides
from crossbridge.serialization import deserialize, serialize


class TestSerialize:
    """Tests for serialize."""

    def test_quantities_are_strings(self) -> None:
        """Test integers are rendered as decimal strings, booleans are not."""
        assert serialize(2**256 - 1) == str(2**256 - 1)
        assert serialize(True) is True
        assert serialize({"ok": False, "value": 0}) == {"ok": False, "value": "0"}

    def test_bytes_are_hex(self) -> None:
        """Test bytes are rendered as 0x-prefixed hex."""
        assert serialize(b"\xde\xad\xbe\xef") == "0xdeadbeef"

    def test_enums_and_dataclasses(self) -> None:
        """Test enums collapse to their values and dataclasses to dicts."""
        assert serialize([DepositPhase.L2_EXECUTED]) == ["L2_EXECUTED"]
        assert serialize(GasQuote(gas_limit=21_000, max_fee_per_gas=3)) == {
            "gas_limit": "21000",
            "max_fee_per_gas": "3",
            "max_priority_fee_per_gas": "0",
            "gas_per_pubdata": None,
        }


class TestDeserialize:
    """Tests for deserialize."""

    def test_int_and_bytes(self) -> None:
        """Test decimal strings and hex strings are parsed back."""
        assert deserialize("1000", int) == 1000
        assert deserialize("0xdeadbeef", bytes) == b"\xde\xad\xbe\xef"
        assert deserialize("deadbeef", bytes) == b"\xde\xad\xbe\xef"

    def test_optional(self) -> None:
        """Test optional values, including None."""
        assert deserialize("7", t.Optional[int]) == 7
        assert deserialize(None, t.Optional[int]) is None

    def test_optional_all_args_fail_returns_none(self) -> None:
        """Test Optional deserialization returns None when no member type fits."""
        assert deserialize("not_a_phase", t.Optional[DepositPhase]) is None

    def test_pep604_union(self) -> None:
        """Test `X | None` annotations are handled like Optional."""
        assert deserialize("7", int | None) == 7
        assert deserialize(None, int | None) is None

    def test_containers(self) -> None:
        """Test lists and dicts are deserialized member by member."""
        assert deserialize(["1", "2"], t.List[int]) == [1, 2]
        assert deserialize({"a": "L1_PENDING"}, t.Dict[str, DepositPhase]) == {
            "a": DepositPhase.L1_PENDING
        }

    def test_nested_resource(self) -> None:
        """Test resources are loaded through from_json."""
        overrides = deserialize({"nonce": "4", "gas_limit": None}, TxOverrides)

        assert overrides == TxOverrides(nonce=4)
