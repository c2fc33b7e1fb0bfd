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

"""Minimal ABI fragments of the bridge contracts."""

import typing as t


def _param(
    type_: str,
    name: str = "",
    components: t.Optional[t.List[t.Dict]] = None,
    indexed: t.Optional[bool] = None,
) -> t.Dict:
    param: t.Dict[str, t.Any] = {"name": name, "type": type_}
    if components is not None:
        param["components"] = components
    if indexed is not None:
        param["indexed"] = indexed
    return param


def _function(
    name: str,
    inputs: t.List[t.Dict],
    outputs: t.Optional[t.List[t.Dict]] = None,
    state_mutability: str = "view",
) -> t.Dict:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs or [],
        "stateMutability": state_mutability,
    }


def _error(name: str, inputs: t.Optional[t.List[t.Dict]] = None) -> t.Dict:
    return {"type": "error", "name": name, "inputs": inputs or []}


L2_TRANSACTION_REQUEST_DIRECT = [
    _param("uint256", "chainId"),
    _param("uint256", "mintValue"),
    _param("address", "l2Contract"),
    _param("uint256", "l2Value"),
    _param("bytes", "l2Calldata"),
    _param("uint256", "l2GasLimit"),
    _param("uint256", "l2GasPerPubdataByteLimit"),
    _param("bytes[]", "factoryDeps"),
    _param("address", "refundRecipient"),
]

L2_TRANSACTION_REQUEST_TWO_BRIDGES = [
    _param("uint256", "chainId"),
    _param("uint256", "mintValue"),
    _param("uint256", "l2Value"),
    _param("uint256", "l2GasLimit"),
    _param("uint256", "l2GasPerPubdataByteLimit"),
    _param("address", "refundRecipient"),
    _param("address", "secondBridgeAddress"),
    _param("uint256", "secondBridgeValue"),
    _param("bytes", "secondBridgeCalldata"),
]

NEW_PRIORITY_REQUEST_EVENT = {
    "type": "event",
    "name": "NewPriorityRequest",
    "anonymous": False,
    "inputs": [
        _param("uint256", "chainId", indexed=True),
        _param("address", "sender", indexed=True),
        _param("bytes32", "txHash", indexed=False),
        _param("uint256", "txId", indexed=False),
        _param("bytes", "data", indexed=False),
    ],
}

L1_MESSAGE_SENT_EVENT = {
    "type": "event",
    "name": "L1MessageSent",
    "anonymous": False,
    "inputs": [
        _param("uint256", "txNumberInBlock", indexed=True),
        _param("bytes32", "hash", indexed=True),
        _param("bytes", "message", indexed=False),
    ],
}

# Emitted by the L1 messenger before the sender was replaced by the tx number
L1_MESSAGE_SENT_LEGACY_EVENT = {
    "type": "event",
    "name": "L1MessageSent",
    "anonymous": False,
    "inputs": [
        _param("address", "sender", indexed=True),
        _param("bytes32", "hash", indexed=True),
        _param("bytes", "message", indexed=False),
    ],
}

FINALIZE_L1_DEPOSIT_PARAMS = [
    _param("uint256", "chainId"),
    _param("uint256", "l2BatchNumber"),
    _param("uint256", "l2MessageIndex"),
    _param("address", "l2Sender"),
    _param("uint16", "l2TxNumberInBatch"),
    _param("bytes", "message"),
    _param("bytes32[]", "merkleProof"),
]

MAILBOX_ERRORS = [
    _error("MsgValueTooLow", [_param("uint256", "required"), _param("uint256", "provided")]),
    _error("ValidateTxnNotEnoughGas"),
    _error("TooManyFactoryDeps"),
    _error("TxnBodyGasLimitNotEnoughGas"),
    _error("NotEnoughGas"),
]

IBRIDGEHUB_ABI = [
    _function("assetRouter", [], [_param("address")]),
    _function("baseToken", [_param("uint256", "_chainId")], [_param("address")]),
    _function(
        "l2TransactionBaseCost",
        [
            _param("uint256", "_chainId"),
            _param("uint256", "_gasPrice"),
            _param("uint256", "_l2GasLimit"),
            _param("uint256", "_l2GasPerPubdataByteLimit"),
        ],
        [_param("uint256")],
    ),
    _function(
        "requestL2TransactionDirect",
        [_param("tuple", "_request", components=L2_TRANSACTION_REQUEST_DIRECT)],
        [_param("bytes32", "canonicalTxHash")],
        "payable",
    ),
    _function(
        "requestL2TransactionTwoBridges",
        [_param("tuple", "_request", components=L2_TRANSACTION_REQUEST_TWO_BRIDGES)],
        [_param("bytes32", "canonicalTxHash")],
        "payable",
    ),
    NEW_PRIORITY_REQUEST_EVENT,
    *MAILBOX_ERRORS,
]

IL1_ASSET_ROUTER_ABI = [
    _function("L1_NULLIFIER", [], [_param("address")]),
]

IL1_NULLIFIER_ABI = [
    _function("l1NativeTokenVault", [], [_param("address")]),
    _function(
        "isWithdrawalFinalized",
        [
            _param("uint256", "_chainId"),
            _param("uint256", "_l2BatchNumber"),
            _param("uint256", "_l2MessageIndex"),
        ],
        [_param("bool")],
    ),
    _function(
        "finalizeDeposit",
        [
            _param(
                "tuple", "_finalizeWithdrawalParams", components=FINALIZE_L1_DEPOSIT_PARAMS
            )
        ],
        [],
        "nonpayable",
    ),
    _error("WithdrawalAlreadyFinalized"),
    _error("BatchNotExecuted", [_param("uint256", "batchNumber")]),
    _error("LocalRootIsZero"),
    _error("LocalRootMustBeZero"),
    _error("WrongL2Sender", [_param("address", "providedL2Sender")]),
    _error("InvalidSelector", [_param("bytes4", "func")]),
    _error("L2WithdrawalMessageWrongLength", [_param("uint256", "messageLen")]),
    _error("WrongMsgLength", [_param("uint256", "expected"), _param("uint256", "actual")]),
    _error("TokenNotLegacy"),
    _error("TokenIsLegacy"),
    _error("InvalidProof"),
    _error("InvalidChainId"),
    _error("NotSettlementLayer"),
    _error("OnlyEraSupported"),
]

IERC20_ABI = [
    _function(
        "allowance",
        [_param("address", "owner"), _param("address", "spender")],
        [_param("uint256")],
    ),
    _function(
        "approve",
        [_param("address", "spender"), _param("uint256", "amount")],
        [_param("bool")],
        "nonpayable",
    ),
    _function("balanceOf", [_param("address", "account")], [_param("uint256")]),
    _error(
        "ERC20InsufficientAllowance",
        [
            _param("address", "spender"),
            _param("uint256", "allowance"),
            _param("uint256", "needed"),
        ],
    ),
    _error(
        "ERC20InsufficientBalance",
        [
            _param("address", "sender"),
            _param("uint256", "balance"),
            _param("uint256", "needed"),
        ],
    ),
]

IL2_BASE_TOKEN_ABI = [
    _function("withdraw", [_param("address", "_l1Receiver")], [], "payable"),
]

IL2_ASSET_ROUTER_ABI = [
    _function(
        "withdraw",
        [_param("bytes32", "_assetId"), _param("bytes", "_assetData")],
        [_param("bytes32")],
        "nonpayable",
    ),
]

L2_NATIVE_TOKEN_VAULT_ABI = [
    _function(
        "ensureTokenIsRegistered",
        [_param("address", "_nativeToken")],
        [_param("bytes32")],
        "nonpayable",
    ),
    _function("assetId", [_param("address", "token")], [_param("bytes32")]),
    _function("l2TokenAddress", [_param("address", "_l1Token")], [_param("address")]),
    _function("BASE_TOKEN_ASSET_ID", [], [_param("bytes32")]),
    _error("AssetIdNotSupported", [_param("bytes32", "assetId")]),
    _error("TokenNotSupported", [_param("address", "token")]),
    _error("EmptyToken"),
]

INTEROP_CALL_STARTER = [
    _param("bytes", "to"),
    _param("bytes", "data"),
    _param("bytes[]", "callAttributes"),
]

INTEROP_CENTER_ABI = [
    _function(
        "sendBundle",
        [
            _param("bytes", "_destinationChainId"),
            _param("tuple[]", "_callStarters", components=INTEROP_CALL_STARTER),
            _param("bytes[]", "_bundleAttributes"),
        ],
        [_param("bytes32", "bundleHash")],
        "payable",
    ),
]

IERC7786_ATTRIBUTES_ABI = [
    _function("executionAddress", [_param("bytes", "_executionAddress")], [], "pure"),
    _function("indirectCall", [_param("uint256", "_indirectCallMessageValue")], [], "pure"),
    _function("interopCallValue", [_param("uint256", "_interopCallValue")], [], "pure"),
    _function("unbundlerAddress", [_param("bytes", "_unbundlerAddress")], [], "pure"),
]
