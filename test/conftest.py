"""Shared fixtures: in-memory stand-ins for the relayer and token bridge contracts."""

from collections import Counter
from typing import Any
from unittest.mock import MagicMock

import pytest
from hexbytes import HexBytes
from web3 import Web3

from token_relayer_admin.chains import ChainId
from token_relayer_admin.config import RegistrationConfig, RunContext

ZERO_ADDRESS = "0x" + "0" * 40
RELAYER_ADDRESS = Web3.to_checksum_address("0xcafd2f0a35a4459fa40c0517e17e6fa2939441ca")
BRIDGE_ADDRESS = Web3.to_checksum_address("0x3ee18b2214aff97000d974cf647e7c347e8fa585")

WETH = Web3.to_checksum_address("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")
USDC = Web3.to_checksum_address("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
WRAPPED_SOL = Web3.to_checksum_address("0xd31a59c85ae9d8edefec411d448f90841571b89c")

SOL_MINT = bytes.fromhex("069b8857feab8184fb687f634618c035dac439dc1aeb3b5598a0f00000000001")
UNATTESTED_MINT = bytes.fromhex("c6fa7af3bedbad3a3d65f36aabc97431b1bbe4c2d2f6e0e47ca60203452f5d61")


def universal(address: str) -> bytes:
    """Left-pad a 20-byte EVM address to the 32-byte form used in config."""
    return bytes(12) + bytes.fromhex(address[2:])


class FakeFunctionCall:
    """Mimics a bound ContractFunction: call / estimate_gas / transact."""

    def __init__(self, contract: "FakeContract", name: str, args: tuple[Any, ...]) -> None:
        self.contract = contract
        self.name = name
        self.args = args

    def call(self) -> Any:
        return self.contract.handle_call(self.name, self.args)

    def estimate_gas(self) -> int:
        return self.contract.handle_estimate(self.name, self.args)

    def transact(self, overrides: dict[str, Any]) -> HexBytes:
        return self.contract.handle_transact(self.name, self.args, overrides)


class FakeFunctions:
    def __init__(self, contract: "FakeContract") -> None:
        self._contract = contract

    def __getattr__(self, name: str):
        def bind(*args: Any) -> FakeFunctionCall:
            self._contract.bound[name] += 1
            return FakeFunctionCall(self._contract, name, args)
        return bind


class FakeContract:
    def __init__(self) -> None:
        self.functions = FakeFunctions(self)
        self.bound: Counter[str] = Counter()
        self.reads: Counter[str] = Counter()

    def handle_call(self, name: str, args: tuple[Any, ...]) -> Any:
        raise NotImplementedError(name)

    def handle_estimate(self, name: str, args: tuple[Any, ...]) -> int:
        raise NotImplementedError(name)

    def handle_transact(self, name: str, args: tuple[Any, ...], overrides: dict[str, Any]) -> HexBytes:
        raise NotImplementedError(name)


class FakeRelayer(FakeContract):
    """Token bridge relayer holding its registry in memory.

    Transactions are mined instantly; receipts are served through `make_w3`.
    """

    GAS_ESTIMATE = 80_000

    def __init__(self, accepted: list[str] | None = None) -> None:
        super().__init__()
        self.accepted: list[str] = list(accepted or [])
        self.max_amounts: dict[str, int] = {}
        self.swap_rates: dict[str, int] = {}
        self.transactions: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.receipts: dict[str, dict[str, Any]] = {}
        self.sent: Counter[str] = Counter()

        self.revert: set[str] = set()
        self.estimate_errors: dict[str, Exception] = {}
        self.max_amount_offset = 0  # nonzero stores a different value than requested

    def _is_accepted(self, token: str) -> bool:
        return token.lower() in (t.lower() for t in self.accepted)

    def handle_call(self, name: str, args: tuple[Any, ...]) -> Any:
        self.reads[name] += 1
        match name:
            case "isAcceptedToken":
                return self._is_accepted(args[0])
            case "maxNativeSwapAmount":
                return self.max_amounts.get(args[0].lower(), 0)
            case "getAcceptedTokensList":
                return list(self.accepted)
        raise NotImplementedError(name)

    def handle_estimate(self, name: str, args: tuple[Any, ...]) -> int:
        if name in self.estimate_errors:
            raise self.estimate_errors[name]
        return self.GAS_ESTIMATE

    def handle_transact(self, name: str, args: tuple[Any, ...], overrides: dict[str, Any]) -> HexBytes:
        self.sent[name] += 1
        self.transactions.append((name, args, overrides))
        tx_hash = HexBytes(len(self.transactions).to_bytes(32, "big"))
        reverted = name in self.revert

        if not reverted:
            match name:
                case "registerToken":
                    self.accepted.append(args[1])
                case "updateMaxNativeSwapAmount":
                    self.max_amounts[args[1].lower()] = args[2] + self.max_amount_offset
                case "updateSwapRate":
                    for token, value in args[1]:
                        self.swap_rates[token.lower()] = value

        self.receipts[Web3.to_hex(tx_hash)] = {
            "status": 0 if reverted else 1,
            "transactionHash": tx_hash,
            "blockNumber": 1000 + len(self.transactions),
        }
        return tx_hash

    def calls_for(self, name: str) -> list[tuple[Any, ...]]:
        return [args for sent_name, args, _ in self.transactions if sent_name == name]


class FakeTokenBridge(FakeContract):
    def __init__(self, wrapped: dict[tuple[int, bytes], str] | None = None) -> None:
        super().__init__()
        self.wrapped = dict(wrapped or {})

    def handle_call(self, name: str, args: tuple[Any, ...]) -> Any:
        self.reads[name] += 1
        if name == "wrappedAsset":
            chain, raw = args
            return self.wrapped.get((chain, bytes(raw)), ZERO_ADDRESS)
        raise NotImplementedError(name)


def make_w3(relayer: FakeRelayer) -> MagicMock:
    """Web3 mock whose receipts come from the fake relayer."""
    w3 = MagicMock()
    w3.eth.gas_price = Web3.to_wei(5, "gwei")
    w3.eth.max_priority_fee = Web3.to_wei(2, "gwei")
    w3.eth.get_block.return_value = {"baseFeePerGas": Web3.to_wei(40, "gwei")}
    w3.eth.wait_for_transaction_receipt.side_effect = (
        lambda tx_hash, timeout=None: relayer.receipts[tx_hash]
    )
    return w3


@pytest.fixture
def context() -> RunContext:
    return RunContext(
        home_chain=ChainId.ETHEREUM,
        relayer_address=RELAYER_ADDRESS,
        bridge_address=BRIDGE_ADDRESS,
    )


@pytest.fixture
def relayer() -> FakeRelayer:
    return FakeRelayer()


@pytest.fixture
def token_bridge() -> FakeTokenBridge:
    return FakeTokenBridge({(int(ChainId.SOLANA), SOL_MINT): WRAPPED_SOL})


@pytest.fixture
def w3(relayer: FakeRelayer) -> MagicMock:
    return make_w3(relayer)


def registration_dict(
    tokens: dict[str, list[dict[str, Any]]],
    max_amounts: dict[str, str] | None = None
) -> dict[str, Any]:
    return {
        "deployedContracts": {"2": RELAYER_ADDRESS},
        "acceptedTokensList": tokens,
        "maxNativeSwapAmount": max_amounts if max_amounts is not None else {"2": "1000000000000000000"},
    }


def token_entry(raw: bytes, swap_rate: int | str) -> dict[str, Any]:
    return {"contract": raw.hex(), "swapRate": str(swap_rate)}


def make_registration(
    tokens: dict[str, list[dict[str, Any]]],
    max_amounts: dict[str, str] | None = None
) -> RegistrationConfig:
    return RegistrationConfig.from_dict(registration_dict(tokens, max_amounts))
