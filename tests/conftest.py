"""Shared fixtures: addresses, hashes and canned backend payloads."""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest
from pycardano import Address, Network, VerificationKeyHash

from connector.kupmios import OgmiosQueryError

PAYMENT_KEY = VerificationKeyHash(bytes(range(28)))
STAKE_KEY = VerificationKeyHash(bytes([1] * 28))

ADDRESS = str(Address(payment_part=PAYMENT_KEY, staking_part=STAKE_KEY, network=Network.TESTNET))
OTHER_ADDRESS = str(Address(payment_part=STAKE_KEY, network=Network.TESTNET))
STAKE_ADDRESS = str(Address(staking_part=STAKE_KEY, network=Network.TESTNET))

TX_HASH = "ab" * 32
OTHER_TX_HASH = "cd" * 32
DATUM_HASH = "ee" * 32
SCRIPT_HASH = "5c" * 28
POLICY_ID = "aa" * 28
ASSET_NAME = "746f6b656e"  # "token"
UNIT = POLICY_ID + ASSET_NAME

# Constr 0 []
UNIT_DATUM = "d87980"


def mock_transport(routes: Dict[str, Callable[[httpx.Request], httpx.Response]]) -> httpx.MockTransport:
    """Route by path suffix; unmatched paths answer 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        for suffix, respond in routes.items():
            if path.endswith(suffix):
                return respond(request)
        return httpx.Response(404, json={"message": "not found"})

    return httpx.MockTransport(handler)


def respond_json(body: Any, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status, content=json.dumps(body).encode(),
                                          headers={"Content-Type": "application/json"})


class FakeOgmios:
    """In-process stand-in for OgmiosClient with canned results."""

    def __init__(self, **results):
        self.results = results
        self.calls: List[tuple] = []
        self.connected = False

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.connected = False

    def _answer(self, name: str, *args):
        self.calls.append((name, *args))
        result = self.results.get(name)
        if isinstance(result, Exception):
            raise result
        return result

    async def get_chain_tip(self):
        return self._answer("tip")

    async def get_block_height(self):
        return self._answer("height")

    async def get_current_epoch(self):
        return self._answer("epoch")

    async def get_protocol_parameters(self):
        return self._answer("params")

    async def get_genesis_configuration(self, era: str = "shelley"):
        return self._answer("genesis", era)

    async def get_utxos_by_output_references(self, output_refs):
        return self._answer("utxos", output_refs) or []

    async def get_reward_account_summaries(self, keys=(), scripts=()):
        return self._answer("rewards", list(keys), list(scripts))

    async def submit_transaction(self, tx_cbor: str):
        return self._answer("submit", tx_cbor)

    async def evaluate_transaction(self, tx_cbor: str, additional_utxo=()):
        return self._answer("evaluate", tx_cbor, list(additional_utxo))


def ogmios_failure(message: str, code: int = 3010) -> OgmiosQueryError:
    return OgmiosQueryError(message, code=code, operation="evaluateTransaction")


@pytest.fixture
def address() -> str:
    return ADDRESS


@pytest.fixture
def stake_address() -> str:
    return STAKE_ADDRESS
