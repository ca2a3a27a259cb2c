"""Shared provider behaviour: argument checks, cardinality rules, result ordering."""

import logging
from abc import ABC
from typing import ClassVar, Dict, Iterable, List, Optional, Sequence

from .errors import (
    AmbiguousResultError, InvalidAddressError, InvalidInputError, NotFoundError,
    NotImplementedByProviderError,
)
from .models import (
    GenesisParameters, OutRef, PlutusDatum, ScriptRef, UTxO, UtxoList, Delegation,
    is_hex, validate_address,
)
from .polling import ConfirmationPoller
from .provider import RefLike

logger = logging.getLogger(__name__)

MAINNET = 1
TESTNET = 0

NETWORK_IDS: Dict[str, int] = {
    "mainnet": MAINNET,
    "preprod": TESTNET,
    "preview": TESTNET,
    "testnet": TESTNET,
}


def network_id(name: str) -> int:
    if name not in NETWORK_IDS:
        raise InvalidInputError(f"unknown network {name!r}", key=name)
    return NETWORK_IDS[name]


def check_hash(value: str, operation: str, what: str = "hash", length: int = 64) -> str:
    if not is_hex(value, length):
        raise InvalidInputError(f"{what} must be {length} hex characters", operation=operation, key=str(value))
    return value.lower()


def check_stake_address(address: str, operation: str, prefixes=("stake",)) -> str:
    if not isinstance(address, str) or not address.startswith(tuple(prefixes)):
        raise InvalidAddressError("expected a stake address", operation=operation, key=str(address))
    validate_address(address, operation)
    return address


def normalize_refs(refs: Sequence[RefLike]) -> List[OutRef]:
    """Parse and de-duplicate references, keeping first-seen order."""
    return list(dict.fromkeys(OutRef.of(r) for r in refs))


def order_by_refs(refs: List[OutRef], utxos: Iterable[UTxO], warnings=None) -> UtxoList:
    """Arrange UTxOs in request order, one per reference, dropping unresolved ones."""
    by_ref = {u.input: u for u in utxos}
    return UtxoList((by_ref[r] for r in refs if r in by_ref), warnings=warnings)


def single_utxo(utxos: List[UTxO], unit: str, operation: str = "get_utxo_by_unit") -> UTxO:
    if not utxos:
        raise NotFoundError("no UTxO holds this unit", operation=operation, key=unit)
    if len(utxos) > 1:
        raise AmbiguousResultError(f"unit held by {len(utxos)} UTxOs", operation=operation, key=unit)
    return utxos[0]


def single_holder(addresses: List[str], unit: str, operation: str = "get_utxo_by_unit") -> str:
    if not addresses:
        raise NotFoundError("no address holds this unit", operation=operation, key=unit)
    if len(addresses) > 1:
        raise AmbiguousResultError("unit held by more than one address", operation=operation, key=unit)
    return addresses[0]


class BaseProvider(ABC):
    """Base class for providers. Subclasses fill in the backend calls."""
    NAME: ClassVar[str] = ""
    DEFAULT_POLL_INTERVAL: ClassVar[float] = 3.0
    SETTLE_DELAY: ClassVar[float] = 0.0

    def __init__(self, network_name: str = "mainnet", max_concurrency: int = 8):
        self.network_name = network_name
        self._network_id = network_id(network_name)
        self.max_concurrency = max_concurrency
        self.settle_delay = self.SETTLE_DELAY

    @property
    def name(self) -> str:
        return self.NAME

    def network(self) -> int:
        return self._network_id

    def _unsupported(self, operation: str):
        return NotImplementedByProviderError(f"{self.NAME} does not support {operation}", operation=operation)

    async def get_genesis_parameters(self) -> GenesisParameters:
        raise self._unsupported("get_genesis_parameters")

    async def current_epoch(self) -> int:
        raise self._unsupported("current_epoch")

    async def get_delegation(self, stake_address: str) -> Delegation:
        raise self._unsupported("get_delegation")

    async def get_datum(self, datum_hash: str) -> PlutusDatum:
        raise self._unsupported("get_datum")

    async def get_script_by_hash(self, script_hash: str) -> ScriptRef:
        raise self._unsupported("get_script_by_hash")

    async def _is_confirmed(self, tx_hash: str) -> bool:
        raise self._unsupported("await_tx")

    async def await_tx(self, tx_hash: str, check_interval: float = 0, timeout: Optional[float] = None) -> bool:
        """Poll until the transaction is on chain. `timeout` is the caller's deadline in seconds."""
        tx_hash = check_hash(tx_hash, "await_tx", "tx hash")
        poller = ConfirmationPoller(
            lambda: self._is_confirmed(tx_hash),
            check_interval,
            default_interval=self.DEFAULT_POLL_INTERVAL,
            settle_delay=self.settle_delay,
            name=tx_hash,
        )
        return await poller.run(timeout)

    async def close(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
