"""Provider protocol: the operation set every backend implements."""

from typing import Iterable, List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from .models import (
    Delegation, EvalRedeemer, GenesisParameters, OutRef, PlutusDatum,
    ProtocolParameters, ScriptRef, Tip, UTxO, UtxoList,
)

RefLike = Union[OutRef, Tuple[str, int], str]


@runtime_checkable
class Provider(Protocol):
    """
    Provider-agnostic view of the ledger.

    Blockfrost, Maestro, Kupmios and UTxO-RPC implementations are
    interchangeable behind this interface. Operations a backend cannot serve
    raise NotImplementedByProviderError.
    """

    name: str

    async def get_protocol_parameters(self) -> ProtocolParameters:
        ...

    async def get_genesis_parameters(self) -> GenesisParameters:
        ...

    def network(self) -> int:
        ...

    async def current_epoch(self) -> int:
        ...

    async def get_tip(self) -> Tip:
        ...

    async def get_utxos_by_address(self, address: str) -> UtxoList:
        ...

    async def get_utxos_with_unit(self, address: str, unit: str) -> UtxoList:
        ...

    async def get_utxo_by_unit(self, unit: str) -> UTxO:
        """Exactly one UTxO holding `unit`. NotFoundError or AmbiguousResultError otherwise."""
        ...

    async def get_utxos_by_out_ref(self, refs: Sequence[RefLike]) -> UtxoList:
        """One UTxO per resolvable distinct reference, in request order."""
        ...

    async def get_delegation(self, stake_address: str) -> Delegation:
        ...

    async def get_datum(self, datum_hash: str) -> PlutusDatum:
        ...

    async def await_tx(self, tx_hash: str, check_interval: float = 0, timeout: Optional[float] = None) -> bool:
        ...

    async def submit_tx(self, tx: bytes) -> str:
        ...

    async def evaluate_tx(self, tx: bytes, additional_utxos: Iterable[UTxO] = ()) -> List[EvalRedeemer]:
        ...

    async def get_script_by_hash(self, script_hash: str) -> ScriptRef:
        ...

    async def close(self):
        ...
