"""Kupmios provider: Kupo for chain-index queries, Ogmios for node queries."""

import asyncio
import logging
from typing import Iterable, List, Sequence

from pycardano import Address, ScriptHash

from ..base import BaseProvider, check_hash, check_stake_address, normalize_refs, order_by_refs, single_utxo
from ..errors import EvaluationFailedError, InvalidUnitError, SubmissionFailedError
from ..models import (
    Delegation, EvalRedeemer, GenesisParameters, PlutusDatum, ProtocolParameters, ScriptRef,
    Tip, UTxO, UtxoList, validate_address,
)
from ..outputs import OutputBuilder
from ..provider import RefLike
from ..types import encode_unit, parse_unit
from . import adapter
from .kupo import KupoClient
from .ogmios import OgmiosClient, OgmiosQueryError

logger = logging.getLogger(__name__)

STAKE_PREFIXES = ("stake1", "stake_test1")


class KupmiosProvider(BaseProvider):
    """
    Ledger access through Kupo and Ogmios.

    Inline datums and reference scripts come from Kupo side lookups and are
    best-effort: failures are reported on UtxoList.warnings.
    """
    NAME = "kupmios"
    DEFAULT_POLL_INTERVAL = 5.0

    def __init__(
        self,
        ogmios: OgmiosClient,
        kupo: KupoClient,
        network: str = "mainnet",
        *,
        max_concurrency: int = 8,
    ):
        super().__init__(network, max_concurrency)
        self.ogmios = ogmios
        self.kupo = kupo
        self.builder = OutputBuilder(resolve_script=self.get_script_by_hash, best_effort=True)
        self._connect_lock = asyncio.Lock()

    async def _node(self) -> OgmiosClient:
        # Concurrent first calls share one connection
        if not self.ogmios.is_connected:
            async with self._connect_lock:
                if not self.ogmios.is_connected:
                    await self.ogmios.connect()
        return self.ogmios

    async def close(self):
        await self.ogmios.disconnect()
        await self.kupo.close()

    async def get_protocol_parameters(self) -> ProtocolParameters:
        return adapter.protocol_parameters(await (await self._node()).get_protocol_parameters())

    async def get_genesis_parameters(self) -> GenesisParameters:
        return adapter.genesis_parameters(await (await self._node()).get_genesis_configuration("shelley"))

    async def current_epoch(self) -> int:
        return await (await self._node()).get_current_epoch()

    async def get_tip(self) -> Tip:
        node = await self._node()
        point = await node.get_chain_tip()
        height = await node.get_block_height()
        return adapter.tip(point, height)

    async def _adapt_matches(self, matches: List[dict]) -> UtxoList:
        result = UtxoList()
        for match in matches:
            result.append(await adapter.adapt_match(match, self.kupo, self.builder, result))
        return result

    async def get_utxos_by_address(self, address: str) -> UtxoList:
        address = validate_address(address, "get_utxos_by_address")
        return await self._adapt_matches(await self.kupo.matches(address, operation="get_utxos_by_address"))

    async def get_utxos_with_unit(self, address: str, unit: str) -> UtxoList:
        address = validate_address(address, "get_utxos_with_unit")
        policy_id, asset_name = parse_unit(unit)
        matches = await self.kupo.matches(
            address,
            policy_id=policy_id or None,
            asset_name=asset_name or None,
            operation="get_utxos_with_unit",
        )
        utxos = await self._adapt_matches(matches)
        if not policy_id:
            return utxos
        unit = encode_unit(policy_id, asset_name)
        # Kupo filters by policy; a policy-only unit still needs the exact asset
        return UtxoList((u for u in utxos if u.output.value.quantity_of(unit) > 0), warnings=utxos.warnings)

    async def get_utxo_by_unit(self, unit: str) -> UTxO:
        policy_id, asset_name = parse_unit(unit)
        if not policy_id:
            raise InvalidUnitError("lovelace is held by every UTxO", operation="get_utxo_by_unit", key=unit)
        pattern = f"{policy_id}.{asset_name or '*'}"
        utxos = await self._adapt_matches(await self.kupo.matches(pattern, operation="get_utxo_by_unit"))
        unit = encode_unit(policy_id, asset_name)
        return single_utxo([u for u in utxos if u.output.value.quantity_of(unit) > 0], unit)

    async def get_utxos_by_out_ref(self, refs: Sequence[RefLike]) -> UtxoList:
        wanted = normalize_refs(refs)
        if not wanted:
            return UtxoList()
        raw = await (await self._node()).get_utxos_by_output_references(
            [{"transaction": {"id": r.tx_hash}, "index": r.index} for r in wanted]
        )
        return order_by_refs(wanted, [adapter.utxo_from_ogmios(u) for u in raw])

    async def get_delegation(self, stake_address: str) -> Delegation:
        stake_address = check_stake_address(stake_address, "get_delegation", STAKE_PREFIXES)
        credential = Address.from_primitive(stake_address).staking_part
        node = await self._node()
        if isinstance(credential, ScriptHash):
            result = await node.get_reward_account_summaries(scripts=[credential.payload.hex()])
        else:
            result = await node.get_reward_account_summaries(keys=[credential.payload.hex()])
        return adapter.delegation(result, credential.payload.hex())

    async def get_datum(self, datum_hash: str) -> PlutusDatum:
        datum_hash = check_hash(datum_hash, "get_datum", "datum hash")
        return adapter.datum_from_kupo(await self.kupo.datum(datum_hash), datum_hash)

    async def get_script_by_hash(self, script_hash: str) -> ScriptRef:
        script_hash = check_hash(script_hash, "get_script_by_hash", "script hash", 56)
        return adapter.script_from_kupo(await self.kupo.script(script_hash), script_hash)

    async def _is_confirmed(self, tx_hash: str) -> bool:
        matches = await self.kupo.matches(f"*@{tx_hash}", unspent=False, operation="await_tx")
        return any(adapter.is_confirmed_match(m) for m in matches)

    async def submit_tx(self, tx: bytes) -> str:
        try:
            tx_hash = await (await self._node()).submit_transaction(tx.hex())
        except OgmiosQueryError as e:
            raise SubmissionFailedError(f"submission rejected: {e.message}", operation="submit_tx") from e
        if not tx_hash:
            raise SubmissionFailedError("backend returned no transaction hash", operation="submit_tx")
        return tx_hash

    async def evaluate_tx(self, tx: bytes, additional_utxos: Iterable[UTxO] = ()) -> List[EvalRedeemer]:
        extra = [adapter.utxo_to_ogmios(u) for u in additional_utxos]
        try:
            result = await (await self._node()).evaluate_transaction(tx.hex(), extra)
        except OgmiosQueryError as e:
            raise EvaluationFailedError(f"evaluation failed: {e.message}", operation="evaluate_tx") from e
        return adapter.eval_redeemers(result)
