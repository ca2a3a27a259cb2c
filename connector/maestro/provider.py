"""Maestro provider."""

import logging
from typing import Iterable, List, Optional, Sequence

import httpx

from ..aggregate import fan_out, walk_cursor
from ..base import (
    BaseProvider, check_hash, check_stake_address, normalize_refs, order_by_refs, single_holder, single_utxo,
)
from ..errors import APIError, EvaluationFailedError, NotFoundError, SubmissionFailedError
from ..models import (
    Delegation, EvalRedeemer, OutRef, PlutusDatum, ProtocolParameters, ScriptRef, Tip, UTxO, UtxoList,
    validate_address,
)
from ..numeric import parse_int
from ..outputs import decode_plutus_data
from ..provider import RefLike
from ..types import encode_unit, parse_unit
from . import adapter
from .client import MaestroClient

logger = logging.getLogger(__name__)


class MaestroProvider(BaseProvider):
    """
    Ledger access through the Maestro REST API.

    Confirmation is optimistic: a transaction counts as confirmed as soon as
    Maestro can return its CBOR.
    """
    NAME = "maestro"
    DEFAULT_POLL_INTERVAL = 3.0

    def __init__(
        self,
        api_key: str,
        network: str = "mainnet",
        base_url: Optional[str] = None,
        *,
        max_concurrency: int = 8,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(network, max_concurrency)
        self.client = MaestroClient(api_key, network, base_url, timeout=timeout, transport=transport)

    async def close(self):
        await self.client.close()

    async def get_protocol_parameters(self) -> ProtocolParameters:
        return adapter.protocol_parameters(await self.client.protocol_parameters())

    async def current_epoch(self) -> int:
        return parse_int((await self.client.current_epoch()).get("epoch_no"), "epoch_no")

    async def get_tip(self) -> Tip:
        return adapter.tip(await self.client.chain_tip())

    async def _walk(self, address: str, asset: Optional[str] = None) -> UtxoList:
        items = await walk_cursor(lambda cursor: self.client.address_utxos(address, cursor, asset))
        return UtxoList(adapter.adapt_utxo(item) for item in items)

    async def get_utxos_by_address(self, address: str) -> UtxoList:
        return await self._walk(validate_address(address, "get_utxos_by_address"))

    async def get_utxos_with_unit(self, address: str, unit: str) -> UtxoList:
        address = validate_address(address, "get_utxos_with_unit")
        policy_id, asset_name = parse_unit(unit)
        if not policy_id:
            return await self._walk(address)
        return await self._walk(address, encode_unit(policy_id, asset_name))

    async def get_utxo_by_unit(self, unit: str) -> UTxO:
        unit = encode_unit(*parse_unit(unit))
        holders = await self.client.asset_addresses(unit, count=2)
        address = single_holder([h["address"] for h in holders], unit)
        return single_utxo(await self.get_utxos_with_unit(address, unit), unit)

    async def get_utxos_by_out_ref(self, refs: Sequence[RefLike]) -> UtxoList:
        wanted = normalize_refs(refs)

        async def fetch(ref: OutRef) -> UTxO:
            return adapter.adapt_utxo(await self.client.txo(ref.tx_hash, ref.index))

        found = await fan_out(wanted, fetch, self.max_concurrency)
        return order_by_refs(wanted, found.values())

    async def get_delegation(self, stake_address: str) -> Delegation:
        stake_address = check_stake_address(stake_address, "get_delegation")
        try:
            body = await self.client.account(stake_address)
        except NotFoundError:
            return Delegation.inactive()
        block_hash = (body.get("last_updated") or {}).get("block_hash")
        epoch = None
        if block_hash:
            try:
                epoch = (await self.client.block(block_hash)).get("epoch")
            except NotFoundError:
                logger.debug(f"Block {block_hash} not found, delegation epoch unknown")
        return adapter.delegation(body.get("data") or {}, epoch)

    async def get_datum(self, datum_hash: str) -> PlutusDatum:
        datum_hash = check_hash(datum_hash, "get_datum", "datum hash")
        data = await self.client.datum(datum_hash)
        return decode_plutus_data((data or {}).get("bytes", ""))

    async def get_script_by_hash(self, script_hash: str) -> ScriptRef:
        script_hash = check_hash(script_hash, "get_script_by_hash", "script hash", 56)
        return adapter.script_ref(await self.client.script(script_hash) or {})

    async def _is_confirmed(self, tx_hash: str) -> bool:
        return bool(await self.client.tx_cbor(tx_hash))

    async def submit_tx(self, tx: bytes) -> str:
        try:
            tx_hash = await self.client.submit(tx)
        except APIError as e:
            raise SubmissionFailedError(f"submission rejected: {e.message}", operation="submit_tx") from e
        if isinstance(tx_hash, dict):
            tx_hash = tx_hash.get("data")
        if not tx_hash:
            raise SubmissionFailedError("backend returned no transaction hash", operation="submit_tx")
        return str(tx_hash)

    async def evaluate_tx(self, tx: bytes, additional_utxos: Iterable[UTxO] = ()) -> List[EvalRedeemer]:
        extra = [adapter.additional_utxo(u) for u in additional_utxos]
        try:
            result = await self.client.evaluate(tx.hex(), extra)
        except APIError as e:
            if e.status_code == 400:
                raise EvaluationFailedError(f"evaluation rejected: {e.message}", operation="evaluate_tx") from e
            raise
        return adapter.eval_redeemers(result)
