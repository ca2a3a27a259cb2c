"""Blockfrost provider."""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

import httpx

from ..aggregate import fan_out, walk_pages
from ..base import (
    BaseProvider, check_hash, check_stake_address, normalize_refs, order_by_refs, single_holder, single_utxo,
)
from ..errors import (
    APIError, ConnectorError, EvaluationFailedError, NotFoundError, SubmissionFailedError,
)
from ..models import (
    Delegation, EvalRedeemer, GenesisParameters, PlutusDatum, ProtocolParameters, ScriptRef,
    Tip, UTxO, UtxoList, NATIVE, normalize_language, validate_address,
)
from ..outputs import OutputBuilder, decode_plutus_data
from ..provider import RefLike
from ..rest import RestClient
from ..types import encode_unit, parse_unit
from . import adapter
from .client import PAGE_SIZE, BlockfrostClient

logger = logging.getLogger(__name__)


class BlockfrostProvider(BaseProvider):
    """
    Ledger access through the Blockfrost REST API.

    Reference scripts on UTxOs are resolved strictly: a failed script lookup
    fails the listing.
    """
    NAME = "blockfrost"
    DEFAULT_POLL_INTERVAL = 3.0
    SETTLE_DELAY = 1.0

    def __init__(
        self,
        project_id: str,
        network: str = "mainnet",
        base_url: Optional[str] = None,
        *,
        submit_endpoints: Sequence[str] = (),
        max_concurrency: int = 8,
        timeout: float = 30.0,
        settle_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(network, max_concurrency)
        self.client = BlockfrostClient(project_id, network, base_url, timeout=timeout, transport=transport)
        self.submit_clients = [RestClient(url, timeout=timeout, transport=transport) for url in submit_endpoints]
        if settle_delay is not None:
            self.settle_delay = settle_delay
        self.builder = OutputBuilder(resolve_script=self.get_script_by_hash)

    async def close(self):
        await self.client.close()
        for c in self.submit_clients:
            await c.close()

    async def get_protocol_parameters(self) -> ProtocolParameters:
        return adapter.protocol_parameters(await self.client.latest_parameters())

    async def get_genesis_parameters(self) -> GenesisParameters:
        return adapter.genesis_parameters(await self.client.genesis())

    async def current_epoch(self) -> int:
        return int((await self.client.latest_epoch())["epoch"])

    async def get_tip(self) -> Tip:
        return adapter.tip(await self.client.latest_block())

    async def _adapt_all(self, items: List[dict]) -> UtxoList:
        return UtxoList([await adapter.adapt_utxo(item, self.builder) for item in items])

    async def get_utxos_by_address(self, address: str) -> UtxoList:
        address = validate_address(address, "get_utxos_by_address")
        items = await walk_pages(lambda page: self.client.address_utxos(address, page), PAGE_SIZE)
        return await self._adapt_all(items)

    async def get_utxos_with_unit(self, address: str, unit: str) -> UtxoList:
        address = validate_address(address, "get_utxos_with_unit")
        unit = encode_unit(*parse_unit(unit))
        items = await walk_pages(lambda page: self.client.address_utxos(address, page, unit), PAGE_SIZE)
        return await self._adapt_all(items)

    async def get_utxo_by_unit(self, unit: str) -> UTxO:
        unit = encode_unit(*parse_unit(unit))
        holders = await self.client.asset_addresses(unit, count=2)
        address = single_holder([h["address"] for h in holders], unit)
        return single_utxo(await self.get_utxos_with_unit(address, unit), unit)

    async def get_utxos_by_out_ref(self, refs: Sequence[RefLike]) -> UtxoList:
        wanted = normalize_refs(refs)
        txs: Dict[str, dict] = await fan_out(
            [r.tx_hash for r in wanted], self.client.tx_utxos, self.max_concurrency,
        )
        found: List[UTxO] = []
        for ref in wanted:
            outputs = (txs.get(ref.tx_hash) or {}).get("outputs", [])
            match = next(
                (o for o in outputs if o.get("output_index") == ref.index and not o.get("collateral")),
                None,
            )
            if match is None:
                logger.debug(f"{ref} not among transaction outputs")
                continue
            found.append(await adapter.adapt_utxo(match, self.builder, tx_hash=ref.tx_hash))
        return order_by_refs(wanted, found)

    async def get_delegation(self, stake_address: str) -> Delegation:
        stake_address = check_stake_address(stake_address, "get_delegation")
        try:
            account = await self.client.account(stake_address)
        except NotFoundError:
            return Delegation.inactive()
        return adapter.delegation(account)

    async def get_datum(self, datum_hash: str) -> PlutusDatum:
        datum_hash = check_hash(datum_hash, "get_datum", "datum hash")
        body = await self.client.datum_cbor(datum_hash)
        return decode_plutus_data(body.get("cbor", ""))

    async def get_script_by_hash(self, script_hash: str) -> ScriptRef:
        script_hash = check_hash(script_hash, "get_script_by_hash", "script hash", 56)
        info = await self.client.script(script_hash)
        if normalize_language(info.get("type", "")) == NATIVE:
            return adapter.native_script_ref(await self.client.script_json(script_hash))
        return adapter.script_ref(info, await self.client.script_cbor(script_hash))

    async def _is_confirmed(self, tx_hash: str) -> bool:
        tx = await self.client.tx(tx_hash)
        return bool(tx and tx.get("block"))

    async def submit_tx(self, tx: bytes) -> str:
        """Custom endpoints are tried in order before the Blockfrost one; first success wins."""
        for client in self.submit_clients:
            try:
                tx_hash = await client.post(
                    client.base_url, content=tx, headers={"Content-Type": "application/cbor"}, operation="submit_tx",
                )
            except ConnectorError as e:
                logger.warning(f"Submit via {client.base_url} failed: {e}")
                continue
            if tx_hash:
                return str(tx_hash)
        try:
            tx_hash = await self.client.submit(tx)
        except APIError as e:
            raise SubmissionFailedError(f"submission rejected: {e.message}", operation="submit_tx") from e
        if not tx_hash:
            raise SubmissionFailedError("backend returned no transaction hash", operation="submit_tx")
        return str(tx_hash)

    async def evaluate_tx(self, tx: bytes, additional_utxos: Iterable[UTxO] = ()) -> List[EvalRedeemer]:
        extra = [adapter.additional_utxo(u) for u in additional_utxos]
        try:
            response = await self.client.evaluate(tx.hex(), extra)
        except APIError as e:
            if e.status_code == 400:
                raise EvaluationFailedError(f"evaluation rejected: {e.message}", operation="evaluate_tx") from e
            raise
        return adapter.eval_redeemers(response)
