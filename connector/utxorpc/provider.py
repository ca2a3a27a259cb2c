"""UTxO-RPC provider."""

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from ..aggregate import walk_cursor
from ..base import BaseProvider, check_hash, normalize_refs, order_by_refs, single_utxo
from ..errors import (
    ConnectorTimeoutError, EvaluationFailedError, InvalidInputError, InvalidUnitError, ProviderInternalError,
    RateLimitedError, SubmissionFailedError,
)
from ..models import EvalRedeemer, ProtocolParameters, Tip, UTxO, UtxoList, address_bytes, validate_address
from ..provider import RefLike
from ..types import encode_unit, parse_unit
from . import adapter
from .client import UtxorpcClient

logger = logging.getLogger(__name__)


class UtxorpcProvider(BaseProvider):
    """
    Ledger access over UTxO-RPC.

    Genesis, epoch, delegation, datum and script lookups are not part of the
    query service and raise NotImplementedByProviderError.
    """
    NAME = "utxorpc"

    def __init__(self, client: UtxorpcClient, network: str = "mainnet", *, max_concurrency: int = 8):
        super().__init__(network, max_concurrency)
        self.client = client

    async def close(self):
        await self.client.close()

    async def get_protocol_parameters(self) -> ProtocolParameters:
        return adapter.protocol_parameters(await self.client.read_params())

    async def get_tip(self) -> Tip:
        point = await self.client.read_tip()
        return adapter.tip(point, await self.client.fetch_block(point))

    async def _search(self, **query) -> UtxoList:
        async def page(token: Optional[str]) -> Tuple[list, Optional[str]]:
            resp = await self.client.search_utxos(start_token=token, **query)
            return resp.get("items") or [], resp.get("next_token") or None

        return UtxoList(adapter.adapt_utxo(item) for item in await walk_cursor(page))

    async def get_utxos_by_address(self, address: str) -> UtxoList:
        address = validate_address(address, "get_utxos_by_address")
        return await self._search(address=address_bytes(address))

    def _asset_query(self, unit: str, operation: str) -> Tuple[str, dict]:
        policy_id, asset_name = parse_unit(unit)
        if not policy_id:
            raise InvalidUnitError("lovelace is not an asset", operation=operation, key=unit)
        return encode_unit(policy_id, asset_name), {
            "policy_id": bytes.fromhex(policy_id),
            "asset_name": bytes.fromhex(asset_name) if asset_name else None,
        }

    async def get_utxos_with_unit(self, address: str, unit: str) -> UtxoList:
        address = validate_address(address, "get_utxos_with_unit")
        unit, query = self._asset_query(unit, "get_utxos_with_unit")
        utxos = await self._search(address=address_bytes(address), **query)
        return UtxoList(u for u in utxos if u.output.value.quantity_of(unit) > 0)

    async def get_utxo_by_unit(self, unit: str) -> UTxO:
        unit, query = self._asset_query(unit, "get_utxo_by_unit")
        utxos = await self._search(**query)
        return single_utxo([u for u in utxos if u.output.value.quantity_of(unit) > 0], unit)

    async def get_utxos_by_out_ref(self, refs: Sequence[RefLike]) -> UtxoList:
        wanted = normalize_refs(refs)
        if not wanted:
            return UtxoList()
        items = await self.client.read_utxos([{"hash": bytes.fromhex(r.tx_hash), "index": r.index} for r in wanted])
        return order_by_refs(wanted, [adapter.adapt_utxo(i) for i in items])

    async def await_tx(self, tx_hash: str, check_interval: float = 0, timeout: Optional[float] = None) -> bool:
        """Follows the server's wait stream instead of polling; `check_interval` is unused."""
        tx_hash = check_hash(tx_hash, "await_tx", "tx hash")
        try:
            async with asyncio.timeout(timeout):
                async for event in self.client.wait_for_tx(bytes.fromhex(tx_hash)):
                    logger.debug(f"{tx_hash} stage {event.get('stage')}")
                    if adapter.is_confirmed_stage(event):
                        return True
        except TimeoutError:
            raise ConnectorTimeoutError(f"not confirmed within {timeout}s", operation="await_tx", key=tx_hash)
        logger.warning(f"Wait stream for {tx_hash} ended before confirmation")
        return False

    async def submit_tx(self, tx: bytes) -> str:
        try:
            ref = await self.client.submit_tx(tx)
        except RateLimitedError:
            raise
        except (InvalidInputError, ProviderInternalError) as e:
            raise SubmissionFailedError(f"submission rejected: {e}", operation="submit_tx") from e
        if not ref:
            raise SubmissionFailedError("backend returned no transaction hash", operation="submit_tx")
        return ref.hex() if isinstance(ref, bytes) else str(ref)

    async def evaluate_tx(self, tx: bytes, additional_utxos: Iterable[UTxO] = ()) -> List[EvalRedeemer]:
        if list(additional_utxos):
            raise InvalidInputError("additional UTxOs are not supported", operation="evaluate_tx")
        try:
            report = await self.client.eval_tx(tx)
        except RateLimitedError:
            raise
        except (InvalidInputError, ProviderInternalError) as e:
            raise EvaluationFailedError(f"evaluation failed: {e}", operation="evaluate_tx") from e
        return adapter.eval_redeemers(report)
