"""Blockfrost REST endpoints."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import InvalidInputError
from ..rest import RestClient

logger = logging.getLogger(__name__)

PAGE_SIZE = 100

NETWORK_URLS: Dict[str, str] = {
    "mainnet": "https://cardano-mainnet.blockfrost.io/api/v0",
    "preprod": "https://cardano-preprod.blockfrost.io/api/v0",
    "preview": "https://cardano-preview.blockfrost.io/api/v0",
}


def resolve_base_url(network: str, base_url: Optional[str] = None) -> str:
    """Known network URL, or a custom one (blockfrost.io hosts get the /v0 suffix)."""
    if base_url:
        base_url = base_url.rstrip("/")
        if "blockfrost.io" in base_url and not base_url.endswith("/v0"):
            base_url = f"{base_url}/v0"
        return base_url
    if network not in NETWORK_URLS:
        raise InvalidInputError(f"no Blockfrost URL for network {network!r}", key=network)
    return NETWORK_URLS[network]


class BlockfrostClient(RestClient):
    """Raw Blockfrost calls. Returns decoded JSON, raises connector errors."""

    def __init__(
        self,
        project_id: str,
        network: str = "mainnet",
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            resolve_base_url(network, base_url),
            headers={"project_id": project_id},
            timeout=timeout,
            transport=transport,
        )

    async def latest_parameters(self) -> Dict[str, Any]:
        return await self.get("/epochs/latest/parameters", operation="get_protocol_parameters")

    async def genesis(self) -> Dict[str, Any]:
        return await self.get("/genesis", operation="get_genesis_parameters")

    async def latest_epoch(self) -> Dict[str, Any]:
        return await self.get("/epochs/latest", operation="current_epoch")

    async def latest_block(self) -> Dict[str, Any]:
        return await self.get("/blocks/latest", operation="get_tip")

    async def address_utxos(self, address: str, page: int, unit: Optional[str] = None) -> List[Dict[str, Any]]:
        path = f"/addresses/{address}/utxos" + (f"/{unit}" if unit else "")
        return await self.get(
            path, params={"page": page, "count": PAGE_SIZE}, operation="get_utxos_by_address", key=address,
        ) or []

    async def asset_addresses(self, unit: str, count: int = 2) -> List[Dict[str, Any]]:
        return await self.get(
            f"/assets/{unit}/addresses", params={"count": count}, operation="get_utxo_by_unit", key=unit,
        ) or []

    async def tx_utxos(self, tx_hash: str) -> Dict[str, Any]:
        return await self.get(f"/txs/{tx_hash}/utxos", operation="get_utxos_by_out_ref", key=tx_hash)

    async def tx(self, tx_hash: str) -> Dict[str, Any]:
        return await self.get(f"/txs/{tx_hash}", operation="await_tx", key=tx_hash)

    async def account(self, stake_address: str) -> Dict[str, Any]:
        return await self.get(f"/accounts/{stake_address}", operation="get_delegation", key=stake_address)

    async def datum_cbor(self, datum_hash: str) -> Dict[str, Any]:
        return await self.get(f"/scripts/datum/{datum_hash}/cbor", operation="get_datum", key=datum_hash)

    async def script(self, script_hash: str) -> Dict[str, Any]:
        return await self.get(f"/scripts/{script_hash}", operation="get_script_by_hash", key=script_hash)

    async def script_cbor(self, script_hash: str) -> Dict[str, Any]:
        return await self.get(f"/scripts/{script_hash}/cbor", operation="get_script_by_hash", key=script_hash)

    async def script_json(self, script_hash: str) -> Dict[str, Any]:
        return await self.get(f"/scripts/{script_hash}/json", operation="get_script_by_hash", key=script_hash)

    async def submit(self, tx: bytes) -> Any:
        return await self.post(
            "/tx/submit", content=tx, headers={"Content-Type": "application/cbor"}, operation="submit_tx",
        )

    async def evaluate(self, tx_hex: str, additional_utxo_set: List[Any]) -> Any:
        body = {"cbor": tx_hex, "additionalUtxoSet": additional_utxo_set}
        return await self.post("/utils/txs/evaluate/utxos", json_body=body, operation="evaluate_tx")
