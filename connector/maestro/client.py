"""Maestro REST endpoints."""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..errors import InvalidInputError
from ..rest import RestClient

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
NETWORKS = ("mainnet", "preprod", "preview")


def resolve_base_url(network: str, base_url: Optional[str] = None) -> str:
    if base_url:
        return base_url.rstrip("/")
    if network not in NETWORKS:
        raise InvalidInputError(f"no Maestro URL for network {network!r}", key=network)
    return f"https://{network}.gomaestro-api.org/v1"


def _data(body: Any) -> Any:
    return body.get("data") if isinstance(body, dict) else body


class MaestroClient(RestClient):
    """Raw Maestro calls. Most responses wrap their payload in {"data": ...}."""

    def __init__(
        self,
        api_key: str,
        network: str = "mainnet",
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise InvalidInputError("Maestro needs an API key", key=network)
        super().__init__(
            resolve_base_url(network, base_url),
            headers={"api-key": api_key},
            timeout=timeout,
            transport=transport,
        )

    async def protocol_parameters(self) -> Dict[str, Any]:
        return _data(await self.get("/protocol-parameters", operation="get_protocol_parameters"))

    async def chain_tip(self) -> Dict[str, Any]:
        return _data(await self.get("/chain-tip", operation="get_tip"))

    async def current_epoch(self) -> Dict[str, Any]:
        return _data(await self.get("/epochs/current", operation="current_epoch"))

    async def address_utxos(
        self, address: str, cursor: Optional[str] = None, asset: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        params: Dict[str, Any] = {"with_cbor": "true", "resolve_datums": "true", "count": PAGE_SIZE}
        if cursor:
            params["cursor"] = cursor
        if asset:
            params["asset"] = asset
        body = await self.get(f"/addresses/{address}/utxos", params=params,
                              operation="get_utxos_by_address", key=address)
        return _data(body) or [], body.get("next_cursor")

    async def asset_addresses(self, unit: str, count: int = 2) -> List[Dict[str, Any]]:
        body = await self.get(f"/assets/{unit}/addresses", params={"count": count},
                              operation="get_utxo_by_unit", key=unit)
        return _data(body) or []

    async def txo(self, tx_hash: str, index: int) -> Dict[str, Any]:
        body = await self.get(f"/transactions/{tx_hash}/outputs/{index}/txo", params={"with_cbor": "true"},
                              operation="get_utxos_by_out_ref", key=f"{tx_hash}#{index}")
        return _data(body)

    async def account(self, stake_address: str) -> Dict[str, Any]:
        return await self.get(f"/accounts/{stake_address}", operation="get_delegation", key=stake_address)

    async def block(self, block_hash: str) -> Dict[str, Any]:
        return _data(await self.get(f"/blocks/{block_hash}", operation="get_delegation", key=block_hash))

    async def datum(self, datum_hash: str) -> Dict[str, Any]:
        return _data(await self.get(f"/datums/{datum_hash}", operation="get_datum", key=datum_hash))

    async def script(self, script_hash: str) -> Dict[str, Any]:
        return _data(await self.get(f"/scripts/{script_hash}", operation="get_script_by_hash", key=script_hash))

    async def tx_cbor(self, tx_hash: str) -> Any:
        return _data(await self.get(f"/transactions/{tx_hash}/cbor", operation="await_tx", key=tx_hash))

    async def submit(self, tx: bytes) -> Any:
        return await self.post("/txmanager", content=tx, headers={"Content-Type": "application/cbor"},
                               operation="submit_tx")

    async def evaluate(self, tx_hex: str, additional_utxos: List[Dict[str, Any]]) -> Any:
        body: Dict[str, Any] = {"cbor": tx_hex}
        if additional_utxos:
            body["additional_utxos"] = additional_utxos
        return await self.post("/transactions/evaluate", json_body=body, operation="evaluate_tx")
