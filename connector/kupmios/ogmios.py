"""Ogmios WebSocket client (JSON-RPC 2.0, Ogmios v6)."""

import asyncio
import base64
import json
import logging
from typing import Any, Dict, List, Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import WebSocketException
from websockets.protocol import State

from ..errors import ProviderInternalError

logger = logging.getLogger(__name__)


class OgmiosError(ProviderInternalError):
    """Base exception for Ogmios errors."""

class OgmiosConnectionError(OgmiosError):
    """Connection-related errors."""


class OgmiosQueryError(OgmiosError):
    """JSON-RPC error returned by Ogmios."""

    def __init__(self, message: str, *, code: Optional[int] = None, data: Any = None, operation: Optional[str] = None):
        super().__init__(message, operation=operation)
        self.code = code
        self.data = data


class OgmiosClient:
    """
    Async client for the Ogmios WebSocket API.

    One request is in flight at a time; concurrent callers queue on a lock.
    """

    def __init__(
        self,
        url: str = "ws://localhost:1337",
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.url = url
        self.username = username
        self.password = password
        self.timeout = timeout
        self._ws: Optional[ClientConnection] = None
        self._request_id = 0
        self._lock = asyncio.Lock()

    def _get_headers(self) -> Dict[str, str]:
        if self.username and self.password:
            encoded = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
            return {"Authorization": f"Basic {encoded}"}
        return {}

    async def connect(self):
        """Open the websocket, replacing any previous one. Raises OgmiosConnectionError on failure."""
        if self._ws is not None:
            await self.disconnect()
        try:
            # Large UTxO responses (50MB)
            self._ws = await connect(
                self.url,
                max_size=50 * 1024 * 1024,
                additional_headers=self._get_headers() or None,
            )
        except ConnectionRefusedError as e:
            raise OgmiosConnectionError(f"Connection refused. Is Ogmios running at {self.url}?") from e
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            raise OgmiosConnectionError(f"Failed to connect to Ogmios at {self.url}: {e}") from e
        logger.info(f"Connected to Ogmios at {self.url}")

    async def disconnect(self):
        if self._ws:
            await self._ws.close()
            self._ws = None
            logger.info("Disconnected from Ogmios")

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._ws.state is State.OPEN

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _send_request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Send a JSON-RPC request and wait for the response with the same id."""
        if not self._ws:
            raise OgmiosConnectionError("Not connected to Ogmios", operation=method)

        async with self._lock:
            request_id = self._next_request_id()
            request = {"jsonrpc": "2.0", "method": method, "id": request_id}
            if params:
                request["params"] = params
            try:
                async with asyncio.timeout(self.timeout):
                    await self._ws.send(json.dumps(request))
                    while True:
                        response = json.loads(await self._ws.recv())
                        if response.get("id") == request_id:
                            break
                        logger.debug(f"Ignoring Ogmios message with id {response.get('id')}")
            except TimeoutError:
                raise OgmiosQueryError(f"Request timed out after {self.timeout}s: {method}", operation=method)
            except (WebSocketException, OSError, json.JSONDecodeError) as e:
                raise OgmiosConnectionError(f"Request failed: {e}", operation=method) from e

        if "error" in response:
            err = response["error"]
            if isinstance(err, dict):
                raise OgmiosQueryError(
                    f"Ogmios error: {err.get('message', err)}",
                    code=err.get("code"),
                    data=err.get("data"),
                    operation=method,
                )
            raise OgmiosQueryError(f"Ogmios error: {err}", operation=method)
        if "result" in response:
            return response["result"]
        return response

    async def get_chain_tip(self) -> Dict[str, Any]:
        """{"slot", "id"}; "origin" before the first block."""
        return await self._send_request("queryNetwork/tip")

    async def get_block_height(self) -> Any:
        return await self._send_request("queryNetwork/blockHeight")

    async def get_current_epoch(self) -> int:
        result = await self._send_request("queryLedgerState/epoch")
        return result if isinstance(result, int) else result.get("epoch", 0)

    async def get_protocol_parameters(self) -> Dict[str, Any]:
        return await self._send_request("queryLedgerState/protocolParameters")

    async def get_genesis_configuration(self, era: str = "shelley") -> Dict[str, Any]:
        return await self._send_request("queryNetwork/genesisConfiguration", {"era": era})

    async def get_utxos_by_output_references(self, output_refs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        result = await self._send_request("queryLedgerState/utxo", {"outputReferences": output_refs})
        return result if isinstance(result, list) else []

    async def get_reward_account_summaries(self, keys: List[str] = (), scripts: List[str] = ()) -> Any:
        params: Dict[str, Any] = {}
        if keys:
            params["keys"] = list(keys)
        if scripts:
            params["scripts"] = list(scripts)
        return await self._send_request("queryLedgerState/rewardAccountSummaries", params)

    async def submit_transaction(self, tx_cbor: str) -> str:
        result = await self._send_request("submitTransaction", {"transaction": {"cbor": tx_cbor}})
        return result.get("transaction", {}).get("id", "")

    async def evaluate_transaction(self, tx_cbor: str, additional_utxo: List[Dict[str, Any]] = ()) -> Any:
        params: Dict[str, Any] = {"transaction": {"cbor": tx_cbor}}
        if additional_utxo:
            params["additionalUtxo"] = list(additional_utxo)
        return await self._send_request("evaluateTransaction", params)

    async def health_check(self) -> Dict[str, Any]:
        """Query tip and report connection health."""
        try:
            tip = await self.get_chain_tip()
        except OgmiosError as e:
            return {"status": "unhealthy", "error": str(e), "url": self.url}
        slot = tip.get("slot") if isinstance(tip, dict) else None
        return {"status": "healthy", "url": self.url, "slot": slot}
