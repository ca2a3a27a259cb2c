"""Kupo REST client (chain index of matches, datums and scripts)."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..rest import RestClient

logger = logging.getLogger(__name__)


class KupoClient(RestClient):
    """Kupo answers unpaginated; every match for a pattern comes back in one response."""

    def __init__(self, url: str = "http://localhost:1442", timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(url, timeout=timeout, transport=transport)

    async def matches(
        self,
        pattern: str,
        *,
        unspent: bool = True,
        policy_id: Optional[str] = None,
        asset_name: Optional[str] = None,
        operation: str = "matches",
    ) -> List[Dict[str, Any]]:
        flags = []
        if unspent:
            flags.append("unspent")
        if policy_id:
            flags.append(f"policy_id={policy_id}")
        if asset_name:
            flags.append(f"asset_name={asset_name}")
        path = f"/matches/{pattern}" + (f"?{'&'.join(flags)}" if flags else "")
        return await self.get(path, operation=operation, key=pattern) or []

    async def datum(self, datum_hash: str) -> Optional[Dict[str, Any]]:
        """{"datum": hex} or None when Kupo has not seen it."""
        return await self.get(f"/datums/{datum_hash}", operation="get_datum", key=datum_hash)

    async def script(self, script_hash: str) -> Optional[Dict[str, Any]]:
        """{"language", "script"} or None."""
        return await self.get(f"/scripts/{script_hash}", operation="get_script_by_hash", key=script_hash)

    async def health(self) -> Any:
        return await self.get("/health", operation="health")
