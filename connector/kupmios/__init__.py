"""Kupmios backend: Kupo (REST chain index) plus Ogmios (JSON-RPC over websocket)."""

from .kupo import KupoClient
from .ogmios import OgmiosClient, OgmiosError, OgmiosConnectionError, OgmiosQueryError
from .provider import KupmiosProvider

__all__ = [
    "KupoClient",
    "OgmiosClient", "OgmiosError", "OgmiosConnectionError", "OgmiosQueryError",
    "KupmiosProvider",
]
