"""UTxO-RPC backend (gRPC query, submit and watch services)."""

from .client import API_KEY_HEADER, ClientFactory, UtxorpcClient, call_metadata, status_error
from .provider import UtxorpcProvider

__all__ = ["API_KEY_HEADER", "ClientFactory", "UtxorpcClient", "UtxorpcProvider", "call_metadata", "status_error"]
