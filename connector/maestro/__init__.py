"""Maestro backend (REST, cursor pagination, CBOR outputs)."""

from .client import MaestroClient, PAGE_SIZE, resolve_base_url
from .provider import MaestroProvider

__all__ = ["MaestroClient", "MaestroProvider", "PAGE_SIZE", "resolve_base_url"]
