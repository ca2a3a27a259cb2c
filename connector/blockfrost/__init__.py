"""Blockfrost backend (REST, page-number pagination)."""

from .client import BlockfrostClient, NETWORK_URLS, PAGE_SIZE, resolve_base_url
from .provider import BlockfrostProvider

__all__ = ["BlockfrostClient", "BlockfrostProvider", "NETWORK_URLS", "PAGE_SIZE", "resolve_base_url"]
