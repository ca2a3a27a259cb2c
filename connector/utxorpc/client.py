"""
UTxO-RPC client interface.

The provider talks to any object with these coroutines. Messages are plain
mappings using the protobuf field names (as `MessageToDict` with
`preserving_proto_field_name=True` gives them), except that bytes fields are
kept as bytes.

    read_params()        -> {"cardano": {...}}
    read_tip()           -> {"slot": int, "hash": bytes}
    fetch_block(ref)     -> {"header": {"slot", "hash", "height"}}
    search_utxos(...)    -> {"items": [AnyUtxoData], "next_token": str}
    read_utxos(refs)     -> [AnyUtxoData]
    submit_tx(tx)        -> bytes (tx hash)
    eval_tx(tx)          -> {"redeemers": [{"purpose", "index", "ex_units": {"memory", "steps"}}]}
    wait_for_tx(hash)    -> async iterator of {"stage": int | str}

AnyUtxoData is {"txo_ref": {"hash": bytes, "index": int}, "native_bytes": bytes}.
"""

import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ..errors import (
    ConnectorError, ConnectorTimeoutError, InvalidInputError, NotFoundError,
    NotImplementedByProviderError, ProviderInternalError, RateLimitedError,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "dmtr-api-key"


@runtime_checkable
class UtxorpcClient(Protocol):
    async def read_params(self) -> Dict[str, Any]: ...
    async def read_tip(self) -> Dict[str, Any]: ...
    async def fetch_block(self, ref: Dict[str, Any]) -> Dict[str, Any]: ...
    async def search_utxos(
        self,
        *,
        address: Optional[bytes] = None,
        policy_id: Optional[bytes] = None,
        asset_name: Optional[bytes] = None,
        start_token: Optional[str] = None,
    ) -> Dict[str, Any]: ...
    async def read_utxos(self, refs: List[Dict[str, Any]]) -> List[Dict[str, Any]]: ...
    async def submit_tx(self, tx: bytes) -> bytes: ...
    async def eval_tx(self, tx: bytes) -> Dict[str, Any]: ...
    def wait_for_tx(self, tx_hash: bytes) -> AsyncIterator[Dict[str, Any]]: ...
    async def close(self): ...


# gRPC status name -> connector error
_STATUS_ERRORS = {
    "NOT_FOUND": NotFoundError,
    "INVALID_ARGUMENT": InvalidInputError,
    "RESOURCE_EXHAUSTED": RateLimitedError,
    "DEADLINE_EXCEEDED": ConnectorTimeoutError,
    "UNIMPLEMENTED": NotImplementedByProviderError,
}


def call_metadata(api_key: Optional[str]) -> List[Tuple[str, str]]:
    """gRPC call metadata for hosted endpoints that authenticate by API key."""
    return [(API_KEY_HEADER, api_key)] if api_key else []


# Builds a client from an endpoint url and call metadata
ClientFactory = Callable[[str, List[Tuple[str, str]]], UtxorpcClient]


def status_error(status: str, message: str, operation: str = "", key: Optional[str] = None) -> ConnectorError:
    """Connector error for a gRPC status code name, for client implementations to raise."""
    cls = _STATUS_ERRORS.get(status.upper(), ProviderInternalError)
    return cls(f"{status}: {message}", operation=operation, key=key)
