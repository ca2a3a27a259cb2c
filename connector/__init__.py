"""
Provider-agnostic Cardano chain access.

Structure:
    connector/
    ├── types.py          # Unit codec
    ├── numeric.py        # Rational / integer / timestamp parsing
    ├── errors.py         # Error taxonomy
    ├── models/           # Canonical UTxO, value, datum, script, parameter types
    ├── outputs.py        # Era-aware output builder, CBOR decoding
    ├── redeemers.py      # Redeemer purpose normalization
    ├── polling.py        # Confirmation poller
    ├── aggregate.py      # Page walk, cursor walk, bounded fan-out
    ├── provider.py       # Provider protocol
    ├── blockfrost/       # Blockfrost REST
    ├── kupmios/          # Kupo + Ogmios
    ├── maestro/          # Maestro REST
    └── utxorpc/          # UTxO-RPC

Usage:
    from connector import create_provider
    from config import settings

    async with create_provider(settings) as provider:
        utxos = await provider.get_utxos_by_address(address)
"""

from typing import Callable, Dict, Optional, Type, Union

from config.settings import Settings

from .base import BaseProvider
from .blockfrost import BlockfrostProvider
from .errors import (
    ConnectorError, NotFoundError, InvalidAddressError, InvalidUnitError, InvalidInputError,
    AmbiguousResultError, EvaluationFailedError, SubmissionFailedError, ConnectorTimeoutError,
    DecodeFailedError, NotImplementedByProviderError, ProviderInternalError, RateLimitedError, APIError,
)
from .kupmios import KupmiosProvider, KupoClient, OgmiosClient
from .maestro import MaestroProvider
from .models import OutRef, PlutusDatum, ScriptRef, UTxO, UtxoList, Value
from .provider import Provider
from .redeemers import redeemers_by_key
from .types import encode_unit, parse_unit
from .utxorpc import ClientFactory, UtxorpcClient, UtxorpcProvider, call_metadata

# A ready client, or a factory called with the configured url and call metadata
UtxorpcSource = Union[UtxorpcClient, ClientFactory, None]


def _blockfrost(settings: Settings, utxorpc_client=None) -> BlockfrostProvider:
    cfg = settings.blockfrost()
    if not cfg.project_id:
        raise InvalidInputError("Blockfrost needs a project id", key=cfg.network)
    return BlockfrostProvider(
        cfg.project_id,
        cfg.network,
        cfg.base_url,
        submit_endpoints=cfg.submit_endpoints,
        max_concurrency=settings.max_concurrency,
        timeout=cfg.timeout,
    )


def _maestro(settings: Settings, utxorpc_client=None) -> MaestroProvider:
    cfg = settings.maestro()
    return MaestroProvider(cfg.api_key, cfg.network, cfg.base_url,
                           max_concurrency=settings.max_concurrency, timeout=cfg.timeout)


def _kupmios(settings: Settings, utxorpc_client=None) -> KupmiosProvider:
    cfg = settings.kupmios()
    ogmios = OgmiosClient(cfg.ogmios_url, cfg.ogmios_username, cfg.ogmios_password, timeout=cfg.timeout)
    kupo = KupoClient(cfg.kupo_url, timeout=cfg.timeout)
    return KupmiosProvider(ogmios, kupo, cfg.network, max_concurrency=settings.max_concurrency)


def _utxorpc(settings: Settings, utxorpc_client: UtxorpcSource = None) -> UtxorpcProvider:
    cfg = settings.utxorpc()
    if utxorpc_client is None:
        raise InvalidInputError("UTxO-RPC needs a client instance or factory", key=cfg.url or None)
    if not isinstance(utxorpc_client, UtxorpcClient):
        if not cfg.url:
            raise InvalidInputError("UTxO-RPC needs an endpoint url", key=cfg.network)
        utxorpc_client = utxorpc_client(cfg.url, call_metadata(cfg.api_key))
    return UtxorpcProvider(utxorpc_client, cfg.network, max_concurrency=settings.max_concurrency)


PROVIDERS: Dict[str, Type[BaseProvider]] = {
    "blockfrost": BlockfrostProvider,
    "maestro": MaestroProvider,
    "kupmios": KupmiosProvider,
    "utxorpc": UtxorpcProvider,
}

_FACTORIES: Dict[str, Callable[..., BaseProvider]] = {
    "blockfrost": _blockfrost,
    "maestro": _maestro,
    "kupmios": _kupmios,
    "utxorpc": _utxorpc,
}


def get_provider_class(name: str) -> Optional[Type[BaseProvider]]:
    return PROVIDERS.get(name)


def create_provider(settings: Settings, utxorpc_client: UtxorpcSource = None) -> BaseProvider:
    """
    Build the provider named by `settings.provider`.

    UTxO-RPC takes either a ready client or a factory, which is called with
    `settings.utxorpc_url` and the API key as call metadata.
    """
    factory = _FACTORIES.get(settings.provider)
    if factory is None:
        raise InvalidInputError(f"unknown provider {settings.provider!r}", key=settings.provider)
    return factory(settings, utxorpc_client)


__all__ = [
    # Providers
    "Provider", "BaseProvider", "BlockfrostProvider", "KupmiosProvider", "MaestroProvider", "UtxorpcProvider",
    "PROVIDERS", "get_provider_class", "create_provider",
    # Types
    "parse_unit", "encode_unit",
    "OutRef", "Value", "UTxO", "UtxoList", "PlutusDatum", "ScriptRef", "redeemers_by_key",
    # Errors
    "ConnectorError", "NotFoundError", "InvalidAddressError", "InvalidUnitError", "InvalidInputError",
    "AmbiguousResultError", "EvaluationFailedError", "SubmissionFailedError", "ConnectorTimeoutError",
    "DecodeFailedError", "NotImplementedByProviderError", "ProviderInternalError", "RateLimitedError",
    "APIError",
]
