"""
Configuration settings - edit values directly here or set environment variables
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass
class BlockfrostConfig:
    project_id: str
    network: str = "mainnet"
    base_url: Optional[str] = None
    submit_endpoints: Tuple[str, ...] = ()
    timeout: float = 30.0


@dataclass
class MaestroConfig:
    api_key: str
    network: str = "mainnet"
    base_url: Optional[str] = None
    timeout: float = 30.0


@dataclass
class KupmiosConfig:
    ogmios_url: str
    kupo_url: str
    ogmios_username: Optional[str] = None
    ogmios_password: Optional[str] = None
    network: str = "mainnet"
    timeout: float = 30.0


@dataclass
class UtxorpcConfig:
    url: str
    api_key: Optional[str] = None
    network: str = "mainnet"


@dataclass
class Settings:
    """Application settings - configure values below"""

    # ===================
    # Connector
    # ===================
    provider: str = "kupmios"  # blockfrost | maestro | kupmios | utxorpc
    network_name: str = "mainnet"  # mainnet | preprod | preview
    request_timeout: float = 30.0
    max_concurrency: int = 8

    # ===================
    # Ogmios / Kupo
    # ===================
    ogmios_url: str = "ws://localhost:1337"
    ogmios_username: Optional[str] = None
    ogmios_password: Optional[str] = None
    kupo_url: str = "http://localhost:1442"

    # ===================
    # Blockfrost
    # ===================
    blockfrost_project_id: Optional[str] = None
    blockfrost_base_url: Optional[str] = None  # e.g., "http://localhost:3000" for a self-hosted instance
    blockfrost_submit_endpoints: List[str] = field(default_factory=list)

    # ===================
    # Maestro
    # ===================
    maestro_api_key: Optional[str] = None

    # ===================
    # UTxO-RPC
    # ===================
    utxorpc_url: Optional[str] = None  # e.g., "https://mainnet.utxorpc-v0.demeter.run"
    utxorpc_api_key: Optional[str] = None

    @property
    def network_id(self) -> int:
        return 1 if self.network_name == "mainnet" else 0

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Settings with values taken from the environment where set."""
        env = os.environ
        values = {
            "provider": env.get("CONNECTOR_PROVIDER"),
            "network_name": env.get("CONNECTOR_NETWORK"),
            "ogmios_url": env.get("OGMIOS_ENDPOINT"),
            "kupo_url": env.get("KUPO_ENDPOINT"),
            "blockfrost_project_id": env.get("BLOCKFROST_KEY"),
            "maestro_api_key": env.get("MAESTRO_KEY"),
            "utxorpc_url": env.get("UTXORPC_URL"),
            "utxorpc_api_key": env.get("UTXORPC_KEY"),
        }
        values = {k: v for k, v in values.items() if v}
        values.update(overrides)
        return cls(**values)

    def blockfrost(self) -> BlockfrostConfig:
        return BlockfrostConfig(
            project_id=self.blockfrost_project_id or "",
            network=self.network_name,
            base_url=self.blockfrost_base_url,
            submit_endpoints=tuple(self.blockfrost_submit_endpoints),
            timeout=self.request_timeout,
        )

    def maestro(self) -> MaestroConfig:
        return MaestroConfig(api_key=self.maestro_api_key or "", network=self.network_name,
                             timeout=self.request_timeout)

    def kupmios(self) -> KupmiosConfig:
        return KupmiosConfig(
            ogmios_url=self.ogmios_url,
            kupo_url=self.kupo_url,
            ogmios_username=self.ogmios_username,
            ogmios_password=self.ogmios_password,
            network=self.network_name,
            timeout=self.request_timeout,
        )

    def utxorpc(self) -> UtxorpcConfig:
        return UtxorpcConfig(url=self.utxorpc_url or "", api_key=self.utxorpc_api_key, network=self.network_name)


# Global settings instance - import this
settings = Settings.from_env()
