from .settings import (
    BlockfrostConfig, KupmiosConfig, MaestroConfig, Settings, UtxorpcConfig, settings,
)

__all__ = ["BlockfrostConfig", "KupmiosConfig", "MaestroConfig", "Settings", "UtxorpcConfig", "settings"]
