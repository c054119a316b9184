"""
Configuration settings for the OPC UA bridge
"""
import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class BridgeConfig:
    """Main configuration for the bridge"""
    cache_enabled: bool = True
    service_name: str = "opcua.bridge"
    log_level: str = "INFO"

    # Tracing configuration
    enable_tracing: bool = False
    otlp_endpoint: str = "localhost:4317"
    metrics_export_interval_ms: int = 5000

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """Create config from environment variables"""
        return cls(
            cache_enabled=_env_flag("OPCUA_BRIDGE_CACHE_ENABLED", True),
            service_name=os.getenv("OPCUA_BRIDGE_SERVICE_NAME", "opcua.bridge"),
            log_level=os.getenv("OPCUA_BRIDGE_LOG_LEVEL", "INFO").upper(),
            enable_tracing=_env_flag("OPCUA_BRIDGE_ENABLE_TRACING", False),
            otlp_endpoint=os.getenv("OPCUA_BRIDGE_OTLP_ENDPOINT", "localhost:4317"),
            metrics_export_interval_ms=int(os.getenv("OPCUA_BRIDGE_METRICS_INTERVAL_MS", "5000")),
        )

    @classmethod
    def default(cls) -> "BridgeConfig":
        """Create default configuration"""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "cache_enabled": self.cache_enabled,
            "service_name": self.service_name,
            "log_level": self.log_level,
            "enable_tracing": self.enable_tracing,
            "otlp_endpoint": self.otlp_endpoint,
            "metrics_export_interval_ms": self.metrics_export_interval_ms,
        }


def configure_logging(level: Optional[str] = None) -> None:
    """Install the bridge log format on the root logger"""
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format=LOG_FORMAT
    )
