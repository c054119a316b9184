"""
Bridge factory

Wires the codec, the argument cache and the invoker around a session
according to a BridgeConfig.
"""

import logging
from typing import Optional

from opcua_bridge.codec.identifiers import IdentifierResolver
from opcua_bridge.codec.value_codec import ValueCodec
from opcua_bridge.config import BridgeConfig
from opcua_bridge.methods.argument_cache import ArgumentTypeCache
from opcua_bridge.methods.invoker import MethodInvoker
from opcua_bridge.session import Session
from opcua_bridge.telemetry.metrics import observe_size, setup_metrics
from opcua_bridge.telemetry.tracer import setup_tracer

logger = logging.getLogger(__name__)


def setup_telemetry(config: BridgeConfig) -> None:
    """Install tracer and meter providers when tracing is enabled"""
    if not config.enable_tracing:
        return
    setup_tracer(config.service_name, config.otlp_endpoint)
    setup_metrics(config.service_name, config.otlp_endpoint, config.metrics_export_interval_ms)


def create_invoker(session: Session,
                   config: Optional[BridgeConfig] = None,
                   resolver: Optional[IdentifierResolver] = None) -> MethodInvoker:
    """Create a method invoker for a session

    Args:
        session: Session the invoker browses, reads and calls through
        config: Bridge configuration (environment based by default)
        resolver: Identifier collaborator shared by codec and cache

    Returns:
        MethodInvoker: Ready to use invoker
    """
    if config is None:
        config = BridgeConfig.from_env()

    setup_telemetry(config)

    codec = ValueCodec(resolver)
    cache = ArgumentTypeCache(session, codec.resolver, enabled=config.cache_enabled)
    if config.enable_tracing:
        observe_size("opcua_bridge.cache.size", cache.__len__)

    logger.info(f"Method invoker created, argument cache {'enabled' if config.cache_enabled else 'disabled'}")

    return MethodInvoker(session, cache, codec)
