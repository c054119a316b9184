"""
OPC UA Variant bridge

Converts OPC UA Variants (scalars, arrays and matrices of every built-in type)
to and from JSON, and calls methods with JSON input arguments typed against
the InputArguments each method declares:

1. codec: Variant <-> JSON transcoding
2. methods: InputArguments cache and batched method invocation
3. session: browse/read/call interface of the underlying client session
4. telemetry: OpenTelemetry spans and metrics
"""

from importlib import import_module

__version__ = "0.1.0"

__all__ = [
    "ValueCodec",
    "ArgumentTypeCache",
    "MethodInvoker",
    "CallRequest",
    "BridgeConfig",
    "create_invoker",
]


def __getattr__(name: str):
    """Lazily import symbols to avoid loading telemetry at import time."""
    if name == "ValueCodec":
        return import_module(".codec.value_codec", __package__).ValueCodec
    if name == "ArgumentTypeCache":
        return import_module(".methods.argument_cache", __package__).ArgumentTypeCache
    if name in ("MethodInvoker", "CallRequest"):
        return getattr(import_module(".methods.invoker", __package__), name)
    if name == "BridgeConfig":
        return import_module(".config", __package__).BridgeConfig
    if name == "create_invoker":
        return import_module(".factory", __package__).create_invoker
    raise AttributeError(name)
