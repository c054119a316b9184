"""
Method invocation

- argument_cache: InputArguments descriptor cache backed by browse/read
- invoker: JSON to Variant conversion and batched method calls
"""

from .argument_cache import ArgumentTypeCache, fetch_input_arguments
from .invoker import CallRequest, MethodInvoker

__all__ = [
    "ArgumentTypeCache",
    "CallRequest",
    "MethodInvoker",
    "fetch_input_arguments",
]
