"""
Bridge exception hierarchy

Every failure raised by the codec, the argument cache and the method invoker
derives from BridgeError so callers can catch the whole family at once.
"""

from typing import Any, Optional


class BridgeError(Exception):
    """Base exception for OPC UA bridge errors."""
    pass


# ---------------------------------------------------------------------------
# Codec errors
# ---------------------------------------------------------------------------

class CodecError(BridgeError, ValueError):
    """Raised when a value cannot be converted between Variant and JSON."""
    pass


class UnsupportedTypeError(CodecError):
    """The data type has no serialize/parse rule."""
    pass


class ShapeError(CodecError):
    """The nesting of a JSON value does not match the declared value rank."""
    pass


class ArrayExpectedError(ShapeError):
    pass


class ScalarExpectedError(ShapeError):
    pass


class RankMismatchError(ShapeError):
    pass


class ScalarOr1DExpectedError(ShapeError):
    pass


class DimensionMismatchError(ShapeError):
    pass


class RangeError(CodecError):
    """A scalar lies outside the domain of its declared type."""
    pass


class ComponentRangeError(RangeError):
    """A [high, low] component of a 64-bit integer is not an unsigned 32-bit word."""
    pass


class FormatError(CodecError):
    """A value has the wrong JSON type or a malformed string syntax."""
    pass


# ---------------------------------------------------------------------------
# Remote errors
# ---------------------------------------------------------------------------

class RemoteError(BridgeError):
    """A session operation reported a non-good status."""

    def __init__(self, message: str, node_id: Any = None, status_code: Any = None):
        super().__init__(message)
        self.node_id = node_id
        self.status_code = status_code


class RemoteBrowseError(RemoteError):
    pass


class RemoteReadError(RemoteError):
    pass


class RemoteCallError(RemoteError):
    pass


# ---------------------------------------------------------------------------
# Invocation errors
# ---------------------------------------------------------------------------

class InvocationError(BridgeError):
    """A call request does not match the method's declared input arguments."""

    def __init__(self, message: str, method_id: Any = None):
        super().__init__(message)
        self.method_id = method_id


class MissingArgumentsError(InvocationError):
    pass


class ArgumentCountError(InvocationError):
    pass


class ArgumentConversionError(InvocationError):
    """An input argument could not be converted to a Variant.

    The original codec error is available as ``__cause__``.
    """

    def __init__(self, message: str, method_id: Any = None, index: Optional[int] = None):
        super().__init__(message, method_id)
        self.index = index
