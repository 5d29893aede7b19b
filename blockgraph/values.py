"""
Export values.

ExportValue is the closed set of things a component may export and a later
block may reference:

    BoolValue        plain data, compared by value
    StringValue      plain data, compared by value
    ChannelHandle    opaque capability wrapping a live Channel
    FunctionHandle   opaque capability wrapping a zero-argument callable

Capability handles have no data representation. They are compared by
identity and can only be unwrapped through their own accessor; every
accessor fails explicitly on a variant mismatch.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from .errors import CapabilityRevokedError, CapabilityTypeError, DecodeError

if TYPE_CHECKING:
    from .channels import Channel

logger = logging.getLogger(__name__)


class ValueKind(str, Enum):
    """Variant tag of an ExportValue."""

    BOOL = "bool"
    STRING = "string"
    CHANNEL = "channel"
    FUNCTION = "function"

    @property
    def is_capability(self) -> bool:
        return self in (ValueKind.CHANNEL, ValueKind.FUNCTION)


def _mismatch(expected: ValueKind, actual: ValueKind) -> DecodeError:
    message = f"expected {expected.value}, got {actual.value}"
    if expected.is_capability or actual.is_capability:
        return CapabilityTypeError(message)
    return DecodeError(message)


class ExportValue(ABC):
    """Base class for every exportable value."""

    __slots__ = ()

    @property
    @abstractmethod
    def kind(self) -> ValueKind:
        ...

    def as_bool(self) -> bool:
        raise _mismatch(ValueKind.BOOL, self.kind)

    def as_string(self) -> str:
        raise _mismatch(ValueKind.STRING, self.kind)

    def as_channel(self) -> Channel:
        raise _mismatch(ValueKind.CHANNEL, self.kind)

    def as_function(self) -> Callable[[], str]:
        raise _mismatch(ValueKind.FUNCTION, self.kind)

    @abstractmethod
    def describe(self) -> str:
        """Stable, human-readable rendering (capabilities render by kind only)."""
        ...


class BoolValue(ExportValue):
    __slots__ = ("value",)

    def __init__(self, value: bool):
        if not isinstance(value, bool):
            raise TypeError(f"BoolValue requires bool, got {type(value).__name__}")
        self.value = value

    @property
    def kind(self) -> ValueKind:
        return ValueKind.BOOL

    def as_bool(self) -> bool:
        return self.value

    def describe(self) -> str:
        return "true" if self.value else "false"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, BoolValue) and other.value == self.value

    def __hash__(self) -> int:
        return hash((ValueKind.BOOL, self.value))

    def __repr__(self) -> str:
        return f"BoolValue({self.value!r})"


class StringValue(ExportValue):
    __slots__ = ("value",)

    def __init__(self, value: str):
        if not isinstance(value, str):
            raise TypeError(f"StringValue requires str, got {type(value).__name__}")
        self.value = value

    @property
    def kind(self) -> ValueKind:
        return ValueKind.STRING

    def as_string(self) -> str:
        return self.value

    def describe(self) -> str:
        return repr(self.value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, StringValue) and other.value == self.value

    def __hash__(self) -> int:
        return hash((ValueKind.STRING, self.value))

    def __repr__(self) -> str:
        return f"StringValue({self.value!r})"


class ChannelHandle(ExportValue):
    """Opaque handle to a live Channel. Identity is the channel's identity."""

    __slots__ = ("channel",)

    def __init__(self, channel: Channel):
        self.channel = channel

    @property
    def kind(self) -> ValueKind:
        return ValueKind.CHANNEL

    def as_channel(self) -> Channel:
        return self.channel

    def describe(self) -> str:
        return "<channel>"

    def __repr__(self) -> str:
        return f"ChannelHandle(channel='{self.channel.name}')"


class FunctionHandle(ExportValue):
    """
    Opaque handle to a zero-argument function returning a string.

    The owner revokes the handle at shutdown; later invocations raise
    CapabilityRevokedError instead of touching a component that has
    stopped.
    """

    __slots__ = ("function", "owner", "_revoked")

    def __init__(self, function: Callable[[], str], owner: str):
        if not callable(function):
            raise TypeError("FunctionHandle requires a callable")
        self.function = function
        self.owner = owner
        self._revoked = False

    @property
    def kind(self) -> ValueKind:
        return ValueKind.FUNCTION

    @property
    def revoked(self) -> bool:
        return self._revoked

    def as_function(self) -> Callable[[], str]:
        return self

    def revoke(self) -> None:
        self._revoked = True

    def __call__(self) -> str:
        if self._revoked:
            raise CapabilityRevokedError(self.owner)
        result = self.function()
        if not isinstance(result, str):
            raise TypeError(
                f"function exported by '{self.owner}' returned "
                f"{type(result).__name__}, expected str"
            )
        return result

    def describe(self) -> str:
        return "<function>"

    def __repr__(self) -> str:
        return f"FunctionHandle(owner='{self.owner}')"


def from_python(value: Any) -> ExportValue:
    """
    Wrap a plain Python scalar as an ExportValue.

    Raises:
        DecodeError: If value is not a bool or str
    """
    if isinstance(value, ExportValue):
        return value
    if isinstance(value, bool):
        return BoolValue(value)
    if isinstance(value, str):
        return StringValue(value)
    raise DecodeError(f"cannot export value of type {type(value).__name__}")
