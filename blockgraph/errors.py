"""
Error taxonomy for blockgraph.

Construction-phase errors (parsing, schema validation, decoding, export
binding) are fatal for the whole run: a graph is either built completely
or not at all. Execution-phase errors (closed channels, revoked functions)
are raised inside individual background tasks, where the scheduler
isolates and records them.
"""

from __future__ import annotations


class BlockGraphError(Exception):
    """Base exception for all blockgraph errors."""

    pass


# =============================================================================
# Parsing
# =============================================================================


class ParseError(BlockGraphError):
    """Malformed configuration syntax."""

    def __init__(
        self,
        message: str,
        *,
        filename: str = "<config>",
        line: int | None = None,
        column: int | None = None,
    ):
        self.filename = filename
        self.line = line
        self.column = column
        location = filename
        if line is not None:
            location = f"{filename}:{line}"
            if column is not None:
                location = f"{location}:{column}"
        super().__init__(f"{location}: {message}")


# =============================================================================
# Schema validation
# =============================================================================


class SchemaMismatchError(BlockGraphError):
    """A block does not match any registered block header."""

    def __init__(self, message: str, *, kind: str, line: int | None = None):
        self.kind = kind
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class UnknownKindError(SchemaMismatchError):
    """Block kind is not registered."""

    pass


class LabelArityError(SchemaMismatchError):
    """Block has the wrong number of labels for its kind."""

    pass


class RegistryError(BlockGraphError):
    """Error in component registry operations."""

    pass


# =============================================================================
# Decoding
# =============================================================================


class DecodeError(BlockGraphError):
    """
    An attribute could not be decoded into its target type.

    Attributes:
        kind: Block kind being decoded (if known)
        label: Block label being decoded (if known)
        attribute: Attribute name that failed (if known)
        line: Source line of the attribute (if known)
        variable: Unresolved identifier when the failure is an unknown variable
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        label: str | None = None,
        attribute: str | None = None,
        line: int | None = None,
        variable: str | None = None,
    ):
        self.reason = message
        self.kind = kind
        self.label = label
        self.attribute = attribute
        self.line = line
        self.variable = variable
        super().__init__(self._format())

    def _format(self) -> str:
        parts = []
        if self.line is not None:
            parts.append(f"line {self.line}")
        if self.kind is not None:
            target = f'{self.kind} "{self.label}"' if self.label is not None else self.kind
            parts.append(target)
        if self.attribute is not None:
            parts.append(f"attribute '{self.attribute}'")
        prefix = ", ".join(parts)
        return f"{prefix}: {self.reason}" if prefix else self.reason

    def with_context(
        self,
        *,
        kind: str | None = None,
        label: str | None = None,
        attribute: str | None = None,
        line: int | None = None,
        reason: str | None = None,
    ) -> DecodeError:
        """Return a copy of this error (same class) with block context filled in."""
        return type(self)(
            reason if reason is not None else self.reason,
            kind=kind if kind is not None else self.kind,
            label=label if label is not None else self.label,
            attribute=attribute if attribute is not None else self.attribute,
            line=line if line is not None else self.line,
            variable=self.variable,
        )


class CapabilityTypeError(DecodeError):
    """A capability handle was read as data, or data was read as a capability."""

    pass


class ExpressionError(BlockGraphError):
    """Raised when expression evaluation fails."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Expression error in '{expression}': {reason}")


class UnknownVariableError(ExpressionError):
    """Expression references a name missing from the variable environment."""

    def __init__(self, expression: str, name: str):
        self.name = name
        super().__init__(expression, f"unknown variable '{name}'")


# =============================================================================
# Environment
# =============================================================================


class DuplicateExportError(BlockGraphError):
    """Two exports resolve to the same fully-qualified name."""

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"export '{name}' is already bound")


class EnvironmentFrozenError(BlockGraphError):
    """The variable environment no longer accepts bindings."""

    pass


# =============================================================================
# Execution phase
# =============================================================================


class ChannelClosedError(BlockGraphError):
    """Send on a closed channel, or receive on a closed and drained one."""

    def __init__(self, channel_name: str):
        self.channel_name = channel_name
        super().__init__(f"channel '{channel_name}' is closed")


class CapabilityRevokedError(BlockGraphError):
    """A function handle was invoked after its owner shut down."""

    def __init__(self, owner: str):
        self.owner = owner
        super().__init__(f"function exported by '{owner}' has been revoked")


# =============================================================================
# Loading
# =============================================================================


class DocumentNotFoundError(BlockGraphError):
    """A configuration document could not be located."""

    pass
