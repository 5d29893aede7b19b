"""
Variable environment.

The environment maps fully-qualified export names to ExportValues:

    {kind}_{label}_exports_{field}

It is built while the graph evaluator walks the document: each block sees
only the bindings made by blocks declared before it. Bindings are never
replaced or removed, and the environment is frozen before execution
starts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from .errors import DuplicateExportError, EnvironmentFrozenError
from .values import ExportValue

logger = logging.getLogger(__name__)

EXPORT_NAME_FORMAT = "{kind}_{label}_exports_{field}"


def export_prefix(kind: str, label: str) -> str:
    """Prefix shared by every export of one component."""
    return f"{kind}_{label}_exports_"


def export_name(kind: str, label: str, field: str) -> str:
    """Fully-qualified variable name for one export field."""
    return EXPORT_NAME_FORMAT.format(kind=kind, label=label, field=field)


class VariableEnvironment(Mapping[str, ExportValue]):
    """
    Ordered, grow-only mapping of export names to values.

    Example:
        env = VariableEnvironment()
        env.bind_exports("component1", "a", {"enabled": BoolValue(True)})
        env["component1_a_exports_enabled"]  # BoolValue(True)
    """

    def __init__(self) -> None:
        self._variables: dict[str, ExportValue] = {}
        self._view = MappingProxyType(self._variables)
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def bind(self, name: str, value: ExportValue) -> None:
        """
        Bind a name.

        Raises:
            DuplicateExportError: If name is already bound
            EnvironmentFrozenError: If the environment is frozen
            TypeError: If value is not an ExportValue
        """
        if self._frozen:
            raise EnvironmentFrozenError(f"cannot bind '{name}': environment is frozen")
        if not isinstance(value, ExportValue):
            raise TypeError(f"'{name}' must be bound to an ExportValue, got {type(value).__name__}")
        if name in self._variables:
            raise DuplicateExportError(name)
        self._variables[name] = value

    def bind_exports(
        self,
        kind: str,
        label: str,
        exports: Mapping[str, ExportValue],
    ) -> list[str]:
        """
        Bind every export of one component.

        Returns:
            Names bound, in export order
        """
        bound = []
        for field, value in exports.items():
            name = export_name(kind, label, field)
            self.bind(name, value)
            bound.append(name)
            logger.debug(f"[environment] Bound {name} = {value.describe()}")
        return bound

    def view(self) -> Mapping[str, ExportValue]:
        """Read-only live view, handed to expression evaluation."""
        return self._view

    def freeze(self) -> None:
        self._frozen = True

    def describe(self) -> dict[str, str]:
        """Deterministic snapshot; capability handles render by kind only."""
        return {name: value.describe() for name, value in self._variables.items()}

    def __getitem__(self, name: str) -> ExportValue:
        return self._variables[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def __repr__(self) -> str:
        state = ", frozen" if self._frozen else ""
        return f"VariableEnvironment({len(self._variables)} bindings{state})"
