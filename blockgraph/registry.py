"""
Component Registry.

Maps block kind names to ComponentKind descriptors: the configuration
shape a block of that kind is decoded into, the factory that creates a
fresh component, and the block header (label names) the parser output is
validated against.

Design Principle:
    Kinds are registered once at startup and the registry is frozen
    before the first document is evaluated. There is no module-level
    registry; build one explicitly and pass it to the evaluator.

Usage:
    registry = ComponentRegistry()
    registry.register(
        ComponentKind(
            kind="component1",
            config_model=PassThroughConfig,
            factory=PassThroughComponent,
        )
    )

    descriptor = registry.lookup("component1")
    schemas = registry.block_schemas()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel

from .decoder import AttributeSpec, attribute_specs
from .errors import RegistryError, UnknownKindError

if TYPE_CHECKING:
    from .component import Component

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BlockHeaderSchema:
    """Expected header of a block: its kind and label names."""

    kind: str
    label_names: tuple[str, ...] = ("name",)

    @property
    def label_arity(self) -> int:
        return len(self.label_names)


@dataclass(frozen=True)
class ComponentKind:
    """
    Static description of one component kind.

    Attributes:
        kind: Block kind name used in documents and export names
        config_model: Pydantic model the block body decodes into
        factory: Zero-argument callable returning a fresh Component
        label_names: Names of the identifying labels (arity = length)
        description: Human-readable description
    """

    kind: str
    config_model: type[BaseModel]
    factory: Callable[[], Component]
    label_names: tuple[str, ...] = ("name",)
    description: str = ""
    _attributes: tuple[AttributeSpec, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.kind:
            raise RegistryError("Component kind must have a name")
        if not self.label_names:
            raise RegistryError(f"Component kind '{self.kind}' needs at least one label")
        try:
            specs = attribute_specs(self.config_model)
        except TypeError as e:
            raise RegistryError(f"Component kind '{self.kind}': {e}") from e
        object.__setattr__(self, "_attributes", specs)

    @property
    def label_arity(self) -> int:
        return len(self.label_names)

    @property
    def header(self) -> BlockHeaderSchema:
        return BlockHeaderSchema(kind=self.kind, label_names=self.label_names)

    @property
    def attributes(self) -> tuple[AttributeSpec, ...]:
        return self._attributes

    def instantiate(self) -> Component:
        """Create a fresh, unconfigured component of this kind."""
        component = self.factory()
        component.kind = self.kind
        return component


class ComponentRegistry:
    """
    Registry of component kinds.

    Example:
        registry = ComponentRegistry()
        registry.register(ComponentKind("component1", PassThroughConfig, PassThroughComponent))
        registry.freeze()

        registry.lookup("component1").instantiate()
    """

    def __init__(self) -> None:
        self._kinds: dict[str, ComponentKind] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, descriptor: ComponentKind) -> None:
        """
        Register a component kind.

        Raises:
            RegistryError: If the kind is already registered or the registry is frozen
        """
        if self._frozen:
            raise RegistryError(
                f"Cannot register '{descriptor.kind}': registry is frozen"
            )
        if descriptor.kind in self._kinds:
            raise RegistryError(
                f"Component kind '{descriptor.kind}' already registered. "
                "Use a unique kind name."
            )
        self._kinds[descriptor.kind] = descriptor
        logger.info(f"[registry] Registered component kind: {descriptor.kind}")

    def get(self, kind: str) -> ComponentKind | None:
        """Get a kind by name, or None."""
        return self._kinds.get(kind)

    def lookup(self, kind: str) -> ComponentKind:
        """
        Get a kind by name.

        Raises:
            UnknownKindError: If the kind is not registered
        """
        descriptor = self._kinds.get(kind)
        if descriptor is None:
            available = ", ".join(self.list_kinds()) or "none"
            raise UnknownKindError(
                f"unknown component kind '{kind}' (registered: {available})",
                kind=kind,
            )
        return descriptor

    def block_schemas(self) -> tuple[BlockHeaderSchema, ...]:
        """Union of every registered kind's block header."""
        return tuple(descriptor.header for descriptor in self._kinds.values())

    def list_kinds(self) -> list[str]:
        return list(self._kinds)

    def freeze(self) -> None:
        if not self._frozen:
            self._frozen = True
            logger.debug(f"[registry] Frozen with kinds: {self.list_kinds()}")

    def __contains__(self, kind: object) -> bool:
        return kind in self._kinds

    def __len__(self) -> int:
        return len(self._kinds)

    def __repr__(self) -> str:
        return f"ComponentRegistry(kinds={self.list_kinds()})"
