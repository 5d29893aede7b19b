"""
Component abstraction for blockgraph.

A component is the runtime object behind one configuration block. It is
identified by (kind, label) and goes through a fixed lifecycle:

    factory()                 fresh, unconfigured instance
    configure(label, config)  store config, allocate handles, compute exports
    run(ctx)                  once, after the whole graph is built
    cleanup()                 once, after every background task has stopped

configure() runs during graph construction: it must not block and must not
start background work. run() returns immediately; ongoing behaviour is
started with ctx.spawn() and owned by the scheduler.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel

from .errors import DecodeError

if TYPE_CHECKING:
    from .scheduler import RunContext
    from .values import ExportValue

logger = logging.getLogger(__name__)


class Component(ABC):
    """
    Base class for all components.

    Subclasses declare their configuration shape with `config_model` and
    implement:
    - build_exports(): exports derived from config and allocated handles
    - run(): start background behaviour

    Optional hooks:
    - setup(): allocate capability handles during configure()
    - cleanup(): close owned channels, revoke owned functions

    `kind` is assigned by the registry when the component is instantiated.
    """

    config_model: ClassVar[type[BaseModel]]

    def __init__(self) -> None:
        self.kind: str = ""
        self.label: str = ""
        self.config: BaseModel | None = None
        self._exports: dict[str, ExportValue] = {}
        self._exports_view: Mapping[str, ExportValue] = MappingProxyType(self._exports)

    @property
    def name(self) -> str:
        """Unique name for this component, used in logging and task names."""
        return f'{self.kind}.{self.label}' if self.kind else self.label

    @property
    def configured(self) -> bool:
        return self.config is not None

    def configure(self, label: str, config: BaseModel) -> None:
        """
        Store label and decoded configuration and compute exports.

        Raises:
            DecodeError: If config is not an instance of this component's config_model
            RuntimeError: If the component is already configured
        """
        if self.configured:
            raise RuntimeError(f"Component '{self.name}' is already configured")

        expected = getattr(type(self), "config_model", None)
        if expected is not None and not isinstance(config, expected):
            raise DecodeError(
                f"expected {expected.__name__} configuration, got {type(config).__name__}",
                kind=self.kind or None,
                label=label,
            )

        self.label = label
        self.config = config
        self.setup()
        self._exports.clear()
        self._exports.update(self.build_exports())

    def setup(self) -> None:
        """
        Allocate capability handles.

        Called from configure() after label and config are stored.
        Default implementation does nothing.
        """
        pass

    @abstractmethod
    def build_exports(self) -> Mapping[str, ExportValue]:
        """Compute exports from config and handles allocated in setup()."""
        ...

    def exports(self) -> Mapping[str, ExportValue]:
        """Read-only view of the exports computed during configure()."""
        return self._exports_view

    @abstractmethod
    def run(self, ctx: RunContext) -> None:
        """
        Start background behaviour.

        Must return immediately; use ctx.spawn() for ongoing work.
        Must not decode or touch the variable environment.
        """
        ...

    async def cleanup(self) -> None:
        """
        Release owned resources.

        Called by the scheduler after all background tasks are stopped.
        Default implementation does nothing.
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind='{self.kind}', label='{self.label}')"
