"""
Built-in component kinds.

    component1   PassThroughComponent   exports `enabled`
    component2   MessengerComponent     exports `enabled`, `message`,
                                        `channel`, `function`
"""

from __future__ import annotations

from ..config.schemas import AppSettings
from ..registry import ComponentKind, ComponentRegistry
from .messenger import MessengerComponent, MessengerConfig
from .passthrough import PassThroughComponent, PassThroughConfig

__all__ = [
    "MESSENGER_KIND",
    "PASSTHROUGH_KIND",
    "MessengerComponent",
    "MessengerConfig",
    "PassThroughComponent",
    "PassThroughConfig",
    "builtin_kinds",
    "create_default_registry",
]

PASSTHROUGH_KIND = "component1"
MESSENGER_KIND = "component2"


def builtin_kinds(settings: AppSettings | None = None) -> list[ComponentKind]:
    """Descriptors for the built-in kinds."""
    settings = settings if settings is not None else AppSettings()
    capacity = settings.channel_capacity

    return [
        ComponentKind(
            kind=PASSTHROUGH_KIND,
            config_model=PassThroughConfig,
            factory=PassThroughComponent,
            description="Exports a boolean derived from `enabled`",
        ),
        ComponentKind(
            kind=MESSENGER_KIND,
            config_model=MessengerConfig,
            factory=lambda: MessengerComponent(channel_capacity=capacity),
            description="Exports a channel/function pair and consumes referenced ones",
        ),
    ]


def create_default_registry(settings: AppSettings | None = None) -> ComponentRegistry:
    """
    Create a registry holding the built-in kinds.

    The registry is not frozen, so callers can add their own kinds before
    evaluating documents.
    """
    registry = ComponentRegistry()
    for descriptor in builtin_kinds(settings):
        registry.register(descriptor)
    return registry
