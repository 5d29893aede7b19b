"""
Pass-through component.

Exports a single boolean derived from its `enabled` attribute and starts
no background work. Useful as the root of a graph and for feature flags
other blocks branch on:

    component1 "a" {
        enabled = true
    }

    component2 "b" {
        enabled = !component1_a_exports_enabled
    }
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from ..component import Component
from ..values import BoolValue, ExportValue

if TYPE_CHECKING:
    from ..scheduler import RunContext

logger = logging.getLogger(__name__)


class PassThroughConfig(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    enabled: bool = Field(False, description="Exported unchanged as `enabled`")


class PassThroughComponent(Component):
    """Exports `enabled`; run() only reports state."""

    config_model = PassThroughConfig

    def build_exports(self) -> Mapping[str, ExportValue]:
        return {"enabled": BoolValue(self.config.enabled)}

    def run(self, ctx: RunContext) -> None:
        logger.info(f"[passthrough] Running {self.name} | enabled={self.config.enabled}")
