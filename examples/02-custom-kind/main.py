"""
Custom Kind Example

This example demonstrates registering a component kind of your own:
1. Define a config model (bool / str / ChannelHandle / FunctionHandle fields)
2. Implement a Component that allocates handles in setup()
3. Register it next to the built-in kinds and reference its exports

The `relay` kind reads from a channel, transforms each message and writes
it to a channel of its own, so relays can be chained.

Run: python examples/02-custom-kind/main.py
"""

import asyncio
import logging
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from blockgraph import (
    AppSettings,
    BoolValue,
    ChannelHandle,
    Component,
    ComponentKind,
    ExportValue,
    GraphRuntime,
    RunContext,
)
from blockgraph.channels import Channel
from blockgraph.components import create_default_registry
from blockgraph.environment import export_name
from blockgraph.loaders import MemoryDocumentLoader

DOCUMENT = """
component2 "source" {}

relay "shout" {
    upper   = true
    channel = component2_source_exports_channel
}

relay "tag" {
    prefix  = "[relayed] "
    channel = relay_shout_exports_channel
}

component2 "sink" {
    channel = relay_tag_exports_channel
}
"""

# =============================================================================
# Custom Kind
# =============================================================================


class RelayConfig(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True, extra="forbid", arbitrary_types_allowed=True)

    upper: bool = Field(False, description="Uppercase each message")
    prefix: str = Field("", description="Prepended to each message")
    channel: ChannelHandle | None = Field(None, description="Input channel")


class RelayComponent(Component):
    """Forwards messages from its input channel to its exported channel."""

    config_model = RelayConfig

    def setup(self) -> None:
        self.output = Channel(export_name(self.kind, self.label, "channel"))

    def build_exports(self) -> Mapping[str, ExportValue]:
        return {
            "wired": BoolValue(self.config.channel is not None),
            "channel": ChannelHandle(self.output),
        }

    def run(self, ctx: RunContext) -> None:
        if self.config.channel is not None:
            ctx.spawn(self._forward(self.config.channel.as_channel()), name="forward")

    async def _forward(self, source: Channel) -> None:
        async for message in source:
            if self.config.upper:
                message = message.upper()
            await self.output.send(f"{self.config.prefix}{message}")

    async def cleanup(self) -> None:
        await self.output.close()


# =============================================================================
# Main
# =============================================================================


async def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    settings = AppSettings(send_interval=0.5)
    registry = create_default_registry(settings)
    registry.register(ComponentKind(kind="relay", config_model=RelayConfig, factory=RelayComponent))

    runtime = GraphRuntime(registry, MemoryDocumentLoader({"relay": DOCUMENT}), settings=settings)
    graph = await runtime.load_graph("relay")
    report = await runtime.run_graph(graph, duration=2.0, document="relay")

    print(f"Sink received: {graph.require('component2', 'sink').received}")
    print(f"Failures: {[f.to_dict() for f in report.failures]}")


if __name__ == "__main__":
    asyncio.run(main())
