"""
Messenger component.

Exports a fresh channel and function pair, and wires itself to another
messenger's pair when its configuration references them:

    component2 "b" {
        message = "hi"
    }

    component2 "c" {
        channel  = component2_b_exports_channel
        function = component2_b_exports_function
    }

Exports:
    enabled    bool, from config
    message    string, from config
    channel    channel this component writes "A message from {label}" into
    function   function returning "hello from {label}"

Background tasks started by run():
    writer     sends into the exported channel every `send_interval`
    reader     only if `channel` is set; handles every message until the
               channel is closed
    caller     only if `function` is set; calls it every `call_interval`
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from ..channels import DEFAULT_CHANNEL_CAPACITY, Channel
from ..component import Component
from ..environment import export_name
from ..values import BoolValue, ChannelHandle, ExportValue, FunctionHandle, StringValue

if TYPE_CHECKING:
    from ..scheduler import RunContext

logger = logging.getLogger(__name__)


class MessengerConfig(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        strict=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    enabled: bool = Field(False, description="Exported unchanged as `enabled`")
    message: str = Field("", description="Exported unchanged as `message`")
    channel: ChannelHandle | None = Field(None, description="Channel to read messages from")
    function: FunctionHandle | None = Field(None, description="Function to call periodically")


class MessengerComponent(Component):
    """
    Producer of a channel/function pair, optional consumer of another pair.

    Messages read from the input channel are kept in `received` and call
    results in `call_results`, in arrival order.
    """

    config_model = MessengerConfig

    def __init__(self, channel_capacity: int = DEFAULT_CHANNEL_CAPACITY):
        super().__init__()
        self._channel_capacity = channel_capacity
        self.output_channel: Channel | None = None
        self.output_function: FunctionHandle | None = None
        self.received: list[str] = []
        self.call_results: list[str] = []

    def setup(self) -> None:
        self.output_channel = Channel(
            export_name(self.kind, self.label, "channel"),
            capacity=self._channel_capacity,
        )
        label = self.label
        self.output_function = FunctionHandle(lambda: f"hello from {label}", owner=self.name)

    def build_exports(self) -> Mapping[str, ExportValue]:
        return {
            "enabled": BoolValue(self.config.enabled),
            "message": StringValue(self.config.message),
            "channel": ChannelHandle(self.output_channel),
            "function": self.output_function,
        }

    def run(self, ctx: RunContext) -> None:
        config = self.config
        logger.info(
            f"[messenger] Running {self.name} | enabled={config.enabled} | "
            f"message={config.message!r} | wired_channel={config.channel is not None} | "
            f"wired_function={config.function is not None}"
        )

        if config.channel is not None:
            ctx.spawn(self._read(config.channel.as_channel(), ctx), name="reader")
        if config.function is not None:
            ctx.spawn(self._call(config.function, ctx), name="caller")
        ctx.spawn(self._write(ctx), name="writer")

    async def _read(self, channel: Channel, ctx: RunContext) -> None:
        async for message in channel:
            self.received.append(message)
            ctx.metrics.messages_received += 1
            logger.info(f"[messenger] {self.label}: Received message -> {message}")
        logger.info(f"[messenger] {self.label}: Channel {channel.name} closed, reader stopping")

    async def _call(self, function: FunctionHandle, ctx: RunContext) -> None:
        while True:
            result = function()
            self.call_results.append(result)
            ctx.metrics.function_calls += 1
            logger.info(f"[messenger] {self.label}: Calling function -> {result}")
            await asyncio.sleep(ctx.settings.call_interval)

    async def _write(self, ctx: RunContext) -> None:
        while True:
            logger.debug(f"[messenger] {self.label}: Sending message to channel")
            await self.output_channel.send(f"A message from {self.label}")
            ctx.metrics.messages_sent += 1
            await asyncio.sleep(ctx.settings.send_interval)

    async def cleanup(self) -> None:
        if self.output_function is not None:
            self.output_function.revoke()
        if self.output_channel is not None:
            await self.output_channel.close()
