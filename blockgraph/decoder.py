"""
Block decoder.

Decodes one RawBlock into the pydantic configuration model of its kind:

1. Every attribute must name a field of the model
2. Each expression is evaluated against a read-only view of the variable
   environment (unknown identifiers are errors)
3. Each value must have exactly the field's kind: bool, string, channel
   or function. Capability handles are passed through untouched.
4. Missing optional fields fall back to the model default (the zero value)

Supported field annotations:
    bool, str, ChannelHandle | None, FunctionHandle | None
"""

from __future__ import annotations

import logging
import types
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError

from .errors import DecodeError, ExpressionError, UnknownVariableError
from .syntax.expressions import evaluate
from .values import ChannelHandle, ExportValue, FunctionHandle, ValueKind

if TYPE_CHECKING:
    from .registry import ComponentKind
    from .syntax.parser import Attribute, RawBlock

logger = logging.getLogger(__name__)

_KIND_BY_TYPE: dict[Any, ValueKind] = {
    bool: ValueKind.BOOL,
    str: ValueKind.STRING,
    ChannelHandle: ValueKind.CHANNEL,
    FunctionHandle: ValueKind.FUNCTION,
}


@dataclass(frozen=True, slots=True)
class AttributeSpec:
    """One attribute a block of a given kind may set."""

    name: str
    field_name: str
    kind: ValueKind
    required: bool = False
    description: str = ""


def attribute_specs(config_model: type[BaseModel]) -> tuple[AttributeSpec, ...]:
    """
    Derive attribute specs from a configuration model.

    Raises:
        TypeError: If a field uses an unsupported annotation
    """
    specs = []
    for field_name, info in config_model.model_fields.items():
        kind = _field_kind(info.annotation)
        if kind is None:
            raise TypeError(
                f"{config_model.__name__}.{field_name}: unsupported attribute type "
                f"{info.annotation!r} (use bool, str, ChannelHandle | None or FunctionHandle | None)"
            )
        specs.append(
            AttributeSpec(
                name=info.alias or field_name,
                field_name=field_name,
                kind=kind,
                required=info.is_required(),
                description=info.description or "",
            )
        )
    return tuple(specs)


def _field_kind(annotation: Any) -> ValueKind | None:
    if annotation in _KIND_BY_TYPE:
        return _KIND_BY_TYPE[annotation]
    if get_origin(annotation) in (Union, types.UnionType):
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) == 1 and members[0] in _KIND_BY_TYPE:
            kind = _KIND_BY_TYPE[members[0]]
            # Only capability handles have a null zero value
            return kind if kind.is_capability else None
    return None


class BlockDecoder:
    """
    Decodes raw blocks into typed configuration models.

    The decoder is stateless; the same instance is reused for every block.

    Example:
        decoder = BlockDecoder()
        config = decoder.decode(block, registry.lookup(block.kind), env.view())
    """

    def decode(
        self,
        block: RawBlock,
        descriptor: ComponentKind,
        variables: Mapping[str, ExportValue],
    ) -> BaseModel:
        """
        Decode one block.

        Args:
            block: Raw block from the parsed document
            descriptor: Registered kind of the block
            variables: Read-only variable environment

        Returns:
            Instance of descriptor.config_model

        Raises:
            DecodeError: On unknown attributes, evaluation failures, type
                mismatches and missing required attributes
            CapabilityTypeError: On capability/data mismatches
        """
        specs = {spec.name: spec for spec in descriptor.attributes}
        payload: dict[str, Any] = {}

        for attr in block.attributes:
            spec = specs.get(attr.name)
            if spec is None:
                raise DecodeError(
                    f"unsupported argument; {descriptor.kind} accepts: "
                    f"{', '.join(sorted(specs)) or 'no attributes'}",
                    kind=block.kind,
                    label=block.label,
                    attribute=attr.name,
                    line=attr.line,
                )
            payload[spec.field_name] = self._decode_attribute(block, attr, spec, variables)

        for spec in specs.values():
            if spec.required and spec.field_name not in payload:
                raise DecodeError(
                    "missing required argument",
                    kind=block.kind,
                    label=block.label,
                    attribute=spec.name,
                    line=block.line,
                )

        try:
            config = descriptor.config_model.model_validate(payload)
        except ValidationError as e:
            raise DecodeError(
                f"invalid configuration: {e.errors()[0].get('msg', e)}",
                kind=block.kind,
                label=block.label,
                line=block.line,
            ) from e

        logger.debug(
            f"[decoder] Decoded {block.kind} \"{block.label}\" | "
            f"attributes={[attr.name for attr in block.attributes]}"
        )
        return config

    def _decode_attribute(
        self,
        block: RawBlock,
        attr: Attribute,
        spec: AttributeSpec,
        variables: Mapping[str, ExportValue],
    ) -> Any:
        context = {
            "kind": block.kind,
            "label": block.label,
            "attribute": attr.name,
            "line": attr.line,
        }

        try:
            value = evaluate(attr.expression, variables)
        except UnknownVariableError as e:
            raise DecodeError(
                f"unknown variable '{e.name}'", variable=e.name, **context
            ) from e
        except ExpressionError as e:
            raise DecodeError(str(e), **context) from e

        try:
            return coerce(value, spec.kind)
        except DecodeError as e:
            raise e.with_context(**context) from e


def coerce(value: ExportValue, kind: ValueKind) -> Any:
    """
    Convert an ExportValue to the Python value stored on a config model.

    Data values unwrap to bool / str; capability values are returned as the
    handle itself after checking the variant.

    Raises:
        DecodeError: On data type mismatch
        CapabilityTypeError: On capability mismatch
    """
    if kind is ValueKind.BOOL:
        return value.as_bool()
    if kind is ValueKind.STRING:
        return value.as_string()
    if kind is ValueKind.CHANNEL:
        value.as_channel()
        return value
    value.as_function()
    return value
