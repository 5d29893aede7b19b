"""
Configuration document parser.

Turns source text into a Document: a flat, ordered sequence of RawBlocks,
each with a kind, its labels and a body of attribute expressions:

    component2 "b" {
        enabled = !component1_a_exports_enabled
        message = "hi"
    }

Expressions are kept as parse trees and evaluated later against the
variable environment (see expressions.py). The grammar is a small,
HCL-flavoured subset: boolean and string literals, identifiers, `!`,
`&&`, `||`, `==`, `!=`, the ternary conditional and parentheses.
Attributes may be separated by newlines, `;` or `,`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from functools import lru_cache

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from ..errors import ParseError

logger = logging.getLogger(__name__)

GRAMMAR = r"""
start: block*

standalone: expression

block: IDENTIFIER label* "{" (attribute _SEPARATOR?)* "}"

label: STRING
     | IDENTIFIER

attribute: IDENTIFIER "=" expression

?expression: or_expr
           | or_expr "?" expression ":" expression -> conditional

?or_expr: and_expr
        | or_expr "||" and_expr -> or_op

?and_expr: equality
         | and_expr "&&" equality -> and_op

?equality: unary
         | equality "==" unary -> eq
         | equality "!=" unary -> ne

?unary: primary
      | "!" unary -> not_op

?primary: "true" -> true
        | "false" -> false
        | STRING -> string
        | IDENTIFIER -> variable
        | "(" expression ")"

_SEPARATOR: ";" | ","

IDENTIFIER: /[A-Za-z_][A-Za-z0-9_-]*/
STRING: /"(?:[^"\\\n]|\\.)*"/

LINE_COMMENT: /(#|\/\/)[^\n]*/
BLOCK_COMMENT: /\/\*(.|\n)*?\*\//

%import common.WS
%ignore WS
%ignore LINE_COMMENT
%ignore BLOCK_COMMENT
"""

_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t", "r": "\r"}
_ESCAPE_RE = re.compile(r"\\(u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|.)")


@lru_cache(maxsize=1)
def _get_parser() -> Lark:
    return Lark(
        GRAMMAR,
        parser="lalr",
        start=["start", "standalone"],
        propagate_positions=True,
    )


# =============================================================================
# Document model
# =============================================================================


@dataclass(frozen=True, slots=True)
class Expression:
    """An unevaluated attribute expression."""

    source: str
    tree: Tree = field(repr=False, compare=False)
    line: int = 0
    column: int = 0

    def variables(self) -> frozenset[str]:
        """Identifiers referenced anywhere in the expression."""
        return frozenset(str(node.children[0]) for node in self.tree.find_data("variable"))


@dataclass(frozen=True, slots=True)
class Attribute:
    name: str
    expression: Expression
    line: int = 0
    column: int = 0


@dataclass(frozen=True, slots=True)
class RawBlock:
    """One declared block, before decoding."""

    kind: str
    labels: tuple[str, ...]
    attributes: tuple[Attribute, ...] = ()
    line: int = 0
    column: int = 0

    @property
    def label(self) -> str:
        """First label (the component name for single-label kinds)."""
        return self.labels[0] if self.labels else ""

    def attribute(self, name: str) -> Attribute | None:
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None

    def referenced_variables(self) -> frozenset[str]:
        names: set[str] = set()
        for attr in self.attributes:
            names |= attr.expression.variables()
        return frozenset(names)


@dataclass(frozen=True, slots=True)
class Document:
    """Parsed configuration document, blocks in source order."""

    blocks: tuple[RawBlock, ...] = ()
    filename: str = "<config>"

    def __iter__(self) -> Iterator[RawBlock]:
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)


# =============================================================================
# Parsing
# =============================================================================


def parse(text: str, filename: str = "<config>") -> Document:
    """
    Parse a configuration document.

    Args:
        text: Source text
        filename: Name used in error messages

    Returns:
        Document with blocks in declaration order

    Raises:
        ParseError: On malformed syntax
    """
    try:
        tree = _get_parser().parse(text, start="start")
    except UnexpectedInput as e:
        raise _to_parse_error(e, filename) from e

    blocks = tuple(_build_block(node, text, filename) for node in tree.children)
    logger.debug(f"[parser] Parsed {filename} | blocks={len(blocks)}")
    return Document(blocks=blocks, filename=filename)


def parse_expression(text: str, filename: str = "<expression>") -> Expression:
    """Parse a standalone expression."""
    try:
        tree = _get_parser().parse(text, start="standalone")
    except UnexpectedInput as e:
        raise _to_parse_error(e, filename) from e
    return _build_expression(tree.children[0], text, filename)


def _to_parse_error(error: UnexpectedInput, filename: str) -> ParseError:
    if isinstance(error, UnexpectedToken):
        if error.token.type == "$END":
            message = "unexpected end of input"
        else:
            message = f"unexpected {error.token.type} {str(error.token)!r}"
        expected = sorted(error.expected or ())
        if expected:
            message = f"{message}, expected one of: {', '.join(expected)}"
    elif isinstance(error, UnexpectedCharacters):
        message = f"unexpected character {error.char!r}"
    elif isinstance(error, UnexpectedEOF):
        message = "unexpected end of input"
    else:
        message = str(error)

    line = getattr(error, "line", None)
    column = getattr(error, "column", None)
    return ParseError(
        message,
        filename=filename,
        line=line if isinstance(line, int) and line > 0 else None,
        column=column if isinstance(column, int) and column > 0 else None,
    )


def _build_block(node: Tree, text: str, filename: str) -> RawBlock:
    kind_token = node.children[0]
    labels: list[str] = []
    attributes: list[Attribute] = []
    seen: set[str] = set()

    for child in node.children[1:]:
        if child.data == "label":
            labels.append(_token_text(child.children[0], filename))
        elif child.data == "attribute":
            name_token, expr_node = child.children
            name = str(name_token)
            if name in seen:
                raise ParseError(
                    f"attribute '{name}' redefined in block {kind_token}",
                    filename=filename,
                    line=name_token.line,
                    column=name_token.column,
                )
            seen.add(name)
            attributes.append(
                Attribute(
                    name=name,
                    expression=_build_expression(expr_node, text, filename),
                    line=name_token.line,
                    column=name_token.column,
                )
            )

    return RawBlock(
        kind=str(kind_token),
        labels=tuple(labels),
        attributes=tuple(attributes),
        line=kind_token.line,
        column=kind_token.column,
    )


def _build_expression(node: Tree, text: str, filename: str) -> Expression:
    # Validate string escapes up front so evaluation never sees a bad literal
    for string_node in node.find_data("string"):
        _token_text(string_node.children[0], filename)

    meta = node.meta
    source = text[meta.start_pos : meta.end_pos] if not meta.empty else node.data
    return Expression(
        source=source,
        tree=node,
        line=getattr(meta, "line", 0),
        column=getattr(meta, "column", 0),
    )


def _token_text(token: Token, filename: str) -> str:
    """Identifier text, or the unescaped contents of a string literal."""
    if token.type != "STRING":
        return str(token)
    return unquote(str(token), filename=filename, line=token.line, column=token.column)


def unquote(
    literal: str,
    *,
    filename: str = "<config>",
    line: int | None = None,
    column: int | None = None,
) -> str:
    """
    Strip quotes from a string literal and resolve escape sequences.

    Supports \\" \\\\ \\n \\t \\r, plus \\uNNNN and \\UNNNNNNNN for any
    Unicode scalar value.
    """

    def fail(sequence: str) -> ParseError:
        return ParseError(
            f"invalid escape sequence '\\{sequence}'",
            filename=filename,
            line=line,
            column=column,
        )

    def replace(match: re.Match) -> str:
        sequence = match.group(1)
        if sequence[0] in "uU" and len(sequence) > 1:
            code_point = int(sequence[1:], 16)
            if code_point > 0x10FFFF or 0xD800 <= code_point <= 0xDFFF:
                raise fail(sequence)
            return chr(code_point)
        if sequence not in _ESCAPES:
            raise fail(sequence)
        return _ESCAPES[sequence]

    return _ESCAPE_RE.sub(replace, literal[1:-1])
