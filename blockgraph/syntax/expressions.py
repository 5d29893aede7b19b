"""
Strict expression evaluation.

Evaluates a parsed Expression against a flat name -> ExportValue mapping.
There are no implicit conversions:

- `!`, `&&`, `||` and the ternary condition require bool operands
- `==` / `!=` compare data by value (values of different kinds are never
  equal) and capability handles by identity
- both ternary branches are evaluated and must have the same kind
- an identifier missing from the environment is an error, never a zero value

Examples
--------
    expr = parse_expression('enabled ? "on" : "off"')
    evaluate(expr, {"enabled": BoolValue(True)})  # StringValue("on")
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from lark import Tree

from ..errors import ExpressionError, UnknownVariableError
from ..values import BoolValue, ExportValue, StringValue, ValueKind
from .parser import Expression, parse_expression, unquote

__all__ = ["evaluate", "evaluate_text"]


def evaluate(expression: Expression, variables: Mapping[str, ExportValue]) -> ExportValue:
    """
    Evaluate an expression.

    Args:
        expression: Parsed expression
        variables: Read-only variable environment

    Returns:
        The resulting ExportValue

    Raises:
        UnknownVariableError: If an identifier is not bound
        ExpressionError: On any operand type error
    """
    return _Evaluator(expression.source, variables).visit(expression.tree)


def evaluate_text(text: str, variables: Mapping[str, ExportValue]) -> ExportValue:
    """Parse and evaluate a standalone expression."""
    return evaluate(parse_expression(text), variables)


class _Evaluator:
    def __init__(self, source: str, variables: Mapping[str, ExportValue]):
        self._source = source
        self._variables = variables
        self._handlers: dict[str, Callable[[Tree], ExportValue]] = {
            "true": lambda node: BoolValue(True),
            "false": lambda node: BoolValue(False),
            "string": self._string,
            "variable": self._variable,
            "not_op": self._not,
            "and_op": self._and,
            "or_op": self._or,
            "eq": self._eq,
            "ne": self._ne,
            "conditional": self._conditional,
        }

    def visit(self, node: Tree) -> ExportValue:
        handler = self._handlers.get(node.data)
        if handler is None:
            raise ExpressionError(self._source, f"unsupported expression '{node.data}'")
        return handler(node)

    def _fail(self, reason: str) -> ExpressionError:
        return ExpressionError(self._source, reason)

    def _require_bool(self, value: ExportValue, role: str) -> bool:
        if value.kind is not ValueKind.BOOL:
            raise self._fail(f"{role} must be bool, got {value.kind.value}")
        return value.as_bool()

    def _string(self, node: Tree) -> ExportValue:
        return StringValue(unquote(str(node.children[0])))

    def _variable(self, node: Tree) -> ExportValue:
        name = str(node.children[0])
        try:
            return self._variables[name]
        except KeyError:
            raise UnknownVariableError(self._source, name) from None

    def _not(self, node: Tree) -> ExportValue:
        operand = self.visit(node.children[0])
        return BoolValue(not self._require_bool(operand, "operand of '!'"))

    def _and(self, node: Tree) -> ExportValue:
        left = self._require_bool(self.visit(node.children[0]), "left operand of '&&'")
        right = self._require_bool(self.visit(node.children[1]), "right operand of '&&'")
        return BoolValue(left and right)

    def _or(self, node: Tree) -> ExportValue:
        left = self._require_bool(self.visit(node.children[0]), "left operand of '||'")
        right = self._require_bool(self.visit(node.children[1]), "right operand of '||'")
        return BoolValue(left or right)

    def _equal(self, node: Tree) -> bool:
        left = self.visit(node.children[0])
        right = self.visit(node.children[1])
        if left.kind is not right.kind:
            return False
        if left.kind.is_capability:
            return left is right
        return left == right

    def _eq(self, node: Tree) -> ExportValue:
        return BoolValue(self._equal(node))

    def _ne(self, node: Tree) -> ExportValue:
        return BoolValue(not self._equal(node))

    def _conditional(self, node: Tree) -> ExportValue:
        condition_node, then_node, else_node = node.children
        condition = self._require_bool(self.visit(condition_node), "condition")
        then_value = self.visit(then_node)
        else_value = self.visit(else_node)
        if then_value.kind is not else_value.kind:
            raise self._fail(
                f"inconsistent conditional result types: "
                f"{then_value.kind.value} and {else_value.kind.value}"
            )
        return then_value if condition else else_value
