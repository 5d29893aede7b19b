"""
Configuration language: parsing and expression evaluation.

The block syntax and expression grammar are a small, HCL-flavoured subset
parsed with lark. This package only turns text into blocks and evaluates
expressions; the export naming convention and decoding belong to the
graph evaluator.
"""

from .expressions import evaluate, evaluate_text
from .parser import Attribute, Document, Expression, RawBlock, parse, parse_expression

__all__ = [
    "Attribute",
    "Document",
    "Expression",
    "RawBlock",
    "evaluate",
    "evaluate_text",
    "parse",
    "parse_expression",
]
