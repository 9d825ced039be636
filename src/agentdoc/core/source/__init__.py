"""Source provider: parses TSX with tree-sitter into a neutral component tree."""
from __future__ import annotations

from .expressions import (
    ArrayLiteral,
    BinaryOp,
    Call,
    Expr,
    FunctionValue,
    Identifier,
    JsxValue,
    Literal,
    MemberAccess,
    ObjectEntry,
    ObjectLiteral,
    Opaque,
    Parenthesized,
    SpreadElement,
    TemplateLiteral,
    UnaryOp,
)
from .tree import (
    Attribute,
    ChildNode,
    Element,
    ExpressionContainer,
    JsxText,
    Location,
    SpreadAttribute,
)
from .unit import (
    ComponentDecl,
    ImportBinding,
    InterfaceDecl,
    ParamBinding,
    ParamSpec,
    PropertySpec,
    SourceUnit,
    VariableDecl,
    load_unit,
    parse_source,
)

__all__ = [
    "ArrayLiteral",
    "BinaryOp",
    "Call",
    "Expr",
    "FunctionValue",
    "Identifier",
    "JsxValue",
    "Literal",
    "MemberAccess",
    "ObjectEntry",
    "ObjectLiteral",
    "Opaque",
    "Parenthesized",
    "SpreadElement",
    "TemplateLiteral",
    "UnaryOp",
    "Attribute",
    "ChildNode",
    "Element",
    "ExpressionContainer",
    "JsxText",
    "Location",
    "SpreadAttribute",
    "ComponentDecl",
    "ImportBinding",
    "InterfaceDecl",
    "ParamBinding",
    "ParamSpec",
    "PropertySpec",
    "SourceUnit",
    "VariableDecl",
    "load_unit",
    "parse_source",
]
