"""Source units: one parsed file with its declarations.

A ``SourceUnit`` is what the rest of the compiler knows about a file:
its imports, the components (functions returning JSX) it declares, its
top-level variables, its interfaces and which names it exports. The
document root is located here as well.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from agentdoc.core.exceptions import SourceParseError

from .builder import FUNCTION_TYPES, JSX_ELEMENT_TYPES, TreeBuilder, first_named, named, unwrap
from .expressions import Expr, Opaque
from .parser import get_registry
from .tree import Element, Location

logger = logging.getLogger(__name__)

DOCUMENT_ROOT_TAGS = ("Command", "Agent")


@dataclass(frozen=True)
class ImportBinding:
    """``import { imported as local } from "module"``; ``imported`` is ``default`` for default imports."""

    local: str
    imported: str
    module: str
    type_only: bool = False
    location: Optional[Location] = field(default=None, compare=False)

    @property
    def is_relative(self) -> bool:
        return self.module.startswith(".")


@dataclass(frozen=True)
class ParamBinding:
    prop: str
    default: Optional[Expr] = None


@dataclass(frozen=True)
class ParamSpec:
    """Shape of a component's first parameter.

    ``name`` is set for ``(props) => ...``; ``bindings`` maps local names to
    prop keys for a destructuring pattern; ``rest`` names a ``...rest`` binding.
    """

    name: Optional[str] = None
    bindings: Tuple[Tuple[str, ParamBinding], ...] = ()
    rest: Optional[str] = None


@dataclass(frozen=True)
class ComponentDecl:
    """A function returning JSX. ``locals`` are the bindings declared before its `return`."""

    name: str
    params: ParamSpec
    body: Optional[Element]
    location: Optional[Location] = field(default=None, compare=False)
    locals: Tuple[Tuple[str, Expr], ...] = ()


@dataclass(frozen=True)
class VariableDecl:
    name: str
    init: Expr
    constant: bool = True
    location: Optional[Location] = field(default=None, compare=False)


@dataclass(frozen=True)
class PropertySpec:
    name: str
    required: bool
    type_text: str = ""


@dataclass(frozen=True)
class InterfaceDecl:
    name: str
    properties: Tuple[PropertySpec, ...] = ()
    bases: Tuple[str, ...] = ()
    location: Optional[Location] = field(default=None, compare=False)


@dataclass
class SourceUnit:
    """Declarations of one parsed source file."""

    path: Optional[Path]
    source: bytes
    imports: Dict[str, ImportBinding] = field(default_factory=dict)
    components: Dict[str, ComponentDecl] = field(default_factory=dict)
    variables: Dict[str, VariableDecl] = field(default_factory=dict)
    interfaces: Dict[str, InterfaceDecl] = field(default_factory=dict)
    exports: Dict[str, str] = field(default_factory=dict)
    root: Optional[Element] = None
    _order: List[str] = field(default_factory=list, repr=False)
    _loose_jsx: List[Element] = field(default_factory=list, repr=False)
    _default_jsx: Optional[Element] = field(default=None, repr=False)

    @property
    def display_path(self) -> str:
        return str(self.path) if self.path is not None else "<source>"

    @property
    def directory(self) -> Path:
        return self.path.parent if self.path is not None else Path.cwd()

    def exported_component(self, name: str) -> Optional[ComponentDecl]:
        local = self.exports.get(name)
        if local is None:
            return None
        return self.components.get(local)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str | bytes, path: Optional[str | Path] = None) -> "SourceUnit":
        source = text.encode("utf-8") if isinstance(text, str) else text
        resolved = Path(path) if path is not None else None
        tree = get_registry().parse(source, path=resolved)
        unit = cls(path=resolved, source=source)
        _UnitReader(unit, TreeBuilder(source, str(resolved) if resolved else None)).read(tree.root_node)
        unit.root = unit._find_root()
        return unit

    def owner(self, element: Element) -> Optional[ComponentDecl]:
        """The component whose returned JSX is ``element``."""
        for decl in self.components.values():
            if decl.body is element:
                return decl
        return None

    def _find_root(self) -> Optional[Element]:
        if self._default_jsx is not None:
            return self._default_jsx
        default = self.exported_component("default")
        if default is not None and default.body is not None:
            return default.body
        bodies = [self.components[n].body for n in self._order if self.components[n].body is not None]
        for body in bodies:
            if body is not None and body.tag in DOCUMENT_ROOT_TAGS:
                return body
        if bodies:
            return bodies[0]
        return self._loose_jsx[0] if self._loose_jsx else None


def parse_source(text: str | bytes, path: Optional[str | Path] = None) -> SourceUnit:
    """Parse source text into a ``SourceUnit``."""
    return SourceUnit.parse(text, path)


def load_unit(path: str | Path) -> SourceUnit:
    """Read and parse a file from disk."""
    p = Path(path).resolve()
    try:
        data = p.read_bytes()
    except OSError as exc:
        raise SourceParseError(f"Cannot read {p}: {exc}", context={"path": str(p)}) from exc
    logger.debug("Loaded source unit %s", p)
    return SourceUnit.parse(data, p)


class _UnitReader:
    """Walks top-level statements and fills a ``SourceUnit``."""

    def __init__(self, unit: SourceUnit, builder: TreeBuilder) -> None:
        self.unit = unit
        self.b = builder

    def read(self, program: Node) -> None:
        for stmt in named(program):
            kind = stmt.type
            if kind == "import_statement":
                self._import(stmt)
            elif kind == "export_statement":
                self._export(stmt)
            elif kind == "expression_statement":
                inner = unwrap(first_named(stmt))
                if inner is not None and inner.type in JSX_ELEMENT_TYPES:
                    self.unit._loose_jsx.append(self.b.element(inner))
            else:
                self._declaration(stmt)

    # -- imports -------------------------------------------------------

    def _import(self, stmt: Node) -> None:
        source_node = stmt.child_by_field_name("source") or first_named(stmt, "string")
        if source_node is None:
            return
        module = self.b.string_value(source_node)
        type_only = any(c.type == "type" for c in stmt.children)
        clause = first_named(stmt, "import_clause")
        if clause is None:
            return
        loc = self.b.location(stmt)
        for part in named(clause):
            if part.type == "identifier":
                self._bind_import(self.b.text(part), "default", module, type_only, loc)
            elif part.type == "named_imports":
                for spec in named(part):
                    if spec.type != "import_specifier":
                        continue
                    imported, local = self._specifier_names(spec)
                    spec_type_only = type_only or any(c.type == "type" for c in spec.children)
                    self._bind_import(local, imported, module, spec_type_only, loc)
            elif part.type == "namespace_import":
                ident = first_named(part, "identifier")
                if ident is not None:
                    self._bind_import(self.b.text(ident), "*", module, type_only, loc)

    def _bind_import(self, local: str, imported: str, module: str, type_only: bool, loc: Location) -> None:
        self.unit.imports[local] = ImportBinding(
            local=local, imported=imported, module=module, type_only=type_only, location=loc
        )

    def _specifier_names(self, spec: Node) -> Tuple[str, str]:
        name_node = spec.child_by_field_name("name")
        alias_node = spec.child_by_field_name("alias")
        idents = [c for c in named(spec) if c.type in ("identifier", "type_identifier", "string")]
        if name_node is None and idents:
            name_node = idents[0]
        if alias_node is None and len(idents) > 1:
            alias_node = idents[1]
        imported = self._name_text(name_node) if name_node is not None else ""
        local = self._name_text(alias_node) if alias_node is not None else imported
        return imported, local

    def _name_text(self, node: Node) -> str:
        return self.b.string_value(node) if node.type == "string" else self.b.text(node)

    # -- exports -------------------------------------------------------

    def _export(self, stmt: Node) -> None:
        is_default = any(c.type == "default" for c in stmt.children)
        declaration = stmt.child_by_field_name("declaration")
        if declaration is not None:
            for name in self._declaration(declaration):
                self.unit.exports[name] = name
                if is_default:
                    self.unit.exports["default"] = name
            return

        value = stmt.child_by_field_name("value")
        if value is not None and is_default:
            target = unwrap(value)
            if target is not None and target.type == "identifier":
                self.unit.exports["default"] = self.b.text(target)
            elif target is not None and target.type in FUNCTION_TYPES:
                self._component("default", target)
                self.unit.exports["default"] = "default"
            elif target is not None and target.type in JSX_ELEMENT_TYPES:
                self.unit._default_jsx = self.b.element(target)
            return

        clause = first_named(stmt, "export_clause")
        if clause is None:
            return
        source_node = stmt.child_by_field_name("source")
        module = self.b.string_value(source_node) if source_node is not None else None
        for spec in named(clause):
            if spec.type != "export_specifier":
                continue
            local, exported = self._specifier_names(spec)
            if module is not None:
                # Re-export: make the name importable through this unit.
                self._bind_import(exported, local, module, False, self.b.location(spec))
                self.unit.exports[exported] = exported
            else:
                self.unit.exports[exported] = local

    # -- declarations --------------------------------------------------

    def _declaration(self, node: Node) -> List[str]:
        kind = node.type
        if kind in ("function_declaration", "generator_function_declaration"):
            name_node = node.child_by_field_name("name")
            name = self.b.text(name_node) if name_node is not None else "default"
            self._component(name, node)
            return [name]
        if kind in ("lexical_declaration", "variable_declaration"):
            constant = any(c.type == "const" for c in node.children)
            names: List[str] = []
            for declarator in named(node):
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                value = declarator.child_by_field_name("value")
                if name_node is None or name_node.type != "identifier" or value is None:
                    continue
                name = self.b.text(name_node)
                target = unwrap(value)
                if target is not None and target.type in FUNCTION_TYPES:
                    self._component(name, target)
                else:
                    self.unit.variables[name] = VariableDecl(
                        name=name,
                        init=self.b.expression(value),
                        constant=constant,
                        location=self.b.location(declarator),
                    )
                names.append(name)
            return names
        if kind == "interface_declaration":
            return [self._interface(node)]
        if kind == "type_alias_declaration":
            alias = self._type_alias(node)
            return [alias] if alias else []
        return []

    def _component(self, name: str, node: Node) -> None:
        params = node.child_by_field_name("parameters") or node.child_by_field_name("parameter")
        body, bindings = self.b.function_body(node)
        decl = ComponentDecl(
            name=name,
            params=self._params(params),
            body=body,
            location=self.b.location(node),
            locals=bindings,
        )
        self.unit.components[name] = decl
        self.unit._order.append(name)

    def _params(self, node: Optional[Node]) -> ParamSpec:
        if node is None:
            return ParamSpec()
        if node.type == "identifier":
            return ParamSpec(name=self.b.text(node))
        first = first_named(node)
        if first is None:
            return ParamSpec()
        pattern: Optional[Node] = first
        if first.type in ("required_parameter", "optional_parameter"):
            pattern = first.child_by_field_name("pattern") or first_named(first)
        if pattern is None:
            return ParamSpec()
        if pattern.type == "identifier":
            return ParamSpec(name=self.b.text(pattern))
        if pattern.type != "object_pattern":
            return ParamSpec()

        bindings: List[Tuple[str, ParamBinding]] = []
        rest: Optional[str] = None
        for member in named(pattern):
            if member.type == "shorthand_property_identifier_pattern":
                name = self.b.text(member)
                bindings.append((name, ParamBinding(prop=name)))
            elif member.type == "object_assignment_pattern":
                left = member.child_by_field_name("left")
                right = member.child_by_field_name("right")
                if left is None:
                    continue
                name = self.b.text(left)
                default = self.b.expression(right) if right is not None else None
                bindings.append((name, ParamBinding(prop=name, default=default)))
            elif member.type == "pair_pattern":
                key = member.child_by_field_name("key")
                value = member.child_by_field_name("value")
                if key is None or value is None:
                    continue
                prop = self.b.text(key)
                if value.type == "assignment_pattern":
                    left = value.child_by_field_name("left")
                    right = value.child_by_field_name("right")
                    if left is not None:
                        bindings.append((
                            self.b.text(left),
                            ParamBinding(prop=prop, default=self.b.expression(right) if right is not None else None),
                        ))
                else:
                    bindings.append((self.b.text(value), ParamBinding(prop=prop)))
            elif member.type == "rest_pattern":
                ident = first_named(member, "identifier")
                if ident is not None:
                    rest = self.b.text(ident)
        return ParamSpec(bindings=tuple(bindings), rest=rest)

    # -- types ---------------------------------------------------------

    def _interface(self, node: Node) -> str:
        name_node = node.child_by_field_name("name")
        name = self.b.text(name_node) if name_node is not None else ""
        body = node.child_by_field_name("body") or first_named(node, "interface_body", "object_type")
        bases: List[str] = []
        for child in named(node):
            if child.type in ("extends_type_clause", "extends_clause"):
                bases.extend(self._type_names(child))
        self.unit.interfaces[name] = InterfaceDecl(
            name=name,
            properties=self._properties(body),
            bases=tuple(bases),
            location=self.b.location(node),
        )
        return name

    def _type_alias(self, node: Node) -> Optional[str]:
        name_node = node.child_by_field_name("name")
        value = node.child_by_field_name("value")
        if name_node is None or value is None:
            return None
        name = self.b.text(name_node)
        properties: List = []
        bases: List[str] = []
        parts = [value] if value.type != "intersection_type" else named(value)
        for part in parts:
            if part.type == "object_type":
                properties.extend(self._properties(part))
            elif part.type in ("type_identifier", "generic_type"):
                bases.extend(self._type_names(part))
        if not properties and not bases:
            return None
        self.unit.interfaces[name] = InterfaceDecl(
            name=name,
            properties=tuple(properties),
            bases=tuple(bases),
            location=self.b.location(node),
        )
        return name

    def _properties(self, body: Optional[Node]) -> Tuple[PropertySpec, ...]:
        if body is None:
            return ()
        props: List[PropertySpec] = []
        for member in named(body):
            if member.type != "property_signature":
                continue
            name_node = member.child_by_field_name("name")
            if name_node is None:
                continue
            optional = any(c.type == "?" for c in member.children)
            type_node = member.child_by_field_name("type")
            type_text = self.b.text(type_node).lstrip(":").strip() if type_node is not None else ""
            props.append(PropertySpec(name=self._name_text(name_node), required=not optional, type_text=type_text))
        return tuple(props)

    def _type_names(self, node: Node) -> List[str]:
        if node.type == "type_identifier":
            return [self.b.text(node)]
        if node.type == "generic_type":
            name = node.child_by_field_name("name") or first_named(node, "type_identifier")
            return [self.b.text(name)] if name is not None else []
        names: List[str] = []
        for child in named(node):
            names.extend(self._type_names(child))
        return names


__all__ = [
    "SourceUnit",
    "ImportBinding",
    "ParamBinding",
    "ParamSpec",
    "ComponentDecl",
    "VariableDecl",
    "PropertySpec",
    "InterfaceDecl",
    "parse_source",
    "load_unit",
    "DOCUMENT_ROOT_TAGS",
]
