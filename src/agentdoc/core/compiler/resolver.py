"""Component Resolver.

Locates user-defined composite components (same file or relative imports)
and the interfaces used for type-contract checks. Every unit loaded during
one compilation is kept in an arena keyed by its resolved path, so a file is
parsed at most once per compilation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from agentdoc.core.exceptions import CircularReferenceError, UnresolvableReferenceError
from agentdoc.core.ir.runtime import ScriptVarBinder
from agentdoc.core.source.tree import Location
from agentdoc.core.source.unit import ComponentDecl, ImportBinding, PropertySpec, SourceUnit, load_unit

from .scope import Identity, identity_label

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: Tuple[str, ...] = (".tsx", ".ts", ".jsx", ".js")

UnitLoader = Callable[[Path], SourceUnit]


@dataclass(frozen=True)
class Resolved:
    """A composite declaration together with the unit that declares it."""

    decl: ComponentDecl
    unit: SourceUnit

    @property
    def identity(self) -> Identity:
        return (unit_key(self.unit), self.decl.name)


@dataclass(frozen=True)
class TypeShape:
    """Flattened properties of an interface, bases included."""

    name: str
    properties: Tuple[PropertySpec, ...]

    @property
    def required(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.properties if p.required)

    def field(self, name: str) -> Optional[PropertySpec]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


def unit_key(unit: Optional[SourceUnit]) -> str:
    if unit is None or unit.path is None:
        return ""
    return str(unit.path)


class ComponentResolver:
    """Resolves composite components and declared types across source units."""

    def __init__(
        self,
        loader: UnitLoader = load_unit,
        *,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self._loader = loader
        self.extensions = tuple(extensions)
        self._arena: Dict[str, SourceUnit] = {}
        self._binders: Dict[int, ScriptVarBinder] = {}

    # ------------------------------------------------------------------
    # Arena
    # ------------------------------------------------------------------

    def register(self, unit: SourceUnit) -> SourceUnit:
        """Add a unit to the arena; an already-loaded path keeps its first unit."""
        key = unit_key(unit)
        if not key:
            return unit
        return self._arena.setdefault(key, unit)

    def units(self) -> List[SourceUnit]:
        return list(self._arena.values())

    def binder_for(self, unit: Optional[SourceUnit]) -> ScriptVarBinder:
        """Script-variable binder of a unit, created once per unit."""
        if unit is None:
            return ScriptVarBinder()
        binder = self._binders.get(id(unit))
        if binder is None:
            binder = ScriptVarBinder.from_unit(unit)
            self._binders[id(unit)] = binder
        return binder

    def load(self, module: str, importer: SourceUnit, *, location: Optional[Location] = None) -> SourceUnit:
        """Load the unit a relative import specifier points at."""
        if not module.startswith("."):
            raise UnresolvableReferenceError(
                f"Cannot resolve '{module}': only relative imports can provide components",
                location=location,
                context={"module": module},
            )
        path = self.resolve_path(module, importer.directory)
        if path is None:
            raise UnresolvableReferenceError(
                f"Cannot find module '{module}' imported from {importer.display_path}",
                location=location,
                context={"module": module},
            )
        key = str(path)
        unit = self._arena.get(key)
        if unit is None:
            unit = self._loader(path)
            self._arena[key] = unit
            logger.debug("Loaded %s into the resolution arena", path)
        return unit

    def resolve_path(self, module: str, directory: Path) -> Optional[Path]:
        """Literal path, then each extension, then ``index.*`` in a directory."""
        base = (directory / module).resolve()
        if base.is_file():
            return base
        for ext in self.extensions:
            candidate = base.with_name(base.name + ext)
            if candidate.is_file():
                return candidate
        if base.is_dir():
            for ext in self.extensions:
                candidate = base / f"index{ext}"
                if candidate.is_file():
                    return candidate
        return None

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def lookup(
        self,
        name: str,
        unit: Optional[SourceUnit],
        *,
        location: Optional[Location] = None,
    ) -> Optional[Resolved]:
        """Find the composite called ``name`` as seen from ``unit``.

        Returns None when the name is neither declared nor imported.
        Same-file declarations win over imports.
        """
        if unit is None:
            return None
        if "." in name:
            namespace, _, member = name.partition(".")
            binding = unit.imports.get(namespace)
            if binding is None or binding.imported != "*":
                return None
            target = self.load(binding.module, unit, location=location)
            return self._exported(member, target, location, frozenset())
        return self._lookup(name, unit, location, frozenset())

    def _lookup(
        self,
        name: str,
        unit: SourceUnit,
        location: Optional[Location],
        seen: FrozenSet[Identity],
    ) -> Optional[Resolved]:
        decl = unit.components.get(name)
        if decl is not None:
            if decl.body is None:
                raise UnresolvableReferenceError(
                    f"Component '{name}' in {unit.display_path} does not return JSX",
                    location=location,
                )
            return Resolved(decl, unit)
        binding = unit.imports.get(name)
        if binding is None:
            return None
        if binding.type_only:
            raise UnresolvableReferenceError(
                f"'{name}' is imported as a type and cannot be rendered", location=location
            )
        target = self.load(binding.module, unit, location=binding.location or location)
        return self._exported(binding.imported, target, location, seen)

    def _exported(
        self,
        exported: str,
        target: SourceUnit,
        location: Optional[Location],
        seen: FrozenSet[Identity],
    ) -> Resolved:
        identity = (unit_key(target), exported)
        if identity in seen:
            chain = [identity_label(i) for i in seen] + [identity_label(identity)]
            raise CircularReferenceError(chain, location=location)
        local = target.exports.get(exported)
        if local is None:
            raise UnresolvableReferenceError(
                f"'{exported}' is not exported from {target.display_path}",
                location=location,
                context={"symbol": exported},
            )
        found = self._lookup(local, target, location, seen | {identity})
        if found is None:
            raise UnresolvableReferenceError(
                f"'{exported}' exported from {target.display_path} is not a component",
                location=location,
                context={"symbol": exported},
            )
        return found

    def enter(
        self,
        chain: Tuple[Identity, ...],
        identity: Identity,
        *,
        location: Optional[Location] = None,
    ) -> Tuple[Identity, ...]:
        """Push ``identity`` onto the active expansion chain.

        Raises ``CircularReferenceError`` when the identity is already active.
        """
        if identity in chain:
            start = chain.index(identity)
            labels = [identity_label(i) for i in chain[start:]] + [identity_label(identity)]
            raise CircularReferenceError(labels, location=location)
        return chain + (identity,)

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def resolve_type(self, name: str, unit: Optional[SourceUnit]) -> Optional[TypeShape]:
        """Resolve an interface or object type alias, merging ``extends`` bases.

        Returns None when the type cannot be found.
        """
        if unit is None:
            return None
        base_name = name.split("<", 1)[0].strip()
        properties = self._type_properties(base_name, unit, frozenset())
        if properties is None:
            return None
        return TypeShape(base_name, tuple(properties))

    def _type_properties(
        self,
        name: str,
        unit: SourceUnit,
        seen: FrozenSet[Identity],
    ) -> Optional[List[PropertySpec]]:
        identity = (unit_key(unit), name)
        if identity in seen:
            return []
        seen = seen | {identity}

        decl = unit.interfaces.get(name)
        owner = unit
        if decl is None:
            binding = unit.imports.get(name)
            target = self._type_source(binding, unit)
            if target is None or binding is None:
                return None
            local = target.exports.get(binding.imported, binding.imported)
            if local not in target.interfaces:
                return self._type_properties(local, target, seen) if local in target.imports else None
            decl = target.interfaces[local]
            owner = target

        merged: Dict[str, PropertySpec] = {}
        for base in decl.bases:
            inherited = self._type_properties(base, owner, seen)
            if inherited is None:
                logger.debug("Base type %s of %s could not be resolved", base, name)
                continue
            for prop in inherited:
                merged[prop.name] = prop
        for prop in decl.properties:
            merged[prop.name] = prop
        return list(merged.values())

    def _type_source(self, binding: Optional[ImportBinding], unit: SourceUnit) -> Optional[SourceUnit]:
        if binding is None or not binding.is_relative:
            return None
        if self.resolve_path(binding.module, unit.directory) is None:
            return None
        return self.load(binding.module, unit)


__all__ = ["ComponentResolver", "Resolved", "TypeShape", "DEFAULT_EXTENSIONS", "unit_key"]
