"""
Namespaced registry of exported variables.

A VarExporter is one named namespace of variables. Namespaces are obtained by
name from an ExporterRegistry (a process-wide default exists) and can be
chained: a namespace whose parent is another namespace shows up in the
parent's enumeration with its variables prefixed by ``<name>-``, recursively.

Usage:
    exporter = VarExporter.for_namespace("cache").include_in_global()
    exporter.export(cache, prefix="main-")

    VarExporter.global_namespace().get_value("cache-main-hits")
    VarExporter.global_namespace().dump(sys.stdout, include_doc=True)

Thread safety:
- Each namespace guards its entry map and parent pointer with its own lock.
  An export becomes visible all at once; enumeration works on a snapshot.
- Values are computed outside any lock, so slow producers never block
  exports or enumerations of other variables.
"""

import importlib
import inspect
import logging
import threading
from datetime import datetime
from functools import partial
from types import ModuleType
from typing import Callable, Dict, List, Optional, Set, TextIO, Tuple, Union

from .caching import CachingVariable
from .declarations import FIELD, METHOD, PROPERTY, ExportSpec, classify
from .discovery import collect_exports, discover_exportable_classes, get_export_specs
from .exceptions import AttributeAccessError
from .expansion import EXPANSION_SEPARATOR, ExpandedVariable
from .formatting import format_json, write_entry
from .variables import ManagedVariable, ProducerVariable, Variable, create_start_time_variable
from .weak import WeakHolder

logger = logging.getLogger(__name__)

GLOBAL_NAMESPACE = "global"
NAMESPACE_SEPARATOR = "-"

Visitor = Callable[[Variable], None]


def build_variable(
    name: str,
    spec: ExportSpec,
    producer: Callable[[], object],
    holder: Optional[WeakHolder] = None
) -> Variable:
    """Wrap a producer according to its ExportSpec (caching, then expansion)."""
    variable: Variable = ProducerVariable(
        name, producer, doc=spec.doc, expand=spec.expand, holder=holder
    )
    if spec.ttl_ms > 0:
        variable = CachingVariable(variable, spec.ttl_ms)
    if spec.expand:
        variable = ExpandedVariable(variable)
    return variable


class ExporterRegistry:
    """
    Table of namespaces by name, plus the start-time gate.

    The module-level ``default_registry`` backs ``VarExporter.for_namespace``;
    pass a separate instance for isolated registries (e.g., in tests).
    """

    def __init__(self):
        self._namespaces: Dict[str, "VarExporter"] = {}
        self._lock = threading.Lock()
        self.start_time: Optional[ManagedVariable] = None

    def namespace(self, name: str) -> "VarExporter":
        """Return the namespace for ``name``, creating it on first use."""
        with self._lock:
            exporter = self._namespaces.get(name)
            if exporter is None:
                exporter = VarExporter(name, self)
                self._namespaces[name] = exporter
                logger.debug(f"Created namespace '{name}'")
            return exporter

    def global_namespace(self) -> "VarExporter":
        return self.namespace(GLOBAL_NAMESPACE)

    def namespaces(self) -> List["VarExporter"]:
        with self._lock:
            return list(self._namespaces.values())

    def children_of(self, parent: "VarExporter") -> List["VarExporter"]:
        """Namespaces whose parent is ``parent`` (never ``parent`` itself)."""
        children = [
            exporter for exporter in self.namespaces()
            if exporter is not parent and exporter.parent is parent
        ]
        return sorted(children, key=lambda exporter: exporter.name)

    def set_start_time(
        self,
        when: Union[datetime, ManagedVariable, None] = None
    ) -> ManagedVariable:
        """
        Expose a start time from the global namespace.

        Args:
            when: Start instant, a prebuilt start-time variable, or None for now

        Returns:
            The variable now exposed as ``exporter-start-time``
        """
        if isinstance(when, ManagedVariable):
            variable = when
        else:
            variable = create_start_time_variable(when)
        self.start_time = variable
        logger.debug(f"Start time set to {variable.get_value()}")
        return variable

    def clear_start_time(self) -> None:
        self.start_time = None

    def clear(self) -> None:
        """Forget every namespace and the start time."""
        with self._lock:
            self._namespaces.clear()
        self.start_time = None
        logger.debug("Cleared exporter registry")


default_registry = ExporterRegistry()


class VarExporter:
    """
    One namespace of exported variables.

    Do not instantiate directly; use :meth:`for_namespace` or
    :meth:`global_namespace` so each name maps to a single instance.
    """

    def __init__(self, name: str, registry: ExporterRegistry):
        self.name = name
        self._registry = registry
        self._parent: Optional[VarExporter] = None
        self._variables: Dict[str, Variable] = {}
        self._lock = threading.RLock()

    @classmethod
    def for_namespace(cls, name: str, registry: Optional[ExporterRegistry] = None) -> "VarExporter":
        return (registry or default_registry).namespace(name)

    @classmethod
    def global_namespace(cls, registry: Optional[ExporterRegistry] = None) -> "VarExporter":
        return (registry or default_registry).global_namespace()

    @property
    def parent(self) -> Optional["VarExporter"]:
        return self._parent

    @property
    def is_global(self) -> bool:
        return self.name == GLOBAL_NAMESPACE

    def include_in_global(self) -> "VarExporter":
        """Make the global namespace this namespace's parent."""
        return self.set_parent_namespace(self._registry.global_namespace())

    def set_parent_namespace(self, parent: "VarExporter") -> "VarExporter":
        """
        Nest this namespace under ``parent``.

        Callers must not build cycles longer than a namespace parenting itself;
        enumeration visits each namespace at most once regardless.
        """
        with self._lock:
            self._parent = parent
        logger.debug(f"Namespace '{self.name}' parent set to '{parent.name}'")
        return self

    # Export

    def export(self, target, prefix: str = "") -> None:
        """
        Export every declared member of ``target``.

        Args:
            target: Instance (all declarations, held weakly), class (class-level
                    declarations only) or a Variable such as ManagedVariable
            prefix: Prepended to every exported name
        """
        if isinstance(target, Variable):
            self._put({prefix + target.name: target})
            return

        holder = None
        owner_class = target if isinstance(target, type) else type(target)
        variables = {}
        for spec in collect_exports(target):
            if spec.static:
                producer = partial(spec.read, owner_class)
                variable = build_variable(prefix + spec.export_name, spec, producer)
            else:
                if holder is None:
                    holder = WeakHolder(target)
                variable = build_variable(
                    prefix + spec.export_name, spec, holder.producer(spec.read), holder
                )
            variables[variable.name] = variable
        self._put(variables)

    def export_member(
        self,
        target,
        member,
        prefix: str = "",
        name: Optional[str] = None
    ) -> Variable:
        """
        Export one field, property or method of ``target``.

        The exported name is ``name`` if given, otherwise the member's declared
        export name, otherwise its attribute name.

        Args:
            target: Instance or class owning the member
            member: Attribute name, or the function/property object itself
            prefix: Prepended to the exported name
            name: Explicit export name

        Returns:
            The exported Variable

        Raises:
            AttributeAccessError: If the member is private, missing, or an
                instance member referenced on a class
        """
        owner_class = target if isinstance(target, type) else type(target)
        attribute = _member_attribute(member)
        if attribute.startswith("_"):
            raise AttributeAccessError(
                f"{owner_class.__name__}.{attribute} is not a public member"
            )
        try:
            raw = inspect.getattr_static(target, attribute)
        except AttributeError:
            raise AttributeAccessError(
                f"{owner_class.__name__} has no member {attribute!r}"
            ) from None

        declared = {spec.attribute: spec for spec in get_export_specs(owner_class)}
        spec = declared.get(attribute)
        if spec is None:
            kind, static = classify(raw) or (FIELD, isinstance(target, type))
            spec = ExportSpec(attribute=attribute, kind=kind, static=static)
        spec = ExportSpec(
            attribute=attribute,
            name=name or spec.name or attribute,
            doc=spec.doc,
            expand=spec.expand,
            ttl_ms=spec.ttl_ms,
            kind=spec.kind,
            static=spec.static or isinstance(target, type)
        )

        if isinstance(target, type):
            bound_to_class = isinstance(raw, (staticmethod, classmethod))
            if spec.kind == PROPERTY or (spec.kind == METHOD and not bound_to_class):
                raise AttributeAccessError(
                    f"{owner_class.__name__}.{attribute} requires an instance"
                )
            variable = build_variable(prefix + spec.export_name, spec, partial(spec.read, target))
        elif spec.static:
            variable = build_variable(prefix + spec.export_name, spec, partial(spec.read, owner_class))
        else:
            holder = WeakHolder(target)
            variable = build_variable(
                prefix + spec.export_name, spec, holder.producer(spec.read), holder
            )
        self._put({variable.name: variable})
        return variable

    def export_package(
        self,
        package: Union[str, ModuleType],
        prefix: str = "",
        recursive: bool = False,
        exclude_modules: Optional[Set[str]] = None
    ) -> List[type]:
        """
        Export the class-level declarations of every class found in a package.

        Returns:
            The classes that were exported
        """
        if isinstance(package, str):
            package = importlib.import_module(package)
        classes = discover_exportable_classes(
            package.__path__,
            f"{package.__name__}.",
            exclude_modules=exclude_modules,
            recursive=recursive
        )
        for cls in classes:
            self.export(cls, prefix)
        return classes

    def _put(self, variables: Dict[str, Variable]) -> None:
        with self._lock:
            self._variables.update(variables)
        logger.debug(
            f"Exported {len(variables)} variables into namespace '{self.name}': {list(variables)}"
        )

    def reset(self) -> None:
        """Remove this namespace's own variables (children and parent are untouched)."""
        with self._lock:
            self._variables.clear()
        logger.debug(f"Reset namespace '{self.name}'")

    # Enumeration

    def _snapshot(self) -> List[Tuple[str, Variable]]:
        """Own live entries; variables of collected instances are pruned."""
        with self._lock:
            dead = [name for name, variable in self._variables.items() if not variable.is_live()]
            for name in dead:
                del self._variables[name]
            items = list(self._variables.items())
        if dead:
            logger.debug(f"Pruned {len(dead)} variables of collected instances from '{self.name}': {dead}")
        return items

    def _collect(self, prefix: str, merged: Dict[str, Variable], visited: Set[int]) -> None:
        if id(self) in visited:
            return
        visited.add(id(self))
        for name, variable in self._snapshot():
            merged[prefix + name] = variable
        for child in self._registry.children_of(self):
            child._collect(f"{prefix}{child.name}{NAMESPACE_SEPARATOR}", merged, visited)

    def _merged(self) -> Dict[str, Variable]:
        """Own and descendant variables by merged name, sorted by name."""
        merged: Dict[str, Variable] = {}
        self._collect("", merged, set())
        if self.is_global and self._registry.start_time is not None:
            start_time = self._registry.start_time
            merged[start_time.name] = start_time
        return dict(sorted(merged.items()))

    def _read_entries(self, name: str, variable: Variable) -> Optional[List[Variable]]:
        try:
            return variable.entries(name)
        except Exception as e:
            logger.warning(f"Failed to read variable {name} in namespace '{self.name}': {e}")
            return None

    def get_variables(self) -> List[Variable]:
        """Merged variables, with expanded mappings flattened into their children."""
        variables = []
        for name, variable in self._merged().items():
            variables.extend(self._read_entries(name, variable) or [])
        return variables

    def visit_variables(self, visitor: Visitor) -> None:
        for variable in self.get_variables():
            visitor(variable)

    def get_variable(self, name: str) -> Optional[Variable]:
        """
        Look up a variable by merged name, including ``parent#key`` children.

        Returns:
            The Variable, or None if no such variable exists
        """
        merged = self._merged()
        variable = merged.get(name)
        if variable is not None:
            return variable if variable.name == name else variable.renamed(name)

        for merged_name, variable in merged.items():
            if not variable.expand or not name.startswith(merged_name + EXPANSION_SEPARATOR):
                continue
            for child in self._read_entries(merged_name, variable) or []:
                if child.name == name:
                    return child
        return None

    def get_value(self, name: str):
        """Current value of a variable, or None if unknown or unreadable."""
        variable = self.get_variable(name)
        if variable is None:
            return None
        try:
            return variable.get_value()
        except Exception as e:
            logger.warning(f"Failed to read variable {name} in namespace '{self.name}': {e}")
            return None

    # Output

    def _rendered(self) -> List[Tuple[Variable, object]]:
        """(variable, value) pairs in dump order; unreadable variables are skipped."""
        rendered = []
        for name, variable in self._merged().items():
            try:
                entries = [(entry, entry.get_value()) for entry in variable.entries(name)]
            except Exception as e:
                logger.warning(f"Skipping unreadable variable {name} in namespace '{self.name}': {e}")
                continue
            rendered.extend(entries)
        return rendered

    def dump(self, out: TextIO, include_doc: bool = False) -> None:
        """Write every variable as an escaped ``name=value`` line."""
        for variable, value in self._rendered():
            write_entry(out, variable.name, value, variable.get_doc(), include_doc)

    def dump_json(self, out: TextIO) -> None:
        """Write every variable on one line as ``{name='value', ...}``."""
        out.write(format_json((variable.name, value) for variable, value in self._rendered()))

    def __repr__(self) -> str:
        parent = self._parent.name if self._parent is not None else None
        return f"VarExporter(name={self.name!r}, parent={parent!r})"


def _member_attribute(member) -> str:
    if isinstance(member, str):
        return member
    if isinstance(member, property) and member.fget is not None:
        return member.fget.__name__
    func = getattr(member, "__func__", member)
    name = getattr(func, "__name__", None)
    if name is None:
        raise AttributeAccessError(f"Cannot determine the attribute name of {member!r}")
    return name


def for_namespace(name: str) -> VarExporter:
    return VarExporter.for_namespace(name)


def global_namespace() -> VarExporter:
    return VarExporter.global_namespace()


def visit_namespace_variables(namespace: str, visitor: Visitor) -> None:
    """Visit the merged variables of the namespace called ``namespace``."""
    VarExporter.for_namespace(namespace).visit_variables(visitor)
