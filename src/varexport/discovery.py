"""
Discovery of exported members.

Builds, once per class, the flat table of ExportSpecs a class declares:
its own declarations first, then those of its bases and mixins/ABCs in MRO
order. The first declaration found for an attribute wins, so a subclass can
re-declare an inherited member under a different name or TTL. Values are
always read through normal attribute lookup, so overriding an exported method
without re-decorating it keeps the inherited declaration and runs the override.

Also provides package scanning to find classes carrying class-level exports,
for bulk registration with :meth:`VarExporter.export_package`.
"""

import importlib
import inspect
import logging
import pkgutil
import threading
import weakref
from collections.abc import Iterable
from typing import List, Optional, Set, Tuple, Type

from .declarations import FIELDS_ATTRIBUTE, ExportSpec, declared_spec

logger = logging.getLogger(__name__)

_spec_cache: "weakref.WeakKeyDictionary[type, Tuple[ExportSpec, ...]]" = weakref.WeakKeyDictionary()
_spec_cache_lock = threading.Lock()


def _own_specs(cls: Type) -> List[ExportSpec]:
    """Declarations made directly in ``cls``'s body, in definition order."""
    attrs = vars(cls)
    fields = attrs.get(FIELDS_ATTRIBUTE, {})
    specs = []
    for attribute, member in attrs.items():
        if attribute in fields:
            specs.append(fields[attribute])
            continue
        spec = declared_spec(attribute, member)
        if spec is not None:
            specs.append(spec)
    return specs


def get_export_specs(cls: Type) -> Tuple[ExportSpec, ...]:
    """
    Return the merged export table for a class.

    Args:
        cls: Class to inspect

    Returns:
        Tuple of ExportSpecs, one per exported attribute, nearest declaration first
    """
    with _spec_cache_lock:
        cached = _spec_cache.get(cls)
    if cached is not None:
        return cached

    seen = set()
    specs = []
    for klass in cls.__mro__:
        if klass is object:
            continue
        for spec in _own_specs(klass):
            if spec.attribute in seen:
                continue
            seen.add(spec.attribute)
            specs.append(spec)

    result = tuple(specs)
    with _spec_cache_lock:
        _spec_cache[cls] = result
    logger.debug(
        f"Built export table for {cls.__name__}: {[spec.export_name for spec in result]}"
    )
    return result


def collect_exports(target) -> Tuple[ExportSpec, ...]:
    """
    Return the ExportSpecs applicable to an export target.

    Classes yield only class-level (static) declarations; instances yield all.
    """
    if isinstance(target, type):
        return tuple(spec for spec in get_export_specs(target) if spec.static)
    return get_export_specs(type(target))


def has_class_exports(cls: Type) -> bool:
    return any(spec.static for spec in get_export_specs(cls))


def discover_exportable_classes(
    package_path: Iterable[str],
    package_prefix: str,
    exclude_modules: Optional[Set[str]] = None,
    recursive: bool = False
) -> List[Type]:
    """
    Scan a package for classes that declare class-level exports.

    Args:
        package_path: Package __path__ attribute to scan
        package_prefix: Module prefix for importlib (e.g., "myapp.services.")
        exclude_modules: Set of module name substrings to skip
        recursive: Walk subpackages as well

    Returns:
        Classes defined in the scanned modules that have static exports

    Example:
        >>> import myapp.services
        >>> discover_exportable_classes(myapp.services.__path__, "myapp.services.")
        [<class 'myapp.services.cache.Cache'>, <class 'myapp.services.db.Pool'>]
    """
    classes = []
    exclude_modules = exclude_modules or set()

    if recursive:
        modules = pkgutil.walk_packages(package_path, prefix=package_prefix)
    else:
        modules = pkgutil.iter_modules(package_path, package_prefix)

    for importer, module_name, ispkg in modules:
        if ispkg:
            continue

        if any(excluded in module_name for excluded in exclude_modules):
            logger.debug(f"Skipping excluded module: {module_name}")
            continue

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            # Modules with missing optional dependencies are skipped
            logger.debug(f"Could not import module {module_name}: {e}")
            continue

        for name, obj in inspect.getmembers(module, inspect.isclass):
            # Only classes defined in this module (not imported)
            if obj.__module__ != module_name:
                continue
            if has_class_exports(obj):
                logger.debug(f"Discovered exportable class: {obj.__name__} from {module_name}")
                classes.append(obj)

    logger.info(
        f"Discovered {len(classes)} exportable classes under {package_prefix}: "
        f"{[cls.__name__ for cls in classes]}"
    )
    return classes
