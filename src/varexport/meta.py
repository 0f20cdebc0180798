"""
Metaclass for automatic export at class definition time.

Instead of calling ``VarExporter.export`` by hand, a class can name the
namespace its variables belong to:

    class ConnectionPool(metaclass=AutoExportMeta):
        __export_namespace__ = "db"
        __export_prefix__ = "pool-"
        __export_instances__ = True

        max_size = exported(10, static=True, doc="Configured pool size")
        in_use = exported(0, doc="Connections checked out")

Defining the class exports its class-level declarations into ``db``; with
``__export_instances__`` every new instance is exported as well (held weakly,
so dropped pools disappear from the namespace). Subclasses inherit the
configuration and are exported under the same namespace.

Configuration attributes:
    __export_namespace__: Namespace name ("global" for the global namespace)
    __export_prefix__: Prefix for every exported name (default "")
    __export_instances__: Also export each instance on construction (default False)
    __export_registry__: ExporterRegistry to use (default: the process-wide one)
"""

import logging
from abc import ABCMeta
from typing import Optional

from .core import VarExporter

logger = logging.getLogger(__name__)


class AutoExportMeta(ABCMeta):
    """Metaclass that exports classes (and optionally instances) on creation."""

    def __new__(mcs, name: str, bases: tuple, attrs: dict, **kwargs):
        new_class = super().__new__(mcs, name, bases, attrs, **kwargs)

        exporter = mcs._get_exporter(new_class)
        if exporter is None:
            return new_class

        prefix = getattr(new_class, '__export_prefix__', '')
        exporter.export(new_class, prefix)
        logger.debug(f"Auto-exported {name} into namespace '{exporter.name}'")
        return new_class

    def __call__(cls, *args, **kwargs):
        instance = super().__call__(*args, **kwargs)
        if getattr(cls, '__export_instances__', False):
            exporter = type(cls)._get_exporter(cls)
            if exporter is not None:
                exporter.export(instance, getattr(cls, '__export_prefix__', ''))
                logger.debug(f"Auto-exported {cls.__name__} instance into namespace '{exporter.name}'")
        return instance

    @staticmethod
    def _get_exporter(cls) -> Optional[VarExporter]:
        """Namespace configured for a class, or None if it has no configuration."""
        namespace = getattr(cls, '__export_namespace__', None)
        if namespace is None:
            return None
        registry = getattr(cls, '__export_registry__', None)
        return VarExporter.for_namespace(namespace, registry)
