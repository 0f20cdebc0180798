"""
varexport: Named, documented runtime variables for diagnostics.

Program state (fields, properties, computed methods, mappings) is declared
exportable where it is defined and registered into namespaces that can be
queried by name or dumped in a properties-style text format, without the
owning code knowing who consumes it.
"""

__version__ = "0.1.0"

from .core import (
    VarExporter,
    ExporterRegistry,
    default_registry,
    for_namespace,
    global_namespace,
    visit_namespace_variables,
    GLOBAL_NAMESPACE,
)
from .declarations import ExportSpec, export, exported
from .variables import (
    Variable,
    ManagedVariable,
    create_start_time_variable,
    START_TIME_VARIABLE_NAME,
)
from .caching import CachingVariable
from .expansion import ExpandedVariable
from .formatting import parse_dump
from .meta import AutoExportMeta
from .exceptions import VarExportError, AttributeAccessError, CollectionEnumerationError

__all__ = [
    # Core
    "VarExporter",
    "ExporterRegistry",
    "default_registry",
    "for_namespace",
    "global_namespace",
    "visit_namespace_variables",
    "GLOBAL_NAMESPACE",
    # Declarations
    "ExportSpec",
    "export",
    "exported",
    "AutoExportMeta",
    # Variables
    "Variable",
    "ManagedVariable",
    "CachingVariable",
    "ExpandedVariable",
    "create_start_time_variable",
    "START_TIME_VARIABLE_NAME",
    # Formatting
    "parse_dump",
    # Exceptions
    "VarExportError",
    "AttributeAccessError",
    "CollectionEnumerationError",
]
