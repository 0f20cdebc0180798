"""
Declarative export metadata.

Members are tagged where they are defined:

    class Cache:
        hits = exported(0, name="cache-hits", doc="Lookups served from cache")
        capacity = exported(1024, static=True)

        @export(doc="Entries currently held", ttl_ms=1000)
        def size(self):
            return len(self._entries)

        @export(name="by-shard", expand=True)
        @property
        def shards(self):
            return {shard.name: shard.size for shard in self._shards}

``@export`` works on plain methods, properties, staticmethods and
classmethods in either decorator order. ``exported(...)`` replaces itself
with its default value when the class is created and records the field in
the class's declaration table.
"""

import inspect
import logging
from dataclasses import dataclass, replace
from typing import Any, Optional

logger = logging.getLogger(__name__)

EXPORT_ATTRIBUTE = "__varexport__"
FIELDS_ATTRIBUTE = "__varexport_fields__"

# Member kinds
FIELD = "field"
METHOD = "method"
PROPERTY = "property"


@dataclass(frozen=True)
class ExportSpec:
    """
    Export configuration for one class member.

    Attributes:
        attribute: Natural attribute name of the member
        name: Declared export name (None to use the attribute name)
        doc: Documentation rendered in dumps (None for undocumented)
        expand: Flatten a mapping value into one child variable per key
        ttl_ms: Cache the value for this many milliseconds (0 disables caching)
        kind: FIELD, METHOD or PROPERTY
        static: Whether the member is read from the class rather than an instance
    """
    attribute: str = ""
    name: Optional[str] = None
    doc: Optional[str] = None
    expand: bool = False
    ttl_ms: int = 0
    kind: str = FIELD
    static: bool = False

    @property
    def export_name(self) -> str:
        return self.name or self.attribute

    def read(self, owner):
        """Read the member's current value from an instance or class."""
        value = getattr(owner, self.attribute)
        if self.kind == METHOD:
            return value()
        return value


def _function_of(member):
    if isinstance(member, property):
        return member.fget
    if isinstance(member, (staticmethod, classmethod)):
        return member.__func__
    return member


def classify(member) -> Optional[tuple]:
    """
    Return ``(kind, static)`` for a callable member, or None for plain values.
    """
    if isinstance(member, property):
        return PROPERTY, False
    if isinstance(member, (staticmethod, classmethod)):
        return METHOD, True
    if inspect.isfunction(member):
        return METHOD, False
    return None


def export(
    name: Optional[str] = None,
    doc: Optional[str] = None,
    expand: bool = False,
    ttl_ms: int = 0
):
    """
    Decorator declaring a method or property as an exported variable.

    Args:
        name: Export name (defaults to the attribute name)
        doc: Documentation rendered in dumps
        expand: Flatten a mapping value into one variable per key
        ttl_ms: Cache the value for this many milliseconds

    Returns:
        Decorator returning the member unchanged apart from the tag
    """
    if ttl_ms < 0:
        raise ValueError(f"ttl_ms must be >= 0, got {ttl_ms}")

    def decorator(member):
        func = _function_of(member)
        if not callable(func):
            raise TypeError(f"@export cannot decorate {type(member).__name__} objects")
        setattr(func, EXPORT_ATTRIBUTE, ExportSpec(
            attribute=func.__name__,
            name=name,
            doc=doc,
            expand=expand,
            ttl_ms=ttl_ms
        ))
        return member

    return decorator


class ExportedField:
    """Class-body marker for an exported field; see :func:`exported`."""

    def __init__(self, default, spec: ExportSpec):
        self.default = default
        self.spec = spec

    def __set_name__(self, owner, name):
        table = owner.__dict__.get(FIELDS_ATTRIBUTE)
        if table is None:
            table = {}
            setattr(owner, FIELDS_ATTRIBUTE, table)
        table[name] = replace(self.spec, attribute=name)
        # The class attribute becomes the plain default value
        setattr(owner, name, self.default)
        logger.debug(f"Declared exported field {owner.__name__}.{name}")


def exported(
    default: Any = None,
    *,
    name: Optional[str] = None,
    doc: Optional[str] = None,
    expand: bool = False,
    ttl_ms: int = 0,
    static: bool = False
) -> Any:
    """
    Declare an exported field in a class body.

    Args:
        default: Value the class attribute is initialised to
        name: Export name (defaults to the attribute name)
        doc: Documentation rendered in dumps
        expand: Flatten a mapping value into one variable per key
        ttl_ms: Cache the value for this many milliseconds
        static: Read the field from the class even when an instance is exported

    Returns:
        Marker that is replaced by ``default`` once the class is created
    """
    if ttl_ms < 0:
        raise ValueError(f"ttl_ms must be >= 0, got {ttl_ms}")
    return ExportedField(default, ExportSpec(
        name=name,
        doc=doc,
        expand=expand,
        ttl_ms=ttl_ms,
        kind=FIELD,
        static=static
    ))


def declared_spec(attribute: str, member) -> Optional[ExportSpec]:
    """
    Return the ExportSpec declared by ``@export`` on a class-dict member.

    Kind and static-ness come from the member as stored on the class, so the
    decorator order relative to property/staticmethod/classmethod is irrelevant.
    """
    kind = classify(member)
    if kind is None:
        return None
    spec = getattr(_function_of(member), EXPORT_ATTRIBUTE, None)
    if spec is None:
        return None
    return replace(spec, attribute=attribute, kind=kind[0], static=kind[1])
