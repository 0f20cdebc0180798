"""
Variable types held by export namespaces.

A Variable is a named, optionally documented value computed on demand. The
namespace never caches values itself; wrappers in :mod:`varexport.caching`
and :mod:`varexport.expansion` decorate a base variable when an export asks
for TTL caching or mapping expansion.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, TextIO

from .formatting import escape, format_line, value_text

logger = logging.getLogger(__name__)

START_TIME_VARIABLE_NAME = "exporter-start-time"


class Variable:
    """Base class for exported variables."""

    def __init__(self, name: str, doc: Optional[str] = None, expand: bool = False):
        self.name = name
        self.doc = doc
        self.expand = expand

    def get_value(self):
        raise NotImplementedError

    def get_doc(self) -> Optional[str]:
        """Doc text as rendered in dumps."""
        return self.doc

    def is_live(self) -> bool:
        return True

    def entries(self, name: Optional[str] = None) -> List["Variable"]:
        """
        Variables this one contributes to an enumeration under ``name``.

        Plain variables contribute themselves; expanded variables contribute
        one child per mapping key.
        """
        if name is None or name == self.name:
            return [self]
        return [self.renamed(name)]

    def renamed(self, name: str) -> "Variable":
        return RenamedVariable(name, self)

    def write_value(self, out: TextIO) -> None:
        """Write the escaped value text to ``out``."""
        out.write(escape(value_text(self.get_value())))

    def __str__(self) -> str:
        return format_line(self.name, self.get_value())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ProducerVariable(Variable):
    """Variable backed by a zero-argument producer."""

    def __init__(
        self,
        name: str,
        producer: Callable[[], object],
        doc: Optional[str] = None,
        expand: bool = False,
        holder=None
    ):
        super().__init__(name, doc, expand)
        self.producer = producer
        self.holder = holder  # WeakHolder for instance-bound variables

    def get_value(self):
        return self.producer()

    def is_live(self) -> bool:
        return self.holder is None or self.holder.alive


class ManagedVariable(Variable):
    """
    Variable whose value is set directly by its owner.

    Example:
        requests = ManagedVariable("requests", doc="requests served", value=0)
        VarExporter.global_namespace().export(requests)
        requests.set(requests.get_value() + 1)
    """

    def __init__(self, name: str, doc: Optional[str] = None, value=None):
        super().__init__(name, doc)
        self._value = value

    def set(self, value) -> None:
        self._value = value

    def get_value(self):
        return self._value


class RenamedVariable(Variable):
    """View of another variable under a different (prefixed) name."""

    def __init__(self, name: str, target: Variable):
        super().__init__(name, target.doc, target.expand)
        self.target = target

    def get_value(self):
        return self.target.get_value()

    def get_doc(self) -> Optional[str]:
        return self.target.get_doc()

    def is_live(self) -> bool:
        return self.target.is_live()

    def entries(self, name: Optional[str] = None) -> List[Variable]:
        return self.target.entries(name or self.name)

    def renamed(self, name: str) -> Variable:
        return RenamedVariable(name, self.target)


def create_start_time_variable(when: Optional[datetime] = None) -> ManagedVariable:
    """
    Build the variable exposed by the global namespace while a start time is set.

    Args:
        when: Start instant; defaults to now (UTC)

    Returns:
        ManagedVariable named ``exporter-start-time`` holding the ISO-8601 instant
    """
    if when is None:
        when = datetime.now(timezone.utc)
    return ManagedVariable(
        START_TIME_VARIABLE_NAME,
        doc="global start time of variable exporter",
        value=when.isoformat()
    )
