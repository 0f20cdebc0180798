"""
Expansion of mapping-valued variables into per-key children.

An expanded variable named ``sizes`` whose value is ``{"a": 1, "b": 2}``
enumerates as ``sizes#a=1`` and ``sizes#b=2``. Looking up ``sizes`` itself
still returns the whole mapping. Only one level is flattened: a child whose
value is itself a mapping is rendered as a single line.
"""

import logging
from collections.abc import Mapping
from typing import List, Optional

from .exceptions import CollectionEnumerationError
from .variables import ProducerVariable, Variable

logger = logging.getLogger(__name__)

EXPANSION_SEPARATOR = "#"
ERROR_KEY = "error"


def _constant(value):
    return lambda: value


class ExpandedVariable(Variable):
    """Variable whose mapping value enumerates as one child per key."""

    def __init__(self, inner: Variable):
        super().__init__(inner.name, inner.doc, expand=True)
        self.inner = inner

    def get_value(self):
        return self.inner.get_value()

    def get_doc(self) -> Optional[str]:
        return self.inner.get_doc()

    def is_live(self) -> bool:
        return self.inner.is_live()

    def entries(self, name: Optional[str] = None) -> List[Variable]:
        name = name or self.name
        value = self.get_value()
        if not isinstance(value, Mapping):
            return super().entries(name)

        try:
            items = self._snapshot(value)
        except CollectionEnumerationError as e:
            logger.warning(f"Failed to expand {name}: {e}")
            return [ProducerVariable(f"{name}{EXPANSION_SEPARATOR}{ERROR_KEY}", _constant(str(e)))]

        return [
            ProducerVariable(f"{name}{EXPANSION_SEPARATOR}{key}", _constant(item))
            for key, item in items
        ]

    @staticmethod
    def _snapshot(mapping: Mapping) -> list:
        """Copy the mapping's items, converting iteration failures."""
        try:
            return list(mapping.items())
        except Exception as e:
            raise CollectionEnumerationError(str(e)) from e
