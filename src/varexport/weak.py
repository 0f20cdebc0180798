"""Non-owning references to exported instances."""

import logging
import weakref
from typing import Callable

from .exceptions import VarExportError

logger = logging.getLogger(__name__)


class WeakHolder:
    """
    Weak reference to an exported instance.

    Variables read the instance through the holder so that exporting never
    extends the instance's lifetime. Once the instance is collected the
    holder reports ``alive == False`` and namespaces drop the variables the
    next time they are enumerated.
    """

    def __init__(self, target):
        try:
            self._ref = weakref.ref(target)
        except TypeError as e:
            raise VarExportError(
                f"Cannot export {type(target).__name__} instance: "
                f"type does not support weak references"
            ) from e
        self.type_name = type(target).__name__

    @property
    def alive(self) -> bool:
        return self._ref() is not None

    def target(self):
        """Return the live instance, raising ReferenceError once it is collected."""
        instance = self._ref()
        if instance is None:
            raise ReferenceError(f"Exported {self.type_name} instance has been collected")
        return instance

    def producer(self, read: Callable) -> Callable[[], object]:
        """Bind ``read(instance)`` to the held instance without a strong reference."""
        def produce():
            return read(self.target())
        return produce

    def __repr__(self) -> str:
        state = "alive" if self.alive else "dead"
        return f"WeakHolder({self.type_name}, {state})"
