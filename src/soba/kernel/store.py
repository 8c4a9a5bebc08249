from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional

from .errors import DuplicateSingletonError
from .schema import ClassIdentity

logger = logging.getLogger(__name__)


class StaticStore:
    """Per-class singleton slots and lazily computed static data.

    Entries live as long as the store; there is no invalidation.
    """

    def __init__(self) -> None:
        self._singletons: Dict[ClassIdentity, Any] = {}
        self._statics: Dict[ClassIdentity, Any] = {}
        self._lock = threading.RLock()

    def get_or_compute_static(self, ref: Any, compute: Callable[[], Any]) -> Any:
        """Return the cached static data for a class, computing it on first use."""
        identity = ClassIdentity.coerce(ref)
        with self._lock:
            if identity not in self._statics:
                logger.debug("Computing static data for %s", identity.key)
                self._statics[identity] = compute()
            return self._statics[identity]

    def has_static(self, ref: Any) -> bool:
        return ClassIdentity.coerce(ref) in self._statics

    def register_singleton(self, ref: Any, instance: Any) -> None:
        identity = ClassIdentity.coerce(ref)
        with self._lock:
            if identity in self._singletons:
                raise DuplicateSingletonError(
                    f"An attempt to register second singleton of class {identity.key}",
                    details={"class_id": identity.key},
                )
            self._singletons[identity] = instance
        logger.debug("Registered singleton for %s", identity.key)

    def get_singleton(self, ref: Any) -> Optional[Any]:
        return self._singletons.get(ClassIdentity.coerce(ref))

    def release_singleton(self, ref: Any, instance: Any) -> bool:
        """Empty the slot, but only while it still holds ``instance``."""
        identity = ClassIdentity.coerce(ref)
        with self._lock:
            if self._singletons.get(identity) is not instance:
                return False
            del self._singletons[identity]
        logger.debug("Released singleton slot of %s", identity.key)
        return True

    def claim_singleton(self, ref: Any, instance: Any) -> Any:
        """Register ``instance`` unless a singleton exists; return the winner."""
        identity = ClassIdentity.coerce(ref)
        with self._lock:
            existing = self._singletons.get(identity)
            if existing is not None:
                return existing
            self.register_singleton(identity, instance)
            return instance
