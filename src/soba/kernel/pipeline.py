"""
Instance Pipeline: builds one instance from a registered class description.

Phases run in a fixed order and never loop back:
    pre_initialize -> shared_modifiers -> per_inheritance -> complete

pre_initialize may interrupt construction with a Redirect; every later
phase is then skipped and the redirect value is the result.

When any phase fails, the undo steps registered with
SharedContext.on_failure run newest first before the error propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Optional

from .errors import ConstructionError, SharedContextConflictError
from .registry import ClassRegistry
from .schema import CONTINUE, ClassDescription, ClassIdentity, Extension, Phase, Redirect

logger = logging.getLogger(__name__)


class SharedContext(Mapping):
    """Write-once key/value space for a single instantiation."""

    def __init__(self, seed: Mapping[str, Any]) -> None:
        self._data: Dict[str, Any] = {}
        self._contributors: Dict[str, str] = {}
        self._rollbacks: List[Callable[[], None]] = []
        self.contribute(seed, contributor="seed")

    def contribute(self, values: Mapping[str, Any], contributor: str) -> None:
        taken = [key for key in values if key in self._data]
        if taken:
            key = taken[0]
            raise SharedContextConflictError(
                f"Shared space already contains key {key}",
                details={
                    "key": key,
                    "contributor": contributor,
                    "already_contributed_by": self._contributors[key],
                },
            )
        for key, value in values.items():
            self._data[key] = value
            self._contributors[key] = contributor

    def require(self, key: str) -> Any:
        if key not in self._data:
            raise ConstructionError(
                f"Shared space has no key {key}; is the extension contributing it composed into this class?",
                details={"key": key, "available": sorted(self._data)},
            )
        return self._data[key]

    def contributor(self, key: str) -> Optional[str]:
        return self._contributors.get(key)

    def on_failure(self, callback: Callable[[], None]) -> None:
        """Register an undo step, run newest first if construction fails."""
        self._rollbacks.append(callback)

    def rollback(self) -> None:
        while self._rollbacks:
            self._rollbacks.pop()()

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"SharedContext({sorted(self._data)})"


class Instance:
    """An object whose shape is whatever its class's extensions attach."""

    def __init__(self, description: ClassDescription) -> None:
        object.__setattr__(self, "_description", description)
        object.__setattr__(self, "_frozen", False)

    @property
    def description(self) -> ClassDescription:
        return self._description

    @property
    def identity(self) -> ClassIdentity:
        return self._description.identity

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        object.__setattr__(self, "_frozen", True)

    def public_attributes(self) -> Dict[str, Any]:
        return {k: v for k, v in vars(self).items() if not k.startswith("_")}

    def __setattr__(self, name: str, value: Any) -> None:
        if self._frozen:
            raise AttributeError(f"Instance of {self.identity.key} is frozen")
        object.__setattr__(self, name, value)

    def __delattr__(self, name: str) -> None:
        if self._frozen:
            raise AttributeError(f"Instance of {self.identity.key} is frozen")
        object.__delattr__(self, name)

    def __repr__(self) -> str:
        return f"<Instance {self.identity.key} {sorted(self.public_attributes())}>"


InstanceFactory = Callable[[ClassDescription], Any]


class InstancePipeline:
    def __init__(
        self,
        registry: ClassRegistry,
        instance_factory: InstanceFactory = Instance,
    ) -> None:
        self._registry = registry
        self._factory = instance_factory

    def run(
        self,
        description: ClassDescription,
        initial_values: Optional[Mapping[str, Any]] = None,
        runtime: Any = None,
    ) -> Any:
        """Build one instance, or return the value a pre_initialize redirected to."""
        instance = self._factory(description)
        context = SharedContext(
            {
                "class_description": description,
                "self": instance,
                "initial_values": MappingProxyType(dict(initial_values or {})),
                "runtime": runtime,
            }
        )

        try:
            redirect = self._pre_initialize(description, context)
            if redirect is not None:
                logger.debug("Construction of %s redirected", description.key)
                return redirect.value

            self._shared_modifiers(description, context)
            self._per_inheritance(description, context)
            self._complete(description, context)
        except Exception:
            context.rollback()
            raise
        return instance

    def _pre_initialize(self, description: ClassDescription, context: SharedContext) -> Optional[Redirect]:
        for ext in description.phase_extensions(Phase.PRE_INITIALIZE):
            result = self._invoke(description, Phase.PRE_INITIALIZE, ext, context)
            if result is None or result is CONTINUE:
                continue
            if isinstance(result, Redirect):
                return result
            raise ConstructionError(
                f"pre_initialize of {ext.key} returned {result!r}; expected None, CONTINUE or Redirect",
                details={"class_id": description.key, "extension": ext.key},
            )
        return None

    def _shared_modifiers(self, description: ClassDescription, context: SharedContext) -> None:
        for ext in description.phase_extensions(Phase.SHARED_MODIFIERS):
            result = self._invoke(description, Phase.SHARED_MODIFIERS, ext, context)
            self._merge(description, ext, result, context)

    def _per_inheritance(self, description: ClassDescription, context: SharedContext) -> None:
        # Each represented class runs only the extensions it declares itself.
        for represented in self._registry.represented(description):
            for ext in represented.phase_extensions(Phase.PER_INHERITANCE, own=True):
                result = self._invoke(description, Phase.PER_INHERITANCE, ext, represented, context)
                self._merge(description, ext, result, context)

    def _complete(self, description: ClassDescription, context: SharedContext) -> None:
        for ext in reversed(description.phase_extensions(Phase.COMPLETE)):
            self._invoke(description, Phase.COMPLETE, ext, context)

    def _merge(
        self,
        description: ClassDescription,
        ext: Extension,
        result: Any,
        context: SharedContext,
    ) -> None:
        if result is None:
            return
        if not isinstance(result, Mapping):
            raise ConstructionError(
                f"{ext.key} returned {type(result).__name__}; expected a mapping or None",
                details={"class_id": description.key, "extension": ext.key},
            )
        context.contribute(result, contributor=ext.key)

    def _invoke(
        self,
        description: ClassDescription,
        phase: Phase,
        ext: Extension,
        *args: Any,
    ) -> Any:
        handler = ext.handler(phase)
        logger.debug("%s: %s %s", description.key, phase.value, ext.key)
        try:
            return handler(*args)
        except ConstructionError:
            raise
        except Exception as exc:
            logger.warning(
                "%s callback %s failed while constructing %s: %s",
                phase.value, ext.key, description.key, exc,
            )
            raise ConstructionError(
                f"{phase.value} callback {ext.key} failed while constructing {description.key}: {exc}",
                details={"class_id": description.key, "phase": phase.value, "extension": ext.key},
                cause=exc,
            ) from exc
