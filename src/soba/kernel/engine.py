"""
SobaRuntime: the single entry point to the engine.

A runtime owns its registry, its static/singleton store and its pipeline.
Nothing is module-global, so independent runtimes never share classes,
singletons or static data.

    runtime = SobaRuntime()
    runtime.define({"name": "widget", "version": 1, "inherits": {"inheritable": 1}})
    widget = runtime.instantiate("widget:1", {"label": "ok"})
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple, Union

from ..config import SobaSettings, get_settings
from .errors import ConstructionError
from .pipeline import Instance, InstanceFactory, InstancePipeline
from .registry import ClassRegistry
from .schema import ClassDescription, ClassIdentity
from .store import StaticStore

logger = logging.getLogger(__name__)


class SobaRuntime:
    def __init__(
        self,
        settings: Optional[SobaSettings] = None,
        registry: Optional[ClassRegistry] = None,
        store: Optional[StaticStore] = None,
        instance_factory: InstanceFactory = Instance,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        self._registry = registry if registry is not None else ClassRegistry()
        self._store = store if store is not None else StaticStore()
        self._pipeline = InstancePipeline(self._registry, instance_factory=instance_factory)

        if self.settings.bootstrap_core:
            from ..lib import bootstrap_core

            bootstrap_core(self)

    @property
    def registry(self) -> ClassRegistry:
        return self._registry

    @property
    def store(self) -> StaticStore:
        return self._store

    def define(self, payload: Any) -> ClassDescription:
        return self._registry.define(payload)

    def define_many(self, payloads: Iterable[Any]) -> Tuple[ClassDescription, ...]:
        return self._registry.define_many(payloads)

    def resolve(self, ref: Any) -> ClassDescription:
        return self._registry.resolve(ref)

    def list_classes(self) -> List[ClassIdentity]:
        return self._registry.list_classes()

    def instantiate(
        self,
        ref: Any,
        initial_values: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Build an instance of a registered class.

        Raises NotFoundError for an unknown class and ConstructionError when a
        phase callback fails.
        """
        description = self._registry.resolve(ref)
        if initial_values is not None and not isinstance(initial_values, Mapping):
            raise ConstructionError(
                f"Initial values for {description.key} must be a mapping",
                details={"class_id": description.key},
            )
        instance = self._pipeline.run(description, initial_values, runtime=self)
        logger.info("Instantiated %s", description.key)
        return instance

    def object_manager(self) -> Any:
        """The objectmanager:1 singleton facade over this runtime."""
        from ..lib.objectmanager import OBJECT_MANAGER

        return self.instantiate(OBJECT_MANAGER)

    def load_manifest(self, path: Union[str, Path]) -> Tuple[ClassDescription, ...]:
        from ..manifest import load_manifest

        return self.define_many(load_manifest(path))
