"""
inheritable:1, the base class most classes inherit from.

Its extensions give every descendant:
- protected: a dict of per-class private namespaces
- static: per-class static data, computed once per runtime
- create: per-class constructors, run parents first
- abstract: refuses to instantiate classes marked abstract
- singleton: at most one instance per class
- frozen: freezes the instance once construction completes
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Union

from ..kernel.errors import AbstractClassError, ConstructionError
from ..kernel.schema import CONTINUE, ClassIdentity, Extension, Flow, Redirect

INHERITABLE = ClassIdentity(name="inheritable", version=1)

logger = logging.getLogger(__name__)


def _runtime(context: Mapping) -> Any:
    runtime = context.get("runtime")
    if runtime is None:
        raise ConstructionError(
            f"{context['class_description'].key} needs a runtime to build inheritable classes",
            details={"class_id": context["class_description"].key},
        )
    return runtime


def _callable_or_none(what: str):
    def store(value: Any) -> Any:
        if value is not None and not callable(value):
            raise TypeError(f"{what} must be a function or None")
        return value

    return store


def add_protected(context: Mapping) -> Dict[str, Any]:
    return {"protected": {}}


def add_static(context: Mapping) -> Dict[str, Any]:
    runtime = _runtime(context)
    spaces: Dict[str, Any] = {}
    for represented in runtime.registry.represented(context["class_description"]):
        factory = represented.attribute("static") or dict
        spaces[represented.name] = runtime.store.get_or_compute_static(represented.identity, factory)
    return {"static": MappingProxyType(spaces)}


def run_constructors(context: Mapping) -> None:
    runtime = _runtime(context)
    protected = context.require("protected")
    for represented in runtime.registry.represented(context["class_description"]):
        name = represented.name
        if name in protected:
            raise ConstructionError(
                f"Protected namespace {name} is already taken",
                details={"class_id": represented.key},
            )
        protected[name] = {}
        constructor = represented.attribute("create")
        if constructor is not None:
            constructor(context)
        protected[name] = MappingProxyType(protected[name])


def reject_abstract(context: Mapping) -> None:
    description = context["class_description"]
    if description.attribute("abstract"):
        raise AbstractClassError(
            f"{description.key} is abstract; abstract classes can only be inherited",
            details={"class_id": description.key},
        )


def reuse_singleton(context: Mapping) -> Union[Flow, Redirect]:
    description = context["class_description"]
    if not description.attribute("singleton"):
        return CONTINUE
    instance = context["self"]
    store = _runtime(context).store
    winner = store.claim_singleton(description.identity, instance)
    if winner is not instance:
        logger.debug("Reusing singleton of %s", description.key)
        return Redirect(winner)
    # A failed construction must not leave its instance in the slot.
    context.on_failure(lambda: store.release_singleton(description.identity, instance))
    return CONTINUE


def freeze_instance(context: Mapping) -> None:
    if context["class_description"].attribute("frozen"):
        context["self"].freeze()


def inheritable_payload() -> Dict[str, Any]:
    return {
        "name": INHERITABLE.name,
        "version": INHERITABLE.version,
        "extensions": {
            "protected": Extension(name="protected", shared_modifiers=add_protected),
            "static": Extension(
                name="static",
                shared_modifiers=add_static,
                store=_callable_or_none("Static data factory"),
            ),
            "create": Extension(
                name="create",
                shared_modifiers=run_constructors,
                store=_callable_or_none("Class constructor"),
            ),
            "abstract": Extension(name="abstract", pre_initialize=reject_abstract, store=bool),
            "singleton": Extension(name="singleton", pre_initialize=reuse_singleton, store=bool),
            "frozen": Extension(name="frozen", complete=freeze_instance, store=bool),
        },
    }
