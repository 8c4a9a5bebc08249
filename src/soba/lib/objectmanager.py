"""
objectmanager:1, the singleton facade handed to code that only needs to
define and instantiate classes.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict

from ..kernel.schema import ClassIdentity
from .inheritable import INHERITABLE

OBJECT_MANAGER = ClassIdentity(name="objectmanager", version=1)


def attach_runtime_operations(context: Mapping) -> None:
    manager = context["self"]
    runtime = context.require("runtime")
    manager.define = runtime.define
    manager.define_many = runtime.define_many
    manager.instantiate = runtime.instantiate
    manager.resolve = runtime.resolve
    context["protected"][OBJECT_MANAGER.name]["runtime"] = runtime


def objectmanager_payload() -> Dict[str, Any]:
    return {
        "name": OBJECT_MANAGER.name,
        "version": OBJECT_MANAGER.version,
        "inherits": {INHERITABLE.name: INHERITABLE.version},
        "singleton": True,
        "frozen": True,
        "create": attach_runtime_operations,
    }
