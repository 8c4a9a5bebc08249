"""
Lib: the built-in class vocabulary, defined through the kernel's public
contract like any other class.
"""
from __future__ import annotations

from typing import Any

from .inheritable import INHERITABLE, inheritable_payload
from .objectmanager import OBJECT_MANAGER, objectmanager_payload


def bootstrap_core(runtime: Any) -> None:
    """Define inheritable:1 and objectmanager:1 on a fresh runtime."""
    runtime.define(inheritable_payload())
    runtime.define(objectmanager_payload())


__all__ = [
    "INHERITABLE",
    "OBJECT_MANAGER",
    "bootstrap_core",
    "inheritable_payload",
    "objectmanager_payload",
]
