"""
Pytest configuration and shared fixtures for soba tests.
"""
from typing import Callable, List

import pytest

from soba.config import SobaSettings
from soba.kernel.engine import SobaRuntime
from soba.kernel.schema import Extension


@pytest.fixture
def bare_runtime():
    """A runtime without the built-in inheritable/objectmanager classes."""
    return SobaRuntime(settings=SobaSettings(bootstrap_core=False))


@pytest.fixture
def core_runtime():
    """A runtime with inheritable:1 and objectmanager:1 defined."""
    return SobaRuntime(settings=SobaSettings(bootstrap_core=True))


@pytest.fixture
def call_log() -> List[str]:
    return []


@pytest.fixture
def recording_extension(call_log) -> Callable[..., Extension]:
    """Build an extension whose four phase callbacks append to call_log.

    Entries look like "A.pre", "A.shared", "A.per@base", "A.complete".
    Keyword arguments replace individual callbacks.
    """

    def make(label: str, **overrides) -> Extension:
        def pre(ctx):
            call_log.append(f"{label}.pre")

        def shared(ctx):
            call_log.append(f"{label}.shared")

        def per(represented, ctx):
            call_log.append(f"{label}.per@{represented.name}")

        def complete(ctx):
            call_log.append(f"{label}.complete")

        callbacks = {
            "pre_initialize": pre,
            "shared_modifiers": shared,
            "per_inheritance": per,
            "complete": complete,
        }
        callbacks.update(overrides)
        return Extension(name=label, **callbacks)

    return make
