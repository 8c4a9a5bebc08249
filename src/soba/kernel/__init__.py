"""
Kernel: the machinery of the engine.

- errors: the error hierarchy
- schema: identities, payloads, extensions and class descriptions
- resolver: extension composition and store transforms
- registry: class table and inheritance linearization
- store: singleton slots and static data
- pipeline: the four-phase instance construction
- engine: the runtime that ties them together

The kernel is distinct from lib/ (the built-in classes).
Kernel = machinery. Lib = vocabulary.
"""
from .errors import (
    AbstractClassError,
    ConstructionError,
    CyclicInheritanceError,
    DuplicateClassError,
    DuplicateSingletonError,
    ExtensionConflictError,
    ManifestError,
    NotFoundError,
    RegistrationError,
    SharedContextConflictError,
    SobaError,
    UnknownParentError,
    ValidationError,
)
from .schema import (
    CONTINUE,
    ClassDescription,
    ClassIdentity,
    ClassPayload,
    Extension,
    ExtensionSpec,
    Phase,
    Redirect,
)
from .registry import ClassRegistry, linearize
from .resolver import compose_extensions
from .store import StaticStore
from .pipeline import Instance, InstancePipeline, SharedContext
from .engine import SobaRuntime

__all__ = [
    # Errors
    "SobaError",
    "RegistrationError",
    "ValidationError",
    "ManifestError",
    "DuplicateClassError",
    "UnknownParentError",
    "ExtensionConflictError",
    "CyclicInheritanceError",
    "NotFoundError",
    "ConstructionError",
    "SharedContextConflictError",
    "DuplicateSingletonError",
    "AbstractClassError",
    # Schema
    "CONTINUE",
    "ClassDescription",
    "ClassIdentity",
    "ClassPayload",
    "Extension",
    "ExtensionSpec",
    "Phase",
    "Redirect",
    # Registry
    "ClassRegistry",
    "linearize",
    "compose_extensions",
    # Store
    "StaticStore",
    # Pipeline
    "Instance",
    "InstancePipeline",
    "SharedContext",
    # Engine
    "SobaRuntime",
]
