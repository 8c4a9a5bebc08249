"""
soba: a metadata-driven object construction engine.

Public API re-exports from kernel/ (machinery) and lib/ (vocabulary).
"""
from .kernel.errors import (
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
from .kernel.schema import (
    CONTINUE,
    ClassDescription,
    ClassIdentity,
    Extension,
    ExtensionSpec,
    Phase,
    Redirect,
)
from .kernel.registry import ClassRegistry
from .kernel.store import StaticStore
from .kernel.pipeline import Instance, SharedContext
from .kernel.engine import SobaRuntime
from .lib import INHERITABLE, OBJECT_MANAGER

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
    "Extension",
    "ExtensionSpec",
    "Phase",
    "Redirect",
    # Registry / store
    "ClassRegistry",
    "StaticStore",
    # Pipeline
    "Instance",
    "SharedContext",
    # Engine
    "SobaRuntime",
    # Lib
    "INHERITABLE",
    "OBJECT_MANAGER",
]
