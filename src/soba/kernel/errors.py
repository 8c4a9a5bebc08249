"""
Errors raised by the kernel.

Every failure is fatal to the operation in progress and propagates
synchronously: no partial registration, no partially built instance.
"""
from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional


class SobaError(Exception):
    default_message: ClassVar[str] = "Soba error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message or self.default_message)
        if cause is not None:
            self.__cause__ = cause
        self.message = message or self.default_message
        self.details = details or {}

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.details:
            data["details"] = self.details
        if include_cause and self.__cause__ is not None:
            data["cause"] = repr(self.__cause__)
        return data


class RegistrationError(SobaError):
    """A class description could not be registered."""

    default_message = "Class registration failed"


class ValidationError(RegistrationError):
    """Malformed class payload."""

    default_message = "Invalid class payload"


class ManifestError(ValidationError):
    default_message = "Invalid class manifest"


class DuplicateClassError(RegistrationError):
    default_message = "Class is already defined"


class UnknownParentError(RegistrationError):
    default_message = "Parent class is not defined"


class ExtensionConflictError(RegistrationError):
    default_message = "Extension name conflict"


class CyclicInheritanceError(RegistrationError):
    default_message = "Inheritance graph contains a cycle"


class NotFoundError(SobaError):
    default_message = "Class is not defined"


class ConstructionError(SobaError):
    """A phase callback failed while building an instance."""

    default_message = "Instance construction failed"


class SharedContextConflictError(ConstructionError):
    default_message = "Shared context key already exists"


class DuplicateSingletonError(SobaError):
    default_message = "Singleton already registered"


class AbstractClassError(SobaError):
    default_message = "Abstract classes can only be inherited"
