from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from importlib import import_module
from types import MappingProxyType
from typing import Any, Callable, Dict, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    InstanceOf,
    PositiveInt,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError


def import_ref(python_ref: str) -> Any:
    """Import the object named by a dotted ``module.attr`` reference."""
    if not isinstance(python_ref, str) or "." not in python_ref:
        raise ValidationError(
            f"Invalid python_ref {python_ref!r}, expected 'module.attr'",
            details={"python_ref": python_ref},
        )
    module_name, attr = python_ref.rsplit(".", 1)
    try:
        module = import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise ValidationError(
            f"Unable to import {python_ref}",
            details={"python_ref": python_ref},
            cause=exc,
        ) from exc


def validation_error(exc: PydanticValidationError, message: str) -> ValidationError:
    return ValidationError(
        message,
        details={"errors": exc.errors(include_url=False, include_context=False)},
        cause=exc,
    )


class ClassIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    version: PositiveInt

    @property
    def key(self) -> str:
        return f"{self.name}:{self.version}"

    def __str__(self) -> str:
        return self.key

    @classmethod
    def parse(cls, key: str) -> "ClassIdentity":
        name, sep, version = str(key).rpartition(":")
        if not sep or not name or not version.isdigit():
            raise ValidationError(
                f"Invalid class id {key!r}, expected 'name:version'",
                details={"class_id": key},
            )
        return cls.of(name, int(version))

    @classmethod
    def of(cls, name: Any, version: Any) -> "ClassIdentity":
        try:
            return cls(name=name, version=version)
        except PydanticValidationError as exc:
            raise validation_error(exc, f"Invalid class identity {name!r}:{version!r}") from exc

    @classmethod
    def coerce(cls, ref: Any) -> "ClassIdentity":
        """Accept an identity, a description, "name:version" or (name, version)."""
        if isinstance(ref, ClassIdentity):
            return ref
        if isinstance(ref, ClassDescription):
            return ref.identity
        if isinstance(ref, str):
            return cls.parse(ref)
        if isinstance(ref, (tuple, list)) and len(ref) == 2:
            return cls.of(ref[0], ref[1])
        raise ValidationError(
            f"Unable to identify class by {ref!r}",
            details={"ref": repr(ref)},
        )


class Phase(str, Enum):
    PRE_INITIALIZE = "pre_initialize"
    SHARED_MODIFIERS = "shared_modifiers"
    PER_INHERITANCE = "per_inheritance"
    COMPLETE = "complete"


class Flow(Enum):
    CONTINUE = "continue"


CONTINUE = Flow.CONTINUE


@dataclass(frozen=True)
class Redirect:
    """Interrupts construction; ``value`` becomes the instantiation result."""

    value: Any


PreInitializeFn = Callable[[Mapping], Union[None, Flow, Redirect]]
SharedModifierFn = Callable[[Mapping], Optional[Mapping]]
PerInheritanceFn = Callable[[Any, Mapping], Optional[Mapping]]
CompleteFn = Callable[[Mapping], None]
StoreFn = Callable[[Any], Any]

_CALLBACK_FIELDS = tuple(phase.value for phase in Phase) + ("store",)


@dataclass(frozen=True, eq=False)
class Extension:
    """A named capability unit: up to four phase callbacks plus a store transform.

    Extensions compare by object identity. ``owner`` is the declaring class,
    bound when the declaring class is defined.
    """

    name: str
    pre_initialize: Optional[PreInitializeFn] = None
    shared_modifiers: Optional[SharedModifierFn] = None
    per_inheritance: Optional[PerInheritanceFn] = None
    complete: Optional[CompleteFn] = None
    store: Optional[StoreFn] = None
    owner: Optional[ClassIdentity] = field(default=None)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValidationError("Extension needs a name", details={"name": self.name})
        for attr in _CALLBACK_FIELDS:
            value = getattr(self, attr)
            if value is not None and not callable(value):
                raise ValidationError(
                    f"Extension.{attr} must be callable",
                    details={"extension": self.name, "field": attr},
                )
        if all(getattr(self, attr) is None for attr in _CALLBACK_FIELDS):
            raise ValidationError(
                f"Extension {self.name} declares no phase callback or store transform",
                details={"extension": self.name},
            )

    @property
    def key(self) -> str:
        owner = self.owner.key if self.owner else "<unbound>"
        return f"{owner}/{self.name}"

    def bind(self, owner: ClassIdentity, name: Optional[str] = None) -> "Extension":
        return replace(self, owner=owner, name=name or self.name)

    def handler(self, phase: Phase) -> Optional[Callable[..., Any]]:
        return getattr(self, Phase(phase).value)

    def phases(self) -> Tuple[Phase, ...]:
        return tuple(phase for phase in Phase if self.handler(phase) is not None)

    def __repr__(self) -> str:
        phases = ",".join(phase.value for phase in self.phases())
        return f"Extension({self.key}, phases=[{phases}], store={self.store is not None})"


class ExtensionSpec(BaseModel):
    """Declarative extension: every callback is a dotted python_ref."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    pre_initialize: Optional[str] = None
    shared_modifiers: Optional[str] = None
    per_inheritance: Optional[str] = None
    complete: Optional[str] = None
    store: Optional[str] = None

    def build(self, name: str) -> Extension:
        refs = self.model_dump(exclude_none=True)
        return Extension(name=name, **{attr: import_ref(ref) for attr, ref in refs.items()})


_PAYLOAD_FIELDS = {"name", "version", "inherits", "inheritsFrom", "extensions", "attributes"}


class ClassPayload(BaseModel):
    """A validated registration payload.

    Keys outside the known fields are collected into ``attributes``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    version: PositiveInt
    inherits: Dict[str, PositiveInt] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("inherits", "inheritsFrom"),
    )
    extensions: Dict[str, InstanceOf[Extension]] = Field(default_factory=dict)
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _gather_attributes(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            raise ValueError("class payload must be a mapping")
        attributes = data.get("attributes") or {}
        if not isinstance(attributes, Mapping):
            raise ValueError("attributes must be a mapping")
        extra = {k: v for k, v in data.items() if k not in _PAYLOAD_FIELDS}
        clashing = sorted(set(extra) & set(attributes))
        if clashing:
            raise ValueError(f"attributes given twice: {', '.join(clashing)}")
        gathered = {k: v for k, v in data.items() if k in _PAYLOAD_FIELDS}
        gathered["attributes"] = {**attributes, **extra}
        return gathered

    @field_validator("inherits", mode="before")
    @classmethod
    def _normalize_inherits(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return value
        if isinstance(value, (list, tuple)):
            parents: Dict[str, int] = {}
            for ref in value:
                parent = ClassIdentity.coerce(ref)
                if parent.name in parents:
                    raise ValueError(f"parent {parent.name} is named twice")
                parents[parent.name] = parent.version
            return parents
        raise ValueError("inherits must be a mapping of parent name to version")

    @field_validator("extensions", mode="before")
    @classmethod
    def _build_extensions(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError("extensions must be a mapping of name to extension")
        built: Dict[str, Extension] = {}
        for name, ext in value.items():
            if isinstance(ext, Extension):
                if ext.name != name:
                    ext = replace(ext, name=name)
            elif isinstance(ext, ExtensionSpec):
                ext = ext.build(name)
            elif isinstance(ext, Mapping):
                try:
                    spec = ExtensionSpec(**ext)
                except PydanticValidationError as exc:
                    raise ValueError(f"invalid extension {name}: {exc}") from exc
                ext = spec.build(name)
            else:
                raise ValueError(f"extension {name} must be an Extension or mapping")
            built[name] = ext
        return built

    @property
    def identity(self) -> ClassIdentity:
        return ClassIdentity(name=self.name, version=self.version)

    @property
    def parents(self) -> Tuple[ClassIdentity, ...]:
        return tuple(ClassIdentity(name=n, version=v) for n, v in self.inherits.items())

    @classmethod
    def coerce(cls, payload: Any) -> "ClassPayload":
        if isinstance(payload, ClassPayload):
            return payload
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as exc:
            raise validation_error(exc, "Invalid class payload") from exc


class ClassDescription(BaseModel):
    """An immutable, registered class.

    ``represented_classes`` holds identities (keys into the registry), parents
    first and ending with this class.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    identity: ClassIdentity
    inherits: Tuple[ClassIdentity, ...] = ()
    own_extensions: Tuple[InstanceOf[Extension], ...] = ()
    represented_classes: Tuple[ClassIdentity, ...] = ()
    extensions: Tuple[InstanceOf[Extension], ...] = ()
    attributes: Any = Field(default_factory=dict, validate_default=True)

    @field_validator("attributes", mode="after")
    @classmethod
    def _freeze_attributes(cls, value: Any) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> int:
        return self.identity.version

    @property
    def key(self) -> str:
        return self.identity.key

    def attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def phase_extensions(self, phase: Phase, *, own: bool = False) -> Tuple[Extension, ...]:
        pool = self.own_extensions if own else self.extensions
        return tuple(ext for ext in pool if ext.handler(phase) is not None)

    def is_a(self, ref: Any) -> bool:
        return ClassIdentity.coerce(ref) in self.represented_classes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class_id": self.key,
            "name": self.name,
            "version": self.version,
            "inherits": [parent.key for parent in self.inherits],
            "represented_classes": [rep.key for rep in self.represented_classes],
            "own_extensions": [ext.name for ext in self.own_extensions],
            "extensions": [
                {"name": ext.name, "owner": ext.owner.key if ext.owner else None,
                 "phases": [phase.value for phase in ext.phases()]}
                for ext in self.extensions
            ],
            "attributes": sorted(self.attributes),
        }
