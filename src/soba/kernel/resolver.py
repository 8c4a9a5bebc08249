"""
Extension composition for a linearized class chain.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .errors import ExtensionConflictError, ValidationError
from .schema import ClassDescription, ClassIdentity, Extension

logger = logging.getLogger(__name__)


def compose_extensions(represented: Sequence[ClassDescription]) -> Tuple[Extension, ...]:
    """Union of own extensions across the chain, parents first.

    The same extension object reached through several paths is kept once.
    Two distinct extensions sharing a name are a conflict.
    """
    composed: list[Extension] = []
    by_name: Dict[str, Extension] = {}

    for description in represented:
        for ext in description.own_extensions:
            existing = by_name.get(ext.name)
            if existing is ext:
                continue
            if existing is not None:
                raise ExtensionConflictError(
                    f"Extension conflict: extension with name {ext.name} already used",
                    details={
                        "extension": ext.name,
                        "declared_by": _owner_key(ext),
                        "already_declared_by": _owner_key(existing),
                    },
                )
            by_name[ext.name] = ext
            composed.append(ext)

    return tuple(composed)


def apply_store_transforms(
    identity: ClassIdentity,
    extensions: Iterable[Extension],
    attributes: Mapping[str, Any],
) -> Dict[str, Any]:
    """Keep the attributes that some extension stores, transformed by it."""
    stored: Dict[str, Any] = {}
    for ext in extensions:
        if ext.store is None or ext.name not in attributes:
            continue
        try:
            stored[ext.name] = ext.store(attributes[ext.name])
        except Exception as exc:
            raise ValidationError(
                f"Attribute {ext.name} of {identity.key} rejected: {exc}",
                details={"class_id": identity.key, "attribute": ext.name},
                cause=exc,
            ) from exc

    ignored = sorted(set(attributes) - set(stored))
    if ignored:
        logger.debug("%s: no extension stores attributes %s", identity.key, ignored)
    return stored


def _owner_key(ext: Extension) -> Optional[str]:
    return ext.owner.key if ext.owner else None
