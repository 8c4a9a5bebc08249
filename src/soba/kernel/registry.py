from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from .errors import (
    CyclicInheritanceError,
    DuplicateClassError,
    NotFoundError,
    UnknownParentError,
)
from .resolver import apply_store_transforms, compose_extensions
from .schema import ClassDescription, ClassIdentity, ClassPayload

logger = logging.getLogger(__name__)


ParentsOf = Callable[[ClassIdentity], Sequence[ClassIdentity]]


def linearize(root: ClassIdentity, parents_of: ParentsOf) -> Tuple[ClassIdentity, ...]:
    """Depth-first post-order walk over the inheritance graph.

    Parents come before every class that depends on them and each class
    appears once, at the position of its first full expansion. Reaching a
    class that is still being expanded raises CyclicInheritanceError.
    """
    found: List[ClassIdentity] = []
    expanded: Set[ClassIdentity] = set()
    on_path: Set[ClassIdentity] = set()
    # Explicit stack of (class, remaining parents); deep chains must not hit the recursion limit.
    stack: List[Tuple[ClassIdentity, Iterator[ClassIdentity]]] = []

    def enter(identity: ClassIdentity) -> None:
        if identity in on_path:
            path = [ref for ref, _ in stack]
            cycle = [ref.key for ref in path[path.index(identity):]] + [identity.key]
            raise CyclicInheritanceError(
                "Cyclic inheritance: " + " -> ".join(cycle),
                details={"cycle": cycle},
            )
        on_path.add(identity)
        stack.append((identity, iter(parents_of(identity))))

    enter(root)
    while stack:
        identity, parents = stack[-1]
        for parent in parents:
            if parent not in expanded:
                enter(parent)
                break
        else:
            stack.pop()
            on_path.discard(identity)
            expanded.add(identity)
            found.append(identity)
    return tuple(found)


class ClassRegistry:
    """Table of immutable class descriptions keyed by identity.

    Registrations are permanent: there is no redefinition and no removal.
    """

    def __init__(self) -> None:
        self._table: Dict[ClassIdentity, ClassDescription] = {}
        self._lock = threading.RLock()

    def define(self, payload: Any) -> ClassDescription:
        """Validate, linearize, compose and store one class."""
        payload = ClassPayload.coerce(payload)
        with self._lock:
            description = self._build(payload, staged={})
            self._table[description.identity] = description
        logger.info(
            "Defined %s (chain: %s)",
            description.key,
            ", ".join(ref.key for ref in description.represented_classes),
        )
        return description

    def define_many(self, payloads: Iterable[Any]) -> Tuple[ClassDescription, ...]:
        """Register a batch whose members may inherit from each other.

        Members are registered parents first. Nothing is registered if any
        member fails.
        """
        batch: Dict[ClassIdentity, ClassPayload] = {}
        for raw in payloads:
            payload = ClassPayload.coerce(raw)
            if payload.identity in batch:
                raise DuplicateClassError(
                    f"Class {payload.identity.key} appears twice in the batch",
                    details={"class_id": payload.identity.key},
                )
            batch[payload.identity] = payload

        def parents_of(ref: ClassIdentity) -> Sequence[ClassIdentity]:
            member = batch.get(ref)
            return member.parents if member is not None else ()

        order: List[ClassIdentity] = []
        for identity in batch:
            for ref in linearize(identity, parents_of):
                if ref in batch and ref not in order:
                    order.append(ref)

        with self._lock:
            staged: Dict[ClassIdentity, ClassDescription] = {}
            for ref in order:
                staged[ref] = self._build(batch[ref], staged)
            self._table.update(staged)

        logger.info("Defined %d classes: %s", len(staged), ", ".join(ref.key for ref in order))
        return tuple(staged.values())

    def resolve(self, ref: Any) -> ClassDescription:
        identity = ClassIdentity.coerce(ref)
        description = self._table.get(identity)
        if description is None:
            raise NotFoundError(
                f"Class {identity.key} is not defined",
                details={"class_id": identity.key},
            )
        return description

    def get(self, ref: Any) -> Optional[ClassDescription]:
        return self._table.get(ClassIdentity.coerce(ref))

    def represented(self, description: ClassDescription) -> Tuple[ClassDescription, ...]:
        return tuple(self.resolve(ref) for ref in description.represented_classes)

    def list_classes(self) -> List[ClassIdentity]:
        return list(self._table)

    def __contains__(self, ref: Any) -> bool:
        return ClassIdentity.coerce(ref) in self._table

    def __len__(self) -> int:
        return len(self._table)

    def _build(
        self,
        payload: ClassPayload,
        staged: Dict[ClassIdentity, ClassDescription],
    ) -> ClassDescription:
        identity = payload.identity
        if identity in self._table or identity in staged:
            raise DuplicateClassError(
                f"Class metadata with class id {identity.key} is already defined",
                details={"class_id": identity.key},
            )

        own_extensions = tuple(ext.bind(identity) for ext in payload.extensions.values())
        draft = ClassDescription(
            identity=identity,
            inherits=payload.parents,
            own_extensions=own_extensions,
        )

        def lookup(ref: ClassIdentity) -> ClassDescription:
            if ref == identity:
                return draft
            found = staged.get(ref)
            if found is None:
                found = self._table.get(ref)
            if found is None:
                raise UnknownParentError(
                    f"Class {ref.key} inherited by {identity.key} is not defined",
                    details={"class_id": identity.key, "parent": ref.key},
                )
            return found

        chain_ids = linearize(identity, lambda ref: lookup(ref).inherits)
        chain = tuple(lookup(ref) for ref in chain_ids)
        extensions = compose_extensions(chain)
        attributes = apply_store_transforms(identity, extensions, payload.attributes)

        return ClassDescription(
            identity=identity,
            inherits=payload.parents,
            own_extensions=own_extensions,
            represented_classes=chain_ids,
            extensions=extensions,
            attributes=attributes,
        )
