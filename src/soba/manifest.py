"""
YAML class manifests.

A manifest holds a top-level ``classes`` list; each entry is a registration
payload. Extension callbacks and attribute values are referenced by dotted
python_ref, in the same way as code passes callables directly:

    classes:
      - name: widget
        version: 1
        inherits: {inheritable: 1}
        create: {python_ref: mypkg.widgets.build}
        extensions:
          audit:
            complete: mypkg.widgets.audit

Multi-document files (separated by ---) are concatenated.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from .kernel.errors import ManifestError, ValidationError
from .kernel.schema import import_ref

_STRUCTURAL_KEYS = {"name", "version", "inherits", "inheritsFrom", "extensions"}


def load_manifest(path: Union[str, Path]) -> List[Dict[str, Any]]:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(
            f"Cannot read manifest {path}: {exc}",
            details={"path": str(path)},
            cause=exc,
        ) from exc
    return parse_manifest(text, source=str(path))


def parse_manifest(text: str, source: str = "<string>") -> List[Dict[str, Any]]:
    try:
        documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as exc:
        raise ManifestError(
            f"{source}: invalid YAML: {exc}",
            details={"path": source},
            cause=exc,
        ) from exc

    payloads: List[Dict[str, Any]] = []
    for document in documents:
        if document is None:
            continue
        if not isinstance(document, Mapping) or "classes" not in document:
            raise ManifestError(
                f"{source}: expected a mapping with a 'classes' list",
                details={"path": source},
            )
        entries = document["classes"] or []
        if not isinstance(entries, list):
            raise ManifestError(f"{source}: 'classes' must be a list", details={"path": source})
        for index, entry in enumerate(entries):
            if not isinstance(entry, Mapping):
                raise ManifestError(
                    f"{source}: class entry {index} must be a mapping",
                    details={"path": source, "index": index},
                )
            payloads.append(_resolve_entry(entry, source, index))
    return payloads


def _resolve_entry(entry: Mapping, source: str, index: int) -> Dict[str, Any]:
    resolved: Dict[str, Any] = {}
    try:
        for key, value in entry.items():
            if key in _STRUCTURAL_KEYS:
                resolved[key] = value
            elif key == "attributes" and isinstance(value, Mapping):
                resolved[key] = {k: _resolve_value(v) for k, v in value.items()}
            else:
                resolved[key] = _resolve_value(value)
    except ValidationError as exc:
        raise ManifestError(
            f"{source}: class entry {index}: {exc.message}",
            details={"path": source, "index": index, **exc.details},
            cause=exc,
        ) from exc
    return resolved


def _resolve_value(value: Any) -> Any:
    if isinstance(value, Mapping) and set(value) == {"python_ref"}:
        return import_ref(value["python_ref"])
    return value
