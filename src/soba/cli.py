"""
Command line shell over a SobaRuntime.

Usage:
    soba classes [--manifest path]
    soba describe <name:version> [--manifest path]
    soba instantiate <name:version> [--manifest path] [--input '{"key": "value"}']
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from .config import SobaSettings, configure_logging, get_settings
from .kernel.engine import SobaRuntime
from .kernel.errors import SobaError


def resolve_manifest(explicit: Optional[str], settings: SobaSettings) -> Optional[str]:
    """
    Resolve the manifest path:
    1. Explicit flag
    2. SOBA_MANIFEST (settings)
    3. None: core classes only
    """
    if explicit:
        return explicit
    return settings.manifest


def build_runtime(args: argparse.Namespace, settings: SobaSettings) -> SobaRuntime:
    runtime = SobaRuntime(settings=settings)
    manifest = resolve_manifest(getattr(args, "manifest", None), settings)
    if manifest:
        runtime.load_manifest(manifest)
    return runtime


def cmd_classes(args: argparse.Namespace, runtime: SobaRuntime) -> int:
    for identity in runtime.list_classes():
        print(identity.key)
    return 0


def cmd_describe(args: argparse.Namespace, runtime: SobaRuntime) -> int:
    description = runtime.resolve(args.class_id)
    print(json.dumps(description.to_dict(), indent=2))
    return 0


def cmd_instantiate(args: argparse.Namespace, runtime: SobaRuntime) -> int:
    inputs: Dict[str, Any] = {}
    if args.input:
        try:
            inputs = json.loads(args.input)
        except json.JSONDecodeError as e:
            print(f"✗ Invalid JSON input: {e}", file=sys.stderr)
            return 1
        if not isinstance(inputs, dict):
            print("✗ Input must be a JSON object", file=sys.stderr)
            return 1

    instance = runtime.instantiate(args.class_id, inputs)
    public = getattr(instance, "public_attributes", None)
    output = {
        "class_id": args.class_id,
        "attributes": public() if callable(public) else repr(instance),
    }
    print(json.dumps(output, indent=2, default=repr))
    return 0


COMMANDS = {
    "classes": cmd_classes,
    "describe": cmd_describe,
    "instantiate": cmd_instantiate,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="soba",
        description="Soba - define and instantiate composable classes",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    classes_parser = subparsers.add_parser("classes", help="List registered classes")
    classes_parser.add_argument("--manifest", "-m", help="YAML class manifest")

    describe_parser = subparsers.add_parser("describe", help="Show a class description")
    describe_parser.add_argument("class_id", help="Class id (name:version)")
    describe_parser.add_argument("--manifest", "-m", help="YAML class manifest")

    instantiate_parser = subparsers.add_parser("instantiate", help="Build an instance")
    instantiate_parser.add_argument("class_id", help="Class id (name:version)")
    instantiate_parser.add_argument("--manifest", "-m", help="YAML class manifest")
    instantiate_parser.add_argument("--input", "-i", help="JSON initial values")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    try:
        runtime = build_runtime(args, settings)
        return COMMANDS[args.command](args, runtime)
    except SobaError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
