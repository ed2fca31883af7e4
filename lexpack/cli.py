"""Command line interface for inspecting and packing lexpack datasets."""

from __future__ import annotations

import argparse
import gzip
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

import yaml

from .config import ConfigurationError, DatasetConfig
from .container import encode_container
from .data_manager import DataManager
from .format import FormatError
from .packed import PackedDataManager
from .registry import DatasetRegistry, read_mapped_file
from .resource_limits import ResourceError
from .versioning import compatibility_summary


class CommandError(RuntimeError):
    """Raised when a CLI sub-command fails with a user facing error."""


def _emit(payload: Dict[str, Any], args: argparse.Namespace) -> None:
    if args.yaml:
        print(yaml.safe_dump(payload, sort_keys=False))
        return
    if args.json:
        print(json.dumps(payload, indent=2))
        return
    for key, value in payload.items():
        if isinstance(value, dict):
            print(f"{key}:")
            for name, item in value.items():
                print(f"  {name}: {item}")
        else:
            print(f"{key}: {value}")


def _load_for_inspection(args: argparse.Namespace) -> Dict[str, Any]:
    config = DatasetConfig.from_env()
    data = read_mapped_file(Path(args.dataset), config.budget)
    if args.packed or args.gzip:
        if args.gzip:
            manager = PackedDataManager.from_zipped_bytes(data, budget=config.budget)
        else:
            manager = PackedDataManager.from_bytes(data, budget=config.budget)
        return {"kind": "packed", **manager.summary()}
    if not args.magic:
        raise CommandError("--magic is required to inspect a raw dataset image")
    image = DataManager.from_array(data, args.magic)
    return {"kind": "image", "size_bytes": len(data), "sections": image.section_sizes()}


def inspect_command(args: argparse.Namespace) -> None:
    try:
        payload = _load_for_inspection(args)
    except (FormatError, ResourceError, ConfigurationError) as exc:
        raise CommandError(str(exc)) from exc
    payload["supported"] = compatibility_summary()
    _emit(payload, args)


def verify_command(args: argparse.Namespace) -> None:
    config = DatasetConfig.from_env().with_dataset(args.dataset)
    manager = DatasetRegistry(config).get_or_load()
    version = manager.dictionary_version() or "(unversioned)"
    print(f"OK: {version} with {len(manager.user_pos_data())} POS tokens")


def pack_command(args: argparse.Namespace) -> None:
    spec_path = Path(args.spec)
    try:
        spec = yaml.safe_load(spec_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise CommandError(f"Unable to read pack spec '{spec_path}': {exc}") from exc
    if not isinstance(spec, dict):
        raise CommandError("pack spec must be a mapping")
    mozc_data = None
    if spec.get("mozc_data_file"):
        image_path = (spec_path.parent / spec["mozc_data_file"]).resolve()
        try:
            mozc_data = image_path.read_bytes()
        except OSError as exc:
            raise CommandError(f"Unable to read dataset image '{image_path}': {exc}") from exc
    try:
        payload = encode_container(
            product_version=spec.get("product_version"),
            pos_tokens=spec.get("pos_tokens") or (),
            rule_id_table=spec.get("rule_id_table") or (),
            range_tables=spec.get("range_tables") or (),
            mozc_data=mozc_data,
            mozc_data_magic=spec.get("mozc_data_magic"),
        )
    except (AttributeError, TypeError, ValueError) as exc:
        raise CommandError(f"Invalid pack spec '{spec_path}': {exc}") from exc
    if args.gzip:
        payload = gzip.compress(payload)
    output = Path(args.output)
    try:
        output.write_bytes(payload)
    except OSError as exc:  # pragma: no cover - CLI guard
        raise CommandError(f"Failed to write to '{output}': {exc}") from exc
    if not args.quiet:
        print(f"Wrote {len(payload)} bytes to {output}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lexpack", description="lexpack dataset tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Summarise a dataset file")
    inspect_parser.add_argument("dataset", help="Dataset image or packed container")
    inspect_parser.add_argument("--magic", help="Magic tag of a raw dataset image")
    inspect_parser.add_argument("--packed", action="store_true", help="Input is a packed container")
    inspect_parser.add_argument("--gzip", action="store_true", help="Input is a gzip packed container")
    inspect_parser.add_argument("--json", action="store_true", help="Emit JSON")
    inspect_parser.add_argument("--yaml", action="store_true", help="Emit YAML")
    inspect_parser.set_defaults(func=inspect_command)

    verify_parser = subparsers.add_parser(
        "verify", help="Load the configured packed dataset the way applications do"
    )
    verify_parser.add_argument("--dataset", help="Packed dataset path (default: $LEXPACK_DATASET)")
    verify_parser.set_defaults(func=verify_command)

    pack_parser = subparsers.add_parser("pack", help="Build a packed container from a YAML spec")
    pack_parser.add_argument("spec", help="YAML or JSON description of the container")
    pack_parser.add_argument("-o", "--output", required=True, help="Output container path")
    pack_parser.add_argument("--gzip", action="store_true", help="Gzip the container body")
    pack_parser.add_argument("--quiet", action="store_true", help="Suppress summary output")
    pack_parser.set_defaults(func=pack_command)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        args.func(args)
    except CommandError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
