"""
Entry point for the modtrack command line.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional, Sequence

from core.errors import AccessError, PathError, RegistryFormatError
from core.install_root import InstallRoot
from core.installed_module import InstalledPackageRecord
from core.reconcile import FileStatus, remove_installed_files, verify_installed_module
from core.registry_store import RegistryStore
from core.settings import CoreSettings, CoreSettingsManager
from modtrack_core import logger as app_logger
from shared.manifest_schema import ManifestValidationError, format_utc_iso
from shared.module_definition import ModuleDefinition

_LOGGER = app_logger.get_logger()

EXIT_OK = 0
EXIT_DRIFT = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modtrack",
        description="Record, verify and remove the files installed by a module.",
    )
    parser.add_argument("--registry", type=Path, help="Registry document (default: $MODTRACK_REGISTRY).")
    commands = parser.add_subparsers(dest="command", required=True)

    record = commands.add_parser("record", help="Fingerprint installed files and register the module.")
    record.add_argument("--root", type=Path, required=True, help="Installation root directory.")
    record.add_argument("--module", type=Path, required=True, help="Module descriptor JSON file.")
    record.add_argument("files", nargs="+", help="Installed paths, relative to the root.")

    verify = commands.add_parser("verify", help="Re-hash recorded files and report drift.")
    verify.add_argument("--root", type=Path, required=True, help="Installation root directory.")
    verify.add_argument("identifiers", nargs="*", help="Modules to verify (default: all).")

    remove = commands.add_parser("remove", help="Delete a module's recorded files and deregister it.")
    remove.add_argument("--root", type=Path, required=True, help="Installation root directory.")
    remove.add_argument("identifier", help="Module to remove.")

    commands.add_parser("list", help="List registered modules.")
    return parser


def _record(args: argparse.Namespace, store: RegistryStore, settings: CoreSettings) -> int:
    module = ModuleDefinition.load(args.module)
    record = InstalledPackageRecord.create(
        InstallRoot(args.root),
        module,
        args.files,
        max_workers=settings.fingerprint_workers,
    )
    store.register(record)
    print(f"Recorded {len(record.files)} path(s) for {record.module_identifier()}.")
    return EXIT_OK


def _verify(args: argparse.Namespace, store: RegistryStore) -> int:
    root = InstallRoot(args.root)
    identifiers: List[str] = args.identifiers or store.identifiers()
    bad = 0
    for identifier in identifiers:
        record = store.get(identifier)
        if record is None:
            print(f"[NOT INSTALLED] {identifier}")
            bad += 1
            continue
        result = verify_installed_module(record, root)
        for path, status in sorted(result.statuses.items()):
            if status is not FileStatus.UNCHANGED:
                print(f"[{status.value.upper()}] {identifier}: {path}")
                bad += 1

    if bad:
        print(f"FAILED: {bad} problem(s) found.")
        return EXIT_DRIFT
    print(f"OK: {len(identifiers)} module(s) verified.")
    return EXIT_OK


def _remove(args: argparse.Namespace, store: RegistryStore) -> int:
    record = store.get(args.identifier)
    if record is None:
        _LOGGER.error("{} is not installed", args.identifier)
        return EXIT_ERROR
    result = remove_installed_files(record, InstallRoot(args.root))
    if not result.is_complete:
        for path, exc in result.errors:
            print(f"[FAILED] {args.identifier}: {path}: {exc}")
        # The entry stays registered so the removal can be retried.
        _LOGGER.error(
            "remove failed: {} path(s) of {} could not be removed",
            len(result.errors),
            args.identifier,
        )
        return EXIT_ERROR
    store.deregister(args.identifier)
    print(f"Removed {len(result.removed)} path(s) for {args.identifier}.")
    return EXIT_OK


def _list(store: RegistryStore) -> int:
    for identifier, record in sorted(store.installed_modules().items()):
        version = record.module.version or "-"
        print(f"{identifier}\t{version}\t{format_utc_iso(record.installed_at)}\t{len(record.files)}")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run a modtrack command and return its exit status."""
    args = build_parser().parse_args(argv)
    settings = CoreSettingsManager().read_settings()
    app_logger.configure(settings.log_path, level=settings.log_level)
    store = RegistryStore(args.registry or settings.registry_path)

    try:
        if args.command == "record":
            return _record(args, store, settings)
        if args.command == "verify":
            return _verify(args, store)
        if args.command == "remove":
            return _remove(args, store)
        return _list(store)
    except (PathError, AccessError, RegistryFormatError, ManifestValidationError) as exc:
        _LOGGER.error("{} failed: {}", args.command, exc)
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
