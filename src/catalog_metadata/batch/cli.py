"""
Command-line interface for catalog metadata.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .. import __version__
from ..config import ConfigStore, DEFAULT_CONFIG_PATH
from ..editor import MetadataEditor
from ..exceptions import CatalogMetadataError, ParseError
from .executor import execute_change_request
from .parser import load_change_request
from .schema import BatchResult, ValidationResult
from .validator import validate_change_request


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the catalog-meta CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="catalog-meta",
        description="Bulk metadata editing for catalog databases",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--db",
        type=Path,
        help="Catalog database file",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log debug output",
    )

    subparsers = parser.add_subparsers(title="commands", dest="command")

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a change request file",
    )
    validate_parser.add_argument(
        "file",
        type=Path,
        help="YAML file containing change request",
    )
    validate_parser.set_defaults(func=cmd_validate)

    # apply command
    apply_parser = subparsers.add_parser(
        "apply",
        help="Apply changes from a request file",
    )
    apply_parser.add_argument(
        "file",
        type=Path,
        help="YAML file containing change request",
    )
    apply_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate execution without making changes",
    )
    apply_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    apply_parser.add_argument(
        "--no-undo",
        action="store_true",
        help="Do not record undo steps",
    )
    apply_parser.set_defaults(func=cmd_apply)

    # keys command
    keys_parser = subparsers.add_parser(
        "keys",
        help="List registered attribute keys",
    )
    keys_parser.set_defaults(func=cmd_keys)

    # register command
    register_parser = subparsers.add_parser(
        "register",
        help="Register a new attribute key",
    )
    register_parser.add_argument("tagname", help="Full tag name, e.g. Xmp.dc.title")
    register_parser.add_argument("name", help="Display name")
    register_parser.add_argument("--internal", action="store_true")
    register_parser.add_argument("--hidden", action="store_true")
    register_parser.add_argument("--private", action="store_true")
    register_parser.add_argument(
        "--order",
        type=int,
        default=0,
        help="Display order (default: 0)",
    )
    register_parser.set_defaults(func=cmd_register)

    # show command
    show_parser = subparsers.add_parser(
        "show",
        help="Show the attributes of an entity",
    )
    show_parser.add_argument(
        "entity_id",
        type=int,
        help="Entity ID to show",
    )
    show_parser.set_defaults(func=cmd_show)

    # history command
    history_parser = subparsers.add_parser(
        "history",
        help="View the edit history",
    )
    history_parser.add_argument("--entity", type=int, help="Only this entity")
    history_parser.add_argument("--key", type=str, help="Only this attribute")
    history_parser.add_argument("--since", type=str, help="ISO timestamp lower bound")
    history_parser.add_argument(
        "--operation",
        choices=["INSERT", "DELETE"],
        help="Only this operation",
    )
    history_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of records to show (default: 20)",
    )
    history_parser.set_defaults(func=cmd_history)

    return parser


def _open_editor(args: argparse.Namespace) -> Optional[MetadataEditor]:
    """Open the catalog named by --db, printing the reason on failure."""
    if args.db is None:
        print("  [ERROR] --db is required for this command")
        return None
    try:
        config = ConfigStore.load(args.config)
        return MetadataEditor(args.db, config=config)
    except CatalogMetadataError as e:
        print(f"  [ERROR] {e}")
        return None


def _load_request(path: Path):
    try:
        return load_change_request(path)
    except ParseError as e:
        print(f"\n  [PARSE ERROR] {e}")
        if e.line:
            print(f"               Line: {e.line}")
    except FileNotFoundError as e:
        print(f"\n  [ERROR] {e}")
    return None


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle validate command."""
    print(f"\nValidating {args.file}...")

    request = _load_request(args.file)
    if request is None:
        return 1

    print(f"  Changes: {len(request.changes)}")
    if request.session_name:
        print(f"  Session: {request.session_name}")

    editor = None
    if args.db is not None:
        editor = _open_editor(args)
        if editor is None:
            return 1

    try:
        result = validate_change_request(
            request, editor.registry if editor is not None else None
        )
    finally:
        if editor is not None:
            editor.close()

    print("\nValidation Results:")
    _print_validation_result(result)

    if result.is_valid:
        print("\nValidation passed!")
        return 0
    print(f"\nFound {result.error_count} error(s), {result.warning_count} warning(s)")
    return 1


def cmd_apply(args: argparse.Namespace) -> int:
    """Handle apply command."""
    print(f"\nLoading {args.file}...")

    request = _load_request(args.file)
    if request is None:
        return 1
    if args.no_undo:
        request.undo = False

    print(f"  Changes: {len(request.changes)}")
    if request.session_name:
        print(f"  Session: \"{request.session_name}\"")

    editor = _open_editor(args)
    if editor is None:
        return 1

    with editor:
        print("\nValidating...")
        validation = validate_change_request(request, editor.registry)

        if not validation.is_valid:
            print("\nValidation failed:")
            _print_validation_result(validation)
            print(f"\nFound {validation.error_count} error(s). Fix errors before applying.")
            return 1

        if validation.warning_count > 0:
            print("\nWarnings:")
            _print_validation_result(validation, warnings_only=True)

        if args.dry_run:
            print("\n[DRY RUN] Simulating execution...")
        elif not args.yes:
            response = input(f"\nApply {len(request.changes)} changes to {args.db}? [y/N] ")
            if response.lower() not in ("y", "yes"):
                print("Aborted.")
                return 1

        print(f"\n{'Simulating' if args.dry_run else 'Applying'} changes...")
        result = execute_change_request(editor, request, dry_run=args.dry_run)

    _print_batch_result(result)
    return 1 if result.failure_count > 0 else 0


def cmd_keys(args: argparse.Namespace) -> int:
    """Handle keys command."""
    editor = _open_editor(args)
    if editor is None:
        return 1

    with editor:
        definitions = editor.registry.definitions()

    if not definitions:
        print("No attribute keys registered.")
        return 0

    print(f"\n{'ID':<6} {'Tag name':<40} {'Name':<20} {'Flags'}")
    print("-" * 80)
    for d in definitions:
        flags = []
        if d.internal:
            flags.append("internal")
        if not d.visible:
            flags.append("hidden")
        if d.private:
            flags.append("private")
        print(f"{d.id:<6} {d.tagname:<40} {d.name:<20} {','.join(flags)}")
    return 0


def cmd_register(args: argparse.Namespace) -> int:
    """Handle register command."""
    editor = _open_editor(args)
    if editor is None:
        return 1

    with editor:
        definition = editor.add_definition(
            args.tagname,
            args.name,
            internal=args.internal,
            visible=not args.hidden,
            private=args.private,
            display_order=args.order,
        )
        if definition is not None:
            editor.config.save()

    if definition is None:
        print(f"Key {args.tagname} is already registered.")
        return 1
    print(f"Registered {definition.tagname} as key {definition.id}.")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Handle show command."""
    editor = _open_editor(args)
    if editor is None:
        return 1

    with editor:
        attributes = editor.get_attributes(args.entity_id)

    print(f"\nEntity {args.entity_id}")
    if not attributes:
        print("  (no attributes)")
        return 0
    for tagname, value in attributes.items():
        print(f"  {tagname}: {value}")
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    """Handle history command."""
    editor = _open_editor(args)
    if editor is None:
        return 1

    with editor:
        records = editor.get_history(
            entity_id=args.entity,
            key=args.key,
            since=args.since,
            operation=args.operation,
        )
        names = {r.key: editor.registry.get_tagname(r.key) for r in records}

    if not records:
        print("No edits found.")
        return 0

    records = records[-args.limit:]
    print(f"\nEdit history (showing {len(records)}):\n")
    print(f"{'Entity':<8} {'Op':<7} {'Key':<30} {'Value':<20} {'Date'}")
    print("-" * 80)
    for r in records:
        key = names.get(r.key) or str(r.key)
        value = (r.value[:17] + "...") if len(r.value or "") > 20 else (r.value or "")
        print(f"{r.entity_id:<8} {r.operation:<7} {key:<30} {value:<20} {r.timestamp}")
    return 0


def _print_validation_result(
    result: ValidationResult,
    warnings_only: bool = False,
) -> None:
    """Print validation errors and warnings."""
    if not warnings_only:
        for error in result.errors:
            line_info = f" (line {error.line_number})" if error.line_number else ""
            print(f"  [ERROR] Change #{error.index + 1} ({error.operation}): {error.message}{line_info}")
            if error.field:
                print(f"          Field: {error.field}")

    for warning in result.warnings:
        line_info = f" (line {warning.line_number})" if warning.line_number else ""
        print(f"  [WARN]  Change #{warning.index + 1} ({warning.operation}): {warning.message}{line_info}")


def _print_batch_result(result: BatchResult) -> None:
    """Print batch execution result."""
    print()
    for change in result.changes:
        status = "OK" if change.success else "FAILED"
        print(f"  [{change.index + 1}/{result.total_count}] {change.operation}: {status}")
        if change.message:
            print(f"         {change.message}")

    print("\nResults:")
    print(f"  Total:   {result.total_count}")
    print(f"  Success: {result.success_count}")
    print(f"  Failed:  {result.failure_count}")
    if result.skipped_count:
        print(f"  Skipped: {result.skipped_count}")
    print(f"  Undo:    {result.undo_groups} step(s)")
    print(f"  Time:    {result.duration_seconds:.2f}s")


if __name__ == "__main__":
    sys.exit(main())
