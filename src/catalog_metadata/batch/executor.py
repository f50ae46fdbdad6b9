"""
Executor for batch change requests.

Applies changes to the catalog database through a MetadataEditor.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from ..editor import MetadataEditor
from ..models import KeyValue, MutationMode, UndoType
from .schema import (
    BatchResult,
    Change,
    ChangeRequest,
    ChangeResult,
    OperationType,
)

logger = logging.getLogger(__name__)


class _Abort(Exception):
    """Unwinds a transactional run after its first failed change."""


def execute_change_request(
    editor: MetadataEditor,
    request: ChangeRequest,
    dry_run: bool = False,
) -> BatchResult:
    """Execute a batch change request.

    Each change is applied on its own and becomes one undo step. With
    ``request.transactional`` the whole request runs in one transaction and
    one undo step; the first failure rolls everything back and the
    remaining changes are skipped.

    Args:
        editor: Editor bound to the target catalog
        request: The change request to execute
        dry_run: If True, only report what would be done

    Returns:
        BatchResult with details of each change
    """
    start_time = time.time()
    results: List[ChangeResult] = []
    undo_groups = 0

    name = request.session_name or "(unnamed)"
    logger.info(f"Executing batch '{name}' with {len(request.changes)} changes")

    if dry_run or not request.transactional:
        for i, change in enumerate(request.changes):
            result, grouped = _execute_change(editor, change, i, request.undo, dry_run)
            results.append(result)
            undo_groups += grouped
    else:
        undo_groups = _execute_transactional(editor, request, results)

    success_count = sum(1 for r in results if r.success)
    failure_count = sum(1 for r in results if not r.success)
    duration = time.time() - start_time

    logger.info(
        f"Batch '{name}': {success_count} succeeded, {failure_count} failed"
    )
    return BatchResult(
        total_count=len(request.changes),
        success_count=success_count,
        failure_count=failure_count,
        changes=results,
        duration_seconds=duration,
        undo_groups=undo_groups,
    )


def _execute_transactional(
    editor: MetadataEditor,
    request: ChangeRequest,
    results: List[ChangeResult],
) -> int:
    """Run all changes in one transaction; returns the undo steps recorded."""
    if request.undo:
        editor.undo_stack.start_group(UndoType.METADATA)
    recorded = False
    try:
        with editor.batch():
            for i, change in enumerate(request.changes):
                result, grouped = _execute_change(
                    editor, change, i, request.undo, dry_run=False
                )
                results.append(result)
                recorded = recorded or bool(grouped)
                if not result.success:
                    raise _Abort()
    except _Abort:
        logger.warning("Transactional batch rolled back")
        for result in results:
            if result.success:
                result.success = False
                result.message = "Rolled back"
        if request.undo:
            editor.undo_stack.cancel_group()
        return 0
    if request.undo:
        editor.undo_stack.end_group()
    return 1 if recorded else 0


def _execute_change(
    editor: MetadataEditor,
    change: Change,
    index: int,
    undo: bool,
    dry_run: bool,
) -> Tuple[ChangeResult, int]:
    """Execute a single change operation.

    Returns:
        Tuple of (result, number of undo groups recorded)
    """
    op = change.operation

    try:
        targets = _targets(editor, change)

        if dry_run:
            return _dry_run_change(change, index, targets), 0

        if op == OperationType.SET.value:
            group = editor.set_list(targets, _text_values(change.metadata), undo)

        elif op == OperationType.REPLACE.value:
            pairs = _resolve_pairs(editor, change.metadata)
            group = editor.set_list_id(targets, pairs, clear_on=True, undo=undo)

        elif op == OperationType.REMOVE.value:
            keys = _resolve_keys(editor, change.keys)
            group = None
            if keys:
                group = editor.apply(targets, keys, MutationMode.REMOVE_MATCHING, undo)

        elif op == OperationType.CLEAR.value:
            group = editor.clear(targets, undo)

        else:
            return ChangeResult(
                index=index,
                operation=op,
                success=False,
                message=f"Unknown operation: {op}",
                error=f"Unknown operation: {op}",
            ), 0

    except Exception as e:
        logger.exception(f"Error executing change #{index + 1} ({op})")
        return ChangeResult(
            index=index,
            operation=op,
            success=False,
            message=f"Error: {e}",
            error=str(e),
        ), 0

    return ChangeResult(
        index=index,
        operation=op,
        success=True,
        message=f"Applied {op} to {len(targets)} entities",
        entity_count=len(targets),
    ), 1 if group is not None else 0


def _targets(editor: MetadataEditor, change: Change) -> List[int]:
    if change.entities is None:
        return editor.selection.get_entities()
    return [int(e) for e in change.entities]


def _dry_run_change(change: Change, index: int, targets: List[int]) -> ChangeResult:
    """Report a change without executing it."""
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Would {change.operation} on {len(targets)} entities",
        entity_count=len(targets),
    )


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _text_values(metadata: Dict[str, Any]) -> Dict[str, Optional[str]]:
    return {key: _text(value) for key, value in metadata.items()}


def _resolve_pairs(editor: MetadataEditor, metadata: Dict[str, Any]) -> List[KeyValue]:
    """Key ids and values for every registered name; unknown names are skipped."""
    pairs = []
    with editor.registry.lock:
        for key, value in metadata.items():
            key_id = editor.registry.get_keyid(key)
            if key_id is None:
                logger.warning(f"Skipping unknown attribute {key!r}")
                continue
            pairs.append(KeyValue(key_id, _text(value) or ""))
    return pairs


def _resolve_keys(editor: MetadataEditor, names: List[str]) -> List[int]:
    keys = []
    with editor.registry.lock:
        for name in names:
            key_id = editor.registry.get_keyid(name)
            if key_id is None:
                logger.warning(f"Skipping unknown attribute {name!r}")
                continue
            keys.append(key_id)
    return keys
