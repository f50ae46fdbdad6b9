"""
Validation for batch change requests.

Provides both schema validation (required fields, types) and
referential validation (attribute keys are registered).
"""
from __future__ import annotations

from typing import Any, List, Optional, Tuple

from ..db import is_valid_entity_id
from ..registry import AttributeRegistry
from ..virtual import VIRTUAL_KEYS
from .schema import (
    Change,
    ChangeRequest,
    OperationType,
    REQUIRED_FIELDS,
    ValidationError,
    ValidationResult,
    ValidationWarning,
)

_SCALARS = (str, int, float, bool)


def validate_change_request(
    request: ChangeRequest,
    registry: Optional[AttributeRegistry] = None,
) -> ValidationResult:
    """Validate a change request.

    Args:
        request: The change request to validate
        registry: If given, verify every attribute key is registered

    Returns:
        ValidationResult with errors and warnings
    """
    errors: List[ValidationError] = []
    warnings: List[ValidationWarning] = []

    for i, change in enumerate(request.changes):
        change_errors, change_warnings = _validate_change(change, i, registry)
        errors.extend(change_errors)
        warnings.extend(change_warnings)

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_change(
    change: Change,
    index: int,
    registry: Optional[AttributeRegistry],
) -> Tuple[List[ValidationError], List[ValidationWarning]]:
    """Validate a single change operation.

    Returns:
        Tuple of (errors, warnings)
    """
    errors: List[ValidationError] = []
    warnings: List[ValidationWarning] = []

    def error(field: str, message: str) -> None:
        errors.append(
            ValidationError(
                index=index,
                operation=change.operation,
                field=field,
                message=message,
                line_number=change.line_number,
            )
        )

    def warn(message: str) -> None:
        warnings.append(
            ValidationWarning(
                index=index,
                operation=change.operation,
                message=message,
                line_number=change.line_number,
            )
        )

    valid_operations = {op.value for op in OperationType}
    if change.operation not in valid_operations:
        error(
            "operation",
            f"Unknown operation '{change.operation}'. "
            f"Valid: {', '.join(sorted(valid_operations))}",
        )
        return errors, warnings

    for required in REQUIRED_FIELDS[change.operation]:
        if change.params.get(required) in (None, "", [], {}):
            error(required, f"Missing required field '{required}'")

    entities = change.params.get("entities")
    if entities is None:
        warn("No 'entities' given; the change applies to the current selection")
    elif not isinstance(entities, list) or not entities:
        error("entities", "Field 'entities' must be a non-empty list of ids")
    else:
        bad = [e for e in entities if isinstance(e, bool) or not is_valid_entity_id(e)]
        if bad:
            error("entities", f"Invalid entity ids: {bad}")

    keys: List[Any] = []
    if change.operation in (OperationType.SET.value, OperationType.REPLACE.value):
        metadata = change.params.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            error("metadata", "Field 'metadata' must be a mapping of key to value")
        elif metadata:
            keys = list(metadata)
            for key, value in metadata.items():
                if value is not None and not isinstance(value, _SCALARS):
                    error("metadata", f"Value for '{key}' must be a scalar")
                elif value is not None and not isinstance(value, str):
                    warn(f"Value for '{key}' will be stored as text")
    elif change.operation == OperationType.REMOVE.value:
        raw_keys = change.params.get("keys")
        if raw_keys is not None and not isinstance(raw_keys, list):
            error("keys", "Field 'keys' must be a list of attribute names")
        elif raw_keys:
            keys = raw_keys

    key_field = "keys" if change.operation == OperationType.REMOVE.value else "metadata"
    for key in keys:
        if not isinstance(key, str):
            error(key_field, f"Attribute name must be a string: {key!r}")
            continue
        if registry is None or registry.get_keyid(key) is not None:
            continue
        if key.startswith(VIRTUAL_KEYS):
            warn(f"'{key}' is managed elsewhere and will be skipped")
        else:
            error(key_field, f"Unknown attribute '{key}'")

    return errors, warnings
