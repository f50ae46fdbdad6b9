"""
Batch change requests for catalog-metadata.

Bulk attribute changes are described in YAML and applied through a
MetadataEditor.

Example usage:
    from catalog_metadata import MetadataEditor
    from catalog_metadata.batch import (
        load_change_request,
        validate_change_request,
        execute_change_request,
    )

    request = load_change_request("changes.yaml")

    with MetadataEditor("catalog.db") as editor:
        validation = validate_change_request(request, editor.registry)
        if not validation.is_valid:
            for error in validation.errors:
                print(f"[{error.index}] {error.operation}: {error.message}")

        result = execute_change_request(editor, request)
        print(f"Applied {result.success_count}/{result.total_count} changes")

A request file looks like:

    session:
      name: Tag holiday shots
    transactional: true
    changes:
      - operation: set
        entities: [12, 13]
        metadata:
          Xmp.dc.title: Lisbon
      - operation: remove
        keys: [Xmp.dc.description]
"""

from ..exceptions import ParseError as ParseError
from .schema import (
    # Enums and constants
    OperationType as OperationType,
    REQUIRED_FIELDS as REQUIRED_FIELDS,
    OPTIONAL_FIELDS as OPTIONAL_FIELDS,
    # Data classes
    Change as Change,
    ChangeRequest as ChangeRequest,
    ValidationError as ValidationError,
    ValidationWarning as ValidationWarning,
    ValidationResult as ValidationResult,
    ChangeResult as ChangeResult,
    BatchResult as BatchResult,
)

from .parser import (
    load_change_request as load_change_request,
)

from .validator import (
    validate_change_request as validate_change_request,
)

from .executor import (
    execute_change_request as execute_change_request,
)

__all__ = [
    # Enums and constants
    "OperationType",
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    # Data classes
    "Change",
    "ChangeRequest",
    "ValidationError",
    "ValidationWarning",
    "ValidationResult",
    "ChangeResult",
    "BatchResult",
    # Functions
    "load_change_request",
    "validate_change_request",
    "execute_change_request",
    # Exceptions
    "ParseError",
]
