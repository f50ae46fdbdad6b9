"""
Data classes and constants for the batch change request system.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


# =============================================================================
# Operation Types
# =============================================================================

class OperationType(str, Enum):
    """Supported batch operations."""
    SET = "set"
    REPLACE = "replace"
    REMOVE = "remove"
    CLEAR = "clear"


# =============================================================================
# Field Requirements
# =============================================================================

# Required fields for each operation
REQUIRED_FIELDS: Dict[str, List[str]] = {
    OperationType.SET.value: ["metadata"],
    OperationType.REPLACE.value: ["metadata"],
    OperationType.REMOVE.value: ["keys"],
    OperationType.CLEAR.value: [],
}

# Optional fields for each operation
OPTIONAL_FIELDS: Dict[str, List[str]] = {
    OperationType.SET.value: ["entities"],
    OperationType.REPLACE.value: ["entities"],
    OperationType.REMOVE.value: ["entities"],
    OperationType.CLEAR.value: ["entities"],
}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class Change:
    """Single change operation."""
    operation: str
    params: Dict[str, Any]
    line_number: Optional[int] = None

    @property
    def entities(self) -> Optional[List[int]]:
        """Target entity ids; None means the current selection."""
        return self.params.get("entities")

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.params.get("metadata") or {}

    @property
    def keys(self) -> List[str]:
        return self.params.get("keys") or []


@dataclass
class ChangeRequest:
    """Parsed change request from YAML."""
    changes: List[Change]
    session_name: Optional[str] = None
    session_description: Optional[str] = None
    undo: bool = True
    transactional: bool = False
    source_file: Optional[Path] = None


@dataclass
class ValidationError:
    """Validation error for a specific change."""
    index: int
    operation: str
    field: str
    message: str
    line_number: Optional[int] = None


@dataclass
class ValidationWarning:
    """Validation warning for a specific change."""
    index: int
    operation: str
    message: str
    line_number: Optional[int] = None


@dataclass
class ValidationResult:
    """Result of validating a change request."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


@dataclass
class ChangeResult:
    """Result of executing a single change."""
    index: int
    operation: str
    success: bool
    message: str
    entity_count: int = 0
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Result of executing a batch change request."""
    total_count: int
    success_count: int
    failure_count: int
    changes: List[ChangeResult]
    duration_seconds: float
    undo_groups: int = 0

    @property
    def skipped_count(self) -> int:
        return self.total_count - self.success_count - self.failure_count
