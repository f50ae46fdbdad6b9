"""
YAML parser for batch change requests.

Requests read from text keep the source line of every change so validation
messages can point back into the file.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..exceptions import ParseError
from .schema import Change, ChangeRequest


def load_change_request(
    source: Union[str, Path, Dict[str, Any]],
) -> ChangeRequest:
    """Load a change request from a YAML file, YAML string or dictionary.

    Raises:
        ParseError: If the content cannot be parsed or is invalid
        FileNotFoundError: If the file does not exist
    """
    source_path: Optional[Path] = None
    lines: List[int] = []

    if isinstance(source, dict):
        data = source
    else:
        if isinstance(source, Path) or _is_file_path(source):
            source_path = Path(source)
            if not source_path.exists():
                raise FileNotFoundError(f"File not found: {source_path}")
            text = source_path.read_text(encoding="utf-8")
        else:
            text = source
        data, lines = _read_yaml(text)

    return _parse_change_request(data, lines, source_path)


def _is_file_path(s: str) -> bool:
    """A single line with a path separator or a YAML suffix names a file."""
    if "\n" in s:
        return False
    return "/" in s or "\\" in s or s.endswith((".yaml", ".yml"))


def _read_yaml(text: str) -> Tuple[Dict[str, Any], List[int]]:
    """Parse ``text``; returns the mapping and the line of each change."""
    try:
        root = yaml.compose(text, Loader=yaml.SafeLoader)
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        raise ParseError(
            f"Invalid YAML: {e}", line=mark.line + 1 if mark else None
        ) from e

    if data is None:
        raise ParseError("Empty YAML content")
    if not isinstance(data, dict):
        raise ParseError("YAML root must be a mapping (dictionary)")
    return data, _change_lines(root)


def _change_lines(root: yaml.Node) -> List[int]:
    if not isinstance(root, yaml.MappingNode):
        return []
    for key_node, value_node in root.value:
        if key_node.value == "changes" and isinstance(value_node, yaml.SequenceNode):
            return [item.start_mark.line + 1 for item in value_node.value]
    return []


def _parse_change_request(
    data: Dict[str, Any],
    lines: List[int],
    source_path: Optional[Path] = None,
) -> ChangeRequest:
    """Parse a dictionary into a ChangeRequest object."""
    session = data.get("session") or {}
    if not isinstance(session, dict):
        raise ParseError("Field 'session' must be a mapping")

    flags = {}
    for name, default in (("undo", True), ("transactional", False)):
        flags[name] = data.get(name, default)
        if not isinstance(flags[name], bool):
            raise ParseError(f"Field '{name}' must be a boolean")

    changes_data = data.get("changes")
    if changes_data is None:
        raise ParseError("Missing required field: 'changes'")
    if not isinstance(changes_data, list):
        raise ParseError("Field 'changes' must be a list")
    if not changes_data:
        raise ParseError("Field 'changes' cannot be empty")

    return ChangeRequest(
        changes=_parse_changes(changes_data, lines),
        session_name=session.get("name"),
        session_description=session.get("description"),
        source_file=source_path,
        **flags,
    )


def _parse_changes(changes_data: List[Any], lines: List[int]) -> List[Change]:
    """Parse a list of change dictionaries into Change objects."""
    changes = []

    for i, change_data in enumerate(changes_data):
        line = lines[i] if i < len(lines) else None
        if not isinstance(change_data, dict):
            raise ParseError(f"Change #{i + 1} must be a mapping (dictionary)", line=line)

        operation = change_data.get("operation")
        if not operation:
            raise ParseError(f"Change #{i + 1}: Missing required field 'operation'", line=line)
        if not isinstance(operation, str):
            raise ParseError(f"Change #{i + 1}: Field 'operation' must be a string", line=line)

        params = {k: v for k, v in change_data.items() if k != "operation"}
        changes.append(Change(operation=operation, params=params, line_number=line))

    return changes
