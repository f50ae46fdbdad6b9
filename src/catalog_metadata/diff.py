"""Snapshot diffing and the three mutation semantics.

Snapshots are short ordered lists of ``KeyValue`` pairs, so every lookup is
a first-match linear scan. A key that appears twice in one snapshot only
ever matches its first occurrence.
"""

from __future__ import annotations

from collections.abc import Iterable

from catalog_metadata.models import KeyValue, MetadataDiff, Snapshot


def cleanup_value(value: str | None) -> str:
    """Strip surrounding whitespace; ``None`` and blank become ``""``."""
    if not value:
        return ""
    return value.strip()


def find_key(snapshot: Snapshot, key: int) -> int | None:
    """Index of the first pair with ``key``, or None."""
    for i, pair in enumerate(snapshot):
        if pair.key == key:
            return i
    return None


def diff(entity_id: int, before: Snapshot, after: Snapshot) -> MetadataDiff:
    """Minimal removals and insertions turning ``before`` into ``after``.

    An empty value in ``after`` means "no value": the key is removed and
    nothing is inserted for it.
    """
    result = MetadataDiff()

    for pair in before:
        i = find_key(after, pair.key)
        if i is None or after[i].value != pair.value or not after[i].value:
            if pair.key not in result.removals:
                result.removals.append(pair.key)

    for pair in after:
        if not pair.value:
            continue
        i = find_key(before, pair.key)
        if i is None or before[i].value != pair.value:
            result.insertions.append((entity_id, pair.key, pair.value))

    return result


def merge_into(before: Snapshot, payload: Iterable[KeyValue]) -> Snapshot:
    """Copy of ``before`` with ``payload`` merged in.

    A key already present takes the new value in place; a new key is
    appended.
    """
    after = list(before)
    for pair in payload:
        i = find_key(after, pair.key)
        if i is None:
            after.append(pair)
        elif after[i].value != pair.value:
            after[i] = KeyValue(pair.key, pair.value)
    return after


def remove_from(before: Snapshot, keys: Iterable[int]) -> Snapshot:
    """Copy of ``before`` without the first pair of each key in ``keys``."""
    after = list(before)
    for key in keys:
        i = find_key(after, key)
        if i is not None:
            del after[i]
    return after
