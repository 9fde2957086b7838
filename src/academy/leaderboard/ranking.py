"""Points ranking.

Entries are sorted by points, highest first. The sort is stable, so students
with equal points keep the order they were fetched in, and each entry's rank
is simply its 1-based position.
"""

from __future__ import annotations

from typing import Any


def rank_by_points(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort ``entries`` by ``points`` descending and stamp ``rank`` (1-indexed).

    A missing ``points`` key counts as 0. Returns a new list; the dicts are
    updated in place.
    """
    ranked = sorted(entries, key=lambda e: -(e.get("points") or 0))
    for idx, entry in enumerate(ranked):
        entry["points"] = entry.get("points") or 0
        entry["rank"] = idx + 1
    return ranked


def find_rank(ranked: list[dict[str, Any]], student_id: str) -> int | None:
    """Rank of ``student_id`` in an already ranked list, or None if absent."""
    for entry in ranked:
        if entry.get("student_id") == student_id:
            return entry["rank"]
    return None
