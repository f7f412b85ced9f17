"""Helpers for the hierarchical ``project/folder/.../filename`` identifiers."""

from __future__ import annotations

__all__ = ["basename", "folder_segments", "is_under"]


def basename(path: str) -> str:
    """Final segment of *path*.

    Upstream writers store the same physical file under full storage paths
    (``projects/p1/03_Reports/a.pdf``) and relative ones (``a.pdf``);
    reducing to the last segment makes them compare equal.
    """
    stripped = path.rstrip("/")
    return stripped.rsplit("/", 1)[-1] or path


def folder_segments(folder_path: str) -> list[str]:
    return [seg for seg in folder_path.split("/") if seg]


def is_under(folder_path: str, zone: str) -> bool:
    """``True`` when *folder_path* equals *zone* or lies beneath it."""
    segments = folder_segments(folder_path)
    zone_segments = folder_segments(zone)
    if not zone_segments:
        return False
    return segments[: len(zone_segments)] == zone_segments
