"""Nutri-Score and NOVA helpers for food records."""

from __future__ import annotations

_NOVA_DESCRIPTIONS: dict[int, str] = {
    1: "Unprocessed or minimally processed foods",
    2: "Processed culinary ingredients",
    3: "Processed foods",
    4: "Ultra-processed foods",
}

_NUTRISCORE_GRADES = frozenset("ABCDE")


def describe_nova_group(nova_group: int | None) -> str:
    """Human-readable label for a NOVA processing group (1-4)."""
    return _NOVA_DESCRIPTIONS.get(nova_group, "Processing level unknown")


def normalize_nutriscore(grade: object) -> str | None:
    """Return an upper-case A-E grade, or None for "unknown" and friends."""
    if not isinstance(grade, str):
        return None
    grade = grade.strip().upper()
    return grade if grade in _NUTRISCORE_GRADES else None


def parse_nova_group(value: object) -> int | None:
    """Coerce the catalog's NOVA value (int or numeric string) to 1-4."""
    try:
        group = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return group if group in _NOVA_DESCRIPTIONS else None


def format_energy(energy_kcal: float | None) -> str:
    if energy_kcal is None:
        return "N/A"
    return f"{round(energy_kcal)} kcal"
