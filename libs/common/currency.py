"""Currency conversion utilities.

Internal storage unit: units (smallest KES unit, 100 units = KES 1).
API / display unit: KES (float, e.g. 150.0 = KES 150).

Conversion chain
----------------
KES   × 100 → Units
Units ÷ 100 → KES
"""

from __future__ import annotations

# ─── constants ───────────────────────────────────────────────────────────────

UNITS_PER_KES: int = 100


# ─── conversion helpers ───────────────────────────────────────────────────────


def kes_to_units(kes: float) -> int:
    """Convert KES to units (round half-up). KES 1 = 100 units."""
    return round(kes * UNITS_PER_KES)


def units_to_kes(units: int) -> float:
    """Convert units to KES. 100 units = KES 1."""
    return units / UNITS_PER_KES
