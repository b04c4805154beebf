"""
Feature styling shared by the builders and the hull stage.
"""

from typing import Tuple

FEEDER_PALETTE: Tuple[str, ...] = (
    "#9FEE6B",
    "#6BC5EE",
    "#EE9F6B",
    "#C36BEE",
    "#EEDD6B",
    "#6BEEB4",
)


def color_for_feeder(feeder_id: int) -> str:
    """Deterministic color of a feeder."""
    return FEEDER_PALETTE[feeder_id % len(FEEDER_PALETTE)]


def marker_name(kind_value: str) -> str:
    return f"marker-{kind_value}"
