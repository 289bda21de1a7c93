from __future__ import annotations

import enum


class PlaceholderKind(str, enum.Enum):
    SPECIFIC = "specific"
    DEFAULT_FALLBACK = "default_fallback"
    NUMBERED_FALLBACK = "numbered_fallback"


class PopulationEventKind(str, enum.Enum):
    MATCH = "match"
    UNMATCHED = "unmatched"
    FALLBACK_FILLED = "fallback_filled"
    OVERFLOW = "overflow"


class CellKind(str, enum.Enum):
    INPUT = "input"
    FORMULA = "formula"
    EMPTY = "empty"


DEFAULT_SET_KEY = "default"
