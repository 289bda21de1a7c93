from __future__ import annotations

import enum


class MappingStatus(str, enum.Enum):
    MATCHED = "matched"
    SUGGESTED = "suggested"
    PENDING_REVIEW = "pending_review"
    CONFIRMED = "confirmed"
    UNMATCHED = "unmatched"


class DataType(str, enum.Enum):
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    NUMBER = "number"
    STRING = "string"


# Only these statuses are usable as fill material in a template.
FILLABLE_STATUSES = frozenset({MappingStatus.MATCHED, MappingStatus.CONFIRMED})
