from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from typing import Any

from rapidfuzz.distance import Levenshtein

from codefill.modules.codification.models import DataType, MappingStatus
from codefill.modules.codification.normalization import normalize_text
from codefill.modules.codification.schemas import AliasEntry, AliasMatch, CodifiedItem, RawItem

DEFAULT_FUZZY_THRESHOLD = 0.85
DEFAULT_CATEGORY = "Uncategorized"

AliasLookup = Mapping[str, AliasMatch]
IdFactory = Callable[[], str]


def new_item_id() -> str:
    return f"item_{uuid.uuid4().hex}"


def build_lookup(entries: Iterable[AliasEntry]) -> dict[str, AliasMatch]:
    """Index aliases by normalized text.

    On a key collision the higher confidence entry wins; equal confidence keeps
    the entry seen first.
    """
    lookup: dict[str, AliasMatch] = {}
    for entry in entries:
        existing = lookup.get(entry.normalized_alias)
        if existing is not None and entry.confidence <= existing.confidence:
            continue
        lookup[entry.normalized_alias] = AliasMatch(
            canonical_code=entry.canonical_code,
            canonical_code_id=entry.canonical_code_id,
            confidence=entry.confidence,
            source=entry.source,
        )
    return lookup


def similarity(a: str, b: str) -> float:
    """Normalized Levenshtein similarity in [0, 1]; 1 means identical."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    # Single division so boundary values such as 17/20 land exactly on 0.85.
    return (max_len - Levenshtein.distance(a, b)) / max_len


def detect_data_type(value: Any, currency: str | None = None) -> DataType:
    if currency:
        return DataType.CURRENCY
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        if 0 < value < 1 and value % 1 != 0:
            return DataType.PERCENTAGE
        return DataType.NUMBER
    return DataType.STRING


def _base_item(
    item: RawItem, *, id_factory: IdFactory, default_category: str
) -> CodifiedItem:
    return CodifiedItem(
        id=id_factory(),
        original_name=item.label,
        value=item.value,
        data_type=detect_data_type(item.value, item.currency),
        category=item.category or default_category,
        mapping_status=MappingStatus.PENDING_REVIEW,
        confidence=0.0,
    )


def _apply_match(codified: CodifiedItem, match: AliasMatch, confidence: float) -> CodifiedItem:
    return codified.model_copy(
        update={
            "item_code": match.canonical_code,
            "mapping_status": MappingStatus.MATCHED,
            "confidence": min(max(confidence, 0.0), 1.0),
        }
    )


def match_exact(
    item: RawItem,
    lookup: AliasLookup,
    *,
    id_factory: IdFactory = new_item_id,
    default_category: str = DEFAULT_CATEGORY,
) -> CodifiedItem:
    codified = _base_item(item, id_factory=id_factory, default_category=default_category)
    match = lookup.get(normalize_text(item.label))
    if match is None:
        return codified
    return _apply_match(codified, match, match.confidence)


def find_fuzzy_match(
    normalized: str, lookup: AliasLookup, threshold: float = DEFAULT_FUZZY_THRESHOLD
) -> tuple[str, float] | None:
    """Best alias key at or above ``threshold``; the first key seen wins ties."""
    best: tuple[str, float] | None = None
    for key in lookup:
        score = similarity(normalized, key)
        if score < threshold:
            continue
        if best is None or score > best[1]:
            best = (key, score)
    return best


def match_fuzzy(
    item: RawItem,
    lookup: AliasLookup,
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
    *,
    id_factory: IdFactory = new_item_id,
    default_category: str = DEFAULT_CATEGORY,
) -> CodifiedItem:
    codified = _base_item(item, id_factory=id_factory, default_category=default_category)
    normalized = normalize_text(item.label)

    exact = lookup.get(normalized)
    if exact is not None:
        return _apply_match(codified, exact, exact.confidence)

    best = find_fuzzy_match(normalized, lookup, threshold)
    if best is None:
        return codified
    key, score = best
    match = lookup[key]
    return _apply_match(codified, match, match.confidence * score)
