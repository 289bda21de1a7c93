"""Label normalization for alias matching.

Normalized keys are internal lookup keys only; the label shown to users is
always kept verbatim on ``CodifiedItem.original_name``.
"""

from __future__ import annotations

import re

# Applied in order, each match replaced by a single space.
_NOISE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\d+(\.\d+)?%"),  # 7.5%, 10%
    re.compile(r"\bx\s?\d+"),  # x4, x 12
    re.compile(r"\(\d+\s*bed(room)?s?\)"),  # (5 bed), (3 bedrooms)
    re.compile(r"-\s*\d+\s*bed(room)?s?(\s+\w+)?"),  # - 5 bed detached
    re.compile(r"\d+\s*bed(room)?s?(\s+\w+)?"),  # 3 bedroom semi
    re.compile(r"\([^)]*\)"),  # (notes), (x2)
    re.compile(r"\s*\b(detached|semi-detached|semi|terraced|apartment|flat|house)\b\s*"),
)

_SEPARATORS_RE = re.compile(r"[._-]+")
_WHITESPACE_RE = re.compile(r"\s+")
_COMPOUND_RE = re.compile(r"[&,/]|\band\b", re.IGNORECASE)

PLURAL_TO_SINGULAR: dict[str, str] = {
    "costs": "cost",
    "rates": "rate",
    "fees": "fee",
    "works": "work",
    "duties": "duty",
    "charges": "charge",
    "expenses": "expense",
    "payments": "payment",
    "amounts": "amount",
    "values": "value",
    "prices": "price",
    "totals": "total",
    "sales": "sale",
    "profits": "profit",
    "loans": "loan",
    "units": "unit",
    "plots": "plot",
    "sites": "site",
    "buildings": "building",
    "services": "service",
    "externals": "external",
    "utilities": "utility",
    "preliminaries": "preliminary",
    "prelims": "prelim",
}

_SUBTOTAL_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^total\b", re.IGNORECASE), 'Starts with "total"'),
    (re.compile(r"\btotal$", re.IGNORECASE), 'Ends with "total"'),
    (re.compile(r"^sub[\s-]?total", re.IGNORECASE), 'Starts with "subtotal"'),
    (re.compile(r"\bsub[\s-]?total$", re.IGNORECASE), 'Ends with "subtotal"'),
    (re.compile(r"\bgrand\s+total\b", re.IGNORECASE), 'Contains "grand total"'),
    (re.compile(r"\bnet\s+total\b", re.IGNORECASE), 'Contains "net total"'),
    (re.compile(r"\bgross\s+total\b", re.IGNORECASE), 'Contains "gross total"'),
    (re.compile(r"^sum\b", re.IGNORECASE), 'Starts with "sum"'),
    (re.compile(r"\bsum$", re.IGNORECASE), 'Ends with "sum"'),
    (re.compile(r"^overall\b", re.IGNORECASE), 'Starts with "overall"'),
    (re.compile(r"\b(section|category)\s+total\b", re.IGNORECASE), "Section/category total"),
    (re.compile(r"^aggregate\b", re.IGNORECASE), "Aggregate line"),
    (re.compile(r"^\d+[.)]?\s*total\b", re.IGNORECASE), "Numbered total line"),
)


def _normalize_once(text: str) -> str:
    normalized = text.lower().strip()
    for pattern in _NOISE_PATTERNS:
        normalized = pattern.sub(" ", normalized)
    normalized = _SEPARATORS_RE.sub(" ", normalized)
    normalized = _WHITESPACE_RE.sub(" ", normalized).strip()
    if not normalized:
        return ""
    return " ".join(PLURAL_TO_SINGULAR.get(word, word) for word in normalized.split(" "))


def normalize_text(label: str) -> str:
    """Canonicalize a free-text label into an alias lookup key.

    Stripping can expose new noise (``"x.5"`` becomes ``"x 5"``), so the
    pipeline is repeated until the key stops changing. Every repeat either
    leaves the key untouched or shortens it, which keeps this idempotent.
    """
    if not isinstance(label, str):
        label = "" if label is None else str(label)
    current = _normalize_once(label)
    while True:
        again = _normalize_once(current)
        if again == current:
            return current
        current = again


def is_compound(label: str) -> bool:
    return bool(_COMPOUND_RE.search(label or ""))


def detect_subtotal(label: str) -> str | None:
    """Return why ``label`` looks like a total line, or None."""
    name = (label or "").strip()
    if not name:
        return None
    for pattern, reason in _SUBTOTAL_PATTERNS:
        if pattern.search(name):
            return reason
    return None
