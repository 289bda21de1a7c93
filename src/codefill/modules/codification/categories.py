from __future__ import annotations

import re

CATEGORY_SYNONYMS: dict[str, str] = {
    # Site / land acquisition
    "site costs": "site.costs",
    "purchase costs": "site.costs",
    "land costs": "site.costs",
    "land acquisition": "site.costs",
    "acquisition costs": "site.costs",
    "site": "site.costs",
    # Professional fees, including common misspellings seen in templates
    "professional fees": "professional.fees",
    "professional": "professional.fees",
    "fees": "professional.fees",
    "consultants": "professional.fees",
    "consultant fees": "professional.fees",
    "profesional fees": "professional.fees",
    "profesional": "professional.fees",
    "professioal fees": "professional.fees",
    "professioal": "professional.fees",
    # Construction / development
    "construction costs": "construction.costs",
    "net construction costs": "construction.costs",
    "build costs": "construction.costs",
    "build budget": "construction.costs",
    "construction": "construction.costs",
    "building costs": "construction.costs",
    "build": "construction.costs",
    "development costs": "construction.costs",
    "development": "construction.costs",
    "dev costs": "construction.costs",
    # Financing and legal
    "financing costs": "financing.costs",
    "financing/legal fees": "financing.costs",
    "financing legal fees": "financing.costs",
    "financing": "financing.costs",
    "finance": "financing.costs",
    "finance costs": "financing.costs",
    "loan costs": "financing.costs",
    "interest": "financing.costs",
    "legal fees": "financing.costs",
    # Disposal / sales costs
    "disposal costs": "disposal.costs",
    "disposal fees": "disposal.costs",
    "disposal": "disposal.costs",
    "sales costs": "disposal.costs",
    "selling costs": "disposal.costs",
    "marketing": "disposal.costs",
    "marketing costs": "disposal.costs",
    # Plots / units
    "plots": "plots",
    "plot": "plots",
    "units": "plots",
    "unit": "plots",
    "houses": "plots",
    "house": "plots",
    "developments": "plots",
    "homes": "plots",
    "home": "plots",
    "properties": "plots",
    "property": "plots",
    "dwellings": "plots",
    # Revenue
    "revenue": "revenue",
    "sales": "revenue",
    "income": "revenue",
    "gross development value": "revenue",
    "gdv": "revenue",
    # Profit
    "profit": "profit",
    "profits": "profit",
    "margin": "profit",
    "returns": "profit",
    # Other
    "other": "other",
    "uncategorized": "other",
    "miscellaneous": "other",
    "misc": "other",
    "general": "other",
}

_WHITESPACE_RE = re.compile(r"\s+")
_DOTS_OR_SPACES_RE = re.compile(r"[.\s]+")


def normalize_category(raw: str | None) -> str:
    """Map a category label onto the fallback taxonomy.

    Item categories ("Professional Fees") and template token categories
    ("professional.fees") both pass through here, so a dotted form is also
    looked up in its spaced spelling before falling back to the dotted key.
    """
    lower = (raw or "").lower().strip()
    mapped = CATEGORY_SYNONYMS.get(lower)
    if mapped:
        return mapped
    spaced = _DOTS_OR_SPACES_RE.sub(" ", lower).strip()
    mapped = CATEGORY_SYNONYMS.get(spaced)
    if mapped:
        return mapped
    return _WHITESPACE_RE.sub(".", lower)
