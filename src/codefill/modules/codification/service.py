from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from codefill.modules.codification.matching import (
    DEFAULT_CATEGORY,
    AliasLookup,
    IdFactory,
    match_exact,
    match_fuzzy,
    new_item_id,
)
from codefill.modules.codification.models import MappingStatus
from codefill.modules.codification.normalization import detect_subtotal, normalize_text
from codefill.modules.codification.schemas import (
    CodifiedItem,
    FastPassResult,
    FastPassStats,
    RawItem,
)

DEFAULT_CURRENCY = "GBP"

# Keys of the extraction payload's cost_categories block and their display names.
COST_CATEGORY_NAMES: dict[str, str] = {
    "site_costs": "Site Costs",
    "net_construction_costs": "Construction Costs",
    "professional_fees": "Professional Fees",
    "financing_legal_fees": "Financing Costs",
    "disposal_fees": "Disposal Costs",
}


def run_fast_pass(
    items: Iterable[RawItem],
    lookup: AliasLookup,
    *,
    fuzzy_threshold: float | None = None,
    id_factory: IdFactory = new_item_id,
    default_category: str = DEFAULT_CATEGORY,
) -> FastPassResult:
    """Codify raw items against the alias dictionary without any model calls.

    Exact lookups always run; fuzzy matching runs only when a threshold is
    given. Output order follows input order.
    """
    codified: list[CodifiedItem] = []
    for item in items:
        if fuzzy_threshold is None:
            result = match_exact(
                item, lookup, id_factory=id_factory, default_category=default_category
            )
        else:
            result = match_fuzzy(
                item,
                lookup,
                fuzzy_threshold,
                id_factory=id_factory,
                default_category=default_category,
            )
        if detect_subtotal(item.label):
            result = result.model_copy(update={"is_computed_total": True})
        codified.append(result)

    matched = sum(1 for i in codified if i.mapping_status == MappingStatus.MATCHED)
    pending = sum(1 for i in codified if i.mapping_status == MappingStatus.PENDING_REVIEW)
    return FastPassResult(
        items=codified,
        stats=FastPassStats(matched=matched, pending_review=pending, total=len(codified)),
    )


def _get(data: dict[str, Any] | None, *keys: str) -> Any:
    if not isinstance(data, dict):
        return None
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def extract_items_from_data(
    data: dict[str, Any], *, default_currency: str = DEFAULT_CURRENCY
) -> list[RawItem]:
    """Flatten an extraction payload into raw line items.

    Accepts snake_case keys and the camelCase keys the extraction service emits.
    """
    items: list[RawItem] = []
    currency = _get(data, "detected_currency", "detectedCurrency") or default_currency

    for cost in _list(_get(data, "costs")):
        label = _get(cost, "type")
        amount = _get(cost, "amount")
        if not label or amount is None:
            continue
        items.append(
            RawItem(
                label=str(label),
                value=amount,
                currency=_get(cost, "currency") or currency,
                category=_get(cost, "category") or DEFAULT_CATEGORY,
            )
        )

    categories = _get(data, "cost_categories", "costCategories")
    if not isinstance(categories, dict):
        categories = {}
    for key, block in categories.items():
        if not isinstance(block, dict):
            continue
        category_name = COST_CATEGORY_NAMES.get(_snake(key), key)
        for entry in _list(_get(block, "items")):
            label = _get(entry, "type")
            amount = _get(entry, "amount")
            if not label or amount is None:
                continue
            label = str(label)
            key_norm = normalize_text(label)
            if any(normalize_text(i.label) == key_norm and i.value == amount for i in items):
                continue
            items.append(
                RawItem(
                    label=label,
                    value=amount,
                    currency=_get(entry, "currency") or _get(block, "currency") or currency,
                    category=category_name,
                )
            )

    financing = _get(data, "financing")
    loan_amount = _get(financing, "loan_amount", "loanAmount")
    if loan_amount:
        items.append(
            RawItem(
                label="Loan Amount",
                value=loan_amount,
                currency=_get(financing, "currency") or currency,
                category="Financing",
            )
        )
    interest_rate = _get(financing, "interest_rate", "interestRate")
    if interest_rate is not None:
        items.append(RawItem(label="Interest Rate", value=interest_rate, category="Financing"))

    for plot in _list(_get(data, "plots")):
        name = _get(plot, "name")
        cost = _get(plot, "cost")
        if not name or cost is None:
            continue
        items.append(
            RawItem(
                label=f"Plot: {name}",
                value=cost,
                currency=_get(plot, "currency") or currency,
                category="Plots",
            )
        )

    revenue = _get(data, "revenue")
    total_sales = _get(revenue, "total_sales", "totalSales")
    if total_sales:
        items.append(
            RawItem(
                label="Total Sales",
                value=total_sales,
                currency=_get(revenue, "currency") or currency,
                category="Revenue",
            )
        )

    profit = _get(data, "profit")
    total_profit = _get(profit, "total")
    if total_profit:
        items.append(
            RawItem(
                label="Total Profit",
                value=total_profit,
                currency=_get(profit, "currency") or currency,
                category="Profit",
            )
        )

    unit_count = _get(_get(data, "units"), "count")
    if unit_count:
        items.append(RawItem(label="Unit Count", value=unit_count, category="Units"))

    return items


def _snake(key: str) -> str:
    out = []
    for ch in key:
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)
