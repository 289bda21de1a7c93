from __future__ import annotations


def _lookup():
    from codefill.modules.codification.matching import build_lookup
    from codefill.modules.codification.schemas import AliasEntry

    return build_lookup(
        [
            AliasEntry(
                normalized_alias="site cost",
                canonical_code="<site_costs>",
                canonical_code_id="c1",
            ),
            AliasEntry(
                normalized_alias="architect fee",
                canonical_code="<architect_fee>",
                canonical_code_id="c2",
                confidence=0.95,
            ),
        ]
    )


def test_fast_pass_codifies_in_input_order_with_stats(id_factory):
    from codefill.modules.codification.models import MappingStatus
    from codefill.modules.codification.schemas import RawItem
    from codefill.modules.codification.service import run_fast_pass

    items = [
        RawItem(label="Site Costs", value=500000, currency="GBP", category="Site Costs"),
        RawItem(label="Mystery line", value=10),
        RawItem(label="Architects fee", value=15000, currency="GBP"),
    ]
    result = run_fast_pass(items, _lookup(), fuzzy_threshold=0.85, id_factory=id_factory)

    assert [i.original_name for i in result.items] == [
        "Site Costs",
        "Mystery line",
        "Architects fee",
    ]
    assert [i.id for i in result.items] == ["item_1", "item_2", "item_3"]
    assert result.items[0].mapping_status == MappingStatus.MATCHED
    assert result.items[0].item_code == "<site_costs>"
    assert result.items[1].mapping_status == MappingStatus.PENDING_REVIEW
    assert result.items[1].category == "Uncategorized"
    assert result.items[2].mapping_status == MappingStatus.MATCHED
    assert result.items[2].item_code == "<architect_fee>"
    assert result.stats.model_dump() == {"matched": 2, "pending_review": 1, "total": 3}


def test_fast_pass_without_threshold_is_exact_only(id_factory):
    from codefill.modules.codification.models import MappingStatus
    from codefill.modules.codification.schemas import RawItem
    from codefill.modules.codification.service import run_fast_pass

    result = run_fast_pass(
        [RawItem(label="Architects fee", value=15000)], _lookup(), id_factory=id_factory
    )
    assert result.items[0].mapping_status == MappingStatus.PENDING_REVIEW


def test_fast_pass_with_empty_dictionary_leaves_everything_pending(id_factory):
    from codefill.modules.codification.schemas import RawItem
    from codefill.modules.codification.service import run_fast_pass

    result = run_fast_pass(
        [RawItem(label="A", value=1), RawItem(label="B", value=2)],
        {},
        fuzzy_threshold=0.85,
        id_factory=id_factory,
    )
    assert result.stats.matched == 0
    assert result.stats.pending_review == 2


def test_fast_pass_flags_subtotal_lines(id_factory):
    from codefill.modules.codification.schemas import RawItem
    from codefill.modules.codification.service import run_fast_pass

    result = run_fast_pass(
        [RawItem(label="Total site costs", value=1), RawItem(label="Site Costs", value=1)],
        _lookup(),
        id_factory=id_factory,
    )
    assert result.items[0].is_computed_total is True
    assert result.items[1].is_computed_total is False


def test_fast_pass_is_deterministic_with_fixed_ids():
    import itertools

    from codefill.modules.codification.schemas import RawItem
    from codefill.modules.codification.service import run_fast_pass

    items = [RawItem(label="Site Costs", value=1), RawItem(label="Other", value=2)]

    def run():
        counter = itertools.count()
        return run_fast_pass(
            items, _lookup(), fuzzy_threshold=0.85, id_factory=lambda: f"i{next(counter)}"
        ).model_dump()

    assert run() == run()


def test_extract_items_flattens_extraction_payload():
    from codefill.modules.codification.service import extract_items_from_data

    data = {
        "detectedCurrency": "EUR",
        "costs": [
            {"type": "Architect fees", "amount": 12000, "category": "Professional Fees"},
            {"type": "No amount"},
        ],
        "costCategories": {
            "professionalFees": {
                "items": [
                    {"type": "Architect Fees", "amount": 12000},
                    {"type": "Engineer fees", "amount": 8000},
                ]
            }
        },
        "financing": {"loanAmount": 750000, "interestRate": 7.5},
        "plots": [{"name": "Plot 1", "cost": 250000}],
        "revenue": {"totalSales": 1500000},
        "profit": {"total": 300000},
        "units": {"count": 6},
    }
    items = extract_items_from_data(data)

    assert [(i.label, i.value, i.category) for i in items] == [
        ("Architect fees", 12000, "Professional Fees"),
        ("Engineer fees", 8000, "Professional Fees"),
        ("Loan Amount", 750000, "Financing"),
        ("Interest Rate", 7.5, "Financing"),
        ("Plot: Plot 1", 250000, "Plots"),
        ("Total Sales", 1500000, "Revenue"),
        ("Total Profit", 300000, "Profit"),
        ("Unit Count", 6, "Units"),
    ]
    assert items[0].currency == "EUR"
    assert items[3].currency is None


def test_extract_items_defaults_currency_and_handles_empty_payload():
    from codefill.modules.codification.service import extract_items_from_data

    assert extract_items_from_data({}) == []
    items = extract_items_from_data({"costs": [{"type": "Survey", "amount": 900}]})
    assert items[0].currency == "GBP"
    assert items[0].category == "Uncategorized"


def test_extract_items_tolerates_malformed_blocks():
    from codefill.modules.codification.service import extract_items_from_data

    assert extract_items_from_data({"cost_categories": [{"items": []}]}) == []
    assert extract_items_from_data({"costs": {"type": "x"}, "plots": 5}) == []
    items = extract_items_from_data(
        {"costCategories": {"siteCosts": {"items": 3}, "disposalFees": "n/a"}}
    )
    assert items == []

    (item,) = extract_items_from_data({"costs": [{"type": 106, "amount": 10}]})
    assert item.label == "106"
