from __future__ import annotations

import pytest


def test_confirm_item_promotes_suggestion(make_item):
    from codefill.modules.codification.models import MappingStatus
    from codefill.modules.codification.review import apply_suggestion, confirm_item

    pending = make_item("Surveyor", 900, status=MappingStatus.PENDING_REVIEW)
    suggested = apply_suggestion(pending, code="<survey_fee>", code_id="c9", confidence=0.7)
    assert suggested.mapping_status == MappingStatus.SUGGESTED
    assert suggested.item_code is None
    assert pending.mapping_status == MappingStatus.PENDING_REVIEW

    confirmed = confirm_item(suggested)
    assert confirmed.mapping_status == MappingStatus.CONFIRMED
    assert confirmed.item_code == "<survey_fee>"
    assert confirmed.confidence == 1.0
    assert confirmed.is_fillable


def test_confirm_item_with_override_code(make_item):
    from codefill.modules.codification.models import MappingStatus
    from codefill.modules.codification.review import confirm_item

    item = make_item("Surveyor", 900, status=MappingStatus.PENDING_REVIEW)
    confirmed = confirm_item(item, code="<valuation_fee>")
    assert confirmed.item_code == "<valuation_fee>"


def test_confirm_item_without_any_code_is_rejected(make_item):
    from codefill.modules.codification.models import MappingStatus
    from codefill.modules.codification.review import confirm_item

    item = make_item("Surveyor", 900, status=MappingStatus.PENDING_REVIEW)
    with pytest.raises(ValueError):
        confirm_item(item)


def test_skip_item_marks_unmatched(make_item):
    from codefill.modules.codification.models import MappingStatus
    from codefill.modules.codification.review import skip_item

    skipped = skip_item(make_item("Odd line", 1, code="<odd>"))
    assert skipped.mapping_status == MappingStatus.UNMATCHED
    assert skipped.item_code is None
    assert skipped.confidence == 0.0
    assert not skipped.is_fillable


def test_confirm_all_and_readiness(make_item):
    from codefill.modules.codification.models import MappingStatus
    from codefill.modules.codification.review import (
        apply_suggestion,
        confirm_all_suggested,
        is_ready_for_population,
        items_needing_review,
        summarize_statuses,
    )

    items = [
        make_item("A", 1, code="<a>"),
        apply_suggestion(
            make_item("B", 2, status=MappingStatus.PENDING_REVIEW), code="<b>", confidence=0.8
        ),
        make_item("C", 3, status=MappingStatus.PENDING_REVIEW),
    ]
    assert [i.original_name for i in items_needing_review(items)] == ["B", "C"]
    assert not is_ready_for_population(items)

    updated = confirm_all_suggested(items)
    assert [i.mapping_status for i in updated] == [
        MappingStatus.MATCHED,
        MappingStatus.CONFIRMED,
        MappingStatus.PENDING_REVIEW,
    ]
    summary = summarize_statuses(updated)
    assert summary.confirmed == 1
    assert summary.pending_review == 1
    assert summary.total == 3
    assert summary.ready_for_population is False
