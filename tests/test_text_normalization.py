from __future__ import annotations

import pytest


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Site Costs", "site cost"),
        ("  Professional   Fees ", "professional fee"),
        ("Stamp Duty (5%)", "stamp duty"),
        ("Plot 1 - 5 bed detached", "plot 1"),
        ("Build costs x4", "build cost"),
        ("Agent fees 1.5%", "agent fee"),
        ("Legal_fees", "legal fee"),
        ("S106-Payments", "s106 payment"),
        ("Semi-detached house (3 bedrooms)", ""),
    ],
)
def test_normalize_text_strips_noise_and_folds_plurals(label, expected):
    from codefill.modules.codification.normalization import normalize_text

    assert normalize_text(label) == expected


def test_normalize_text_is_idempotent():
    from codefill.modules.codification.normalization import normalize_text

    labels = [
        "Site Costs",
        "x.5",
        "Plot 3 (4 bed) - 4 bed semi",
        "Professional_Fees & Legal",
        "CIL / S106 payments",
        "",
        "   ",
        "Finance rates 7.5%",
    ]
    for label in labels:
        once = normalize_text(label)
        assert normalize_text(once) == once


def test_normalize_text_only_folds_whole_words():
    from codefill.modules.codification.normalization import normalize_text

    # "costs" folds, but "costsheet" is a different word
    assert normalize_text("Costs costsheet") == "cost costsheet"
    assert normalize_text("Boxes") == "boxes"


def test_normalize_text_tolerates_non_strings():
    from codefill.modules.codification.normalization import normalize_text

    assert normalize_text(None) == ""  # type: ignore[arg-type]
    assert normalize_text(42) == "42"  # type: ignore[arg-type]


def test_is_compound_detects_joined_labels():
    from codefill.modules.codification.normalization import is_compound

    assert is_compound("Legal & Professional")
    assert is_compound("Survey and valuation")
    assert is_compound("CIL/S106")
    assert not is_compound("Architect fees")
    assert not is_compound("Landscaping")


def test_detect_subtotal_flags_total_lines_only():
    from codefill.modules.codification.normalization import detect_subtotal

    assert detect_subtotal("Total construction costs")
    assert detect_subtotal("Professional fees subtotal")
    assert detect_subtotal("Grand Total")
    assert detect_subtotal("3. Total")
    assert detect_subtotal("Build costs") is None
    assert detect_subtotal("Totalisator hire") is None
    assert detect_subtotal("") is None
