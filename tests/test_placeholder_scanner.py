from __future__ import annotations


def test_find_tokens_is_stateless():
    from codefill.modules.templates.scanner import find_tokens

    text = "Fee: <architect_fee> / <engineer_fee>"
    assert find_tokens(text) == ["<architect_fee>", "<engineer_fee>"]
    assert find_tokens(text) == ["<architect_fee>", "<engineer_fee>"]
    assert find_tokens("no tokens") == []
    assert find_tokens("") == []


def test_classify_token_precedence():
    from codefill.modules.templates.models import PlaceholderKind
    from codefill.modules.templates.scanner import classify_token

    numbered = classify_token("<all.professional.fees.value.2>")
    assert numbered.kind == PlaceholderKind.NUMBERED_FALLBACK
    assert numbered.category == "professional.fees"
    assert numbered.field == "value"
    assert numbered.set_key == "2"

    default = classify_token("<all.professional.fees.name>")
    assert default.kind == PlaceholderKind.DEFAULT_FALLBACK
    assert default.category == "professional.fees"
    assert default.set_key == "default"

    assert classify_token("<site_costs>").kind == PlaceholderKind.SPECIFIC
    assert classify_token("<all.Professional.name>").kind == PlaceholderKind.SPECIFIC


def test_scan_groups_name_and_value_cells_by_row_and_set():
    from codefill.modules.templates.schemas import Sheet
    from codefill.modules.templates.scanner import scan

    sheet = Sheet(
        name="Appraisal",
        cells=[
            ["Land", "<site_costs>", None],
            ["<all.plots.name.1>", "<all.plots.value.1>", 42],
            ["<all.plots.name>", "<all.plots.value>", "<all.plots.value.1>"],
        ],
    )
    result = scan([sheet])

    assert [(o.row, o.col, o.placeholder) for o in result.specific] == [(0, 1, "<site_costs>")]
    rows = [(r.row, r.set_key, r.name_col, r.value_col) for r in result.fallback_rows]
    assert {r.category for r in result.fallback_rows} == {"plots"}
    # default sets sort before numbered sets on the same row
    assert rows == [(1, "1", 0, 1), (2, "default", 0, 1), (2, "1", None, 2)]


def test_scan_of_template_without_placeholders_is_empty():
    from codefill.modules.templates.schemas import Sheet
    from codefill.modules.templates.scanner import scan

    result = scan([Sheet(name="S", cells=[[1, 2.5, None, "plain text", True]])])
    assert result.specific == []
    assert result.fallback_rows == []


def test_scan_merges_row_halves_by_normalized_category():
    from codefill.modules.templates.schemas import Sheet
    from codefill.modules.templates.scanner import scan

    sheet = Sheet(
        name="S",
        cells=[["<all.profesional.fees.name>", "<all.professional.fees.value>"]],
    )
    (row,) = scan([sheet]).fallback_rows
    assert row.category == "professional.fees"
    assert row.name_col == 0
    assert row.value_col == 1
