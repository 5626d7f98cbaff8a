from datetime import date

from braindump.contract import build_contract, build_date_rules, build_output_format
from braindump.models import CATEGORY_LABELS, ClassificationRequest

from conftest import ANCHOR


def make_request(**overrides):
    fields = {
        "new_input_text": "Dentist tomorrow 3pm Buy milk",
        "previous_items_text": "Call mom, Learn Spanish",
        "timezone": "Europe/London",
        "anchor_date": ANCHOR,
    }
    fields.update(overrides)
    return ClassificationRequest(**fields)


def test_contract_injects_anchor_date_literally():
    contract = build_contract(make_request())
    assert "Use 2025-01-13 as the current date" in contract
    assert "Current reference date: 2025-01-13 (Monday), timezone Europe/London" in contract
    assert "All dates must be equal to or after 2025-01-13" in contract


def test_contract_lists_all_categories_and_purchase_rule():
    contract = build_contract(make_request())
    for label in CATEGORY_LABELS.values():
        assert f"**{label}:**" in contract
    assert "Purchase-related items never go here, always Shopping List" in contract


def test_contract_contains_input_and_previous_items():
    contract = build_contract(make_request())
    assert "**NEW INPUT:**\nDentist tomorrow 3pm Buy milk" in contract
    assert "**PREVIOUS ITEMS:**\nCall mom, Learn Spanish" in contract


def test_previous_items_section_omitted_when_empty():
    contract = build_contract(make_request(previous_items_text=""))
    assert "PREVIOUS ITEMS:**" not in contract


def test_contract_is_deterministic():
    assert build_contract(make_request()) == build_contract(make_request())


def test_date_examples_follow_the_resolver():
    rules = build_date_rules(ANCHOR)
    assert '"this/coming Monday" = 2025-01-20' in rules
    assert '"this/coming Tuesday" = 2025-01-14' in rules
    assert '"next/following Friday" = 2025-01-24' in rules
    assert '"tomorrow", "day after" or "next day" -> 2025-01-14' in rules
    assert '"day after tomorrow" -> 2025-01-15' in rules


def test_passed_weekday_this_and_next_agree_and_are_explained():
    rules = build_date_rules(ANCHOR)
    assert '"this/coming Sunday" = 2025-01-26' in rules
    assert '"next/following Sunday" = 2025-01-26' in rules
    assert "Weeks run Sunday to Saturday" in rules
    assert '"this" and "next" give the same date' in rules


def test_date_examples_move_with_the_anchor():
    rules = build_date_rules(date(2026, 3, 4))
    assert "2025-01" not in rules
    assert "Current reference date: 2026-03-04 (Wednesday)" in rules
    assert '"tomorrow", "day after" or "next day" -> 2026-03-05' in rules


def test_output_format_is_keyed_by_category_labels():
    schema = build_output_format()
    assert schema.startswith("```json")
    for label in CATEGORY_LABELS.values():
        assert f'"{label}": [' in schema
    assert '"time": "HH:MM"|null' in schema
