import json

import pytest

from research_engine.catalog.prompts import PROMPTS, build_prompt
from research_engine.catalog.sections import Section
from research_engine.routing.ai_router import classify_prompt, extract_json, route_result


@pytest.mark.parametrize("section", list(PROMPTS))
def test_every_catalog_prompt_classifies_to_its_own_section(section):
    assert classify_prompt(build_prompt(section, "Apple")) == section


def test_classification_is_deterministic():
    prompt = build_prompt(Section.SWOT_ANALYSIS, "Apple")
    assert {classify_prompt(prompt) for _ in range(5)} == {Section.SWOT_ANALYSIS}


def test_keyword_order_first_match_wins():
    # "competitor" precedes "revenue breakdown" in the table
    assert classify_prompt("competitor revenue breakdown") == Section.COMPETITOR_LANDSCAPE
    assert classify_prompt("Describe the Company Overview") == Section.COMPANY_OVERVIEW


def test_heuristic_fallbacks():
    assert classify_prompt("Who are the main rivals?") == Section.COMPETITOR_LANDSCAPE
    assert classify_prompt("Split revenue by division") == Section.REVENUE_BREAKDOWN


def test_unknown_prompt_is_none():
    assert classify_prompt("Tell me a joke") is None
    assert classify_prompt("") is None


def test_extract_from_json_fence():
    text = 'Here you go:\n```json\n{"strengths": ["A"]}\n```\nThanks'
    assert extract_json(text) == {"strengths": ["A"]}


def test_extract_from_untagged_fence():
    assert extract_json("```\n[1, 2, 3]\n```") == [1, 2, 3]


def test_extract_from_surrounding_prose():
    text = 'Sure! {"a": {"b": "x}y"}} hope that helps'
    assert extract_json(text) == {"a": {"b": "x}y"}}


def test_extract_bare_array():
    assert extract_json('["q1", "q2"]') == ["q1", "q2"]


def test_unparseable_text_is_returned_unchanged():
    text = "no json here { broken"
    assert extract_json(text) == text


def test_non_string_passes_through():
    value = {"already": "parsed"}
    assert extract_json(value) is value


def test_extract_is_idempotent_on_serialized_values():
    for value in ({"k": [1, {"n": None}]}, [1, "two"], {"empty": {}}):
        assert extract_json(json.dumps(value)) == value
        assert extract_json(f"```json\n{json.dumps(value)}\n```") == value


def test_route_result():
    item = {
        "prompt": build_prompt(Section.SWOT_ANALYSIS, "testco"),
        "response": '```json\n{"strengths":["A"]}\n```',
    }
    assert route_result(item) == (Section.SWOT_ANALYSIS, {"strengths": ["A"]})
    assert route_result("garbage") == (None, None)


def test_company_name_does_not_steer_classification():
    name = "Structure Therapeutics"
    for section in PROMPTS:
        item = {"prompt": build_prompt(section, name), "response": "{}"}
        assert classify_prompt(item["prompt"], name) == section
        assert route_result(item, name)[0] == section
