import pytest

from research_engine.catalog.fallback import expected_keys, fallback_payload, matches_fallback_shape
from research_engine.catalog.prompts import PROMPTS
from research_engine.catalog.sections import SECTION_SPECS, Section
from research_engine.orchestrator.priority_tiers import BASIC, COMPETITOR, PRIORITY, REFRESHABLE, SECONDARY


@pytest.mark.parametrize("section", list(Section))
def test_every_section_has_a_self_consistent_fallback(section):
    payload = fallback_payload(section, "Apple")
    assert matches_fallback_shape(section, payload)
    assert fallback_payload(section, "Apple") == payload


def test_every_ai_section_has_a_prompt():
    ai = {s for s, spec in SECTION_SPECS.items() if spec.source == "ai"}
    assert ai == set(PROMPTS) - {Section.COMPETITOR_LANDSCAPE}


def test_prompt_keys_match_fallback_keys():
    for section, template in PROMPTS.items():
        for key in expected_keys(section):
            assert f'"{key}"' in template, f"{section} prompt lacks {key}"


def test_shape_check():
    assert matches_fallback_shape(Section.AI_SUGGESTIONS, ["q"])
    assert not matches_fallback_shape(Section.AI_SUGGESTIONS, {"q": 1})
    assert not matches_fallback_shape(Section.SWOT_ANALYSIS, "text")
    assert not matches_fallback_shape(Section.SWOT_ANALYSIS, {"unrelated": 1})
    assert matches_fallback_shape(Section.SWOT_ANALYSIS, {"strengths": []})


def test_tiers_cover_every_section_once():
    tiers = BASIC + PRIORITY + SECONDARY + COMPETITOR
    assert sorted(tiers) == sorted(Section)
    assert set(REFRESHABLE) == {Section.NEWS, Section.RECENT_FILINGS, Section.COMPETITOR_LANDSCAPE}
