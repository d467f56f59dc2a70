"""Unit tests for versioned prompts and prompt building."""
import pytest

from podcaster.jobs.models import DeepDiveOption
from podcaster.pipeline.dialogue import (
    DEEP_DIVE_GUIDANCE,
    DIALOGUE_COMPONENT,
    SUMMARY_COMPONENT,
    build_prompt,
    truncate_article,
)
from podcaster.prompts.loader import load_prompts, render


def test_v1_prompts_have_all_templates():
    for component in (SUMMARY_COMPONENT, DIALOGUE_COMPONENT):
        prompts = load_prompts(component, version="v1")
        assert set(prompts) == {"system", "user", "schema"}


def test_dialogue_schema_describes_segments():
    schema = load_prompts(DIALOGUE_COMPONENT, version="v1")["schema"]
    assert "segments" in schema
    assert "speaker" in schema
    assert "segments" not in load_prompts(SUMMARY_COMPONENT, version="v1")["schema"]


def test_missing_version_raises():
    with pytest.raises(FileNotFoundError):
        load_prompts(SUMMARY_COMPONENT, version="v999")


def test_render_replaces_placeholders():
    assert render("<<TITLE>>: <<ARTICLE>>", title="T", article="body") == "T: body"


@pytest.mark.parametrize("option", list(DeepDiveOption))
def test_build_prompt_fills_everything(option):
    system, user, schema = build_prompt(DIALOGUE_COMPONENT, "Tides", "The moon pulls.", option, version="v1")
    assert "Ash" in system and "Jenny" in system
    assert '"Tides"' in user
    assert "The moon pulls." in user
    assert DEEP_DIVE_GUIDANCE[option] in user
    assert "<<" not in user


def test_truncate_article():
    assert truncate_article("short", 10) == "short"
    out = truncate_article("a" * 50, 10)
    assert out.startswith("a" * 10)
    assert out.endswith("[...]")
