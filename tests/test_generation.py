"""Prompt builders, JSON extraction and 4C normalisation."""

import pytest

from ibo_studio.generation import (
    GenerationError,
    build_ibo_prompt,
    build_session_prompt,
    extract_json_object,
    normalize_activity,
    normalize_session_content,
)


@pytest.mark.parametrize(
    "text",
    [
        '{"a": 1}',
        'Sure!\n```json\n{"a": 1}\n```\nEnjoy.',
        'prefix {"a": 1} suffix',
    ],
)
def test_extract_json_object(text):
    assert extract_json_object(text) == {"a": 1}


def test_extract_json_object_fails():
    with pytest.raises(GenerationError):
        extract_json_object("no json here")


def test_activity_type_cycles_by_position():
    types = [normalize_activity({"type": "workshop"}, i)["type"] for i in range(5)]

    assert types == ["connection", "concept", "concrete_practice", "conclusion", "connection"]


def test_activity_duration_must_be_numeric():
    assert normalize_activity({"estimated_duration": "20"}, 0)["estimated_duration"] == 15
    assert normalize_activity({"estimated_duration": True}, 0)["estimated_duration"] == 15
    assert normalize_activity({"estimated_duration": 25}, 0)["estimated_duration"] == 25


def test_session_content_requires_sections():
    with pytest.raises(GenerationError):
        normalize_session_content(["not", "a", "dict"], "t")
    with pytest.raises(GenerationError):
        normalize_session_content({"ibos": [], "activities": [], "rationale": ""}, "t")


def test_session_content_defaults():
    content = normalize_session_content({"ibos": [{}], "activities": [], "rationale": "why"}, "Sales")

    assert content["ibos"] == [
        {"title": "Generated IBO", "description": "AI-generated intended business outcome", "topic": "Sales"}
    ]


def test_prompts_include_context():
    persona = {"name": "Nurse Lead", "constraints": "Shift work", "context": None}

    ibo_prompt = build_ibo_prompt(persona, "Handover", "Fewer errors")
    session_prompt = build_session_prompt(persona, "Handover", "onsite", "Fewer errors")

    assert "PERSONA: Nurse Lead" in ibo_prompt
    assert "Constraints: Shift work" in ibo_prompt
    assert "Context:" not in ibo_prompt
    assert "# Business Objective N" in ibo_prompt
    assert "Design a onsite learning session" in session_prompt


@pytest.mark.parametrize("text", [None, "", "  \n"])
def test_extract_json_object_needs_text(text):
    with pytest.raises(GenerationError, match="No content generated"):
        extract_json_object(text)


def test_non_dict_activities_do_not_shift_positions():
    content = normalize_session_content(
        {"ibos": [], "activities": ["junk", {"type": "bogus"}, None, {"type": "bogus"}], "rationale": "r"},
        "t",
    )

    assert [a["type"] for a in content["activities"]] == ["connection", "concept"]
    assert [a["title"] for a in content["activities"]] == ["Generated Activity 1", "Generated Activity 2"]
