"""Tests for the session builder step catalog and navigation rules."""

from types import SimpleNamespace

import pytest

from ibo_studio.session_steps import (
    STEP_IDS,
    SessionProgress,
    advance,
    can_advance_to,
    completed_steps,
    current_step_index,
    get_next_step,
    get_previous_step,
    get_step_index,
    go_to,
    is_step_complete,
    mark_complete,
    progress_summary,
    retreat,
)


def snapshot(**fields):
    base = {
        "persona_id": None,
        "topic": None,
        "business_goals": None,
        "modality": None,
        "generated_ibos": None,
        "generated_activities": None,
        "current_step": None,
        "completed_steps": [],
    }
    base.update(fields)
    return SimpleNamespace(**base)


def test_catalog_order():
    assert STEP_IDS == ("persona", "topic", "generate-ibos", "choose-modality", "build-4c", "review")


def test_neighbours():
    assert get_next_step("topic").id == "generate-ibos"
    assert get_next_step("review") is None
    assert get_previous_step("topic").id == "persona"
    assert get_previous_step("persona") is None
    assert get_next_step("bogus") is None


class TestCurrentStepIndex:
    def test_defaults_to_first_step(self):
        assert current_step_index(snapshot()) == 0
        assert current_step_index(SimpleNamespace()) == 0

    def test_unknown_step_counts_as_first(self):
        assert current_step_index(snapshot(current_step="cards")) == 0

    def test_recorded_step(self):
        assert current_step_index(snapshot(current_step="topic")) == 1


class TestCanAdvanceTo:
    def test_example_from_topic(self):
        session = snapshot(current_step="topic")

        assert can_advance_to(session, "choose-modality") is False
        assert can_advance_to(session, "generate-ibos") is True
        assert can_advance_to(session, "persona") is True

    @pytest.mark.parametrize("current", STEP_IDS)
    @pytest.mark.parametrize("target", STEP_IDS)
    def test_forward_bound_backward_open(self, current, target):
        session = snapshot(current_step=current)
        expected = get_step_index(target) <= get_step_index(current) + 1

        assert can_advance_to(session, target) is expected

    def test_unknown_target(self):
        assert can_advance_to(snapshot(), "cards") is False


class TestIsStepComplete:
    def test_field_predicates(self):
        session = snapshot(persona_id="p1", topic="Negotiation", modality="virtual")

        assert is_step_complete(session, "persona")
        assert not is_step_complete(session, "topic")
        assert is_step_complete(session, "choose-modality")

    def test_topic_needs_goals(self):
        assert is_step_complete(snapshot(topic="Negotiation", business_goals="Bigger deals"), "topic")

    def test_generated_content(self):
        session = snapshot(generated_ibos="# IBO 1", generated_activities='{"activities": []}')

        assert is_step_complete(session, "generate-ibos")
        assert is_step_complete(session, "build-4c")

    def test_review_only_by_membership(self):
        assert not is_step_complete(snapshot(), "review")
        assert is_step_complete(snapshot(completed_steps=["review"]), "review")

    def test_json_encoded_completed_steps(self):
        session = snapshot(completed_steps='["persona", "review"]')

        assert completed_steps(session) == ["persona", "review"]
        assert is_step_complete(session, "review")

    def test_garbage_completed_steps(self):
        assert completed_steps(snapshot(completed_steps="not json")) == []

    def test_unknown_step(self):
        assert not is_step_complete(snapshot(completed_steps=["cards"]), "cards")


class TestTransitions:
    def test_advance_records_step_left(self):
        progress = advance(snapshot(current_step="persona"))

        assert progress == SessionProgress("topic", ("persona",))

    def test_advance_at_end_is_noop(self):
        session = snapshot(current_step="review", completed_steps=["persona"])

        assert advance(session) == SessionProgress("review", ("persona",))

    def test_retreat_records_step_left(self):
        session = snapshot(current_step="generate-ibos", completed_steps=["persona"])
        progress = retreat(session)

        assert progress == SessionProgress("topic", ("persona", "generate-ibos"))
        assert progress == go_to(session, "topic")

    def test_retreat_at_start_is_noop(self):
        assert retreat(snapshot()) == SessionProgress("persona", ())

    def test_mark_complete(self):
        session = snapshot(current_step="topic", completed_steps=["persona"])
        progress = mark_complete(session, "generate-ibos")

        assert progress == SessionProgress("generate-ibos", ("persona", "generate-ibos"))

    def test_mark_complete_no_duplicates(self):
        session = snapshot(current_step="topic", completed_steps=["persona"])

        assert mark_complete(session, "persona").completed_steps == ("persona",)

    def test_mark_complete_unknown_step(self):
        assert mark_complete(snapshot(), "cards") == SessionProgress()

    def test_go_to_unreachable_is_unchanged(self):
        session = snapshot(current_step="persona")

        assert go_to(session, "review") == SessionProgress("persona", ())

    def test_go_to_forced(self):
        session = snapshot(current_step="persona")

        assert go_to(session, "review", force=True) == SessionProgress("review", ("persona",))

    def test_go_back(self):
        session = snapshot(current_step="choose-modality", completed_steps=["persona", "topic"])

        assert go_to(session, "persona") == SessionProgress(
            "persona", ("persona", "topic", "choose-modality")
        )

    def test_transitions_do_not_mutate_input(self):
        session = snapshot(current_step="persona", completed_steps=[])
        advance(session)

        assert session.current_step == "persona"
        assert session.completed_steps == []


def test_progress_summary():
    summary = progress_summary(snapshot(current_step="topic", persona_id="p1"))

    assert summary["current_step"] == "topic"
    assert summary["current_step_index"] == 1
    assert [s["reachable"] for s in summary["steps"]] == [True, True, True, False, False, False]
    assert [s["current"] for s in summary["steps"]] == [False, True, False, False, False, False]
    assert summary["steps"][0]["complete"] is True
    assert summary["steps"][0]["title"] == "Select Persona"
