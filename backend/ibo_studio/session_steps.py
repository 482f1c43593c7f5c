"""Step catalog and navigation rules for the session builder.

All functions read plain attributes (``persona_id``, ``topic``,
``business_goals``, ``modality``, ``generated_ibos``,
``generated_activities``, ``current_step``, ``completed_steps``) so they work
on an ORM row as well as on any snapshot object. Nothing here persists or
raises; transitions return a new ``SessionProgress`` for the caller to store.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple


def _filled(session: Any, field: str) -> bool:
	return bool(getattr(session, field, None))


@dataclass(frozen=True)
class SessionStep:
	id: str
	title: str
	validates: Callable[[Any], bool]


SESSION_STEPS: Tuple[SessionStep, ...] = (
	SessionStep("persona", "Select Persona", lambda s: _filled(s, "persona_id")),
	SessionStep("topic", "Topic & Goals", lambda s: _filled(s, "topic") and _filled(s, "business_goals")),
	SessionStep("generate-ibos", "Generate IBOs", lambda s: _filled(s, "generated_ibos")),
	SessionStep("choose-modality", "Choose Modality", lambda s: _filled(s, "modality")),
	SessionStep("build-4c", "Build 4C Map", lambda s: _filled(s, "generated_activities")),
	SessionStep("review", "Review & Create", lambda s: False),
)

STEP_IDS: Tuple[str, ...] = tuple(s.id for s in SESSION_STEPS)
FIRST_STEP = STEP_IDS[0]


def get_step_index(step_id: Optional[str]) -> int:
	"""Position of ``step_id`` in the catalog, -1 when unknown."""
	try:
		return STEP_IDS.index(step_id)
	except ValueError:
		return -1


def get_step(step_id: Optional[str]) -> Optional[SessionStep]:
	index = get_step_index(step_id)
	return SESSION_STEPS[index] if index >= 0 else None


def get_next_step(step_id: str) -> Optional[SessionStep]:
	index = get_step_index(step_id)
	if 0 <= index < len(SESSION_STEPS) - 1:
		return SESSION_STEPS[index + 1]
	return None


def get_previous_step(step_id: str) -> Optional[SessionStep]:
	index = get_step_index(step_id)
	if index > 0:
		return SESSION_STEPS[index - 1]
	return None


def completed_steps(session: Any) -> List[str]:
	"""Completed step ids, accepting either a list or its JSON encoding."""
	raw = getattr(session, "completed_steps", None)
	if not raw:
		return []
	if isinstance(raw, str):
		try:
			raw = json.loads(raw)
		except ValueError:
			return []
		if not isinstance(raw, list):
			return []
	return [str(s) for s in raw if s]


def current_step_index(session: Any) -> int:
	index = get_step_index(getattr(session, "current_step", None))
	return index if index >= 0 else 0


def can_advance_to(session: Any, step_id: str) -> bool:
	# backwards is unlimited, forwards is at most one step
	target = get_step_index(step_id)
	return 0 <= target <= current_step_index(session) + 1


def is_step_complete(session: Any, step_id: str) -> bool:
	step = get_step(step_id)
	if step is None:
		return False
	return step.validates(session) or step_id in completed_steps(session)


@dataclass(frozen=True)
class SessionProgress:
	current_step: str = FIRST_STEP
	completed_steps: Tuple[str, ...] = ()

	@classmethod
	def of(cls, session: Any) -> "SessionProgress":
		return cls(
			current_step=STEP_IDS[current_step_index(session)],
			completed_steps=tuple(completed_steps(session)),
		)

	def with_completed(self, step_id: str) -> "SessionProgress":
		if step_id in self.completed_steps:
			return self
		return SessionProgress(self.current_step, self.completed_steps + (step_id,))

	def moved_to(self, step_id: str) -> "SessionProgress":
		return SessionProgress(step_id, self.completed_steps)


def go_to(session: Any, step_id: str, *, force: bool = False) -> SessionProgress:
	"""Jump to a reachable step, recording the step being left as completed.

	An unreachable target leaves the progress unchanged unless ``force`` is
	set; an unknown step id always does.
	"""
	progress = SessionProgress.of(session)
	if get_step(step_id) is None or step_id == progress.current_step:
		return progress
	if not force and not can_advance_to(session, step_id):
		return progress
	return progress.with_completed(progress.current_step).moved_to(step_id)


def advance(session: Any) -> SessionProgress:
	progress = SessionProgress.of(session)
	nxt = get_next_step(progress.current_step)
	if nxt is None:
		return progress
	return progress.with_completed(progress.current_step).moved_to(nxt.id)


def retreat(session: Any) -> SessionProgress:
	progress = SessionProgress.of(session)
	prev = get_previous_step(progress.current_step)
	if prev is None:
		return progress
	return progress.with_completed(progress.current_step).moved_to(prev.id)


def mark_complete(session: Any, step_id: str) -> SessionProgress:
	progress = SessionProgress.of(session)
	if get_step(step_id) is None:
		return progress
	return progress.with_completed(step_id).moved_to(step_id)


def progress_summary(session: Any) -> Dict[str, Any]:
	current = current_step_index(session)
	return {
		"current_step": STEP_IDS[current],
		"current_step_index": current,
		"completed_steps": completed_steps(session),
		"steps": [
			{
				"id": step.id,
				"title": step.title,
				"index": index,
				"complete": is_step_complete(session, step.id),
				"reachable": can_advance_to(session, step.id),
				"current": index == current,
			}
			for index, step in enumerate(SESSION_STEPS)
		],
	}
