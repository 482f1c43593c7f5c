from __future__ import annotations
import json
import re
from typing import Any, Dict, List, Mapping, Optional


FOUR_C_TYPES: List[str] = ["connection", "concept", "concrete_practice", "conclusion"]
MODALITIES: List[str] = ["onsite", "virtual", "hybrid"]
DEFAULT_ACTIVITY_MINUTES = 15

IBO_SYSTEM_PROMPT = (
	"You are an expert in defining business outcomes for learning initiatives. "
	"Create specific, measurable Intended Business Outcomes."
)
SESSION_SYSTEM_PROMPT = (
	"You are an expert learning experience designer who creates educational content tailored to "
	"specific personas and delivery modalities. Always respond with valid JSON that matches the requested structure."
)


class GenerationError(ValueError):
	"""Model output could not be turned into the requested structure."""


def _persona_block(persona: Mapping[str, Any]) -> str:
	lines = [f"PERSONA: {persona.get('name') or 'Unnamed'}"]
	for key, label in (
		("description", "Description"),
		("context", "Context"),
		("experience", "Experience Level"),
		("motivations", "Motivations"),
		("constraints", "Constraints"),
	):
		value = persona.get(key)
		if value:
			lines.append(f"{label}: {value}")
	return "\n".join(lines)


def build_ibo_prompt(persona: Mapping[str, Any], topic: str, business_goals: str) -> str:
	return (
		"Draft 2-3 Intended Business Outcomes for this scenario.\n\n"
		f"{_persona_block(persona)}\n"
		f"Topic: {topic}\n"
		f"Business Goals: {business_goals}\n\n"
		"Use this markdown layout for each outcome:\n"
		"# Business Objective N: <title>\n"
		"## WIIFM: <what the learner gains>\n"
		"### Performance Metric: <measurable target, with a percentage where possible>\n"
		"- **Observable Behavior**: <what a manager would see>\n"
		"- **Learning Objective**: <what the learner must understand or apply>\n"
		"Repeat metrics, behaviors and objectives as needed. No other commentary."
	)


def build_session_prompt(persona: Mapping[str, Any], topic: str, modality: str, business_goals: str) -> str:
	return (
		f"Design a {modality} learning session for this persona:\n\n"
		f"{_persona_block(persona)}\n\n"
		f"SESSION FOCUS: {topic}\n"
		f"Business Goals: {business_goals}\n"
		f"Delivery: {modality}\n\n"
		"Produce 2-3 IBOs for this persona and topic, and a 4C activity sequence "
		f"(connection, concept, concrete_practice, conclusion) suited to {modality} delivery, "
		"plus a short rationale.\n"
		"Return ONLY a JSON object with keys: ibos (array of {title, description, topic}), "
		"activities (array of {title, description, type, estimated_duration, materials, considerations}), "
		"rationale (string)."
	)


def extract_json_object(text: str) -> Any:
	"""Pull the first JSON value out of model output.

	Tries the raw text, then a fenced ```json block, then the outermost
	``{...}`` span.

	Raises:
		GenerationError: If no candidate parses.
	"""
	if not isinstance(text, str) or not text.strip():
		raise GenerationError("No content generated")
	try:
		return json.loads(text)
	except Exception:
		pass
	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
	if code_block:
		try:
			return json.loads(code_block.group(1))
		except Exception:
			pass
	first = text.find("{")
	last = text.rfind("}")
	if first != -1 and last != -1 and last > first:
		try:
			return json.loads(text[first : last + 1])
		except Exception:
			pass
	raise GenerationError("LLM did not return valid JSON.")


def _string_list(value: Any) -> List[str]:
	if not isinstance(value, list):
		return []
	return [str(v) for v in value]


def normalize_activity(activity: Mapping[str, Any], index: int) -> Dict[str, Any]:
	kind = activity.get("type")
	if kind not in FOUR_C_TYPES:
		kind = FOUR_C_TYPES[index % len(FOUR_C_TYPES)]
	duration = activity.get("estimated_duration")
	if isinstance(duration, bool) or not isinstance(duration, (int, float)):
		duration = DEFAULT_ACTIVITY_MINUTES
	return {
		"title": activity.get("title") or f"Generated Activity {index + 1}",
		"description": activity.get("description") or "AI-generated learning activity",
		"type": kind,
		"estimated_duration": duration,
		"materials": _string_list(activity.get("materials")),
		"considerations": _string_list(activity.get("considerations")),
	}


def normalize_session_content(data: Any, topic: Optional[str]) -> Dict[str, Any]:
	if not isinstance(data, dict):
		raise GenerationError("Invalid response structure from AI")
	ibos = data.get("ibos")
	activities = data.get("activities")
	rationale = data.get("rationale")
	if not isinstance(ibos, list) or not isinstance(activities, list) or not rationale:
		raise GenerationError("Invalid response structure from AI")
	activity_dicts = [a for a in activities if isinstance(a, dict)]
	return {
		"ibos": [
			{
				"title": ibo.get("title") or "Generated IBO",
				"description": ibo.get("description") or "AI-generated intended business outcome",
				"topic": ibo.get("topic") or topic,
			}
			for ibo in ibos
			if isinstance(ibo, dict)
		],
		"activities": [normalize_activity(a, i) for i, a in enumerate(activity_dicts)],
		"rationale": str(rationale),
	}
