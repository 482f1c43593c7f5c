from __future__ import annotations
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .models import Activity, Card, DesignSession, IBO, ObservableBehavior, PerformanceMetric, Persona, SessionCard


def envelope(data: Any, message: str) -> Dict[str, Any]:
	return {"data": data, "message": message, "status": "ok"}


def _ts(value: Optional[datetime]) -> Optional[str]:
	return value.isoformat() if value else None


def _columns(row: Any, names: Iterable[str]) -> Dict[str, Any]:
	return {name: getattr(row, name) for name in names}


def persona_to_dict(row: Persona) -> Dict[str, Any]:
	out = _columns(row, ("id", "name", "description", "context", "experience", "motivations", "constraints"))
	out.update(created_at=_ts(row.created_at), updated_at=_ts(row.updated_at))
	return out


def ibo_to_dict(row: IBO) -> Dict[str, Any]:
	out = _columns(row, ("id", "title", "description", "topic", "persona_id"))
	out.update(created_at=_ts(row.created_at), updated_at=_ts(row.updated_at))
	return out


def metric_to_dict(row: PerformanceMetric) -> Dict[str, Any]:
	out = _columns(row, ("id", "ibo_id", "text", "sort_order"))
	out.update(created_at=_ts(row.created_at), updated_at=_ts(row.updated_at))
	return out


def behavior_to_dict(row: ObservableBehavior) -> Dict[str, Any]:
	out = _columns(row, ("id", "pm_id", "text", "sort_order"))
	out.update(created_at=_ts(row.created_at), updated_at=_ts(row.updated_at))
	return out


def activity_to_dict(row: Activity) -> Dict[str, Any]:
	return _columns(row, ("id", "card_id", "title", "description", "type", "duration", "order_index"))


def card_to_dict(row: Card, activities: List[Activity]) -> Dict[str, Any]:
	out = _columns(row, ("id", "title", "description", "ibo_id", "learning_objective_id", "target_duration"))
	out.update(
		created_at=_ts(row.created_at),
		updated_at=_ts(row.updated_at),
		activities=[activity_to_dict(a) for a in activities],
	)
	return out


def session_card_to_dict(row: SessionCard) -> Dict[str, Any]:
	out = _columns(row, ("id", "session_id", "card_id", "order_index", "is_completed"))
	out["viewed_at"] = _ts(row.viewed_at)
	out["response_data"] = json.loads(row.response_data) if row.response_data else None
	return out


def session_to_dict(row: DesignSession, session_cards: Optional[List[SessionCard]] = None) -> Dict[str, Any]:
	out = _columns(
		row,
		(
			"id", "title", "description", "status", "persona_id", "topic",
			"business_goals", "modality", "current_step", "completed_steps", "generated_ibos",
		),
	)
	out.update(
		generated_content=row.generated_content,
		started_at=_ts(row.started_at),
		completed_at=_ts(row.completed_at),
		created_at=_ts(row.created_at),
		updated_at=_ts(row.updated_at),
		session_cards=[session_card_to_dict(sc) for sc in session_cards or []],
	)
	return out
