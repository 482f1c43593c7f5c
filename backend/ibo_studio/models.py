from __future__ import annotations
import json
import uuid
from datetime import datetime
from typing import Any, List, Optional
from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, Integer, Text
from .db import Base
from .session_steps import FIRST_STEP


def _new_id() -> str:
	return uuid.uuid4().hex


class Persona(Base):
	__tablename__ = "personas"
	id = Column(String(32), primary_key=True, default=_new_id)
	name = Column(String(256), nullable=False)
	description = Column(Text, nullable=False)
	context = Column(Text, nullable=False)
	experience = Column(Text, nullable=False)
	motivations = Column(Text, nullable=False)
	constraints = Column(Text, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class IBO(Base):
	__tablename__ = "ibos"
	id = Column(String(32), primary_key=True, default=_new_id)
	title = Column(String(512), nullable=False)
	description = Column(Text, nullable=True)
	topic = Column(String(512), nullable=True)
	persona_id = Column(String(32), ForeignKey("personas.id"), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class PerformanceMetric(Base):
	__tablename__ = "performance_metrics"
	id = Column(String(32), primary_key=True, default=_new_id)
	ibo_id = Column(String(32), ForeignKey("ibos.id"), nullable=False, index=True)
	text = Column(Text, nullable=False)
	sort_order = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ObservableBehavior(Base):
	__tablename__ = "observable_behaviors"
	id = Column(String(32), primary_key=True, default=_new_id)
	pm_id = Column(String(32), ForeignKey("performance_metrics.id"), nullable=False, index=True)
	text = Column(Text, nullable=False)
	sort_order = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Card(Base):
	__tablename__ = "cards"
	id = Column(String(32), primary_key=True, default=_new_id)
	title = Column(String(512), nullable=False)
	description = Column(Text, nullable=True)
	ibo_id = Column(String(32), nullable=False)
	learning_objective_id = Column(String(32), nullable=False)
	target_duration = Column(Integer, nullable=False)  # minutes
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Activity(Base):
	__tablename__ = "activities"
	id = Column(String(32), primary_key=True, default=_new_id)
	card_id = Column(String(32), ForeignKey("cards.id"), nullable=False, index=True)
	title = Column(String(512), nullable=False)
	description = Column(Text, nullable=True)
	type = Column(String(32), nullable=False)
	duration = Column(Integer, default=0, nullable=False)
	order_index = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class DesignSession(Base):
	__tablename__ = "design_sessions"
	id = Column(String(32), primary_key=True, default=_new_id)
	title = Column(String(512), nullable=False)
	description = Column(Text, nullable=True)
	status = Column(String(16), default="not_started", nullable=False)
	started_at = Column(DateTime, nullable=True)
	completed_at = Column(DateTime, nullable=True)
	persona_id = Column(String(32), ForeignKey("personas.id"), nullable=True)
	topic = Column(Text, nullable=True)
	business_goals = Column(Text, nullable=True)
	modality = Column(String(16), nullable=True)
	current_step = Column(String(32), default=FIRST_STEP, nullable=False)
	completed_steps_json = Column("completed_steps", Text, nullable=True)  # JSON list
	generated_ibos = Column(Text, nullable=True)  # raw AI text
	generated_activities = Column(Text, nullable=True)  # JSON string snapshot
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	@property
	def completed_steps(self) -> List[str]:
		if not self.completed_steps_json:
			return []
		try:
			value = json.loads(self.completed_steps_json)
		except ValueError:
			return []
		return [str(s) for s in value] if isinstance(value, list) else []

	@completed_steps.setter
	def completed_steps(self, steps: Optional[List[str]]) -> None:
		self.completed_steps_json = json.dumps(list(steps or []))

	@property
	def generated_content(self) -> Optional[Any]:
		if not self.generated_activities:
			return None
		try:
			return json.loads(self.generated_activities)
		except ValueError:
			return None


class SessionCard(Base):
	__tablename__ = "session_cards"
	id = Column(String(32), primary_key=True, default=_new_id)
	session_id = Column(String(32), ForeignKey("design_sessions.id"), nullable=False, index=True)
	card_id = Column(String(32), ForeignKey("cards.id"), nullable=False)
	order_index = Column(Integer, default=0, nullable=False)
	is_completed = Column(Boolean, default=False, nullable=False)
	viewed_at = Column(DateTime, nullable=True)
	response_data = Column(Text, nullable=True)  # JSON string snapshot
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
