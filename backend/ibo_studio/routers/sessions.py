from __future__ import annotations
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Card, DesignSession, SessionCard
from ..serializers import envelope, session_card_to_dict, session_to_dict
from ..session_steps import (
	SessionProgress,
	advance,
	can_advance_to,
	get_step,
	go_to,
	mark_complete,
	progress_summary,
	retreat,
)
from ..settings import settings

router = APIRouter(prefix="/sessions", tags=["sessions"])

logger = logging.getLogger(__name__)

Modality = Literal["onsite", "virtual", "hybrid"]
Status = Literal["not_started", "in_progress", "completed", "paused"]


class SessionCreate(BaseModel):
	title: str
	description: Optional[str] = None
	persona_id: Optional[str] = None
	topic: Optional[str] = None
	business_goals: Optional[str] = None
	modality: Optional[Modality] = None
	card_ids: List[str] = []


class SessionUpdate(BaseModel):
	title: Optional[str] = None
	description: Optional[str] = None
	status: Optional[Status] = None
	started_at: Optional[datetime] = None
	completed_at: Optional[datetime] = None
	persona_id: Optional[str] = None
	topic: Optional[str] = None
	business_goals: Optional[str] = None
	modality: Optional[Modality] = None
	card_ids: Optional[List[str]] = None


class SessionCardUpdate(BaseModel):
	response_data: Optional[Dict[str, Any]] = None
	is_completed: Optional[bool] = None
	viewed_at: Optional[datetime] = None


class ProgressUpdate(BaseModel):
	current_step: str
	completed_steps: Optional[List[str]] = None


class StepRequest(BaseModel):
	step_id: str


def _get_session_or_404(db: Session, session_id: str) -> DesignSession:
	row = db.get(DesignSession, session_id)
	if not row:
		raise HTTPException(status_code=404, detail=f"Session with id {session_id} does not exist")
	return row


def _session_cards(db: Session, session_id: str) -> List[SessionCard]:
	return (
		db.query(SessionCard)
		.filter(SessionCard.session_id == session_id)
		.order_by(SessionCard.order_index)
		.all()
	)


def _replace_session_cards(db: Session, session_id: str, card_ids: List[str]) -> None:
	db.execute(delete(SessionCard).where(SessionCard.session_id == session_id))
	known = {c.id for c in db.query(Card.id).filter(Card.id.in_(card_ids))} if card_ids else set()
	for index, card_id in enumerate(card_ids):
		if card_id not in known:
			logger.warning("Skipping unknown card %s for session %s", card_id, session_id)
			continue
		db.add(SessionCard(session_id=session_id, card_id=card_id, order_index=index, is_completed=False))


def _require_known_step(step_id: str) -> None:
	if get_step(step_id) is None:
		raise HTTPException(status_code=400, detail=f"Unknown step: {step_id}")


def _guard(row: DesignSession, step_id: str) -> None:
	if settings.enforce_step_order and not can_advance_to(row, step_id):
		logger.warning("Rejected move of session %s from %s to %s", row.id, row.current_step, step_id)
		raise HTTPException(status_code=409, detail=f"Step {step_id} is not reachable from {row.current_step}")


def _apply_progress(db: Session, row: DesignSession, progress: SessionProgress) -> Dict[str, Any]:
	if progress == SessionProgress.of(row):
		return _with_progress(db, row)
	row.current_step = progress.current_step
	row.completed_steps = list(progress.completed_steps)
	if row.status == "not_started":
		row.status = "in_progress"
		row.started_at = row.started_at or datetime.utcnow()
	db.commit()
	db.refresh(row)
	return _with_progress(db, row)


def _with_progress(db: Session, row: DesignSession) -> Dict[str, Any]:
	data = session_to_dict(row, _session_cards(db, row.id))
	data["progress"] = progress_summary(row)
	return data


@router.get("")
async def list_sessions(db: Session = Depends(get_db)):
	rows = db.query(DesignSession).order_by(DesignSession.created_at.desc()).all()
	return envelope([session_to_dict(r, _session_cards(db, r.id)) for r in rows], "Sessions retrieved successfully")


@router.get("/{session_id}")
async def get_session(session_id: str, db: Session = Depends(get_db)):
	row = _get_session_or_404(db, session_id)
	return envelope(_with_progress(db, row), "Session retrieved successfully")


@router.post("", status_code=201)
async def create_session(req: SessionCreate, db: Session = Depends(get_db)):
	title = (req.title or "").strip()
	if not title:
		raise HTTPException(status_code=400, detail="title is required")
	row = DesignSession(
		title=title,
		description=req.description,
		persona_id=req.persona_id,
		topic=req.topic,
		business_goals=req.business_goals,
		modality=req.modality,
		status="not_started",
	)
	row.completed_steps = []
	db.add(row)
	db.flush()
	_replace_session_cards(db, row.id, req.card_ids)
	db.commit()
	db.refresh(row)
	return envelope(_with_progress(db, row), "Session created successfully")


@router.put("/{session_id}")
async def update_session(session_id: str, req: SessionUpdate, db: Session = Depends(get_db)):
	row = _get_session_or_404(db, session_id)
	changes = req.model_dump(exclude_unset=True, exclude={"card_ids"})
	if "title" in changes and not (changes["title"] or "").strip():
		raise HTTPException(status_code=400, detail="title cannot be empty")
	for key, value in changes.items():
		setattr(row, key, value)
	if req.card_ids is not None:
		_replace_session_cards(db, session_id, req.card_ids)
	db.commit()
	db.refresh(row)
	return envelope(_with_progress(db, row), "Session updated successfully")


@router.delete("/{session_id}")
async def delete_session(session_id: str, db: Session = Depends(get_db)):
	row = _get_session_or_404(db, session_id)
	db.execute(delete(SessionCard).where(SessionCard.session_id == session_id))
	db.delete(row)
	db.commit()
	return envelope({"id": session_id}, "Session deleted successfully")


@router.put("/{session_id}/cards/{card_id}")
async def update_session_card(session_id: str, card_id: str, req: SessionCardUpdate, db: Session = Depends(get_db)):
	row = (
		db.query(SessionCard)
		.filter(SessionCard.session_id == session_id, SessionCard.card_id == card_id)
		.first()
	)
	if not row:
		raise HTTPException(status_code=404, detail="Session card not found")
	if req.response_data is not None:
		row.response_data = json.dumps(req.response_data)
	if req.is_completed is not None:
		row.is_completed = req.is_completed
	row.viewed_at = req.viewed_at or datetime.utcnow()
	db.commit()
	db.refresh(row)
	return envelope(session_card_to_dict(row), "Session card updated successfully")


# ---- Step progress ----

@router.get("/{session_id}/progress")
async def get_progress(session_id: str, db: Session = Depends(get_db)):
	row = _get_session_or_404(db, session_id)
	return envelope(progress_summary(row), "Progress retrieved successfully")


@router.put("/{session_id}/progress")
async def update_progress(session_id: str, req: ProgressUpdate, db: Session = Depends(get_db)):
	row = _get_session_or_404(db, session_id)
	_require_known_step(req.current_step)
	_guard(row, req.current_step)
	if req.completed_steps is not None:
		for step_id in req.completed_steps:
			_require_known_step(step_id)
		progress = SessionProgress(req.current_step, tuple(dict.fromkeys(req.completed_steps)))
	else:
		progress = go_to(row, req.current_step, force=not settings.enforce_step_order)
	return envelope(_apply_progress(db, row, progress), "Progress updated successfully")


@router.post("/{session_id}/progress/advance")
async def advance_progress(session_id: str, db: Session = Depends(get_db)):
	row = _get_session_or_404(db, session_id)
	return envelope(_apply_progress(db, row, advance(row)), "Progress updated successfully")


@router.post("/{session_id}/progress/retreat")
async def retreat_progress(session_id: str, db: Session = Depends(get_db)):
	row = _get_session_or_404(db, session_id)
	return envelope(_apply_progress(db, row, retreat(row)), "Progress updated successfully")


@router.post("/{session_id}/progress/complete")
async def complete_step(session_id: str, req: StepRequest, db: Session = Depends(get_db)):
	row = _get_session_or_404(db, session_id)
	_require_known_step(req.step_id)
	_guard(row, req.step_id)
	return envelope(_apply_progress(db, row, mark_complete(row, req.step_id)), "Step marked complete")
