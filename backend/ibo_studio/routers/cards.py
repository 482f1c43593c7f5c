from __future__ import annotations
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Activity, Card
from ..serializers import card_to_dict, envelope

router = APIRouter(prefix="/cards", tags=["cards"])

ActivityType = Literal["connection", "concept", "concrete_practice", "conclusion"]


class ActivityIn(BaseModel):
	title: str
	description: Optional[str] = None
	type: ActivityType
	duration: int = Field(default=0, ge=0, description="Minutes")


class CardCreate(BaseModel):
	title: str
	description: Optional[str] = None
	ibo_id: str
	learning_objective_id: str
	target_duration: int = Field(gt=0, description="Minutes")
	activities: List[ActivityIn] = Field(default_factory=list)


class CardUpdate(BaseModel):
	title: Optional[str] = None
	description: Optional[str] = None
	ibo_id: Optional[str] = None
	learning_objective_id: Optional[str] = None
	target_duration: Optional[int] = Field(default=None, gt=0)
	# When present, replaces the card's activities
	activities: Optional[List[ActivityIn]] = None


def _activities(db: Session, card_id: str) -> List[Activity]:
	return db.query(Activity).filter(Activity.card_id == card_id).order_by(Activity.order_index).all()


def _replace_activities(db: Session, card_id: str, activities: List[ActivityIn]) -> None:
	db.execute(delete(Activity).where(Activity.card_id == card_id))
	for index, activity in enumerate(activities):
		db.add(Activity(
			card_id=card_id,
			title=activity.title,
			description=activity.description,
			type=activity.type,
			duration=activity.duration,
			order_index=index,
		))


def _get_card_or_404(db: Session, card_id: str) -> Card:
	row = db.get(Card, card_id)
	if not row:
		raise HTTPException(status_code=404, detail=f"Card with id {card_id} does not exist")
	return row


@router.get("")
async def list_cards(db: Session = Depends(get_db)):
	rows = db.query(Card).order_by(Card.created_at.desc()).all()
	return envelope([card_to_dict(r, _activities(db, r.id)) for r in rows], "Cards retrieved successfully")


@router.get("/{card_id}")
async def get_card(card_id: str, db: Session = Depends(get_db)):
	row = _get_card_or_404(db, card_id)
	return envelope(card_to_dict(row, _activities(db, card_id)), "Card retrieved successfully")


@router.post("", status_code=201)
async def create_card(req: CardCreate, db: Session = Depends(get_db)):
	title = (req.title or "").strip()
	if not title or not req.ibo_id or not req.learning_objective_id:
		raise HTTPException(
			status_code=400,
			detail="title, ibo_id, learning_objective_id, and target_duration are required",
		)
	row = Card(
		title=title,
		description=req.description,
		ibo_id=req.ibo_id,
		learning_objective_id=req.learning_objective_id,
		target_duration=req.target_duration,
	)
	db.add(row)
	db.flush()
	_replace_activities(db, row.id, req.activities)
	db.commit()
	db.refresh(row)
	return envelope(card_to_dict(row, _activities(db, row.id)), "Card created successfully")


@router.put("/{card_id}")
async def update_card(card_id: str, req: CardUpdate, db: Session = Depends(get_db)):
	row = _get_card_or_404(db, card_id)
	changes = req.model_dump(exclude_unset=True, exclude={"activities"})
	for key, value in changes.items():
		if value is not None:
			setattr(row, key, value)
	if req.activities is not None:
		_replace_activities(db, card_id, req.activities)
	db.commit()
	db.refresh(row)
	return envelope(card_to_dict(row, _activities(db, card_id)), "Card updated successfully")


@router.delete("/{card_id}")
async def delete_card(card_id: str, db: Session = Depends(get_db)):
	row = _get_card_or_404(db, card_id)
	db.execute(delete(Activity).where(Activity.card_id == card_id))
	db.delete(row)
	db.commit()
	return envelope({"id": card_id}, "Card deleted successfully")
