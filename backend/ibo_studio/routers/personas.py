from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Persona
from ..serializers import envelope, persona_to_dict

router = APIRouter(prefix="/personas", tags=["personas"])

PERSONA_FIELDS = ("name", "description", "context", "experience", "motivations", "constraints")


class PersonaCreate(BaseModel):
	name: str
	description: str
	context: str
	experience: str
	motivations: str
	constraints: str


class PersonaUpdate(BaseModel):
	name: Optional[str] = None
	description: Optional[str] = None
	context: Optional[str] = None
	experience: Optional[str] = None
	motivations: Optional[str] = None
	constraints: Optional[str] = None


def get_persona_or_404(db: Session, persona_id: str) -> Persona:
	row = db.get(Persona, persona_id)
	if not row:
		raise HTTPException(status_code=404, detail=f"Persona with id {persona_id} does not exist")
	return row


@router.get("")
async def list_personas(db: Session = Depends(get_db)):
	rows = db.query(Persona).order_by(Persona.created_at.desc()).all()
	return envelope([persona_to_dict(r) for r in rows], "Personas retrieved successfully")


@router.get("/{persona_id}")
async def get_persona(persona_id: str, db: Session = Depends(get_db)):
	return envelope(persona_to_dict(get_persona_or_404(db, persona_id)), "Persona retrieved successfully")


@router.post("", status_code=201)
async def create_persona(req: PersonaCreate, db: Session = Depends(get_db)):
	values = {k: (getattr(req, k) or "").strip() for k in PERSONA_FIELDS}
	missing = [k for k, v in values.items() if not v]
	if missing:
		raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")
	row = Persona(**values)
	db.add(row)
	db.commit()
	db.refresh(row)
	return envelope(persona_to_dict(row), "Persona created successfully")


@router.put("/{persona_id}")
async def update_persona(persona_id: str, req: PersonaUpdate, db: Session = Depends(get_db)):
	row = get_persona_or_404(db, persona_id)
	for key, value in req.model_dump(exclude_unset=True).items():
		if value is not None:
			setattr(row, key, value)
	db.commit()
	db.refresh(row)
	return envelope(persona_to_dict(row), "Persona updated successfully")


@router.delete("/{persona_id}")
async def delete_persona(persona_id: str, db: Session = Depends(get_db)):
	row = get_persona_or_404(db, persona_id)
	db.delete(row)
	db.commit()
	return envelope({"id": persona_id}, "Persona deleted successfully")
