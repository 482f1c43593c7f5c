from __future__ import annotations
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..exporting import (
	EXPORT_FORMATS,
	EmptyExportError,
	ExportError,
	export_filename,
	generate_csv,
	generate_json,
	validate_export_data,
)
from ..models import Activity, Card, DesignSession, IBO, Persona, SessionCard
from ..serializers import card_to_dict, ibo_to_dict, persona_to_dict, session_to_dict

router = APIRouter(prefix="/export", tags=["export"])

logger = logging.getLogger(__name__)


def _personas(db: Session) -> List[Dict[str, Any]]:
	return [persona_to_dict(r) for r in db.query(Persona).order_by(Persona.created_at).all()]


def _ibos(db: Session) -> List[Dict[str, Any]]:
	return [ibo_to_dict(r) for r in db.query(IBO).order_by(IBO.created_at).all()]


def _cards(db: Session) -> List[Dict[str, Any]]:
	out = []
	for row in db.query(Card).order_by(Card.created_at).all():
		activities = db.query(Activity).filter(Activity.card_id == row.id).order_by(Activity.order_index).all()
		out.append(card_to_dict(row, activities))
	return out


def _sessions(db: Session) -> List[Dict[str, Any]]:
	out = []
	for row in db.query(DesignSession).order_by(DesignSession.created_at).all():
		cards = (
			db.query(SessionCard)
			.filter(SessionCard.session_id == row.id)
			.order_by(SessionCard.order_index)
			.all()
		)
		out.append(session_to_dict(row, cards))
	return out


# URL segment -> (label, loader)
RESOURCES: Dict[str, tuple] = {
	"personas": ("Personas", _personas),
	"ibos": ("IBOs", _ibos),
	"cards": ("Cards", _cards),
	"sessions": ("Sessions", _sessions),
}


@router.get("/{resource}")
async def export_resource(resource: str, format: str = "json", db: Session = Depends(get_db)):
	if resource not in RESOURCES:
		raise HTTPException(status_code=404, detail=f"Unknown export type: {resource}")
	fmt = format.lower()
	if fmt not in EXPORT_FORMATS:
		raise HTTPException(status_code=400, detail=f"format must be one of {list(EXPORT_FORMATS)}")
	label, load = RESOURCES[resource]
	records = load(db)
	try:
		validate_export_data(records, label)
	except EmptyExportError as e:
		raise HTTPException(status_code=404, detail=str(e))
	except ExportError as e:
		logger.warning("Refusing %s export: %s", label, e)
		raise HTTPException(status_code=400, detail=str(e))
	if fmt == "csv":
		content, media_type = generate_csv(records), "text/csv"
	else:
		content, media_type = generate_json(records, label), "application/json"
	filename = export_filename(label, fmt)
	return Response(
		content=content,
		media_type=media_type,
		headers={"Content-Disposition": f'attachment; filename="{filename}"'},
	)
