from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import IBO, ObservableBehavior, PerformanceMetric
from ..serializers import behavior_to_dict, envelope, ibo_to_dict, metric_to_dict

router = APIRouter(tags=["ibos"])


class IBOCreate(BaseModel):
	title: str
	description: Optional[str] = None
	topic: Optional[str] = None
	persona_id: Optional[str] = None


class IBOUpdate(BaseModel):
	title: Optional[str] = None
	description: Optional[str] = None
	topic: Optional[str] = None
	persona_id: Optional[str] = None


class ItemCreate(BaseModel):
	text: str
	sort_order: int = 0


class ItemUpdate(BaseModel):
	text: Optional[str] = None
	sort_order: Optional[int] = None


def _get_or_404(db: Session, model, item_id: str, label: str):
	row = db.get(model, item_id)
	if not row:
		raise HTTPException(status_code=404, detail=f"{label} with id {item_id} does not exist")
	return row


def _require_text(text: Optional[str]) -> str:
	value = (text or "").strip()
	if not value:
		raise HTTPException(status_code=400, detail="text is required")
	return value


def _delete_metrics(db: Session, metric_ids) -> None:
	metric_ids = list(metric_ids)
	if not metric_ids:
		return
	db.execute(delete(ObservableBehavior).where(ObservableBehavior.pm_id.in_(metric_ids)))
	db.execute(delete(PerformanceMetric).where(PerformanceMetric.id.in_(metric_ids)))


# ---- IBOs ----

@router.get("/ibos")
async def list_ibos(db: Session = Depends(get_db)):
	rows = db.query(IBO).order_by(IBO.created_at.desc()).all()
	return envelope([ibo_to_dict(r) for r in rows], "IBOs retrieved successfully")


@router.get("/ibos/{ibo_id}")
async def get_ibo(ibo_id: str, db: Session = Depends(get_db)):
	return envelope(ibo_to_dict(_get_or_404(db, IBO, ibo_id, "IBO")), "IBO retrieved successfully")


@router.get("/ibos/{ibo_id}/tree")
async def get_ibo_tree(ibo_id: str, db: Session = Depends(get_db)):
	ibo = _get_or_404(db, IBO, ibo_id, "IBO")
	metrics = (
		db.query(PerformanceMetric)
		.filter(PerformanceMetric.ibo_id == ibo_id)
		.order_by(PerformanceMetric.sort_order, PerformanceMetric.created_at)
		.all()
	)
	behaviors = (
		db.query(ObservableBehavior)
		.filter(ObservableBehavior.pm_id.in_([m.id for m in metrics]))
		.order_by(ObservableBehavior.sort_order, ObservableBehavior.created_at)
		.all()
	) if metrics else []
	tree = ibo_to_dict(ibo)
	tree["performance_metrics"] = [
		{**metric_to_dict(m), "observable_behaviors": [behavior_to_dict(b) for b in behaviors if b.pm_id == m.id]}
		for m in metrics
	]
	return envelope(tree, "IBO retrieved successfully")


@router.post("/ibos", status_code=201)
async def create_ibo(req: IBOCreate, db: Session = Depends(get_db)):
	title = (req.title or "").strip()
	if not title:
		raise HTTPException(status_code=400, detail="Title is required")
	row = IBO(title=title, description=req.description, topic=req.topic, persona_id=req.persona_id)
	db.add(row)
	db.commit()
	db.refresh(row)
	return envelope(ibo_to_dict(row), "IBO created successfully")


@router.put("/ibos/{ibo_id}")
async def update_ibo(ibo_id: str, req: IBOUpdate, db: Session = Depends(get_db)):
	row = _get_or_404(db, IBO, ibo_id, "IBO")
	changes = req.model_dump(exclude_unset=True)
	if "title" in changes and not (changes["title"] or "").strip():
		raise HTTPException(status_code=400, detail="Title cannot be empty")
	for key, value in changes.items():
		setattr(row, key, value)
	db.commit()
	db.refresh(row)
	return envelope(ibo_to_dict(row), "IBO updated successfully")


@router.delete("/ibos/{ibo_id}")
async def delete_ibo(ibo_id: str, db: Session = Depends(get_db)):
	row = _get_or_404(db, IBO, ibo_id, "IBO")
	metric_ids = [m.id for m in db.query(PerformanceMetric.id).filter(PerformanceMetric.ibo_id == ibo_id)]
	_delete_metrics(db, metric_ids)
	db.delete(row)
	db.commit()
	return envelope({"id": ibo_id}, "IBO deleted successfully")


# ---- Performance metrics ----

@router.get("/ibos/{ibo_id}/metrics")
async def list_metrics(ibo_id: str, db: Session = Depends(get_db)):
	_get_or_404(db, IBO, ibo_id, "IBO")
	rows = (
		db.query(PerformanceMetric)
		.filter(PerformanceMetric.ibo_id == ibo_id)
		.order_by(PerformanceMetric.sort_order)
		.all()
	)
	return envelope([metric_to_dict(r) for r in rows], "Performance metrics retrieved successfully")


@router.post("/ibos/{ibo_id}/metrics", status_code=201)
async def create_metric(ibo_id: str, req: ItemCreate, db: Session = Depends(get_db)):
	_get_or_404(db, IBO, ibo_id, "IBO")
	row = PerformanceMetric(ibo_id=ibo_id, text=_require_text(req.text), sort_order=req.sort_order or 0)
	db.add(row)
	db.commit()
	db.refresh(row)
	return envelope(metric_to_dict(row), "Performance metric created successfully")


@router.put("/metrics/{metric_id}")
async def update_metric(metric_id: str, req: ItemUpdate, db: Session = Depends(get_db)):
	row = _get_or_404(db, PerformanceMetric, metric_id, "Performance metric")
	if req.text is not None:
		row.text = _require_text(req.text)
	if req.sort_order is not None:
		row.sort_order = req.sort_order
	db.commit()
	db.refresh(row)
	return envelope(metric_to_dict(row), "Performance metric updated successfully")


@router.delete("/metrics/{metric_id}")
async def delete_metric(metric_id: str, db: Session = Depends(get_db)):
	_get_or_404(db, PerformanceMetric, metric_id, "Performance metric")
	_delete_metrics(db, [metric_id])
	db.commit()
	return envelope({"id": metric_id}, "Performance metric deleted successfully")


# ---- Observable behaviors ----

@router.get("/metrics/{metric_id}/behaviors")
async def list_behaviors(metric_id: str, db: Session = Depends(get_db)):
	_get_or_404(db, PerformanceMetric, metric_id, "Performance metric")
	rows = (
		db.query(ObservableBehavior)
		.filter(ObservableBehavior.pm_id == metric_id)
		.order_by(ObservableBehavior.sort_order)
		.all()
	)
	return envelope([behavior_to_dict(r) for r in rows], "Observable behaviors retrieved successfully")


@router.post("/metrics/{metric_id}/behaviors", status_code=201)
async def create_behavior(metric_id: str, req: ItemCreate, db: Session = Depends(get_db)):
	_get_or_404(db, PerformanceMetric, metric_id, "Performance metric")
	row = ObservableBehavior(pm_id=metric_id, text=_require_text(req.text), sort_order=req.sort_order or 0)
	db.add(row)
	db.commit()
	db.refresh(row)
	return envelope(behavior_to_dict(row), "Observable behavior created successfully")


@router.put("/behaviors/{behavior_id}")
async def update_behavior(behavior_id: str, req: ItemUpdate, db: Session = Depends(get_db)):
	row = _get_or_404(db, ObservableBehavior, behavior_id, "Observable behavior")
	if req.text is not None:
		row.text = _require_text(req.text)
	if req.sort_order is not None:
		row.sort_order = req.sort_order
	db.commit()
	db.refresh(row)
	return envelope(behavior_to_dict(row), "Observable behavior updated successfully")


@router.delete("/behaviors/{behavior_id}")
async def delete_behavior(behavior_id: str, db: Session = Depends(get_db)):
	row = _get_or_404(db, ObservableBehavior, behavior_id, "Observable behavior")
	db.delete(row)
	db.commit()
	return envelope({"id": behavior_id}, "Observable behavior deleted successfully")
