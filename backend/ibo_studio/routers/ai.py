from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..gemini_client import GeminiClient, provider_status
from ..generation import (
	IBO_SYSTEM_PROMPT,
	MODALITIES,
	SESSION_SYSTEM_PROMPT,
	GenerationError,
	build_ibo_prompt,
	build_session_prompt,
	extract_json_object,
	normalize_session_content,
)
from ..ibo_formatter import classify
from ..models import DesignSession, Persona
from ..serializers import envelope, persona_to_dict

router = APIRouter(prefix="/ai", tags=["ai"])

logger = logging.getLogger(__name__)


async def get_llm_client():
	try:
		client = GeminiClient()
	except ValueError as e:
		raise HTTPException(status_code=503, detail=str(e))
	try:
		yield client
	finally:
		await client.aclose()


class PersonaContext(BaseModel):
	name: str
	description: Optional[str] = None
	context: Optional[str] = None
	experience: Optional[str] = None
	motivations: Optional[str] = None
	constraints: Optional[str] = None


class GenerateIBOsRequest(BaseModel):
	persona_id: Optional[str] = None
	persona: Optional[PersonaContext] = None
	topic: Optional[str] = None
	business_goals: Optional[str] = None
	session_id: Optional[str] = None


class GenerateSessionRequest(GenerateIBOsRequest):
	modality: Optional[str] = None
	prompt: Optional[str] = None


class FormatRequest(BaseModel):
	text: str


def _formatted(raw: str) -> Dict[str, Any]:
	items = classify(raw)
	return {
		"raw": raw,
		"items": [item.model_dump(mode="json") for item in items],
		# No recognisable structure: show the raw text instead
		"fallback": not items,
	}


def _resolve_context(req: GenerateIBOsRequest, db: Session):
	row: Optional[DesignSession] = None
	if req.session_id:
		row = db.get(DesignSession, req.session_id)
		if not row:
			raise HTTPException(status_code=404, detail=f"Session with id {req.session_id} does not exist")
	persona_id = req.persona_id or (row.persona_id if row else None)
	topic = (req.topic or (row.topic if row else None) or "").strip()
	goals = (req.business_goals or (row.business_goals if row else None) or "").strip()
	persona: Optional[Dict[str, Any]] = None
	if req.persona is not None:
		persona = req.persona.model_dump()
	elif persona_id:
		p = db.get(Persona, persona_id)
		if not p:
			raise HTTPException(status_code=404, detail=f"Persona with id {persona_id} does not exist")
		persona = persona_to_dict(p)
	missing = [name for name, value in (("persona", persona), ("topic", topic), ("business_goals", goals)) if not value]
	if missing:
		raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")
	return row, persona, topic, goals


async def _call_llm(client: GeminiClient, prompt: str, **kwargs) -> str:
	try:
		text = await client.generate(prompt, **kwargs)
	except (httpx.HTTPError, RuntimeError) as e:
		logger.warning("LLM generation failed: %s", e)
		raise HTTPException(status_code=502, detail=f"AI provider error: {e}")
	if not isinstance(text, str) or not text.strip():
		logger.warning("LLM returned no content")
		raise HTTPException(status_code=502, detail="No content generated")
	return text


@router.post("/generate-ibos")
async def generate_ibos(
	req: GenerateIBOsRequest,
	db: Session = Depends(get_db),
	client: GeminiClient = Depends(get_llm_client),
):
	row, persona, topic, goals = _resolve_context(req, db)
	prompt = build_ibo_prompt(persona, topic, goals)
	raw = await _call_llm(client, prompt, system=IBO_SYSTEM_PROMPT, temperature=0.6, max_output_tokens=2000)
	result = _formatted(raw)
	if result["fallback"]:
		logger.warning("IBO draft had no recognisable structure (%d chars)", len(raw))
	if row is not None:
		row.generated_ibos = raw
		db.commit()
	return envelope(result, "IBO suggestions generated successfully")


@router.post("/generate-session")
async def generate_session(
	req: GenerateSessionRequest,
	db: Session = Depends(get_db),
	client: GeminiClient = Depends(get_llm_client),
):
	row, persona, topic, goals = _resolve_context(req, db)
	modality = req.modality or (row.modality if row else None)
	if modality not in MODALITIES:
		raise HTTPException(status_code=400, detail=f"modality must be one of {MODALITIES}")
	prompt = req.prompt or build_session_prompt(persona, topic, modality, goals)
	raw = await _call_llm(
		client, prompt, system=SESSION_SYSTEM_PROMPT, temperature=0.7, max_output_tokens=2000, json_mode=True
	)
	try:
		content = normalize_session_content(extract_json_object(raw), topic)
	except GenerationError as e:
		logger.warning("Unusable session draft: %s", e)
		raise HTTPException(status_code=502, detail=str(e))
	if row is not None:
		row.generated_activities = json.dumps(content)
		db.commit()
	return envelope(content, "Session content generated successfully")


@router.post("/format-ibos")
async def format_ibos(req: FormatRequest):
	return envelope(_formatted(req.text), "IBO text formatted")


@router.get("/status")
async def status():
	return envelope(provider_status(), "AI service status")
