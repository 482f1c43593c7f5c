"""Shared fixtures: in-memory database and a scripted LLM client."""

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ibo_studio import models  # noqa: F401
from ibo_studio.db import Base, get_db
from ibo_studio.main import app
from ibo_studio.routers.ai import get_llm_client
from ibo_studio.settings import settings


class FakeLLM:
    """Returns queued replies in order and records every prompt."""

    def __init__(self) -> None:
        self.replies: List[object] = []
        self.calls: List[dict] = []

    async def generate(self, prompt: str, **kwargs) -> str:
        self.calls.append({"prompt": prompt, **kwargs})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def client(engine, fake_llm, monkeypatch):
    """TestClient wired to the in-memory database and the fake LLM."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    async def override_llm():
        yield fake_llm

    monkeypatch.setattr(settings, "enforce_step_order", True)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_client] = override_llm
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def persona(client) -> dict:
    resp = client.post(
        "/api/personas",
        json={
            "name": "Field Sales Rep",
            "description": "Mid-career B2B seller",
            "context": "Regional territory, long sales cycles",
            "experience": "5 years",
            "motivations": "Commission, recognition",
            "constraints": "Little time away from customers",
        },
    )
    assert resp.status_code == 201
    return resp.json()["data"]


@pytest.fixture
def make_session(client):
    def _make(**fields) -> dict:
        body = {"title": "Objection handling"}
        body.update(fields)
        resp = client.post("/api/sessions", json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make
