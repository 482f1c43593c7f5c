from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./ibo_studio.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Columns added to design_sessions after the first release
_SESSION_COLUMNS = {
	"persona_id": "VARCHAR(32)",
	"topic": "TEXT",
	"business_goals": "TEXT",
	"modality": "VARCHAR(16)",
	"current_step": "VARCHAR(32) DEFAULT 'persona' NOT NULL",
	"completed_steps": "TEXT",
	"generated_ibos": "TEXT",
	"generated_activities": "TEXT",
}


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema(bind=None) -> None:
	bind = bind or engine
	try:
		inspector = inspect(bind)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	if "design_sessions" in tables:
		cols = {c["name"] for c in inspector.get_columns("design_sessions")}
		with bind.begin() as conn:
			for name, ddl in _SESSION_COLUMNS.items():
				if name not in cols:
					conn.exec_driver_sql(f"ALTER TABLE design_sessions ADD COLUMN {name} {ddl}")
