from __future__ import annotations
import logging
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url or "sqlite:///./iprep_coach.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


# Lightweight migrations for databases created before a column existed (SQLite-friendly)
def ensure_schema(bind: Engine = engine) -> None:
	try:
		inspector = inspect(bind)
		tables = set(inspector.get_table_names())
	except SQLAlchemyError as err:
		logger.warning("schema inspection failed: %s", err)
		return
	if "user_learning_insights" in tables:
		cols = {c["name"] for c in inspector.get_columns("user_learning_insights")}
		if "top_forgotten_points" not in cols:
			with bind.begin() as conn:
				conn.exec_driver_sql("ALTER TABLE user_learning_insights ADD COLUMN top_forgotten_points TEXT")
			logger.info("added user_learning_insights.top_forgotten_points")
