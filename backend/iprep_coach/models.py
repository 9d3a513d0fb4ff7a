from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Float, Integer, Text
from .db import Base


class PracticeSession(Base):
	__tablename__ = "practice_sessions"
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(128), index=True, nullable=False)
	is_completed = Column(Boolean, default=False, nullable=False)
	completed_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SessionItemRecord(Base):
	__tablename__ = "session_items"
	id = Column(Integer, primary_key=True, autoincrement=True)
	session_id = Column(String(64), index=True, nullable=False)
	user_id = Column(String(128), index=True, nullable=False)
	question_id = Column(String(128), nullable=False)
	question_tags_json = Column(Text, nullable=True)
	transcript = Column(Text, nullable=True)
	metrics_json = Column(Text, nullable=True)
	# AnalysisResult snapshot (camelCase JSON as returned by the model)
	analysis_json = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LearningSummary(Base):
	__tablename__ = "learning_summaries"
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(128), index=True, nullable=False)
	common_mistakes_json = Column(Text, nullable=True)
	forgotten_points_json = Column(Text, nullable=True)
	misused_terms_json = Column(Text, nullable=True)
	weak_tags_json = Column(Text, nullable=True)
	strong_tags_json = Column(Text, nullable=True)
	recommended_focus_json = Column(Text, nullable=True)
	performance_by_tag_json = Column(Text, nullable=True)
	overall_score = Column(Float, default=0.0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class QuizAttemptRecord(Base):
	__tablename__ = "quiz_attempts"
	id = Column(Integer, primary_key=True, autoincrement=True)
	quiz_id = Column(String(64), index=True, nullable=False)
	user_id = Column(String(128), index=True, nullable=False)
	question_id = Column(String(128), nullable=False)
	question_tags_json = Column(Text, nullable=True)
	score = Column(Float, nullable=True)  # 0-100
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LearningInsight(Base):
	__tablename__ = "user_learning_insights"
	# Single row per user; fully replaced on every aggregation
	user_id = Column(String(128), primary_key=True)
	aggregated_weak_tags_json = Column(Text, nullable=True)
	aggregated_strong_tags_json = Column(Text, nullable=True)
	top_focus_areas_json = Column(Text, nullable=True)
	top_forgotten_points = Column(Text, nullable=True)
	total_sessions = Column(Integer, default=0, nullable=False)
	total_questions = Column(Integer, default=0, nullable=False)
	last_updated = Column(DateTime, default=datetime.utcnow, nullable=False)
