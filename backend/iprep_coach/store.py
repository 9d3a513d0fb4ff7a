"""
Persistence collaborator for sessions, quiz attempts, summaries and learning insights.

JSON-valued fields are stored as text. Reads never fail on a malformed JSON field: the
field comes back empty and a warning is logged.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Type

from pydantic import BaseModel, ValidationError
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db import SessionLocal
from .errors import NotFoundError, StorageSchemaError
from .models import LearningInsight, LearningSummary, PracticeSession, QuizAttemptRecord, SessionItemRecord
from .schemas import (
	AnalysisResult,
	CommonMistake,
	CompletedSession,
	ForgottenPoint,
	Metrics,
	QuizAttempt,
	QuizRecord,
	SessionItem,
	SessionSummary,
	TagPerformance,
	TerminologyCorrection,
	TopForgottenPoint,
	UserLearningInsight,
)

logger = logging.getLogger(__name__)

FORGOTTEN_POINTS_FIELD = "top_forgotten_points"


def _dumps(value: Any) -> str:
	return json.dumps(value, ensure_ascii=False)


def _loads(text: Optional[str], default: Any, *, field: str) -> Any:
	if not text:
		return default
	try:
		value = json.loads(text)
	except ValueError:
		logger.warning("malformed JSON in %s; reading it as empty", field)
		return default
	if default is not None and not isinstance(value, type(default)):
		logger.warning("unexpected %s in %s; reading it as empty", type(value).__name__, field)
		return default
	return value


def _load_models(text: Optional[str], model: Type[BaseModel], *, field: str) -> List[Any]:
	raw = _loads(text, [], field=field)
	try:
		return [model.model_validate(v) for v in raw]
	except ValidationError:
		logger.warning("invalid %s entries in %s; reading it as empty", model.__name__, field)
		return []


class LearningStore(ABC):
	"""Interface the analytics layer reads from and writes to."""

	@abstractmethod
	def load_session_items(self, session_id: str, user_id: Optional[str] = None) -> List[SessionItem]:
		raise NotImplementedError

	@abstractmethod
	def save_session_item(
		self,
		user_id: str,
		session_id: str,
		question_id: str,
		question_tags: Sequence[str],
		result: AnalysisResult,
		*,
		transcript: Optional[str] = None,
		metrics: Optional[Metrics] = None,
	) -> None:
		raise NotImplementedError

	@abstractmethod
	def save_session_summary(self, session_id: str, user_id: str, summary: SessionSummary) -> None:
		raise NotImplementedError

	@abstractmethod
	def mark_session_completed(self, session_id: str) -> None:
		raise NotImplementedError

	@abstractmethod
	def load_completed_sessions(self, user_id: str) -> List[CompletedSession]:
		raise NotImplementedError

	@abstractmethod
	def save_quiz_attempt(self, user_id: str, quiz_id: str, attempt: QuizAttempt) -> None:
		raise NotImplementedError

	@abstractmethod
	def load_quizzes(self, user_id: str) -> List[QuizRecord]:
		raise NotImplementedError

	@abstractmethod
	def sessions_missing_summary(self, user_id: str) -> List[str]:
		raise NotImplementedError

	@abstractmethod
	def upsert_insight(self, insight: UserLearningInsight, include_forgotten_points: bool = True) -> None:
		raise NotImplementedError

	@abstractmethod
	def load_insight(self, user_id: str) -> Optional[UserLearningInsight]:
		raise NotImplementedError


class SqlLearningStore(LearningStore):
	def __init__(self, db: Session) -> None:
		self.db = db

	# ---- sessions -------------------------------------------------------

	def _get_session(self, session_id: str, user_id: Optional[str] = None) -> PracticeSession:
		row = self.db.get(PracticeSession, session_id)
		if row is None or (user_id is not None and row.user_id != user_id):
			raise NotFoundError("Session", session_id)
		return row

	def load_session_items(self, session_id, user_id=None):
		self._get_session(session_id, user_id)
		rows = (
			self.db.query(SessionItemRecord)
			.filter(SessionItemRecord.session_id == session_id)
			.order_by(SessionItemRecord.id)
			.all()
		)
		items: List[SessionItem] = []
		for row in rows:
			analysis = _loads(row.analysis_json, {}, field="session_items.analysis_json")
			metrics = _loads(row.metrics_json, {}, field="session_items.metrics_json")
			items.append(
				SessionItem(
					question_id=row.question_id,
					question_tags=_loads(row.question_tags_json, [], field="session_items.question_tags_json"),
					transcript=row.transcript,
					metrics=Metrics.model_validate(metrics) if metrics else None,
					question_answered=analysis.get("questionAnswered"),
					star_score=analysis.get("starScore"),
					impact_score=analysis.get("impactScore"),
					clarity_score=analysis.get("clarityScore"),
					technical_accuracy=analysis.get("technicalAccuracy"),
					terminology_usage=analysis.get("terminologyUsage"),
					better_wording=analysis.get("betterWording") or [],
					dont_forget=analysis.get("dontForget") or [],
				)
			)
		return items

	def save_session_item(self, user_id, session_id, question_id, question_tags, result, *, transcript=None, metrics=None):
		session = self.db.get(PracticeSession, session_id)
		if session is None:
			session = PracticeSession(session_id=session_id, user_id=user_id)
			self.db.add(session)
		elif session.user_id != user_id:
			raise NotFoundError("Session", session_id)
		self.db.add(
			SessionItemRecord(
				session_id=session_id,
				user_id=user_id,
				question_id=question_id,
				question_tags_json=_dumps(list(question_tags)),
				transcript=transcript,
				metrics_json=metrics.model_dump_json() if metrics is not None else None,
				analysis_json=result.model_dump_json(by_alias=True),
			)
		)
		self.db.commit()

	def mark_session_completed(self, session_id):
		session = self._get_session(session_id)
		session.is_completed = True
		session.completed_at = datetime.utcnow()
		self.db.commit()

	def save_session_summary(self, session_id, user_id, summary):
		row = self.db.get(LearningSummary, session_id)
		if not row:
			row = LearningSummary(session_id=session_id, user_id=user_id)
			self.db.add(row)
		data = summary.model_dump(mode="json")
		row.common_mistakes_json = _dumps(data["common_mistakes"])
		row.forgotten_points_json = _dumps(data["frequently_forgotten_points"])
		row.misused_terms_json = _dumps(data["frequently_misused_terms"])
		row.weak_tags_json = _dumps(data["weak_tags"])
		row.strong_tags_json = _dumps(data["strong_tags"])
		row.recommended_focus_json = _dumps(data["recommended_focus"])
		row.performance_by_tag_json = _dumps(data["performance_by_tag"])
		row.overall_score = summary.overall_score
		self.db.commit()

	def _summary_from_row(self, row: LearningSummary) -> SessionSummary:
		performance: Dict[str, TagPerformance] = {}
		for tag, value in _loads(row.performance_by_tag_json, {}, field="learning_summaries.performance_by_tag_json").items():
			try:
				performance[tag] = TagPerformance.model_validate(value)
			except ValidationError:
				logger.warning("invalid performance entry for tag %s in session %s", tag, row.session_id)
		return SessionSummary(
			weak_tags=_loads(row.weak_tags_json, [], field="learning_summaries.weak_tags_json"),
			strong_tags=_loads(row.strong_tags_json, [], field="learning_summaries.strong_tags_json"),
			recommended_focus=_loads(row.recommended_focus_json, [], field="learning_summaries.recommended_focus_json"),
			performance_by_tag=performance,
			overall_score=row.overall_score or 0.0,
			common_mistakes=_load_models(row.common_mistakes_json, CommonMistake, field="learning_summaries.common_mistakes_json"),
			frequently_forgotten_points=_load_models(
				row.forgotten_points_json, ForgottenPoint, field="learning_summaries.forgotten_points_json"
			),
			frequently_misused_terms=_load_models(
				row.misused_terms_json, TerminologyCorrection, field="learning_summaries.misused_terms_json"
			),
		)

	def load_completed_sessions(self, user_id):
		sessions = (
			self.db.query(PracticeSession)
			.filter(PracticeSession.user_id == user_id, PracticeSession.is_completed.is_(True))
			.order_by(PracticeSession.created_at)
			.all()
		)
		counts = dict(
			self.db.query(SessionItemRecord.session_id, func.count(SessionItemRecord.id))
			.filter(SessionItemRecord.user_id == user_id)
			.group_by(SessionItemRecord.session_id)
			.all()
		)
		summaries = {
			row.session_id: row
			for row in self.db.query(LearningSummary).filter(LearningSummary.user_id == user_id).all()
		}
		return [
			CompletedSession(
				session_id=s.session_id,
				item_count=counts.get(s.session_id, 0),
				summary=self._summary_from_row(summaries[s.session_id]) if s.session_id in summaries else None,
			)
			for s in sessions
		]

	def sessions_missing_summary(self, user_id):
		summarized = select(LearningSummary.session_id)
		rows = (
			self.db.query(PracticeSession.session_id)
			.filter(
				PracticeSession.user_id == user_id,
				PracticeSession.is_completed.is_(True),
				~PracticeSession.session_id.in_(summarized),
			)
			.order_by(PracticeSession.created_at)
			.all()
		)
		return [r[0] for r in rows]

	# ---- quizzes --------------------------------------------------------

	def save_quiz_attempt(self, user_id, quiz_id, attempt):
		self.db.add(
			QuizAttemptRecord(
				quiz_id=quiz_id,
				user_id=user_id,
				question_id=attempt.question_id,
				question_tags_json=_dumps(list(attempt.question_tags)),
				score=attempt.score,
			)
		)
		self.db.commit()

	def load_quizzes(self, user_id):
		rows = (
			self.db.query(QuizAttemptRecord)
			.filter(QuizAttemptRecord.user_id == user_id)
			.order_by(QuizAttemptRecord.id)
			.all()
		)
		quizzes: Dict[str, QuizRecord] = {}
		for row in rows:
			quiz = quizzes.setdefault(row.quiz_id, QuizRecord(quiz_id=row.quiz_id))
			quiz.attempts.append(
				QuizAttempt(
					question_id=row.question_id,
					question_tags=_loads(row.question_tags_json, [], field="quiz_attempts.question_tags_json"),
					score=row.score,
				)
			)
		return list(quizzes.values())

	# ---- insights -------------------------------------------------------

	def upsert_insight(self, insight, include_forgotten_points=True):
		table = LearningInsight.__table__
		values: Dict[str, Any] = {
			"aggregated_weak_tags_json": _dumps(insight.aggregated_weak_tags),
			"aggregated_strong_tags_json": _dumps(insight.aggregated_strong_tags),
			"top_focus_areas_json": _dumps(insight.top_focus_areas),
			"total_sessions": insight.total_sessions,
			"total_questions": insight.total_questions,
			"last_updated": insight.last_updated,
		}
		if include_forgotten_points:
			points = insight.top_forgotten_points
			values[FORGOTTEN_POINTS_FIELD] = None if points is None else _dumps([p.model_dump() for p in points])
		try:
			exists = self.db.execute(select(table.c.user_id).where(table.c.user_id == insight.user_id)).first()
			if exists:
				self.db.execute(update(table).where(table.c.user_id == insight.user_id).values(**values))
			else:
				self.db.execute(insert(table).values(user_id=insight.user_id, **values))
			self.db.commit()
		except SQLAlchemyError as err:
			self.db.rollback()
			if FORGOTTEN_POINTS_FIELD in str(err):
				raise StorageSchemaError(FORGOTTEN_POINTS_FIELD, str(err)) from err
			raise

	def load_insight(self, user_id):
		table = LearningInsight.__table__
		try:
			row = self.db.execute(select(table).where(table.c.user_id == user_id)).mappings().first()
		except SQLAlchemyError as err:
			self.db.rollback()
			if FORGOTTEN_POINTS_FIELD not in str(err):
				raise
			logger.warning("reading insight for %s without %s: %s", user_id, FORGOTTEN_POINTS_FIELD, err)
			columns = [c for c in table.c if c.name != FORGOTTEN_POINTS_FIELD]
			row = self.db.execute(select(*columns).where(table.c.user_id == user_id)).mappings().first()
		if row is None:
			return None
		points = None
		if row.get(FORGOTTEN_POINTS_FIELD):
			points = _load_models(row[FORGOTTEN_POINTS_FIELD], TopForgottenPoint, field=f"user_learning_insights.{FORGOTTEN_POINTS_FIELD}")
		return UserLearningInsight(
			user_id=row["user_id"],
			aggregated_weak_tags=_loads(row["aggregated_weak_tags_json"], [], field="user_learning_insights.aggregated_weak_tags_json"),
			aggregated_strong_tags=_loads(row["aggregated_strong_tags_json"], [], field="user_learning_insights.aggregated_strong_tags_json"),
			top_focus_areas=_loads(row["top_focus_areas_json"], [], field="user_learning_insights.top_focus_areas_json"),
			top_forgotten_points=points,
			total_sessions=row["total_sessions"],
			total_questions=row["total_questions"],
			last_updated=row["last_updated"],
		)


def get_store():
	db = SessionLocal()
	try:
		yield SqlLearningStore(db)
	finally:
		db.close()
