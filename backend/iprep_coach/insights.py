"""
Cross-session learning profile.

Every run recomputes the whole profile from the user's session and quiz summaries and
replaces the stored record, so the insight row behaves like a materialised view.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .errors import StorageSchemaError
from .schemas import CompletedSession, QuizRecord, QuizSummary, TopForgottenPoint, UserLearningInsight
from .session_aggregator import summarize_quiz
from .settings import settings

logger = logging.getLogger(__name__)


def frequency_threshold(total_summaries: int) -> int:
	"""How many summaries must list a tag before it lands in the profile.

	Small samples use "appears anywhere"; larger ones need a majority.
	"""
	if total_summaries <= settings.small_sample_size:
		return 1
	return math.ceil(total_summaries * settings.majority_ratio)


def merge_forgotten_points(sessions: Sequence[CompletedSession], top_n: Optional[int] = None) -> List[TopForgottenPoint]:
	top_n = top_n or settings.insight_top_n
	merged: Dict[str, Dict] = {}
	for session in sessions:
		if session.summary is None:
			continue
		for point in session.summary.frequently_forgotten_points:
			key = point.point.strip().lower()
			entry = merged.setdefault(key, {"frequency": 0, "sessions": set(), "tags": []})
			entry["frequency"] += point.frequency
			entry["sessions"].add(session.session_id)
			for tag in point.tags:
				if tag not in entry["tags"]:
					entry["tags"].append(tag)
	ranked = sorted(merged.items(), key=lambda kv: -kv[1]["frequency"])[:top_n]
	return [
		TopForgottenPoint(
			point=point,
			total_frequency=entry["frequency"],
			session_count=len(entry["sessions"]),
			tags=entry["tags"],
		)
		for point, entry in ranked
	]


def compute_user_insight(
	user_id: str,
	sessions: Sequence[CompletedSession],
	quizzes: Sequence[QuizRecord],
) -> UserLearningInsight:
	quizzes_with_attempts = [q for q in quizzes if q.attempts]
	total_sessions = len(sessions) + len(quizzes_with_attempts)
	total_questions = sum(s.item_count for s in sessions)
	total_questions += sum(len({a.question_id for a in q.attempts}) for q in quizzes_with_attempts)

	summaries: List[QuizSummary] = [s.summary for s in sessions if s.summary is not None]
	summaries += [summarize_quiz(q.attempts) for q in quizzes_with_attempts]
	if not summaries:
		return UserLearningInsight(user_id=user_id, total_sessions=total_sessions, total_questions=total_questions)

	weak: Counter = Counter()
	strong: Counter = Counter()
	focus: Counter = Counter()
	for summary in summaries:
		weak.update(summary.weak_tags)
		strong.update(summary.strong_tags)
		focus.update(summary.recommended_focus)

	threshold = frequency_threshold(len(summaries))
	top_focus = [tag for tag, count in focus.most_common() if count > 0][: settings.insight_top_n]
	return UserLearningInsight(
		user_id=user_id,
		aggregated_weak_tags=[tag for tag, count in weak.items() if count >= threshold],
		aggregated_strong_tags=[tag for tag, count in strong.items() if count >= threshold],
		top_focus_areas=top_focus,
		top_forgotten_points=merge_forgotten_points(sessions),
		total_sessions=total_sessions,
		total_questions=total_questions,
		last_updated=datetime.utcnow(),
	)


def aggregate_user_insights(user_id: str, store) -> UserLearningInsight:
	"""Recompute and upsert the learning profile for ``user_id``.

	A store that cannot hold the forgotten-points field still gets the rest of the profile.
	"""
	sessions = store.load_completed_sessions(user_id)
	quizzes = store.load_quizzes(user_id)
	insight = compute_user_insight(user_id, sessions, quizzes)
	try:
		store.upsert_insight(insight)
	except StorageSchemaError as err:
		if err.field != "top_forgotten_points":
			raise
		logger.warning("top_forgotten_points not storable for user %s (%s); saving insight without it", user_id, err.message)
		insight = insight.model_copy(update={"top_forgotten_points": None})
		store.upsert_insight(insight, include_forgotten_points=False)
	logger.info(
		"aggregated insights for user %s: %d sessions, %d questions, %d weak tags",
		user_id,
		insight.total_sessions,
		insight.total_questions,
		len(insight.aggregated_weak_tags),
	)
	return insight
