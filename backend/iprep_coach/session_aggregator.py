from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Optional, Tuple

from .pattern_miner import mine_session
from .schemas import QuizAttempt, QuizSummary, SessionItem, SessionSummary, TagPerformance
from .settings import settings

logger = logging.getLogger(__name__)


def round1(value: float) -> float:
	"""Round half up to one decimal (2.25 -> 2.3)."""
	return math.floor(value * 10 + 0.5) / 10


class _TagStats:
	def __init__(self) -> None:
		self.scores: List[float] = []
		self.question_ids: List[str] = []

	def add(self, score: float, question_id: str) -> None:
		self.scores.append(score)
		if question_id not in self.question_ids:
			self.question_ids.append(question_id)

	@property
	def mean(self) -> float:
		return sum(self.scores) / len(self.scores)


def _classify(tag_stats: Dict[str, _TagStats]) -> Tuple[List[str], List[str], List[str], Dict[str, TagPerformance]]:
	"""Split tags into weak/strong on their unrounded mean and rank the weak ones."""
	weak: List[str] = []
	strong: List[str] = []
	performance: Dict[str, TagPerformance] = {}
	for tag, stats in tag_stats.items():
		mean = stats.mean
		performance[tag] = TagPerformance(
			avg_score=round1(mean),
			count=len(stats.scores),
			question_ids=list(stats.question_ids),
		)
		if mean < settings.weak_tag_threshold:
			weak.append(tag)
		elif mean >= settings.strong_tag_threshold:
			strong.append(tag)
	# more questions first, then the weakest mean
	focus = sorted(weak, key=lambda t: (-len(tag_stats[t].scores), tag_stats[t].mean))
	return weak, strong, focus[: settings.focus_limit], performance


def _mean_or_zero(values: Iterable[float]) -> float:
	values = list(values)
	return round1(sum(values) / len(values)) if values else 0.0


def summarize_session(items: List[SessionItem], *, top_n: Optional[int] = None) -> SessionSummary:
	"""Per-tag performance, focus ranking and mined patterns for one completed session."""
	if not items:
		return SessionSummary()

	tag_stats: Dict[str, _TagStats] = {}
	all_scores: List[int] = []
	for item in items:
		scores = item.scored_dimensions()
		all_scores.extend(scores)
		if not scores:
			logger.debug("session item %s has no scores; skipped for tag means", item.question_id)
			continue
		item_mean = sum(scores) / len(scores)
		for tag in item.question_tags:
			tag_stats.setdefault(tag, _TagStats()).add(item_mean, item.question_id)

	weak, strong, focus, performance = _classify(tag_stats)
	mined = mine_session(items, top_n=top_n)
	return SessionSummary(
		weak_tags=weak,
		strong_tags=strong,
		recommended_focus=focus,
		performance_by_tag=performance,
		overall_score=_mean_or_zero(all_scores),
		common_mistakes=mined.common_mistakes,
		frequently_forgotten_points=mined.frequently_forgotten_points,
		frequently_misused_terms=mined.frequently_misused_terms,
	)


def quiz_band(score: Optional[float]) -> float:
	"""Map a 0-100 quiz score onto the 0-5 band; unscored attempts count as 0."""
	return score / 20 if score else 0.0


def summarize_quiz(attempts: List[QuizAttempt]) -> QuizSummary:
	if not attempts:
		return QuizSummary()
	tag_stats: Dict[str, _TagStats] = {}
	for attempt in attempts:
		band = quiz_band(attempt.score)
		for tag in attempt.question_tags:
			tag_stats.setdefault(tag, _TagStats()).add(band, attempt.question_id)
	weak, strong, focus, performance = _classify(tag_stats)
	return QuizSummary(
		weak_tags=weak,
		strong_tags=strong,
		recommended_focus=focus,
		performance_by_tag=performance,
		overall_score=_mean_or_zero(b for b in (quiz_band(a.score) for a in attempts) if b > 0),
	)
