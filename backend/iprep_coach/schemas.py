"""
Data model shared by the analysis and aggregation layers.

AnalysisResult mirrors the JSON object the scoring model must return. Its field
constraints are the schema that model output is validated against, so they are the
single place where score bounds and list lengths are enforced.
"""

from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr
from pydantic.alias_generators import to_camel


Score = int


class WordTiming(BaseModel):
	word: str
	start: float
	end: float


class Metrics(BaseModel):
	model_config = ConfigDict(frozen=True)

	word_count: int = 0
	filler_count: int = 0
	filler_rate: float = 0.0
	wpm: Optional[int] = None
	long_pauses: int = 0


class HeuristicScores(BaseModel):
	model_config = ConfigDict(frozen=True)

	confidence: Score = Field(ge=0, le=5)
	intonation: Score = Field(ge=0, le=5)
	articulation: Score = Field(ge=0, le=5)
	volume_consistency: Score = Field(ge=0, le=5)
	pacing: Score = Field(ge=0, le=5)
	emphasis: Score = Field(ge=0, le=5)
	engagement: Score = Field(ge=0, le=5)
	terminology: Score = Field(ge=0, le=5)
	specificity: Score = Field(ge=0, le=5)
	depth: Score = Field(ge=0, le=5)


class AnalysisResult(BaseModel):
	model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

	# Strict types: "4", 4.0 and true are not scores, "no" is not a bool
	question_answered: StrictBool
	answer_quality: StrictInt = Field(ge=0, le=5)
	what_was_right: List[StrictStr] = Field(min_length=2, max_length=4)
	better_wording: List[StrictStr] = Field(max_length=3)
	dont_forget: List[StrictStr] = Field(max_length=4)
	star_score: StrictInt = Field(ge=0, le=5)
	impact_score: StrictInt = Field(ge=0, le=5)
	clarity_score: StrictInt = Field(ge=0, le=5)
	technical_accuracy: StrictInt = Field(ge=0, le=5)
	terminology_usage: StrictInt = Field(ge=0, le=5)
	tips: List[StrictStr] = Field(min_length=5, max_length=5)


# ---------------------------------------------------------------------------
# Mined patterns
# ---------------------------------------------------------------------------

class CommonMistake(BaseModel):
	pattern: str
	frequency: int
	examples: List[str] = Field(default_factory=list)


class TerminologyCorrection(BaseModel):
	incorrect_term: str
	correct_term: str
	frequency: int
	question_ids: List[str] = Field(default_factory=list)
	tags: List[str] = Field(default_factory=list)
	examples: List[str] = Field(default_factory=list, max_length=3)


class ForgottenPoint(BaseModel):
	point: str
	frequency: int
	question_ids: List[str] = Field(default_factory=list)
	tags: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Store-facing inputs
# ---------------------------------------------------------------------------

class SessionItem(BaseModel):
	"""One answered question as persisted by the session store.

	Scores are optional because older rows may predate a dimension.
	"""

	question_id: str
	question_tags: List[str] = Field(default_factory=list)
	transcript: Optional[str] = None
	metrics: Optional[Metrics] = None
	question_answered: Optional[bool] = None
	star_score: Optional[int] = None
	impact_score: Optional[int] = None
	clarity_score: Optional[int] = None
	technical_accuracy: Optional[int] = None
	terminology_usage: Optional[int] = None
	better_wording: List[str] = Field(default_factory=list)
	dont_forget: List[str] = Field(default_factory=list)

	@classmethod
	def from_analysis(
		cls,
		question_id: str,
		question_tags: List[str],
		result: AnalysisResult,
		*,
		transcript: Optional[str] = None,
		metrics: Optional[Metrics] = None,
	) -> "SessionItem":
		return cls(
			question_id=question_id,
			question_tags=list(question_tags),
			transcript=transcript,
			metrics=metrics,
			question_answered=result.question_answered,
			star_score=result.star_score,
			impact_score=result.impact_score,
			clarity_score=result.clarity_score,
			technical_accuracy=result.technical_accuracy,
			terminology_usage=result.terminology_usage,
			better_wording=list(result.better_wording),
			dont_forget=list(result.dont_forget),
		)

	def scored_dimensions(self) -> List[int]:
		values = [self.star_score, self.impact_score, self.clarity_score, self.technical_accuracy, self.terminology_usage]
		return [v for v in values if v is not None]


class QuizAttempt(BaseModel):
	question_id: str
	question_tags: List[str] = Field(default_factory=list)
	# 0-100
	score: Optional[float] = None


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

class TagPerformance(BaseModel):
	avg_score: float
	count: int
	question_ids: List[str] = Field(default_factory=list)


class QuizSummary(BaseModel):
	weak_tags: List[str] = Field(default_factory=list)
	strong_tags: List[str] = Field(default_factory=list)
	recommended_focus: List[str] = Field(default_factory=list)
	performance_by_tag: Dict[str, TagPerformance] = Field(default_factory=dict)
	overall_score: float = 0.0


class SessionSummary(QuizSummary):
	common_mistakes: List[CommonMistake] = Field(default_factory=list)
	frequently_forgotten_points: List[ForgottenPoint] = Field(default_factory=list)
	frequently_misused_terms: List[TerminologyCorrection] = Field(default_factory=list)


class CompletedSession(BaseModel):
	session_id: str
	item_count: int = 0
	summary: Optional[SessionSummary] = None


class QuizRecord(BaseModel):
	quiz_id: str
	attempts: List[QuizAttempt] = Field(default_factory=list)


class TopForgottenPoint(BaseModel):
	point: str
	total_frequency: int
	session_count: int
	tags: List[str] = Field(default_factory=list)


class UserLearningInsight(BaseModel):
	user_id: str
	aggregated_weak_tags: List[str] = Field(default_factory=list)
	aggregated_strong_tags: List[str] = Field(default_factory=list)
	top_focus_areas: List[str] = Field(default_factory=list)
	# None when the store cannot hold the field
	top_forgotten_points: Optional[List[TopForgottenPoint]] = None
	total_sessions: int = 0
	total_questions: int = 0
	last_updated: datetime = Field(default_factory=datetime.utcnow)
