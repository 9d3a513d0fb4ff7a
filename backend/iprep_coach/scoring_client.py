"""
Model-backed answer scoring with bounded retries and a deterministic fallback.

The retry loop is a small state machine: every attempt either yields a validated
``AnalysisResult`` (``Success``) or a ``ScoringAttemptError``; ``RetryPolicy.next_state``
decides between another ``Attempting`` round and ``Fallback``. ``analyze`` only ever
raises ``TranscriptValidationError``; every other failure ends in a fallback result.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Union

import httpx
from pydantic import ValidationError

from .cache import AnalysisCache, analysis_cache
from .coaching import DEFAULT_PREFERENCES, CoachingPreferences
from .errors import (
	FAILURE_NETWORK,
	FAILURE_OTHER,
	FAILURE_TIMEOUT,
	ScoringAttemptError,
	TranscriptValidationError,
)
from .metrics import count_words
from .prompts import build_system_prompt, build_user_prompt
from .schemas import AnalysisResult, Metrics
from .settings import settings

logger = logging.getLogger(__name__)

MIN_TRANSCRIPT_CHARS = 10


class ScoringService(Protocol):
	async def generate_json(self, system_prompt: str, user_prompt: str) -> str:
		...


# ---------------------------------------------------------------------------
# Retry state machine
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Attempting:
	attempt: int


@dataclass(frozen=True)
class Success:
	result: AnalysisResult


@dataclass(frozen=True)
class Fallback:
	failure: ScoringAttemptError


ScoringState = Union[Attempting, Success, Fallback]


@dataclass(frozen=True)
class RetryPolicy:
	max_attempts: int = 2
	backoff_seconds: float = 0.5

	def backoff_for(self, attempt: int) -> float:
		"""Delay to wait after failed attempt number ``attempt`` (1-based)."""
		return self.backoff_seconds * attempt

	def next_state(self, state: Attempting, outcome: Union[AnalysisResult, ScoringAttemptError]) -> ScoringState:
		if isinstance(outcome, AnalysisResult):
			return Success(outcome)
		if state.attempt >= self.max_attempts:
			return Fallback(outcome)
		return Attempting(state.attempt + 1)


# ---------------------------------------------------------------------------
# Parsing and failure classification
# ---------------------------------------------------------------------------

def parse_model_output(text: str) -> Dict[str, Any]:
	"""Extract the JSON object from a model response.

	Parses the whole text first, then the outermost brace-delimited substring.
	Raises ValueError when neither yields a non-empty object.
	"""
	data: Any = None
	try:
		data = json.loads(text)
	except (TypeError, ValueError):
		match = re.search(r"\{[\s\S]*\}", text or "")
		if match:
			try:
				data = json.loads(match.group(0))
			except ValueError:
				data = None
	if not isinstance(data, dict):
		raise ValueError("Model response is not a JSON object")
	if not data:
		raise ValueError("Model response is an empty object")
	return data


def classify_failure(exc: BaseException) -> ScoringAttemptError:
	if isinstance(exc, ScoringAttemptError):
		return exc
	name = type(exc).__name__
	# httpx timeouts are RequestErrors too, so check them first
	if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
		return ScoringAttemptError(FAILURE_TIMEOUT, str(exc) or "scoring request timed out", error_name=name)
	if isinstance(exc, httpx.RequestError):
		return ScoringAttemptError(FAILURE_NETWORK, str(exc) or "network error", error_name=name)
	if isinstance(exc, ValidationError):
		return ScoringAttemptError(FAILURE_OTHER, f"model output failed validation ({exc.error_count()} errors)", error_name=name)
	return ScoringAttemptError(FAILURE_OTHER, str(exc) or name, error_name=name)


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

FAILURE_TIPS: Dict[str, str] = {
	FAILURE_TIMEOUT: "AI analysis timed out - your response was recorded, but detailed feedback is unavailable. Please try again.",
	FAILURE_NETWORK: "Network error during AI analysis - your response was recorded. Please check your connection and try again.",
	FAILURE_OTHER: "AI analysis temporarily unavailable ({name}). Your response was recorded successfully.",
}


def build_fallback_result(word_count: int, category: str, error_name: str = "Error") -> AnalysisResult:
	"""Deterministic result returned when the scoring service cannot produce one."""
	first_tip = FAILURE_TIPS.get(category, FAILURE_TIPS[FAILURE_OTHER]).format(name=error_name)
	return AnalysisResult(
		question_answered=word_count > 20,
		answer_quality=2,
		what_was_right=[
			"Your response was recorded successfully",
			"You provided some content",
		],
		better_wording=[
			"Try speaking for 2-3 minutes with clear structure",
			"Use the STAR method: Situation, Task, Action, Result",
			"Include specific metrics and examples",
		],
		dont_forget=[],
		star_score=2,
		impact_score=2,
		clarity_score=2,
		technical_accuracy=2,
		terminology_usage=2,
		tips=[
			first_tip,
			"Your response was recorded successfully",
			"Review your transcript and practice speaking more clearly",
			"Use the STAR method: Situation, Task, Action, Result",
			"Include specific metrics and outcomes when possible",
		],
	)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class ScoringClient:
	def __init__(
		self,
		service: Optional[ScoringService],
		*,
		cache: AnalysisCache = analysis_cache,
		policy: Optional[RetryPolicy] = None,
		timeout: Optional[float] = None,
		sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
	) -> None:
		self.service = service
		self.cache = cache
		self.policy = policy or RetryPolicy(
			max_attempts=settings.scoring_max_attempts,
			backoff_seconds=settings.scoring_backoff_seconds,
		)
		self.timeout = timeout if timeout is not None else settings.scoring_timeout_seconds
		self._sleep = sleep

	async def analyze(
		self,
		transcript: str,
		*,
		question_id: str,
		question_tags: Optional[List[str]] = None,
		question_text: Optional[str] = None,
		question_hint: Optional[str] = None,
		metrics: Optional[Metrics] = None,
		preferences: Optional[CoachingPreferences] = None,
	) -> AnalysisResult:
		trimmed = (transcript or "").strip()
		if not trimmed:
			raise TranscriptValidationError("Transcript is empty")
		if len(trimmed) < MIN_TRANSCRIPT_CHARS:
			raise TranscriptValidationError(
				f"Transcript is too short ({len(trimmed)} characters). Please provide a longer response.",
				details={"length": len(trimmed), "minimum": MIN_TRANSCRIPT_CHARS},
			)
		tags = list(question_tags or [])

		cached = self.cache.get(trimmed, question_id, tags, preferences)
		if cached is not None:
			logger.debug("analysis cache hit for question %s", question_id)
			return cached

		if self.service is None:
			state: ScoringState = Fallback(
				ScoringAttemptError(FAILURE_OTHER, "no scoring service configured", error_name="ServiceUnavailable")
			)
		else:
			system_prompt = build_system_prompt(preferences or DEFAULT_PREFERENCES)
			user_prompt = build_user_prompt(
				trimmed,
				question_text=question_text,
				question_hint=question_hint,
				question_tags=tags,
				metrics=metrics,
			)
			logger.debug("scoring prompt sizes: system=%d user=%d chars", len(system_prompt), len(user_prompt))
			state = Attempting(1)
			while isinstance(state, Attempting):
				outcome = await self._attempt(system_prompt, user_prompt)
				next_state = self.policy.next_state(state, outcome)
				if isinstance(next_state, Attempting):
					delay = self.policy.backoff_for(state.attempt)
					logger.warning(
						"scoring attempt %d/%d failed (%s: %s); retrying in %.1fs",
						state.attempt,
						self.policy.max_attempts,
						outcome.category,
						outcome.message,
						delay,
					)
					await self._sleep(delay)
				state = next_state

		if isinstance(state, Success):
			self.cache.set(trimmed, question_id, tags, state.result, preferences=preferences)
			return state.result

		failure = state.failure
		word_count = metrics.word_count if metrics and metrics.word_count else count_words(trimmed)
		logger.error(
			"returning fallback analysis for question %s (%s: %s, %d words)",
			question_id,
			failure.category,
			failure.message,
			word_count,
		)
		return build_fallback_result(word_count, failure.category, failure.error_name)

	async def _attempt(self, system_prompt: str, user_prompt: str) -> Union[AnalysisResult, ScoringAttemptError]:
		try:
			raw = await asyncio.wait_for(self.service.generate_json(system_prompt, user_prompt), timeout=self.timeout)
			return AnalysisResult.model_validate(parse_model_output(raw))
		except Exception as exc:
			return classify_failure(exc)
