"""
Answer analysis endpoint.

One submission runs the deterministic delivery metrics and heuristics, asks the scoring
model for a structured assessment and records the scored answer against its session.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..coaching import PRACTICE_PRESETS, CoachingPreferences, preferences_for_preset
from ..errors import AppError, http_error
from ..gemini_client import GeminiClient
from ..heuristics import DEFAULT_DOMAIN, analyze_heuristics
from ..metrics import calculate_conciseness_score, extract_metrics
from ..schemas import AnalysisResult, HeuristicScores, Metrics, WordTiming
from ..scoring_client import ScoringClient
from ..store import LearningStore, get_store
from .auth import User, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/practice", tags=["practice"])


class AnalyzeRequest(BaseModel):
	session_id: str = Field(min_length=1, max_length=64)
	question_id: str = Field(min_length=1, max_length=128)
	transcript: str
	question_text: Optional[str] = None
	question_hint: Optional[str] = None
	question_tags: List[str] = Field(default_factory=list)
	# BEHAVIORAL, TECHNICAL, DEFINITION, SCENARIO or PITCH
	question_type: Optional[str] = None
	words: Optional[List[WordTiming]] = None
	domain: str = DEFAULT_DOMAIN
	preset: Optional[str] = None
	preferences: Optional[CoachingPreferences] = None


class AnalyzeResponse(BaseModel):
	analysis: AnalysisResult
	metrics: Metrics
	heuristics: HeuristicScores
	conciseness_score: float


async def get_scoring_client():
	try:
		service = GeminiClient()
	except ValueError as err:
		logger.warning("scoring service unavailable, answers get fallback feedback: %s", err)
		service = None
	try:
		yield ScoringClient(service)
	finally:
		if service is not None:
			await service.aclose()


def _resolve_preferences(req: AnalyzeRequest) -> Optional[CoachingPreferences]:
	if req.preset is None:
		return req.preferences
	if req.preset not in PRACTICE_PRESETS:
		raise HTTPException(status_code=400, detail=f"preset must be one of {', '.join(PRACTICE_PRESETS)}")
	if req.preferences is not None:
		return preferences_for_preset(req.preset, req.preferences)
	return preferences_for_preset(req.preset)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
	req: AnalyzeRequest,
	user: User = Depends(get_current_user),
	scoring: ScoringClient = Depends(get_scoring_client),
	store: LearningStore = Depends(get_store),
):
	preferences = _resolve_preferences(req)
	metrics = extract_metrics(req.transcript, req.words)
	heuristics = analyze_heuristics(req.transcript, metrics, req.words, req.domain)
	try:
		result = await scoring.analyze(
			req.transcript,
			question_id=req.question_id,
			question_tags=req.question_tags,
			question_text=req.question_text,
			question_hint=req.question_hint,
			metrics=metrics,
			preferences=preferences,
		)
		store.save_session_item(
			user.user_id,
			req.session_id,
			req.question_id,
			req.question_tags,
			result,
			transcript=req.transcript.strip(),
			metrics=metrics,
		)
	except AppError as err:
		raise http_error(err)
	conciseness = calculate_conciseness_score(
		metrics.word_count,
		metrics.filler_count,
		req.question_type,
		result.question_answered,
	)
	return AnalyzeResponse(analysis=result, metrics=metrics, heuristics=heuristics, conciseness_score=conciseness)
