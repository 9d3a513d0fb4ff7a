from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..errors import AppError, http_error
from ..insights import aggregate_user_insights
from ..schemas import SessionSummary, UserLearningInsight
from ..session_aggregator import summarize_session
from ..store import LearningStore, get_store
from .auth import User, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/learning", tags=["learning"])


class BackfillResponse(BaseModel):
	backfilled: List[str]
	insight: UserLearningInsight


def _summarize_and_save(store: LearningStore, session_id: str, user_id: str) -> SessionSummary:
	items = store.load_session_items(session_id, user_id)
	summary = summarize_session(items)
	store.save_session_summary(session_id, user_id, summary)
	return summary


@router.post("/sessions/{session_id}/complete", response_model=SessionSummary)
def complete_session(
	session_id: str,
	aggregate: bool = True,
	user: User = Depends(get_current_user),
	store: LearningStore = Depends(get_store),
):
	"""Summarise a finished session and refresh the user's learning profile."""
	try:
		summary = _summarize_and_save(store, session_id, user.user_id)
		store.mark_session_completed(session_id)
		if aggregate:
			aggregate_user_insights(user.user_id, store)
	except AppError as err:
		raise http_error(err)
	logger.info("session %s completed: %d weak tags, overall %.1f", session_id, len(summary.weak_tags), summary.overall_score)
	return summary


@router.get("/insights", response_model=UserLearningInsight)
def get_insights(
	refresh: bool = False,
	user: User = Depends(get_current_user),
	store: LearningStore = Depends(get_store),
):
	try:
		insight = None if refresh else store.load_insight(user.user_id)
		if insight is None:
			insight = aggregate_user_insights(user.user_id, store)
	except AppError as err:
		raise http_error(err)
	return insight


@router.post("/backfill-summaries", response_model=BackfillResponse)
def backfill_summaries(
	user: User = Depends(get_current_user),
	store: LearningStore = Depends(get_store),
):
	"""Summarise completed sessions that never got a summary, then re-aggregate."""
	try:
		missing = store.sessions_missing_summary(user.user_id)
		for session_id in missing:
			_summarize_and_save(store, session_id, user.user_id)
		insight = aggregate_user_insights(user.user_id, store)
	except AppError as err:
		raise http_error(err)
	logger.info("backfilled %d session summaries for user %s", len(missing), user.user_id)
	return BackfillResponse(backfilled=missing, insight=insight)
