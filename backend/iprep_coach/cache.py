"""
In-process cache for scored answers.

Re-submitting the same answer (same question, tags and coaching preferences, same
words modulo case and spacing) returns the stored result instead of paying for another
model call. Swap ``analysis_cache`` for a shared backend in multi-instance deployments;
callers only depend on the ``AnalysisCache`` interface.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from pydantic import BaseModel

from .schemas import AnalysisResult
from .settings import settings

logger = logging.getLogger(__name__)


def normalize_transcript(transcript: str) -> str:
	return re.sub(r"\s+", " ", (transcript or "").lower()).strip()


def _serialize_preferences(preferences: Any) -> str:
	if preferences is None:
		return "default"
	if isinstance(preferences, BaseModel):
		preferences = preferences.model_dump(mode="json")
	return json.dumps(preferences, sort_keys=True, separators=(",", ":"))


def make_cache_key(transcript: str, question_id: str, tags: Iterable[str], preferences: Any = None) -> str:
	normalized = normalize_transcript(transcript)
	digest = hashlib.sha1(normalized.encode("utf-8")).hexdigest()[:16]
	transcript_key = f"{normalized[:100]}:{len(normalized)}:{digest}"
	tags_key = ",".join(sorted(tags or []))
	return f"{question_id}:{tags_key}:{_serialize_preferences(preferences)}:{transcript_key}"


@dataclass
class CacheEntry:
	key: str
	data: AnalysisResult
	created_at: float
	ttl: float

	def expired(self, now: float) -> bool:
		return now - self.created_at > self.ttl


class AnalysisCache(ABC):
	"""Interface for analysis caches."""

	@abstractmethod
	def get(self, transcript: str, question_id: str, tags: Iterable[str], preferences: Any = None) -> Optional[AnalysisResult]:
		raise NotImplementedError

	@abstractmethod
	def set(
		self,
		transcript: str,
		question_id: str,
		tags: Iterable[str],
		result: AnalysisResult,
		ttl: Optional[float] = None,
		preferences: Any = None,
	) -> None:
		raise NotImplementedError

	@abstractmethod
	def evict(self, transcript: str, question_id: str, tags: Iterable[str], preferences: Any = None) -> bool:
		raise NotImplementedError

	@abstractmethod
	def clear(self) -> None:
		raise NotImplementedError

	@abstractmethod
	def stats(self) -> Dict[str, int]:
		raise NotImplementedError


class InMemoryAnalysisCache(AnalysisCache):
	def __init__(
		self,
		*,
		capacity: Optional[int] = None,
		evict_count: Optional[int] = None,
		default_ttl: Optional[float] = None,
		clock: Callable[[], float] = time.monotonic,
	) -> None:
		self.capacity = capacity if capacity is not None else settings.cache_capacity
		self.evict_count = evict_count if evict_count is not None else settings.cache_evict_count
		self.default_ttl = default_ttl if default_ttl is not None else settings.cache_ttl_seconds
		self._clock = clock
		self._entries: Dict[str, CacheEntry] = {}
		self._lock = threading.Lock()

	def get(self, transcript, question_id, tags, preferences=None):
		key = make_cache_key(transcript, question_id, tags, preferences)
		with self._lock:
			entry = self._entries.get(key)
			if entry is None:
				return None
			if entry.expired(self._clock()):
				del self._entries[key]
				return None
			return entry.data

	def set(self, transcript, question_id, tags, result, ttl=None, preferences=None):
		key = make_cache_key(transcript, question_id, tags, preferences)
		with self._lock:
			if key not in self._entries and len(self._entries) >= self.capacity:
				self._evict_oldest()
			self._entries[key] = CacheEntry(
				key=key,
				data=result,
				created_at=self._clock(),
				ttl=self.default_ttl if ttl is None else ttl,
			)

	def _evict_oldest(self) -> None:
		oldest = sorted(self._entries.values(), key=lambda e: e.created_at)[: self.evict_count]
		for entry in oldest:
			del self._entries[entry.key]
		logger.debug("analysis cache full; evicted %d entries", len(oldest))

	def evict(self, transcript, question_id, tags, preferences=None):
		key = make_cache_key(transcript, question_id, tags, preferences)
		with self._lock:
			return self._entries.pop(key, None) is not None

	def clear(self):
		with self._lock:
			self._entries.clear()

	def stats(self):
		with self._lock:
			return {"size": len(self._entries), "capacity": self.capacity}


class NullAnalysisCache(AnalysisCache):
	"""Cache that never stores anything."""

	def get(self, transcript, question_id, tags, preferences=None):
		return None

	def set(self, transcript, question_id, tags, result, ttl=None, preferences=None):
		return None

	def evict(self, transcript, question_id, tags, preferences=None):
		return False

	def clear(self):
		return None

	def stats(self):
		return {"size": 0, "capacity": 0}


analysis_cache: AnalysisCache = InMemoryAnalysisCache()
