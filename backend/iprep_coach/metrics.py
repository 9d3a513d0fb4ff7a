"""
Delivery metrics derived from a transcript and optional word timings.

Everything here is pure and total: empty input yields zeros, never an exception.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Sequence

from .schemas import Metrics, WordTiming
from .settings import settings


# Fillers that are fillers wherever they appear
_ALWAYS_FILLERS = [
	re.compile(p)
	for p in (
		r"\buh\b",
		r"\bum\b",
		r"\buhm\b",
		r"\buhh\b",
		r"\berm\b",
		r"\byou know\b",
		r"\bya know\b",
		r"\by'know\b",
		r"\bkinda\b",
		r"\bsorta\b",
		r"\bi mean\b",
		r"\bi guess\b",
		r"\byou see\b",
	)
]

_OTHER_FILLERS = [
	re.compile(p)
	for p in (
		r"\bsort of\b",
		r"\bkind of\b",
		r"\bactually\b",
		r"\bbasically\b",
		r"\bliterally\b",
	)
]

_ER = re.compile(r"(?:^|\s)(er)(?:\s|[,\.!?;:]|$)")
_LIKE = re.compile(r"\blike\b")
_SO = re.compile(r"\bso\b")
_WELL = re.compile(r"\bwell\b")
_RIGHT = re.compile(r"\bright\s*\?")
_I_THINK = re.compile(r"\bi think\b")
_OKAY = re.compile(r"\b(?:okay|ok)\b")

_SENTENCE_END = re.compile(r"[.!?]\s*$")


def count_words(text: str) -> int:
	return len((text or "").split())


def _at_sentence_start(index: int, before: str) -> bool:
	return index == 0 or before == "" or bool(_SENTENCE_END.search(before))


def count_fillers(transcript: str) -> int:
	"""Count disfluency markers.

	Unambiguous fillers (um, uh, you know, ...) always count. Words that are also
	ordinary vocabulary (like, so, well, er, okay, right, I think) only count in
	filler position, e.g. "So, basically..." but not "so that" or "looks like a".
	Each text position is counted at most once.
	"""
	if not transcript or not transcript.strip():
		return 0
	lower = re.sub(r"\s+", " ", transcript).strip().lower()
	counted: set[int] = set()

	def mark(index: int) -> None:
		counted.add(index)

	for pattern in _ALWAYS_FILLERS:
		for m in pattern.finditer(lower):
			if m.start() not in counted:
				mark(m.start())

	for m in _ER.finditer(lower):
		if m.start(1) not in counted:
			mark(m.start(1))

	for m in _LIKE.finditer(lower):
		i = m.start()
		if i in counted:
			continue
		before = lower[max(0, i - 15):i].strip()
		after = lower[i + 4:i + 20].strip()
		# comparison / description usage
		if re.match(r"[\s,]*(?:a|an|the|this|that|it|how|when|what)\b", after):
			continue
		if re.search(r"\b(?:looks?|feels?|sounds?|seems?|would|i|we|they|you)\s*$", before):
			continue
		if (
			re.match(r"[\s,]*(?:um|uh|you know|i mean|so|well|,)", after)
			or re.search(r",\s*$", before)
			or (after == "" and re.search(r"(?:was|is|it's|and|but)\s*$", before))
		):
			mark(i)

	for m in _SO.finditer(lower):
		i = m.start()
		if i in counted:
			continue
		before = lower[max(0, i - 3):i].strip()
		after = lower[i + 2:i + 15].strip()
		if re.match(r"(?:that|much|many|far|long|on|few|well|good|bad|great)\b", after):
			continue
		after_comma = bool(re.fullmatch(r",?\s*", before)) or before.endswith(",")
		if _at_sentence_start(i, before) or after_comma:
			mark(i)

	for m in _WELL.finditer(lower):
		i = m.start()
		if i in counted:
			continue
		before = lower[max(0, i - 5):i].strip()
		after = lower[i + 4:i + 15].strip()
		if after.startswith("-") or re.search(r"\bas\s*$", before) or re.match(r"(?:enough|done|known|being)\b", after):
			continue
		if _at_sentence_start(i, before):
			mark(i)

	for m in _RIGHT.finditer(lower):
		if m.start() not in counted:
			mark(m.start())

	for m in _I_THINK.finditer(lower):
		i = m.start()
		if i in counted:
			continue
		after = lower[i + 7:i + 25].strip()
		if re.match(r"(?:maybe|probably|perhaps|i guess|like|sort of|kind of)\b", after):
			mark(i)

	for m in _OKAY.finditer(lower):
		i = m.start()
		if i in counted:
			continue
		before = lower[max(0, i - 3):i].strip()
		if i == 0 or before == "" or re.search(r"[.!?,]\s*$", before):
			mark(i)

	for pattern in _OTHER_FILLERS:
		for m in pattern.finditer(lower):
			if m.start() not in counted:
				mark(m.start())

	return len(counted)


def calculate_filler_rate(filler_count: int, word_count: int) -> float:
	if word_count == 0:
		return 0.0
	return round(filler_count / word_count * 100, 2)


def calculate_wpm(word_count: int, duration_seconds: float) -> int:
	if duration_seconds <= 0:
		return 0
	return int(math.floor(word_count / duration_seconds * 60 + 0.5))


def detect_long_pauses(words: Optional[Sequence[WordTiming]], threshold_ms: Optional[float] = None) -> int:
	"""Number of inter-word gaps longer than ``threshold_ms`` (default 800 ms)."""
	if not words or len(words) < 2:
		return 0
	threshold = settings.long_pause_ms if threshold_ms is None else threshold_ms
	pauses = 0
	for prev, cur in zip(words, words[1:]):
		if (cur.start - prev.end) * 1000 > threshold:
			pauses += 1
	return pauses


def speech_duration(words: Optional[Sequence[WordTiming]]) -> float:
	if not words:
		return 0.0
	return max(0.0, words[-1].end)


def extract_metrics(transcript: str, words: Optional[Sequence[WordTiming]] = None) -> Metrics:
	word_count = count_words(transcript)
	if word_count == 0:
		return Metrics()
	filler_count = count_fillers(transcript)
	wpm = calculate_wpm(word_count, speech_duration(words)) if words else None
	return Metrics(
		word_count=word_count,
		filler_count=filler_count,
		filler_rate=calculate_filler_rate(filler_count, word_count),
		wpm=wpm,
		long_pauses=detect_long_pauses(words),
	)


# Ideal answer lengths (words) per question type
IDEAL_WORD_RANGES = {
	"DEFINITION": (20, 100),
	"BEHAVIORAL": (100, 350),
	"TECHNICAL": (60, 300),
	"SCENARIO": (80, 300),
	"PITCH": (40, 180),
}


def calculate_conciseness_score(
	word_count: int,
	filler_count: int,
	question_type: Optional[str] = None,
	question_answered: Optional[bool] = None,
	excessive_repetition: bool = False,
) -> float:
	"""0-10 score in half points: length fit, filler ratio, repetition, staying on topic."""
	low, high = IDEAL_WORD_RANGES.get((question_type or "BEHAVIORAL").upper(), IDEAL_WORD_RANGES["BEHAVIORAL"])
	score = 10.0

	if word_count < low:
		ratio = word_count / low
		if ratio < 0.3:
			score -= 6
		elif ratio < 0.5:
			score -= 4
		elif ratio < 0.75:
			score -= 2
		else:
			score -= 1
	elif word_count > high:
		excess = word_count / high
		if excess > 3:
			score -= 6
		elif excess > 2:
			score -= 4
		elif excess > 1.5:
			score -= 2
		else:
			score -= 1

	if word_count > 0:
		rate = filler_count / word_count * 100
		if rate > 8:
			score -= 3
		elif rate > 5:
			score -= 2
		elif rate > 3:
			score -= 1

	if excessive_repetition:
		score -= 2
	if question_answered is False:
		score -= 2

	return min(10.0, max(0.0, math.floor(score * 2 + 0.5) / 2))
