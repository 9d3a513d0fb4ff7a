"""
Transcript-only delivery and knowledge signals.

Every score starts from a neutral base and moves by bounded adjustments driven by
measurable ratios in the text (and word timings when available), then is rounded
half-up and clamped to 0-5. Nothing here calls out or raises: sparse or empty input
drifts toward the neutral base instead.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .schemas import HeuristicScores, Metrics, WordTiming


DEFAULT_DOMAIN = "Software Engineering"

DOMAIN_TERMS: Dict[str, List[str]] = {
	"Software Engineering": [
		"API", "endpoint", "microservice", "database", "cache", "queue", "load balancer",
		"scalability", "performance", "latency", "throughput", "architecture", "design pattern",
		"algorithm", "data structure", "OOP", "functional programming", "test coverage",
		"CI/CD", "deployment", "monitoring", "logging", "debugging", "refactoring",
		"code review", "version control", "Git", "repository", "branch", "merge",
		"pull request", "agile", "sprint", "scrum", "kanban", "stakeholder",
	],
	"System Design": [
		"scalability", "reliability", "availability", "consistency", "partition tolerance",
		"CAP theorem", "distributed system", "replication", "sharding", "caching",
		"CDN", "database", "SQL", "NoSQL", "index", "query optimization",
		"load balancing", "horizontal scaling", "vertical scaling", "caching strategy",
		"message queue", "pub/sub", "event-driven", "microservices", "monolith",
		"API gateway", "service mesh", "containerization", "orchestration",
	],
	"Frontend": [
		"React", "Vue", "Angular", "component", "state", "props", "hook", "lifecycle",
		"rendering", "virtual DOM", "SSR", "CSR", "hydration", "bundle", "webpack",
		"accessibility", "a11y", "responsive", "mobile-first", "progressive enhancement",
		"CSS", "SASS", "styled-components", "CSS-in-JS", "animation", "transition",
		"performance", "lazy loading", "code splitting", "tree shaking", "minification",
	],
}

_SENTENCE_MARKS = re.compile(r"[.!?]+")
_TRAILING_OFF = re.compile(r"\.\.\.|--|—")
_STRONG_STATEMENT = re.compile(
	r"\b(I|We|The team)\s+(achieved|delivered|improved|reduced|increased|built|created|solved)",
	re.IGNORECASE,
)
_HEDGES = re.compile(r"\b(maybe|perhaps|I think|I guess|sort of|kind of|probably|I'm not sure)", re.IGNORECASE)
_EMPHASIS_WORDS = re.compile(
	r"\b(really|very|absolutely|definitely|clearly|significantly|dramatically|substantially|"
	r"particularly|especially|notably|crucially|importantly|essentially|fundamentally)",
	re.IGNORECASE,
)
_CONTRACTIONS = re.compile(
	r"\b(I'm|I've|I'll|I'd|we're|we've|we'll|don't|can't|won't|isn't|aren't|wasn't|weren't|"
	r"hasn't|haven't|doesn't|didn't|wouldn't|couldn't|shouldn't)",
	re.IGNORECASE,
)
_ACTION_VERBS = re.compile(
	r"\b(achieved|delivered|improved|reduced|increased|optimized|scaled|built|created|solved|"
	r"implemented|designed|developed|managed|led|executed|completed|accomplished)",
	re.IGNORECASE,
)
_NUMBERS = re.compile(r"\b\d+(?:\.\d+)?%?\b")
_TECH_TERMS = re.compile(r"\b(API|SQL|HTTP|REST|GraphQL|AWS|Azure|GCP|Kubernetes|Docker|React|Vue|Angular)\b", re.IGNORECASE)
_EMPHASIS_VERBS = re.compile(
	r"\b(achieved|delivered|improved|reduced|increased|optimized|scaled|built|created|solved|implemented)\b",
	re.IGNORECASE,
)
_ACTIVE_VOICE = re.compile(r"\b(I|we|the team|our team)\s+\w+ed\b", re.IGNORECASE)
_METRIC_UNITS = re.compile(
	r"\b(seconds|milliseconds|requests|users|queries|transactions|errors|uptime|latency|throughput|RPS|QPS|TPS)\b",
	re.IGNORECASE,
)
_EXAMPLE_MARKERS = re.compile(r"\b(for example|for instance|specifically|such as|like|including)\b", re.IGNORECASE)
_CAUSAL = re.compile(r"\b(because|since|although|however|therefore|furthermore|additionally|moreover)\b", re.IGNORECASE)
_PARENTHETICAL = re.compile(r"\([^)]+\)")


def to_band(score: float) -> int:
	"""Round half-up and clamp to the 0-5 band."""
	return min(5, max(0, int(math.floor(score + 0.5))))


def _variance(values: Sequence[float]) -> float:
	if not values:
		return 0.0
	mean = sum(values) / len(values)
	return sum((v - mean) ** 2 for v in values) / len(values)


def _sentence_lengths(transcript: str) -> List[int]:
	lengths = [len(part.split()) for part in _SENTENCE_MARKS.split(transcript)]
	return [n for n in lengths if n > 0]


# ---------------------------------------------------------------------------
# Confidence
# ---------------------------------------------------------------------------

def _confidence_raw(transcript: str, filler_count: int, word_count: int, long_pauses: int) -> float:
	score = 3.0

	sentence_count = len(_SENTENCE_MARKS.findall(transcript))
	if sentence_count > 0 and word_count > 0:
		avg_words = word_count / sentence_count
		# complete thoughts
		if 10 <= avg_words <= 25:
			score += 0.5
		if len(_TRAILING_OFF.findall(transcript)) > sentence_count * 0.3:
			score -= 0.5

	filler_rate = filler_count / word_count * 100 if word_count > 0 else 0.0
	if filler_rate < 2:
		score += 0.5
	elif filler_rate > 5:
		score -= 0.5

	if long_pauses == 0:
		score += 0.5
	elif long_pauses > 3:
		score -= 0.5

	if _STRONG_STATEMENT.search(transcript):
		score += 0.3

	if len(_HEDGES.findall(transcript)) > 2:
		score -= 0.5

	return score


def analyze_confidence(transcript: str, filler_count: int, word_count: int, long_pauses: int) -> int:
	return to_band(_confidence_raw(transcript, filler_count, word_count, long_pauses))


# ---------------------------------------------------------------------------
# Intonation / expressiveness
# ---------------------------------------------------------------------------

def _intonation_raw(transcript: str, word_count: int) -> float:
	score = 2.5
	factors = 0

	sentences = len(_SENTENCE_MARKS.findall(transcript))
	if sentences > 0:
		factors += 1
		ratio = (transcript.count("!") + transcript.count("?")) / sentences
		if ratio >= 0.15:
			score += 1.5
		elif ratio >= 0.08:
			score += 1.0
		elif ratio >= 0.03:
			score += 0.5
		elif ratio == 0 and sentences >= 3:
			score -= 0.8

	lengths = _sentence_lengths(transcript)
	if len(lengths) > 2:
		factors += 1
		avg = sum(lengths) / len(lengths)
		normalized = _variance(lengths) / (avg * avg)
		if normalized >= 0.5:
			score += 1.5
		elif normalized >= 0.3:
			score += 1.0
		elif normalized >= 0.15:
			score += 0.5
		elif normalized < 0.05:
			score -= 1.0

	if word_count > 0:
		factors += 1
		ratio = len(_EMPHASIS_WORDS.findall(transcript)) / word_count
		if ratio >= 0.03:
			score += 1.0
		elif ratio >= 0.015:
			score += 0.7
		elif ratio >= 0.005:
			score += 0.4

		factors += 1
		ratio = len(_CONTRACTIONS.findall(transcript)) / word_count
		if ratio >= 0.04:
			score += 0.8
		elif ratio >= 0.02:
			score += 0.5
		elif ratio >= 0.01:
			score += 0.3

		factors += 1
		ratio = len(_ACTION_VERBS.findall(transcript)) / word_count
		if ratio >= 0.02:
			score += 0.7
		elif ratio >= 0.01:
			score += 0.4

	numbers = len(_NUMBERS.findall(transcript))
	if word_count > 0 and numbers > 0:
		factors += 1
		ratio = numbers / word_count
		if ratio >= 0.02:
			score += 0.5
		elif ratio >= 0.01:
			score += 0.3

	# sparse short answers: do not extrapolate
	if factors < 3 and word_count < 50:
		score = min(score, 3.5)

	return score


def analyze_intonation(transcript: str, word_count: int) -> int:
	return to_band(_intonation_raw(transcript, word_count))


# ---------------------------------------------------------------------------
# Timing-aware refinements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PausePatterns:
	natural_pauses: int
	awkward_pauses: int
	# 0-5, higher when pauses at boundaries are evenly sized
	pause_distribution: int


def analyze_pause_patterns(words: Optional[Sequence[WordTiming]]) -> PausePatterns:
	if not words or len(words) < 2:
		return PausePatterns(0, 0, 3)

	pauses = []
	for prev, cur in zip(words, words[1:]):
		gap = (cur.start - prev.end) * 1000
		if gap > 200:
			natural = bool(re.search(r"[.!?]$", prev.word)) or gap > 500
			pauses.append((gap, natural))

	natural_gaps = [gap for gap, natural in pauses if natural]
	awkward = sum(1 for gap, natural in pauses if not natural and gap > 800)
	distribution = max(0.0, min(5.0, 5 - _variance(natural_gaps) / 100000))
	return PausePatterns(len(natural_gaps), awkward, to_band(distribution))


def analyze_confidence_with_timing(
	transcript: str,
	filler_count: int,
	word_count: int,
	long_pauses: int,
	words: Optional[Sequence[WordTiming]],
) -> int:
	score = _confidence_raw(transcript, filler_count, word_count, long_pauses)
	if words:
		patterns = analyze_pause_patterns(words)
		if patterns.natural_pauses > patterns.awkward_pauses:
			score += 0.5
		elif patterns.awkward_pauses > patterns.natural_pauses:
			score -= 0.5
		score += patterns.pause_distribution / 5
	return to_band(score)


def analyze_intonation_with_timing(transcript: str, word_count: int, words: Optional[Sequence[WordTiming]]) -> int:
	score = _intonation_raw(transcript, word_count)
	if words:
		durations = [w.end - w.start for w in words]
		avg = sum(durations) / len(durations)
		if avg > 0:
			normalized = _variance(durations) / (avg * avg)
			# moderate spread in word duration reads as emphasis
			if 0.1 <= normalized <= 0.4:
				score += 0.5
			elif normalized < 0.05:
				score -= 0.5
	return to_band(score)


# ---------------------------------------------------------------------------
# Voice-quality proxies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VoiceQuality:
	articulation: int
	volume_consistency: int
	pacing: int
	emphasis: int
	engagement: int


def analyze_voice_quality(
	transcript: str,
	words: Optional[Sequence[WordTiming]],
	word_count: int,
	wpm: Optional[int] = None,
) -> VoiceQuality:
	tokens = transcript.split()
	if tokens:
		lengths = [len(t) for t in tokens]
		avg_len = sum(lengths) / len(lengths)
		articulation = to_band(3 + (1 if avg_len > 4 else 0) + (1 if _variance(lengths) > 2 else 0))
	else:
		articulation = 3

	# speakers who trail off produce uneven sentences
	sentence_lengths = _sentence_lengths(transcript)
	length_variance = _variance(sentence_lengths) if len(sentence_lengths) > 1 else 0.0
	volume_consistency = to_band(5 - length_variance / 10)

	pacing = 3.0
	if wpm is not None:
		if 120 <= wpm <= 150:
			pacing += 1
		elif wpm < 100 or wpm > 180:
			pacing -= 1
	if words:
		pacing += analyze_pause_patterns(words).pause_distribution / 5

	emphasis_count = (
		len(_NUMBERS.findall(transcript)) + len(_TECH_TERMS.findall(transcript)) + len(_EMPHASIS_VERBS.findall(transcript))
	)
	emphasis_ratio = emphasis_count / word_count if word_count > 0 else 0.0

	questions = transcript.count("?")
	active = len(_ACTIVE_VOICE.findall(transcript))
	varied = len(sentence_lengths) / max(sentence_lengths) if len(sentence_lengths) > 1 else 0.0
	engagement = 3 + (0.5 if questions > 0 else 0) + (0.5 if active > 2 else 0) + (0.5 if varied > 0.3 else 0)

	return VoiceQuality(
		articulation=articulation,
		volume_consistency=volume_consistency,
		pacing=to_band(pacing),
		emphasis=to_band(3 + emphasis_ratio * 20),
		engagement=to_band(engagement),
	)


# ---------------------------------------------------------------------------
# Technical-knowledge proxies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TechnicalKnowledge:
	terminology: int
	specificity: int
	depth: int
	matched_terms: List[str]


def matched_domain_terms(transcript: str, domain: str = DEFAULT_DOMAIN) -> List[str]:
	terms = DOMAIN_TERMS.get(domain) or DOMAIN_TERMS[DEFAULT_DOMAIN]
	return [t for t in terms if re.search(r"\b" + re.escape(t) + r"\b", transcript, re.IGNORECASE)]


def analyze_technical_knowledge(transcript: str, domain: str = DEFAULT_DOMAIN) -> TechnicalKnowledge:
	terms = DOMAIN_TERMS.get(domain) or DOMAIN_TERMS[DEFAULT_DOMAIN]
	matched = matched_domain_terms(transcript, domain)
	terminology = to_band(len(matched) / len(terms) * 10)

	specificity = to_band(
		2
		+ (1 if _NUMBERS.search(transcript) else 0)
		+ (1 if _METRIC_UNITS.search(transcript) else 0)
		+ (1 if _EXAMPLE_MARKERS.search(transcript) else 0)
	)

	complex_sentences = 0
	for sentence in _SENTENCE_MARKS.split(transcript):
		if len(sentence.split()) > 15 and (_CAUSAL.search(sentence) or _PARENTHETICAL.search(sentence)):
			complex_sentences += 1
	depth = to_band(2 + (1 if complex_sentences > 2 else 0) + (1 if len(matched) > 5 else 0) + (1 if specificity > 3 else 0))

	return TechnicalKnowledge(terminology=terminology, specificity=specificity, depth=depth, matched_terms=matched)


def analyze_heuristics(
	transcript: str,
	metrics: Metrics,
	words: Optional[Sequence[WordTiming]] = None,
	domain: str = DEFAULT_DOMAIN,
) -> HeuristicScores:
	text = transcript or ""
	if words:
		confidence = analyze_confidence_with_timing(text, metrics.filler_count, metrics.word_count, metrics.long_pauses, words)
		intonation = analyze_intonation_with_timing(text, metrics.word_count, words)
	else:
		confidence = analyze_confidence(text, metrics.filler_count, metrics.word_count, metrics.long_pauses)
		intonation = analyze_intonation(text, metrics.word_count)
	voice = analyze_voice_quality(text, words, metrics.word_count, metrics.wpm)
	knowledge = analyze_technical_knowledge(text, domain)
	return HeuristicScores(
		confidence=confidence,
		intonation=intonation,
		articulation=voice.articulation,
		volume_consistency=voice.volume_consistency,
		pacing=voice.pacing,
		emphasis=voice.emphasis,
		engagement=voice.engagement,
		terminology=knowledge.terminology,
		specificity=knowledge.specificity,
		depth=knowledge.depth,
	)
