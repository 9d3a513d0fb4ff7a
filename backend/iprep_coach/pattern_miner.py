"""
Mine a session's scored answers for recurring problems.

Three collections come out of one pass over the session:

* common mistakes, derived from low sub-scores and from wording suggestions that
  do not name a concrete term swap;
* terminology corrections, parsed from ``better_wording`` suggestions by an ordered
  list of ``CorrectionRule`` objects (first match wins);
* forgotten key points, from ``dont_forget`` entries keyed by their normalised text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from .schemas import CommonMistake, ForgottenPoint, SessionItem, TerminologyCorrection
from .settings import settings

MAX_EXAMPLES = 3
EXAMPLE_PREVIEW_CHARS = 100
PRECISE_WORDING = "Could use more precise wording"


@dataclass(frozen=True)
class CorrectionRule:
	"""One recognised phrasing of a terminology correction.

	``pattern`` captures two groups. With ``swap`` the corrected term comes first.
	"""

	name: str
	pattern: Pattern[str]
	swap: bool = False

	def __call__(self, suggestion: str) -> Optional[Tuple[str, str]]:
		match = self.pattern.search(suggestion)
		if not match:
			return None
		first, second = (match.group(1) or "").strip(), (match.group(2) or "").strip()
		return (second, first) if self.swap else (first, second)


CORRECTION_RULES: List[CorrectionRule] = [
	CorrectionRule(
		"instead_of_say",
		re.compile(r"""instead of ['"]([^'"]+)['"](?:,|\.)?\s*(?:say|use|better:)\s*['"]([^'"]+)['"]""", re.IGNORECASE),
	),
	CorrectionRule(
		"you_said_better",
		re.compile(r"""you said:\s*['"]([^'"]+)['"]\s*\.?\s*better:\s*['"]([^'"]+)['"]""", re.IGNORECASE),
	),
	CorrectionRule(
		"better_instead_of",
		re.compile(
			r"""better:\s*['"]([^'"]+)['"]\s*(?:\(\s*(?:instead of|rather than)?|instead of|rather than)\s*['"]([^'"]+)['"]""",
			re.IGNORECASE,
		),
		swap=True,
	),
]


def match_correction(suggestion: str, rules: Iterable[CorrectionRule] = CORRECTION_RULES) -> Optional[Tuple[str, str]]:
	"""Return ``(incorrect, correct)`` from the first rule that matches, else None."""
	for rule in rules:
		found = rule(suggestion)
		if found is not None:
			return found
	return None


# (pattern, example label, SessionItem attribute)
SCORE_MISTAKES: List[Tuple[str, str, str]] = [
	("Lacks technical depth or accuracy", "Technical accuracy", "technical_accuracy"),
	("Uses generic terms instead of domain-specific language", "Terminology usage", "terminology_usage"),
	("Unclear structure or organization", "Clarity score", "clarity_score"),
	("Missing specific metrics or impact statements", "Impact score", "impact_score"),
	("Incomplete STAR structure (missing Situation/Task/Action/Result)", "STAR score", "star_score"),
]
UNANSWERED_MISTAKE = "Answer doesn't fully address the question"


@dataclass
class _Counter:
	frequency: int = 0
	examples: List[str] = field(default_factory=list)
	question_ids: List[str] = field(default_factory=list)
	tags: List[str] = field(default_factory=list)

	def hit(self, *, example: Optional[str] = None, question_id: Optional[str] = None, tags: Iterable[str] = ()) -> None:
		self.frequency += 1
		if example is not None and example not in self.examples and len(self.examples) < MAX_EXAMPLES:
			self.examples.append(example)
		if question_id is not None and question_id not in self.question_ids:
			self.question_ids.append(question_id)
		for tag in tags:
			if tag not in self.tags:
				self.tags.append(tag)


@dataclass
class MinedPatterns:
	common_mistakes: List[CommonMistake] = field(default_factory=list)
	frequently_forgotten_points: List[ForgottenPoint] = field(default_factory=list)
	frequently_misused_terms: List[TerminologyCorrection] = field(default_factory=list)


def _ranked(counters: Dict[str, _Counter], top_n: int) -> List[Tuple[str, _Counter]]:
	# sorted() is stable, so equal frequencies keep first-seen order
	return sorted(counters.items(), key=lambda kv: -kv[1].frequency)[:top_n]


def mine_session(items: List[SessionItem], *, top_n: Optional[int] = None) -> MinedPatterns:
	top_n = top_n or settings.session_top_n
	threshold = settings.low_score_threshold
	mistakes: Dict[str, _Counter] = {}
	terms: Dict[str, _Counter] = {}
	term_labels: Dict[str, Tuple[str, str]] = {}
	forgotten: Dict[str, _Counter] = {}

	def mistake(pattern: str, example: str) -> None:
		mistakes.setdefault(pattern, _Counter()).hit(example=example)

	for item in items:
		for pattern, label, attr in SCORE_MISTAKES:
			value = getattr(item, attr)
			if value is not None and value < threshold:
				mistake(pattern, f"{label}: {value}/5")
		if item.question_answered is False:
			mistake(UNANSWERED_MISTAKE, "Question not fully answered")

	for item in items:
		for suggestion in item.better_wording:
			found = match_correction(suggestion)
			if found is not None:
				incorrect, correct = found
				if incorrect and correct and incorrect != correct:
					key = f"{incorrect.lower()} -> {correct.lower()}"
					term_labels.setdefault(key, (incorrect, correct))
					terms.setdefault(key, _Counter()).hit(
						example=suggestion, question_id=item.question_id, tags=item.question_tags
					)
					continue
				mistake(PRECISE_WORDING, suggestion[:EXAMPLE_PREVIEW_CHARS])
				continue
			lowered = suggestion.lower()
			if "instead of" in lowered or "better:" in lowered:
				mistake(PRECISE_WORDING, suggestion[:EXAMPLE_PREVIEW_CHARS])

	for item in items:
		for point in item.dont_forget:
			normalized = point.strip().lower()
			if not normalized:
				continue
			forgotten.setdefault(normalized, _Counter()).hit(question_id=item.question_id, tags=item.question_tags)

	return MinedPatterns(
		common_mistakes=[
			CommonMistake(pattern=pattern, frequency=c.frequency, examples=list(c.examples))
			for pattern, c in _ranked(mistakes, top_n)
		],
		frequently_forgotten_points=[
			ForgottenPoint(point=point, frequency=c.frequency, question_ids=list(c.question_ids), tags=list(c.tags))
			for point, c in _ranked(forgotten, top_n)
		],
		frequently_misused_terms=[
			TerminologyCorrection(
				incorrect_term=term_labels[key][0],
				correct_term=term_labels[key][1],
				frequency=c.frequency,
				question_ids=list(c.question_ids),
				tags=list(c.tags),
				examples=list(c.examples),
			)
			for key, c in _ranked(terms, top_n)
		],
	)
