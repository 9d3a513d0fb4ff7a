from __future__ import annotations
from typing import List, Optional

from .coaching import CoachingPreferences, focus_area_context, feedback_depth_instructions, level_expectation, style_prompt
from .metrics import count_words
from .schemas import Metrics
from .settings import settings


def truncate_transcript(
	transcript: str,
	*,
	max_words: Optional[int] = None,
	head_words: Optional[int] = None,
	tail_words: Optional[int] = None,
) -> str:
	"""Keep the opening and the conclusion of long answers.

	Answers over ``max_words`` keep the first ``head_words`` and last ``tail_words``
	words with a marker saying how many words were dropped.
	"""
	max_words = max_words or settings.transcript_max_words
	head_words = head_words or settings.transcript_head_words
	tail_words = tail_words or settings.transcript_tail_words
	words = transcript.split()
	if len(words) <= max_words:
		return transcript
	omitted = len(words) - head_words - tail_words
	head = " ".join(words[:head_words])
	tail = " ".join(words[-tail_words:])
	return f"{head}... [{omitted} words omitted] ...{tail}"


def build_system_prompt(preferences: CoachingPreferences) -> str:
	level = preferences.experience_level
	return f"""
Expert {level}-level interview coach. {style_prompt(preferences.style)}

Return STRICT JSON only, no markdown, following exactly this schema:
{{
  "questionAnswered": boolean,
  "answerQuality": integer 0-5,
  "whatWasRight": ["item1", "item2", "item3"],
  "betterWording": ["suggestion1", "suggestion2"],
  "dontForget": ["point1"] or [],
  "starScore": integer 0-5,
  "impactScore": integer 0-5,
  "clarityScore": integer 0-5,
  "technicalAccuracy": integer 0-5,
  "terminologyUsage": integer 0-5,
  "tips": ["tip1", "tip2", "tip3", "tip4", "tip5"]
}}

Formatting:
- betterWording (0-3 items): grammar or English fixes use "You said: '[exact quote]'. Better: '[fix]'". Terminology fixes use "Instead of '[term]', say '[precise term]'". Other improvements: one brief sentence. Empty if nothing needs improving.
- dontForget (0-4 items): if Expected Answer/Key Points are provided, list ONLY the specific key points that were missing or not adequately covered. Empty [] if all key points were covered or no expected answer was provided. No generic reminders.
- whatWasRight (2-4 items): specific correct points from the answer.
- tips (exactly 5): actionable and concise. {feedback_depth_instructions(preferences.feedback_depth)}

Scoring bands (0-5):
- answerQuality: 5=complete, 4=good, 3=partial, 2=tangential, 1=barely, 0=none
- technicalAccuracy: 5=deep, 4=good, 3=basic, 2=superficial, 1=errors, 0=wrong
- terminologyUsage: 5=precise, 4=good, 3=mixed, 2=generic, 1=few, 0=none
- clarityScore: 5=excellent, 4=good, 3=adequate, 2=unclear, 1=confusing, 0=incoherent
- starScore: 5=all of Situation/Task/Action/Result balanced, 3=one part weak or missing, 1=mostly unstructured, 0=rambling
- impactScore: 5=multiple specific metrics and outcomes, 3=some metrics but vague, 1=purely qualitative, 0=no impact
- starScore and impactScore apply to behavioral/STAR questions; set both to 3 for pure technical questions.

Context: {", ".join(preferences.priorities[:3])}. {focus_area_context(list(preferences.focus_areas))} Role: {preferences.role}. Level expectation: {level_expectation(level)}.
""".strip()


def build_user_prompt(
	transcript: str,
	*,
	question_text: Optional[str] = None,
	question_hint: Optional[str] = None,
	question_tags: Optional[List[str]] = None,
	metrics: Optional[Metrics] = None,
) -> str:
	word_count = metrics.word_count if metrics and metrics.word_count else count_words(transcript)
	filler_rate = metrics.filler_rate if metrics else 0.0
	wpm = metrics.wpm if metrics and metrics.wpm is not None else 0

	lines: List[str] = []
	if question_text:
		lines.append(f"Q: {question_text}")
	if question_hint:
		limit = settings.question_hint_max_chars
		hint = question_hint if len(question_hint) <= limit else question_hint[:limit] + "..."
		lines.append(f"Expected Answer/Key Points: {hint}")
		lines.append(
			"Compare the answer against these key points. For dontForget, list which of them were "
			"missing or not adequately covered."
		)
	if question_tags:
		lines.append(f"Tags: {', '.join(question_tags[:3])}")
	lines.append("")
	lines.append(f"Answer: {truncate_transcript(transcript)}")
	metrics_line = f"Metrics: {word_count}w, {filler_rate:.1f}% fillers, {wpm}wpm"
	if metrics and metrics.long_pauses:
		metrics_line += f", {metrics.long_pauses} long pauses"
	lines.append(metrics_line)
	return "\n".join(lines) + "\n"
