from __future__ import annotations
from typing import Dict, List, Literal

from pydantic import BaseModel, Field


CoachingStyle = Literal["encouraging", "strict", "balanced"]
ExperienceLevel = Literal["junior", "mid", "senior", "lead"]
FeedbackDepth = Literal["brief", "detailed", "comprehensive"]
FocusArea = Literal["technical", "communication", "leadership", "all"]


class CoachingPreferences(BaseModel):
	style: CoachingStyle = "balanced"
	experience_level: ExperienceLevel = "senior"
	feedback_depth: FeedbackDepth = "detailed"
	focus_areas: List[FocusArea] = Field(default_factory=lambda: ["all"])
	role: str = "Senior Design Engineer / Design Engineering Leader"
	priorities: List[str] = Field(
		default_factory=lambda: ["clarity", "impact statements", "technical accuracy", "resilience", "performance"]
	)


DEFAULT_PREFERENCES = CoachingPreferences()


_STYLE_PROMPTS: Dict[str, str] = {
	"encouraging": (
		"You are an encouraging, supportive coach. Focus on what the candidate did well first, then gently "
		"suggest improvements. Use positive language and frame feedback as growth opportunities."
	),
	"strict": (
		"You are a rigorous, no-nonsense coach. Be direct and honest about weaknesses. Hold candidates to high "
		"standards. Point out specific mistakes clearly."
	),
	"balanced": (
		"You are a balanced, professional coach. Acknowledge strengths while being clear about areas for "
		"improvement. Be constructive and specific."
	),
}

_LEVEL_EXPECTATIONS: Dict[str, str] = {
	"junior": "basics, fundamentals, learning",
	"mid": "solid knowledge, some metrics",
	"senior": "deep expertise, strong metrics",
	"lead": "strategic vision, cross-team leadership",
}

_DEPTH_INSTRUCTIONS: Dict[str, str] = {
	"brief": "Provide concise, high-level feedback. Tips should be 10-15 words each.",
	"detailed": "Provide detailed, actionable feedback. Tips should be 15-20 words each and cite the transcript.",
	"comprehensive": (
		"Provide comprehensive, in-depth feedback. Tips should be 20-25 words each with alternative approaches."
	),
}


def style_prompt(style: str) -> str:
	return _STYLE_PROMPTS.get(style, _STYLE_PROMPTS["balanced"])


def level_expectation(level: str) -> str:
	return _LEVEL_EXPECTATIONS.get(level, _LEVEL_EXPECTATIONS["senior"])


def feedback_depth_instructions(depth: str) -> str:
	return _DEPTH_INSTRUCTIONS.get(depth, _DEPTH_INSTRUCTIONS["detailed"])


def focus_area_context(areas: List[str]) -> str:
	if not areas or "all" in areas:
		return "Assess all aspects: technical depth, communication clarity, leadership examples, and problem-solving approach."
	contexts = []
	if "technical" in areas:
		contexts.append("technical depth, accuracy, and use of appropriate terminology")
	if "communication" in areas:
		contexts.append("clarity, structure, pacing, and ability to explain complex concepts")
	if "leadership" in areas:
		contexts.append("leadership examples, team influence, decision-making, and mentorship")
	return "Focus assessment on: " + "; ".join(contexts) + "."


class PracticePreset(BaseModel):
	label: str
	description: str
	overrides: Dict[str, object] = Field(default_factory=dict)


PRACTICE_PRESETS: Dict[str, PracticePreset] = {
	"interview": PracticePreset(
		label="Interview Prep",
		description="STAR-focused scoring, behavioral question emphasis",
		overrides={
			"focus_areas": ["all"],
			"priorities": ["STAR structure", "impact statements", "specific examples", "clear outcomes", "metrics"],
		},
	),
	"technical": PracticePreset(
		label="Technical Study",
		description="Terminology and accuracy weighted higher",
		overrides={
			"focus_areas": ["technical"],
			"priorities": ["technical accuracy", "terminology usage", "depth of knowledge", "clear explanations", "examples"],
		},
	),
	"pitch": PracticePreset(
		label="Investor Pitch",
		description="Impact, clarity and confidence weighted higher",
		overrides={
			"focus_areas": ["communication", "leadership"],
			"priorities": ["confidence", "impact statements", "clarity", "conciseness", "persuasiveness"],
		},
	),
	"meeting": PracticePreset(
		label="Meeting Prep",
		description="Clarity and structure, conciseness scoring",
		overrides={
			"focus_areas": ["communication"],
			"priorities": ["clarity", "structure", "conciseness", "actionable points", "audience awareness"],
		},
	),
	"custom": PracticePreset(label="Custom", description="Default balanced settings"),
}


def preferences_for_preset(preset: str, base: CoachingPreferences = DEFAULT_PREFERENCES) -> CoachingPreferences:
	overrides = PRACTICE_PRESETS[preset].overrides if preset in PRACTICE_PRESETS else {}
	return base.model_copy(update=overrides)
