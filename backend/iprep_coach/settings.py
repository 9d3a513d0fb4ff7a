from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash-lite", validation_alias="GEMINI_MODEL")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="openai/gpt-4o-mini", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="iPrep Coach", validation_alias="OPENROUTER_TITLE")

	# Scoring request
	scoring_timeout_seconds: float = Field(default=30.0, validation_alias="SCORING_TIMEOUT_SECONDS")
	scoring_max_attempts: int = Field(default=2, validation_alias="SCORING_MAX_ATTEMPTS")
	# Delay before attempt n+1 is backoff * n
	scoring_backoff_seconds: float = Field(default=0.5, validation_alias="SCORING_BACKOFF_SECONDS")
	scoring_temperature: float = Field(default=0.25, validation_alias="SCORING_TEMPERATURE")
	scoring_top_p: float = Field(default=0.95, validation_alias="SCORING_TOP_P")
	scoring_max_output_tokens: int = Field(default=1000, validation_alias="SCORING_MAX_OUTPUT_TOKENS")

	# Transcript truncation (head + tail words kept in the prompt)
	transcript_max_words: int = Field(default=800, validation_alias="TRANSCRIPT_MAX_WORDS")
	transcript_head_words: int = Field(default=600, validation_alias="TRANSCRIPT_HEAD_WORDS")
	transcript_tail_words: int = Field(default=200, validation_alias="TRANSCRIPT_TAIL_WORDS")
	question_hint_max_chars: int = Field(default=300, validation_alias="QUESTION_HINT_MAX_CHARS")

	# Analysis cache
	cache_ttl_seconds: float = Field(default=24 * 60 * 60, validation_alias="CACHE_TTL_SECONDS")
	cache_capacity: int = Field(default=1000, validation_alias="CACHE_CAPACITY")
	cache_evict_count: int = Field(default=100, validation_alias="CACHE_EVICT_COUNT")

	# Delivery metrics
	long_pause_ms: float = Field(default=800, validation_alias="LONG_PAUSE_MS")

	# Learning analytics knobs (product tuning; keep defaults unless product signs off)
	weak_tag_threshold: float = Field(default=3.0, validation_alias="WEAK_TAG_THRESHOLD")
	strong_tag_threshold: float = Field(default=4.0, validation_alias="STRONG_TAG_THRESHOLD")
	low_score_threshold: int = Field(default=3, validation_alias="LOW_SCORE_THRESHOLD")
	focus_limit: int = Field(default=5, validation_alias="FOCUS_LIMIT")
	session_top_n: int = Field(default=10, validation_alias="SESSION_TOP_N")
	insight_top_n: int = Field(default=5, validation_alias="INSIGHT_TOP_N")
	majority_ratio: float = Field(default=0.5, validation_alias="MAJORITY_RATIO")
	small_sample_size: int = Field(default=2, validation_alias="SMALL_SAMPLE_SIZE")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
