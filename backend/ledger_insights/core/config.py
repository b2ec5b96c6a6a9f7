from functools import lru_cache
import json
from typing import Annotated, Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_list_value(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


# Comma-separated env values; skips the JSON decoding pydantic-settings applies to lists.
CsvList = Annotated[list[str], NoDecode]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )

    log_level: str = "INFO"
    docs_enabled: bool = True
    openapi_enabled: bool = True
    expose_error_details: bool = False

    cors_allow_origins: CsvList = Field(default_factory=list)
    cors_allow_methods: CsvList = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: CsvList = Field(default_factory=lambda: ["Content-Type", "Accept"])

    # --- Inference service ---
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY", "gemini_api_key"),
    )
    ai_analysis_provider: str = "gemini"
    ai_analysis_model: str = "gemini-3-pro-preview"
    ai_allowed_providers: CsvList = Field(default_factory=lambda: ["gemini", "mock"])
    ai_allowed_models: dict[str, list[str]] = Field(default_factory=dict)
    enable_ai_overrides: bool = False
    ai_thinking_budget_text: int = Field(default=2048, ge=0)
    ai_thinking_budget_binary: int = Field(default=3000, ge=0)
    ai_temperature: float = 0.2
    ai_max_output_tokens: int = 8192
    # None = no client-side timeout; rely on the transport/service limits.
    ai_timeout_seconds: Optional[float] = None
    ai_debug_store_raw: bool = False

    # --- Ingestion ---
    analysis_text_max_chars: int = Field(default=30_000, gt=0)
    analysis_binary_max_bytes: Optional[int] = None
    analysis_binary_media_types: CsvList = Field(default_factory=lambda: ["application/pdf"])
    analysis_accepted_media_types: CsvList = Field(
        default_factory=lambda: ["text/csv", "text/plain", "application/pdf"]
    )
    analysis_accepted_extensions: CsvList = Field(default_factory=lambda: [".csv", ".txt", ".pdf"])

    # --- Validation ---
    analysis_category_tolerance: float = Field(default=1.0, ge=0)
    analysis_category_policy: Literal["rescale", "reject"] = "rescale"

    # --- Lifecycle ---
    analysis_progress_interval_seconds: float = Field(default=3.0, gt=0)
    analysis_failure_message: str = "Analysis failed. Please ensure the file is a clear bank statement."

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        "ai_allowed_providers",
        "analysis_binary_media_types",
        "analysis_accepted_media_types",
        "analysis_accepted_extensions",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return _parse_list_value(value)
        return value

    @field_validator("ai_allowed_providers", "analysis_binary_media_types", "analysis_accepted_media_types")
    @classmethod
    def _lowercase(cls, value: list[str]) -> list[str]:
        return [item.lower() for item in value]

    @field_validator("ai_allowed_models", mode="before")
    @classmethod
    def _parse_models(cls, value):
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            parsed = json.loads(value)
            if not isinstance(parsed, dict):
                raise ValueError("AI_ALLOWED_MODELS must be a JSON object")
            return parsed
        return value

    @property
    def analysis_accepted_extensions_normalized(self) -> list[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in self.analysis_accepted_extensions]


@lru_cache
def get_settings() -> Settings:
    return Settings()
