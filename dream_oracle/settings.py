from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    service_name: str = Field("dream-oracle", validation_alias=AliasChoices("SERVICE_NAME"))
    service_version: str = Field("0.1.0", validation_alias=AliasChoices("SERVICE_VERSION"))
    node_name: str = Field("unknown", validation_alias=AliasChoices("NODE_NAME", "HOSTNAME"))
    log_level: str = Field("INFO", validation_alias=AliasChoices("LOG_LEVEL"))
    port: int = Field(8630, validation_alias=AliasChoices("PORT"))
    cors_allow_origins: str = Field("*", validation_alias=AliasChoices("CORS_ALLOW_ORIGINS"))

    # --- Text provider ---
    openai_api_key: Optional[str] = Field(None, validation_alias=AliasChoices("OPENAI_API_KEY"))
    dream_llm_base_url: str = Field(
        "https://api.openai.com/v1",
        validation_alias=AliasChoices("DREAM_LLM_BASE_URL"),
    )
    dream_llm_model: str = Field("gpt-5-mini-2025-08-07", validation_alias=AliasChoices("DREAM_LLM_MODEL"))
    dream_llm_temperature: float = Field(0.7, validation_alias=AliasChoices("DREAM_LLM_TEMPERATURE"))
    dream_llm_max_tokens: int = Field(2000, validation_alias=AliasChoices("DREAM_LLM_MAX_TOKENS"))
    dream_llm_timeout_secs: float = Field(30.0, validation_alias=AliasChoices("DREAM_LLM_TIMEOUT_SECS"))
    dream_llm_max_attempts: int = Field(2, validation_alias=AliasChoices("DREAM_LLM_MAX_ATTEMPTS"))
    dream_llm_backoff_secs: float = Field(1.0, validation_alias=AliasChoices("DREAM_LLM_BACKOFF_SECS"))

    # --- Image provider ---
    dream_image_base_url: str = Field(
        "https://api.openai.com/v1",
        validation_alias=AliasChoices("DREAM_IMAGE_BASE_URL"),
    )
    dream_image_model: str = Field("dall-e-3", validation_alias=AliasChoices("DREAM_IMAGE_MODEL"))
    dream_image_size: str = Field("1024x1024", validation_alias=AliasChoices("DREAM_IMAGE_SIZE"))
    dream_image_quality: str = Field("standard", validation_alias=AliasChoices("DREAM_IMAGE_QUALITY"))
    dream_image_timeout_secs: float = Field(60.0, validation_alias=AliasChoices("DREAM_IMAGE_TIMEOUT_SECS"))
    dream_image_download_timeout_secs: float = Field(
        30.0,
        validation_alias=AliasChoices("DREAM_IMAGE_DOWNLOAD_TIMEOUT_SECS"),
    )
    dream_image_upload_timeout_secs: float = Field(
        30.0,
        validation_alias=AliasChoices("DREAM_IMAGE_UPLOAD_TIMEOUT_SECS"),
    )
    dream_image_bucket: str = Field("dream-images", validation_alias=AliasChoices("DREAM_IMAGE_BUCKET"))
    dream_image_on_fallback: bool = Field(False, validation_alias=AliasChoices("DREAM_IMAGE_ON_FALLBACK"))

    # --- Collaborators (auth, storage, records) ---
    supabase_url: Optional[str] = Field(None, validation_alias=AliasChoices("SUPABASE_URL"))
    supabase_anon_key: Optional[str] = Field(None, validation_alias=AliasChoices("SUPABASE_ANON_KEY"))
    dream_auth_timeout_secs: float = Field(10.0, validation_alias=AliasChoices("DREAM_AUTH_TIMEOUT_SECS"))
    dream_record_timeout_secs: float = Field(10.0, validation_alias=AliasChoices("DREAM_RECORD_TIMEOUT_SECS"))
    dream_records_table: str = Field("dreams", validation_alias=AliasChoices("DREAM_RECORDS_TABLE"))

    @property
    def cors_origins(self) -> List[str]:
        return [x.strip() for x in self.cors_allow_origins.split(",") if x.strip()]

    @field_validator("dream_llm_max_attempts")
    @classmethod
    def clamp_attempts(cls, v: int) -> int:
        return max(1, v)

    def missing_credentials(self) -> List[str]:
        """Names of required credentials that are not configured."""
        missing = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_anon_key:
            missing.append("SUPABASE_ANON_KEY")
        return missing


@lru_cache
def get_settings() -> Settings:
    return Settings()
