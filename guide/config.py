"""
Runtime configuration for the attraction guide.

Values come from the environment (a local .env file is loaded first).
Missing credentials never stop the server from starting; the stage that
needs them fails at call time and the pipeline degrades accordingly.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _get_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = int(raw)
    # 0 or a negative value disables the bound
    return value if value > 0 else None


@dataclass(frozen=True)
class Settings:
    # Vision analysis (submit + poll)
    vision_endpoint: str = ""
    vision_key: str = ""
    vision_analyzer_id: str = "landmark-analyzer"
    vision_api_version: str = "2025-05-01-preview"
    vision_label_field: str = "landmark"
    poll_interval_seconds: float = 2.0
    poll_max_attempts: Optional[int] = 60

    # Knowledge-base search
    search_endpoint: str = ""
    search_key: str = ""
    search_index: str = "attractions"
    search_api_version: str = "2024-07-01"
    search_semantic_configuration: Optional[str] = None
    search_score_threshold: float = 2.0
    search_top: int = 5
    search_title_field: str = "title"
    search_content_field: str = "content_text"
    search_image_source_field: str = "image_source"

    # Narrative generation
    openai_endpoint: str = ""
    openai_key: str = ""
    openai_deployment: str = "gpt-4o"
    openai_api_version: str = "2024-06-01"
    generation_locale: str = "zh-Hant"

    # Translation
    translation_provider: str = "azure"
    translation_endpoint: str = "https://api.cognitive.microsofttranslator.com"
    translation_key: str = ""
    translation_region: Optional[str] = None

    # Speech
    speech_key: str = ""
    speech_region: str = "eastus"
    speech_timeout_ms: int = 30000

    # Image metadata
    metadata_container_url: str = ""
    metadata_sas_token: str = ""
    metadata_url_field: str = "imageurl"

    default_language: str = "zh"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            vision_endpoint=os.getenv("VISION_ENDPOINT", ""),
            vision_key=os.getenv("VISION_KEY", ""),
            vision_analyzer_id=os.getenv("VISION_ANALYZER_ID", cls.vision_analyzer_id),
            vision_api_version=os.getenv("VISION_API_VERSION", cls.vision_api_version),
            vision_label_field=os.getenv("VISION_LABEL_FIELD", cls.vision_label_field),
            poll_interval_seconds=_get_float("POLL_INTERVAL_SECONDS", cls.poll_interval_seconds),
            poll_max_attempts=_get_int("POLL_MAX_ATTEMPTS", cls.poll_max_attempts),
            search_endpoint=os.getenv("SEARCH_ENDPOINT", ""),
            search_key=os.getenv("SEARCH_KEY", ""),
            search_index=os.getenv("SEARCH_INDEX", cls.search_index),
            search_api_version=os.getenv("SEARCH_API_VERSION", cls.search_api_version),
            search_semantic_configuration=os.getenv("SEARCH_SEMANTIC_CONFIGURATION") or None,
            search_score_threshold=_get_float("SEARCH_SCORE_THRESHOLD", cls.search_score_threshold),
            search_top=_get_int("SEARCH_TOP", cls.search_top) or cls.search_top,
            search_title_field=os.getenv("SEARCH_TITLE_FIELD", cls.search_title_field),
            search_content_field=os.getenv("SEARCH_CONTENT_FIELD", cls.search_content_field),
            search_image_source_field=os.getenv("SEARCH_IMAGE_SOURCE_FIELD", cls.search_image_source_field),
            openai_endpoint=os.getenv("OPENAI_ENDPOINT", ""),
            openai_key=os.getenv("OPENAI_KEY", ""),
            openai_deployment=os.getenv("OPENAI_DEPLOYMENT", cls.openai_deployment),
            openai_api_version=os.getenv("OPENAI_API_VERSION", cls.openai_api_version),
            generation_locale=os.getenv("GENERATION_LOCALE", cls.generation_locale),
            translation_provider=os.getenv("TRANSLATION_PROVIDER", cls.translation_provider).lower(),
            translation_endpoint=os.getenv("TRANSLATION_ENDPOINT", cls.translation_endpoint),
            translation_key=os.getenv("TRANSLATION_KEY", ""),
            translation_region=os.getenv("TRANSLATION_REGION") or None,
            speech_key=os.getenv("SPEECH_KEY", ""),
            speech_region=os.getenv("SPEECH_REGION", cls.speech_region),
            speech_timeout_ms=_get_int("SPEECH_TIMEOUT_MS", cls.speech_timeout_ms) or cls.speech_timeout_ms,
            metadata_container_url=os.getenv("METADATA_CONTAINER_URL", ""),
            metadata_sas_token=os.getenv("METADATA_SAS_TOKEN", ""),
            metadata_url_field=os.getenv("METADATA_URL_FIELD", cls.metadata_url_field),
            default_language=os.getenv("DEFAULT_LANGUAGE", cls.default_language),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
