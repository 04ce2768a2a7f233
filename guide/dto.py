from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# -----------------------------
# Internal, request-scoped types
# -----------------------------
@dataclass(frozen=True)
class CanonicalLocale:
    """Translation code, speech tag and voice resolved from one language preference."""
    requested: str
    translation_code: str
    speech_language_tag: Optional[str] = None
    speech_voice_id: Optional[str] = None

    @property
    def speech_supported(self) -> bool:
        return self.speech_voice_id is not None


class JobStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING


@dataclass
class AnalysisJob:
    operation_handle: str
    status: JobStatus = JobStatus.PENDING
    result_label: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SearchHit:
    document: Dict[str, Any]
    score: float


@dataclass
class Narrative:
    text: str
    source_locale: str
    source_content: str = ""
    title: Optional[str] = None
    suggestions: Optional[List[str]] = None
    matched: bool = True


# -----------------------------
# Wire models
# -----------------------------
class Candidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    content: str
    score: float
    image_source: Optional[str] = Field(default=None, alias="imageSource")


class AudioPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str  # base64
    content_type: str = Field(default="audio/mp3", alias="contentType")
    duration: int  # ms
    size: int  # bytes


class NarrativeSource(BaseModel):
    title: str
    content: str


class PipelineResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    language: str
    source: Optional[NarrativeSource] = None
    audio: Optional[AudioPayload] = None
    audio_error: Optional[str] = Field(default=None, alias="audioError")
    suggestions: Optional[List[str]] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


class AnalyzeImageResponse(BaseModel):
    results: List[Candidate] = Field(default_factory=list)
    response: PipelineResult
    imgurl: Optional[str] = None


class TranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    language: str = "zh"
    original_content: Optional[Union[str, Dict[str, Any]]] = Field(default=None, alias="originalContent")


class TranslateResponse(BaseModel):
    text: str
    language: str
    audio: AudioPayload
