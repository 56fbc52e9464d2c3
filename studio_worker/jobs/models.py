"""
Pydantic models and enums for the generation job pipeline.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Enums ────────────────────────────────────────────────────────────────────

class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class JobStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"


class RouteTier(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    FAILED = "failed"


class FailureReason(str, Enum):
    TRANSPORT = "transport"
    PROVIDER_ERROR = "provider-error"
    NO_HANDLE = "no-handle"


class Outcome(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider-error"
    MISCONFIGURATION = "misconfiguration"


class Envelope(str, Enum):
    TASK = "task"      # { model, input: {...} }, universal job API
    DIRECT = "direct"  # builder output is the whole body, model-specific endpoints


# ── Routes ───────────────────────────────────────────────────────────────────

class ProviderRoute(BaseModel):
    """
    A provider model id paired with the endpoints and input builder that
    submit to it. Routes are static module-level data (see jobs.resolver).

    ``input_builder(prompt, duration, aspect_ratio, asset_url, options) -> dict``
    """
    model_config = ConfigDict(frozen=True)

    name: str
    provider_model_id: str
    create_path: str
    status_path: str
    input_builder: Callable[..., dict]
    envelope: Envelope = Envelope.TASK

    def build_body(
        self,
        prompt: str,
        duration: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        asset_url: Optional[str] = None,
        options: Optional[dict] = None,
    ) -> dict:
        payload = self.input_builder(prompt, duration, aspect_ratio, asset_url, options or {})
        if self.envelope == Envelope.TASK:
            return {"model": self.provider_model_id, "input": payload}
        return payload


# ── Inbound request ──────────────────────────────────────────────────────────

class GenerateRequest(BaseModel):
    """JSON body accepted by POST /generate/image and /generate/video."""
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    model: str = ""
    aspect_ratio: Optional[str] = Field(default=None, alias="aspectRatio")
    style: Optional[str] = None
    reference_image: Optional[str] = Field(default=None, alias="referenceImage")
    duration: Optional[str] = None
    remove_watermark: bool = Field(default=False, alias="removeWatermark")
    is_test: bool = Field(default=False, alias="isTest")

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("prompt must not be empty")
        return value

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_as_string(cls, value):
        # clients send both "5" and 5
        return None if value is None else str(value)


class GenerationRequest(BaseModel):
    """Resolved, immutable request owned by the orchestrator for one call."""
    model_config = ConfigDict(frozen=True)

    media: MediaType
    prompt: str = Field(..., min_length=1)
    canonical_model: str
    aspect_ratio: Optional[str] = None
    duration: Optional[str] = None
    reference_asset: Optional[str] = None
    params: dict = Field(default_factory=dict)
    test_mode: bool = False


# ── Submission ───────────────────────────────────────────────────────────────

class SubmittedJob(BaseModel):
    """
    A job the provider accepted. ``result_url`` is set instead of ``job_id``
    when the provider answered synchronously.
    """
    job_id: Optional[str] = None
    route: ProviderRoute
    tier: RouteTier = RouteTier.PRIMARY
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    result_url: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.result_url is not None


class SubmissionFailure(BaseModel):
    reason: FailureReason
    route_name: str = ""
    http_status: Optional[int] = None
    provider_code: Optional[int] = None
    provider_message: Optional[str] = None

    def describe(self) -> str:
        if self.provider_message:
            return self.provider_message
        if self.reason == FailureReason.NO_HANDLE:
            return "Provider did not return a task id"
        if self.http_status and self.http_status >= 400:
            return f"Provider API error: HTTP {self.http_status}"
        if self.provider_code:
            return f"Provider API error: code {self.provider_code}"
        return "Provider request failed"


# ── Polling ──────────────────────────────────────────────────────────────────

class PollBudget(BaseModel):
    max_attempts: int = Field(..., gt=0)
    interval: float = Field(..., ge=0)


# ── Result ───────────────────────────────────────────────────────────────────

class GenerationResult(BaseModel):
    """Terminal value of one orchestration call."""
    outcome: Outcome
    media: MediaType
    url: Optional[str] = None
    message: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    @classmethod
    def success(cls, media: MediaType, url: str) -> "GenerationResult":
        return cls(outcome=Outcome.SUCCESS, media=media, url=url)

    @classmethod
    def timeout(cls, media: MediaType) -> "GenerationResult":
        return cls(outcome=Outcome.TIMEOUT, media=media)

    @classmethod
    def misconfigured(cls, media: MediaType) -> "GenerationResult":
        return cls(outcome=Outcome.MISCONFIGURATION, media=media)

    @classmethod
    def provider_error(cls, media: MediaType, message: str,
                       status_code: Optional[int] = None) -> "GenerationResult":
        return cls(outcome=Outcome.PROVIDER_ERROR, media=media,
                   message=message, status_code=status_code)

    def http_status(self) -> int:
        if self.outcome == Outcome.SUCCESS:
            return 200
        if self.outcome == Outcome.MISCONFIGURATION:
            return 500
        if self.outcome == Outcome.TIMEOUT:
            return 408 if self.media == MediaType.IMAGE else 504
        if self.status_code and 400 <= self.status_code <= 599:
            return self.status_code
        return 500

    def to_response(self) -> tuple[int, dict[str, Any]]:
        """(HTTP status, JSON body) for the boundary."""
        if self.outcome == Outcome.SUCCESS:
            return 200, {"success": True, f"{self.media.value}_url": self.url}
        if self.outcome == Outcome.PROVIDER_ERROR:
            error = self.message or "Generation failed"
        else:
            error = self.outcome.value
        return self.http_status(), {"success": False, "error": error}
