"""Pydantic request/response models for the cover-letter API."""

from pydantic import BaseModel, ConfigDict, Field

from coverletter.core.constants import (
    DEFAULT_MAX_WORDS,
    MAX_COMPANY_PROFILE_LENGTH,
    MAX_JOB_DESCRIPTION_LENGTH,
    MAX_WORDS,
    MIN_WORDS,
)


class GenerationRequest(BaseModel):
    """One validated submission. Lives for a single request, never stored."""

    model_config = ConfigDict(frozen=True)

    job_description: str = Field(..., min_length=1, max_length=MAX_JOB_DESCRIPTION_LENGTH)
    company_profile: str = Field(..., min_length=1, max_length=MAX_COMPANY_PROFILE_LENGTH)
    cv_bytes: bytes = Field(..., repr=False)
    max_words: int = Field(default=DEFAULT_MAX_WORDS, ge=MIN_WORDS, le=MAX_WORDS)
    stream: bool = True


class CoverLetterResponse(BaseModel):
    """Non-streaming response body."""

    model_config = ConfigDict(populate_by_name=True)

    cover_letter: str = Field(..., alias="coverLetter")


class ErrorResponse(BaseModel):
    """Failure body for every non-2xx JSON response."""
    message: str
    error: str = ""
    request_id: str = "-"
