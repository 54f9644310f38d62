"""Cover letter endpoint — job description + company profile + PDF CV in, letter out."""

import asyncio

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import StreamingResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.background import BackgroundTask

from coverletter.config import load_settings
from coverletter.core.constants import (
    DEFAULT_MAX_WORDS,
    MAX_COMPANY_PROFILE_LENGTH,
    MAX_JOB_DESCRIPTION_LENGTH,
    MAX_UPLOAD_SIZE,
    MAX_WORDS,
    MIN_WORDS,
    PDF_CONTENT_TYPES,
    PDF_MAGIC,
    RATE_LIMIT_PER_MINUTE,
)
from coverletter.core.errors import ValidationError
from coverletter.core.langfuse_client import flush
from coverletter.core.llm import CompletionClient, get_completion_client
from coverletter.core.logger import logger
from coverletter.models import CoverLetterResponse, ErrorResponse, GenerationRequest
from coverletter.services.pdf_text import extract_cv_text
from coverletter.services.prompt import build_prompt
from coverletter.services.relay import Pacing, StreamRelay

router = APIRouter(prefix="/api", tags=["Generate"])
limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_relay_pacing() -> Pacing:
    return Pacing.from_settings(load_settings())


def _validate_fields(job_description: str, company_profile: str, max_words: int) -> None:
    """Raise ValidationError for the first out-of-bounds form field."""
    if not job_description.strip():
        raise ValidationError("Job description is required")
    if len(job_description) > MAX_JOB_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Job description must be less than {MAX_JOB_DESCRIPTION_LENGTH} characters"
        )
    if not company_profile.strip():
        raise ValidationError("Company profile is required")
    if len(company_profile) > MAX_COMPANY_PROFILE_LENGTH:
        raise ValidationError(
            f"Company profile must be less than {MAX_COMPANY_PROFILE_LENGTH} characters"
        )
    if max_words < MIN_WORDS:
        raise ValidationError(f"Minimum word count is {MIN_WORDS}")
    if max_words > MAX_WORDS:
        raise ValidationError(f"Maximum word count is {MAX_WORDS}")


async def _read_upload(cv_file: UploadFile | None) -> bytes:
    """Validate and read the uploaded CV. Returns the raw PDF bytes.

    Reads at most one byte past the limit, so an oversized upload is never
    held in memory in full.
    """
    if cv_file is None or not cv_file.filename:
        raise ValidationError("CV file is required")
    if not cv_file.filename.lower().endswith(".pdf"):
        raise ValidationError("Only PDF files are accepted")
    if cv_file.content_type and cv_file.content_type not in PDF_CONTENT_TYPES:
        raise ValidationError("Only PDF files are accepted")

    too_large = f"File size must be less than {MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
    if cv_file.size is not None and cv_file.size > MAX_UPLOAD_SIZE:
        raise ValidationError(too_large)

    data = await cv_file.read(MAX_UPLOAD_SIZE + 1)
    if len(data) > MAX_UPLOAD_SIZE:
        raise ValidationError(too_large)
    if not data.startswith(PDF_MAGIC):
        raise ValidationError("Only PDF files are accepted")
    return data


async def _build_request(
    job_description: str,
    company_profile: str,
    max_words: int,
    stream: bool,
    cv_file: UploadFile | None,
) -> GenerationRequest:
    """Validate the whole submission. The upload is closed on every path."""
    try:
        _validate_fields(job_description, company_profile, max_words)
        cv_bytes = await _read_upload(cv_file)
    finally:
        if cv_file is not None:
            await cv_file.close()

    return GenerationRequest(
        job_description=job_description,
        company_profile=company_profile,
        cv_bytes=cv_bytes,
        max_words=max_words,
        stream=stream,
    )


def _stream_response(relay: StreamRelay, upstream) -> StreamingResponse:
    async def event_generator():
        try:
            async for frame in relay.relay(upstream.lines()):
                yield frame
        finally:
            await upstream.aclose()
            flush()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
        # Releases the upstream if the body was never iterated
        background=BackgroundTask(upstream.aclose),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/generate",
    response_model=CoverLetterResponse,
    responses={
        200: {"content": {"text/event-stream": {}}},
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@limiter.limit(f"{RATE_LIMIT_PER_MINUTE}/minute")
async def generate_cover_letter(
    request: Request,
    job_description: str = Form(default="", alias="jobDescription"),
    company_profile: str = Form(default="", alias="companyProfile"),
    max_words: int = Form(default=DEFAULT_MAX_WORDS, alias="maxWords"),
    stream: bool = Form(default=True),
    cv_file: UploadFile | None = File(default=None, alias="cvFile"),
    client: CompletionClient = Depends(get_completion_client),
    pacing: Pacing = Depends(get_relay_pacing),
):
    """Generate a cover letter as JSON, or stream it one character per SSE frame."""
    generation = await _build_request(
        job_description, company_profile, max_words, stream, cv_file
    )
    logger.info(
        f"Generating cover letter: max_words={generation.max_words}, "
        f"stream={generation.stream}, cv_bytes={len(generation.cv_bytes)}"
    )

    cv_text = await asyncio.to_thread(extract_cv_text, generation.cv_bytes)
    prompt = build_prompt(
        generation.job_description,
        generation.company_profile,
        cv_text,
        generation.max_words,
    )

    if not generation.stream:
        try:
            letter = await client.complete(prompt)
        finally:
            flush()
        return CoverLetterResponse(cover_letter=letter)

    upstream = await client.open_stream(prompt)
    relay = StreamRelay(pacing=pacing, is_disconnected=request.is_disconnected)
    return _stream_response(relay, upstream)
