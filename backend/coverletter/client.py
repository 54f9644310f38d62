"""Async client for the cover-letter API.

Streams /api/generate and reassembles the per-character frames, calling
``on_text`` with each newly appended piece of the letter.
"""

from collections.abc import Callable
from pathlib import Path

import httpx

from coverletter.core.constants import DEFAULT_MAX_WORDS
from coverletter.core.errors import CoverLetterError
from coverletter.services.reassembly import CoverLetterAssembler


def _raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        body = response.json()
        message = body.get("message", "Request failed")
        if body.get("error") and body["error"] != message:
            message = f"{message}: {body['error']}"
    except ValueError:
        message = f"Request failed ({response.status_code})"
    raise CoverLetterError(message, status_code=response.status_code)


async def request_cover_letter(
    base_url: str,
    job_description: str,
    company_profile: str,
    cv_path: Path,
    max_words: int = DEFAULT_MAX_WORDS,
    stream: bool = True,
    on_text: Callable[[str], None] | None = None,
    timeout: float = 120.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Submit the form and return the finished letter.

    Raises CoverLetterError for a non-2xx response, an error frame received
    mid-stream, or a transport failure talking to the API.
    """
    data = {
        "jobDescription": job_description,
        "companyProfile": company_profile,
        "maxWords": str(max_words),
        "stream": "true" if stream else "false",
    }
    files = {"cvFile": (cv_path.name, cv_path.read_bytes(), "application/pdf")}

    try:
        async with httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport) as http:
            if not stream:
                response = await http.post("/api/generate", data=data, files=files)
                _raise_for_error(response)
                letter = response.json()["coverLetter"]
                if on_text:
                    on_text(letter)
                return letter

            assembler = CoverLetterAssembler()
            async with http.stream("POST", "/api/generate", data=data, files=files) as response:
                if not response.is_success:
                    await response.aread()
                    _raise_for_error(response)
                async for chunk in response.aiter_text():
                    piece = assembler.feed(chunk)
                    if piece and on_text:
                        on_text(piece)
                    if assembler.done:
                        break
    except httpx.HTTPError as e:
        raise CoverLetterError(f"Could not reach the cover letter API: {e}") from e

    if assembler.errors:
        raise CoverLetterError(assembler.errors[0])
    return assembler.text
