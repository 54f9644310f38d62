"""Shared fixtures for cover-letter backend tests."""

import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from coverletter.main import app
from coverletter.core.llm import CompletionClient, get_completion_client
from coverletter.routes import generate as generate_route
from coverletter.services.relay import Pacing


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting for all tests."""
    app.state.limiter.enabled = False
    generate_route.limiter.enabled = False
    yield
    app.state.limiter.enabled = True
    generate_route.limiter.enabled = True


# ---------------------------------------------------------------------------
# Sample inputs
# ---------------------------------------------------------------------------

SAMPLE_JD = (
    "Backend engineer role: we are looking for a Python developer with "
    "experience in FastAPI, PostgreSQL and Docker to build reliable APIs."
)

SAMPLE_PROFILE = (
    "Fast-growing startup building tools for small logistics companies. "
    "We value ownership, clear writing and shipping often."
)

SAMPLE_LETTER = (
    "Dear Hiring Team,\n\n"
    "I am excited to apply for the Backend Engineer role. "
    "At Acme, I built FastAPI services handling 2M requests a day.\n\n"
    "Kind regards,\nJane Doe"
)


def make_pdf(text: str = "Jane Doe Backend Engineer Python FastAPI") -> bytes:
    """Build a minimal one-page PDF with ``text`` on it.

    ``text`` must not contain parentheses or backslashes.
    """
    content = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_offset,
    )
    return bytes(out)


SAMPLE_PDF = make_pdf()


def completion_body(text: str) -> dict:
    """Non-streaming upstream response carrying ``text``."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": "stop"}
        ],
    }


def upstream_sse(fragments: list[str], done: bool = True) -> bytes:
    """Streaming upstream body: one ``data:`` frame per fragment."""
    frames = [
        'data: {"choices":[{"index":0,"delta":{"role":"assistant","content":""}}]}\n\n'
    ]
    for fragment in fragments:
        chunk = {"choices": [{"index": 0, "delta": {"content": fragment}}]}
        frames.append(f"data: {json.dumps(chunk)}\n\n")
    if done:
        frames.append("data: [DONE]\n\n")
    return "".join(frames).encode()


# ---------------------------------------------------------------------------
# Fake upstream completion API
# ---------------------------------------------------------------------------


class FakeUpstream:
    """Records requests and replies with whatever was configured last."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._respond = lambda request: httpx.Response(500, text="no response configured")

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]

    def reply_completion(self, text: str) -> None:
        self._respond = lambda request: httpx.Response(200, json=completion_body(text))

    def reply_stream(self, fragments: list[str], done: bool = True) -> None:
        body = upstream_sse(fragments, done)
        self._respond = lambda request: httpx.Response(
            200, headers={"content-type": "text/event-stream"}, content=body
        )

    def reply_with(self, factory) -> None:
        self._respond = factory


@pytest.fixture()
def fake_upstream():
    """Route the app's completion client to a FakeUpstream, pacing off."""
    fake = FakeUpstream()
    completion_client = CompletionClient(
        api_key="test-key",
        base_url="https://upstream.test",
        transport=httpx.MockTransport(fake.handle),
    )
    app.dependency_overrides[get_completion_client] = lambda: completion_client
    app.dependency_overrides[generate_route.get_relay_pacing] = Pacing.disabled
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    """Async httpx test client wired to the FastAPI app via ASGI transport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
