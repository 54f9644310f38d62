"""Generate a cover letter from the terminal against a running API.

Prints the letter as it streams in.

Usage:
    python scripts/generate_letter.py --cv resume.pdf \
        --job-description job.txt --company-profile company.txt --max-words 250
"""

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from coverletter.client import request_cover_letter  # noqa: E402
from coverletter.core.constants import DEFAULT_MAX_WORDS  # noqa: E402
from coverletter.core.errors import CoverLetterError  # noqa: E402


def _read_text_arg(value: str) -> str:
    """Accept either literal text or a path to a text file."""
    path = Path(value)
    if path.is_file():
        return path.read_text(encoding="utf-8")
    return value


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a tailored cover letter.")
    parser.add_argument("--cv", required=True, type=Path, help="Path to the CV (PDF)")
    parser.add_argument("--job-description", required=True, help="Text or path to a text file")
    parser.add_argument("--company-profile", required=True, help="Text or path to a text file")
    parser.add_argument("--max-words", type=int, default=DEFAULT_MAX_WORDS)
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--no-stream", action="store_true", help="Wait for the full letter")
    return parser.parse_args(argv)


def _print_piece(piece: str) -> None:
    sys.stdout.write(piece)
    sys.stdout.flush()


async def _run(args: argparse.Namespace) -> int:
    try:
        await request_cover_letter(
            base_url=args.base_url,
            job_description=_read_text_arg(args.job_description),
            company_profile=_read_text_arg(args.company_profile),
            cv_path=args.cv,
            max_words=args.max_words,
            stream=not args.no_stream,
            on_text=_print_piece,
        )
    except CoverLetterError as e:
        print(f"\nError: {e.message}", file=sys.stderr)
        return 1
    print()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if not args.cv.is_file():
        print(f"CV not found: {args.cv}", file=sys.stderr)
        return 2
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
