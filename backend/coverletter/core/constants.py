"""Centralized constants — no magic numbers in service code."""

# Upload limits
MAX_UPLOAD_SIZE = 5 * 1024 * 1024  # 5 MB
PDF_MAGIC = b"%PDF-"
PDF_CONTENT_TYPES = ("application/pdf", "application/x-pdf", "application/octet-stream")

# Form limits
MAX_JOB_DESCRIPTION_LENGTH = 2000  # chars
MAX_COMPANY_PROFILE_LENGTH = 1000  # chars
MIN_WORDS = 100
MAX_WORDS = 1000
DEFAULT_MAX_WORDS = 400

# Upstream diagnostics
ERROR_BODY_TRUNCATE_LENGTH = 200  # chars of upstream body kept in errors
UPSTREAM_RETRY_ATTEMPTS = 2

# Rate limiting
RATE_LIMIT_PER_MINUTE = 10

# Downstream streaming protocol
DONE_SENTINEL = "[DONE]"
NEWLINE_MARKER = "<NEWLINE>"
STARTING_PLACEHOLDER = "Starting generation..."

# Relay pacing (seconds per emitted character)
SENTENCE_END_CHARS = ".!?"
CLAUSE_CHARS = ",;:"
SENTENCE_END_DELAY = 0.150
CLAUSE_DELAY = 0.080
WHITESPACE_DELAY = 0.030
PERIODIC_DELAY = 0.025
PERIODIC_EVERY = 10  # characters
BASE_DELAY = 0.010
