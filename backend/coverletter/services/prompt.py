"""Build the cover-letter prompt from the submitted fields and CV text."""

from coverletter.core.prompts import COVER_LETTER_PROMPT


def build_prompt(
    job_description: str,
    company_profile: str,
    cv_text: str,
    max_words: int,
) -> str:
    """Render the instruction string sent to the completion API.

    Pure and deterministic. Inputs are embedded verbatim: length limits are
    enforced when the form is validated, never here. ``cv_text`` may be empty
    when the PDF has no text layer.
    """
    return COVER_LETTER_PROMPT.format(
        job_description=job_description,
        company_profile=company_profile,
        cv_text=cv_text,
        max_words=max_words,
    )
