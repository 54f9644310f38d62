"""Prompt templates.

The cover-letter template is a single user message; the completion API
gets no system prompt.
"""

COVER_LETTER_PROMPT = """
You are a professional cover letter writer. Your task is to generate a tailored cover letter based on the following information:

Job Description:
{job_description}

Company Profile:
{company_profile}

CV Content:
{cv_text}

Based on the above CV content, please:
1. Identify relevant skills and experience
2. Extract professional achievements
3. Understand the candidate's background and qualifications

The cover letter should:
1. Be professional and engaging
2. Highlight relevant experience from the CV that matches the job description
3. Demonstrate understanding of the company based on the profile
4. Include a strong opening and closing
5. Be approximately at {max_words} words max in length
6. Only include the cover letter text, no need to include headers or footers
7. Use appropriate line breaks between paragraphs
8. Include proper spacing and formatting
9. Not include any placeholders or fields to be filled in later

IMPORTANT: Use proper paragraph breaks and formatting. Each paragraph should be separated by a blank line.
"""
