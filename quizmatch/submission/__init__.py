"""
Quiz submission.

Responsibilities:
- Validate storefront submissions.
- Commit quiz results and analytics atomically.
- Run usage accounting and notifications as best-effort side effects.
- Redact customer results on request.
"""
