"""
Quiz analytics.

Responsibilities:
- Atomic view, completion and email-capture counters per quiz.
- Completion and email-capture rates for the admin summary.
"""
