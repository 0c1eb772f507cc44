"""
Persistence layer.

Responsibilities:
- Engine and session factory configuration.
- Declarative models for quizzes, results, analytics and usage counters.
- Demo data seeding for local runs.
"""
