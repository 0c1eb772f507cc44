"""
Billing-tier usage enforcement.

Responsibilities:
- Define completion limits per subscription tier.
- Create per-shop usage counters and roll them over each calendar month.
- Gate quiz submissions on the current period's usage.
"""
