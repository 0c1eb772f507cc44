"""
Recommendation engine.

Responsibilities:
- Define the catalog query service interface and a CSV-backed default.
- Resolve matching criteria into at most six sellable products using
  exact-id, tag/type and fallback tiers.
- Shape products for the storefront response.
"""
