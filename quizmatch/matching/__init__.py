"""
Answer-to-criteria matching.

Responsibilities:
- Parse budget ranges out of free-form option text.
- Parse stored option matching rules without failing on legacy data.
- Fold a shopper's answers into one set of catalog criteria.
"""
