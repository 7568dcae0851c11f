"""Price updates vertical: rule-based price adjustment over the ERP catalog.

- Ordered rule store with JSON-file or SQL persistence
- First-match-wins rule evaluation (patterns.rules_engine)
- Simulate, review, then apply price changes through the ERP adapter
- Resale price table with ceiling rounding
- Markdown preview renderer
- FastAPI router
"""
