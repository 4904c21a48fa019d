"""
Core package for the case-management cohort dashboard.

Submodules provide record loading, field resolution and filtering (``data``),
coverage, risk and audit analytics (``components``) and the Streamlit pages
(``ui``) that are orchestrated by the top-level `app.py`.
"""
