"""
Mathscribe — accuracy-refined math notation conversion.

Wraps single LLM completions in a propose → validate → refine loop with
caching, timeout enforcement and model fallback, and exposes LaTeX,
speech and image conversions on top of it.
"""

__version__ = "0.1.0"
