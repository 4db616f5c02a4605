"""Keyphrase SEO Analyzer: on-page checks, scoring and recommendations for one URL."""

__version__ = "1.0.0"
