"""
errors.py — the one exception family used across the analysis pipeline.

Providers and the provider manager raise these; analysis_service.py is the
only place that turns them into a logged failure + empty result.
"""
from __future__ import annotations


class AnalysisError(Exception):
    """Base class. str(error) is the user-facing description."""

    description = "Analysis failed"

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(self.description if not message else f"{self.description}: {message}")


class NoImagesProvided(AnalysisError):
    description = "No images provided for analysis"


class ApiKeyMissing(AnalysisError):
    description = "API key not configured"


class AnalysisTimeout(AnalysisError):
    description = "Analysis timed out"


class NetworkError(AnalysisError):
    description = "Network error"


class ParseError(AnalysisError):
    description = "Parse error"
