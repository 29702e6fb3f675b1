"""Typed error taxonomy shared by the pipeline, matching engine, and API.

Each error has a stable ``code`` used in API error bodies.
"""
from __future__ import annotations


class PitchHubError(Exception):
    """Base class for all service errors."""
    code = "pitchhub_error"

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "detail": str(self)}


class NotFound(PitchHubError):
    """Raised when a pitch does not exist in the store."""
    code = "not_found"


class NotAnalyzed(PitchHubError):
    """Raised when matching needs a pitch whose analysis is not complete."""
    code = "not_analyzed"


class DimensionMismatch(PitchHubError):
    """Raised when two vectors of different length are compared."""
    code = "dimension_mismatch"


class InvalidTransition(PitchHubError):
    """Raised on a disallowed analysis-status transition."""
    code = "invalid_transition"


class ProviderError(PitchHubError):
    """Transcription or content-analysis provider failure."""
    code = "provider_error"


class ProviderTimeout(ProviderError):
    """Provider did not answer within the configured deadline."""
    code = "provider_timeout"


class MalformedProviderResponse(ProviderError):
    """Provider answered with a payload that does not parse."""
    code = "malformed_provider_response"


class AnalysisError(PitchHubError):
    """Unexpected failure inside an analysis run."""
    code = "analysis_error"
