"""Exceptions raised by the analysis pipeline.

Structural problems (a listing that cannot be analyzed at all) are errors.
Business rejections are not: they come back as a rejected AnalysisResult.
"""


class AnalysisError(Exception):
    """Base class for analysis errors."""

    pass


class NormalizationError(AnalysisError):
    """Raised when a raw listing is missing fields required for analysis."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class MarginError(AnalysisError):
    """Raised when a product cannot be resold at a positive margin."""

    def __init__(self, message: str, reason: str = "negative_margin"):
        super().__init__(message)
        self.reason = reason


class MatcherError(AnalysisError):
    """Raised by a competitor matcher on a malformed tracked-store record."""

    def __init__(self, message: str, store_id: str | None = None):
        super().__init__(message)
        self.store_id = store_id
