"""Exceptions raised to callers."""


class AnalyticsError(Exception):
    """Base class for errors surfaced by this package."""


class JobNotFoundError(AnalyticsError):
    pass


class JobNotCompletedError(AnalyticsError):
    pass
