"""Errors surfaced to callers of the scoring engine."""


class ConfigurationError(ValueError):
    """Raised when the scoring setup is incomplete or inconsistent.

    Examples: aggregating a score map that lacks a required principle,
    asking for a principle the profile does not declare, or a profile
    whose advice table has no entry for one of its principles.
    """
