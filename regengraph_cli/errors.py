"""Exceptions raised by the regeneration core."""

from __future__ import annotations


class RegenerationError(Exception):
    """Base exception for regeneration operations."""
    pass


class MissingSourceDataError(RegenerationError):
    """Raised when the record a stage resolves paths against was not supplied."""
    def __init__(self, stage_id: str):
        self.stage_id = stage_id
        super().__init__(f"ContextAssembler: No source data available for {stage_id}")


class UnknownTierError(RegenerationError, ValueError):
    """Raised when a context tier is not one of the recognised presets."""
    def __init__(self, tier: str):
        self.tier = tier
        super().__init__(f"ContextAssembler: Unknown tier: {tier}")
