"""
Error taxonomy for the mastering chain.
MeasurementUndefined is a warning condition: it is reported, never raised out of normalization.
"""


class MasteringError(Exception):
    """Base class for mastering failures."""


class NoAudioLoaded(MasteringError):
    """Render requested without a source buffer."""

    def __init__(self, message: str = "No audio loaded"):
        super().__init__(message)


class RenderError(MasteringError):
    """Numeric fault (NaN/inf) detected while processing a block."""


class RenderCancelled(MasteringError):
    """Cooperative cancellation observed at a block or stage boundary."""

    def __init__(self, message: str = "Cancelled"):
        super().__init__(message)


class MeasurementUndefined(MasteringError):
    """Integrated loudness could not be measured (silence or input shorter than one block)."""
