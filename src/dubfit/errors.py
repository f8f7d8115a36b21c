"""
Error taxonomy for the narration fitting pipeline.
"""


class DubfitError(RuntimeError):
    """Base class for all pipeline errors."""


class OracleError(DubfitError):
    """An external service (TTS or text rewriting) failed or timed out."""


class MeasurementError(DubfitError):
    """Audio payload could not be decoded to obtain its duration."""


class StretchError(DubfitError):
    """Time-stretch stage outside the primitive's valid range, or ffmpeg failed."""


class ConfigError(DubfitError):
    """Invalid configuration or segment data supplied to the pipeline."""
