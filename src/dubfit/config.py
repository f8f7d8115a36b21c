"""
Pipeline configuration: retry bounds, speed bands and batching.
"""

import logging
import os
from dataclasses import dataclass, field

from .errors import ConfigError
from .models import Band

logger = logging.getLogger("dubfit")

MAX_ATTEMPTS = 3
MAX_CYCLES = 3
TARGET_SPEED = 1.2
# A factor below 1.0 means the clip would have to be slowed down.
INITIAL_BAND = Band(1.0, 1.5)
# Corrected clips must come out a little long so fitting only ever speeds up.
CORRECTION_BAND = Band(1.1, 1.5)


@dataclass(frozen=True)
class FitConfig:
    """Tunable convergence and scheduling parameters."""

    max_attempts: int = MAX_ATTEMPTS
    max_cycles: int = MAX_CYCLES
    target_speed: float = TARGET_SPEED
    initial_band: Band = field(default=INITIAL_BAND)
    correction_band: Band = field(default=CORRECTION_BAND)
    batch_size: int = 10
    inter_batch_delay: float = 0.5  # seconds
    oracle_timeout: float = 60.0  # seconds, per external call
    stretch_epsilon: float = 1e-4
    # Stretch segments accepted on the initial pass so they fill the slot exactly.
    fit_initial_segments: bool = True

    def validate(self) -> "FitConfig":
        """Raise ConfigError if the parameters cannot converge sensibly."""
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be >= 1 (got {self.max_attempts})")
        if self.max_cycles < self.max_attempts:
            raise ConfigError(
                f"max_cycles ({self.max_cycles}) must be >= max_attempts ({self.max_attempts})"
            )
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be >= 1 (got {self.batch_size})")
        if self.inter_batch_delay < 0:
            raise ConfigError("inter_batch_delay must not be negative")
        if self.oracle_timeout <= 0:
            raise ConfigError("oracle_timeout must be positive")
        for name, band in (("initial_band", self.initial_band), ("correction_band", self.correction_band)):
            if band.low <= 0 or band.low > band.high:
                raise ConfigError(f"{name} {band} is not a positive ordered range")
        if self.target_speed not in self.correction_band:
            raise ConfigError(
                f"target_speed {self.target_speed} lies outside correction_band {self.correction_band}"
            )
        return self

    @classmethod
    def from_env(cls, **overrides) -> "FitConfig":
        """Build a config from DUBFIT_* environment variables plus explicit overrides."""
        values: dict = {}
        env_map = {
            "max_attempts": ("DUBFIT_MAX_ATTEMPTS", int),
            "max_cycles": ("DUBFIT_MAX_CYCLES", int),
            "target_speed": ("DUBFIT_TARGET_SPEED", float),
            "batch_size": ("DUBFIT_BATCH_SIZE", int),
            "inter_batch_delay": ("DUBFIT_INTER_BATCH_DELAY", float),
            "oracle_timeout": ("DUBFIT_ORACLE_TIMEOUT", float),
        }
        for key, (var, conv) in env_map.items():
            raw = os.getenv(var)
            if raw is None or raw == "":
                continue
            try:
                values[key] = conv(raw)
            except ValueError:
                raise ConfigError(f"{var}={raw!r} is not a valid {conv.__name__}") from None
        values.update({k: v for k, v in overrides.items() if v is not None})
        cfg = cls(**values).validate()
        logger.debug("Using %s", cfg)
        return cfg
