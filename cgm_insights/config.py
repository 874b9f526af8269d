"""Tunable settings for the learning engine and insight aggregation."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

MIN_LEARNING_RATE: Final[float] = 0.005
MAX_LEARNING_RATE: Final[float] = 0.02

ENV_PREFIX: Final[str] = "CGM_INSIGHTS_"


@dataclass(frozen=True)
class LearningSettings:
    """Configuration surface shared by the engine and aggregator."""

    learning_rate: float = 0.01
    adaptation_threshold: float = 0.1
    max_memory_size: int = 10_000
    anomaly_threshold: float = 2.0

    def __post_init__(self) -> None:
        if not MIN_LEARNING_RATE <= self.learning_rate <= MAX_LEARNING_RATE:
            raise ValueError(
                f"learning_rate must be within [{MIN_LEARNING_RATE}, {MAX_LEARNING_RATE}], got {self.learning_rate}"
            )
        if self.adaptation_threshold < 0:
            raise ValueError("adaptation_threshold must be >= 0")
        if self.max_memory_size < 1:
            raise ValueError("max_memory_size must be >= 1")
        if self.anomaly_threshold <= 0:
            raise ValueError("anomaly_threshold must be > 0")

    @classmethod
    def from_env(cls) -> "LearningSettings":
        """Build settings from ``CGM_INSIGHTS_*`` environment variables, keeping defaults for unset ones."""

        defaults = cls()
        learning_rate = os.getenv(f"{ENV_PREFIX}LEARNING_RATE")
        adaptation_threshold = os.getenv(f"{ENV_PREFIX}ADAPTATION_THRESHOLD")
        max_memory_size = os.getenv(f"{ENV_PREFIX}MAX_MEMORY_SIZE")
        anomaly_threshold = os.getenv(f"{ENV_PREFIX}ANOMALY_THRESHOLD")
        return cls(
            learning_rate=float(learning_rate) if learning_rate else defaults.learning_rate,
            adaptation_threshold=(
                float(adaptation_threshold) if adaptation_threshold else defaults.adaptation_threshold
            ),
            max_memory_size=int(max_memory_size) if max_memory_size else defaults.max_memory_size,
            anomaly_threshold=float(anomaly_threshold) if anomaly_threshold else defaults.anomaly_threshold,
        )
