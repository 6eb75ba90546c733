"""
Configuration management.
"""

import os
from dataclasses import dataclass, field

from bto.eligibility import DEFAULT_MARRIED_MIN_AGE, DEFAULT_SINGLE_MIN_AGE, EligibilityPolicy


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", "false"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Eligibility policy
    single_min_age: int = field(
        default_factory=lambda: int(os.getenv("BTO_SINGLE_MIN_AGE", str(DEFAULT_SINGLE_MIN_AGE)))
    )
    married_min_age: int = field(
        default_factory=lambda: int(os.getenv("BTO_MARRIED_MIN_AGE", str(DEFAULT_MARRIED_MIN_AGE)))
    )

    # Projects
    max_officer_slots: int = field(default_factory=lambda: int(os.getenv("BTO_MAX_OFFICER_SLOTS", "10")))
    enforce_window: bool = field(default_factory=lambda: _env_bool("BTO_ENFORCE_WINDOW", "true"))

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def eligibility_policy(self) -> EligibilityPolicy:
        return EligibilityPolicy(
            single_min_age=self.single_min_age,
            married_min_age=self.married_min_age,
        )

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "single_min_age": self.single_min_age,
            "married_min_age": self.married_min_age,
            "max_officer_slots": self.max_officer_slots,
            "enforce_window": self.enforce_window,
            "data_dir": self.data_dir,
        }
