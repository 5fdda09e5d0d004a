"""
Engine configuration, read from the environment or built by the caller.
"""

import logging
import os
from dataclasses import dataclass, asdict
from typing import Optional


def _optional_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, '').strip()
    if not raw:
        return None
    value = float(raw)
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw}")
    return value


def _optional_int(name: str) -> Optional[int]:
    raw = os.environ.get(name, '').strip()
    if not raw:
        return None
    value = int(raw)
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw}")
    return value


@dataclass
class EngineConfig:
    """Settings applied to a script environment on every acquisition."""

    script_timeout: Optional[float] = None  # seconds
    script_max_memory: Optional[int] = None  # bytes
    log_level: str = 'INFO'

    def __post_init__(self):
        if self.script_timeout is not None and self.script_timeout <= 0:
            raise ValueError(f"script_timeout must be positive, got {self.script_timeout}")
        if self.script_max_memory is not None and self.script_max_memory <= 0:
            raise ValueError(f"script_max_memory must be positive, got {self.script_max_memory}")
        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log level {self.log_level}")

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """
        Build a config from VIEW_SCRIPT_TIMEOUT, VIEW_SCRIPT_MAX_MEMORY and VIEW_LOG_LEVEL

        Returns:
            EngineConfig with unset variables left at their defaults

        Raises:
            ValueError: If a variable is set to a non-positive or non-numeric value
        """
        return cls(
            script_timeout=_optional_float('VIEW_SCRIPT_TIMEOUT'),
            script_max_memory=_optional_int('VIEW_SCRIPT_MAX_MEMORY'),
            log_level=os.environ.get('VIEW_LOG_LEVEL', 'INFO'),
        )

    def to_dict(self) -> dict:
        return asdict(self)
