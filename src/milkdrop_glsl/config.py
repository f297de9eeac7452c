"""
Converter configuration.

Values come from constructor arguments or the command line; nothing is read
from files or the environment.
"""

from dataclasses import dataclass
from typing import Optional

# Autofix passes before a shader is given up on
DEFAULT_MAX_ITERATIONS = 5


@dataclass(frozen=True)
class ConverterConfig:
    """
    Settings for one conversion run.

    Attributes:
        max_iterations: Upper bound on autofix passes per shader
        validator_executable: Validator path; None auto-detects glslangValidator
        validator_timeout: Seconds before a validator run is abandoned
        validate: False skips validation and autofix entirely
        writable_warp_uv: Give warp bodies a writable copy of `uv`
    """
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    validator_executable: Optional[str] = None
    validator_timeout: float = 5.0
    validate: bool = True
    writable_warp_uv: bool = True

    def __post_init__(self):
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {self.max_iterations}")
        if self.validator_timeout <= 0:
            raise ValueError(f"validator_timeout must be positive, got {self.validator_timeout}")
