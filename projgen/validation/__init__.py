"""Project and configuration validation."""

from projgen.validation.engine import REQUIRED_FILES, ValidationEngine, validate_project_config

__all__ = [
    "REQUIRED_FILES",
    "ValidationEngine",
    "validate_project_config",
]
