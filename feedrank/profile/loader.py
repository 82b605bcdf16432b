"""YAML weight profile loading with validation."""

import hashlib
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from feedrank.profile.schema import WeightProfile


logger = structlog.get_logger()


class ProfileValidationError(Exception):
    """Raised when a weight profile cannot be loaded or validated."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


def load_weight_profile(file_path: Path) -> WeightProfile:
    """Load and validate a YAML weight profile.

    Args:
        file_path: Path to the profile file.

    Returns:
        Validated weight profile.

    Raises:
        ProfileValidationError: If the file is missing, is not YAML, or
            does not match the profile schema.
    """
    log = logger.bind(component="profile", file_path=str(file_path))

    try:
        content_bytes = file_path.read_bytes()
    except FileNotFoundError as e:
        log.error("profile_file_not_found")
        raise ProfileValidationError(
            [{"loc": "file", "msg": f"File not found: {file_path}", "type": "file_not_found"}],
            str(file_path),
        ) from e

    checksum = hashlib.sha256(content_bytes).hexdigest()

    try:
        parsed = yaml.safe_load(content_bytes.decode("utf-8")) or {}
    except yaml.YAMLError as e:
        log.error("profile_yaml_invalid", error=str(e))
        raise ProfileValidationError(
            [{"loc": "file", "msg": f"YAML parse error: {e}", "type": "yaml_error"}],
            str(file_path),
        ) from e

    try:
        profile = WeightProfile.model_validate(parsed)
    except ValidationError as e:
        errors = [
            {
                "loc": ".".join(str(loc) for loc in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        log.error("profile_validation_failed", validation_error_count=len(errors), errors=errors)
        raise ProfileValidationError(errors, str(file_path)) from e

    log.info(
        "profile_loaded",
        profile=profile.name,
        file_sha256=checksum,
        weight_count=len(profile.weights),
    )
    return profile
