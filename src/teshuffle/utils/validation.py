"""Input validation utilities for teshuffle."""

import logging
from pathlib import Path
from typing import List

from teshuffle.exceptions import ConfigurationError
from teshuffle.utils.config import ShuffleConfig

logger = logging.getLogger(__name__)


def validate_file_exists(filepath: str, description: str = "File") -> None:
    """
    Validate that a file exists.

    Args:
        filepath: Path to check
        description: Description for error message

    Raises:
        ConfigurationError: If file doesn't exist
    """
    if not Path(filepath).exists():
        raise ConfigurationError(f"{description} not found: {filepath}")


def validate_config(config: ShuffleConfig) -> None:
    """
    Validate a run configuration, including the existence of every input.

    Args:
        config: Options of the run

    Raises:
        ConfigurationError: On the first batch of problems found
    """
    problems: List[str] = config.validate()
    if problems:
        raise ConfigurationError("; ".join(problems))

    validate_file_exists(config.features, "Features file (-f)")
    validate_file_exists(config.shuffle, "File to shuffle (-s)")
    validate_file_exists(config.range_file, "Range file (-r)")
    for path in config.exclude:
        validate_file_exists(path, "Exclusion file (-e)")
    for path in config.include:
        validate_file_exists(path, "Inclusion file (-i)")
    if config.age_file:
        validate_file_exists(config.age_file, "TE age file (-g)")
    if config.bedtools_dir and not Path(config.bedtools_dir).is_dir():
        raise ConfigurationError(f"bedtools directory not found: {config.bedtools_dir}")

    logger.debug("Configuration validated")
