"""
Configuration for the tile code index and its segment driver.

Provides dataclasses for the buffering, input and query settings, with
loaders for YAML files and environment variable overrides.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from tilecode.exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class BufferConfig:
    """
    How far a segment's quadrilateral extends around the segment.

    Attributes:
        distance_feet: Buffer distance on each side of the segment
        degrees_per_foot: Angular size of one foot (of latitude)
    """

    distance_feet: float = 100.0
    degrees_per_foot: float = 0.00000274

    def __post_init__(self):
        """Validate configuration."""
        if self.distance_feet < 0:
            raise ValueError(f"distance_feet must be >= 0, got {self.distance_feet}")
        if self.degrees_per_foot <= 0:
            raise ValueError(f"degrees_per_foot must be > 0, got {self.degrees_per_foot}")

    @property
    def distance_degrees(self) -> float:
        """Buffer distance in degrees."""
        return self.distance_feet * self.degrees_per_foot


@dataclass
class InputConfig:
    """
    Segment input settings.

    Attributes:
        terminator: Line that ends the segment list
    """

    terminator: str = "--"


@dataclass
class QueryConfig:
    """
    Range query behaviour.

    Attributes:
        strict: Raise when querying an index with unsorted additions;
            when False a warning is logged and the query runs anyway
    """

    strict: bool = True


@dataclass
class TileCodeConfig:
    """
    Complete configuration for tilecode.

    Attributes:
        buffer: Segment buffering settings
        input: Segment input settings
        query: Range query settings
    """

    buffer: BufferConfig = field(default_factory=BufferConfig)
    input: InputConfig = field(default_factory=InputConfig)
    query: QueryConfig = field(default_factory=QueryConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "TileCodeConfig":
        """
        Create configuration from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            TileCodeConfig instance
        """
        try:
            return cls(
                buffer=BufferConfig(**config_dict.get("buffer", {})),
                input=InputConfig(**config_dict.get("input", {})),
                query=QueryConfig(**config_dict.get("query", {})),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(reason=str(e)) from e

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "TileCodeConfig":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            TileCodeConfig instance
        """
        path = Path(yaml_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(path, "r") as f:
            try:
                config_dict = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(str(path), f"malformed YAML: {e}") from e

        if not isinstance(config_dict, dict):
            raise ConfigError(str(path), "top level must be a mapping")

        # Extract tilecode section if present
        if "tilecode" in config_dict:
            config_dict = config_dict["tilecode"] or {}

        try:
            return cls.from_dict(config_dict)
        except ConfigError as e:
            raise ConfigError(str(path), e.reason) from e

    def apply_environment(self) -> "TileCodeConfig":
        """
        Apply environment variable overrides in place.

        Environment variables:
        - TILECODE_BUFFER_FEET
        - TILECODE_TERMINATOR
        - TILECODE_STRICT

        Returns:
            This configuration, for chaining
        """
        feet = os.environ.get("TILECODE_BUFFER_FEET")
        if feet:
            try:
                distance = float(feet)
            except ValueError:
                logger.warning(f"Ignoring non-numeric TILECODE_BUFFER_FEET={feet!r}")
            else:
                try:
                    self.buffer = BufferConfig(
                        distance_feet=distance,
                        degrees_per_foot=self.buffer.degrees_per_foot,
                    )
                except ValueError as e:
                    raise ConfigError(reason=f"TILECODE_BUFFER_FEET: {e}") from e

        if os.environ.get("TILECODE_TERMINATOR"):
            self.input.terminator = os.environ["TILECODE_TERMINATOR"]

        if os.environ.get("TILECODE_STRICT"):
            self.query.strict = os.environ["TILECODE_STRICT"].lower() in ("1", "true", "yes")

        return self

    @classmethod
    def from_environment(cls) -> "TileCodeConfig":
        """Create default configuration with environment overrides applied."""
        return cls().apply_environment()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "buffer": {
                "distance_feet": self.buffer.distance_feet,
                "degrees_per_foot": self.buffer.degrees_per_foot,
            },
            "input": {
                "terminator": self.input.terminator,
            },
            "query": {
                "strict": self.query.strict,
            },
        }


DEFAULT_CONFIG_PATHS = [
    Path("tilecode.yaml"),
    Path(".tilecode.yaml"),
    Path("~/.tilecode/config.yaml"),
]


def load_config(
    yaml_path: Optional[str] = None,
    use_environment: bool = True,
) -> TileCodeConfig:
    """
    Load configuration with fallbacks.

    Attempts to load configuration in order:
    1. From specified YAML path (if provided)
    2. From default config paths
    3. Fall back to defaults

    Environment variable overrides are applied on top when requested.

    Args:
        yaml_path: Optional explicit path to YAML config
        use_environment: Whether to apply environment variable overrides

    Returns:
        TileCodeConfig instance
    """
    config = None

    if yaml_path:
        config = TileCodeConfig.from_yaml(yaml_path)
        logger.debug(f"Loaded config from {yaml_path}")

    if config is None:
        for path in DEFAULT_CONFIG_PATHS:
            path = path.expanduser()
            if path.exists():
                config = TileCodeConfig.from_yaml(str(path))
                logger.debug(f"Loaded config from {path}")
                break

    if config is None:
        config = TileCodeConfig()

    if use_environment:
        config.apply_environment()

    return config
