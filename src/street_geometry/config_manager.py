"""
Configuration manager for resolver settings.

Loads resolver configuration from YAML files, validates settings,
and provides environment variable substitution.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from . import __version__
from .errors import ConfigError

DEFAULT_OVERPASS_ENDPOINTS = (
    "https://overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
    "https://overpass.openstreetmap.ru/api/interpreter",
)

DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org/reverse"


@dataclass
class ResolverConfig:
    """Validated resolver configuration."""
    overpass_endpoints: Tuple[str, ...] = DEFAULT_OVERPASS_ENDPOINTS
    timeout_s: float = 25.0
    user_agent: str = f"street-geometry/{__version__}"

    # Retrieval tiers
    search_radius_m: float = 1500.0
    close_radius_m: float = 400.0
    wide_radius_m: float = 2500.0
    max_filter_tokens: int = 3

    # Scoring
    acceptance_threshold: float = 0.4
    proximity_bonus_weight: float = 0.15
    containment_score: float = 0.92

    # Nearby street lookup
    nominatim_url: str = DEFAULT_NOMINATIM_URL
    nearby_default_radius_m: float = 220.0
    nearby_min_radius_m: float = 80.0
    nearby_max_radius_m: float = 800.0
    cache_ttl_s: float = 12 * 60 * 60

    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the nested layout used in YAML files."""
        return {
            "overpass": {
                "endpoints": list(self.overpass_endpoints),
                "timeout_s": self.timeout_s,
                "user_agent": self.user_agent,
            },
            "search": {
                "radius_m": self.search_radius_m,
                "close_radius_m": self.close_radius_m,
                "wide_radius_m": self.wide_radius_m,
                "max_filter_tokens": self.max_filter_tokens,
            },
            "scoring": {
                "acceptance_threshold": self.acceptance_threshold,
                "proximity_bonus_weight": self.proximity_bonus_weight,
                "containment_score": self.containment_score,
            },
            "nearby": {
                "nominatim_url": self.nominatim_url,
                "default_radius_m": self.nearby_default_radius_m,
                "min_radius_m": self.nearby_min_radius_m,
                "max_radius_m": self.nearby_max_radius_m,
                "cache_ttl_s": self.cache_ttl_s,
            },
        }


# (section, key, attribute, type)
_SETTINGS: List[Tuple[str, str, str, type]] = [
    ("overpass", "timeout_s", "timeout_s", float),
    ("overpass", "user_agent", "user_agent", str),
    ("search", "radius_m", "search_radius_m", float),
    ("search", "close_radius_m", "close_radius_m", float),
    ("search", "wide_radius_m", "wide_radius_m", float),
    ("search", "max_filter_tokens", "max_filter_tokens", int),
    ("scoring", "acceptance_threshold", "acceptance_threshold", float),
    ("scoring", "proximity_bonus_weight", "proximity_bonus_weight", float),
    ("scoring", "containment_score", "containment_score", float),
    ("nearby", "nominatim_url", "nominatim_url", str),
    ("nearby", "default_radius_m", "nearby_default_radius_m", float),
    ("nearby", "min_radius_m", "nearby_min_radius_m", float),
    ("nearby", "max_radius_m", "nearby_max_radius_m", float),
    ("nearby", "cache_ttl_s", "cache_ttl_s", float),
]

_POSITIVE = (
    "timeout_s",
    "search_radius_m",
    "close_radius_m",
    "wide_radius_m",
    "max_filter_tokens",
    "nearby_default_radius_m",
    "nearby_min_radius_m",
    "nearby_max_radius_m",
    "cache_ttl_s",
)


class ConfigManager:
    """Manages resolver configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration YAML file (optional)
        """
        self.config_path = config_path
        self._config: Optional[Dict[str, Any]] = None

    def load(self, config_path: Optional[Path] = None) -> ResolverConfig:
        """Load and validate configuration from YAML file.

        Without any path the built-in defaults are returned.

        Args:
            config_path: Path to configuration file (overrides init path)

        Returns:
            ResolverConfig with validated settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigError: If configuration is invalid
        """
        path = config_path or self.config_path
        if path is None:
            self._config = {}
            return ResolverConfig()

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r') as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ConfigError(f"Configuration root must be a mapping: {path}")

        config = self._substitute_env_vars(config)
        self._config = config

        return self.from_dict(config)

    def from_dict(self, config: Dict[str, Any]) -> ResolverConfig:
        """Build a validated ResolverConfig from a nested dictionary."""
        resolved = ResolverConfig()

        for section in ("overpass", "search", "scoring", "nearby"):
            value = config.get(section, {})
            if not isinstance(value, dict):
                raise ConfigError(f"Section {section} must be a dictionary")

        for section, key, attribute, kind in _SETTINGS:
            section_config = config.get(section) or {}
            if key not in section_config or section_config[key] in (None, ""):
                continue
            try:
                setattr(resolved, attribute, kind(section_config[key]))
            except (TypeError, ValueError):
                raise ConfigError(
                    f"Invalid value for {section}.{key}: {section_config[key]!r}"
                )

        endpoints = (config.get("overpass") or {}).get("endpoints")
        if endpoints is not None:
            if isinstance(endpoints, str):
                endpoints = [endpoints]
            resolved.overpass_endpoints = tuple(str(url).strip() for url in endpoints if str(url).strip())

        resolved.extra = {
            key: value for key, value in config.items()
            if key not in ("overpass", "search", "scoring", "nearby")
        }

        self._validate_config(resolved)
        return resolved

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute environment variables in configuration.

        Supports syntax: ${VAR_NAME} or ${VAR_NAME:default_value}
        """
        if isinstance(config, dict):
            return {
                key: self._substitute_env_vars(value)
                for key, value in config.items()
            }
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_string(config)
        else:
            return config

    def _substitute_env_var_string(self, value: str) -> str:
        """Substitute environment variables in a string."""
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replacer, value)

    def _validate_config(self, config: ResolverConfig) -> None:
        """Validate configuration values.

        Raises:
            ConfigError: If configuration is invalid
        """
        if not config.overpass_endpoints:
            raise ConfigError("At least one Overpass endpoint is required")

        for attribute in _POSITIVE:
            if getattr(config, attribute) <= 0:
                raise ConfigError(f"{attribute} must be positive")

        if not 0 <= config.acceptance_threshold <= 2:
            raise ConfigError("acceptance_threshold must be between 0 and 2")

        if not 0 <= config.proximity_bonus_weight <= 1:
            raise ConfigError("proximity_bonus_weight must be between 0 and 1")

        if not 0 <= config.containment_score <= 1:
            raise ConfigError("containment_score must be between 0 and 1")

        if config.nearby_min_radius_m > config.nearby_max_radius_m:
            raise ConfigError("nearby min_radius_m exceeds max_radius_m")

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get a raw configuration section.

        Raises:
            ValueError: If configuration has not been loaded
        """
        if self._config is None:
            raise ValueError("Configuration not loaded - call load() first")
        return self._config.get(section) or {}

    def save_example_config(self, output_path: Path) -> None:
        """Save an example configuration file.

        Args:
            output_path: Path where to save example config
        """
        example_config = ResolverConfig().to_dict()
        example_config["overpass"]["user_agent"] = "${STREET_GEOMETRY_USER_AGENT:street-geometry}"

        with open(output_path, 'w') as f:
            yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)
