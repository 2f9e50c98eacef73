#!/usr/bin/env python3
"""
Configuration Management Module for the Allocator CLI

Handles hierarchical configuration loading (defaults, profiles, files and
environment variables), validation, and conversion of the collection
section into a validated CollectionConfig.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from collection.schema import CollectionConfig

# Configuration file locations in order of precedence (highest to lowest)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.allocator.yml',              # Project-specific YAML
    Path.cwd() / '.allocator.json',             # Project-specific JSON
    Path.cwd() / 'allocator.config.yml',        # Alternative project config
    Path.cwd() / 'allocator.config.json',       # Alternative project config
    Path.home() / '.allocator' / 'config.yml',  # User global YAML
    Path.home() / '.allocator' / 'config.json', # User global JSON
]

# Environment variable prefix
ENV_PREFIX = 'ALLOCATOR_'

OUTPUT_FORMATS = ['table', 'json', 'yaml', 'csv']

# Default configuration values
DEFAULT_CONFIG = {
    # Collection settings
    'collection': {
        'name': 'KryptoTrees NFT',
        'symbol': 'TREE',
        'owner_address': 'admin',
        'max_supply': 10,
        'start_from': 3,
        'reserved_count': 2,
        'cost_per_token': '1 ether',
        'max_mint_amount': 2,
        'paused': True,
        'revealed': False,
        'base_uri': '',
        'base_extension': '.json',
        'not_revealed_uri': '',
        'entropy_seed': None
    },

    # Audit trail
    'audit': {
        'log_file': None,
        'max_events': 1000
    },

    # CLI behavior
    'cli': {
        'output_format': 'table',
        'verbose': 0
    }
}

# Configuration profiles
PROFILES = {
    'launch': {
        'collection': {'paused': True, 'revealed': False},
        'cli': {'verbose': 0}
    },
    'simulation': {
        'collection': {'paused': False, 'entropy_seed': 42},
        'cli': {'verbose': 1}
    }
}

# Keys of the collection section that are not CollectionConfig fields
ENGINE_ONLY_KEYS = {'entropy_seed'}


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            profile: Configuration profile to load (launch, simulation)
        """
        self.logger = logging.getLogger('allocator-cli.config')
        self.config_file = config_file
        self.profile = profile
        self._config_cache = None
        self._config_sources = []

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary
        """
        if self._config_cache is not None:
            return self._config_cache

        configs = []

        # 1. Start with default configuration
        configs.append(copy.deepcopy(DEFAULT_CONFIG))
        self._config_sources.append("defaults")

        # 2. Apply profile if specified
        if self.profile:
            if self.profile not in PROFILES:
                raise ValueError(f"Unknown configuration profile: {self.profile}")
            configs.append(PROFILES[self.profile])
            self._config_sources.append(f"profile:{self.profile}")
            self.logger.debug(f"Applied profile: {self.profile}")

        # 3. Load configuration files
        if self.config_file:
            config_data = self._load_config_file(Path(self.config_file))
            if config_data:
                configs.append(config_data)
                self._config_sources.append(f"file:{self.config_file}")
        else:
            for config_path in CONFIG_SEARCH_PATHS:
                if config_path.exists():
                    config_data = self._load_config_file(config_path)
                    if config_data:
                        configs.append(config_data)
                        self._config_sources.append(f"file:{config_path}")
                        self.logger.debug(f"Loaded config from {config_path}")
                        break  # Use first found config file

        # 4. Apply environment variables
        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        # Later sources override earlier ones
        self._config_cache = self._deep_merge(*configs)
        self._expand_paths(self._config_cache)

        return self._config_cache

    def _load_config_file(self, path: Path) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yml', '.yaml']:
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                self.logger.warning(f"Unknown config file format: {path}")
                return None

        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        ALLOCATOR_<SECTION>_<KEY> maps to {section: {key: value}}, e.g.
        ALLOCATOR_COLLECTION_COST_PER_TOKEN -> collection.cost_per_token.
        """
        env_config = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            config_key = key[len(ENV_PREFIX):].lower()
            section, _, option = config_key.partition('_')
            if not option:
                continue

            env_config.setdefault(section, {})[option] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool, None]:
        """Parse environment variable value to appropriate type."""
        # Try JSON first (numbers, booleans, null, lists)
        try:
            return json.loads(value)
        except ValueError:
            pass

        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries."""
        result = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = copy.deepcopy(value)

        return result

    def _expand_paths(self, config: Dict[str, Any]):
        """Expand ~ and environment variables in path values."""
        log_file = config.get('audit', {}).get('log_file')
        if isinstance(log_file, str):
            config['audit']['log_file'] = os.path.expanduser(os.path.expandvars(log_file))

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'collection.max_supply')
            default: Default value if key not found
        """
        current = self.load()

        for key in key_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def set(self, key_path: str, value: Any):
        """Set configuration value by dot-notation path."""
        config = self.load()

        keys = key_path.split('.')
        current = config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value
        self._config_cache = config

    def save(self, path: Optional[str] = None, format: str = 'yaml'):
        """
        Save current configuration to file.

        Args:
            path: File path to save to (default: project config file)
            format: Output format ('yaml' or 'json')
        """
        config = self.load()

        if not path:
            path = Path.cwd() / ('.allocator.yml' if format == 'yaml' else '.allocator.json')

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            if format == 'yaml':
                yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(config, f, indent=2)

        self.logger.info(f"Configuration saved to {path}")

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        config = self.load()
        errors = []

        try:
            build_collection_config(config)
        except ValidationError as e:
            for error in e.errors():
                location = '.'.join(str(part) for part in error['loc'])
                errors.append(f"collection.{location}: {error['msg']}" if location
                              else f"collection: {error['msg']}")

        seed = config.get('collection', {}).get('entropy_seed')
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
            errors.append(f"collection.entropy_seed must be an integer, got {seed!r}")

        output_format = config.get('cli', {}).get('output_format')
        if output_format not in OUTPUT_FORMATS:
            errors.append(f"Invalid output format: {output_format}")

        max_events = config.get('audit', {}).get('max_events')
        if not isinstance(max_events, int) or max_events <= 0:
            errors.append("audit.max_events must be a positive integer")

        return errors

    def get_sources(self) -> List[str]:
        """Get list of configuration sources that were loaded."""
        self.load()
        return self._config_sources

    def reset(self):
        """Reset configuration cache."""
        self._config_cache = None
        self._config_sources = []


def build_collection_config(config: Dict[str, Any]) -> CollectionConfig:
    """
    Build a validated CollectionConfig from a merged configuration.

    Raises:
        pydantic.ValidationError: If the collection section is invalid
    """
    section = dict(config.get('collection', {}))
    for key in ENGINE_ONLY_KEYS:
        section.pop(key, None)
    return CollectionConfig(**section)
