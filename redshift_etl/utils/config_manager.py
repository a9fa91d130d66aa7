"""
Configuration Manager
Centralized configuration loading, validation, and caching
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
from jsonschema import ValidationError

from redshift_etl.core.exceptions import ConfigurationError


class ConfigManager:
    """
    Centralized configuration management with caching and validation

    Features:
    - Configuration caching to reduce I/O
    - Schema validation
    - Environment variable overrides
    """

    _cache: Dict[str, Dict[str, Any]] = {}

    ENV_PREFIX = "REDSHIFT_ETL_"

    # Default configuration schema
    DEFAULT_SCHEMA = {
        "type": "object",
        "required": ["redshift", "tables"],
        "properties": {
            "redshift": {
                "type": "object",
                "required": ["host", "database"],
                "properties": {
                    "host": {"type": "string"},
                    "port": {"type": "integer"},
                    "database": {"type": "string"},
                    "user": {"type": "string"},
                    "password": {"type": "string"},
                    "schema": {"type": "string"},
                    "ssl": {"type": "boolean"},
                    "timeout": {"type": "integer"}
                }
            },
            "staging": {
                "type": "object",
                "properties": {
                    "path": {"type": "string"},
                    "region": {"type": "string"}
                }
            },
            "tables": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {
                        "name": {"type": "string"},
                        "fields": {
                            "type": "array",
                            "items": {
                                "type": "array",
                                "minItems": 1,
                                "maxItems": 2,
                                "items": {"type": "string"}
                            }
                        },
                        "properties": {
                            "type": "object",
                            "additionalProperties": {"type": ["string", "null", "boolean", "integer"]}
                        }
                    }
                }
            }
        }
    }

    def __init__(self, base_path: Optional[Path] = None):
        """
        Initialize ConfigManager

        Args:
            base_path: Base directory for relative configuration paths
        """
        self.base_path = base_path or Path.cwd()

    def load_config(
        self,
        config_path: Union[str, Path],
        validate: bool = True,
        use_cache: bool = True
    ) -> Dict[str, Any]:
        """
        Load and cache configuration from file

        Args:
            config_path: Path to configuration file
            validate: Whether to validate against schema
            use_cache: Whether to use cached version if available

        Returns:
            Configuration dictionary

        Raises:
            ConfigurationError: If the file is missing, not JSON, or invalid
        """
        config_path = Path(config_path)
        if not config_path.is_absolute():
            config_path = self.base_path / config_path
        config_path = config_path.resolve()
        cache_key = str(config_path)

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        # Check cache
        if use_cache and cache_key in self._cache:
            cached_time = self._cache[cache_key].get('_cached_at', 0)
            file_mtime = config_path.stat().st_mtime
            if file_mtime <= cached_time:
                return self._cache[cache_key]['config']

        try:
            with open(config_path, 'r') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e

        config = self._apply_env_overrides(config)

        if validate:
            self.validate_config(config)

        self._cache[cache_key] = {
            'config': config,
            '_cached_at': datetime.now().timestamp()
        }

        return config

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides to configuration

        Environment variables are prefixed with REDSHIFT_ETL_
        Example: REDSHIFT_ETL_HOST=cluster.example.com

        Args:
            config: Original configuration

        Returns:
            Configuration with overrides applied
        """
        redshift_overrides = {
            'HOST': 'host',
            'PORT': 'port',
            'DATABASE': 'database',
            'USER': 'user',
            'PASSWORD': 'password'
        }

        if 'redshift' not in config:
            config['redshift'] = {}

        for env_suffix, config_key in redshift_overrides.items():
            env_var = f"{self.ENV_PREFIX}{env_suffix}"
            if env_var in os.environ:
                value = os.environ[env_var]
                if config_key == 'port':
                    try:
                        value = int(value)
                    except ValueError as e:
                        raise ConfigurationError(f"{env_var} must be an integer, got {value!r}") from e
                config['redshift'][config_key] = value

        staging_var = f"{self.ENV_PREFIX}STAGING_PATH"
        if staging_var in os.environ:
            config.setdefault('staging', {})['path'] = os.environ[staging_var]

        return config

    def validate_config(
        self,
        config: Dict[str, Any],
        schema: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Validate configuration against schema

        Args:
            config: Configuration to validate
            schema: JSON schema (uses default if not provided)

        Returns:
            True if valid

        Raises:
            ConfigurationError: If configuration is invalid
        """
        schema = schema or self.DEFAULT_SCHEMA

        try:
            jsonschema.validate(config, schema)
            return True
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e.message}") from e

    def _get_config(self, config_path: Optional[Union[str, Path]]) -> Dict[str, Any]:
        if config_path:
            return self.load_config(config_path)
        if not self._cache:
            raise ConfigurationError("No configuration loaded")
        return next(iter(self._cache.values()))['config']

    def get_redshift_config(
        self,
        config_path: Optional[Union[str, Path]] = None
    ) -> Dict[str, Any]:
        """
        Extract Redshift connection parameters from configuration

        Args:
            config_path: Path to configuration file (uses cached if not provided)

        Returns:
            Redshift configuration dictionary
        """
        return self._get_config(config_path).get('redshift', {})

    def get_staging_config(
        self,
        config_path: Optional[Union[str, Path]] = None
    ) -> Dict[str, Any]:
        """Staging section, defaulting the path to /tmp"""
        staging = dict(self._get_config(config_path).get('staging', {}))
        staging.setdefault('path', '/tmp')
        return staging

    def get_table_configs(
        self,
        config_path: Optional[Union[str, Path]] = None,
        table_name: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Get table load configurations

        Args:
            config_path: Path to configuration file
            table_name: Filter by specific table name

        Returns:
            List of table configurations
        """
        tables = self._get_config(config_path).get('tables', [])

        if table_name:
            tables = [t for t in tables if t.get('name') == table_name]

        return tables

    def get_all_table_names(
        self,
        config_path: Optional[Union[str, Path]] = None
    ) -> List[str]:
        """Get all unique table names from the configuration"""
        return sorted({t['name'] for t in self.get_table_configs(config_path)})

    def clear_cache(self, config_path: Optional[Union[str, Path]] = None):
        """
        Clear configuration cache

        Args:
            config_path: Specific configuration to clear (clears all if not provided)
        """
        if config_path:
            cache_key = str(Path(config_path).resolve())
            self._cache.pop(cache_key, None)
        else:
            self._cache.clear()

    @property
    def cache_size(self) -> int:
        """Get number of cached configurations"""
        return len(self._cache)
