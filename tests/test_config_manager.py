"""
Tests for ConfigManager
"""

import json

import pytest

from redshift_etl.core.exceptions import ConfigurationError
from redshift_etl.utils.config_manager import ConfigManager


@pytest.fixture
def manager():
    manager = ConfigManager()
    manager.clear_cache()
    yield manager
    manager.clear_cache()


class TestConfigManager:
    def test_load_valid_config(self, manager, config_file):
        config = manager.load_config(config_file)

        assert config['redshift']['host'] == 'test-cluster.example.com'
        assert [t['name'] for t in config['tables']] == ['users', 'events']

    def test_cached(self, manager, config_file):
        first = manager.load_config(config_file)
        second = manager.load_config(config_file)
        assert first is second
        assert manager.cache_size == 1

    def test_missing_file(self, manager, temp_dir):
        with pytest.raises(ConfigurationError, match="not found"):
            manager.load_config(temp_dir / 'missing.json')

    def test_invalid_json(self, manager, temp_dir):
        path = temp_dir / 'broken.json'
        path.write_text('{"redshift": ')
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            manager.load_config(path)

    def test_schema_violation(self, manager, temp_dir, sample_config):
        del sample_config['redshift']['host']
        path = temp_dir / 'invalid.json'
        path.write_text(json.dumps(sample_config))

        with pytest.raises(ConfigurationError, match="validation failed"):
            manager.load_config(path)

    def test_env_overrides(self, manager, config_file, monkeypatch):
        monkeypatch.setenv('REDSHIFT_ETL_HOST', 'override.example.com')
        monkeypatch.setenv('REDSHIFT_ETL_PORT', '5440')
        monkeypatch.setenv('REDSHIFT_ETL_STAGING_PATH', 's3://bucket/override')

        config = manager.load_config(config_file, use_cache=False)

        assert config['redshift']['host'] == 'override.example.com'
        assert config['redshift']['port'] == 5440
        assert config['staging']['path'] == 's3://bucket/override'

    def test_bad_port_override(self, manager, config_file, monkeypatch):
        monkeypatch.setenv('REDSHIFT_ETL_PORT', 'abc')
        with pytest.raises(ConfigurationError):
            manager.load_config(config_file, use_cache=False)

    def test_accessors(self, manager, config_file):
        manager.load_config(config_file)

        assert manager.get_redshift_config()['database'] == 'dev'
        assert manager.get_staging_config()['region'] == 'us-east-1'
        assert [t['name'] for t in manager.get_table_configs(table_name='events')] == ['events']
        assert manager.get_all_table_names() == ['events', 'users']

    def test_staging_path_default(self, manager, temp_dir, sample_config):
        del sample_config['staging']
        path = temp_dir / 'nostaging.json'
        path.write_text(json.dumps(sample_config))

        assert manager.get_staging_config(path)['path'] == '/tmp'

    def test_accessor_without_config(self, manager):
        with pytest.raises(ConfigurationError):
            manager.get_redshift_config()
