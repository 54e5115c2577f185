"""
Unit tests for configuration loading (keeper/config.py).
"""

import pytest

from keeper.config import (
    ConfigLoadError,
    DevelopmentConfig,
    ProductionConfig,
    get_settings,
    load_config,
    parse_config
)
from keeper.models import TaskKind


SAMPLE = {
    "telegram": {"BotToken": "123:abc", "ChatID": 987654, "enable": True},
    "WebsiteTasks": [{
        "Website": "example.com",
        "BackupSource": "/var/www/example.com",
        "StorePath": "/backup/example.com",
        "MaxBackup": 7,
        "OnedrivePath": "onedrive:backup/example.com"
    }],
    "DatabaseTasks": [{
        "Database": "shop",
        "StorePath": "/backup/shop",
        "MaxBackup": 14,
        "OnedrivePath": "onedrive:backup/shop"
    }],
    "ConfigTasks": [{
        "Name": "nginx",
        "BackupSource": "/etc/nginx",
        "StorePath": "/backup/nginx",
        "MaxBackup": 3,
        "OnedrivePath": "s3://backups/nginx"
    }]
}


class TestLoadConfig:
    """Test load_config / parse_config."""

    def test_load_sample(self, config_file):
        config = load_config(config_file(SAMPLE))

        assert config.telegram.bot_token == '123:abc'
        assert config.telegram.chat_id == 987654
        assert config.telegram.enable is True

        website, = config.website_tasks
        assert website.kind is TaskKind.WEBSITE
        assert website.label == 'example.com'
        assert website.source == '/var/www/example.com'
        assert website.store_path == '/backup/example.com'
        assert website.max_backups == 7
        assert website.remote_destination == 'onedrive:backup/example.com'

        database, = config.database_tasks
        assert database.kind is TaskKind.DATABASE
        assert database.source == 'shop'

        nginx, = config.config_tasks
        assert nginx.label == 'nginx'
        assert nginx.remote_destination == 's3://backups/nginx'

    def test_all_tasks_in_file_order(self, config_file):
        config = load_config(config_file(SAMPLE))

        assert [t.label for t in config.all_tasks] == ['example.com', 'shop', 'nginx']

    def test_camel_case_keys(self):
        config = parse_config({
            "telegram": {"botToken": "t", "chatID": 1, "enable": False},
            "websiteTasks": [{
                "website": "a.org", "backupSource": "/a", "storePath": "/s",
                "maxBackup": 0, "onedrivePath": "r:a"
            }]
        })

        assert config.website_tasks[0].label == 'a.org'
        assert config.website_tasks[0].max_backups == 0

    def test_defaults(self):
        config = parse_config({})

        assert config.telegram.enable is False
        assert list(config.all_tasks) == []
        assert config.max_concurrency is None
        assert config.schedule is None
        assert config.fail_on_error is False

    def test_optional_settings(self):
        config = parse_config({
            "maxConcurrency": 4, "commandTimeout": 600,
            "schedule": "0 3 * * *", "failOnError": True
        })

        assert config.max_concurrency == 4
        assert config.command_timeout == 600.0
        assert config.schedule == '0 3 * * *'
        assert config.fail_on_error is True

    def test_schedule(self):
        assert parse_config({'Schedule': '0 3 * * *'}).schedule == '0 3 * * *'
        assert parse_config({'schedule': ''}).schedule is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigLoadError, match="Error reading"):
            load_config(str(tmp_path / 'missing.json'))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text('{not json')

        with pytest.raises(ConfigLoadError, match="Error parsing"):
            load_config(str(path))

    @pytest.mark.parametrize("record,message", [
        ({"BackupSource": "/a", "StorePath": "/s", "MaxBackup": 1}, "missing 'Website'"),
        ({"Website": "a", "StorePath": "/s", "MaxBackup": 1}, "missing 'backupSource'"),
        ({"Website": "a", "BackupSource": "/a", "MaxBackup": 1}, "missing 'storePath'"),
        ({"Website": "a", "BackupSource": "/a", "StorePath": "/s"}, "must be an integer"),
        ({"Website": "a", "BackupSource": "/a", "StorePath": "/s", "MaxBackup": "3"}, "must be an integer"),
        ({"Website": "a", "BackupSource": "/a", "StorePath": "/s", "MaxBackup": -1}, "must not be negative"),
    ])
    def test_invalid_task(self, record, message):
        with pytest.raises(ConfigLoadError, match=message):
            parse_config({"WebsiteTasks": [record]})

    @pytest.mark.parametrize("raw", [
        [],
        {"WebsiteTasks": {}},
        {"telegram": "yes"},
        {"maxConcurrency": 0},
        {"commandTimeout": -5},
    ])
    def test_invalid_structure(self, raw):
        with pytest.raises(ConfigLoadError):
            parse_config(raw)


class TestSettings:

    def test_get_settings_by_name(self):
        assert isinstance(get_settings('development'), DevelopmentConfig)
        assert isinstance(get_settings('production'), ProductionConfig)

    def test_get_settings_from_env(self, monkeypatch):
        monkeypatch.setenv('KEEPER_ENV', 'development')
        assert isinstance(get_settings(), DevelopmentConfig)

    def test_unknown_name_falls_back(self):
        assert isinstance(get_settings('staging'), ProductionConfig)

    def test_numeric_overrides_from_env(self, monkeypatch):
        monkeypatch.setenv('KEEPER_MAX_WORKERS', '4')
        monkeypatch.setenv('KEEPER_COMMAND_TIMEOUT', '90.5')

        settings = get_settings('production')

        assert settings.MAX_WORKERS == 4
        assert settings.COMMAND_TIMEOUT == 90.5
        # Overrides apply to the instance only
        assert ProductionConfig.MAX_WORKERS is None

    def test_numeric_overrides_unset(self, monkeypatch):
        monkeypatch.delenv('KEEPER_MAX_WORKERS', raising=False)
        monkeypatch.setenv('KEEPER_COMMAND_TIMEOUT', '')

        settings = get_settings('production')

        assert settings.MAX_WORKERS is None
        assert settings.COMMAND_TIMEOUT is None

    @pytest.mark.parametrize("value", ['abc', '0', '-2', '1.5'])
    def test_invalid_max_workers(self, monkeypatch, value):
        monkeypatch.setenv('KEEPER_MAX_WORKERS', value)

        with pytest.raises(ConfigLoadError, match="KEEPER_MAX_WORKERS"):
            get_settings('production')

    @pytest.mark.parametrize("value", ['x', '0', '-1', 'nan', 'inf'])
    def test_invalid_command_timeout(self, monkeypatch, value):
        monkeypatch.setenv('KEEPER_COMMAND_TIMEOUT', value)

        with pytest.raises(ConfigLoadError, match="KEEPER_COMMAND_TIMEOUT"):
            get_settings('production')
