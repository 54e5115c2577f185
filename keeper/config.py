import os
import json
from typing import Any, Dict, List, Optional, Tuple

from keeper.models import BackupConfig, BackupTask, TaskKind, TelegramSettings


class Config:
    """Base configuration"""

    # Logging
    DEBUG = False
    LOG_DIR = os.environ.get('KEEPER_LOG_DIR') or '/var/log/keeper'

    # Dispatcher (None = one worker per task)
    MAX_WORKERS = None

    # External commands
    COMMAND_TIMEOUT = None
    DUMP_COMMAND = os.environ.get('KEEPER_DUMP_COMMAND') or 'mysqldump'
    SYNC_COMMAND = os.environ.get('KEEPER_SYNC_COMMAND') or 'rclone sync'

    # S3 replication
    AWS_REGION = os.environ.get('AWS_REGION') or 'us-east-1'

    # Scheduler
    SCHEDULER_TIMEZONE = os.environ.get('KEEPER_TIMEZONE') or 'UTC'


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    # Use local data directory for development
    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    LOG_DIR = os.path.join(BASE_DIR, 'data', 'logs')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}


class ConfigLoadError(Exception):
    """Raised when the backup configuration cannot be read or is invalid."""
    pass


def get_settings(config_name: Optional[str] = None) -> Config:
    """
    Return the settings selected by name or KEEPER_ENV.

    Numeric overrides are read from the environment here rather than at
    import time, so a bad value is reported as a ConfigLoadError.
    """
    if config_name is None:
        config_name = os.environ.get('KEEPER_ENV', 'production')
    settings = config.get(config_name, config['default'])()

    max_workers = _env_number('KEEPER_MAX_WORKERS', int)
    if max_workers is not None:
        settings.MAX_WORKERS = max_workers

    command_timeout = _env_number('KEEPER_COMMAND_TIMEOUT', float)
    if command_timeout is not None:
        settings.COMMAND_TIMEOUT = command_timeout

    return settings


def _env_number(name: str, cast):
    """Read a positive number from the environment; unset or empty gives None."""
    value = os.environ.get(name)
    if not value:
        return None
    try:
        number = cast(value)
    except ValueError:
        number = None
    if number is None or not 0 < number < float('inf'):
        raise ConfigLoadError(f"{name} must be a positive number, got '{value}'")
    return number


def load_config(path: str) -> BackupConfig:
    """
    Load and validate a backup configuration file.

    Keys are matched case-insensitively, so ``WebsiteTasks`` and
    ``websiteTasks`` are equivalent.

    Args:
        path: Path to the JSON configuration file

    Returns:
        BackupConfig instance

    Raises:
        ConfigLoadError: If the file is unreadable, malformed or invalid
    """
    try:
        with open(path, 'r') as f:
            raw = json.load(f)
    except OSError as e:
        raise ConfigLoadError(f"Error reading config file: {e}")
    except ValueError as e:
        raise ConfigLoadError(f"Error parsing config file: {e}")

    return parse_config(raw)


def parse_config(raw: Any) -> BackupConfig:
    """Build a BackupConfig from decoded JSON data."""
    if not isinstance(raw, dict):
        raise ConfigLoadError("Config root must be an object")

    telegram_raw = _get(raw, 'telegram') or {}
    if not isinstance(telegram_raw, dict):
        raise ConfigLoadError("'telegram' must be an object")

    try:
        telegram = TelegramSettings(
            bot_token=str(_get(telegram_raw, 'botToken') or ''),
            chat_id=int(_get(telegram_raw, 'chatID') or 0),
            enable=bool(_get(telegram_raw, 'enable') or False)
        )
    except (TypeError, ValueError) as e:
        raise ConfigLoadError(f"Invalid telegram settings: {e}")

    schedule = _get(raw, 'schedule') or None
    if schedule is not None and not isinstance(schedule, str):
        raise ConfigLoadError("'schedule' must be a crontab string")

    return BackupConfig(
        telegram=telegram,
        website_tasks=_parse_tasks(raw, 'websiteTasks', TaskKind.WEBSITE),
        database_tasks=_parse_tasks(raw, 'databaseTasks', TaskKind.DATABASE),
        config_tasks=_parse_tasks(raw, 'configTasks', TaskKind.CONFIG),
        max_concurrency=_optional_positive_int(raw, 'maxConcurrency'),
        command_timeout=_optional_timeout(raw),
        schedule=schedule,
        fail_on_error=bool(_get(raw, 'failOnError') or False)
    )


def _get(record: Dict[str, Any], key: str) -> Any:
    """Case-insensitive key lookup."""
    if key in record:
        return record[key]
    wanted = key.lower()
    for name, value in record.items():
        if name.lower() == wanted:
            return value
    return None


def _parse_tasks(raw: Dict[str, Any], key: str, kind: TaskKind) -> Tuple[BackupTask, ...]:
    records = _get(raw, key)
    if records is None:
        return ()
    if not isinstance(records, list):
        raise ConfigLoadError(f"'{key}' must be a list")

    tasks: List[BackupTask] = []
    for index, record in enumerate(records):
        where = f"{key}[{index}]"
        if not isinstance(record, dict):
            raise ConfigLoadError(f"{where} must be an object")

        label = _get(record, kind.identity_field)
        if not label:
            raise ConfigLoadError(f"{where}: missing '{kind.identity_field}'")

        source = _get(record, 'backupSource')
        if kind is not TaskKind.DATABASE and not source:
            raise ConfigLoadError(f"{where}: missing 'backupSource'")

        store_path = _get(record, 'storePath')
        if not store_path:
            raise ConfigLoadError(f"{where}: missing 'storePath'")

        max_backups = _get(record, 'maxBackup')
        if isinstance(max_backups, bool) or not isinstance(max_backups, int):
            raise ConfigLoadError(f"{where}: 'maxBackup' must be an integer")
        if max_backups < 0:
            raise ConfigLoadError(f"{where}: 'maxBackup' must not be negative")

        tasks.append(BackupTask(
            kind=kind,
            label=str(label),
            # Databases are dumped by name; backupSource is ignored for them
            source=str(label) if kind is TaskKind.DATABASE else str(source),
            store_path=str(store_path),
            max_backups=max_backups,
            remote_destination=str(_get(record, 'onedrivePath') or '')
        ))

    return tuple(tasks)


def _optional_positive_int(raw: Dict[str, Any], key: str) -> Optional[int]:
    value = _get(raw, key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigLoadError(f"'{key}' must be a positive integer")
    return value


def _optional_timeout(raw: Dict[str, Any]) -> Optional[float]:
    value = _get(raw, 'commandTimeout')
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigLoadError("'commandTimeout' must be a positive number")
    return float(value)
