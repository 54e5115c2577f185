import os
import logging
from logging.handlers import RotatingFileHandler

__version__ = '1.0.0'


def configure_logging(settings):
    """Configure application logging"""

    # Set log level based on environment
    log_level = logging.DEBUG if getattr(settings, 'DEBUG', False) else logging.INFO

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)
    handlers = [console_handler]

    # File handler (skipped when the log directory is not writable)
    try:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(settings.LOG_DIR, 'keeper.log'),
            maxBytes=10485760,  # 10MB
            backupCount=10
        )
    except OSError as e:
        console_handler.stream.write(f"WARNING: file logging disabled ({e})\n")
    else:
        file_handler.setLevel(log_level)
        file_formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] [%(threadName)s] %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    logging.getLogger('keeper').info(f"Logging configured (level: {logging.getLevelName(log_level)})")


def create_dispatcher(backup_config, settings):
    """
    Dispatcher factory.

    Builds the collaborators shared by every task of a batch (notifier, dump
    runner, replicator) once, and a dispatcher that creates one TaskRunner per
    task from them.
    """
    from keeper.backup.commands import DumpRunner
    from keeper.backup.executor import TaskRunner
    from keeper.backup.producers import create_producer
    from keeper.backup.retention import RetentionManager
    from keeper.backup.storage import RcloneSync, Replicator
    from keeper.notify import create_notifier
    from keeper.scheduler import Dispatcher

    timeout = backup_config.command_timeout or settings.COMMAND_TIMEOUT

    notifier = create_notifier(backup_config.telegram)
    dump_runner = DumpRunner(settings.DUMP_COMMAND, timeout=timeout)
    retention = RetentionManager()
    replicator = Replicator(
        rclone=RcloneSync(settings.SYNC_COMMAND, timeout=timeout),
        region=settings.AWS_REGION
    )

    def runner_factory(task):
        return TaskRunner(
            task,
            notifier,
            producer=create_producer(task.kind, dump_runner),
            retention=retention,
            replicator=replicator
        )

    max_workers = backup_config.max_concurrency or settings.MAX_WORKERS
    return Dispatcher(runner_factory, max_workers=max_workers)
