"""
Data model for Keeper.

Tasks are built once from the configuration file and never mutated, so they
can be handed to concurrent task executions without locking.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple


class TaskKind(Enum):
    """Kind of backup task: (identity field, artifact extension, failure prefix)."""

    WEBSITE = ('Website', 'zip', 'Website Backup FAILED')
    DATABASE = ('Database', 'sql', 'Database Backup FAILED')
    CONFIG = ('Name', 'zip', 'Config Backup FAILED')

    def __init__(self, identity_field: str, extension: str, failure_prefix: str):
        self.identity_field = identity_field
        self.extension = extension
        self.failure_prefix = failure_prefix


class Stage(Enum):
    """Pipeline stages, in execution order."""

    PRODUCE = 'produce'
    RETAIN = 'retain'
    REPLICATE = 'replicate'


@dataclass(frozen=True)
class BackupTask:
    """One configured unit of backup work."""

    kind: TaskKind
    label: str
    source: str
    store_path: str
    max_backups: int
    remote_destination: str = ''


@dataclass(frozen=True)
class TelegramSettings:
    bot_token: str = ''
    chat_id: int = 0
    enable: bool = False


@dataclass(frozen=True)
class BackupConfig:
    """
    Parsed backup configuration.

    Read-only after load and shared by reference across task executions.
    """

    telegram: TelegramSettings = field(default_factory=TelegramSettings)
    website_tasks: Tuple[BackupTask, ...] = ()
    database_tasks: Tuple[BackupTask, ...] = ()
    config_tasks: Tuple[BackupTask, ...] = ()
    max_concurrency: Optional[int] = None
    command_timeout: Optional[float] = None
    schedule: Optional[str] = None
    fail_on_error: bool = False

    @property
    def all_tasks(self) -> Iterator[BackupTask]:
        yield from self.website_tasks
        yield from self.database_tasks
        yield from self.config_tasks


@dataclass(frozen=True)
class NotificationEvent:
    """A failure report for one stage of one task."""

    label: str
    stage: Stage
    message: str

    @property
    def text(self) -> str:
        return f"{self.message}: {self.label}"


@dataclass
class RunResult:
    """Outcome of one task's pipeline. Kept for logging and tests only."""

    task: BackupTask
    produced: bool = False
    retained: bool = False
    replicated: bool = False
    artifact_path: Optional[str] = None
    deleted: List[str] = field(default_factory=list)
    errors: Dict[Stage, str] = field(default_factory=dict)
    logs: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.produced and self.retained and self.replicated

    @property
    def failed_stages(self) -> List[Stage]:
        return [stage for stage in Stage if stage in self.errors]
