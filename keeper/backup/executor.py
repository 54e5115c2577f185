"""
Task runner - executes the backup pipeline for one task.

Workflow:
1. Produce a timestamped artifact in the store directory
2. Enforce the retention limit on the store directory
3. Mirror the store directory to its remote destination

Every stage runs even if an earlier one failed: retention and replication
work on whatever the store holds. Each failed stage sends one notification.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from keeper.models import BackupTask, NotificationEvent, RunResult, Stage
from keeper.notify import Notifier
from .producers import ArtifactProducer, create_producer
from .retention import RetentionManager
from .storage import Replicator

logger = logging.getLogger(__name__)

RETAIN_FAILURE_PREFIX = 'Retention cleanup FAILED'
REPLICATE_FAILURE_PREFIX = 'Copy to remote FAILED'


class TaskRunner:
    """
    Runs produce -> retain -> replicate for a single task.
    """

    def __init__(
        self,
        task: BackupTask,
        notifier: Notifier,
        producer: Optional[ArtifactProducer] = None,
        retention: Optional[RetentionManager] = None,
        replicator: Optional[Replicator] = None
    ):
        """
        Initialize task runner.

        Args:
            task: Task to run
            notifier: Shared notifier for stage failures
            producer: Artifact producer (defaults to the one for the task kind)
            retention: Retention manager
            replicator: Replicator for the store directory
        """
        self.task = task
        self.notifier = notifier
        self.producer = producer or create_producer(task.kind)
        self.retention = retention or RetentionManager()
        self.replicator = replicator or Replicator()
        self.result = None

    def execute(self) -> RunResult:
        """
        Execute all stages. Never raises for stage failures.

        Returns:
            RunResult with per-stage outcome
        """
        self.result = RunResult(task=self.task)
        self._log(f"Starting {self.task.kind.name.lower()} backup: {self.task.label}")

        self._run_stage(Stage.PRODUCE, self._produce, self.task.kind.failure_prefix)
        self._run_stage(Stage.RETAIN, self._retain, RETAIN_FAILURE_PREFIX)
        self._run_stage(Stage.REPLICATE, self._replicate, REPLICATE_FAILURE_PREFIX)

        if self.result.succeeded:
            self._log("Backup completed successfully")
        else:
            stages = ', '.join(stage.value for stage in self.result.failed_stages)
            self._log(f"Backup finished with failed stages: {stages}", logging.WARNING)

        return self.result

    def _run_stage(self, stage: Stage, action, failure_prefix: str):
        try:
            action()
            setattr(self.result, _STAGE_FLAGS[stage], True)
        except Exception as e:
            self.result.errors[stage] = str(e)
            self._log(f"Stage {stage.value} failed: {e}", logging.ERROR)
            self.notifier.notify(NotificationEvent(self.task.label, stage, failure_prefix))

    def _produce(self):
        self._log("Producing artifact")
        self.result.artifact_path = self.producer.produce(self.task)
        self._log(f"Artifact created: {self.result.artifact_path}")

    def _retain(self):
        self._log(f"Enforcing retention (max {self.task.max_backups})")
        self.result.deleted = self.retention.enforce(self.task.store_path, self.task.max_backups)
        self._log(f"Deleted {len(self.result.deleted)} old backups")

    def _replicate(self):
        self._log(f"Replicating to {self.task.remote_destination or '(none)'}")
        self.replicator.replicate(self.task.store_path, self.task.remote_destination)

    def _log(self, message: str, level: int = logging.INFO):
        """
        Record a timestamped line on the run result and emit it.

        Args:
            message: Log message
            level: Logging level
        """
        timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
        self.result.logs.append(f"[{timestamp}] {message}")
        logger.log(level, "[%s] %s", self.task.label, message)


_STAGE_FLAGS = {
    Stage.PRODUCE: 'produced',
    Stage.RETAIN: 'retained',
    Stage.REPLICATE: 'replicated',
}
