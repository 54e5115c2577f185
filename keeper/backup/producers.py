"""
Artifact producers.

Supports:
- DirectoryArchiveProducer: zip a website or configuration directory
- DatabaseDumpProducer: dump a database with an external utility

Producers never notify; reporting is the task runner's job.
"""

import logging
import os
from typing import Optional

from keeper.models import BackupTask, TaskKind
from .commands import CommandError, DumpRunner
from .compression import (
    CompressionError,
    create_archive,
    generate_archive_filename,
    get_archive_size,
    unique_artifact_path
)

logger = logging.getLogger(__name__)


class ProduceError(Exception):
    """Raised when an artifact cannot be produced."""
    pass


class ArtifactProducer:
    """Turns one task's source into one timestamped file in its store."""

    def produce(self, task: BackupTask) -> str:
        """
        Produce an artifact for task.

        Returns:
            Path of the new artifact

        Raises:
            ProduceError: If production fails
        """
        raise NotImplementedError

    def _artifact_path(self, task: BackupTask) -> str:
        try:
            os.makedirs(task.store_path, exist_ok=True)
        except OSError as e:
            raise ProduceError(f"Cannot create store directory {task.store_path}: {e}")

        filename = generate_archive_filename(task.label, task.kind.extension)
        return unique_artifact_path(task.store_path, filename)


class DirectoryArchiveProducer(ArtifactProducer):
    """
    Archives a directory tree (website and config tasks).
    """

    def produce(self, task: BackupTask) -> str:
        artifact_path = self._artifact_path(task)

        try:
            create_archive(task.source, artifact_path)
        except CompressionError as e:
            raise ProduceError(f"Archive of {task.source} failed: {e}")

        logger.info(
            "Archived %s to %s (%.2f MB)",
            task.source, artifact_path, get_archive_size(artifact_path) / 1024 / 1024
        )
        return artifact_path


class DatabaseDumpProducer(ArtifactProducer):
    """
    Dumps a database into a .sql file (database tasks).
    """

    def __init__(self, dump_runner: Optional[DumpRunner] = None):
        """
        Initialize database dump producer.

        Args:
            dump_runner: Runner used to invoke the dump utility
        """
        self.dump_runner = dump_runner or DumpRunner()

    def produce(self, task: BackupTask) -> str:
        artifact_path = self._artifact_path(task)

        try:
            output = self.dump_runner.run_dump(task.source)
        except CommandError as e:
            raise ProduceError(f"Dump of {task.source} failed: {e}")

        try:
            with open(artifact_path, 'wb') as f:
                f.write(output)
        except OSError as e:
            raise ProduceError(f"Cannot write dump to {artifact_path}: {e}")

        logger.info("Dumped database %s to %s (%d bytes)", task.source, artifact_path, len(output))
        return artifact_path


def create_producer(kind: TaskKind, dump_runner: Optional[DumpRunner] = None) -> ArtifactProducer:
    """
    Factory function to create the producer for a task kind.

    Args:
        kind: Task kind
        dump_runner: Runner for database dumps

    Returns:
        ArtifactProducer instance

    Raises:
        ValueError: If kind is invalid
    """
    if kind in (TaskKind.WEBSITE, TaskKind.CONFIG):
        return DirectoryArchiveProducer()
    elif kind is TaskKind.DATABASE:
        return DatabaseDumpProducer(dump_runner)
    else:
        raise ValueError(f"Invalid task kind: {kind}")
