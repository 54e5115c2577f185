"""
Backup module for Keeper.

This module handles the per-task backup pipeline:
- Artifact production (directory archives and database dumps)
- Retention policy enforcement
- Replication to remote storage
- Task execution
"""

from .executor import TaskRunner
from .producers import DirectoryArchiveProducer, DatabaseDumpProducer, create_producer
from .compression import create_archive
from .retention import RetentionManager
from .storage import Replicator, RcloneSync, S3Sync

__all__ = [
    'TaskRunner',
    'DirectoryArchiveProducer',
    'DatabaseDumpProducer',
    'create_producer',
    'create_archive',
    'RetentionManager',
    'Replicator',
    'RcloneSync',
    'S3Sync'
]
