"""
Remote replication of store directories.

Supports:
- RcloneSync: one-way mirror through the rclone command line tool
- S3Sync: one-way mirror to an s3://bucket/prefix destination with boto3

Both are full syncs: files missing locally are removed remotely.
"""

import logging
import os
import threading
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .commands import CommandError, run_command, split_command

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a sync operation fails."""
    pass


class ReplicationError(Exception):
    """Raised when a store directory cannot be replicated."""
    pass


class SyncRunner:
    """Mirrors a local directory to a remote destination."""

    def sync(self, local_dir: str, remote_dest: str):
        raise NotImplementedError


class RcloneSync(SyncRunner):
    """
    Mirror with ``rclone sync <local_dir> <remote_dest>``.
    """

    def __init__(self, command: str = 'rclone sync', timeout: Optional[float] = None):
        self.command = split_command(command)
        self.timeout = timeout

    def sync(self, local_dir: str, remote_dest: str):
        try:
            run_command(self.command + [local_dir, remote_dest], timeout=self.timeout)
        except CommandError as e:
            raise StorageError(str(e))


class S3Sync(SyncRunner):
    """
    Mirror a store directory to S3.

    Destination format: s3://{bucket}/{prefix}. Objects are keyed
    {prefix}/{filename}; only the top level of the store is mirrored.
    """

    def __init__(self, region: str = 'us-east-1', client=None):
        """
        Initialize S3 sync handler.

        Args:
            region: AWS region (default: us-east-1)
            client: Pre-built boto3 S3 client (credentials come from the
                default boto3 chain otherwise)
        """
        self.region = region

        try:
            self.s3_client = client or boto3.client('s3', region_name=region)
        except Exception as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    def sync(self, local_dir: str, remote_dest: str):
        bucket, prefix = parse_s3_destination(remote_dest)

        local_files = self._local_files(local_dir)

        try:
            remote_objects = self.list_objects(bucket, prefix)

            for name, path in local_files.items():
                key = f"{prefix}{name}"
                if key in remote_objects and remote_objects[key] == os.path.getsize(path):
                    continue
                logger.debug("Uploading %s to s3://%s/%s", path, bucket, key)
                self.s3_client.upload_file(path, bucket, key)

            for key in remote_objects:
                if key[len(prefix):] not in local_files:
                    logger.debug("Deleting s3://%s/%s", bucket, key)
                    self.s3_client.delete_object(Bucket=bucket, Key=key)

        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            raise StorageError(f"S3 sync failed ({error_code}): {e}")
        except BotoCoreError as e:
            raise StorageError(f"S3 sync failed: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read local file: {e}")

    def list_objects(self, bucket: str, prefix: str) -> Dict[str, int]:
        """
        List objects directly under prefix.

        Returns:
            Mapping of key to size in bytes
        """
        objects = {}
        paginator = self.s3_client.get_paginator('list_objects_v2')
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix, Delimiter='/'):
            for obj in page.get('Contents', []):
                objects[obj['Key']] = obj['Size']
        return objects

    def _local_files(self, local_dir: str) -> Dict[str, str]:
        try:
            return {
                entry.name: entry.path
                for entry in os.scandir(local_dir)
                if entry.is_file()
            }
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Failed to list {local_dir}: {e}")


def parse_s3_destination(remote_dest: str):
    """
    Split s3://bucket/prefix into (bucket, prefix).

    The prefix is returned with a trailing slash, or empty.
    """
    if not remote_dest.startswith('s3://'):
        raise StorageError(f"Not an S3 destination: {remote_dest}")

    bucket, _, prefix = remote_dest[len('s3://'):].partition('/')
    if not bucket:
        raise StorageError(f"Missing bucket in destination: {remote_dest}")

    prefix = prefix.strip('/')
    return bucket, f"{prefix}/" if prefix else ''


class Replicator:
    """
    Chooses a sync runner per destination and reports failures uniformly.
    """

    def __init__(self, rclone: Optional[SyncRunner] = None, s3: Optional[SyncRunner] = None,
                 region: str = 'us-east-1'):
        self.rclone = rclone or RcloneSync()
        self.region = region
        self._s3 = s3
        self._s3_lock = threading.Lock()

    @property
    def s3(self) -> SyncRunner:
        """S3 runner, created on first use so a broken AWS setup only fails S3 tasks."""
        with self._s3_lock:
            if self._s3 is None:
                self._s3 = S3Sync(region=self.region)
            return self._s3

    def runner_for(self, remote_destination: str) -> SyncRunner:
        if remote_destination.startswith('s3://'):
            return self.s3
        return self.rclone

    def replicate(self, store_path: str, remote_destination: str):
        """
        Mirror store_path to remote_destination.

        Raises:
            ReplicationError: If the destination is missing or the sync fails
        """
        if not remote_destination:
            raise ReplicationError(f"No remote destination configured for {store_path}")

        try:
            self.runner_for(remote_destination).sync(store_path, remote_destination)
        except StorageError as e:
            raise ReplicationError(f"Sync of {store_path} to {remote_destination} failed: {e}")

        logger.info("Replicated %s to %s", store_path, remote_destination)
