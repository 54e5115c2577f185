"""
Shared pytest fixtures for Keeper tests.

This module provides fixtures for:
- Backup task factories
- Store directories pre-populated with aged artifacts
- Source directory trees
- A notifier that records events instead of sending them
- Mock fixtures for external services (S3)
"""

import os
import json

import pytest
import boto3
from moto import mock_aws

from keeper.models import BackupTask, TaskKind
from keeper.notify import Notifier


class RecordingSink:
    """Message sink that keeps sent messages in memory."""

    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, chat_id, text):
        if self.fail:
            raise RuntimeError("sink unreachable")
        self.sent.append((chat_id, text))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def notifier(sink):
    """Enabled notifier recording into the sink fixture."""
    return Notifier(sink, chat_id=42)


@pytest.fixture
def disabled_notifier():
    return Notifier()


@pytest.fixture
def make_task(tmp_path):
    """
    Factory for BackupTask instances with a store under tmp_path.
    """
    def _make(label='site', kind=TaskKind.WEBSITE, source=None, max_backups=3,
              remote_destination='remote:backups', store_path=None):
        return BackupTask(
            kind=kind,
            label=label,
            source=source if source is not None else str(tmp_path / 'sources' / label),
            store_path=store_path or str(tmp_path / 'stores' / label),
            max_backups=max_backups,
            remote_destination=remote_destination
        )

    return _make


@pytest.fixture
def make_store(tmp_path):
    """
    Create a store directory holding `count` files with increasing mtimes.

    File i is named backup-{i}.zip and is i hours newer than file 0.
    """
    def _make(count, name='store'):
        store = tmp_path / name
        store.mkdir(parents=True, exist_ok=True)
        base = 1_700_000_000
        for i in range(count):
            path = store / f'backup-{i}.zip'
            path.write_text(f'artifact {i}')
            os.utime(path, (base + i * 3600, base + i * 3600))
        return store

    return _make


@pytest.fixture
def source_tree(tmp_path):
    """
    Create a website-like source directory.

    Creates:
    - www/index.html
    - www/css/site.css
    - www/empty/ (empty directory)
    """
    root = tmp_path / 'www'
    (root / 'css').mkdir(parents=True)
    (root / 'empty').mkdir()
    (root / 'index.html').write_text('<html></html>')
    (root / 'css' / 'site.css').write_text('body {}')
    return root


@pytest.fixture
def config_file(tmp_path):
    """
    Write a configuration file and return its path.
    """
    def _write(data):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps(data))
        return str(path)

    return _write


@pytest.fixture
def mock_s3():
    """
    Mock AWS S3 service using moto.

    Creates a test bucket 'test-bucket' in us-east-1 region.
    """
    with mock_aws():
        client = boto3.client('s3', region_name='us-east-1')
        client.create_bucket(Bucket='test-bucket')
        yield client
