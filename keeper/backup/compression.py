"""
Archive creation for directory backups.

Archives are zip files (deflate) whose members are rooted at the base name
of the source directory, directory entries included.
"""

import os
import zipfile
from datetime import datetime
from typing import Optional


class CompressionError(Exception):
    """Raised when archive creation fails."""
    pass


def create_archive(source_dir: str, dest_file: str) -> str:
    """
    Create a zip archive from a directory tree.

    Any error while walking the tree (unreadable entry, broken symlink,
    file vanishing mid-walk) aborts the whole archive.

    Args:
        source_dir: Directory to archive
        dest_file: Full path of the archive to create

    Returns:
        Path to the created archive file

    Raises:
        CompressionError: If archive creation fails
    """
    source = os.path.abspath(source_dir)
    if not os.path.isdir(source):
        raise CompressionError(f"Source directory does not exist: {source_dir}")

    try:
        _create_zip(source, dest_file)
        return dest_file
    except Exception as e:
        # Clean up partial archive on failure
        if os.path.exists(dest_file):
            try:
                os.remove(dest_file)
            except OSError:
                pass
        raise CompressionError(f"Failed to create archive: {e}")


def _create_zip(source: str, archive_path: str):
    """
    Write every entry under source into a new zip archive.

    Args:
        source: Absolute path of the directory to archive
        archive_path: Output archive path
    """
    root_name = os.path.basename(source.rstrip(os.sep))

    def _raise(error: OSError):
        raise error

    with zipfile.ZipFile(archive_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
        zipf.write(source, root_name + '/')

        for dirpath, dirnames, filenames in os.walk(source, onerror=_raise):
            dirnames.sort()
            relative_dir = os.path.relpath(dirpath, source)

            for name in dirnames + sorted(filenames):
                full_path = os.path.join(dirpath, name)
                arcname = os.path.normpath(os.path.join(root_name, relative_dir, name))

                # os.stat follows symlinks, so a dangling link raises here
                os.stat(full_path)

                if name in dirnames:
                    zipf.write(full_path, arcname + '/')
                else:
                    zipf.write(full_path, arcname)


def generate_archive_filename(label: str, extension: str, now: Optional[datetime] = None) -> str:
    """
    Generate a standardized artifact filename.

    Format: {label}-{YYYYmmdd-HHMMSS}.{ext}

    Args:
        label: Task label
        extension: File extension without the dot
        now: Timestamp to embed (defaults to the current local time)

    Returns:
        Filename (without path)
    """
    timestamp = (now or datetime.now()).strftime('%Y%m%d-%H%M%S')

    # Sanitize label (replace path separators and special chars with underscores)
    safe_label = "".join(
        c if c.isalnum() or c in ('-', '_', '.') else '_'
        for c in label
    )

    return f"{safe_label}-{timestamp}.{extension}"


def unique_artifact_path(store_path: str, filename: str) -> str:
    """
    Return a path in store_path for filename that does not exist yet.

    A numeric suffix is added before the extension when two artifacts of the
    same task land in the same second.
    """
    candidate = os.path.join(store_path, filename)
    stem, dot, extension = filename.rpartition('.')
    counter = 1
    while os.path.exists(candidate):
        candidate = os.path.join(store_path, f"{stem}-{counter}{dot}{extension}")
        counter += 1
    return candidate


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Args:
        archive_path: Path to the archive file

    Returns:
        File size in bytes

    Raises:
        CompressionError: If file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise CompressionError(f"Archive not found: {archive_path}")
    except OSError as e:
        raise CompressionError(f"Failed to get archive size: {e}")
