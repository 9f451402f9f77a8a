"""Streaming extraction of gzip-compressed tar result archives.

Entries are processed in stream order. Directories and regular files are
recreated; symlinks, hard links and device entries are skipped. Entry names
that are absolute or resolve outside the destination are rejected instead of
being written, so a hostile archive cannot escape the extraction directory.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
import shutil
import tarfile
import zlib
from typing import Final

from .retrieval_errors import ArchiveCorruptError, OutputWriteError, UnsafeArchiveEntryError

DIRECTORY_MODE: Final[int] = 0o755
_PERMISSION_BITS: Final[int] = 0o777


@dataclass(frozen=True)
class ArchiveExtractionResult:
    """Summary of one archive extraction.

    Attributes:
        destination_path: Absolute extraction destination.
        file_count: Regular files written.
        directory_count: Directory entries created.
        skipped_entries: Entry names skipped because of unsupported type.
    """

    destination_path: str
    file_count: int
    directory_count: int
    skipped_entries: tuple[str, ...] = ()


def job_extract_tar_gz(source_path: str, destination_path: str) -> ArchiveExtractionResult:
    """Extract a gzip-compressed tar archive into a destination directory.

    Args:
        source_path: Path of the downloaded `.tar.gz` archive.
        destination_path: Directory receiving the expanded tree.

    Returns:
        ArchiveExtractionResult: Extraction summary.

    Raises:
        ArchiveCorruptError: Raised when the compressed tar stream cannot be read.
        UnsafeArchiveEntryError: Raised when an entry escapes the destination.
        OutputWriteError: Raised when the source cannot be opened or the tree cannot be written.
    """

    destination_root = os.path.abspath(destination_path)
    file_count = 0
    directory_count = 0
    skipped_entries: list[str] = []

    try:
        os.makedirs(destination_root, mode=DIRECTORY_MODE, exist_ok=True)
        with open(source_path, "rb") as source_stream:
            try:
                with tarfile.open(fileobj=source_stream, mode="r|gz") as archive:
                    for member in archive:
                        target_path = _job_resolve_entry_target(
                            destination_root=destination_root,
                            entry_name=member.name,
                        )
                        if member.isdir():
                            os.makedirs(target_path, mode=DIRECTORY_MODE, exist_ok=True)
                            directory_count += 1
                        elif member.isreg():
                            _job_write_regular_file(archive=archive, member=member, target_path=target_path)
                            file_count += 1
                        else:
                            skipped_entries.append(member.name)
            except (tarfile.TarError, EOFError, zlib.error) as error:
                raise ArchiveCorruptError(f"error extracting tar.gz file {source_path}: {error}") from error
    except OSError as error:
        raise OutputWriteError(f"error writing extracted files to {destination_root}: {error}") from error

    return ArchiveExtractionResult(
        destination_path=destination_root,
        file_count=file_count,
        directory_count=directory_count,
        skipped_entries=tuple(skipped_entries),
    )


def _job_resolve_entry_target(destination_root: str, entry_name: str) -> str:
    """Resolve one entry name below the destination root.

    Args:
        destination_root: Absolute extraction destination.
        entry_name: Raw archive entry name.

    Returns:
        str: Absolute normalized target path inside the destination.

    Raises:
        UnsafeArchiveEntryError: Raised for absolute names or names escaping the destination.
    """

    if os.path.isabs(entry_name) or entry_name.startswith(("/", "\\")):
        raise UnsafeArchiveEntryError(f"archive entry has an absolute path: {entry_name}", entry_name=entry_name)

    target_path = os.path.normpath(os.path.join(destination_root, entry_name))
    if os.path.commonpath([destination_root, target_path]) != destination_root:
        raise UnsafeArchiveEntryError(
            f"archive entry escapes extraction directory: {entry_name}",
            entry_name=entry_name,
        )
    return target_path


def _job_write_regular_file(archive: tarfile.TarFile, member: tarfile.TarInfo, target_path: str) -> None:
    """Create or truncate one regular file and copy entry content into it.

    Args:
        archive: Open streaming archive positioned at `member`.
        member: Regular file entry.
        target_path: Resolved output path.

    Returns:
        None: Writes the file as side effect.

    Raises:
        ArchiveCorruptError: Raised when entry content is unavailable.
        OSError: Raised when the file cannot be written.
    """

    entry_stream = archive.extractfile(member)
    if entry_stream is None:
        raise ArchiveCorruptError(f"archive entry has no content stream: {member.name}")

    file_mode = member.mode & _PERMISSION_BITS
    os.makedirs(os.path.dirname(target_path), mode=DIRECTORY_MODE, exist_ok=True)
    file_descriptor = os.open(target_path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, file_mode)
    with os.fdopen(file_descriptor, "wb") as target_stream:
        shutil.copyfileobj(entry_stream, target_stream)
    # umask may have masked bits at creation; apply recorded mode exactly.
    os.chmod(target_path, file_mode)
