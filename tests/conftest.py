"""Shared pytest fixtures for archive building and deterministic time."""

from __future__ import annotations

import io
import tarfile
from typing import Callable

import pytest

ArchiveEntry = tuple[str, bytes | None, int]


class FakeClock:
    """Deterministic monotonic clock advanced only by `sleep`."""

    def __init__(self, now: float = 0.0):
        self.now = now
        self.sleep_calls: list[float] = []

    def clock(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleep_calls.append(seconds)
        self.now += seconds


def build_tar_gz_bytes(entries: list[ArchiveEntry], symlinks: dict[str, str] | None = None) -> bytes:
    """Build gzip-compressed tar bytes from `(name, content, mode)` entries.

    A `None` content marks a directory entry.
    """

    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for entry_name, content, mode in entries:
            entry_info = tarfile.TarInfo(entry_name)
            entry_info.mode = mode
            if content is None:
                entry_info.type = tarfile.DIRTYPE
                archive.addfile(entry_info)
                continue
            entry_info.size = len(content)
            archive.addfile(entry_info, io.BytesIO(content))
        for link_name, link_target in (symlinks or {}).items():
            link_info = tarfile.TarInfo(link_name)
            link_info.type = tarfile.SYMTYPE
            link_info.linkname = link_target
            archive.addfile(link_info)
    return buffer.getvalue()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tar_gz_builder() -> Callable[..., bytes]:
    return build_tar_gz_bytes
