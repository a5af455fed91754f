"""Filesystem usage collector."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

import psutil

from ..errors import CollectionError
from ..samples import FilesystemSample
from .base import BaseCollector

logger = logging.getLogger(__name__)


class FilesystemCollector(BaseCollector):
    """Reports total/used bytes for each mounted block device.

    Pseudo filesystems listed in *exclude_types* are skipped, and a device
    mounted at several places is reported once.
    """

    def __init__(self, hostname: str, exclude_types: Iterable[str] = ()) -> None:
        super().__init__(hostname)
        self._exclude = {t.lower() for t in exclude_types}

    @property
    def name(self) -> str:
        return "filesystem"

    def collect(self, timestamp: datetime) -> list[FilesystemSample]:
        try:
            partitions = psutil.disk_partitions(all=False)
        except OSError as exc:
            raise CollectionError(self.name, f"cannot list partitions: {exc}") from exc

        samples: list[FilesystemSample] = []
        seen: set[str] = set()
        for part in partitions:
            fstype = (part.fstype or "").lower()
            if fstype in self._exclude or (fstype.startswith("fuse.") and "fuse" in self._exclude):
                continue
            if part.device in seen:
                continue
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except OSError as exc:
                # stale or permission-restricted mount
                logger.debug("Skipping %s at %s: %s", part.device, part.mountpoint, exc)
                continue
            seen.add(part.device)
            samples.append(FilesystemSample(
                self.hostname, timestamp, part.device, int(usage.total), int(usage.used),
            ))
        return samples
