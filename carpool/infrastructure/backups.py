"""
Timestamped backups of the live store files.

``create_backup`` copies every existing live file to
``{base}_{YYYYmmdd_HHMMSS}.csv`` in the backup directory, then rotates so
that at most ``max_backups`` files per base name survive (oldest by
modification time pruned first).  ``restore_from_backup`` copies the
newest backup of each base name back over the live file; it is a manual
recovery path and never runs on its own.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class BackupManager:
    def __init__(
        self,
        data_dir: Path,
        backup_dir: Path,
        base_names: Iterable[str],
        max_backups: int = 5,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.data_dir = Path(data_dir)
        self.backup_dir = Path(backup_dir)
        self.base_names = tuple(base_names)
        self.max_backups = max_backups
        self.clock = clock

    def live_path(self, base_name: str) -> Path:
        return self.data_dir / f"{base_name}.csv"

    def list_backups(self, base_name: str) -> list[Path]:
        """Backups of *base_name*, newest first."""
        if not self.backup_dir.is_dir():
            return []
        prefix = f"{base_name}_"
        found = [
            p for p in self.backup_dir.iterdir()
            if p.is_file() and p.suffix == ".csv" and p.name.startswith(prefix)
        ]
        return sorted(found, key=lambda p: (p.stat().st_mtime, p.name), reverse=True)

    def create_backup(self) -> list[Path]:
        """Copy each existing live file into the backup directory."""
        stamp = self.clock().strftime(TIMESTAMP_FORMAT)
        created: list[Path] = []
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        for base_name in self.base_names:
            source = self.live_path(base_name)
            if not source.exists():
                continue
            target = self.backup_dir / f"{base_name}_{stamp}.csv"
            try:
                shutil.copyfile(source, target)
            except OSError as exc:
                logger.warning("Backup of %s failed: %s", source, exc)
                continue
            created.append(target)

        self.rotate()
        if created:
            logger.info("Backup %s created (%d file(s))", stamp, len(created))
        return created

    def rotate(self) -> list[Path]:
        """Delete everything past the ``max_backups`` newest per base name."""
        removed: list[Path] = []
        for base_name in self.base_names:
            for stale in self.list_backups(base_name)[self.max_backups:]:
                try:
                    stale.unlink()
                except OSError as exc:
                    logger.warning("Could not prune backup %s: %s", stale, exc)
                    continue
                removed.append(stale)
        return removed

    def latest(self, base_name: str) -> Optional[Path]:
        backups = self.list_backups(base_name)
        return backups[0] if backups else None

    def restore_from_backup(self) -> list[Path]:
        """Overwrite each live file with its newest backup.

        Returns the live paths that were restored; base names without any
        backup are left alone.  Raises ``OSError`` if a copy fails.
        """
        restored: list[Path] = []
        if not self.backup_dir.is_dir():
            logger.error("No backup directory at %s", self.backup_dir)
            return restored

        self.data_dir.mkdir(parents=True, exist_ok=True)
        for base_name in self.base_names:
            backup = self.latest(base_name)
            if backup is None:
                continue
            target = self.live_path(base_name)
            shutil.copyfile(backup, target)
            logger.info("Restored %s from %s", target, backup.name)
            restored.append(target)
        return restored
