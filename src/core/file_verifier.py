"""Checks and manages a record's on-device media files."""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Iterable, NamedTuple, Optional

from src.core.media_ref import InlineRef, LocalRef, RemoteRef, local_path, parse_media_ref

logger = logging.getLogger(__name__)

# Only image files are ever considered orphans; anything else in the root is left alone
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")


class FileCheck(NamedTuple):
    exists: bool
    accessible: bool


@dataclass(frozen=True)
class StorageUsage:
    total_files: int
    total_size: int

    @property
    def formatted_size(self) -> str:
        return format_bytes(self.total_size)


def format_bytes(size: int) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


class LocalFileVerifier:
    """
    Existence checks for local media references.

    Remote URLs and data URIs report as present without any I/O; whether
    they load is decided at render time. Object keys are not local files.

    Files are only ever removed from inside ``media_root``. Without a root
    nothing is deleted.
    """

    def __init__(self, media_root: Optional[str] = None):
        self.media_root = os.path.realpath(media_root) if media_root else None

    async def check(self, ref: Optional[str]) -> FileCheck:
        media = parse_media_ref(ref)
        if isinstance(media, (RemoteRef, InlineRef)):
            return FileCheck(True, True)
        if not isinstance(media, LocalRef):
            return FileCheck(False, False)

        try:
            return await asyncio.to_thread(self._stat, local_path(media))
        except Exception as e:
            logger.debug(f"File check failed for {ref}: {e}")
            return FileCheck(False, False)

    @staticmethod
    def _stat(path: str) -> FileCheck:
        try:
            st = os.stat(path)
        except OSError:
            return FileCheck(False, False)
        if not os.path.isfile(path):
            return FileCheck(False, False)
        return FileCheck(True, st.st_size > 0)

    def _inside_root(self, path: str) -> bool:
        if self.media_root is None:
            return False
        resolved = os.path.realpath(path)
        return resolved != self.media_root and (
            os.path.commonpath([resolved, self.media_root]) == self.media_root
        )

    def is_managed(self, ref: Optional[str]) -> bool:
        """True when ``ref`` is a local file under the media root."""
        media = parse_media_ref(ref)
        return isinstance(media, LocalRef) and self._inside_root(local_path(media))

    async def delete_local(self, ref: Optional[str]) -> bool:
        """Delete an on-device file. Returns True if a file was removed."""
        media = parse_media_ref(ref)
        if not isinstance(media, LocalRef):
            return False
        path = local_path(media)
        if not self._inside_root(path):
            logger.warning(f"Skipping deletion of file outside the media root: {path}")
            return False
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError:
            return False
        logger.debug(f"Deleted local media file {path}")
        return True

    def _image_files(self) -> list[os.DirEntry]:
        if self.media_root is None or not os.path.isdir(self.media_root):
            return []
        with os.scandir(self.media_root) as entries:
            return [
                e for e in entries
                if e.is_file(follow_symlinks=False) and e.name.lower().endswith(IMAGE_EXTENSIONS)
            ]

    def _usage(self) -> StorageUsage:
        files = self._image_files()
        return StorageUsage(total_files=len(files), total_size=sum(e.stat().st_size for e in files))

    async def storage_usage(self) -> StorageUsage:
        """Image files directly under the media root and their combined size."""
        try:
            return await asyncio.to_thread(self._usage)
        except OSError as e:
            logger.error(f"Error reading storage usage of {self.media_root}: {e}")
            return StorageUsage(0, 0)

    def _remove_unreferenced(self, referenced: set[str]) -> list[str]:
        removed: list[str] = []
        for entry in self._image_files():
            if os.path.realpath(entry.path) in referenced:
                continue
            try:
                os.remove(entry.path)
            except OSError as e:
                logger.warning(f"Failed to delete orphaned file {entry.path}: {e}")
                continue
            removed.append(entry.path)
        return removed

    async def remove_unreferenced(self, refs: Iterable[Optional[str]]) -> list[str]:
        """Delete image files under the media root that no ref points at."""
        referenced = {
            os.path.realpath(local_path(media))
            for media in map(parse_media_ref, refs)
            if isinstance(media, LocalRef)
        }
        removed = await asyncio.to_thread(self._remove_unreferenced, referenced)
        for path in removed:
            logger.info(f"Cleaned up orphaned file: {path}")
        return removed
