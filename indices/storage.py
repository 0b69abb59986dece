"""On-disk layout for daily rasters.

Files live at ``<root>/<landId>/<indexType>/<YYYY-MM-DD>/image.png`` and
``.../image.tif``. The public path recorded in the database uses a separate
prefix so the physical root can move without rewriting rows.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from typing import Final
from uuid import UUID

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.move import file_move_safe
from django.core.files.storage import FileSystemStorage

PNG_NAME: Final[str] = "image.png"
TIFF_NAME: Final[str] = "image.tif"


@dataclass(frozen=True)
class RasterPaths:
    """Storage names, relative to the raster root."""

    directory: str
    png: str
    tiff: str


@dataclass(frozen=True)
class PublicRasterPaths:
    png: str
    tiff: str


class RasterStorage:
    def __init__(
        self,
        root: str | os.PathLike[str] | None = None,
        public_prefix: str | None = None,
    ) -> None:
        location = (
            root
            if root is not None
            else getattr(settings, "INDICES_RASTER_ROOT", "storage/rasters")
        )
        self.files = FileSystemStorage(
            location=location, allow_overwrite=True
        )
        prefix = (
            public_prefix
            if public_prefix is not None
            else getattr(settings, "INDICES_RASTER_PUBLIC_PREFIX", "rasters")
        )
        self.public_prefix = prefix.strip("/")

    @staticmethod
    def _relative(land_id: UUID | str, index_type: str, day: date) -> str:
        return f"{land_id}/{index_type}/{day.isoformat()}"

    def paths(
        self, land_id: UUID | str, index_type: str, day: date
    ) -> RasterPaths:
        directory = self._relative(land_id, index_type, day)
        return RasterPaths(
            directory=directory,
            png=f"{directory}/{PNG_NAME}",
            tiff=f"{directory}/{TIFF_NAME}",
        )

    def public_paths(
        self, land_id: UUID | str, index_type: str, day: date
    ) -> PublicRasterPaths:
        base = self._relative(land_id, index_type, day)
        if self.public_prefix:
            base = f"{self.public_prefix}/{base}"
        return PublicRasterPaths(
            png=f"{base}/{PNG_NAME}", tiff=f"{base}/{TIFF_NAME}"
        )

    def exists(self, paths: RasterPaths) -> bool:
        return self.files.exists(paths.png) and self.files.exists(paths.tiff)

    def write(self, name: str, content: bytes) -> None:
        """Save under a scratch name, then move into place.

        A crash mid-write leaves only the scratch file, so ``exists`` never
        sees a truncated raster.
        """

        scratch = f"{name}.part"
        self.files.delete(scratch)
        scratch = self.files.save(scratch, ContentFile(content))
        file_move_safe(
            self.files.path(scratch),
            self.files.path(name),
            allow_overwrite=True,
        )

    def read(self, name: str) -> bytes:
        with self.files.open(name, "rb") as handle:
            return handle.read()
