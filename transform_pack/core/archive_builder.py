"""Packages a transformation pack into a downloadable zip archive."""

import io
import zipfile
from collections import Counter
from typing import List, Sequence

from ..models.schemas import ArchiveEntry, GeneratedImage
from ..utils.logger import get_logger
from ..utils.errors import OutputError
from ..utils.images import base64_to_bytes, extension_for_mime_type

logger = get_logger(__name__)


def archive_entries(results: Sequence[GeneratedImage]) -> List[ArchiveEntry]:
    """
    Decode every result into its archive entry.
    
    Paths follow ``<category>/<category>-<n>.<ext>`` where ``n`` counts the
    same-category results at or before this one in ``results``.
    
    Raises:
        OutputError: If any payload cannot be decoded
    """
    seen: Counter = Counter()
    entries: List[ArchiveEntry] = []
    
    for position, image in enumerate(results):
        seen[image.category] += 1
        slug = image.category.slug
        extension = extension_for_mime_type(image.mime_type)
        path = f"{slug}/{slug}-{seen[image.category]}.{extension}"
        
        try:
            data = base64_to_bytes(image.data)
        except ValueError as e:
            raise OutputError(f"Cannot decode image {position} ({path}): {e}") from e
        
        entries.append(ArchiveEntry(path=path, data=data))
    
    return entries


class ArchiveBuilder:
    """Builds the zip archive for a list of generated images."""
    
    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        self.compression = compression
    
    def build(self, results: Sequence[GeneratedImage]) -> bytes:
        """
        Build the archive in memory.
        
        All payloads are decoded before anything is written, so a bad
        payload yields OutputError and no partial archive.
        """
        entries = archive_entries(results)
        
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", self.compression) as archive:
            for entry in entries:
                archive.writestr(entry.path, entry.data)
        
        logger.info(
            "Archive built",
            extra={
                "entries": len(entries),
                "size_kb": buffer.tell() / 1024,
            }
        )
        
        return buffer.getvalue()
