"""
Saving generated images: base64 decoding, file naming and disk output.
"""

import os
import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from image_generator import ImagePayload

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "png"


@dataclass(frozen=True)
class SaveRequest:
    file_name: str
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class ExportResult:
    request: Optional[SaveRequest] = None
    error: Optional[str] = None
    saved_path: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.request is not None and self.error is None

    @property
    def skipped(self) -> bool:
        return self.request is None and self.error is None


Saver = Callable[[SaveRequest], Optional[str]]


def extension_for(mime_type: Optional[str]) -> str:
    """File extension from the subtype half of a MIME type."""
    if not mime_type or "/" not in mime_type:
        return DEFAULT_EXTENSION
    subtype = mime_type.split("/", 1)[1].split(";", 1)[0].strip().lower()
    return subtype or DEFAULT_EXTENSION


def safe_filename(name: str) -> str:
    safe = "".join(c for c in name if c.isalnum() or c in (' ', '-', '_', '.')).strip()
    safe = safe.replace(' ', '_').lstrip('.')
    return safe or "image"


def export_image(
    payload: Optional[ImagePayload],
    suggested_name: str,
    saver: Optional[Saver] = None
) -> ExportResult:
    """
    Turn a generated image into a named file for saving.

    Args:
        payload: Image from a succeeded outcome; None makes this a no-op
        suggested_name: File name without extension
        saver: Platform save primitive, called with the SaveRequest

    Returns:
        ExportResult carrying the save request, or an error message
    """
    if payload is None:
        logger.debug("No generated image to save")
        return ExportResult()

    try:
        data = base64.b64decode(payload.base64_data, validate=True)
        request = SaveRequest(
            file_name=f"{suggested_name}.{extension_for(payload.mime_type)}",
            data=data,
            mime_type=payload.mime_type,
        )
        saved_path = saver(request) if saver else None
    except (binascii.Error, ValueError, OSError) as e:
        logger.error(f"Error saving image: {str(e)}")
        return ExportResult(error=f"Failed to save image: {str(e) or 'Unknown error'}")

    return ExportResult(request=request, saved_path=saved_path)


def save_generation_metadata(folder: str, data: Dict[str, Any]) -> str:
    """Save metadata about the generation next to the image."""
    metadata_file = os.path.join(folder, "generation_info.txt")

    with open(metadata_file, 'w', encoding='utf-8') as f:
        f.write("=" * 70 + "\n")
        f.write("IMAGE GENERATION METADATA\n")
        f.write("=" * 70 + "\n\n")
        f.write(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")

        for key, label in [
            ('subject', 'WORD'),
            ('style', 'STYLE'),
            ('prompt', 'PROMPT'),
            ('model', 'MODEL'),
            ('mime_type', 'MIME TYPE')
        ]:
            if key in data and data[key]:
                f.write(f"{label}:\n")
                f.write("-" * 70 + "\n")
                f.write(f"{data[key]}\n\n")

        f.write("=" * 70 + "\n")

    return metadata_file


def save_to_disk(request: SaveRequest, folder: str, metadata: Optional[Dict[str, Any]] = None) -> str:
    """Write the image (and optional metadata) into folder, returning the image path."""
    os.makedirs(folder, exist_ok=True)

    filepath = os.path.join(folder, safe_filename(request.file_name))
    with open(filepath, "wb") as f:
        f.write(request.data)

    if metadata:
        save_generation_metadata(folder, metadata)

    logger.info(f"Saved image to {filepath}")
    return filepath


def disk_saver(folder: str, metadata: Optional[Dict[str, Any]] = None) -> Saver:
    def _save(request: SaveRequest) -> str:
        return save_to_disk(request, folder, metadata)
    return _save
