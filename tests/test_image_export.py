import base64
import logging
import os

import pytest

from image_export import (
    ExportResult,
    SaveRequest,
    disk_saver,
    export_image,
    extension_for,
    safe_filename,
    save_to_disk,
)
from image_generator import ImagePayload


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def test_export_names_file_after_word_and_subtype():
    saved = []
    payload = ImagePayload(mime_type="image/jpeg", base64_data=b64(b"abc"))

    result = export_image(payload, "cat", saver=saved.append)

    assert result.ok
    assert saved == [SaveRequest(file_name="cat.jpeg", data=b"abc", mime_type="image/jpeg")]
    assert saved[0].data.decode() == "abc"


def test_export_without_saver_still_builds_request():
    result = export_image(ImagePayload("image/png", b64(b"\x89PNG")), "fox")

    assert result.request.file_name == "fox.png"
    assert result.request.data == b"\x89PNG"
    assert result.saved_path is None


def test_export_without_payload_is_a_no_op():
    saved = []

    result = export_image(None, "cat", saver=saved.append)

    assert result == ExportResult()
    assert result.skipped
    assert not result.ok
    assert saved == []


def test_export_without_payload_stays_quiet_at_info(caplog):
    with caplog.at_level(logging.INFO, logger="image_export"):
        export_image(None, "cat")

    assert caplog.records == []


@pytest.mark.parametrize("data", ["not base64!!", "YWJ", "@@@@"])
def test_malformed_base64_reports_error(data):
    saved = []

    result = export_image(ImagePayload("image/png", data), "cat", saver=saved.append)

    assert result.request is None
    assert result.error.startswith("Failed to save image:")
    assert saved == []


def test_failing_saver_reports_error():
    def broken(request):
        raise PermissionError("read-only file system")

    result = export_image(ImagePayload("image/png", b64(b"abc")), "cat", saver=broken)

    assert result.error == "Failed to save image: read-only file system"


@pytest.mark.parametrize("mime_type,expected", [
    ("image/png", "png"),
    ("image/jpeg", "jpeg"),
    ("image/webp", "webp"),
    ("IMAGE/JPEG", "jpeg"),
    ("image/png; charset=binary", "png"),
    ("image/", "png"),
    ("image", "png"),
    ("", "png"),
    (None, "png"),
])
def test_extension_for(mime_type, expected):
    assert extension_for(mime_type) == expected


def test_safe_filename():
    assert safe_filename("red fox.png") == "red_fox.png"
    assert safe_filename("../../etc/passwd.png") == "etcpasswd.png"
    assert safe_filename("///") == "image"


def test_save_to_disk_writes_image_and_metadata(tmp_path):
    folder = tmp_path / "run"
    request = SaveRequest(file_name="red fox.png", data=b"\x89PNG", mime_type="image/png")

    path = save_to_disk(request, str(folder), {"subject": "red fox", "style": "watercolor"})

    assert path == os.path.join(str(folder), "red_fox.png")
    assert (folder / "red_fox.png").read_bytes() == b"\x89PNG"
    info = (folder / "generation_info.txt").read_text(encoding="utf-8")
    assert "WORD:\n" in info
    assert "red fox" in info
    assert "watercolor" in info
    assert "PROMPT" not in info


def test_export_through_disk_saver(tmp_path):
    payload = ImagePayload("image/jpeg", b64(b"abc"))

    result = export_image(payload, "cat", saver=disk_saver(str(tmp_path)))

    assert result.saved_path == os.path.join(str(tmp_path), "cat.jpeg")
    assert (tmp_path / "cat.jpeg").read_bytes() == b"abc"
    assert not (tmp_path / "generation_info.txt").exists()
