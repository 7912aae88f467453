"""
图片存储测试
"""
from io import BytesIO
from pathlib import Path

import pytest
from fastapi import UploadFile

from vestisen.services import file_storage

pytestmark = pytest.mark.anyio


def test_sanitize_filename_strips_path_and_unsafe_chars():
    assert file_storage.sanitize_filename("../../etc/robe bleue.jpg") == "robe_bleue.jpg"
    assert file_storage.sanitize_filename("") == "image"


async def test_oversized_upload_is_skipped_without_full_read(monkeypatch):
    monkeypatch.setattr(file_storage.settings, "upload_max_bytes", 16)
    big = BytesIO(b"x" * 1024)
    small = BytesIO(b"\xff\xd8\xff small")

    stored = await file_storage.store_annonce_images("ABC123", [
        UploadFile(file=big, filename="grande.jpg"),
        UploadFile(file=small, filename="petite.jpg"),
    ])

    assert big.tell() == 17
    assert len(stored) == 1
    assert stored[0].startswith("annonce/user/ABC123/")
    assert stored[0].endswith("_petite.jpg")
    assert (Path(file_storage.settings.upload_dir) / stored[0]).read_bytes() == b"\xff\xd8\xff small"
