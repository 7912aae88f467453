"""
图片存储

文件保存到 {upload_dir}/annonce/user/{code}/{8位随机}_{清洗后的文件名}，
返回相对路径，由 StaticFiles 在 upload_url_prefix 下提供访问。
"""
import logging
import re
import uuid
from pathlib import Path
from typing import Iterable, List

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from vestisen.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(filename: str) -> str:
    name = Path(filename or "image").name
    return _UNSAFE_CHARS.sub("_", name) or "image"


def annonce_directory(code: str) -> str:
    return f"annonce/user/{code}"


def public_url(relative_path: str) -> str:
    return f"{settings.upload_url_prefix.rstrip('/')}/{relative_path}"


def _write(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)


async def store_annonce_images(code: str, files: Iterable[UploadFile]) -> List[str]:
    """
    保存上传图片，跳过空文件、不支持的扩展名和超过大小限制的文件

    Returns:
        成功保存的相对路径列表
    """
    stored: List[str] = []
    root = Path(settings.upload_dir)
    directory = annonce_directory(code)

    for upload in files:
        original = sanitize_filename(upload.filename)
        extension = Path(original).suffix.lower()
        if extension not in ALLOWED_EXTENSIONS:
            logger.warning("Skipping upload with unsupported extension: %s", original)
            continue

        # 最多读取 upload_max_bytes + 1 字节，超出即判定过大
        content = await upload.read(settings.upload_max_bytes + 1)
        if not content:
            continue
        if len(content) > settings.upload_max_bytes:
            logger.warning("Skipping oversized upload %s (over %d bytes)", original, settings.upload_max_bytes)
            continue

        relative = f"{directory}/{uuid.uuid4().hex[:8]}_{original}"
        await run_in_threadpool(_write, root / relative, content)
        stored.append(relative)

    return stored
