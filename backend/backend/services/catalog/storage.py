from __future__ import annotations

import os
import posixpath
import time

IMAGE_STORE_DIR = os.getenv("IMAGE_STORE_DIR", "/var/lib/ordering/images")
IMAGE_BUCKET = os.getenv("IMAGE_BUCKET", "item-images")

PLACEHOLDER_KEY = "placeholders/img-placeholder.jpeg"

_CONTENT_TYPES = {
    ".webp": "image/webp",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


def content_type_for(filename: str) -> str:
    ext = os.path.splitext(filename)[1].lower()
    return _CONTENT_TYPES.get(ext, "application/octet-stream")


def _safe_part(part: str) -> str:
    return part.replace("/", "_").replace("\\", "_").replace("..", "_")


def site_image_key(normalized_site: str, filename: str) -> str:
    return f"{_safe_part(normalized_site)}/{_safe_part(filename)}"


def upload_key(sku: str, filename: str, now: float | None = None) -> str:
    ext = os.path.splitext(filename)[1].lstrip(".").lower() or "bin"
    stamp = int((now if now is not None else time.time()) * 1000)
    return f"uploads/{_safe_part(sku)}_{stamp}.{ext}"


class ImageStore:
    """Blob store on the local filesystem.

    Keys look like "<folder>/<file>"; the returned path "<bucket>/<key>" is what
    gets recorded in app_site_items.image_path. Writes overwrite.
    """

    def __init__(self, root: str | None = None, bucket: str | None = None):
        self.root = root or IMAGE_STORE_DIR
        self.bucket = bucket or IMAGE_BUCKET

    def _path(self, key: str) -> str:
        parts = [_safe_part(p) for p in key.split("/") if p]
        return os.path.join(self.root, self.bucket, *parts)

    def put(self, key: str, content: bytes) -> str:
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)
        return posixpath.join(self.bucket, key)

    def get(self, image_path: str) -> bytes:
        key = image_path
        prefix = self.bucket + "/"
        if key.startswith(prefix):
            key = key[len(prefix):]
        with open(self._path(key), "rb") as f:
            return f.read()

    def exists(self, key: str) -> bool:
        return os.path.isfile(self._path(key))
