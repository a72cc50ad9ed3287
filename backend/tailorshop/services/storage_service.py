# Overview: Stores uploaded files in the configured upload folder.

from __future__ import annotations

import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename


ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


class StorageError(ValueError):
    """Raised when an upload cannot be stored."""
    pass


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def save_upload(file, folder: str, *, allowed_extensions: set[str] | None = None) -> str:
    """
    Save a werkzeug FileStorage under UPLOAD_FOLDER/<folder>/ and return its public URL.

    The stored name is a random prefix plus the sanitized original name, so
    two uploads of "photo.jpg" never collide.
    """
    if file is None or not getattr(file, "filename", ""):
        raise StorageError("file is required")

    allowed = ALLOWED_IMAGE_EXTENSIONS if allowed_extensions is None else allowed_extensions
    original = secure_filename(file.filename)
    ext = _extension(original)
    if not original or (allowed and ext not in allowed):
        raise StorageError(f"Unsupported file type: {file.filename}")

    safe_folder = secure_filename(folder) or "misc"
    target_dir = os.path.join(current_app.config["UPLOAD_FOLDER"], safe_folder)
    os.makedirs(target_dir, exist_ok=True)

    stored_name = f"{uuid.uuid4().hex}_{original}"
    file.save(os.path.join(target_dir, stored_name))

    base = current_app.config["PUBLIC_UPLOAD_URL"].rstrip("/")
    return f"{base}/{safe_folder}/{stored_name}"
