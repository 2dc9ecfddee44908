from __future__ import annotations

import os
import shutil
import uuid
from typing import BinaryIO

ALLOWED_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


def store_photo(upload_dir: str, filename: str, stream: BinaryIO) -> str:
    """
    Saves an uploaded building photo under upload_dir with a random name.
    Returns the relative path used as ContractRecord.building_photo.
    """
    suffix = os.path.splitext(filename or "")[1].lower()
    if suffix not in ALLOWED_SUFFIXES:
        raise ValueError(f"Unsupported photo type: {suffix or '<none>'}")

    os.makedirs(upload_dir, exist_ok=True)
    name = f"{uuid.uuid4().hex}{suffix}"
    with open(os.path.join(upload_dir, name), "wb") as out:
        shutil.copyfileobj(stream, out)
    return f"{os.path.basename(upload_dir.rstrip('/'))}/{name}"
