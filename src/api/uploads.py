"""Helpers for multipart file uploads."""

import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from fastapi import UploadFile

from src.services.blob_store import remove_local_file


def has_file(upload: UploadFile | None) -> bool:
    """Check that a multipart part actually carried a file."""
    return upload is not None and bool(upload.filename)


@contextmanager
def spooled_upload(upload: UploadFile | None) -> Iterator[Path | None]:
    """Copy an upload to a temporary file and remove it afterwards."""
    if not has_file(upload):
        yield None
        return

    suffix = Path(upload.filename).suffix
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        shutil.copyfileobj(upload.file, tmp)
        path = Path(tmp.name)
    try:
        yield path
    finally:
        remove_local_file(path)
