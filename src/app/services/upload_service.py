"""Service layer – validation and storage of uploaded profile images.

The handler trusts the client-declared MIME type unless
``Settings.verify_image_content`` is enabled, in which case the bytes
are sniffed with Pillow.  Without sniffing the type check is a
convenience filter, not a security control.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from PIL import Image, UnidentifiedImageError

from src.app.config import Settings

logger = logging.getLogger(__name__)

_SAFE_EXTENSION = re.compile(r"[A-Za-z0-9]{1,16}")

# Declared types that name the same format as another one
_MIME_ALIASES = {"image/jpg": "image/jpeg", "image/mpo": "image/jpeg"}


# ──────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────
class UploadError(Exception):
    """Base class for upload failures reported back to the client."""

    message = "File upload failed."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NoFileUploaded(UploadError):
    message = "No file uploaded."


class InvalidFileType(UploadError):
    message = "Invalid file type. Only JPEG, PNG, or GIF or jpg are allowed."


class FileTooLarge(UploadError):
    message = "File size exceeds the 5MB limit."


class UploadFailed(UploadError):
    message = "File upload failed."


# ──────────────────────────────────────────────
# Request
# ──────────────────────────────────────────────
@dataclass(frozen=True)
class UploadRequest:
    """A single received file field."""

    content_type: str | None
    filename: str | None
    file: BinaryIO
    size: int | None = None


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────
def file_extension(filename: str | None) -> str:
    """Return the text after the last ``.`` of the base name, case preserved.

    Returns ``""`` when the name has no dot.  Raises ``InvalidFileType``
    when the extension could escape the upload directory or is not
    plain alphanumerics.
    """
    if not filename:
        return ""

    name = PurePosixPath(filename.replace("\\", "/")).name
    if "." not in name:
        return ""

    extension = name.rsplit(".", 1)[1]
    if not _SAFE_EXTENSION.fullmatch(extension):
        raise InvalidFileType()
    return extension


def unique_filename(extension: str) -> str:
    """Generate a fresh stored name, e.g. ``3f2b…9c.jpg``."""
    base = uuid.uuid4().hex
    return f"{base}.{extension}" if extension else base


def measure_size(stream: BinaryIO) -> int:
    """Count the bytes in *stream* and rewind it."""
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def sniff_content_type(stream: BinaryIO) -> str | None:
    """Return the MIME type Pillow detects in *stream*, or ``None``."""
    stream.seek(0)
    try:
        with Image.open(stream) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
        return None
    finally:
        stream.seek(0)
    return Image.MIME.get(image_format or "")


def _canonical_type(content_type: str) -> str:
    content_type = content_type.split(";", 1)[0].strip().lower()
    return _MIME_ALIASES.get(content_type, content_type)


# ──────────────────────────────────────────────
# Handler
# ──────────────────────────────────────────────
class UploadHandler:
    """Validate one upload, store it under a generated name, return its URL."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def upload_dir(self) -> Path:
        return Path(self.settings.upload_dir)

    def handle(self, upload: UploadRequest | None, base_url: str) -> str:
        """
        Store *upload* and return its public URL.

        Parameters
        ----------
        upload   : UploadRequest | None – the ``file`` field, ``None`` if absent.
        base_url : str – scheme and host of the incoming request; ignored
                   when ``public_base_url`` is configured.

        Raises
        ------
        UploadError subclass describing why nothing was stored.
        """
        if upload is None:
            logger.warning("Rejected upload: no file field.")
            raise NoFileUploaded()

        self.validate(upload)
        extension = file_extension(upload.filename)

        stored_name = self.store(upload.file, extension)
        url = self.public_url(stored_name, base_url)
        logger.info("✅ Stored %s (%s) as %s", upload.filename, upload.content_type, stored_name)
        return url

    def validate(self, upload: UploadRequest) -> None:
        """Check declared type, size and (optionally) the actual image format."""
        declared = (upload.content_type or "").split(";", 1)[0].strip().lower()
        if declared not in self.settings.allowed_content_types_set:
            logger.warning("Rejected upload %r: content type %r not allowed.",
                           upload.filename, upload.content_type)
            raise InvalidFileType()

        size = upload.size if upload.size is not None else measure_size(upload.file)
        if size > self.settings.max_upload_size:
            logger.warning("Rejected upload %r: %d bytes exceeds %d.",
                           upload.filename, size, self.settings.max_upload_size)
            raise FileTooLarge()

        if self.settings.verify_image_content:
            detected = sniff_content_type(upload.file)
            if detected is None or _canonical_type(detected) != _canonical_type(declared):
                logger.warning("Rejected upload %r: declared %s but content is %s.",
                               upload.filename, declared, detected)
                raise InvalidFileType()

    def store(self, stream: BinaryIO, extension: str) -> str:
        """Write *stream* into the upload directory and return the stored name."""
        directory = self.upload_dir
        tmp_path: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True, mode=self.settings.upload_dir_mode)

            with tempfile.NamedTemporaryFile(
                dir=directory, prefix=".upload-", suffix=".part", delete=False,
            ) as tmp:
                tmp_path = tmp.name
                stream.seek(0)
                shutil.copyfileobj(stream, tmp)
            os.chmod(tmp_path, self.settings.upload_file_mode)

            return self._claim_name(Path(tmp_path), extension)
        except OSError as exc:
            logger.exception("Could not store upload in %s", directory)
            raise UploadFailed() from exc
        finally:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)

    def _claim_name(self, tmp_path: Path, extension: str) -> str:
        """Hard-link *tmp_path* to a fresh name; ``os.link`` never replaces an existing file."""
        for _ in range(self.settings.max_name_attempts):
            name = unique_filename(extension)
            try:
                os.link(tmp_path, tmp_path.parent / name)
            except FileExistsError:
                logger.warning("Generated name %s already taken, retrying.", name)
                continue
            return name
        raise UploadFailed()

    def public_url(self, stored_name: str, base_url: str) -> str:
        """Build ``<base>/<upload_url_path>/<stored_name>``."""
        base = (self.settings.public_base_url or base_url).rstrip("/")
        return f"{base}{self.settings.upload_url_prefix}/{stored_name}"
