"""
Verification document storage.

Documents go to Cloudinary when credentials are configured and to the local
upload directory otherwise. Either way the caller gets back an opaque
reference (secure URL or file path) to store on the user.
"""
import logging
import os
import time
from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from ..config import settings
from ..exceptions import AppException, ErrorKind

# Set up logger for this module
logger = logging.getLogger(__name__)

ALLOWED_DOCUMENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
VERIFICATION_FOLDER = "verifications"


class StorageError(Exception):
    """Raised when a document could not be persisted."""


def validate_document(content_type: Optional[str], data: bytes) -> None:
    """
    Enforce the document type allow-list and size limit.

    Args:
        content_type: MIME type declared by the client
        data: File contents

    Raises:
        AppException: INVALID_FILE_TYPE or FILE_TOO_LARGE
    """
    if content_type not in ALLOWED_DOCUMENT_TYPES:
        raise AppException(ErrorKind.INVALID_FILE_TYPE)
    if len(data) > settings.max_document_size:
        raise AppException(ErrorKind.FILE_TOO_LARGE)


def _document_name(user_id: int, side: str, filename: Optional[str], content_type: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower() or ALLOWED_DOCUMENT_TYPES[content_type]
    return f"{user_id}_{int(time.time() * 1000)}_{side}{ext}"


def _upload_to_cloudinary(data: bytes, public_id: str) -> str:
    cloudinary.config(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        secure=True
    )
    try:
        result = cloudinary.uploader.upload(
            data,
            folder=VERIFICATION_FOLDER,
            public_id=public_id,
            overwrite=False,
            resource_type="image",
            type="private"
        )
    except cloudinary.exceptions.Error as e:
        logger.error(f"Cloudinary API error during document upload: {str(e)}")
        raise StorageError("Document upload failed") from e

    secure_url = result.get("secure_url")
    if not secure_url:
        logger.error("Cloudinary upload result did not contain a secure_url.")
        raise StorageError("Document upload failed")
    return secure_url


def _save_locally(data: bytes, name: str) -> str:
    dest_dir = os.path.join(settings.upload_dir, VERIFICATION_FOLDER)
    os.makedirs(dest_dir, exist_ok=True)
    path = os.path.join(dest_dir, name)
    with open(path, "wb") as f:
        f.write(data)
    return path


def save_document(
    user_id: int,
    side: str,
    filename: Optional[str],
    content_type: str,
    data: bytes
) -> str:
    """
    Validate and persist one side of an ID document.

    Args:
        user_id: Owner of the document
        side: ``"front"`` or ``"back"``
        filename: Original client filename (only its extension is kept)
        content_type: MIME type declared by the client
        data: File contents

    Returns:
        str: Retrievable reference to the stored document

    Raises:
        AppException: If the document fails validation
        StorageError: If the backend could not store it
    """
    validate_document(content_type, data)
    name = _document_name(user_id, side, filename, content_type)
    if settings.cloudinary_configured:
        reference = _upload_to_cloudinary(data, os.path.splitext(name)[0])
    else:
        reference = _save_locally(data, name)
    logger.info(f"Stored {side} verification document for user {user_id}")
    return reference


def discard_document(reference: Optional[str]) -> None:
    """Remove a locally stored document that is no longer referenced."""
    if not reference or reference.startswith("http"):
        return
    try:
        os.remove(reference)
    except OSError as e:
        logger.warning(f"Could not remove document {reference}: {str(e)}")
