# civicvote/storage.py
# Candidate image store: decoded base64 images on disk, served under /uploads.
import base64
import binascii
import logging
import uuid
from pathlib import Path
from typing import Optional, Tuple

from civicvote import config
from civicvote.errors import ValidationError

logger = logging.getLogger(__name__)

_IMAGE_EXTENSIONS = {
    b"\x89PNG": ".png",
    b"GIF8": ".gif",
    b"RIFF": ".webp",
}


def upload_dir() -> Path:
    path = Path(config.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _guess_extension(data: bytes) -> str:
    for magic, ext in _IMAGE_EXTENSIONS.items():
        if data.startswith(magic):
            return ext
    return ".jpg"


def save_base64_image(base64_str: str, prefix: str = "candidate") -> Tuple[str, str]:
    """
    Save a base64 image string to the upload directory.
    - base64_str: may be raw base64 or a data URL (data:image/jpeg;base64,...)
    Returns: (public_id, url)
    """
    if not base64_str or not base64_str.strip():
        raise ValidationError("Image data is empty")

    s = base64_str.strip()
    if s.startswith("data:"):
        comma = s.find(",")
        if comma != -1:
            s = s[comma + 1:]
    s = "".join(s.split())

    try:
        data = base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid image data: {e}")
    if not data:
        raise ValidationError("Image data is empty")

    public_id = f"{prefix}_{uuid.uuid4().hex}{_guess_extension(data)}"
    filepath = upload_dir() / public_id
    with open(filepath, "wb") as f:
        f.write(data)

    logger.info(f"Stored image {public_id} ({len(data)} bytes)")
    return public_id, image_url(public_id)


def image_url(public_id: str) -> str:
    return f"{config.PUBLIC_BASE_URL}/uploads/{public_id}"


def release_image(public_id: Optional[str]) -> None:
    """Delete a stored image. Unknown ids are ignored."""
    if not public_id:
        return
    # public ids are bare file names; refuse anything that walks out of the directory
    filepath = upload_dir() / Path(public_id).name
    try:
        filepath.unlink()
        logger.info(f"Released image {public_id}")
    except FileNotFoundError:
        logger.warning(f"Image {public_id} was already gone")
