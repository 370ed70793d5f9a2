# storefront/utils/uploads.py
import logging
import shutil
import uuid
from pathlib import Path

from fastapi import UploadFile

from storefront.exceptions import PersistenceFailure, ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}


def save_image(upload_dir: str, file: UploadFile) -> str:
    """Stores an uploaded product image and returns its file name."""
    ext = Path(file.filename or "").suffix.lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationFailed("Unsupported file format (jpg, jpeg, png only)")

    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    file_name = f"{uuid.uuid4().hex}{ext}"
    save_path = directory / file_name
    try:
        with open(save_path, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)
    except OSError as e:
        logger.error("Image file save error: %s", e)
        raise PersistenceFailure("File upload failed") from e
    finally:
        file.file.close()

    logger.info("Image file saved: %s", save_path)
    return file_name


def remove_image(upload_dir: str, file_name: str):
    if not file_name:
        return
    path = Path(upload_dir) / file_name
    try:
        path.unlink()
        logger.info("Deleted image file: %s", path)
    except FileNotFoundError:
        logger.warning("Image file to delete not found: %s", path)
    except OSError as e:
        logger.error("Image file deletion error: %s", e)
