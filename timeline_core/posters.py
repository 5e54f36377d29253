import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

POSTER_DIR = "posters"
POSTER_EXTENSIONS = (".jpg", ".png", ".webp")


def resolve_poster(image_key: Optional[str], static_folder) -> Optional[str]:
    """Static-relative path of the poster for ``image_key``, or None.

    A missing poster is decorative, so it is logged and skipped.
    """
    if not image_key:
        return None
    if static_folder:
        base = Path(static_folder) / POSTER_DIR
        for ext in POSTER_EXTENSIONS:
            if (base / f"{image_key}{ext}").is_file():
                return f"{POSTER_DIR}/{image_key}{ext}"
    logger.warning("%s not found.", image_key)
    return None
