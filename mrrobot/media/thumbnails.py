"""
MR-ROBOT - Article thumbnail download

Knowledge-base articles imported from Medium carry a remote thumbnail URL.
The image is fetched once and saved as <slug>.webp so the site can serve it
from /article-thumbnails/ instead of hotlinking.

A failed download is not an error for the caller: None is returned and the
article keeps its remote URL.
"""

from pathlib import Path
from typing import Optional, Union
import logging

import requests

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/article-thumbnails"

# Download timeout (seconds)
REQUEST_TIMEOUT = 30

CHUNK_SIZE = 64 * 1024

# Some CDNs refuse requests without a browser user agent
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


def thumbnail_filename(slug: str) -> str:
    return f"{slug}.webp"


def is_safe_slug(slug: str) -> bool:
    return bool(slug) and slug not in (".", "..") and not any(sep in slug for sep in ("/", "\\", "\0"))


def public_path(slug: str) -> str:
    return f"{PUBLIC_PREFIX}/{thumbnail_filename(slug)}"


def download_thumbnail(
    url: Optional[str],
    slug: str,
    thumbnail_dir: Union[str, Path]
) -> Optional[str]:
    """
    Download a remote thumbnail and stream it to disk.

    Args:
        url: Remote image URL (may be empty)
        slug: Article slug, used as the file name
        thumbnail_dir: Directory served at /article-thumbnails

    Returns:
        Public path of the saved thumbnail, or None if nothing was saved
    """
    if not url:
        return None

    directory = Path(thumbnail_dir)
    filepath = directory / thumbnail_filename(slug)

    # The slug must name a file directly inside thumbnail_dir
    if not is_safe_slug(slug) or filepath.resolve().parent != directory.resolve():
        logger.error(f"Rejected thumbnail slug {slug!r}")
        return None

    if filepath.exists():
        logger.debug(f"Thumbnail already present for {slug}")
        return public_path(slug)

    directory.mkdir(parents=True, exist_ok=True)

    try:
        with requests.get(
            url,
            stream=True,
            timeout=REQUEST_TIMEOUT,
            allow_redirects=True,
            headers={"User-Agent": USER_AGENT}
        ) as response:
            response.raise_for_status()

            with open(filepath, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)

    except (requests.RequestException, OSError) as e:
        logger.error(f"Thumbnail download failed for {slug}: {e}")
        # Remove the partial file
        filepath.unlink(missing_ok=True)
        return None

    logger.info(f"Saved thumbnail for {slug} to {filepath}")
    return public_path(slug)
