# ABOUTME: ArchiveSource that downloads the dataset from the latest GitHub release.
# ABOUTME: Reuses a cached data.zip unless a fresh download is forced.

import logging
from pathlib import Path

from deadly.archive.http import ArchiveHttpClient
from deadly.archive.source import ChunkProgress
from deadly.errors import DownloadFailure

logger = logging.getLogger(__name__)

GITHUB_RELEASES_URL = "https://api.github.com/repos/ds17f/dead-metadata/releases/latest"
DEFAULT_CACHE_DIR = Path.home() / ".deadly" / "cache"
ARCHIVE_FILENAME = "data.zip"


def select_asset(release: dict) -> dict:
    """Pick the first release asset named like ``data*.zip``.

    Raises:
        DownloadFailure: The release has no matching asset.
    """
    for asset in release.get("assets") or []:
        name = asset.get("name") or ""
        if name.startswith("data") and name.endswith(".zip") and asset.get("browser_download_url"):
            return asset
    tag = release.get("tag_name", "latest")
    raise DownloadFailure(f"Release {tag} has no data*.zip asset")


class GitHubReleaseSource:
    """Fetches the archive from the metadata repository's latest release."""

    def __init__(
        self,
        client: ArchiveHttpClient | None = None,
        *,
        releases_url: str = GITHUB_RELEASES_URL,
    ) -> None:
        self._client = client or ArchiveHttpClient()
        self._releases_url = releases_url

    def fetch(self, dest_dir: Path, on_progress: ChunkProgress, *, force: bool = False) -> Path:
        dest = dest_dir / ARCHIVE_FILENAME
        if dest.is_file() and not force:
            size = dest.stat().st_size
            logger.info("Using cached %s (%d bytes)", dest, size)
            on_progress(size, size)
            return dest

        release = self._client.get_json(self._releases_url)
        asset = select_asset(release)
        logger.info(
            "Downloading %s from release %s", asset["name"], release.get("tag_name", "latest")
        )
        return self._client.download(asset["browser_download_url"], dest, on_progress)
