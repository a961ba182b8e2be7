"""
Network download manager with progress tracking.

This module streams interpreter archives and bootstrap scripts to disk:
- HTTP/HTTPS downloads with TLS verification (delegated to requests)
- Skip-if-present, so re-running an install converges
- Progress reporting (bytes, percentage, speed, ETA) for every chunk
- Download into a ``.part`` file that is renamed on success and removed on
  failure, so an aborted download never leaves a file at the final path
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

from hygeia.core.exceptions import DownloadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192
PARTIAL_SUFFIX = ".part"


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Download file from URL to destination, skipping files already on disk.

    Args:
        url: URL to download from
        destination: Local path to save file
        progress_callback: Optional callback invoked after every received chunk
        timeout: Request timeout in seconds
        session: Optional requests session (defaults to module-level requests)

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: On transport failure, non-2xx status or write failure
        ValueError: If URL or destination is invalid

    Example:
        >>> from hygeia.core.download import download_file
        >>> download_file(
        ...     "https://www.python.org/ftp/python/3.7.5/Python-3.7.5.tgz",
        ...     Path("~/.hygeia/cache/downloaded/Python-3.7.5.tgz").expanduser(),
        ...     progress_callback=lambda p: print(p),
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)

    if destination.exists():
        logger.info(f"File {destination} already downloaded, skipping")
        return destination

    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + PARTIAL_SUFFIX)

    try:
        _download_with_progress(
            url=url,
            partial=partial,
            progress_callback=progress_callback,
            timeout=timeout,
            session=session,
        )
        partial.replace(destination)
    except RequestException as e:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Failed to download {url}: {e}") from e
    except OSError as e:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Failed to write {destination}: {e}") from e
    except BaseException:
        partial.unlink(missing_ok=True)
        raise

    logger.info(f"Download complete: {destination}")
    return destination


def _download_with_progress(
    url: str,
    partial: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
    session: Optional[requests.Session],
) -> None:
    """
    Perform download with streaming and progress updates.

    Raises:
        RequestException: If HTTP request fails or returns a non-2xx status
    """
    logger.info(f"Downloading from {url}")

    getter = session.get if session is not None else requests.get
    response = getter(url, stream=True, timeout=timeout, allow_redirects=True)

    with response:
        response.raise_for_status()

        content_length = response.headers.get("content-length")
        total_size = int(content_length) if content_length else 0

        downloaded = 0
        start_time = time.time()

        with open(partial, "wb") as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if not chunk:
                    continue
                f.write(chunk)
                downloaded += len(chunk)

                if progress_callback:
                    elapsed = time.time() - start_time
                    speed = downloaded / elapsed if elapsed > 0 else 0
                    remaining = total_size - downloaded if total_size > 0 else 0
                    eta = remaining / speed if speed > 0 else 0

                    progress_callback(
                        DownloadProgress(
                            bytes_downloaded=downloaded,
                            total_bytes=total_size if total_size > 0 else downloaded,
                            percentage=(downloaded / total_size * 100)
                            if total_size > 0
                            else 0,
                            speed_bps=speed,
                            eta_seconds=eta,
                        )
                    )


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0 and progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    else:
        # Unknown total size
        return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"
