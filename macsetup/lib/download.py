from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import DownloadError

logger = logging.getLogger(__name__)

USER_AGENT = "macsetup/1.0"
CHUNK_SIZE = 64 * 1024


def make_session(retries: int = 3, backoff: float = 1.0) -> requests.Session:
    retry = Retry(
        total=retries,
        backoff_factor=backoff,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "HEAD"}),
    )
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def download_to(
    url: str,
    destination: Path,
    *,
    sha256: Optional[str] = None,
    session: Optional[requests.Session] = None,
    timeout: float = 60.0,
    dry_run: bool = False,
) -> Path:
    """Fetch url and place it at destination, replacing any previous copy.

    The body is streamed to a temp file in the destination directory and
    moved into place only after an optional SHA-256 check passes.
    """

    destination = Path(destination)
    logger.info("GET %s -> %s", url, destination)
    if dry_run:
        return destination

    destination.parent.mkdir(parents=True, exist_ok=True)
    sess = session or make_session()
    fd, tmp_name = tempfile.mkstemp(prefix=".download-", dir=str(destination.parent))
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as out:
            try:
                with sess.get(url, stream=True, timeout=timeout) as resp:
                    resp.raise_for_status()
                    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            out.write(chunk)
            except requests.RequestException as e:
                raise DownloadError(f"Download failed for {url}: {e}") from e

        if sha256:
            actual = sha256_file(tmp)
            if actual.lower() != sha256.lower():
                raise DownloadError(f"Checksum mismatch for {url}: expected {sha256}, got {actual}")

        os.replace(tmp, destination)
    finally:
        if tmp.exists():
            tmp.unlink()

    logger.info("Saved %s (%d bytes)", destination, destination.stat().st_size)
    return destination
