#!/usr/bin/env python3
"""Helpers for resolving output, temporary and asset paths.

Every run gets an explicit ``output_dir``. Scratch files (rendered Mermaid
diagrams, output backups) go to a ``.gridslides_tmp`` sub-directory of it,
or to :pyfunc:`tempfile.mkdtemp` when that cannot be created (read-only
share). The scratch directory is removed by an ``atexit`` hook unless
``keep_tmp`` is set and it lives inside ``output_dir``.
"""
from __future__ import annotations

import atexit
import base64
import binascii
import errno
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import unquote_to_bytes

import requests

logger = logging.getLogger(__name__)

__all__ = ["TMP_DIR_NAME", "prepare_workspace", "resolve_asset", "is_remote", "fetch_asset"]

TMP_DIR_NAME = ".gridslides_tmp"
FETCH_TIMEOUT = 15


def prepare_workspace(output_dir: str | Path, *, keep_tmp: bool = False) -> Dict[str, Path]:
    """Create ``output_dir`` and a scratch directory, registering cleanup.

    Returns
    -------
    dict with keys ``output_dir`` and ``tmp_dir`` (absolute paths).
    """
    out_path = Path(output_dir).expanduser().resolve()
    out_path.mkdir(parents=True, exist_ok=True)

    proposed_tmp = out_path / TMP_DIR_NAME
    use_fallback = False

    try:
        proposed_tmp.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        if exc.errno not in (errno.EACCES, errno.EROFS):
            raise
        use_fallback = True

    tmp_path = Path(tempfile.mkdtemp(prefix="gridslides_")) if use_fallback else proposed_tmp
    should_cleanup = not keep_tmp or use_fallback

    def _cleanup() -> None:
        if should_cleanup and tmp_path.exists():
            shutil.rmtree(tmp_path, ignore_errors=True)

    atexit.register(_cleanup)
    logger.debug("Workspace: output=%s tmp=%s (cleanup=%s)", out_path, tmp_path, should_cleanup)

    return {
        "output_dir": out_path,
        "tmp_dir": tmp_path,
    }


def is_remote(src: str) -> bool:
    return src.startswith(("http://", "https://", "data:"))


def resolve_asset(src: str, *, base_dir: Optional[Path] = None) -> str:
    """Return the location of an image or video referenced from Markdown.

    1. Remote URLs and data URIs are returned unchanged.
    2. ``file://`` URLs are stripped to an absolute path.
    3. Relative paths are resolved against ``base_dir`` (default: cwd).
    """
    if is_remote(src):
        return src
    if src.startswith("file://"):
        return str(Path(src[7:]).expanduser().resolve())
    base = Path(base_dir) if base_dir else Path.cwd()
    return str((base / src).expanduser().resolve())


def fetch_asset(src: str, *, timeout: float = FETCH_TIMEOUT) -> bytes:
    """Return the bytes of a remote asset (``http(s)://`` URL or ``data:`` URI).

    Raises:
        OSError: The asset could not be downloaded or decoded.
    """
    if src.startswith("data:"):
        header, _, payload = src.partition(",")
        try:
            if header.endswith(";base64"):
                return base64.b64decode(payload, validate=True)
            return unquote_to_bytes(payload)
        except binascii.Error as exc:
            raise OSError(f"Invalid data URI: {exc}") from exc

    try:
        response = requests.get(src, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise OSError(f"Could not fetch {src}: {exc}") from exc
    logger.debug("Fetched %s (%d bytes)", src, len(response.content))
    return response.content
