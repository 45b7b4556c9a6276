"""
Model file downloader for the local embedding model.

Fetches the quantized ONNX export and tokenizer files from a Hugging Face
style hub into the configured model directory. This is the only code path
that touches the network; runtime initialization reads local files only.
"""

from datetime import datetime, UTC
from pathlib import Path
from typing import Iterable, Optional

import httpx
from pydantic import BaseModel, Field
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from tab_sorter.config import Settings, get_logger, get_settings

logger = get_logger(__name__)

# Remote paths relative to the model repository root
MODEL_FILES: tuple[str, ...] = (
    "onnx/model_quantized.onnx",
    "tokenizer.json",
    "tokenizer_config.json",
    "config.json",
    "special_tokens_map.json",
)

MANIFEST_FILE = "manifest.json"
MANIFEST_VERSION = "1.0.0"


class ModelManifest(BaseModel):
    """Record of a model download, written next to the model files."""

    model_id: str
    files: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    downloaded: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: str = MANIFEST_VERSION

    @property
    def complete(self) -> bool:
        return not self.failed


def _is_transient(error: BaseException) -> bool:
    """Network errors, timeouts, 429 and 5xx responses are worth retrying."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    return isinstance(error, (httpx.TransportError, httpx.TimeoutException))


class ModelDownloader:
    """Downloads model files over HTTP with retries."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 60.0,
    ):
        """
        Initialize the downloader.

        Args:
            settings: Application settings (hub URL, model id, target directory)
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
            timeout: Per-request timeout in seconds
        """
        self.settings = settings or get_settings()
        self.target_dir = Path(self.settings.embedding_model_dir)
        self.client = httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            transport=transport,
        )

    def file_url(self, remote_path: str) -> str:
        hub = self.settings.model_hub_url.rstrip("/")
        return f"{hub}/{self.settings.embedding_model_id}/resolve/main/{remote_path}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(_is_transient),
        reraise=True
    )
    def _fetch(self, url: str, destination: Path) -> int:
        """
        Stream one file to disk.

        Writes to a ``.part`` file first so an interrupted download never
        leaves a truncated model behind.

        Returns:
            Size of the written file in bytes
        """
        partial = destination.with_name(destination.name + ".part")
        try:
            with self.client.stream("GET", url) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
            partial.replace(destination)
        finally:
            partial.unlink(missing_ok=True)

        return destination.stat().st_size

    def download(self, files: Iterable[str] = MODEL_FILES, force: bool = False) -> ModelManifest:
        """
        Download every model file and write the manifest.

        A failure on one file is logged and the remaining files are still
        attempted; check ``ModelManifest.failed`` for what is missing.

        Args:
            files: Remote paths to fetch
            force: Re-download files that already exist locally

        Returns:
            ModelManifest describing the download
        """
        self.target_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Downloading model files for {self.settings.embedding_model_id}")
        logger.info(f"Target directory: {self.target_dir}")

        downloaded: list[str] = []
        failed: list[str] = []

        for remote_path in files:
            destination = self.target_dir / Path(remote_path).name

            if destination.exists() and not force:
                logger.info(f"Skipping {remote_path}: already present")
                downloaded.append(destination.name)
                continue

            url = self.file_url(remote_path)
            logger.info(f"Downloading {remote_path}...")
            try:
                size = self._fetch(url, destination)
            except (httpx.HTTPError, OSError) as e:
                logger.error(f"Failed to download {remote_path}: {e}")
                failed.append(remote_path)
                continue

            logger.info(f"Downloaded {destination.name} ({size / 1024 / 1024:.2f} MB)")
            downloaded.append(destination.name)

        manifest = ModelManifest(
            model_id=self.settings.embedding_model_id,
            files=downloaded,
            failed=failed,
        )
        (self.target_dir / MANIFEST_FILE).write_text(manifest.model_dump_json(indent=2), encoding="utf-8")

        if failed:
            logger.warning(f"Model download incomplete: {len(failed)} file(s) failed")
        else:
            logger.info(f"Model download complete, manifest written to {self.target_dir / MANIFEST_FILE}")
        return manifest

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
