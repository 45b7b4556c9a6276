"""
Unit tests for the model downloader.

Uses httpx.MockTransport so no network access is needed.
"""

import json

import httpx
import pytest
from tenacity import wait_none

from tab_sorter.hub.model_downloader import MODEL_FILES, ModelDownloader

HUB = "https://huggingface.co/Xenova/all-MiniLM-L6-v2/resolve/main"


def serve(files, calls=None):
    """Build a MockTransport that serves the given {url path suffix: bytes} map."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        for suffix, content in files.items():
            if url == f"{HUB}/{suffix}":
                return httpx.Response(200, content=content)
        return httpx.Response(404, text="not found")

    return httpx.MockTransport(handler)


@pytest.fixture
def all_files():
    return {remote_path: f"contents of {remote_path}".encode() for remote_path in MODEL_FILES}


class TestModelDownloader:
    """Tests for ModelDownloader."""

    def test_file_url(self, settings):
        downloader = ModelDownloader(settings, transport=serve({}))
        assert downloader.file_url("onnx/model_quantized.onnx") == f"{HUB}/onnx/model_quantized.onnx"

    def test_downloads_all_files(self, settings, all_files):
        with ModelDownloader(settings, transport=serve(all_files)) as downloader:
            manifest = downloader.download()

        model_dir = settings.embedding_model_dir
        assert manifest.complete
        assert manifest.model_id == "Xenova/all-MiniLM-L6-v2"
        assert manifest.files == [
            "model_quantized.onnx",
            "tokenizer.json",
            "tokenizer_config.json",
            "config.json",
            "special_tokens_map.json",
        ]
        assert (model_dir / "model_quantized.onnx").read_bytes() == b"contents of onnx/model_quantized.onnx"
        assert settings.model_path.exists()
        assert settings.tokenizer_path.exists()
        assert not list(model_dir.glob("*.part"))

    def test_writes_manifest(self, settings, all_files):
        with ModelDownloader(settings, transport=serve(all_files)) as downloader:
            downloader.download()

        manifest = json.loads((settings.embedding_model_dir / "manifest.json").read_text())
        assert manifest["model_id"] == "Xenova/all-MiniLM-L6-v2"
        assert manifest["version"] == "1.0.0"
        assert manifest["failed"] == []
        assert "downloaded" in manifest

    def test_failed_file_does_not_stop_others(self, settings, all_files):
        """A 404 is logged, not retried, and the remaining files still download."""
        del all_files["tokenizer_config.json"]
        calls = []

        with ModelDownloader(settings, transport=serve(all_files, calls)) as downloader:
            manifest = downloader.download()

        assert not manifest.complete
        assert manifest.failed == ["tokenizer_config.json"]
        assert "special_tokens_map.json" in manifest.files
        assert calls.count(f"{HUB}/tokenizer_config.json") == 1
        assert not (settings.embedding_model_dir / "tokenizer_config.json").exists()

    def test_skips_existing_files(self, settings, all_files):
        model_dir = settings.embedding_model_dir
        model_dir.mkdir(parents=True, exist_ok=True)
        (model_dir / "config.json").write_text("{}")
        calls = []

        with ModelDownloader(settings, transport=serve(all_files, calls)) as downloader:
            manifest = downloader.download()

        assert f"{HUB}/config.json" not in calls
        assert "config.json" in manifest.files
        assert (model_dir / "config.json").read_text() == "{}"

    def test_force_redownloads(self, settings, all_files):
        model_dir = settings.embedding_model_dir
        model_dir.mkdir(parents=True, exist_ok=True)
        (model_dir / "config.json").write_text("{}")

        with ModelDownloader(settings, transport=serve(all_files)) as downloader:
            downloader.download(force=True)

        assert (model_dir / "config.json").read_bytes() == b"contents of config.json"

    def test_follows_redirects(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "huggingface.co":
                return httpx.Response(302, headers={"Location": "https://cdn.example.com/blob"})
            return httpx.Response(200, content=b"redirected")

        with ModelDownloader(settings, transport=httpx.MockTransport(handler)) as downloader:
            manifest = downloader.download(files=["config.json"])

        assert manifest.complete
        assert (settings.embedding_model_dir / "config.json").read_bytes() == b"redirected"

    def test_retries_transient_errors(self, settings, tmp_path):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request.url)
            if len(attempts) < 3:
                return httpx.Response(503, text="busy")
            return httpx.Response(200, content=b"ok")

        destination = tmp_path / "config.json"
        with ModelDownloader(settings, transport=httpx.MockTransport(handler)) as downloader:
            fetch = ModelDownloader._fetch.retry_with(wait=wait_none())
            size = fetch(downloader, downloader.file_url("config.json"), destination)

        assert len(attempts) == 3
        assert size == 2
        assert destination.read_bytes() == b"ok"

    def test_gives_up_after_three_attempts(self, settings, tmp_path):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request.url)
            return httpx.Response(500, text="error")

        with ModelDownloader(settings, transport=httpx.MockTransport(handler)) as downloader:
            fetch = ModelDownloader._fetch.retry_with(wait=wait_none())
            with pytest.raises(httpx.HTTPStatusError):
                fetch(downloader, downloader.file_url("config.json"), tmp_path / "config.json")

        assert len(attempts) == 3
