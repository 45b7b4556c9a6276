"""
Model Downloader

Downloads the quantized embedding model and tokenizer files for offline use.

Usage:
    python examples/download_model.py
    python examples/download_model.py --model-id Xenova/all-MiniLM-L6-v2 --target ./models/all-MiniLM-L6-v2
"""

import argparse
import sys
from pathlib import Path

# Add src to path so we can import tab_sorter
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tab_sorter.config import get_settings, setup_logging
from tab_sorter.hub.model_downloader import ModelDownloader


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Download the local embedding model")
    parser.add_argument("--model-id", help="Hub model id (default: from settings)")
    parser.add_argument("--target", type=Path, help="Directory to store the model files")
    parser.add_argument("--hub-url", help="Model hub base URL")
    parser.add_argument("--force", action="store_true", help="Re-download files that already exist")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Download model files and print a summary."""
    args = parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level)

    overrides = {}
    if args.model_id:
        overrides["embedding_model_id"] = args.model_id
    if args.target:
        overrides["embedding_model_dir"] = args.target
    if args.hub_url:
        overrides["model_hub_url"] = args.hub_url
    if overrides:
        settings = settings.model_copy(update=overrides)

    print("=" * 80)
    print(f"Downloading {settings.embedding_model_id}")
    print(f"Target directory: {settings.embedding_model_dir}")
    print("=" * 80)
    print()

    with ModelDownloader(settings) as downloader:
        manifest = downloader.download(force=args.force)

    for name in manifest.files:
        print(f"✓ {name}")
    for name in manifest.failed:
        print(f"✗ {name}")
    print()

    if not manifest.complete:
        print("Model download incomplete. Re-run to retry the failed files.")
        return 1

    print("Model download complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
