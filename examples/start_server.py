"""
Tab Sorter Backend Server Entry Point

Starts the FastAPI server for the Tab Sorter backend.

Usage:
    python examples/start_server.py
"""

import sys
from pathlib import Path

# Add src to path so we can import tab_sorter
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tab_sorter.config import get_settings, setup_logging

def main():
    """Start the FastAPI server."""

    print("=" * 80)
    print("Tab Sorter Backend Server")
    print("=" * 80)
    print()

    settings = get_settings()
    setup_logging(settings.log_level)
    print("✓ Configuration loaded")
    print(f"  - Embedding Model: {settings.embedding_model_id}")
    print(f"  - Model Directory: {settings.embedding_model_dir}")
    print(f"  - AI Mode: {'on' if settings.ai_mode else 'off'}")
    print()

    if settings.ai_mode and not settings.model_path.exists():
        print(f"! Model file not found at {settings.model_path}")
        print("  Tabs will be grouped by domain until the model is downloaded:")
        print("    python examples/download_model.py")
        print()

    # Start server
    print("Starting FastAPI server...")
    print(f"Server will be available at: http://localhost:8000")
    print(f"API documentation: http://localhost:8000/docs")
    print()
    print("Press Ctrl+C to stop the server")
    print("=" * 80)
    print()

    import uvicorn
    from tab_sorter.server.app import app

    uvicorn.run(
        app,
        host="127.0.0.1",
        port=8000,
        log_level=settings.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nServer stopped by user")
        sys.exit(0)
    except Exception as e:
        print(f"\n\n✗ Server error: {e}")
        sys.exit(1)
