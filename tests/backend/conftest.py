"""
Pytest configuration and fixtures for backend API tests.
"""

import pytest
from fastapi.testclient import TestClient

from fakes import FakeBackend


@pytest.fixture(autouse=True)
def reset_grouper():
    """Reset the global grouper state between tests."""
    import tab_sorter.server.app as app_module

    # Reset global grouper
    app_module._grouper = None
    yield
    # Clean up after test
    app_module._grouper = None


@pytest.fixture
def install_grouper(make_grouper):
    """Install a FakeBackend-driven TabGrouper as the app's global grouper."""
    import tab_sorter.server.app as app_module

    def install(backend=None, **overrides):
        app_module._grouper = make_grouper(backend or FakeBackend(), **overrides)
        return app_module._grouper

    return install


@pytest.fixture
def client(install_grouper):
    """Test client backed by a working fake model."""
    from tab_sorter.server.app import app

    install_grouper()
    return TestClient(app)


@pytest.fixture
def sample_tabs_data():
    """Sample tab data for testing API endpoints."""
    return {
        "tabs": [
            {
                "id": 1,
                "url": "https://react.dev/learn",
                "title": "React tutorial javascript framework guide",
            },
            {
                "id": 2,
                "url": "https://vuejs.org/guide/",
                "title": "Vue tutorial javascript framework guide",
                "window_id": 7,
            },
            {
                "id": 3,
                "url": "https://www.amazon.com/dp/B0001",
                "title": "Wireless headphones on sale",
                "pinned": True,
            },
        ],
    }
