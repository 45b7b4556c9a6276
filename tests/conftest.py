"""
Pytest configuration and fixtures for engine tests.
"""

from typing import Optional

import pytest

from tab_sorter.config import Settings
from tab_sorter.engine.models import Tab

from fakes import VOCAB, FakeBackend, load_test_tokenizer


@pytest.fixture
def settings(tmp_path):
    """Settings that never read a .env file."""
    return Settings(
        _env_file=None,
        embedding_model_dir=tmp_path,
        init_timeout_seconds=5.0,
    )


@pytest.fixture
def vocab():
    return dict(VOCAB)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def make_grouper(settings):
    """Factory for TabGrouper instances wired to a FakeBackend."""
    from tab_sorter.engine.pipeline import TabGrouper

    def factory(backend: Optional[FakeBackend] = None, **overrides) -> TabGrouper:
        grouper_settings = settings.model_copy(update=overrides) if overrides else settings
        return TabGrouper(
            settings=grouper_settings,
            backend=backend or FakeBackend(),
            tokenizer_loader=load_test_tokenizer,
        )

    return factory


@pytest.fixture
def framework_tabs():
    """Two framework docs tabs and one shopping tab."""
    return [
        Tab(id=1, url="https://react.dev/learn", title="React tutorial javascript framework guide"),
        Tab(id=2, url="https://vuejs.org/guide/", title="Vue tutorial javascript framework guide"),
        Tab(id=3, url="https://www.amazon.com/dp/B0001", title="Wireless headphones on sale"),
    ]
