"""
Unit tests for group labels, cohesion and colors.
"""

import numpy as np
import pytest

from tab_sorter.engine.labeling import (
    GENERIC_LABEL,
    GroupLabeler,
    calculate_group_cohesion,
    color_for_label,
    extract_common_theme,
)
from tab_sorter.engine.models import ClusterColor, Tab, TabGroup


class TestExtractCommonTheme:
    """Tests for taxonomy-based labels."""

    def test_keyword_category(self):
        label = extract_common_theme(["Netflix - Watch TV Shows", "Spotify Web Player"], ["netflix.com", "open.spotify.com"])
        assert label == "🎬 Media"

    def test_domains_count_toward_score(self):
        label = extract_common_theme(["Pull requests", "Issues"], ["github.com"])
        assert label == "💻 Development"

    def test_highest_score_wins(self):
        label = extract_common_theme(
            ["Attention is all you need - arxiv paper", "Deep learning research study"],
            ["arxiv.org"],
        )
        assert label == "🔬 Research"

    def test_tie_goes_to_first_declared_category(self):
        """Development is declared before Documentation."""
        assert extract_common_theme(["github guide"], []) == "💻 Development"

    def test_case_insensitive(self):
        assert extract_common_theme(["AMAZON Cart"], []) == "🛒 Shopping"

    def test_domain_fallback(self):
        label = extract_common_theme(["Quarterly numbers", "Budget"], ["example.com", "example.com", "other.org"])
        assert label == "🌐 Example"

    def test_generic_fallback(self):
        assert extract_common_theme(["Untitled"], []) == GENERIC_LABEL
        assert extract_common_theme([], []) == "📑 Group"


class TestCohesion:
    """Tests for mean pairwise cohesion."""

    def test_single_member(self):
        assert calculate_group_cohesion([np.array([1.0, 0.0])]) == 1.0
        assert calculate_group_cohesion([]) == 1.0

    def test_identical_members(self):
        vector = np.array([0.6, 0.8])
        assert calculate_group_cohesion([vector, vector, vector]) == pytest.approx(1.0)

    def test_mean_of_pairs(self):
        embeddings = [np.array([1.0, 0.0]), np.array([1.0, 0.0]), np.array([0.0, 1.0])]
        # pairs: 1.0, 0.0, 0.0
        assert calculate_group_cohesion(embeddings) == pytest.approx(1 / 3)

    def test_clamped_to_zero(self):
        embeddings = [np.array([1.0, 0.0]), np.array([-1.0, 0.0])]
        assert calculate_group_cohesion(embeddings) == 0.0


class TestColors:
    """Tests for label → color mapping."""

    @pytest.mark.parametrize(
        "label, color",
        [
            ("💻 Development", ClusterColor.BLUE),
            ("💬 Social", ClusterColor.GREEN),
            ("🎥 Media", ClusterColor.RED),
            ("🔍 Search", ClusterColor.YELLOW),
            ("📚 Documentation", ClusterColor.PURPLE),
            ("📧 Email", ClusterColor.ORANGE),
            ("💼 Professional", ClusterColor.CYAN),
            ("🛒 Shopping", ClusterColor.PINK),
            ("📰 News", ClusterColor.GREY),
            ("🤖 AI/ML", ClusterColor.PURPLE),
            ("🎨 Design", ClusterColor.PINK),
            ("🔬 Research", ClusterColor.BLUE),
            ("🌐 Example", ClusterColor.GREY),
            ("📑 Group", ClusterColor.GREY),
        ],
    )
    def test_color_for_label(self, label, color):
        assert color_for_label(label) is color


class TestGroupLabeler:
    """Tests for GroupLabeler."""

    def test_label_group(self):
        group = TabGroup(
            tabs=[
                Tab(id=1, title="React docs", url="https://github.com/facebook/react"),
                Tab(id=2, title="Vue docs", url="https://github.com/vuejs/core"),
            ],
            embeddings=[np.array([1.0, 0.0]), np.array([0.8, 0.6])],
        )

        labeled = GroupLabeler().label_groups([group])[0]

        assert labeled.label == "💻 Development"
        assert labeled.confidence == pytest.approx(0.8)
        assert labeled.color is ClusterColor.BLUE
        assert labeled.tabs == group.tabs
        assert group.label == ""
