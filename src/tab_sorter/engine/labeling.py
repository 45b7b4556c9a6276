"""
Group labels, cohesion scores and tab group colors.

Labels come from a fixed category taxonomy scored by keyword hits over the
member titles and domains, falling back to the most common domain name.
"""

from collections import Counter
from typing import Sequence

import numpy as np

from tab_sorter.config import get_logger
from tab_sorter.engine.clustering import cosine_similarity
from tab_sorter.engine.models import ClusterColor, TabGroup

logger = get_logger(__name__)

# Declaration order breaks score ties
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Development": ["github", "stackoverflow", "npm", "code", "api", "dev", "programming", "debug"],
    "Research": ["arxiv", "scholar", "paper", "research", "study", "academic", "journal"],
    "Social": ["twitter", "facebook", "linkedin", "reddit", "social", "instagram"],
    "Shopping": ["amazon", "ebay", "shop", "store", "buy", "cart", "product"],
    "Media": ["youtube", "netflix", "spotify", "video", "music", "watch", "stream"],
    "News": ["news", "cnn", "bbc", "article", "times", "post", "daily"],
    "Documentation": ["docs", "documentation", "guide", "tutorial", "manual", "reference"],
    "Email": ["mail", "gmail", "outlook", "inbox", "message"],
    "Work": ["slack", "teams", "jira", "confluence", "asana", "trello"],
    "AI/ML": ["hugging", "openai", "anthropic", "model", "llm", "neural", "machine learning"],
    "Design": ["figma", "sketch", "adobe", "design", "canva", "dribbble"],
}

CATEGORY_EMOJIS: dict[str, str] = {
    "Development": "💻",
    "Research": "🔬",
    "Social": "💬",
    "Shopping": "🛒",
    "Media": "🎬",
    "News": "📰",
    "Documentation": "📚",
    "Email": "📧",
    "Work": "💼",
    "AI/ML": "🤖",
    "Design": "🎨",
}

DOMAIN_EMOJI = "🌐"
GENERIC_LABEL = "📑 Group"

# First match wins, so more specific names come first
_LABEL_COLORS: list[tuple[tuple[str, ...], ClusterColor]] = [
    (("Development", "💻"), ClusterColor.BLUE),
    (("Social", "💬"), ClusterColor.GREEN),
    (("Media", "🎬", "🎥"), ClusterColor.RED),
    (("Search", "🔍"), ClusterColor.YELLOW),
    (("Documentation", "📚"), ClusterColor.PURPLE),
    (("Email", "📧"), ClusterColor.ORANGE),
    (("Work", "💼"), ClusterColor.CYAN),
    (("Shopping", "🛒"), ClusterColor.PINK),
    (("News", "📰"), ClusterColor.GREY),
    (("AI", "🤖"), ClusterColor.PURPLE),
    (("Design", "🎨"), ClusterColor.PINK),
    (("Research", "🔬"), ClusterColor.BLUE),
]


def title_case_domain(domain: str) -> str:
    """github.com → Github"""
    name = domain.split(".")[0]
    return name[:1].upper() + name[1:]


def extract_common_theme(titles: Sequence[str], domains: Sequence[str]) -> str:
    """
    Pick a label for a set of tabs.

    Args:
        titles: Member tab titles
        domains: Member domains, one per tab (duplicates count toward "most common")

    Returns:
        "<emoji> <category>", "🌐 <Domain>" or the generic placeholder
    """
    distinct_domains = list(dict.fromkeys(domains))
    corpus = " ".join([*titles, *distinct_domains]).lower()

    best_category = None
    best_score = 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        score = sum(1 for keyword in keywords if keyword in corpus)
        if score > best_score:
            best_category, best_score = category, score

    if best_category is not None:
        return f"{CATEGORY_EMOJIS.get(best_category, '📑')} {best_category}"

    if domains:
        main_domain = Counter(domains).most_common(1)[0][0]
        return f"{DOMAIN_EMOJI} {title_case_domain(main_domain)}"

    return GENERIC_LABEL


def calculate_group_cohesion(embeddings: Sequence[np.ndarray]) -> float:
    """
    Mean pairwise cosine similarity of a group, clamped to [0, 1].

    A group with fewer than two members has cohesion 1.0.
    """
    if len(embeddings) < 2:
        return 1.0

    total_similarity = 0.0
    comparisons = 0
    for i in range(len(embeddings)):
        for j in range(i + 1, len(embeddings)):
            total_similarity += cosine_similarity(embeddings[i], embeddings[j])
            comparisons += 1

    return min(1.0, max(0.0, total_similarity / comparisons))


def color_for_label(label: str) -> ClusterColor:
    """Map a group label to a Chrome Tab Group color."""
    for markers, color in _LABEL_COLORS:
        if any(marker in label for marker in markers):
            return color
    return ClusterColor.GREY


class GroupLabeler:
    """Annotates clustered groups with label, confidence and color."""

    def label_group(self, group: TabGroup) -> TabGroup:
        label = extract_common_theme(group.get_tab_titles(), group.get_domains())
        return group.model_copy(
            update={
                "label": label,
                "confidence": calculate_group_cohesion(group.embeddings),
                "color": color_for_label(label),
            }
        )

    def label_groups(self, groups: Sequence[TabGroup]) -> list[TabGroup]:
        """
        Label every group.

        Args:
            groups: Groups produced by SimilarityClusterer

        Returns:
            New TabGroup instances with label, confidence and color set
        """
        labeled = [self.label_group(group) for group in groups]
        for group in labeled:
            logger.debug(f"Labeled group '{group.label}' ({group.tab_count} tabs, cohesion {group.confidence:.2f})")
        return labeled
