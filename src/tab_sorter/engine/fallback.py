"""
Degraded-mode grouping by domain.

Used whenever the semantic pipeline is disabled or unavailable. Needs no
model and never fails for a well-formed tab list.
"""

from typing import Optional, Sequence
from urllib.parse import urlparse

from tab_sorter.config import get_logger
from tab_sorter.engine.labeling import DOMAIN_EMOJI, color_for_label, title_case_domain
from tab_sorter.engine.models import GroupingResult, Tab, TabGroup

logger = get_logger(__name__)

DOMAIN_LABELS: dict[str, str] = {
    "github.com": "💻 Development",
    "stackoverflow.com": "💻 Development",
    "google.com": "🔍 Search",
    "youtube.com": "🎥 Media",
    "twitter.com": "💬 Social",
    "reddit.com": "💬 Social",
    "linkedin.com": "💼 Professional",
    "docs.google.com": "📄 Documents",
    "mail.google.com": "📧 Email",
}


def domain_key(tab: Tab) -> Optional[str]:
    """
    Grouping key for a tab: its domain, else the URL scheme.

    Returns:
        The key, or None when the URL yields neither
    """
    domain = tab.domain()
    if domain is not None:
        return domain

    try:
        scheme = urlparse(tab.url).scheme
    except ValueError:
        return None
    return scheme or None


def label_for_domain(domain: str) -> str:
    return DOMAIN_LABELS.get(domain, f"{DOMAIN_EMOJI} {title_case_domain(domain)}")


def group_tabs_by_domain(tabs: Sequence[Tab], min_group_size: int = 2) -> GroupingResult:
    """
    Partition tabs by exact domain.

    Args:
        tabs: Tabs to group
        min_group_size: Smallest domain bucket reported as a group

    Returns:
        GroupingResult with strategy "domain"; groups sorted by size, largest first
    """
    buckets: dict[str, list[Tab]] = {}
    ungrouped: list[Tab] = []

    for tab in tabs:
        key = domain_key(tab)
        if key is None:
            ungrouped.append(tab)
            continue
        buckets.setdefault(key, []).append(tab)

    groups = []
    for domain, members in buckets.items():
        if len(members) < min_group_size:
            ungrouped.extend(members)
            continue

        label = label_for_domain(domain)
        groups.append(
            TabGroup(
                tabs=members,
                label=label,
                confidence=None,
                color=color_for_label(label),
                domain=domain,
            )
        )

    # Stable sort keeps first-seen order among equal sizes
    groups.sort(key=lambda group: group.tab_count, reverse=True)

    # Report ungrouped tabs in input order
    order = {id(tab): index for index, tab in enumerate(tabs)}
    ungrouped.sort(key=lambda tab: order[id(tab)])

    logger.info(f"Domain grouping: {len(groups)} groups, {len(ungrouped)} ungrouped from {len(tabs)} tabs")
    return GroupingResult(
        groups=groups,
        ungrouped=ungrouped,
        strategy="domain",
        total_tabs=len(tabs),
    )
