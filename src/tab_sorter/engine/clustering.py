"""
Greedy similarity clustering of tab embeddings.

This module partitions tabs into groups without a predetermined group count.
Each pass seeds a group with the first unassigned tab and admits later tabs
whose mean cosine similarity to every current member exceeds the threshold.
"""

from typing import Sequence

import numpy as np

from tab_sorter.config import get_logger
from tab_sorter.engine.models import ClusteringResult, Tab, TabGroup

logger = get_logger(__name__)

MIN_GROUP_SIZE = 2


def cosine_similarity(embedding1: Sequence[float], embedding2: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two embeddings.

    Args:
        embedding1: First embedding vector
        embedding2: Second embedding vector

    Returns:
        Cosine similarity score in [-1, 1]; 0 if either vector is zero
    """
    vec1 = np.asarray(embedding1, dtype=np.float64)
    vec2 = np.asarray(embedding2, dtype=np.float64)

    # Handle zero vectors
    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)

    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(np.dot(vec1, vec2) / (norm1 * norm2))


def average_similarity(embedding: Sequence[float], group_embeddings: Sequence[Sequence[float]]) -> float:
    """Mean cosine similarity of one embedding against every group member."""
    if not group_embeddings:
        return 0.0
    similarities = [cosine_similarity(embedding, other) for other in group_embeddings]
    return sum(similarities) / len(similarities)


class SimilarityClusterer:
    """
    Greedy, single-pass, order-sensitive clustering.

    The result is deterministic for a fixed input order and threshold but is
    not globally optimal: earlier groups are never revisited.

    Attributes:
        min_group_size: Smallest group that is reported as a group
    """

    def __init__(self, min_group_size: int = MIN_GROUP_SIZE):
        self.min_group_size = min_group_size

    def cluster(
        self,
        items: Sequence[tuple[Tab, np.ndarray]],
        threshold: float,
    ) -> ClusteringResult:
        """
        Partition (tab, embedding) pairs into similarity groups.

        Args:
            items: Tabs with their embeddings, in input order
            threshold: Mean similarity a candidate must exceed to join a group, in (0, 1)

        Returns:
            ClusteringResult with groups of 2+ tabs and the remaining tabs ungrouped

        Raises:
            ValueError: If threshold is outside (0, 1)
        """
        if not 0.0 < threshold < 1.0:
            raise ValueError(f"threshold must be in (0, 1), got {threshold}")

        groups: list[TabGroup] = []
        ungrouped: list[Tab] = []
        assigned: set[int] = set()

        for i, (seed_tab, seed_embedding) in enumerate(items):
            if i in assigned:
                continue

            member_tabs = [seed_tab]
            member_embeddings = [seed_embedding]
            assigned.add(i)

            for j in range(i + 1, len(items)):
                if j in assigned:
                    continue

                candidate_tab, candidate_embedding = items[j]
                if average_similarity(candidate_embedding, member_embeddings) > threshold:
                    member_tabs.append(candidate_tab)
                    member_embeddings.append(candidate_embedding)
                    assigned.add(j)

            if len(member_tabs) >= self.min_group_size:
                groups.append(TabGroup(tabs=member_tabs, embeddings=member_embeddings))
            else:
                ungrouped.extend(member_tabs)

        logger.info(
            f"Grouped {len(items)} tabs into {len(groups)} groups "
            f"({len(ungrouped)} ungrouped, threshold {threshold:.2f})"
        )
        return ClusteringResult(groups=groups, ungrouped=ungrouped)
