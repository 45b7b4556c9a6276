"""
Semantic grouping engine for browser tabs.

This package provides:
- Local sentence-embedding inference behind a staged lifecycle (InitializationStateMachine)
- Greedy similarity clustering of tab embeddings (SimilarityClusterer)
- Group labels, cohesion scores and colors (GroupLabeler)
- The end-to-end pipeline with domain fallback (TabGrouper)
"""

from tab_sorter.engine.models import (
    Tab,
    TabGroup,
    ClusterColor,
    ClusteringResult,
    GroupingResult,
    LifecycleState,
)
from tab_sorter.engine.errors import (
    TabSorterError,
    StageFailure,
    NotReady,
    InferenceFailure,
    MalformedInput,
    InvalidTransition,
)
from tab_sorter.engine.clustering import SimilarityClusterer
from tab_sorter.engine.labeling import GroupLabeler
from tab_sorter.engine.lifecycle import InitializationStateMachine
from tab_sorter.engine.pipeline import TabGrouper

__all__ = [
    "Tab",
    "TabGroup",
    "ClusterColor",
    "ClusteringResult",
    "GroupingResult",
    "LifecycleState",
    "TabSorterError",
    "StageFailure",
    "NotReady",
    "InferenceFailure",
    "MalformedInput",
    "InvalidTransition",
    "SimilarityClusterer",
    "GroupLabeler",
    "InitializationStateMachine",
    "TabGrouper",
]
