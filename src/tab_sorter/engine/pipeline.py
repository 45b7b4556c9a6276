"""
Tab grouping pipeline.

TabGrouper wires the engine together: it boots the inference backend through
the state machine, embeds each tab's text key, clusters the embeddings and
labels the resulting groups. When the semantic path is disabled or cannot be
brought up, it falls back to domain grouping so callers always get a result.
"""

import asyncio
from functools import cmp_to_key
from typing import Callable, Optional, Sequence

from tab_sorter.config import Settings, get_logger, get_settings
from tab_sorter.engine.backend import InferenceBackend, OnnxRuntimeBackend
from tab_sorter.engine.clustering import SimilarityClusterer
from tab_sorter.engine.context import EngineContext
from tab_sorter.engine.diagnostics import run_self_test
from tab_sorter.engine.embedding import EmbeddingGenerator
from tab_sorter.engine.errors import InvalidTransition, NotReady, StageFailure
from tab_sorter.engine.fallback import group_tabs_by_domain
from tab_sorter.engine.labeling import GroupLabeler
from tab_sorter.engine.lifecycle import InitializationStateMachine
from tab_sorter.engine.models import GroupingResult, SelfTestReport, Tab, TabGroup
from tab_sorter.engine.notifier import LifecycleNotifier
from tab_sorter.engine.tokenizer import Tokenizer

logger = get_logger(__name__)

# Confidence gap below which larger groups are listed first
CONFIDENCE_TIE_MARGIN = 0.1


def _compare_groups(a: TabGroup, b: TabGroup) -> int:
    confidence_a = a.confidence or 0.0
    confidence_b = b.confidence or 0.0
    if abs(confidence_a - confidence_b) > CONFIDENCE_TIE_MARGIN:
        return -1 if confidence_a > confidence_b else 1
    return b.tab_count - a.tab_count


def sort_groups(groups: Sequence[TabGroup]) -> list[TabGroup]:
    """Order groups by confidence, then by size when confidences are close."""
    return sorted(groups, key=cmp_to_key(_compare_groups))


class TabGrouper:
    """
    Semantic tab grouping with domain fallback.

    Attributes:
        settings: Application settings
        context: Engine context shared by lifecycle and generator
        notifier: Lifecycle event fan-out
        generator: Embedding generator
        lifecycle: Initialization state machine
        clusterer: Greedy similarity clusterer
        labeler: Group labeler
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        backend: Optional[InferenceBackend] = None,
        tokenizer_loader: Optional[Callable[[], Tokenizer]] = None,
        notifier: Optional[LifecycleNotifier] = None,
    ):
        self.settings = settings or get_settings()
        self.context = EngineContext.from_settings(
            self.settings,
            backend or OnnxRuntimeBackend(self.settings),
        )
        self.notifier = notifier or LifecycleNotifier()
        self.generator = EmbeddingGenerator(self.context)
        self.lifecycle = InitializationStateMachine(
            self.context,
            generator=self.generator,
            notifier=self.notifier,
            tokenizer_loader=tokenizer_loader,
        )
        self.clusterer = SimilarityClusterer()
        self.labeler = GroupLabeler()

        logger.info(
            f"TabGrouper created (model={self.settings.embedding_model_id}, "
            f"backend={self.context.backend.kind}, threshold={self.settings.similarity_threshold})"
        )

    @property
    def is_ready(self) -> bool:
        return self.context.is_ready

    async def initialize(self) -> None:
        """
        Boot the backend to READY.

        Raises:
            StageFailure: If a stage fails
        """
        await self.lifecycle.initialize()

    async def ensure_ready(self) -> bool:
        """
        Initialize with the configured timeout.

        Returns:
            True if the engine is READY; False after a stage failure or timeout
        """
        if self.context.is_ready:
            return True

        timeout = self.settings.init_timeout_seconds
        try:
            # The attempt keeps running after a timeout; a later call joins it
            await asyncio.wait_for(self.lifecycle.initialize(), timeout)
        except (StageFailure, InvalidTransition) as e:
            logger.warning(f"AI initialization failed, falling back to domain grouping: {e}")
            return False
        except TimeoutError:
            logger.warning(
                f"AI initialization did not finish within {timeout}s, falling back to domain grouping"
            )
            return False
        return True

    def set_ai_mode(self, enabled: bool) -> None:
        """Switch later group_tabs calls between semantic and domain grouping."""
        self.settings.ai_mode = enabled
        logger.info(f"AI mode {'enabled' if enabled else 'disabled'}")

    async def embed(self, text: str):
        """
        Embed a single text.

        Raises:
            NotReady: If the engine has not been initialized
        """
        return await self.generator.embed(text)

    async def self_test(self) -> SelfTestReport:
        return await run_self_test(self.context, self.generator)

    async def group_tabs(
        self,
        tabs: Sequence[Tab],
        threshold: Optional[float] = None,
        use_ai: Optional[bool] = None,
    ) -> GroupingResult:
        """
        Group tabs semantically, or by domain when AI is off or unavailable.

        Args:
            tabs: Tabs to group, in the order the host reports them
            threshold: Similarity threshold in (0, 1); defaults to settings
            use_ai: Override of settings.ai_mode

        Returns:
            GroupingResult; strategy tells which path produced it

        Raises:
            ValueError: If threshold is outside (0, 1)
        """
        if threshold is None:
            threshold = self.settings.similarity_threshold
        if not 0.0 < threshold < 1.0:
            raise ValueError(f"threshold must be in (0, 1), got {threshold}")
        if use_ai is None:
            use_ai = self.settings.ai_mode

        tabs = list(tabs)
        if not use_ai:
            logger.info(f"AI mode off, grouping {len(tabs)} tabs by domain")
            return group_tabs_by_domain(tabs)

        if not await self.ensure_ready():
            return group_tabs_by_domain(tabs)

        try:
            embeddings = await self.generator.embed_batch([tab.text_key() for tab in tabs])
        except NotReady as e:
            logger.warning(f"{e}; falling back to domain grouping")
            return group_tabs_by_domain(tabs)

        clustering = self.clusterer.cluster(list(zip(tabs, embeddings)), threshold)
        groups = sort_groups(self.labeler.label_groups(clustering.groups))

        logger.info(f"Semantic grouping: {len(groups)} groups from {len(tabs)} tabs")
        return GroupingResult(
            groups=groups,
            ungrouped=clustering.ungrouped,
            strategy="semantic",
            total_tabs=len(tabs),
        )
