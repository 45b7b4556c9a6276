"""
Shared state for one semantic grouping engine.

The context is built by the caller and handed to the state machine and the
embedding generator. One context per process is the intended deployment
(one loaded model per process).
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from tab_sorter.config import Settings
from tab_sorter.engine.backend import InferenceBackend
from tab_sorter.engine.embedding_cache import EmbeddingCache
from tab_sorter.engine.models import LifecycleState
from tab_sorter.engine.tokenizer import FallbackTokenizer, LoadedTokenizer, Tokenizer


@dataclass
class EngineContext:
    """Lifecycle state, loaded resources and cache for one engine.

    Attributes:
        settings: Application settings
        backend: Inference backend driven by the state machine
        cache: Bounded embedding cache
        tokenizer: Fallback tokenizer until TOKENIZER_READY, then the loaded one
        state: Current lifecycle state (mutated only by the state machine)
        stage_flags: Stages completed during the current attempt
        details: Accumulated details from every transition
        model_ready: True once both session and tokenizer are loaded
    """

    settings: Settings
    backend: InferenceBackend
    cache: EmbeddingCache
    tokenizer: Optional[Tokenizer] = None
    state: LifecycleState = LifecycleState.BOOT
    stage_flags: dict[LifecycleState, bool] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)
    model_ready: bool = False

    def __post_init__(self):
        if self.tokenizer is None:
            self.tokenizer = FallbackTokenizer(self.settings.max_sequence_length)

    @classmethod
    def from_settings(cls, settings: Settings, backend: InferenceBackend) -> "EngineContext":
        return cls(
            settings=settings,
            backend=backend,
            cache=EmbeddingCache(capacity=settings.embedding_cache_size),
        )

    @property
    def is_ready(self) -> bool:
        return self.state is LifecycleState.READY

    @property
    def tokenizer_loaded(self) -> bool:
        return isinstance(self.tokenizer, LoadedTokenizer)

    def reset_attempt(self) -> None:
        """Forget stage progress before a new initialization attempt."""
        self.stage_flags = {}
        self.details = {}
        self.model_ready = False
