"""
Embedding generation: tokenize → infer → mean-pool → L2-normalize → cache.

``embed`` is the public entry point and only works once the lifecycle is
READY. ``generate`` is the ungated computation the warm-up stage uses once the
session and tokenizer are loaded. Per-text inference errors never escape:
``generate`` returns None and ``embed_batch`` substitutes a zero vector.
"""

from typing import Optional

import numpy as np

from tab_sorter.config import get_logger
from tab_sorter.engine.context import EngineContext
from tab_sorter.engine.errors import InferenceFailure, NotReady

logger = get_logger(__name__)


def mean_pool(hidden_states: np.ndarray, attention_mask: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Average token hidden states into a single sentence vector.

    Args:
        hidden_states: Array with shape (sequence_length, hidden_size)
        attention_mask: Optional 0/1 mask with shape (sequence_length,)

    Returns:
        Pooled vector with shape (hidden_size,)
    """
    hidden_states = np.asarray(hidden_states, dtype=np.float32)
    if attention_mask is None:
        return hidden_states.mean(axis=0)

    mask = np.asarray(attention_mask, dtype=np.float32)[:, None]
    total = mask.sum()
    if total == 0:
        return np.zeros(hidden_states.shape[1], dtype=np.float32)
    return (hidden_states * mask).sum(axis=0) / total


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Scale to unit length; a zero vector is returned unchanged."""
    vector = np.asarray(vector, dtype=np.float32)
    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector
    return (vector / norm).astype(np.float32)


class EmbeddingGenerator:
    """
    Turns text into fixed-size, unit-length embeddings.

    Attributes:
        context: Engine context holding backend, tokenizer, cache and state
        dimension: Expected embedding length
    """

    def __init__(self, context: EngineContext):
        self.context = context
        self.dimension = context.settings.embedding_dim

    def zero_vector(self) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype=np.float32)
        vector.flags.writeable = False
        return vector

    async def embed(self, text: str) -> Optional[np.ndarray]:
        """
        Embed text with the READY pipeline.

        Args:
            text: Text key to embed

        Returns:
            Read-only float32 vector, or None if inference failed

        Raises:
            NotReady: If the lifecycle has not reached READY
        """
        if not self.context.is_ready:
            raise NotReady(self.context.state, "embedding requested before initialization completed")
        return await self.generate(text)

    async def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """
        Embed many texts; failed items become zero vectors.

        Raises:
            NotReady: If the lifecycle has not reached READY
        """
        if not self.context.is_ready:
            raise NotReady(self.context.state, "embedding requested before initialization completed")

        embeddings = []
        for text in texts:
            embedding = await self.generate(text)
            if embedding is None:
                logger.warning(f"Could not generate embedding for text: {text!r}. Using fallback vector.")
                embedding = self.zero_vector()
            embeddings.append(embedding)
        return embeddings

    async def generate(self, text: str, use_cache: bool = True) -> Optional[np.ndarray]:
        """
        Compute (or fetch from cache) the embedding for text.

        Args:
            text: Text key to embed
            use_cache: Set False to force a real inference without touching the cache

        Raises:
            NotReady: If the session or tokenizer is not loaded yet
        """
        context = self.context
        if not context.model_ready or not context.backend.is_loaded:
            raise NotReady(context.state, "session or tokenizer not loaded")

        if use_cache:
            cached = context.cache.get(text)
            if cached is not None:
                return cached

        try:
            embedding = await self._compute(text)
        except Exception as e:
            failure = InferenceFailure(f"Error in AI embedding generation for text {text!r}: {e}")
            logger.error(str(failure), exc_info=True)
            return None

        if use_cache:
            context.cache.put(text, embedding)
        return embedding

    async def _compute(self, text: str) -> np.ndarray:
        token_ids = self.context.tokenizer.encode(text)
        hidden_states = await self.context.backend.run(token_ids)

        hidden_states = np.asarray(hidden_states, dtype=np.float32)
        if hidden_states.ndim != 2 or hidden_states.shape[0] != len(token_ids):
            raise ValueError(
                f"Unexpected hidden state shape {hidden_states.shape} for {len(token_ids)} tokens"
            )

        embedding = l2_normalize(mean_pool(hidden_states))
        embedding.flags.writeable = False
        return embedding
