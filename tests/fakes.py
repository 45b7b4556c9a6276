"""
Test doubles shared by the engine and API tests.

FakeBackend stands in for ONNX Runtime: each token id maps to a fixed
pseudo-random hidden vector (zero for special tokens), so texts sharing
words get similar embeddings and unrelated texts are close to orthogonal.
"""

import asyncio
from typing import Any

import numpy as np

from tab_sorter.engine.backend import InferenceBackend, ResourceProbe
from tab_sorter.engine.tokenizer import LoadedTokenizer

SPECIAL_TOKENS = {"[PAD]": 0, "[UNK]": 100, "[CLS]": 101, "[SEP]": 102}

WORDS = [
    "react", "vue", "tutorial", "javascript", "framework", "guide", "documentation",
    "learn", "wireless", "headphones", "on", "sale", "python", "asyncio", "warmup",
    "test", "semantic", "similarity", "play", "##ing", "##er", "explode", "deal",
    "recipe", "pasta", "dinner", "x",
]

VOCAB = {**SPECIAL_TOKENS, **{word: 1000 + index for index, word in enumerate(WORDS)}}


class FakeBackend(InferenceBackend):
    """Deterministic in-memory inference backend."""

    kind = "fake"

    def __init__(
        self,
        hidden_size: int = 384,
        output_names: tuple[str, ...] = ("last_hidden_state",),
        fail_on_tokens: tuple[int, ...] = (),
        fail_loads: int = 0,
        load_delay: float = 0.0,
        configure_ok: bool = True,
        missing_resources: tuple[str, ...] = (),
    ):
        self.hidden_size = hidden_size
        self.session_output_names = list(output_names)
        self.fail_on_tokens = set(fail_on_tokens)
        self.fail_loads = fail_loads
        self.load_delay = load_delay
        self.configure_ok = configure_ok
        self.missing_resources = set(missing_resources)

        self.configured = False
        self.load_calls = 0
        self.run_calls = 0
        self._input_names: list[str] = []
        self._output_names: list[str] = []

    @property
    def input_names(self) -> list[str]:
        return self._input_names

    @property
    def output_names(self) -> list[str]:
        return self._output_names

    def configure(self) -> dict[str, Any]:
        self.configured = self.configure_ok
        return {"backend": self.kind}

    def is_configured(self) -> bool:
        return self.configured

    async def verify_resources(self) -> list[ResourceProbe]:
        probes = []
        for name in ("model", "tokenizer"):
            if name in self.missing_resources:
                probes.append(
                    ResourceProbe(name=name, path=f"memory://{name}", available=False, error="not found")
                )
            else:
                probes.append(ResourceProbe(name=name, path=f"memory://{name}", available=True, size_bytes=1))
        return probes

    async def load_session(self) -> dict[str, Any]:
        self.load_calls += 1
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        if self.load_calls <= self.fail_loads:
            raise RuntimeError("simulated model load failure")

        self._input_names = ["input_ids", "attention_mask"]
        self._output_names = list(self.session_output_names)
        return {"model": "fake"}

    async def run(self, token_ids: list[int]) -> np.ndarray:
        self.run_calls += 1
        if self.fail_on_tokens.intersection(token_ids):
            raise RuntimeError("simulated inference failure")
        return np.stack([self.token_vector(token_id) for token_id in token_ids])

    def token_vector(self, token_id: int) -> np.ndarray:
        if token_id in SPECIAL_TOKENS.values():
            return np.zeros(self.hidden_size, dtype=np.float32)
        rng = np.random.default_rng(token_id)
        return rng.standard_normal(self.hidden_size).astype(np.float32)


def load_test_tokenizer() -> LoadedTokenizer:
    return LoadedTokenizer.from_vocab(dict(VOCAB))
