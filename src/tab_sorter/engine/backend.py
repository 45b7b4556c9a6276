"""
Inference backends for the sentence-embedding model.

The state machine drives a backend through configure → verify_resources →
load_session, then the embedding generator calls ``run`` once per text.
OnnxRuntimeBackend runs all-MiniLM-L6-v2 (384-dim) on the CPU provider.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import numpy as np
from pydantic import BaseModel

from tab_sorter.config import Settings, get_logger
from tab_sorter.engine.models import LifecycleState

logger = get_logger(__name__)


class ResourceProbe(BaseModel):
    """Result of checking that a runtime resource file is available."""

    name: str
    path: str
    available: bool
    size_bytes: Optional[int] = None
    error: Optional[str] = None


class InferenceBackend(ABC):
    """Abstract base for embedding model runtimes."""

    kind: str = "abstract"

    @abstractmethod
    def configure(self) -> dict[str, Any]:
        """
        Configure the runtime (threads, graph optimization, providers).

        Returns:
            Details describing the applied configuration
        """

    @abstractmethod
    def is_configured(self) -> bool:
        """True once runtime configuration handles exist."""

    @abstractmethod
    async def verify_resources(self) -> list[ResourceProbe]:
        """Probe every resource file the runtime needs."""

    @abstractmethod
    async def load_session(self) -> dict[str, Any]:
        """
        Load model weights and build an inference session.

        Returns:
            Details describing the loaded model
        """

    @property
    @abstractmethod
    def input_names(self) -> list[str]:
        """Input names reported by the session (empty before loading)."""

    @property
    @abstractmethod
    def output_names(self) -> list[str]:
        """Output names reported by the session (empty before loading)."""

    @property
    def is_loaded(self) -> bool:
        return bool(self.input_names) and bool(self.output_names)

    @abstractmethod
    async def run(self, token_ids: list[int]) -> np.ndarray:
        """
        Run one forward pass.

        Args:
            token_ids: Token ids for a single sequence

        Returns:
            Hidden states with shape (sequence_length, hidden_size)
        """

    def resource_for_stage(self, stage: LifecycleState) -> Optional[str]:
        """Resource associated with a stage, for error envelopes."""
        return None


class OnnxRuntimeBackend(InferenceBackend):
    """Runs a BERT-family ONNX export with onnxruntime on the CPU."""

    kind = "onnxruntime-cpu"
    PROVIDERS = ["CPUExecutionProvider"]

    def __init__(self, settings: Settings):
        """
        Initialize the backend.

        Args:
            settings: Application settings (model paths, thread count)
        """
        self.settings = settings
        self.session_options = None
        self.providers: list[str] = []
        self.session = None
        self._input_names: list[str] = []
        self._output_names: list[str] = []

    @property
    def input_names(self) -> list[str]:
        return self._input_names

    @property
    def output_names(self) -> list[str]:
        return self._output_names

    def required_resources(self) -> dict[str, Path]:
        model_dir = self.settings.embedding_model_dir
        return {
            "model": self.settings.model_path,
            "tokenizer": self.settings.tokenizer_path,
            "config": model_dir / "config.json",
        }

    def resource_for_stage(self, stage: LifecycleState) -> Optional[str]:
        resources = {
            LifecycleState.BACKEND_CONFIGURED: "onnxruntime",
            LifecycleState.RUNTIME_READY: str(self.settings.embedding_model_dir),
            LifecycleState.MODEL_READY: str(self.settings.model_path),
            LifecycleState.TOKENIZER_READY: str(self.settings.tokenizer_path),
            LifecycleState.WARMED_UP: str(self.settings.model_path),
        }
        return resources.get(stage)

    def configure(self) -> dict[str, Any]:
        import onnxruntime as ort

        options = ort.SessionOptions()
        options.intra_op_num_threads = self.settings.intra_op_num_threads
        options.inter_op_num_threads = 1
        # Basic graph optimization, no memory arena or pattern planning
        options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_BASIC
        options.enable_cpu_mem_arena = False
        options.enable_mem_pattern = False

        available = ort.get_available_providers()
        self.providers = [p for p in self.PROVIDERS if p in available]
        self.session_options = options

        return {
            "backend": self.kind,
            "ort_version": ort.__version__,
            "threads": self.settings.intra_op_num_threads,
            "providers": self.providers,
            "local_files_only": True,
        }

    def is_configured(self) -> bool:
        return self.session_options is not None and bool(self.providers)

    async def verify_resources(self) -> list[ResourceProbe]:
        probes = []
        for name, path in self.required_resources().items():
            probes.append(await asyncio.to_thread(_probe_file, name, path))
        return probes

    async def load_session(self) -> dict[str, Any]:
        model_path = self.settings.model_path
        if not model_path.exists():
            raise FileNotFoundError(
                f"Model not found at {model_path}. Run examples/download_model.py first."
            )

        import onnxruntime as ort

        logger.info(f"Loading ONNX model from {model_path}")
        self.session = await asyncio.to_thread(
            ort.InferenceSession,
            str(model_path),
            sess_options=self.session_options,
            providers=self.providers,
        )
        self._input_names = [node.name for node in self.session.get_inputs()]
        self._output_names = [node.name for node in self.session.get_outputs()]

        return {
            "model": self.settings.embedding_model_id,
            "model_size_bytes": model_path.stat().st_size,
            "input_names": self._input_names,
            "output_names": self._output_names,
        }

    async def run(self, token_ids: list[int]) -> np.ndarray:
        if self.session is None:
            raise RuntimeError("Inference session has not been created")

        ids = np.asarray([token_ids], dtype=np.int64)
        candidates = {
            "input_ids": ids,
            "attention_mask": np.ones_like(ids),
            "token_type_ids": np.zeros_like(ids),
        }
        feeds = {name: candidates[name] for name in self._input_names if name in candidates}

        outputs = await asyncio.to_thread(self.session.run, None, feeds)

        if "last_hidden_state" in self._output_names:
            hidden = outputs[self._output_names.index("last_hidden_state")]
        else:
            hidden = outputs[0]

        if hidden is None or hidden.ndim != 3:
            raise ValueError("Model output missing last_hidden_state")
        return hidden[0]


def _probe_file(name: str, path: Path) -> ResourceProbe:
    try:
        size = path.stat().st_size
    except OSError as e:
        return ResourceProbe(name=name, path=str(path), available=False, error=str(e))
    return ResourceProbe(name=name, path=str(path), available=True, size_bytes=size)
