"""
Initialization state machine for the inference backend.

The boot sequence is:

    BOOT → BACKEND_CONFIGURED → RUNTIME_READY → MODEL_READY
         → TOKENIZER_READY → WARMED_UP → READY

Each stage validates its milestone before the transition is accepted. Any
failure moves the machine to ERROR with an ErrorEnvelope; the next
``initialize()`` call goes back through BOOT and starts over. Concurrent
``initialize()`` calls share one in-flight attempt.
"""

import asyncio
from datetime import datetime, UTC
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from tab_sorter.config import get_logger
from tab_sorter.engine.context import EngineContext
from tab_sorter.engine.embedding import EmbeddingGenerator
from tab_sorter.engine.errors import InvalidTransition, StageFailure
from tab_sorter.engine.models import (
    BOOT_SEQUENCE,
    ErrorEnvelope,
    ErrorEvent,
    LifecycleState,
    ReadyEvent,
    StatusEvent,
)
from tab_sorter.engine.notifier import LifecycleNotifier
from tab_sorter.engine.tokenizer import LoadedTokenizer, Tokenizer, load_tokenizer

logger = get_logger(__name__)

TOTAL_STAGES = len(BOOT_SEQUENCE) - 1

_MILESTONE_MESSAGES = {
    LifecycleState.BACKEND_CONFIGURED: "Inference runtime configured for local execution",
    LifecycleState.RUNTIME_READY: "Runtime resource files verified",
    LifecycleState.MODEL_READY: "ONNX inference session created and validated",
    LifecycleState.TOKENIZER_READY: "BERT tokenizer loaded and ready",
    LifecycleState.WARMED_UP: "Warm-up inference completed successfully",
    LifecycleState.READY: "ALL STAGES COMPLETE - AI fully operational",
}


class MilestoneValidationError(Exception):
    """A stage ran but its milestone check did not pass."""


class InitializationStateMachine:
    """
    Drives an EngineContext from BOOT to READY.

    Attributes:
        context: Engine context whose state this machine owns
        generator: Embedding generator used for the warm-up inference
        notifier: Receives status/ready/error events
        tokenizer_loader: Callable returning the vocabulary-backed tokenizer
        last_error: Envelope of the most recent failure, if any
    """

    def __init__(
        self,
        context: EngineContext,
        generator: Optional[EmbeddingGenerator] = None,
        notifier: Optional[LifecycleNotifier] = None,
        tokenizer_loader: Optional[Callable[[], Tokenizer]] = None,
    ):
        self.context = context
        self.generator = generator or EmbeddingGenerator(context)
        self.notifier = notifier or LifecycleNotifier()

        settings = context.settings
        self.tokenizer_loader = tokenizer_loader or partial(
            load_tokenizer, settings.tokenizer_path, settings.max_sequence_length
        )

        self.last_error: Optional[ErrorEnvelope] = None
        self._attempt: Optional[asyncio.Task] = None
        self._ready_emitted = False

    @property
    def state(self) -> LifecycleState:
        return self.context.state

    @property
    def in_progress(self) -> bool:
        return self._attempt is not None and not self._attempt.done()

    def status(self) -> dict[str, Any]:
        """Snapshot for status queries."""
        return {
            "state": self.context.state.value,
            "details": dict(self.context.details),
            "ready": self.context.is_ready,
        }

    async def initialize(self) -> None:
        """
        Bring the pipeline to READY.

        Calls made while an attempt is running join that attempt. Abandoning
        the await does not cancel the attempt.

        Raises:
            StageFailure: If any stage fails; carries the ErrorEnvelope
        """
        if self.context.is_ready:
            logger.info("[AI INIT] Already ready")
            return

        if self.in_progress:
            logger.info("[AI INIT] Initialization already in progress, waiting...")
        else:
            self._attempt = asyncio.ensure_future(self._perform_initialization())
            self._attempt.add_done_callback(self._on_attempt_done)

        await asyncio.shield(self._attempt)

    def emit_ready(self) -> bool:
        """
        Publish the ready event, at most once per context.

        Returns:
            True if the event was published by this call
        """
        if self._ready_emitted or not self.context.is_ready:
            return False

        self._ready_emitted = True
        self.notifier.publish(
            ReadyEvent(details=dict(self.context.details), timestamp=datetime.now(UTC))
        )
        return True

    def _on_attempt_done(self, task: asyncio.Task) -> None:
        if self._attempt is task:
            self._attempt = None
        if not task.cancelled():
            # Mark the exception retrieved; callers get it through shield()
            task.exception()

    async def _perform_initialization(self) -> None:
        context = self.context

        interrupted_at = context.state
        context.reset_attempt()
        if interrupted_at not in (LifecycleState.BOOT, LifecycleState.ERROR):
            # A previous attempt stopped mid-sequence without reaching ERROR
            self._transition(
                LifecycleState.ERROR, {"error": f"Initialization interrupted at {interrupted_at.value}"}
            )
        if context.state is LifecycleState.ERROR:
            self._transition(LifecycleState.BOOT, {"retry": True})
        else:
            self._publish_status()

        stages: list[tuple[LifecycleState, Callable[[], Awaitable[dict[str, Any]]]]] = [
            (LifecycleState.BACKEND_CONFIGURED, self._configure_backend),
            (LifecycleState.RUNTIME_READY, self._verify_runtime_resources),
            (LifecycleState.MODEL_READY, self._load_model),
            (LifecycleState.TOKENIZER_READY, self._load_tokenizer),
            (LifecycleState.WARMED_UP, self._warm_up),
            (LifecycleState.READY, self._mark_ready),
        ]

        current = stages[0][0]
        try:
            for stage, action in stages:
                current = stage
                await self._run_stage(stage, action)
        except StageFailure as failure:
            self._fail(failure.envelope)
            raise
        except BaseException as e:
            # Cancellation (e.g. the owning event loop shutting down) ends in ERROR too
            logger.warning(f"[AI INIT] Attempt aborted at {current.value}: {type(e).__name__}")
            self._fail(self._create_error_envelope(current, e))
            raise

        self.last_error = None
        logger.info(f"[AI INIT] All {TOTAL_STAGES} stages completed - ready for inference")
        self.emit_ready()

    def _fail(self, envelope: ErrorEnvelope) -> None:
        self.last_error = envelope
        self.context.model_ready = False
        self._transition(
            LifecycleState.ERROR,
            {"error": envelope.message, "stage": envelope.stage.value},
        )
        self.notifier.publish(ErrorEvent(envelope=envelope))

    async def _run_stage(
        self,
        stage: LifecycleState,
        action: Callable[[], Awaitable[dict[str, Any]]],
    ) -> None:
        self._log_stage(stage, "START")
        try:
            details = await action()
        except Exception as e:
            self._log_stage(stage, "FAIL", {"error": str(e)})
            raise StageFailure(self._create_error_envelope(stage, e)) from e

        self._log_stage(stage, "OK", details)
        self.context.stage_flags[stage] = True
        self._transition(stage, details)

    def _transition(self, new_state: LifecycleState, details: Optional[dict[str, Any]] = None) -> None:
        context = self.context
        old_state = context.state

        if not _is_allowed(old_state, new_state):
            raise InvalidTransition(f"Cannot transition from {old_state.value} to {new_state.value}")

        context.state = new_state
        context.details = {**context.details, **(details or {})}

        if new_state in BOOT_SEQUENCE:
            milestone = _MILESTONE_MESSAGES.get(new_state, new_state.value.replace("_", " ").lower())
            logger.info(
                f"[AI INIT] {BOOT_SEQUENCE.index(new_state)}/{TOTAL_STAGES} {milestone} "
                f"({old_state.value} → {new_state.value})"
            )
        else:
            logger.error(f"[AI INIT] {old_state.value} → {new_state.value}: {context.details.get('error')}")

        self._publish_status()

    def _publish_status(self) -> None:
        self.notifier.publish(
            StatusEvent(state=self.context.state, details=dict(self.context.details))
        )

    def _log_stage(self, stage: LifecycleState, status: str, details: Optional[dict[str, Any]] = None) -> None:
        if status == "FAIL":
            logger.error(f"[AI INIT] {stage.value} {status} {details or {}}")
        else:
            logger.info(f"[AI INIT] {stage.value} {status}")
            if details:
                logger.debug(f"[AI INIT] {stage.value} details: {details}")

    def _create_error_envelope(self, stage: LifecycleState, error: BaseException) -> ErrorEnvelope:
        backend = self.context.backend
        return ErrorEnvelope(
            stage=stage,
            message=str(error) or type(error).__name__,
            resource=backend.resource_for_stage(stage),
            backend_kind=backend.kind,
            error_type=type(error).__name__,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _configure_backend(self) -> dict[str, Any]:
        backend = self.context.backend
        details = backend.configure()
        if not backend.is_configured():
            raise MilestoneValidationError("Runtime configuration handles are missing")
        return details

    async def _verify_runtime_resources(self) -> dict[str, Any]:
        probes = await self.context.backend.verify_resources()

        verified, missing = [], []
        for probe in probes:
            if probe.available:
                logger.info(f"[AI INIT] Verified {probe.name}: {probe.size_bytes} bytes")
                verified.append(probe.name)
            else:
                # Not fatal here: the model load re-checks the files it needs
                logger.warning(f"[AI INIT] Could not verify {probe.name} at {probe.path}: {probe.error}")
                missing.append(probe.name)

        return {"verified_resources": verified, "missing_resources": missing}

    async def _load_model(self) -> dict[str, Any]:
        backend = self.context.backend
        details = await backend.load_session()
        if not backend.input_names or not backend.output_names:
            raise MilestoneValidationError(
                f"Session reported empty input/output names "
                f"(inputs={backend.input_names}, outputs={backend.output_names})"
            )
        return details

    async def _load_tokenizer(self) -> dict[str, Any]:
        tokenizer = await asyncio.to_thread(self.tokenizer_loader)
        if not isinstance(tokenizer, LoadedTokenizer) or not tokenizer.vocab:
            raise MilestoneValidationError("Tokenizer vocabulary is missing or empty")

        self.context.tokenizer = tokenizer
        self.context.model_ready = True
        return {"tokenizer": tokenizer.kind, "vocab_size": tokenizer.vocab_size}

    async def _warm_up(self) -> dict[str, Any]:
        expected = self.context.settings.embedding_dim
        embedding = await self.generator.generate(self.context.settings.warmup_text, use_cache=False)

        if embedding is None:
            raise MilestoneValidationError("Warm-up inference failed: generate returned None")
        if embedding.shape != (expected,):
            raise MilestoneValidationError(
                f"Warm-up embedding has wrong dimensions. Expected {expected}, got {embedding.shape[-1]}"
            )
        return {"test_embedding": "successful", "embedding_dim": expected}

    async def _mark_ready(self) -> dict[str, Any]:
        completed = all(self.context.stage_flags.get(stage) for stage in BOOT_SEQUENCE[1:-1])
        if not completed:
            raise MilestoneValidationError("Not all initialization stages completed")
        initialized_at = datetime.now(UTC)

        return {
            "model": self.context.settings.embedding_model_id,
            "backend": self.context.backend.kind,
            "all_stages_completed": True,
            "initialization_timestamp": initialized_at.isoformat(),
        }


def _is_allowed(old_state: LifecycleState, new_state: LifecycleState) -> bool:
    if new_state is LifecycleState.ERROR:
        return True
    if new_state is LifecycleState.BOOT:
        return old_state in (LifecycleState.BOOT, LifecycleState.ERROR)
    if old_state is LifecycleState.ERROR:
        return False
    return BOOT_SEQUENCE.index(new_state) == BOOT_SEQUENCE.index(old_state) + 1
