"""Engine self-test."""

from tab_sorter.config import get_logger
from tab_sorter.engine.clustering import cosine_similarity
from tab_sorter.engine.context import EngineContext
from tab_sorter.engine.embedding import EmbeddingGenerator
from tab_sorter.engine.models import SelfTestCheck, SelfTestReport

logger = get_logger(__name__)

SELF_TEST_TEXT = "semantic similarity self test"
SELF_SIMILARITY_TOLERANCE = 1e-3


async def run_self_test(context: EngineContext, generator: EmbeddingGenerator) -> SelfTestReport:
    """
    Check that the engine can produce usable embeddings.

    Runs five checks: lifecycle READY, session loaded, tokenizer loaded,
    embedding dimension, and self-similarity ≈ 1. Failures are reported in
    the returned SelfTestReport, never raised.
    """
    report = SelfTestReport()

    def record(name: str, passed: bool, details: str) -> bool:
        report.checks.append(SelfTestCheck(name=name, passed=passed, details=details))
        return passed

    try:
        record("state_ready", context.is_ready, f"state={context.state.value}")
        record(
            "session_loaded",
            context.backend.is_loaded,
            f"inputs={context.backend.input_names}, outputs={context.backend.output_names}",
        )
        record("tokenizer_loaded", context.tokenizer_loaded, f"tokenizer={context.tokenizer.kind}")

        if not context.is_ready:
            report.error = f"Engine is not ready (state {context.state.value})"
            return report

        embedding = await generator.embed(SELF_TEST_TEXT)
        expected = context.settings.embedding_dim
        dimension_ok = embedding is not None and embedding.shape == (expected,)
        record(
            "embedding_dimension",
            dimension_ok,
            f"expected {expected}, got {None if embedding is None else embedding.shape[-1]}",
        )
        if not dimension_ok:
            report.error = "Embedding generation failed"
            return report

        similarity = cosine_similarity(embedding, embedding)
        record(
            "self_similarity",
            abs(1.0 - similarity) < SELF_SIMILARITY_TOLERANCE,
            f"similarity={similarity:.6f}",
        )
    except Exception as e:
        logger.error(f"Self-test error: {e}", exc_info=True)
        report.error = str(e)
        return report

    report.passed = len(report.checks) == 5 and all(check.passed for check in report.checks)
    logger.info(f"Self-test {'passed' if report.passed else 'failed'}: {len(report.checks)} checks")
    return report
