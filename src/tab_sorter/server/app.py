"""
FastAPI application for the Tab Sorter backend.

This server provides endpoints for:
- AI lifecycle control (status, initialization, mode, self-test)
- Single-text embeddings
- Tab grouping (semantic, with domain fallback)
- Tab statistics
"""

from datetime import datetime, UTC
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from tab_sorter.config import get_logger, get_settings
from tab_sorter.engine.errors import NotReady, StageFailure
from tab_sorter.engine.models import GroupingResult, Tab, TabGroup
from tab_sorter.engine.pipeline import TabGrouper
from tab_sorter.server.models import (
    AIInitResponse,
    AIModeRequest,
    AIModeResponse,
    AIStatusResponse,
    EmbedRequest,
    EmbedResponse,
    GroupResponse,
    GroupSummary,
    HealthResponse,
    SelfTestResponse,
    TabInput,
    TabResponse,
    TabsGroupRequest,
    TabsGroupResponse,
    TabsStatsRequest,
    TabsStatsResponse,
)

logger = get_logger(__name__)

# ============================================================================
# FastAPI App Initialization
# ============================================================================

app = FastAPI(
    title="Tab Sorter API",
    description="Local semantic grouping of browser tabs",
    version="0.1.0",
)

# CORS middleware for browser extension
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "chrome-extension://*",
        "http://localhost:*",
        "https://localhost:*",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# Global State
# ============================================================================

# One loaded model per process
_grouper: TabGrouper | None = None


def get_grouper() -> TabGrouper:
    """Get or create the global TabGrouper instance."""
    global _grouper
    if _grouper is None:
        _grouper = TabGrouper(settings=get_settings())
    return _grouper


# ============================================================================
# Conversion helpers
# ============================================================================


def _to_tab(tab_input: TabInput) -> Tab:
    return Tab(
        id=tab_input.id,
        title=tab_input.title,
        url=tab_input.url,
        pinned=tab_input.pinned,
        window_id=tab_input.window_id,
    )


def _tab_response(tab: Tab) -> TabResponse:
    return TabResponse(
        id=tab.id,
        title=tab.title,
        url=tab.url,
        pinned=tab.pinned,
        window_id=tab.window_id,
    )


def _group_response(group: TabGroup) -> GroupResponse:
    return GroupResponse(
        label=group.label,
        color=group.color.value,
        tabs=[_tab_response(tab) for tab in group.tabs],
        count=group.tab_count,
        confidence=group.confidence,
        domain=group.domain,
    )


def _grouping_response(result: GroupingResult) -> TabsGroupResponse:
    return TabsGroupResponse(
        groups=[_group_response(group) for group in result.groups],
        ungrouped=[_tab_response(tab) for tab in result.ungrouped],
        strategy=result.strategy,
        total_tabs=result.total_tabs,
        timestamp=result.timestamp.isoformat(),
    )


# ============================================================================
# API Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
    )


@app.get("/api/ai/status", response_model=AIStatusResponse)
async def get_ai_status():
    """Report the current lifecycle state and accumulated stage details."""
    grouper = get_grouper()
    return AIStatusResponse(**grouper.lifecycle.status())


@app.post("/api/ai/init", response_model=AIInitResponse)
async def init_ai():
    """
    Boot the inference backend to READY.

    A failed stage is reported in the response body with its error
    envelope; calling this endpoint again retries from BOOT.
    """
    grouper = get_grouper()
    try:
        await grouper.initialize()
    except StageFailure as e:
        logger.error(f"AI initialization failed: {e}")
        return AIInitResponse(success=False, state=grouper.lifecycle.state.value, error=e.envelope)

    return AIInitResponse(success=True, state=grouper.lifecycle.state.value)


@app.post("/api/ai/mode", response_model=AIModeResponse)
async def set_ai_mode(request: AIModeRequest):
    """Turn semantic grouping on or off for later grouping requests."""
    grouper = get_grouper()
    grouper.set_ai_mode(request.enabled)
    return AIModeResponse(ai_mode=grouper.settings.ai_mode, ai_ready=grouper.is_ready)


@app.post("/api/ai/selftest", response_model=SelfTestResponse)
async def run_selftest():
    """Run the engine self-test checks."""
    grouper = get_grouper()
    report = await grouper.self_test()
    return SelfTestResponse(**report.model_dump())


@app.post("/api/ai/embed", response_model=EmbedResponse)
async def embed_text(request: EmbedRequest):
    """
    Embed a single text.

    Returns 503 until the backend has been initialized.
    """
    grouper = get_grouper()
    try:
        embedding = await grouper.embed(request.text)
    except NotReady as e:
        raise HTTPException(
            status_code=503,
            detail={"error": str(e), "state": e.state.value},
        ) from e

    return EmbedResponse(
        embedding=embedding.tolist() if embedding is not None else None,
        dimension=grouper.settings.embedding_dim,
    )


@app.post("/api/tabs/group", response_model=TabsGroupResponse)
async def group_tabs(request: TabsGroupRequest):
    """
    Group tabs by meaning.

    This endpoint:
    1. Initializes the AI backend on first use (bounded by init_timeout_seconds)
    2. Embeds each tab's title and domain
    3. Clusters tabs greedily by similarity and labels each group

    If AI mode is off or the backend cannot be brought up, tabs are grouped
    by domain instead; ``strategy`` in the response tells which path ran.

    Args:
        request: Tabs plus optional threshold and AI-mode override

    Returns:
        Groups (best first) and ungrouped tabs
    """
    grouper = get_grouper()
    tabs = [_to_tab(tab_input) for tab_input in request.tabs]

    result = await grouper.group_tabs(tabs, threshold=request.threshold, use_ai=request.use_ai)
    return _grouping_response(result)


@app.post("/api/tabs/stats", response_model=TabsStatsResponse)
async def get_tab_stats(request: TabsStatsRequest):
    """Summarize the groups the current tabs would form."""
    grouper = get_grouper()
    tabs = [_to_tab(tab_input) for tab_input in request.tabs]

    result = await grouper.group_tabs(tabs)
    return TabsStatsResponse(
        total_tabs=len(tabs),
        potential_groups=len(result.groups),
        groups=[
            GroupSummary(
                label=group.label,
                count=group.tab_count,
                confidence=group.confidence,
                domain=group.domain,
            )
            for group in result.groups
        ],
        ai_mode=grouper.settings.ai_mode,
        ai_ready=grouper.is_ready,
    )
