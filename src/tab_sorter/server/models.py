"""
Pydantic models for API request/response validation.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field

from tab_sorter.engine.models import ErrorEnvelope, SelfTestCheck


# ============================================================================
# Request Models
# ============================================================================


class TabInput(BaseModel):
    """Input model for a browser tab from the extension."""

    id: int
    url: Optional[str] = ""
    title: Optional[str] = ""
    pinned: bool = False
    window_id: Optional[int] = None


class TabsGroupRequest(BaseModel):
    """Request model for /api/tabs/group endpoint."""

    tabs: list[TabInput]
    threshold: Optional[float] = Field(default=None, gt=0.0, lt=1.0)
    use_ai: Optional[bool] = None


class TabsStatsRequest(BaseModel):
    """Request model for /api/tabs/stats endpoint."""

    tabs: list[TabInput]


class AIModeRequest(BaseModel):
    """Request model for /api/ai/mode endpoint."""

    enabled: bool


class EmbedRequest(BaseModel):
    """Request model for /api/ai/embed endpoint."""

    text: str


# ============================================================================
# Response Models
# ============================================================================


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""

    status: str
    version: str = "0.1.0"
    timestamp: str


class AIStatusResponse(BaseModel):
    """Response model for /api/ai/status endpoint."""

    state: str
    details: dict[str, Any] = Field(default_factory=dict)
    ready: bool


class AIInitResponse(BaseModel):
    """Response model for /api/ai/init endpoint."""

    success: bool
    state: str
    error: Optional[ErrorEnvelope] = None


class AIModeResponse(BaseModel):
    """Response model for /api/ai/mode endpoint."""

    ai_mode: bool
    ai_ready: bool


class SelfTestResponse(BaseModel):
    """Response model for /api/ai/selftest endpoint."""

    passed: bool
    checks: list[SelfTestCheck] = Field(default_factory=list)
    error: Optional[str] = None


class EmbedResponse(BaseModel):
    """Response model for /api/ai/embed endpoint."""

    embedding: Optional[list[float]] = None
    dimension: int


class TabResponse(BaseModel):
    """Response model for a single tab."""

    id: int
    title: str
    url: str
    pinned: bool = False
    window_id: Optional[int] = None


class GroupResponse(BaseModel):
    """Response model for a tab group."""

    label: str
    color: str
    tabs: list[TabResponse]
    count: int
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    domain: Optional[str] = None


class TabsGroupResponse(BaseModel):
    """Response model for /api/tabs/group endpoint."""

    groups: list[GroupResponse]
    ungrouped: list[TabResponse] = Field(default_factory=list)
    strategy: str
    total_tabs: int
    timestamp: str


class GroupSummary(BaseModel):
    """Label and size of a potential group."""

    label: str
    count: int
    confidence: Optional[float] = None
    domain: Optional[str] = None


class TabsStatsResponse(BaseModel):
    """Response model for /api/tabs/stats endpoint."""

    total_tabs: int
    potential_groups: int
    groups: list[GroupSummary] = Field(default_factory=list)
    ai_mode: bool
    ai_ready: bool
