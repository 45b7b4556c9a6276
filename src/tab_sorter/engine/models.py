"""
Data models for semantic tab grouping.

This module defines the core data structures for representing browser tabs,
tab groups, lifecycle states and the notifications published while the
inference backend boots.
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Any, Literal, Optional
from urllib.parse import urlparse

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from tab_sorter.engine.errors import MalformedInput


def registrable_domain(url: str) -> str:
    """
    Extract the host of a URL with a leading "www." stripped.

    Examples:
        https://www.github.com/user/repo → github.com
        https://docs.python.org/3/ → docs.python.org

    Raises:
        MalformedInput: If the URL has no resolvable host
    """
    try:
        host = urlparse(url).hostname
    except ValueError as e:
        raise MalformedInput(f"Unparsable URL {url!r}: {e}") from e

    if not host:
        raise MalformedInput(f"URL has no host: {url!r}")

    if host.startswith("www."):
        host = host[len("www."):]
    return host


class Tab(BaseModel):
    """A browser tab as supplied by the host environment.

    The engine reads tabs but never mutates or persists them.

    Attributes:
        id: Browser tab ID
        title: The title of the tab
        url: The URL of the tab
        pinned: Whether the tab is pinned
        window_id: Browser window ID containing this tab
    """

    id: int
    title: str = ""
    url: str = ""
    pinned: bool = False
    window_id: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("title", "url", mode="before")
    @classmethod
    def convert_none_to_empty_string(cls, v):
        """Hosts send null for tabs that are still loading."""
        return v if v is not None else ""

    def domain(self) -> Optional[str]:
        """Registrable domain of the tab URL, or None if it cannot be parsed."""
        try:
            return registrable_domain(self.url)
        except MalformedInput:
            return None

    def text_key(self) -> str:
        """
        Build the text that gets embedded (and cached) for this tab.

        Returns:
            "<title> <domain>", or the raw title/URL when the URL is unparsable
        """
        domain = self.domain()
        if domain is None:
            return self.title or self.url
        return f"{self.title} {domain}".strip()


class ClusterColor(str, Enum):
    """Available colors for tab groups (Chrome Tab Group colors)."""
    GREY = "grey"
    BLUE = "blue"
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    PINK = "pink"
    PURPLE = "purple"
    CYAN = "cyan"
    ORANGE = "orange"


class LifecycleState(str, Enum):
    """Stages of the inference backend lifecycle, in boot order."""
    BOOT = "BOOT"
    BACKEND_CONFIGURED = "BACKEND_CONFIGURED"
    RUNTIME_READY = "RUNTIME_READY"
    MODEL_READY = "MODEL_READY"
    TOKENIZER_READY = "TOKENIZER_READY"
    WARMED_UP = "WARMED_UP"
    READY = "READY"
    ERROR = "ERROR"


# Forward order of the boot sequence (ERROR is outside the sequence)
BOOT_SEQUENCE: tuple[LifecycleState, ...] = (
    LifecycleState.BOOT,
    LifecycleState.BACKEND_CONFIGURED,
    LifecycleState.RUNTIME_READY,
    LifecycleState.MODEL_READY,
    LifecycleState.TOKENIZER_READY,
    LifecycleState.WARMED_UP,
    LifecycleState.READY,
)


class ErrorEnvelope(BaseModel):
    """Structured description of a failed initialization stage.

    Attributes:
        stage: The stage that failed
        message: Human-readable failure message
        resource: File or component associated with the stage, if any
        backend_kind: Identifier of the inference backend
        error_type: Class name of the underlying exception
        timestamp: When the failure was recorded
    """

    stage: LifecycleState
    message: str
    resource: Optional[str] = None
    backend_kind: str
    error_type: str = "StageFailure"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class StatusEvent(BaseModel):
    """Published on every lifecycle transition."""

    type: Literal["status"] = "status"
    state: LifecycleState
    details: dict[str, Any] = Field(default_factory=dict)


class ReadyEvent(BaseModel):
    """Published once when the pipeline becomes usable."""

    type: Literal["ready"] = "ready"
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ErrorEvent(BaseModel):
    """Published when initialization fails."""

    type: Literal["error"] = "error"
    envelope: ErrorEnvelope


LifecycleEvent = StatusEvent | ReadyEvent | ErrorEvent


class TabGroup(BaseModel):
    """A group of semantically (or domain-) related tabs.

    Attributes:
        tabs: Tabs in this group, in input order
        embeddings: Embeddings parallel to ``tabs`` (not serialized)
        label: Human-readable label, e.g. "💻 Development"
        confidence: Cohesion score (0-1); None for domain groups
        color: Chrome Tab Group color derived from the label
        domain: Shared domain for domain-based groups
    """

    tabs: list[Tab] = Field(default_factory=list)
    embeddings: list[np.ndarray] = Field(default_factory=list, exclude=True)
    label: str = ""
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    color: ClusterColor = ClusterColor.GREY
    domain: Optional[str] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def tab_count(self) -> int:
        return len(self.tabs)

    def get_tab_titles(self) -> list[str]:
        """Get list of all tab titles in this group."""
        return [tab.title for tab in self.tabs]

    def get_domains(self) -> list[str]:
        """Get the domain of every tab whose URL resolves, in tab order."""
        return [d for d in (tab.domain() for tab in self.tabs) if d is not None]


class ClusteringResult(BaseModel):
    """Output of a single clustering pass.

    Attributes:
        groups: Groups with at least 2 tabs
        ungrouped: Tabs that did not join any group
    """

    groups: list[TabGroup] = Field(default_factory=list)
    ungrouped: list[Tab] = Field(default_factory=list)


class GroupingResult(BaseModel):
    """Result of a grouping request.

    Attributes:
        groups: Labeled groups, best first
        ungrouped: Tabs that were not grouped
        strategy: "semantic" when embeddings were used, "domain" for the fallback
        total_tabs: Number of tabs in the request
        timestamp: When the grouping was performed
    """

    groups: list[TabGroup] = Field(default_factory=list)
    ungrouped: list[Tab] = Field(default_factory=list)
    strategy: Literal["semantic", "domain"]
    total_tabs: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SelfTestCheck(BaseModel):
    """A single self-test check."""

    name: str
    passed: bool
    details: str


class SelfTestReport(BaseModel):
    """Aggregate result of the engine self-test."""

    passed: bool = False
    checks: list[SelfTestCheck] = Field(default_factory=list)
    error: Optional[str] = None
