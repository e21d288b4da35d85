"""
Context builder data models.

Defines the source configuration, the items sources emit and the assembled
context handed to a language-model call.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from ...shared.models.base import BaseModel, FrozenModel


class ContextSourceType(str, Enum):
    """Kinds of context source."""
    MEMORY = "memory"
    KNOWLEDGE = "knowledge"
    CONVERSATION = "conversation"
    GOALS = "goals"
    SYSTEM = "system"
    USER_PROFILE = "user_profile"
    CURRENT_STATE = "current_state"


class ContextSourceConfig(BaseModel):
    """Configuration of one context source."""

    type: ContextSourceType = Field(..., description="Source type")
    priority: int = Field(..., description="Higher is more important")
    required: bool = Field(default=False, description="Guaranteed one slot when an item fits")
    max_tokens: Optional[int] = Field(default=None, ge=0, description="Token cap for this source")
    query: Optional[str] = Field(default=None, description="Query override for this source")
    params: Dict[str, Any] = Field(default_factory=dict, description="Source-specific parameters")


class ContextItem(FrozenModel):
    """A piece of context emitted by a source. Immutable once emitted."""

    source_type: ContextSourceType
    content: str
    token_count: Optional[int] = Field(default=None, ge=0)
    relevance_score: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AssembledContext(BaseModel):
    """
    Context ready for model input.

    ``total_tokens`` equals the summed token counts of ``items`` and never
    exceeds the build budget. ``truncated`` is set when any candidate was
    dropped for budget reasons.
    """

    system: Optional[str] = None
    items: List[ContextItem] = Field(default_factory=list)
    total_tokens: int = 0
    truncated: bool = False


class ContextBuildOptions(BaseModel):
    """Options of a single context build."""

    max_tokens: Optional[int] = Field(default=None, gt=0, description="Token budget, settings default when unset")
    sources: Optional[List[ContextSourceConfig]] = None
    prioritize_recent: bool = False
    deduplicate: bool = False
    user_id: Optional[str] = None
    agent_id: Optional[str] = None
    conversation_id: Optional[str] = None
