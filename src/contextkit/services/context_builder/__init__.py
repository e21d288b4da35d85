"""
Context builder service for contextkit.

Assembles token-budgeted context from prioritized sources such as
conversation history, goals, memory, knowledge and system instructions.
"""

from .service import ContextBuilder
from .factory import create_context_builder
from .models import (
    AssembledContext, ContextBuildOptions, ContextItem, ContextSourceConfig, ContextSourceType
)
from .sources import (
    CallableSourceFetcher, ContextFetcher, KnowledgeSourceFetcher, StaticSourceFetcher, SystemSourceFetcher
)
from .utils import content_hash, estimate_token_count

__all__ = [
    'ContextBuilder',
    'create_context_builder',
    'AssembledContext',
    'ContextBuildOptions',
    'ContextItem',
    'ContextSourceConfig',
    'ContextSourceType',
    'CallableSourceFetcher',
    'ContextFetcher',
    'KnowledgeSourceFetcher',
    'StaticSourceFetcher',
    'SystemSourceFetcher',
    'content_hash',
    'estimate_token_count',
]
