"""
Factory functions for knowledge managers.
"""

from pathlib import PurePosixPath
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ...shared import ConfigurationError, EmbeddingProvider, get_settings
from .models import KnowledgeConfig
from .service import KnowledgeManager
from .storage import KnowledgeStore


def default_knowledge_config() -> KnowledgeConfig:
    """Knowledge configuration seeded from application settings."""
    return KnowledgeConfig(**get_settings().knowledge_config)


def create_knowledge_manager(config: Optional[Dict[str, Any]] = None,
                             store: Optional[KnowledgeStore] = None,
                             embedding_provider: Optional[EmbeddingProvider] = None,
                             agent_id: Optional[str] = None) -> KnowledgeManager:
    """
    Create a knowledge manager.

    Args:
        config: Overrides merged over the settings defaults; nested
            preprocessing and postprocessing options merge key by key
        store: Knowledge store, in-memory when omitted
        embedding_provider: Embedding provider, the shared client when omitted
        agent_id: Agent stamped on created items

    Returns:
        Configured knowledge manager

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """
    try:
        merged_config = default_knowledge_config().merged(config)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid knowledge configuration: {e}") from e

    return KnowledgeManager(
        config=merged_config,
        store=store,
        embedding_provider=embedding_provider,
        agent_id=agent_id
    )


def create_agent_knowledge_manager(agent_id: str,
                                   config: Optional[Dict[str, Any]] = None,
                                   store: Optional[KnowledgeStore] = None,
                                   embedding_provider: Optional[EmbeddingProvider] = None) -> KnowledgeManager:
    """Create a knowledge manager rooted at the agent's own knowledge folder."""
    agent_root = str(PurePosixPath('knowledge') / 'agents' / agent_id)
    return create_knowledge_manager(
        config={**(config or {}), 'knowledge_root': f"./{agent_root}"},
        store=store,
        embedding_provider=embedding_provider,
        agent_id=agent_id
    )
