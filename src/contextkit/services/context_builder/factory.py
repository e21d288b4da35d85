"""
Factory for context builders.
"""

from typing import Dict, Iterable, Optional, Union

from ...shared import Settings, get_settings
from ..knowledge import KnowledgeManager
from .models import ContextSourceType
from .service import ContextBuilder
from .sources import ContextFetcher, KnowledgeSourceFetcher, StaticSourceFetcher


def create_context_builder(knowledge_manager: Optional[KnowledgeManager] = None,
                           user_profile: Optional[Iterable[str]] = None,
                           fetchers: Optional[Dict[Union[ContextSourceType, str], ContextFetcher]] = None,
                           settings: Optional[Settings] = None) -> ContextBuilder:
    """
    Create a context builder wired to the given collaborators.

    Args:
        knowledge_manager: Backs the knowledge source when given
        user_profile: Static profile facts served as the user profile source
        fetchers: Extra fetchers, registered last so they win
        settings: Settings to read defaults from

    Returns:
        Configured context builder
    """
    settings = settings or get_settings()
    registered: Dict[Union[ContextSourceType, str], ContextFetcher] = {}

    if knowledge_manager is not None:
        registered[ContextSourceType.KNOWLEDGE] = KnowledgeSourceFetcher(
            knowledge_manager,
            default_max_results=settings.default_max_results,
            default_min_similarity=settings.default_min_similarity
        )

    if user_profile is not None:
        registered[ContextSourceType.USER_PROFILE] = StaticSourceFetcher(user_profile)

    registered.update(fetchers or {})
    return ContextBuilder(fetchers=registered, settings=settings)
