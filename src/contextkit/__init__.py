"""
contextkit - Retrieval-augmented context assembly for language-model calls.
"""

__version__ = "0.1.0"
__author__ = "contextkit Team"

# Re-export main components for easy access
from .shared.config.settings import get_settings
from .shared.exceptions import ContextKitError, ConfigurationError
from .services.knowledge import KnowledgeManager, create_knowledge_manager
from .services.context_builder import ContextBuilder, create_context_builder

__all__ = [
    "get_settings",
    "ContextKitError",
    "ConfigurationError",
    "KnowledgeManager",
    "create_knowledge_manager",
    "ContextBuilder",
    "create_context_builder",
]
