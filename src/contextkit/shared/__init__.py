"""
Shared components for contextkit.

Contains common models, utilities, and infrastructure used across all services:

- Common data models and validation
- Centralized configuration management
- Shared exception hierarchy
- Infrastructure services (embeddings, logging)
"""

from .models import *
from .config import *
from .exceptions import *
from .infrastructure import *

__all__ = [
    # From models
    "BaseModel", "FrozenModel",

    # From config
    "Settings", "get_settings",

    # From exceptions
    "ContextKitError", "ConfigurationError", "ValidationError",
    "StorageError", "ProviderError", "SearchError",

    # From infrastructure
    "EmbeddingProvider", "EmbeddingClient", "get_embedding_client",
    "HashingEmbeddingProvider",
    "get_logger", "setup_logging",
]
