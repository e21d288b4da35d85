"""
Embedding providers for vector operations.

Defines the provider interface consumed by the knowledge pipeline and the
sentence-transformers backed client used in production.
"""

import asyncio
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from functools import lru_cache
from typing import List, Optional, Union

import numpy as np
from sentence_transformers import SentenceTransformer

from ...config.settings import get_settings
from ...exceptions import ProviderError
from ..monitoring.logger import get_logger


class EmbeddingProvider(ABC):
    """
    Interface for embedding backends.

    A provider instance always returns vectors of the same dimensionality.
    """

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Dimensionality of the vectors this provider returns."""
        pass

    @abstractmethod
    async def generate_embedding(self, text: str) -> List[float]:
        """
        Generate an embedding for text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector
        """
        pass


class EmbeddingClient(EmbeddingProvider):
    """
    Sentence-transformers embedding client.

    Loads the model lazily, encodes off the event loop and keeps a bounded
    cache of recent embeddings.
    """

    def __init__(self,
                 model_name: Optional[str] = None,
                 cache_size: Optional[int] = None,
                 batch_size: Optional[int] = None):
        self.logger = get_logger(__name__)
        settings = get_settings()

        self.model_name = model_name or settings.embedding_config['model']
        self.cache_size = cache_size if cache_size is not None else settings.embedding_config['cache_size']
        self.batch_size = batch_size or settings.embedding_config['batch_size']

        self._model: Optional[SentenceTransformer] = None
        self._model_lock = threading.Lock()
        self._cache: "OrderedDict[str, List[float]]" = OrderedDict()
        self._cache_lock = threading.Lock()

    @property
    def dimensions(self) -> int:
        return int(self.get_model().get_sentence_embedding_dimension())

    def get_model(self) -> SentenceTransformer:
        """
        Get or load the embedding model.

        Returns:
            SentenceTransformer model instance
        """
        if self._model is not None:
            return self._model

        with self._model_lock:
            if self._model is not None:
                return self._model

            try:
                self.logger.info(f"Loading embedding model: {self.model_name}")
                start_time = time.time()

                self._model = SentenceTransformer(self.model_name)

                load_time = time.time() - start_time
                self.logger.info(f"Loaded embedding model in {load_time:.2f}s: {self.model_name}")
                return self._model

            except Exception as e:
                raise ProviderError(f"Failed to load embedding model {self.model_name}: {e}")

    def encode_text(self,
                    texts: Union[str, List[str]],
                    normalize_embeddings: bool = True) -> np.ndarray:
        """
        Encode text(s) into embeddings.

        Args:
            texts: Text or list of texts to encode
            normalize_embeddings: Whether to normalize embeddings

        Returns:
            Embedding matrix (num_texts x dimensions)
        """
        if isinstance(texts, str):
            texts = [texts]

        model = self.get_model()

        try:
            return model.encode(
                texts,
                normalize_embeddings=normalize_embeddings,
                batch_size=self.batch_size,
                show_progress_bar=len(texts) > 100,
                convert_to_numpy=True
            )
        except Exception as e:
            raise ProviderError(f"Text encoding failed: {e}")

    async def generate_embedding(self, text: str) -> List[float]:
        cached = self._cache_get(text)
        if cached is not None:
            return cached

        matrix = await asyncio.to_thread(self.encode_text, text)
        embedding = matrix[0].astype(float).tolist()

        self._cache_put(text, embedding)
        return embedding

    def _cache_get(self, text: str) -> Optional[List[float]]:
        with self._cache_lock:
            embedding = self._cache.get(text)
            if embedding is not None:
                self._cache.move_to_end(text)
            return embedding

    def _cache_put(self, text: str, embedding: List[float]) -> None:
        if self.cache_size <= 0:
            return

        with self._cache_lock:
            self._cache[text] = embedding
            self._cache.move_to_end(text)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)


@lru_cache()
def get_embedding_client() -> EmbeddingClient:
    """
    Get the global embedding client instance.

    Returns:
        EmbeddingClient configured from settings
    """
    return EmbeddingClient()
