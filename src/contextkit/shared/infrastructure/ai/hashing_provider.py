"""
Deterministic feature-hashing embedding provider.

Maps each word to a bucket with a stable hash, so texts sharing words get
similar vectors. Needs no model download, which makes it the provider for
offline development and tests.
"""

import hashlib
import re
from typing import List, Optional

import numpy as np

from ...config.settings import get_settings
from .embedding_client import EmbeddingProvider


_TOKEN_PATTERN = re.compile(r"\w+")


class HashingEmbeddingProvider(EmbeddingProvider):
    """Bag-of-words embeddings built with the hashing trick."""

    def __init__(self, dimensions: Optional[int] = None):
        if dimensions is None:
            dimensions = get_settings().embedding_config['dimensions']
        self._dimensions = dimensions
        if self._dimensions <= 0:
            raise ValueError("dimensions must be positive")

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def generate_embedding(self, text: str) -> List[float]:
        return self.embed(text)

    def embed(self, text: str) -> List[float]:
        vector = np.zeros(self._dimensions, dtype=float)

        for token in _TOKEN_PATTERN.findall((text or "").lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self._dimensions
            # Signed hashing keeps bucket collisions from always adding up
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector.tolist()
        return (vector / norm).tolist()
