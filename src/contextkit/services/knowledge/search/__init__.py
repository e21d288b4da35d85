"""
Search result post-processing.
"""

from .result_postprocessor import (
    DEFAULT_RERANK_WEIGHTS,
    RerankWeights,
    ResultPostProcessor,
    calculate_jaccard_similarity,
    deduplicate_results,
    extract_snippet,
    has_proximity_match,
    highlight_matches,
    postprocess_results,
    rerank_results,
)

__all__ = [
    'DEFAULT_RERANK_WEIGHTS',
    'RerankWeights',
    'ResultPostProcessor',
    'calculate_jaccard_similarity',
    'deduplicate_results',
    'extract_snippet',
    'has_proximity_match',
    'highlight_matches',
    'postprocess_results',
    'rerank_results',
]
