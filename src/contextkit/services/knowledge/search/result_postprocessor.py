"""
Post-processing of ranked knowledge search results.

Filters, reranks, deduplicates, highlights and snippets a result list.
Every function returns new item copies; inputs are never mutated.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ....shared import get_logger
from ..models import KnowledgeItem, PostprocessingOptions
from ..processing.text_normalizer import DEFAULT_STOP_WORDS, extract_query_terms


DEFAULT_DEDUP_THRESHOLD = 0.85
PROXIMITY_WINDOW = 5
PROXIMITY_SCORE = 0.5
TERM_FREQUENCY_CAP = 10


@dataclass(frozen=True)
class RerankWeights:
    """Weights of the combined rerank score."""
    embedding: float = 0.6
    term_frequency: float = 0.3
    proximity: float = 0.1


DEFAULT_RERANK_WEIGHTS = RerankWeights()


def calculate_jaccard_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the whitespace-split word sets of two strings."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    set_a = set(a.split())
    set_b = set(b.split())
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def deduplicate_results(results: List[KnowledgeItem],
                        similarity_threshold: float = DEFAULT_DEDUP_THRESHOLD) -> List[KnowledgeItem]:
    """
    Drop results whose content is near-identical to an earlier result.

    Content is compared trimmed and lowercased; the first occurrence wins.
    """
    if not results or len(results) <= 1:
        return list(results or [])

    unique = []
    seen = []

    for item in results:
        content = item.content.strip().lower()
        if any(calculate_jaccard_similarity(content, other) >= similarity_threshold for other in seen):
            continue
        seen.append(content)
        unique.append(item)

    return unique


def has_proximity_match(text: str, terms: List[str]) -> bool:
    """Whether two term occurrences lie within five words of each other."""
    if not text or not terms:
        return False

    words = text.lower().split()
    positions = sorted(
        index
        for term in terms
        for index, word in enumerate(words)
        if term in word
    )

    if len(positions) < 2:
        return False

    return any(b - a <= PROXIMITY_WINDOW for a, b in zip(positions, positions[1:]))


def _term_pattern(term: str) -> re.Pattern:
    return re.compile(rf'\b{re.escape(term)}\b', re.IGNORECASE)


def rerank_results(results: List[KnowledgeItem],
                   query: str,
                   weights: RerankWeights = DEFAULT_RERANK_WEIGHTS,
                   stop_words: Iterable[str] = DEFAULT_STOP_WORDS) -> List[KnowledgeItem]:
    """
    Rerank results by embedding score, term frequency and term proximity.

    The combined score replaces ``metadata.relevance_score`` and results are
    sorted on it, highest first. Fewer than two results, or a query without
    significant terms, are returned unchanged.
    """
    if not results or len(results) <= 1 or not query:
        return list(results or [])

    terms = extract_query_terms(query, stop_words)
    if not terms:
        return list(results)

    patterns = [_term_pattern(term) for term in terms]
    reranked = []

    for item in results:
        content = item.content.lower()

        term_frequency = sum(len(pattern.findall(content)) for pattern in patterns)
        normalized_frequency = min(1.0, term_frequency / TERM_FREQUENCY_CAP)
        proximity = PROXIMITY_SCORE if has_proximity_match(content, terms) else 0.0

        combined = (
            item.relevance_score * weights.embedding
            + normalized_frequency * weights.term_frequency
            + proximity * weights.proximity
        )
        reranked.append(item.with_score(combined))

    reranked.sort(key=lambda item: item.relevance_score, reverse=True)
    return reranked


def highlight_matches(content: str,
                      query: str,
                      prefix: str = '**',
                      suffix: str = '**',
                      stop_words: Iterable[str] = DEFAULT_STOP_WORDS) -> str:
    """Wrap whole-word, case-insensitive query term matches."""
    if not content or not query:
        return content

    terms = extract_query_terms(query, stop_words)
    if not terms:
        return content

    pattern = re.compile(
        r'\b(' + '|'.join(re.escape(term) for term in terms) + r')\b',
        re.IGNORECASE,
    )
    return pattern.sub(lambda match: f"{prefix}{match.group(1)}{suffix}", content)


def extract_snippet(content: str,
                    query: str,
                    window_size: int = 25,
                    stop_words: Iterable[str] = DEFAULT_STOP_WORDS) -> str:
    """
    Cut a word window centred on the median query term match.

    Content of at most ``2 * window_size`` words is returned as is. An
    ellipsis marks each truncated side. Without any match the first
    ``2 * window_size`` words are returned.
    """
    if not content or not query:
        return content

    terms = extract_query_terms(query, stop_words)
    if not terms:
        return content

    words = content.split()
    if len(words) <= window_size * 2:
        return content

    lower_words = [word.lower() for word in words]
    positions = sorted(
        index
        for term in terms
        for index, word in enumerate(lower_words)
        if term in word
    )

    if not positions:
        return ' '.join(words[:window_size * 2])

    median = positions[len(positions) // 2]
    start = max(0, median - window_size)
    end = min(len(words), median + window_size)

    snippet = ' '.join(words[start:end])
    if start > 0:
        snippet = '...' + snippet
    if end < len(words):
        snippet += '...'
    return snippet


def postprocess_results(results: List[KnowledgeItem],
                        query: str,
                        options: Optional[PostprocessingOptions] = None,
                        weights: RerankWeights = DEFAULT_RERANK_WEIGHTS,
                        stop_words: Iterable[str] = DEFAULT_STOP_WORDS) -> List[KnowledgeItem]:
    """
    Run the post-processing pipeline.

    Order: score filter, rerank, deduplicate, highlight, snippet, limit.

    Args:
        results: Ranked search results
        query: Original search query
        options: Pipeline toggles, defaults to ``PostprocessingOptions()``
        weights: Rerank score weights
        stop_words: Stop words used for query term extraction

    Returns:
        Processed results
    """
    if not results:
        return []

    opts = options or PostprocessingOptions()
    processed = list(results)

    if opts.min_relevance_score > 0:
        processed = [item for item in processed if item.relevance_score >= opts.min_relevance_score]

    if opts.rerank and query:
        processed = rerank_results(processed, query, weights, stop_words)

    if opts.deduplicate:
        processed = deduplicate_results(processed)

    if opts.highlight_matches and query:
        processed = [
            item.with_content(highlight_matches(item.content, query, stop_words=stop_words))
            for item in processed
        ]

    if opts.summarize and query:
        processed = [
            item.with_content(extract_snippet(item.content, query, stop_words=stop_words))
            for item in processed
        ]

    if opts.max_results > 0:
        processed = processed[:opts.max_results]

    return processed


class ResultPostProcessor:
    """
    Post-processing pipeline bound to rerank weights and a stop-word set.

    Used by the knowledge manager so that per-manager stop words also apply
    to query term extraction.
    """

    def __init__(self,
                 weights: Optional[RerankWeights] = None,
                 stop_words: Iterable[str] = DEFAULT_STOP_WORDS):
        self.logger = get_logger(__name__)
        self.weights = weights or DEFAULT_RERANK_WEIGHTS
        self.stop_words = frozenset(stop_words)

    def process(self,
                results: List[KnowledgeItem],
                query: str,
                options: Optional[PostprocessingOptions] = None) -> List[KnowledgeItem]:
        """Post-process results and log how many survived."""
        processed = postprocess_results(results, query, options, self.weights, self.stop_words)
        self.logger.debug(f"Post-processed {len(results)} results to {len(processed)} for query '{query}'")
        return processed
