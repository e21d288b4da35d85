"""
Text chunking for knowledge ingestion.

Splits documents into overlapping chunks that follow paragraph and sentence
boundaries and avoid cutting through URLs or technical tokens.
"""

import re
from dataclasses import dataclass
from typing import List

from ....shared import get_logger


FLEXIBLE_SIZE_FACTOR = 1.5
SPLIT_SEARCH_FACTOR = 0.2
BOUNDARY_WINDOW = 30
WORD_BACKTRACK_SLACK = 50

_PARAGRAPH_BREAK = re.compile(r'\n\s*\n')
_SENTENCE_END = re.compile(r'[.!?]\s')
_CLAUSE_END = re.compile(r'[,;:]\s')

_PARTIAL_URL_PATTERNS = [
    re.compile(r'https?://\S*$'),                       # URL running into the cut
    re.compile(r'^\S*\.[a-z]{2,}/'),                    # domain/path right after the cut
    re.compile(r'\b[a-z0-9]+(?:\.com|\.org|\.io|\.eth)\b'),
]

_TECHNICAL_PATTERNS = [
    re.compile(r'```[\s\S]*?```'),                      # code blocks
    re.compile(r'`[^`]+`'),                             # inline code
    re.compile(r'<[a-z][^>]*>', re.IGNORECASE),         # HTML tags
    re.compile(r'\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b'),
    re.compile(r'\b\d+\.\d+\.\d+\b'),                   # version numbers
    re.compile(r'\b0x[a-f0-9]+\b', re.IGNORECASE),
    re.compile(r'\[\[[^\]]+\]\]'),                      # wiki links
    re.compile(r'\{\{[^}]+\}\}'),                       # template variables
]


@dataclass
class ChunkConfig:
    """Configuration for text chunking."""
    chunk_size: int = 1000
    chunk_overlap: int = 200


def contains_partial_url(text: str) -> bool:
    """Whether text holds a URL fragment that a cut would break."""
    return any(pattern.search(text) for pattern in _PARTIAL_URL_PATTERNS)


def contains_technical_content(text: str) -> bool:
    """Whether text holds code, markup or identifiers worth keeping whole."""
    if not text:
        return False
    return any(pattern.search(text) for pattern in _TECHNICAL_PATTERNS)


def find_optimal_split_point(text: str, target_index: int, max_search_distance: int = 150) -> int:
    """
    Find the best place to cut at or after ``target_index``.

    Looks ahead up to ``max_search_distance`` characters for, in order of
    preference: a paragraph break, a newline, a sentence end, a clause end,
    a space. Falls back to ``target_index`` itself.

    Returns:
        Index at which to cut (exclusive end of the chunk)
    """
    if not text or target_index >= len(text):
        return target_index

    end_index = min(len(text), target_index + max_search_distance)
    search_range = text[target_index:end_index]

    paragraph = _PARAGRAPH_BREAK.search(search_range)
    if paragraph:
        return target_index + paragraph.end()

    newline = search_range.find('\n')
    if newline >= 0:
        return target_index + newline + 1

    sentence = _SENTENCE_END.search(search_range)
    if sentence:
        return target_index + sentence.start() + 2

    clause = _CLAUSE_END.search(search_range)
    if clause:
        return target_index + clause.start() + 2

    space = search_range.find(' ')
    if space >= 0:
        return target_index + space + 1

    # May split a word when no boundary is in reach
    return target_index


def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 200) -> List[str]:
    """
    Split text into overlapping chunks.

    Text no longer than ``chunk_size`` comes back as a single chunk. Text made
    of several reasonably sized paragraphs is packed paragraph by paragraph;
    anything else goes through a sliding window with boundary search.

    Args:
        text: Text to split
        chunk_size: Target chunk size in characters
        overlap: Characters shared with the previous chunk

    Returns:
        Non-empty chunks in document order
    """
    if not text or chunk_size <= 0:
        return []

    if len(text) <= chunk_size:
        return [text]

    overlap = max(0, overlap)
    max_chunk = int(chunk_size * FLEXIBLE_SIZE_FACTOR)

    paragraphs = _PARAGRAPH_BREAK.split(text)
    if len(paragraphs) > 1 and all(len(p) <= max_chunk for p in paragraphs):
        return _pack_paragraphs(paragraphs, chunk_size, overlap, max_chunk)

    return _sliding_window(text, chunk_size, overlap, max_chunk)


def _pack_paragraphs(paragraphs: List[str], chunk_size: int, overlap: int, max_chunk: int) -> List[str]:
    chunks = []
    current = ''

    for paragraph in paragraphs:
        if not paragraph.strip():
            continue

        if current and len(current) + len(paragraph) + 2 > chunk_size:
            chunks.append(current)

            seed = ''
            if overlap > 0 and len(current) > overlap:
                seed = current[-overlap:]
                # Keep the seeded chunk inside the flexible size limit
                room = max_chunk - len(paragraph) - 2
                seed = seed[-room:] if room > 0 else ''
            current = seed

        current = f"{current}\n\n{paragraph}" if current else paragraph

    if current:
        chunks.append(current)

    return chunks


def _sliding_window(text: str, chunk_size: int, overlap: int, max_chunk: int) -> List[str]:
    chunks = []
    text_length = len(text)
    search_distance = int(chunk_size * SPLIT_SEARCH_FACTOR)
    start = 0

    while start < text_length:
        target = start + chunk_size

        if target >= text_length:
            chunks.append(text[start:])
            break

        window = text[max(0, target - BOUNDARY_WINDOW):min(text_length, target + BOUNDARY_WINDOW)]
        if contains_partial_url(window) or contains_technical_content(window):
            # Grow the chunk, leaving room for the boundary search
            target = start + max(chunk_size, max_chunk - search_distance)
            target = min(target, text_length)

        end = find_optimal_split_point(text, target, search_distance)
        chunks.append(text[start:end])

        if end >= text_length:
            break

        next_start = max(0, end - overlap)

        if 0 < next_start < text_length and not text[next_start].isspace():
            previous_space = text.rfind(' ', 0, next_start)
            if previous_space != -1 and previous_space > end - overlap - WORD_BACKTRACK_SLACK:
                next_start = previous_space + 1

        start = max(next_start, start + 1)

    return chunks


class TextChunker:
    """
    Chunker bound to a chunk configuration.

    Thin stateful wrapper over ``chunk_text`` used by the knowledge manager.
    """

    def __init__(self, config: ChunkConfig = None):
        self.logger = get_logger(__name__)
        self.config = config or ChunkConfig()

    def chunk(self, content: str, source: str = "") -> List[str]:
        """
        Chunk content with the configured size and overlap.

        Args:
            content: Text content to chunk
            source: Label used in log messages

        Returns:
            List of chunk strings
        """
        if not content or not content.strip():
            return []

        chunks = chunk_text(content, self.config.chunk_size, self.config.chunk_overlap)
        self.logger.debug(f"Created {len(chunks)} chunks for {source or 'content'} ({len(content)} chars)")
        return chunks
