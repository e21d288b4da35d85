"""
Knowledge processing pipeline.

Text normalization, chunking and file loading used during ingestion and
query formulation.
"""

from .text_normalizer import (
    DEFAULT_STOP_WORDS,
    build_stop_words,
    extract_query_terms,
    normalize_whitespace,
    preprocess_text,
    remove_code,
    remove_markdown,
    remove_stop_words,
    remove_urls,
)
from .text_chunker import (
    ChunkConfig,
    TextChunker,
    chunk_text,
    contains_partial_url,
    contains_technical_content,
    find_optimal_split_point,
)
from .file_loader import (
    FileLister,
    detect_source_type,
    extract_pdf_text,
    is_binary_file,
    load_knowledge_file,
    read_text_file,
    walk_files,
)

__all__ = [
    'DEFAULT_STOP_WORDS',
    'build_stop_words',
    'extract_query_terms',
    'normalize_whitespace',
    'preprocess_text',
    'remove_code',
    'remove_markdown',
    'remove_stop_words',
    'remove_urls',
    'ChunkConfig',
    'TextChunker',
    'chunk_text',
    'contains_partial_url',
    'contains_technical_content',
    'find_optimal_split_point',
    'detect_source_type',
    'FileLister',
    'read_text_file',
    'extract_pdf_text',
    'is_binary_file',
    'load_knowledge_file',
    'walk_files',
]
