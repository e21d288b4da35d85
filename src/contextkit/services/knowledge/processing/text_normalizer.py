"""
Text normalization for knowledge ingestion and query formulation.

Every function here is pure and returns an empty string for empty input.
"""

import re
from typing import FrozenSet, Iterable, List, Optional

from ..models import PreprocessingOptions


DEFAULT_STOP_WORDS: FrozenSet[str] = frozenset({
    'a', 'an', 'and', 'are', 'as', 'at', 'be', 'by', 'for', 'from', 'has',
    'he', 'in', 'is', 'it', 'its', 'of', 'on', 'that', 'the', 'to', 'was',
    'were', 'will', 'with', 'this', 'i', 'you', 'your', 'we', 'our', 'they', 'their',
    'am', 'been', 'being', 'had', 'having', 'do', 'does', 'did', 'doing',
    'can', 'could', 'should', 'would', 'may', 'might', 'must', 'shall', 'how',
})

_FENCED_CODE = re.compile(r'```[\s\S]*?```')
_INLINE_CODE = re.compile(r'`[^`\n]*`')
_HEADER = re.compile(r'^[ \t]*#{1,6}[ \t]*', re.MULTILINE)
_IMAGE = re.compile(r'!\[([^\]]*)\]\([^)]*\)')
_LINK = re.compile(r'\[([^\]]*)\]\([^)]*\)')
_BULLET = re.compile(r'^[ \t]*[-*+][ \t]+', re.MULTILINE)
_NUMBERED = re.compile(r'^[ \t]*\d+\.[ \t]+', re.MULTILINE)
_HORIZONTAL_RULE = re.compile(r'^[ \t]*[-*_]{3,}[ \t]*$', re.MULTILINE)

_HTML_PRE = re.compile(r'<pre>[\s\S]*?</pre>', re.IGNORECASE)
_HTML_CODE = re.compile(r'<code>[\s\S]*?</code>', re.IGNORECASE)
_BLOCK_COMMENT = re.compile(r'/\*[\s\S]*?\*/')
_LINE_COMMENT = re.compile(r'(?<![:/])//.*')

_URL = re.compile(r'(?:https?://)?(?:www\.)?[^\s]+\.[^\s]+')

_NEWLINE_RUN = re.compile(r'\n{3,}')


def remove_markdown(text: str) -> str:
    """Strip markdown formatting, keeping link labels and image alt text."""
    if not text:
        return ''

    text = _FENCED_CODE.sub('', text)
    text = _INLINE_CODE.sub('', text)
    text = _HEADER.sub('', text)
    text = _IMAGE.sub(r'\1', text)
    text = _LINK.sub(r'\1', text)
    text = _HORIZONTAL_RULE.sub('', text)
    text = _BULLET.sub('', text)
    text = _NUMBERED.sub('', text)
    return text


def remove_code(text: str) -> str:
    """Strip code blocks, inline code, HTML code elements and comments."""
    if not text:
        return ''

    text = _FENCED_CODE.sub('', text)
    text = _INLINE_CODE.sub('', text)
    text = _HTML_PRE.sub('', text)
    text = _HTML_CODE.sub('', text)
    text = _BLOCK_COMMENT.sub('', text)
    text = _LINE_COMMENT.sub('', text)
    return text


def remove_urls(text: str) -> str:
    """Strip bare and scheme-prefixed URLs."""
    if not text:
        return ''

    return _URL.sub('', text)


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to one space and trim the ends."""
    if not text:
        return ''

    text = re.sub(r'\s+', ' ', text)
    text = _NEWLINE_RUN.sub('\n\n', text)
    return text.strip()


def remove_stop_words(text: str, stop_words: Iterable[str] = DEFAULT_STOP_WORDS) -> str:
    """
    Drop tokens found in the stop-word set.

    Tokens are split on single spaces and compared case-insensitively.
    """
    if not text:
        return ''

    stop_words = _as_lower_set(stop_words)
    return ' '.join(
        word for word in text.split(' ')
        if word and word.lower() not in stop_words
    )


def preprocess_text(text: str,
                    options: Optional[PreprocessingOptions] = None,
                    stop_words: Iterable[str] = DEFAULT_STOP_WORDS) -> str:
    """
    Run the normalization pipeline.

    Steps run in a fixed order: markdown, code, URLs, casing, whitespace.
    They repeat until the text stops changing, since removing a URL can
    expose a list marker at the start of a line. Stop words go next, and
    the result is then cut to ``max_length`` when set.

    Args:
        text: Text to normalize
        options: Step toggles, defaults to ``PreprocessingOptions()``
        stop_words: Stop words used when stop-word removal is enabled

    Returns:
        Normalized text
    """
    if not text:
        return ''

    opts = options or PreprocessingOptions()
    processed = _until_stable(text, opts)

    if opts.remove_stop_words:
        processed = remove_stop_words(processed, stop_words)

    if opts.max_length and len(processed) > opts.max_length:
        # A cut can leave a trailing space or a dangling marker
        processed = _until_stable(processed[:opts.max_length], opts)

    return processed


def _until_stable(text: str, opts: PreprocessingOptions) -> str:
    while True:
        cleaned = _normalize_once(text, opts)
        if cleaned == text:
            return cleaned
        text = cleaned


def _normalize_once(text: str, opts: PreprocessingOptions) -> str:
    if opts.remove_markdown:
        text = remove_markdown(text)

    if opts.remove_code:
        text = remove_code(text)

    if opts.remove_urls:
        text = remove_urls(text)

    if opts.normalize_casing:
        text = text.lower()

    if opts.remove_extra_whitespace:
        text = normalize_whitespace(text)

    return text


def extract_query_terms(query: str, stop_words: Iterable[str] = DEFAULT_STOP_WORDS) -> List[str]:
    """Significant lowercase query terms: longer than two characters, not stop words."""
    if not query:
        return []

    stop_words = _as_lower_set(stop_words)
    return [
        term for term in query.lower().split()
        if len(term) > 2 and term not in stop_words
    ]


def build_stop_words(extra: Optional[Iterable[str]] = None) -> FrozenSet[str]:
    """Merge extra stop words into the defaults as a new immutable set."""
    if not extra:
        return DEFAULT_STOP_WORDS
    return DEFAULT_STOP_WORDS | frozenset(word.lower() for word in extra if word)


def _as_lower_set(words: Iterable[str]) -> FrozenSet[str]:
    if words is DEFAULT_STOP_WORDS:
        return DEFAULT_STOP_WORDS
    return frozenset(word.lower() for word in words)
