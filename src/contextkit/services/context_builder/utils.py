"""
Token estimation and content hashing for context items.
"""

import math
import re


CHARS_PER_TOKEN = 4
HASH_SAMPLE_LENGTH = 100


def estimate_token_count(text: str) -> int:
    """Rough token estimate: four characters per token, rounded up."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def content_hash(text: str) -> str:
    """
    Short hash of the normalized start of a text.

    Lowercases, collapses whitespace and hashes the first 100 characters
    with a 31-multiplier rolling hash kept to a signed 32-bit integer.
    """
    simplified = re.sub(r'\s+', ' ', (text or '').lower()).strip()
    sample = simplified[:HASH_SAMPLE_LENGTH]

    value = 0
    for char in sample:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF

    if value >= 0x80000000:
        value -= 0x100000000
    return format(value, 'x')
