"""
Utility functions for token estimation and exact token counting.
"""

from functools import lru_cache
from hashlib import blake2b
from typing import Any

import tiktoken

from core.constants import CHARS_PER_TOKEN, TOKEN_CACHE_SIZE

# Cache for tiktoken encoders to avoid recreation
_encoder_cache = {}

# Hash-to-count mapping for better cache hit rates with similar content
_hash_to_count_cache: dict[str, int] = {}


def estimate_tokens(text: str, chars_per_token: int = CHARS_PER_TOKEN) -> int:
    """Cheap length-based token estimate used by the result size guard."""
    return len(text) // chars_per_token


def _get_encoder(model: str) -> Any:
    """Get cached encoder for model."""
    if model not in _encoder_cache:
        try:
            _encoder_cache[model] = tiktoken.encoding_for_model(model)
        except KeyError:
            # If model not recognized, use cl100k_base encoding
            _encoder_cache[model] = tiktoken.get_encoding("cl100k_base")
    return _encoder_cache[model]


def _hash_text(text: str) -> str:
    """Fast hash of text for cache keys (Blake2b for speed)."""
    return blake2b(text.encode("utf-8"), digest_size=16).hexdigest()


@lru_cache(maxsize=TOKEN_CACHE_SIZE * 2)
def _count_tokens_cached(text_hash: str, text: str, model: str) -> int:
    """Cached token counting with hash-based keys for better hit rates."""
    cache_key = f"{text_hash}:{model}"
    if cache_key in _hash_to_count_cache:
        return _hash_to_count_cache[cache_key]

    encoding = _get_encoder(model)
    count = len(encoding.encode(text))

    _hash_to_count_cache[cache_key] = count
    return count


def count_tokens(text: str, model: str = "gpt-4o") -> dict[str, Any]:
    """
    Count exact tokens using tiktoken.

    Args:
        text: The text to count tokens for
        model: The model name (default: gpt-4o)

    Returns:
        Dict with exact token counts and metadata
    """
    text_hash = _hash_text(text)
    exact_count = _count_tokens_cached(text_hash, text, model)

    char_count = len(text)
    chars_per_token = char_count / exact_count if exact_count > 0 else 0

    return {
        "exact_tokens": exact_count,
        "char_count": char_count,
        "word_count": len(text.split()),
        "chars_per_token": round(chars_per_token, 2),
        "model": model,
        "encoding": _get_encoder(model).name,
    }
