"""
Result size guard for tool output.

Every tool result passes through ``ResultSizeGuard.clamp`` before it is added
to the conversation. Two checks run in order:

1. Transport guard: payloads above ``transport_max_bytes`` (UTF-8) are split
   into chunks that each fit the byte limit, then handled by the configured
   ``ChunkPolicy``.
2. Token guard: the estimate ``len(text) // chars_per_token`` is compared with
   ``token_ceiling``. Results over the ceiling are replaced by suggestions for
   narrowing the query. Data is never cut short without saying so.

The guard holds no mutable state, so the decision depends only on the input.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.constants import (
    CHARS_PER_TOKEN,
    CHUNK_NOTE_RESERVE_BYTES,
    CHUNK_SEPARATOR,
    OVERSIZED_RESULT_SUGGESTIONS,
    RESULT_TOKEN_CEILING,
    TRANSPORT_CHUNK_CHARS,
    TRANSPORT_MAX_BYTES,
)
from models.error_models import ErrorCode
from models.tool_models import ChunkPolicy
from utils.json_utils import error_response
from utils.token_utils import estimate_tokens


def split_chunks(text: str, chunk_chars: int, max_bytes: int | None = None) -> list[str]:
    """Split text into consecutive pieces.

    Each piece holds at most ``chunk_chars`` characters and, when ``max_bytes``
    is given, at most ``max_bytes`` bytes of UTF-8. Cuts fall on character
    boundaries.
    """
    if chunk_chars <= 0:
        raise ValueError("chunk_chars must be positive")
    if max_bytes is not None and max_bytes < 4:
        raise ValueError("max_bytes must fit at least one character")

    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_chars, len(text))
        if max_bytes is not None:
            piece_bytes = len(text[start:end].encode("utf-8"))
            while piece_bytes > max_bytes:
                # Shrink proportionally, then step back one char at a time
                shrunk = start + max(1, (end - start) * max_bytes // piece_bytes)
                end = shrunk if shrunk < end else end - 1
                piece_bytes = len(text[start:end].encode("utf-8"))
        chunks.append(text[start:end])
        start = end
    return chunks or [""]


@dataclass(frozen=True)
class ResultSizeGuard:
    """Clamp tool results to what fits in the model's input budget."""

    chunk_policy: ChunkPolicy = ChunkPolicy.FIRST_CHUNK
    chars_per_token: int = CHARS_PER_TOKEN
    token_ceiling: int = RESULT_TOKEN_CEILING
    transport_max_bytes: int = TRANSPORT_MAX_BYTES
    chunk_chars: int = TRANSPORT_CHUNK_CHARS
    note_reserve_bytes: int = CHUNK_NOTE_RESERVE_BYTES

    def __post_init__(self) -> None:
        if self.chars_per_token <= 0 or self.chunk_chars <= 0:
            raise ValueError("chars_per_token and chunk_chars must be positive")
        if self.chunk_max_bytes < 4:
            raise ValueError("transport_max_bytes must leave room for chunks after note_reserve_bytes")

    @property
    def chunk_max_bytes(self) -> int:
        """UTF-8 budget for one chunk; the first_chunk note fits in the reserve."""
        return self.transport_max_bytes - self.note_reserve_bytes

    def estimate_tokens(self, text: str) -> int:
        return estimate_tokens(text, self.chars_per_token)

    def is_oversized(self, text: str) -> bool:
        """True when the token estimate exceeds the ceiling."""
        return self.estimate_tokens(text) > self.token_ceiling

    def exceeds_transport(self, text: str) -> bool:
        return len(text.encode("utf-8")) > self.transport_max_bytes

    def clamp(self, raw_result: str) -> str:
        """Return ``raw_result`` unchanged if it fits, otherwise guidance."""
        text = raw_result
        if self.exceeds_transport(text):
            text = self._apply_chunk_policy(text)

        if self.is_oversized(text):
            return self._suggestions(text)
        return text

    def _apply_chunk_policy(self, text: str) -> str:
        chunks = split_chunks(text, self.chunk_chars, self.chunk_max_bytes)
        byte_length = len(text.encode("utf-8"))

        if self.chunk_policy is ChunkPolicy.DISCARD:
            return error_response(
                "Response discarded.",
                code=ErrorCode.RESULT_DISCARDED.value,
                reason=f"Result was {byte_length} bytes, above the {self.transport_max_bytes} byte limit.",
                suggestions=list(OVERSIZED_RESULT_SUGGESTIONS),
            )

        if self.chunk_policy is ChunkPolicy.ALL_CHUNKS:
            return CHUNK_SEPARATOR.join(chunks)

        note = (
            f"[Result truncated: showing chunk 1 of {len(chunks)} "
            f"({byte_length} bytes exceeded the {self.transport_max_bytes} byte limit). "
            "Narrow the query to see the remaining rows.]"
        )
        return f"{chunks[0]}\n{note}"

    def _suggestions(self, text: str) -> str:
        return error_response(
            "The result is too large to return. "
            f"Estimated {self.estimate_tokens(text)} tokens exceeds the limit of {self.token_ceiling}.",
            code=ErrorCode.RESULT_OVERSIZED.value,
            suggestions=list(OVERSIZED_RESULT_SUGGESTIONS),
        )
