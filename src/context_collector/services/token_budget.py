"""Token counting and truncation.

Two interchangeable counters are provided.  :class:`HeuristicTokenCounter`
uses the fixed four-characters-per-token estimate and is the default;
:class:`TiktokenCounter` uses ``tiktoken`` for exact counts when the caller
needs them.
"""

from __future__ import annotations

import math
from typing import Protocol

import tiktoken

# ── Constants ───────────────────────────────────────────────────────────────

CHARS_PER_TOKEN = 4
DEFAULT_ENCODING = "cl100k_base"


def truncation_marker(max_tokens: int) -> str:
    return f"\n// ... (content truncated to fit {max_tokens} token limit)"


def estimate_tokens(text: str) -> int:
    """Return ``ceil(len(text) / 4)``."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def cut_at_line_boundary(text: str, limit: int) -> str:
    """Return at most *limit* characters of *text*, ending on a newline if possible."""
    if len(text) <= limit:
        return text
    head = text[: max(limit, 0)]
    last_nl = head.rfind("\n")
    if last_nl > 0:
        head = head[: last_nl + 1]
    return head


# ── Counters ────────────────────────────────────────────────────────────────


class TokenCounter(Protocol):
    name: str

    def count(self, text: str) -> int:
        """Return the token estimate for *text*."""
        ...

    def truncate(self, text: str, max_tokens: int) -> str:
        """Return *text* cut to fit *max_tokens*, marker included."""
        ...


class HeuristicTokenCounter:
    """Character-based estimate, no external state."""

    name = "heuristic"

    def count(self, text: str) -> int:
        return estimate_tokens(text)

    def truncate(self, text: str, max_tokens: int) -> str:
        if self.count(text) <= max_tokens:
            return text
        marker = truncation_marker(max_tokens)
        budget = max_tokens * CHARS_PER_TOKEN - len(marker)
        if budget <= 0:
            return marker.lstrip("\n")[: max_tokens * CHARS_PER_TOKEN]
        return cut_at_line_boundary(text, budget).rstrip("\n") + marker


class TiktokenCounter:
    """Exact counts for a ``tiktoken`` encoding."""

    name = "tiktoken"

    def __init__(self, encoding_name: str = DEFAULT_ENCODING) -> None:
        self._encoding_name = encoding_name
        self._encoder: tiktoken.Encoding | None = None

    def _get_encoder(self) -> tiktoken.Encoding:
        if self._encoder is None:
            self._encoder = tiktoken.get_encoding(self._encoding_name)
        return self._encoder

    def count(self, text: str) -> int:
        return len(self._get_encoder().encode(text))

    def truncate(self, text: str, max_tokens: int) -> str:
        encoder = self._get_encoder()
        tokens = encoder.encode(text)
        if len(tokens) <= max_tokens:
            return text

        marker = truncation_marker(max_tokens)
        room = max_tokens - len(encoder.encode(marker))
        # A cut can re-encode to more tokens than it held (a split multi-byte
        # character decodes to U+FFFD); shrink the room until it fits.
        while room > 0:
            truncated = encoder.decode(tokens[:room])
            # Roll back to the last newline for a clean cut
            last_nl = truncated.rfind("\n")
            if last_nl > len(truncated) // 2:
                truncated = truncated[:last_nl]
            result = truncated + marker
            excess = len(encoder.encode(result)) - max_tokens
            if excess <= 0:
                return result
            room -= excess
        return encoder.decode(encoder.encode(marker.lstrip("\n"))[:max_tokens])


def get_token_counter(name: str = "heuristic", encoding: str = DEFAULT_ENCODING) -> TokenCounter:
    """Return the counter registered under *name*."""
    if name == HeuristicTokenCounter.name:
        return HeuristicTokenCounter()
    if name == TiktokenCounter.name:
        return TiktokenCounter(encoding)
    raise ValueError(f"Unknown token counter '{name}'. Expected 'heuristic' or 'tiktoken'.")
