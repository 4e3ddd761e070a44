"""Sentence chunker — one chunk per period-terminated sentence."""

from __future__ import annotations


class SentenceChunker:
    """Split free text into sentence chunks on the period character.

    Fragments that are empty after stripping are dropped; every kept fragment
    is stripped and gets its trailing period back. Text without any period
    becomes a single chunk. Pure function of its input.
    """

    delimiter = "."

    def chunk(self, text: str) -> list[str]:
        return [
            fragment.strip() + self.delimiter
            for fragment in text.strip().split(self.delimiter)
            if fragment.strip()
        ]

    @staticmethod
    def count_tokens(text: str) -> int:
        """Approximate token count: 4 characters ≈ 1 token."""
        return max(1, len(text) // 4)
