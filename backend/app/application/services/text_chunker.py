"""Text chunker — splits extracted text into ordered, overlapping chunks."""

import re

# ── Chunking constants ──────────────────────────────────────────────
_DEFAULT_CHUNK_SIZE = 1000  # characters
_DEFAULT_CHUNK_OVERLAP = 200  # characters carried into the next chunk
_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", "? ", "! ", " ", "")

_TRAILING_SPACE = re.compile(r"[ \t]+\n")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")
_WHITESPACE = re.compile(r"\s")


class TextChunker:
    """Recursive character splitter with a paragraph → sentence → word → char hierarchy.

    The output depends only on the input text and the size/overlap policy,
    so re-chunking an unchanged document always yields the same chunks.
    Every chunk is at most ``chunk_size`` characters long.
    """

    def __init__(
        self,
        *,
        chunk_size: int = _DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = _DEFAULT_CHUNK_OVERLAP,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    def split(self, text: str) -> list[str]:
        """Split text into overlapping chunks. Blank input yields no chunks."""
        text = self._normalize(text)
        if not text:
            return []

        if len(text) <= self._chunk_size:
            return [text]

        return self._merge(self._atomize(text, list(_SEPARATORS)))

    @staticmethod
    def _normalize(text: str) -> str:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = _TRAILING_SPACE.sub("\n", text)
        text = _EXTRA_NEWLINES.sub("\n\n", text)
        return text.strip()

    def _atomize(self, text: str, separators: list[str]) -> list[str]:
        """Split on the coarsest separator present, recursing into oversized pieces.

        A piece is small enough once it fits in a chunk together with a full
        overlap tail, so every chunk boundary can carry overlap.
        """
        limit = self._chunk_size - self._chunk_overlap
        separator = separators[-1]
        remaining: list[str] = []
        for i, sep in enumerate(separators):
            if sep == "" or sep in text:
                separator = sep
                remaining = separators[i + 1:]
                break

        pieces: list[str] = []
        for piece in self._split_keeping_separator(text, separator):
            if len(piece) <= limit:
                pieces.append(piece)
            else:
                pieces.extend(self._atomize(piece, remaining))
        return pieces

    @staticmethod
    def _split_keeping_separator(text: str, separator: str) -> list[str]:
        """Split so that each piece keeps the separator that ended it."""
        if separator == "":
            return list(text)

        parts = text.split(separator)
        pieces = [part + separator for part in parts[:-1]]
        pieces.append(parts[-1])
        return [p for p in pieces if p]

    def _merge(self, pieces: list[str]) -> list[str]:
        """Greedily pack pieces into chunks, seeding each chunk with the previous tail."""
        chunks: list[str] = []
        window: list[str] = []
        total = 0

        for piece in pieces:
            size = len(piece)
            if window and total + size > self._chunk_size:
                chunk = "".join(window).strip()
                if chunk:
                    chunks.append(chunk)
                window = self._overlap_tail(window)
                total = sum(len(p) for p in window)
            window.append(piece)
            total += size

        chunk = "".join(window).strip()
        if chunk:
            chunks.append(chunk)
        return chunks

    def _overlap_tail(self, window: list[str]) -> list[str]:
        """The end of a finished chunk that opens the next one, at most ``chunk_overlap`` long.

        Whole trailing pieces are kept when they fit. Otherwise the last
        ``chunk_overlap`` characters are taken, starting at a word boundary.
        """
        if not self._chunk_overlap:
            return []

        kept: list[str] = []
        total = 0
        for piece in reversed(window):
            if total + len(piece) > self._chunk_overlap:
                break
            kept.insert(0, piece)
            total += len(piece)
        if "".join(kept).strip():
            return kept

        joined = "".join(window)
        tail = joined[-self._chunk_overlap:]
        if len(tail) < len(joined) and not joined[-len(tail) - 1].isspace():
            boundary = _WHITESPACE.search(tail)
            if boundary and tail[boundary.start():].strip():
                tail = tail[boundary.start():]
        tail = tail.lstrip()
        return [tail] if tail else []
