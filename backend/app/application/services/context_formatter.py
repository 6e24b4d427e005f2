"""Context formatter — turns ranked chunks into a bounded prompt block."""

from app.domain.entities.retrieval import RetrievedChunk

_DEFAULT_MAX_CHARS = 4000
_ENTRY_SEPARATOR = "\n\n"
_SECTION_HEADER = "Here is relevant information from your resources:"


class ContextFormatter:
    """Formats retrieved chunks as ``[Title]: text`` entries within a character budget.

    Entries are kept in rank order. When the budget runs out, the
    lowest-ranked entries are dropped first; the top entry is cut short
    rather than dropped so a non-empty result always carries context.
    """

    def __init__(self, max_chars: int = _DEFAULT_MAX_CHARS):
        if max_chars < 1:
            raise ValueError("max_chars must be at least 1")
        self._max_chars = max_chars

    @property
    def max_chars(self) -> int:
        return self._max_chars

    def format(self, chunks: list[RetrievedChunk]) -> str:
        """Render ranked chunks; returns "" for an empty ranking."""
        entries: list[str] = []
        used = 0

        for chunk in chunks:
            entry = f"[{chunk.resource_title or 'Untitled'}]: {chunk.text.strip()}"
            cost = len(entry) + (len(_ENTRY_SEPARATOR) if entries else 0)

            if used + cost <= self._max_chars:
                entries.append(entry)
                used += cost
                continue

            if not entries:
                entries.append(entry[: self._max_chars].rstrip())
            break

        return _ENTRY_SEPARATOR.join(entries)

    def build_prompt_section(self, chunks: list[RetrievedChunk]) -> str:
        """Return the headed context section, or "" so callers can omit it."""
        body = self.format(chunks)
        if not body:
            return ""
        return f"{_SECTION_HEADER}\n\n{body}"
