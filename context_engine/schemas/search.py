"""Search result schemas."""

from __future__ import annotations

from context_engine.schemas.base import StrictModel

__all__ = [
    'NO_CONTEXT_FOUND',
    'SearchContextResult',
]

# Returned when the backend answers with an empty retrieval
NO_CONTEXT_FOUND = 'No relevant code context found for your query.'


class SearchContextResult(StrictModel):
    """Outcome of a coordinated search request.

    is_error marks a tool-level failure: the text explains it and the caller
    reports it without raising.
    """

    text: str
    hint: str | None = None
    is_error: bool = False

    def render(self) -> str:
        """Search text with the hint (if any) appended."""
        if self.hint is None:
            return self.text
        return f'{self.text}\n\n{self.hint}'
