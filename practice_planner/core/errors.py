from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PracticeError(Exception):
    """One problem with activities, a store or a session draft.

    ``code`` is a stable machine-readable tag; ``file``/``path`` locate the
    offending document and field when known.
    """

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<activities>"
        return f"{loc}: {self.code}: {self.message}"


class ActivityLoadError(PracticeError):
    pass


class ActivityValidationError(PracticeError):
    pass


class StoreError(PracticeError):
    pass


class SessionError(PracticeError):
    pass
