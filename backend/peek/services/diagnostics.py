"""Per-attempt diagnostics accumulator."""
from typing import List


class Diagnostics:
    """Messages collected during one probe attempt.

    A fresh instance is created for every attempt and handed to whoever needs
    to annotate it (the certificate inspector, the prober's error handling).
    """

    def __init__(self):
        self._messages: List[str] = []

    def add(self, text: str) -> None:
        text = (text or "").strip()
        if text:
            self._messages.append(text)

    @property
    def messages(self) -> List[str]:
        return list(self._messages)

    def __bool__(self) -> bool:
        return bool(self._messages)

    def __str__(self) -> str:
        return ", ".join(self._messages)

    def __repr__(self) -> str:
        return f"Diagnostics({self._messages!r})"
