"""Token vocabulary used to build payloads."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from mxfuzz.errors import ConfigurationError


def wrap_tag(name: str) -> str:
    """Turn a raw tag name into a markup token (``b`` -> ``<b>``)."""

    return f"<{name}>"


@dataclass(frozen=True)
class Alphabet:
    """Ordered, non-empty, immutable sequence of markup tokens."""

    tokens: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.tokens:
            raise ConfigurationError("Alphabet is empty; at least one tag is required.")

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "Alphabet":
        """Build from raw tag names, skipping blank entries."""

        return cls(tuple(wrap_tag(name.strip()) for name in names if name.strip()))

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self):
        return iter(self.tokens)

    def __getitem__(self, index: int) -> str:
        return self.tokens[index]


def load_alphabet(path: str | Path) -> Alphabet:
    """Read one tag name per line from ``path``.

    Missing, unreadable or empty sources raise ConfigurationError.
    """

    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Cannot read HTML tags file {source}: {exc}") from exc

    try:
        return Alphabet.from_names(text.splitlines())
    except ConfigurationError as exc:
        raise ConfigurationError(f"HTML tags file {source} contains no tags.") from exc
