"""Kernel command line parsing.

Supports key-only switches and ``key=value`` pairs. Whitespace inside double
quotes does not split parameters, and keys compare with ``-`` and ``_``
treated as the same character.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

# Prefix of arguments consumed by dracut in the initramfs.
INITRD_ARG_PREFIX = "rd."
ROOTFLAGS = "rootflags"

# What the kernel treats as a separator; Unicode spaces are part of a value.
_ASCII_WHITESPACE = frozenset(" \t\n\r\x0b\x0c")


def _normalize_key(key: str) -> str:
    return key.replace("-", "_")


@dataclass(frozen=True)
class Parameter:
    parameter: str
    key: str
    value: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "Parameter":
        if "=" not in text:
            return cls(parameter=text, key=text, value=None)
        key, value = text.split("=", 1)
        # Only the first and last double quotes are stripped.
        if value.startswith('"'):
            value = value[1:]
        if value.endswith('"'):
            value = value[:-1]
        return cls(parameter=text, key=key, value=value)

    def matches(self, key: str) -> bool:
        return _normalize_key(self.key) == _normalize_key(key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Parameter):
            return NotImplemented
        return self.matches(other.key) and self.value == other.value

    def __hash__(self) -> int:
        return hash((_normalize_key(self.key), self.value))

    def __str__(self) -> str:
        return self.parameter


def split_params(text: str) -> List[str]:
    """Split on ASCII whitespace that is not inside double quotes."""

    out: List[str] = []
    cur: List[str] = []
    in_quotes = False
    for c in text:
        if c == '"':
            in_quotes = not in_quotes
        if not in_quotes and c in _ASCII_WHITESPACE:
            if cur:
                out.append("".join(cur))
                cur = []
            continue
        cur.append(c)
    if cur:
        out.append("".join(cur))
    return out


class Cmdline:
    """A parsed kernel command line."""

    def __init__(self, text: str = "") -> None:
        self._params = [Parameter.parse(p) for p in split_params(text)]

    @classmethod
    def from_proc(cls, path: Union[str, Path] = "/proc/cmdline") -> "Cmdline":
        return cls(Path(path).read_text(encoding="utf-8"))

    @classmethod
    def from_params(cls, params: Iterable[Union[str, Parameter]]) -> "Cmdline":
        return cls(" ".join(str(p) for p in params))

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __str__(self) -> str:
        return " ".join(p.parameter for p in self._params)

    def __repr__(self) -> str:
        return f"Cmdline({str(self)!r})"

    def find(self, key: str) -> Optional[Parameter]:
        """First parameter with the given key, or None."""
        return next((p for p in self._params if p.matches(key)), None)

    def find_all_starting_with(self, prefix: str) -> List[Parameter]:
        return [p for p in self._params if p.key.startswith(prefix)]

    def value_of(self, key: str) -> Optional[str]:
        p = self.find(key)
        return p.value if p else None

    def require_value_of(self, key: str) -> str:
        value = self.value_of(key)
        if value is None:
            raise KeyError(f"Failed to find kernel argument '{key}'")
        return value

    def prepend(self, extra: Iterable[Union[str, Parameter]]) -> "Cmdline":
        """Return a new command line with ``extra`` first.

        Existing parameters equal to one being added are dropped so that
        repeated edits of the same entry do not accumulate duplicates.
        """

        added = [p if isinstance(p, Parameter) else Parameter.parse(p) for p in extra]
        kept = [p for p in self._params if p not in added]
        return Cmdline.from_params([*added, *kept])
