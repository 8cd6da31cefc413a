"""
Result records and the error taxonomy shared by the execution engine.
"""
from __future__ import annotations

import collections.abc
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class ExecuterError(Exception):
    """Base class for failures raised while executing one script line."""


class NotExist(ExecuterError):
    def __init__(self, path):
        self.path = Path(path)
        super().__init__(f"<{path}> doesn't exist.")


class CommandParseError(ExecuterError):
    """Raised when a command line cannot be split into shell words."""


class ChannelError(ExecuterError):
    """Raised when the server stream rejects a write."""


class AbortExecution(Exception):
    """Unwinds every nested executer back to the scope that owns `tag`."""

    def __init__(self, tag: object):
        super().__init__("execution aborted")
        self.tag = tag


class ResultTag(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    ERROR = "error"


class OnErrorPolicy(str, Enum):
    DEFAULT = "default"
    OMIT = "omit"


@dataclass
class ResultEntry:
    tag: ResultTag
    content: bytes
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def command(self) -> Optional[str]:
        return self.options.get("command")

    @property
    def format(self) -> Optional[str]:
        return self.options.get("format")


class ResultLog(collections.abc.Sequence):
    """Append-only sequence of ResultEntry objects for one top-level run."""

    def __init__(self, entries: Optional[List[ResultEntry]] = None):
        self._entries: List[ResultEntry] = list(entries or [])

    def __len__(self):
        return len(self._entries)

    def __getitem__(self, idx):
        return self._entries[idx]

    def __iter__(self):
        return iter(self._entries)

    def __repr__(self):
        return f"ResultLog({self._entries!r})"

    def append(self, tag: ResultTag, content: bytes, options: Optional[Dict[str, Any]] = None) -> ResultEntry:
        entry = ResultEntry(tag, content, dict(options or {}))
        self._entries.append(entry)
        return entry

    def tagged(self, tag: ResultTag) -> List[ResultEntry]:
        return [e for e in self._entries if e.tag is tag]


__all__ = [
    "AbortExecution",
    "ChannelError",
    "CommandParseError",
    "ExecuterError",
    "NotExist",
    "OnErrorPolicy",
    "ResultEntry",
    "ResultLog",
    "ResultTag",
]
