"""
Execution context shared by a top-level script and every script it includes.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from grntest.grntest_datatypes import AbortExecution, ExecuterError, OnErrorPolicy, ResultLog

LOGGER = logging.getLogger(__name__)


class ExecutionContext:
    def __init__(self):
        self.logging = True
        self.base_directory = Path(".")
        self.temporary_directory_path = Path("tmp")
        self.db_path = Path("tmp") / "db"
        self.result = ResultLog()
        self.output_type = "json"
        self.on_error = OnErrorPolicy.DEFAULT
        self.abort_tag: Optional[object] = None
        self.omitted = False
        self.n_nested = 0

    @contextmanager
    def execute(self):
        """Nesting scope for one script file; the depth is restored on every exit path."""
        self.n_nested += 1
        try:
            yield self
        finally:
            self.n_nested -= 1

    @property
    def top_level(self) -> bool:
        # Never cache: includes change the depth while a script is running.
        return self.n_nested == 1

    @contextmanager
    def abort_scope(self):
        """Establish the abort tag for one top-level run and swallow its own abort."""
        if self.abort_tag is not None:
            raise RuntimeError("an abort scope is already established for this run")
        tag = object()
        self.abort_tag = tag
        try:
            yield tag
        except AbortExecution as e:
            if e.tag is not tag:
                raise
            LOGGER.debug("execution aborted (omitted=%s)", self.omitted)
        finally:
            self.abort_tag = None

    def set_on_error(self, policy) -> None:
        try:
            self.on_error = OnErrorPolicy(policy)
        except ValueError:
            raise ExecuterError(f"unknown on-error policy: {policy!r}") from None

    def error(self) -> None:
        match self.on_error:
            case OnErrorPolicy.OMIT:
                self.omit()
            case OnErrorPolicy.DEFAULT:
                pass

    def omit(self) -> None:
        if self.abort_tag is None:
            raise ExecuterError("cannot omit: no abort scope is established")
        self.omitted = True
        self.abort()

    def abort(self) -> None:
        if self.abort_tag is None:
            raise ExecuterError("cannot abort: no abort scope is established")
        raise AbortExecution(self.abort_tag)
