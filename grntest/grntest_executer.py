"""
Script executer: reads a `.test` script line by line and talks to groonga.

Line kinds:
  - blank lines are ignored
  - `# directive` lines (disable-logging, enable-logging, include PATH,
    on-error POLICY, omit)
  - lines ending in a backslash are joined with the next line
  - anything else is a command; `load` switches to payload mode until a line
    ending in `]` gets a non-empty response
"""
from __future__ import annotations

import logging
import os
import re
import shlex
from pathlib import Path
from typing import Optional

from grntest.grntest_context import ExecutionContext
from grntest.grntest_datatypes import AbortExecution, CommandParseError, ExecuterError, NotExist, ResultLog, ResultTag
from grntest.grntest_normalizer import response_return_code

LOGGER = logging.getLogger(__name__)

OUTPUT_FORMAT_PATTERN = re.compile(r"--output_format(?:=(.+))?")
INCLUDE_PATTERN = re.compile(rb"include\s+")
ON_ERROR_PATTERN = re.compile(rb"on-error\s+")


def _chomp(line: bytes) -> bytes:
    if line.endswith(b"\r\n"):
        return line[:-2]
    if line.endswith(b"\n"):
        return line[:-1]
    return line


def _without_newline(line: bytes) -> bytes:
    # Only "\n" counts: a line ending in "\\\r\n" is not a continuation.
    return line[:-1] if line.endswith(b"\n") else line


class Executer:
    """Runs one script file against a groonga channel, recording into a shared context."""

    def __init__(self, groonga, context: Optional[ExecutionContext] = None):
        self.groonga = groonga
        self.context = context or ExecutionContext()
        self.loading = False
        self.pending_command = b""
        self.current_command: Optional[str] = None
        self.output_format: Optional[str] = None

    def execute(self, script_path) -> ResultLog:
        script_path = Path(script_path)
        if not script_path.exists():
            raise NotExist(script_path)

        with self.context.execute():
            try:
                script_file = script_path.open("rb")
            except OSError as e:
                raise ExecuterError(f"<{script_path}> can't be read: {e.strerror or e}") from e
            with script_file:
                for lineno, line in enumerate(script_file, start=1):
                    try:
                        if self.loading:
                            self._execute_line_on_loading(line)
                        else:
                            self._execute_line_with_continuation_line_support(line)
                    except AbortExecution:
                        raise
                    except Exception as e:
                        line_info = os.fsencode(script_path) + f":{lineno}:".encode() + _chomp(line)
                        self._log_error(line_info + f": {e}".encode())
                        if not self.context.top_level:
                            raise

        return self.context.result

    # ------------------------------------------------------------------
    # Line dispatch
    # ------------------------------------------------------------------

    def _execute_line_on_loading(self, line: bytes) -> None:
        self._log_input(line)
        self.groonga.write(line)
        if _without_newline(line).endswith(b"]"):
            current_result = self.groonga.drain()
            if current_result:
                self.loading = False
                self._log_output(current_result)

    def _execute_line_with_continuation_line_support(self, line: bytes) -> None:
        body = _without_newline(line)
        if body.endswith(b"\\"):
            self.pending_command += body[:-1]
        elif not self.pending_command:
            self._execute_line(line)
        else:
            self.pending_command += line
            command, self.pending_command = self.pending_command, b""
            self._execute_line(command)

    def _execute_line(self, line: bytes) -> None:
        stripped = line.lstrip()
        if not stripped:
            return
        if stripped.startswith(b"#"):
            self._execute_comment(stripped[1:])
        else:
            self._execute_command(line)

    def _execute_comment(self, content: bytes) -> None:
        directive = content.strip()
        if directive == b"disable-logging":
            self.context.logging = False
        elif directive == b"enable-logging":
            self.context.logging = True
        elif directive == b"omit":
            LOGGER.debug("omit requested by script")
            self.context.omit()
        elif m := INCLUDE_PATTERN.match(directive):
            path = directive[m.end():].strip()
            if path:
                self._execute_script(os.fsdecode(path))
        elif m := ON_ERROR_PATTERN.match(directive):
            self.context.set_on_error(directive[m.end():].strip().decode("latin-1"))
        # Any other comment is just a comment.

    def _execute_script(self, path: str) -> None:
        script_path = Path(path)
        if not script_path.is_absolute():
            script_path = Path(self.context.base_directory) / script_path
        LOGGER.debug("including %s (depth %d)", script_path, self.context.n_nested)
        executer = type(self)(self.groonga, self.context)
        executer.execute(script_path)

    def _execute_command(self, line: bytes) -> None:
        self._extract_command_info(line)
        if self.current_command == "load":
            self.loading = True
        self._log_input(line)
        self.groonga.write(line)
        if not self.loading:
            self._log_output(self.groonga.drain())

    def _extract_command_info(self, line: bytes) -> None:
        try:
            # latin-1 keeps every byte; only ASCII option names are inspected.
            words = shlex.split(line.decode("latin-1"))
        except ValueError as e:
            raise CommandParseError(f"failed to parse command: {e}") from e
        self.current_command = words.pop(0) if words else None
        if self.current_command == "dump":
            self.output_format = "groonga-command"
            return
        self.output_format = self.context.output_type
        for i, word in enumerate(words):
            m = OUTPUT_FORMAT_PATTERN.fullmatch(word)
            if m:
                value = m.group(1)
                if value is None:
                    value = words[i + 1] if i + 1 < len(words) else None
                self.output_format = value
                break

    # ------------------------------------------------------------------
    # Result logging
    # ------------------------------------------------------------------

    def _log(self, tag: ResultTag, content: bytes, options=None) -> None:
        if not self.context.logging:
            return
        if not content:
            return
        self._log_force(tag, content, options)

    def _log_force(self, tag: ResultTag, content: bytes, options=None) -> None:
        self.context.result.append(tag, content, options)

    def _log_input(self, content: bytes) -> None:
        self._log(ResultTag.INPUT, content)

    def _log_output(self, content: bytes) -> None:
        self._log(ResultTag.OUTPUT, content,
                  {"command": self.current_command, "format": self.output_format})
        if self.output_format == "json" and content:
            return_code = response_return_code(content)
            if return_code not in (None, 0):
                LOGGER.debug("%s returned %s", self.current_command, return_code)
                self.context.error()

    def _log_error(self, content: bytes) -> None:
        self._log_force(ResultTag.ERROR, content)
