"""
Console reporter: one line per test, diffs for failures, a summary at the end.
"""
from __future__ import annotations

import os
import subprocess
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, TextIO

from grntest.grntest_config import TesterConfig


def guess_term_width(env=None) -> int:
    env = os.environ if env is None else env
    try:
        return int(env.get("COLUMNS") or env.get("TERM_WIDTH") or 79)
    except ValueError:
        return 0


def _to_text(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


class Reporter:
    def __init__(self, config: TesterConfig, output: Optional[TextIO] = None, term_width: Optional[int] = None):
        self.config = config
        self.output = output or sys.stdout
        self.term_width = guess_term_width() if term_width is None else term_width
        self.current_column = 0
        self.n_tests = 0
        self.n_passed_tests = 0
        self.failed_tests: List[str] = []
        self.omitted_tests: List[str] = []
        self.test_name: Optional[str] = None

    def start(self):
        pass

    def start_test(self, test_script_path):
        self.test_name = Path(test_script_path).name
        self._print(f"  {self.test_name}")
        self.output.flush()

    def pass_test(self):
        self._report_test_result("pass")
        self.n_passed_tests += 1

    def fail_test(self, expected: bytes, actual: bytes):
        self._report_test_result("fail")
        self._puts("=" * self.term_width)
        self._report_diff(expected, actual)
        self._puts("=" * self.term_width)
        self.failed_tests.append(self.test_name)

    def no_check_test(self, result: bytes):
        self._report_test_result("not checked")
        self._puts(_to_text(result))

    def omit_test(self):
        self._report_test_result("omitted")
        self.omitted_tests.append(self.test_name)

    def finish_test(self):
        self.n_tests += 1

    def finish(self):
        self._puts()
        self._puts(f"{self.n_tests} tests, "
                   f"{self.n_passed_tests} passes, "
                   f"{len(self.failed_tests)} failures, "
                   f"{len(self.omitted_tests)} omissions.")
        if self.n_tests == 0:
            pass_ratio = 0
        else:
            pass_ratio = (self.n_passed_tests / float(self.n_tests)) * 100
        self._puts("%.4g%% passed." % pass_ratio)

    # ------------------------------------------------------------------

    def _print(self, message: str):
        self.current_column += len(message)
        self.output.write(message)

    def _puts(self, message: str = ""):
        self.current_column = 0
        self.output.write(message if message.endswith("\n") else message + "\n")

    def _report_test_result(self, label: str):
        message = f" [{label}]"
        if self.term_width > 0:
            message = message.rjust(self.term_width - self.current_column)
        self._puts(message)

    def _report_diff(self, expected: bytes, actual: bytes):
        with _temporary_file("expected", expected) as expected_path:
            with _temporary_file("actual", actual) as actual_path:
                command = [self.config.diff, *self.config.diff_options,
                           "--label", "(actual)", str(actual_path),
                           "--label", "(expected)", str(expected_path)]
                try:
                    completed = subprocess.run(command, capture_output=True)
                except OSError as e:
                    self._puts(f"failed to run {self.config.diff}: {e}")
                    return
                self.output.write(_to_text(completed.stdout))
                if completed.stderr:
                    self.output.write(_to_text(completed.stderr))


@contextmanager
def _temporary_file(key: str, content: bytes):
    fd, name = tempfile.mkstemp(prefix=f"groonga-test-{key}")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        yield Path(name)
    finally:
        os.unlink(name)
