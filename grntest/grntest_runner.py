"""
Runs one `.test` file: spawns groonga, executes the script, compares the
normalized result with `<name>.expected` and leaves `.reject` / `.actual`
files behind for inspection.
"""
from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from grntest.grntest_channel import spawn_groonga
from grntest.grntest_config import TesterConfig
from grntest.grntest_context import ExecutionContext
from grntest.grntest_executer import Executer
from grntest.grntest_normalizer import MAX_N_COLUMNS, normalize_result

LOGGER = logging.getLogger(__name__)


class Runner:
    def __init__(self, config: TesterConfig, test_script_path):
        self.config = config
        self.test_script_path = Path(test_script_path)
        self.max_n_columns = MAX_N_COLUMNS
        self.context: Optional[ExecutionContext] = None

    def run(self, reporter) -> bool:
        succeeded = True

        reporter.start_test(self.test_script_path)
        context = self.run_groonga_script()
        if context.omitted:
            reporter.omit_test()
        else:
            actual_result = normalize_result(context.result, self.max_n_columns)
            expected_result = self.read_expected_result()
            if expected_result is not None:
                if actual_result == expected_result:
                    reporter.pass_test()
                    self.remove_reject_file()
                else:
                    reporter.fail_test(expected_result, actual_result)
                    self.output_reject_file(actual_result)
                    succeeded = False
            else:
                reporter.no_check_test(actual_result)
                self.output_actual_file(actual_result)
        reporter.finish_test()

        return succeeded

    def run_groonga_script(self) -> ExecutionContext:
        context = ExecutionContext()
        context.base_directory = Path(self.config.base_directory)
        context.output_type = self.config.output_type
        self.context = context
        with self._temporary_directory() as directory_path:
            context.temporary_directory_path = directory_path
            context.db_path = directory_path / "db"
            with spawn_groonga(self.config.groonga, context.db_path,
                               first_timeout=self.config.first_timeout) as groonga:
                executer = Executer(groonga, context)
                with context.abort_scope():
                    executer.execute(self.test_script_path)
        return context

    @contextmanager
    def _temporary_directory(self) -> Iterator[Path]:
        path = Path(self.config.temporary_directory)
        shutil.rmtree(path, ignore_errors=True)
        path.mkdir(parents=True, exist_ok=True)
        try:
            yield path
        finally:
            shutil.rmtree(path, ignore_errors=True)

    # ------------------------------------------------------------------
    # Related files
    # ------------------------------------------------------------------

    def have_extension(self) -> bool:
        return bool(self.test_script_path.suffix)

    def related_file_path(self, extension: str) -> Optional[Path]:
        if not self.have_extension():
            return None
        path = self.test_script_path.with_suffix(f".{extension}")
        if path == self.test_script_path:
            return None
        return path

    def read_expected_result(self) -> Optional[bytes]:
        result_path = self.related_file_path("expected")
        if result_path is None or not result_path.exists():
            return None
        return result_path.read_bytes()

    def remove_reject_file(self) -> None:
        reject_path = self.related_file_path("reject")
        if reject_path is None:
            return
        reject_path.unlink(missing_ok=True)

    def output_reject_file(self, actual_result: bytes) -> None:
        self._output_actual_result(actual_result, "reject")

    def output_actual_file(self, actual_result: bytes) -> None:
        self._output_actual_result(actual_result, "actual")

    def _output_actual_result(self, actual_result: bytes, suffix: str) -> None:
        result_path = self.related_file_path(suffix)
        if result_path is None:
            return
        LOGGER.debug("writing %s", result_path)
        result_path.write_bytes(actual_result)
