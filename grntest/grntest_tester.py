from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from grntest.grntest_config import TesterConfig
from grntest.grntest_reporter import Reporter
from grntest.grntest_runner import Runner

LOGGER = logging.getLogger(__name__)

VERSION = "1.0.0"


class Tester:
    """Expands targets into test files and runs each one."""

    __test__ = False

    def __init__(self, config: Optional[TesterConfig] = None, reporter: Optional[Reporter] = None):
        self.config = config or TesterConfig()
        self.reporter = reporter

    def run(self, *targets) -> bool:
        succeeded = True
        if not targets:
            return succeeded

        reporter = self.reporter or Reporter(self.config)
        reporter.start()
        for target in targets:
            target_path = Path(target)
            if not target_path.exists():
                LOGGER.warning("skipping missing target: %s", target_path)
                continue
            if target_path.is_dir():
                for test_file in sorted(target_path.glob("**/*.test")):
                    if not self.run_test(test_file, reporter):
                        succeeded = False
            else:
                if not self.run_test(target_path, reporter):
                    succeeded = False
        reporter.finish()
        return succeeded

    def run_test(self, test_script_path: Path, reporter: Reporter) -> bool:
        runner = Runner(self.config, test_script_path)
        return runner.run(reporter)
