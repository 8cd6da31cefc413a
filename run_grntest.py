import argparse
import logging
import sys
from typing import List, Optional

from grntest.grntest_config import ConfigError, TesterConfig, load_config
from grntest.grntest_tester import Tester, VERSION

LOGGER = logging.getLogger("grntest")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)


def create_option_parser() -> argparse.ArgumentParser:
    defaults = TesterConfig()
    parser = argparse.ArgumentParser(
        prog="grntest",
        description="Run groonga test scripts and compare their output with .expected files.",
    )
    parser.add_argument("targets", nargs="*", metavar="TEST_FILE_OR_DIRECTORY")
    parser.add_argument("--groonga", metavar="COMMAND",
                        help=f"Use COMMAND as groonga command ({defaults.groonga})")
    parser.add_argument("--base-directory", metavar="DIRECTORY",
                        help=f"Use DIRECTORY as a base directory of relative path ({defaults.base_directory})")
    parser.add_argument("--diff", metavar="DIFF",
                        help=f"Use DIFF as diff command ({defaults.diff})")
    parser.add_argument("--diff-option", metavar="OPTION", action="append", dest="diff_options",
                        help=("Use OPTION as diff command option; repeat for several options, "
                              f"OPTION may start with a dash ({' '.join(defaults.diff_options)})"))
    parser.add_argument("--config", metavar="FILE", help="Read settings from a YAML file")
    parser.add_argument("--debug", action="store_true", help="Log debug messages to stderr")
    parser.add_argument("--version", action="version", version=VERSION)
    return parser


def normalize_argv(argv: List[str]) -> List[str]:
    """Glue `--diff-option VALUE` into `--diff-option=VALUE` so VALUE may start with a dash."""
    normalized = []
    rest = iter(argv)
    for arg in rest:
        if arg == "--":
            normalized.append(arg)
            normalized.extend(rest)
            break
        if arg == "--diff-option":
            value = next(rest, None)
            if value is not None:
                arg = f"{arg}={value}"
        normalized.append(arg)
    return normalized


def build_config(args: argparse.Namespace) -> TesterConfig:
    config = TesterConfig()
    if args.config:
        config = load_config(args.config, config)
    if args.groonga:
        config.groonga = args.groonga
    if args.base_directory:
        config.update({"base_directory": args.base_directory})
    if args.diff:
        # A new diff command does not inherit the default diff's options.
        config.diff = args.diff
        config.diff_options = []
    if args.diff_options:
        config.diff_options = list(args.diff_options)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_option_parser()
    args = parser.parse_args(normalize_argv(sys.argv[1:] if argv is None else argv))
    _configure_logging(args.debug)
    try:
        config = build_config(args)
    except ConfigError as e:
        LOGGER.error("%s", e)
        return 2
    tester = Tester(config)
    try:
        succeeded = tester.run(*args.targets)
    except OSError as e:
        LOGGER.error("failed to run %s: %s", config.groonga, e)
        return 2
    return 0 if succeeded else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(130)
