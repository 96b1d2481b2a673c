#!/usr/bin/env python3
from __future__ import annotations

import argparse
import platform
import sys
from dataclasses import replace
from pathlib import Path

from loguru import logger

from libusage import __version__

from .aggregator import make_aggregator
from .archive import ArchiveReadError, list_archives
from .config import MODES, REPORT_FORMATS, DetectorConfig
from .core import AnalysisTool
from .diagnostics import Diagnostics
from .findings import FAILED, MATCHED, NO_MATCH, ArchiveOutcome, Failure
from .report import package_label, report_path, write_report
from .scanner import PackageMatchScanner
from .tools import FieldAccessTool, PackageCallTool


def normalize_package(package: str) -> str:
    """``com.acme`` -> ``Lcom/acme``, the owner-signature prefix the tools match on."""
    return "L" + package.replace(".", "/")


class Analyzer:
    def __init__(self, config: DetectorConfig):
        self.config = config
        self.prefix = normalize_package(config.package)
        self.tools: list[AnalysisTool] = []
        self.diagnostics = Diagnostics()
        if config.output is None:
            logger.info("Output directory set to the current dir")
            self.output = Path(".")
        else:
            self.output = Path(config.output)

    def register(self, tool: AnalysisTool) -> None:
        self.tools.append(tool)

    def targets(self) -> list[Path]:
        if self.config.application:
            return [Path(self.config.application)]
        return list_archives(self.config.directory, self.config.extensions)

    def analyze_app(self, app: Path) -> ArchiveOutcome:
        scanner = PackageMatchScanner(self.tools, self.diagnostics)
        outcome = scanner.scan_archive(app, make_aggregator(self.config.mode))
        label = package_label(self.prefix)
        if outcome.status == FAILED:
            logger.error(f"Failed to process file {app}: {outcome.error}")
        elif outcome.status == MATCHED:
            logger.info(f"The app {app} contains calls to package {label}")
            path = report_path(self.output, app, self.prefix, self.config.report_format)
            if write_report(outcome.results, path, self.config.report_format):
                outcome.report = str(path)
            else:
                print(f"Impossible to dump the results of {app}", file=sys.stderr)
        else:
            logger.info(f"The app {app} does not contain any call to package {label}")
        return outcome

    def run(self) -> list[ArchiveOutcome]:
        try:
            apps = self.targets()
        except ArchiveReadError as e:
            self.diagnostics.record(Failure("archive", str(self.config.directory), e.kind, str(e)))
            return []
        return [self.analyze_app(app) for app in apps]

    def emit_summary(self, outcomes: list[ArchiveOutcome]) -> None:
        counts = {MATCHED: 0, NO_MATCH: 0, FAILED: 0}
        for o in outcomes:
            counts[o.status] += 1
            print(o)
        logger.info(
            f"{len(outcomes)} archives: {counts[MATCHED]} matched, "
            f"{counts[NO_MATCH]} without match, {counts[FAILED]} failed; "
            f"{len(self.diagnostics)} units skipped"
        )
        for kind, n in sorted(self.diagnostics.by_kind().items()):
            logger.info(f"  {kind}: {n}")


def print_info():
    print("Library Usage Detector")
    print(__version__)
    print("static,bytecode")
    print(
        f"{platform.system()} {platform.release()} ({platform.machine()}), Python {platform.python_version()}"
    )


def setup_logging(debug: bool = False):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO", format="[{level}] {message}")
    logger.debug(f"Logging initialized (debug={debug})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        "libusage", description="Find the methods of compiled archives that call into a package"
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-a", "--application", help="the application to be checked (.jar or .class)")
    group.add_argument("-d", "--directory", help="the directory containing the applications to be checked")
    parser.add_argument("-p", "--package", help="the package of the method calls we want to check")
    parser.add_argument("-o", "--output", help="the directory where the output will be dumped")
    parser.add_argument("--format", dest="report_format", choices=REPORT_FORMATS, help="report file format")
    parser.add_argument("--mode", choices=MODES, help="ordered by caller class, or legacy unique set")
    parser.add_argument("--fields", dest="include_fields", action="store_true", default=None,
                        help="also report field reads and writes")
    parser.add_argument("--ext", dest="extensions", action="append",
                        help="archive extension considered in directory mode (repeatable)")
    parser.add_argument("--config", help="JSON file with default options")
    parser.add_argument("--info", action="store_true", help="Print analyzer info and exit")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")
    return parser


def load_config(args: argparse.Namespace, parser: argparse.ArgumentParser) -> DetectorConfig:
    """Command-line values override those of ``--config``."""
    overrides = {
        k: v for k, v in vars(args).items()
        if k not in ("config", "info") and v is not None
    }
    if "extensions" in overrides:
        overrides["extensions"] = tuple(overrides["extensions"])
    if args.application or args.directory:
        overrides.setdefault("application", None)
        overrides.setdefault("directory", None)
    try:
        base = DetectorConfig.from_json(args.config) if args.config else DetectorConfig()
        config = replace(base, **overrides)
    except (OSError, ValueError, TypeError) as e:
        parser.error(str(e))
    if not config.package:
        parser.error("the following arguments are required: -p/--package")
    if bool(config.application) == bool(config.directory):
        parser.error("exactly one of -a/--application or -d/--directory is required")
    return config


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.info:
        print_info()
        return 0

    config = load_config(args, parser)
    setup_logging(config.debug)

    analyzer = Analyzer(config)
    analyzer.register(PackageCallTool(analyzer.prefix))
    if config.include_fields:
        analyzer.register(FieldAccessTool(analyzer.prefix))
    outcomes = analyzer.run()
    analyzer.emit_summary(outcomes)
    return 0


if __name__ == "__main__":
    sys.exit(main())
