"""Command line entry points for conversion, sanitizing and diagnostics."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from docmirror.core import config_templates
from docmirror.core import workspace as workspace_mod
from docmirror.core.config_templates import ConfigTemplateError
from docmirror.core.logging import configure_logger, level_for_verbosity
from docmirror.core.workspace import WorkspaceError

from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    ConvertConfig,
    LoadResult,
    load_config,
)
from .converter import PandocConverter
from .errors import (
    ConfigurationError,
    ConvertConfigError,
    DiscoveryError,
    ProvisioningError,
)
from .pipeline import RunSummary, run_pipeline
from .provisioning import BinaryLocator
from .sanitizer import sanitize_tree

LOGGER_NAME = "docmirror.convert"


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a TOML config file (defaults to the workspace config).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root holding config and log files.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Echo logs to stderr; repeat (-vv) for debug output.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmirror convert",
        description=(
            "Convert every document with a given extension below a directory "
            "using pandoc, optionally mirroring the tree into another root."
        ),
        epilog=(
            "Run `docmirror convert config init` to write the default "
            f"{CONFIG_FILENAME} template."
        ),
    )
    parser.add_argument(
        "input_dir",
        type=Path,
        help="Directory searched recursively for documents.",
    )
    parser.add_argument(
        "-i",
        "--input-ext",
        help="Extension of the documents to convert (e.g. docx or .docx).",
    )
    parser.add_argument(
        "-o",
        "--output-ext",
        help="Extension of the converted files (e.g. md).",
    )
    parser.add_argument(
        "-d",
        "--output-dir",
        type=Path,
        help="Mirror the input tree below this directory instead of "
        "converting in place.",
    )
    parser.add_argument(
        "--program",
        type=Path,
        help="Converter executable to use instead of searching PATH.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Abandon a single conversion after this many seconds.",
    )
    parser.add_argument(
        "--no-sanitize",
        dest="sanitize",
        action="store_false",
        default=None,
        help="Do not rename entries containing '$' or '~' before discovery.",
    )
    parser.add_argument(
        "--log-level",
        help="Log level for the log file (defaults to INFO).",
    )
    _add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args_list = list(argv) if argv is not None else list(sys.argv[1:])

    if args_list[:1] == ["config"]:
        return _handle_config(args_list[1:])

    parser = _build_parser()
    args = parser.parse_args(args_list)

    overrides = ConfigOverrides(
        input_extension=args.input_ext,
        output_extension=args.output_ext,
        output_dir=args.output_dir,
        program=args.program,
        timeout=args.timeout,
        sanitize=args.sanitize,
        log_level=args.log_level,
    )
    try:
        load_result = load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except ConvertConfigError as exc:
        parser.error(str(exc))

    config = load_result.config
    logger, log_path = _configure_logging(load_result, args.verbose)
    logger.debug("convert CLI invoked")

    try:
        converter = _build_converter(config, logger)
        summary = run_pipeline(
            args.input_dir,
            input_extension=config.input_extension,
            output_extension=config.output_extension,
            converter=converter,
            logger=logger,
            output_dir=config.output_dir,
            sanitize=config.sanitize,
            timeout=config.timeout,
        )
    except (ConfigurationError, DiscoveryError, ProvisioningError) as exc:
        logger.error("Conversion run aborted", extra={"reason": str(exc)})
        sys.stderr.write(f"{exc}\n")
        return 1

    _print_summary(Console(highlight=False), summary, log_path)
    return summary.exit_code


def sanitize_main(argv: Sequence[str] | None = None) -> int:
    """Rename mangled entries below a directory without converting."""

    parser = argparse.ArgumentParser(
        prog="docmirror sanitize",
        description=(
            "Rename files and folders whose names contain '$' or '~', "
            "replacing those characters with '_'."
        ),
    )
    parser.add_argument("input_dir", type=Path, help="Directory to repair.")
    _add_common_arguments(parser)
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        load_result = load_config(
            config_path=args.config, workspace_path=args.workspace
        )
    except ConvertConfigError as exc:
        parser.error(str(exc))
    logger, _ = _configure_logging(load_result, args.verbose)

    root = args.input_dir.expanduser()
    if not root.is_dir():
        sys.stderr.write(f"Input path is not a directory: {root}\n")
        return 1
    try:
        report = sanitize_tree(root, logger=logger)
    except DiscoveryError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    for source, target in report.renamed:
        sys.stdout.write(f"renamed {source} -> {target}\n")
    sys.stdout.write(f"{report.count} entries renamed under {root}\n")
    return 0


def doctor_main(argv: Sequence[str] | None = None) -> int:
    """Report which converter binary would be used and whether it runs."""

    parser = argparse.ArgumentParser(
        prog="docmirror doctor",
        description="Check that the converter executable is available.",
    )
    parser.add_argument(
        "--program",
        type=Path,
        help="Converter executable to check instead of searching PATH.",
    )
    _add_common_arguments(parser)
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        load_result = load_config(
            config_path=args.config,
            overrides=ConfigOverrides(program=args.program),
            workspace_path=args.workspace,
        )
    except ConvertConfigError as exc:
        parser.error(str(exc))
    logger, log_path = _configure_logging(load_result, args.verbose)

    try:
        converter = _build_converter(load_result.config, logger)
    except ProvisioningError as exc:
        sys.stderr.write(f"converter: not found ({exc})\n")
        return 1

    installed = asyncio.run(converter.check_installed())
    status = "ok" if installed else "not runnable"
    lines = [
        f"converter: {converter.name()} ({status})",
        f"workspace: {load_result.layout.home}",
        f"config:    {load_result.config_path or '(defaults)'}",
        f"log file:  {log_path}",
    ]
    sys.stdout.write("\n".join(lines) + "\n")
    return 0 if installed else 1


def _configure_logging(load_result: LoadResult, verbosity: int):
    return configure_logger(
        LOGGER_NAME,
        log_dir=load_result.layout.path_for("logs"),
        level=level_for_verbosity(verbosity, load_result.config.log_level),
        verbose=verbosity > 0,
    )


def _build_converter(config: ConvertConfig, logger) -> PandocConverter:
    locator = BinaryLocator(
        program=config.program,
        embedded_payload=config.embedded_payload,
        logger=logger,
    )
    return PandocConverter(locator.resolve(), logger=logger)


def _print_summary(
    console: Console, summary: RunSummary, log_path: Optional[Path]
) -> None:
    report = summary.report
    table = Table(
        title="docmirror summary",
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Discovered", str(summary.discovered))
    table.add_row("Skipped (output exists)", str(report.skipped))
    table.add_row("Dispatched", str(report.total))
    table.add_row("Converted", str(report.succeeded))
    table.add_row("Task failures", str(report.task_failures))
    table.add_row(
        "Infrastructure failures", str(report.infrastructure_failures)
    )
    table.add_row("Success rate", f"{report.success_rate:.2f}%")
    console.print(table)

    if summary.failures:
        failures = Table(title="Failures", box=box.SIMPLE, expand=False)
        failures.add_column("Source", overflow="fold")
        failures.add_column("Kind")
        failures.add_column("Reason", overflow="fold")
        for outcome in summary.failures:
            failures.add_row(
                str(outcome.source),
                outcome.status.value,
                outcome.reason or "",
            )
        console.print(failures)

    console.print(f"Output: {summary.output_dir or 'in place'}")
    if log_path is not None:
        console.print(f"Log file: {log_path}")


def _handle_config(argv: Sequence[str]) -> int:
    parser = argparse.ArgumentParser(
        prog="docmirror convert config",
        description="Manage the conversion configuration file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    init_parser = subparsers.add_parser(
        "init",
        help=f"Write the default {CONFIG_FILENAME} template.",
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        help="Destination for the config TOML (defaults to the workspace).",
    )
    init_parser.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root used to resolve the default config path.",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if it already exists.",
    )
    args = parser.parse_args(argv)

    try:
        if args.path is not None:
            target = args.path.expanduser().absolute()
        else:
            layout = workspace_mod.ensure_workspace(path=args.workspace)
            target = layout.path_for("config") / CONFIG_FILENAME
    except WorkspaceError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    template = config_templates.get_template("convert")
    try:
        written = template.write(target, overwrite=args.force)
    except ConfigTemplateError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    sys.stdout.write(f"Wrote convert config to {written}\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
