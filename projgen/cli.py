"""projgen command line interface.

Usage::

    projgen generate my-app --template default --component docker -o ./out
    projgen validate ./out/my-app --fix
    projgen audit ./out/my-app --report --format markdown
    projgen check ./out/my-app
    projgen config export my-app.yaml --name my-app
    projgen offline sync
    projgen watch ./out/my-app --interval 2
"""

from __future__ import annotations

import argparse
import asyncio
import stat
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Optional

from projgen import __version__
from projgen.app import create_manager
from projgen.config import REPORT_FORMATS, Config
from projgen.config_manager import CONFIG_FORMATS, ConfigFormatError
from projgen.logger import get_logger, setup_logging
from projgen.models import AuditOptions, ProjectConfig, ValidationOptions
from projgen.utils import (
    console,
    create_progress,
    format_duration,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    print_workflow_header,
    state_markup,
)
from projgen.workflow import (
    AuditWorkflowOptions,
    ConfigurationWorkflowOptions,
    OfflineWorkflowOptions,
    PhaseError,
    ProjectWorkflowOptions,
    ValidationAuditWorkflowOptions,
    ValidationWorkflowOptions,
    Workflow,
    WorkflowError,
    WorkflowManager,
)
from projgen.workflow.models import WorkflowResult

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_project_arguments(parser: argparse.ArgumentParser, name_required: bool = True) -> None:
    if name_required:
        parser.add_argument("name", help="Project name")
    else:
        parser.add_argument("--name", default="", help="Project name")
    parser.add_argument("--config", dest="project_config", default=None,
                        help="Load the project configuration from a YAML/JSON file")
    parser.add_argument("--template", "-t", default=None, help="Template set (default: default)")
    parser.add_argument("--description", default=None, help="Short project description")
    parser.add_argument("--author", default=None)
    parser.add_argument("--email", default=None)
    parser.add_argument("--license", default=None, help="SPDX licence id (default: MIT)")
    parser.add_argument("--component", "-c", action="append", default=[],
                        help="Optional component to include (repeatable)")
    parser.add_argument("--var", action="append", default=[], metavar="KEY=VALUE",
                        help="Extra template variable (repeatable)")


def _add_report_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--report", action="store_true", help="Write a report file")
    parser.add_argument("--format", dest="report_format", choices=REPORT_FORMATS, default=None,
                        help="Report format (default from configuration)")
    parser.add_argument("--output-file", default="", help="Report path")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="projgen",
        description="projgen -- project scaffolding with validation and audit workflows",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  projgen generate my-app -c docker -c ci -o ./out\n"
            "  projgen check ./out/my-app --fix --report\n"
            "  projgen offline validate --repair\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--settings", default=None,
                        help="projgen settings JSON (default: PROJGEN_* environment variables)")
    parser.add_argument("--log-level", default=None, help="Logging level (default: WARNING)")
    parser.add_argument("--output-format", choices=("text", "json"), default="text",
                        help="Print results as rich text or JSON")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Abort the workflow after this many seconds")

    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a new project")
    _add_project_arguments(gen)
    gen.add_argument("--output", "-o", default=None, help="Parent directory (default: .)")
    gen.add_argument("--force", action="store_true", help="Overwrite an existing directory")
    gen.add_argument("--backup", action="store_true", help="Back up an existing directory first")
    gen.add_argument("--dry-run", action="store_true", help="Check inputs without writing files")
    gen.add_argument("--offline", action="store_true", help="Use cached templates only")
    gen.add_argument("--no-validate", action="store_true", help="Skip post-generation validation")
    gen.add_argument("--audit", action="store_true", help="Audit the generated project")
    gen.add_argument("--report", action="store_true", help="Write a generation report")
    gen.add_argument("--format", dest="report_format", choices=REPORT_FORMATS, default=None)

    val = sub.add_parser("validate", help="Validate an existing project")
    val.add_argument("path", help="Project directory")
    val.add_argument("--fix", action="store_true", help="Fix fixable issues")
    val.add_argument("--strict", action="store_true", help="Treat warnings as errors")
    val.add_argument("--rule", action="append", default=[], help="Only run this rule (repeatable)")
    _add_report_arguments(val)

    aud = sub.add_parser("audit", help="Audit an existing project")
    aud.add_argument("path", help="Project directory")
    aud.add_argument("--skip", action="append", default=[],
                     choices=("security", "quality", "licenses", "performance"),
                     help="Skip an audit category (repeatable)")
    aud.add_argument("--detailed", action="store_true", help="Include every finding in the summary")
    _add_report_arguments(aud)

    chk = sub.add_parser("check", help="Validate and audit an existing project")
    chk.add_argument("path", help="Project directory")
    chk.add_argument("--fix", action="store_true", help="Fix fixable validation issues")
    _add_report_arguments(chk)

    cfg = sub.add_parser("config", help="Manage project configuration files")
    cfg_sub = cfg.add_subparsers(dest="operation", required=True)
    exp = cfg_sub.add_parser("export", help="Write a project configuration file")
    exp.add_argument("output", help="Destination file")
    _add_project_arguments(exp, name_required=False)
    exp.add_argument("--config-format", choices=CONFIG_FORMATS, default=None,
                     help="File format (default: from the file suffix)")
    imp = cfg_sub.add_parser("import", help="Load and show a configuration file")
    imp.add_argument("path")
    imp.add_argument("--validate", action="store_true")
    cval = cfg_sub.add_parser("validate", help="Validate a configuration file")
    cval.add_argument("path")
    mrg = cfg_sub.add_parser("merge", help="Merge configuration files left to right")
    mrg.add_argument("sources", nargs="+")
    mrg.add_argument("--output", "-o", default="", help="Write the merged configuration here")
    mrg.add_argument("--config-format", choices=CONFIG_FORMATS, default="yaml")

    off = sub.add_parser("offline", help="Offline template cache operations")
    off_sub = off.add_subparsers(dest="operation", required=True)
    sync = off_sub.add_parser("sync", help="Show cache statistics, refreshing the cache first")
    sync.add_argument("--no-update", action="store_true", help="Only report statistics")
    oval = off_sub.add_parser("validate", help="Check cache integrity")
    oval.add_argument("--repair", action="store_true", help="Repair the cache if it is inconsistent")
    ogen = off_sub.add_parser("generate", help="Generate a project from cached templates")
    _add_project_arguments(ogen)
    ogen.add_argument("--output", "-o", default=None, help="Parent directory (default: .)")

    tpl = sub.add_parser("templates", help="List available template sets")
    tpl.set_defaults(operation="list")

    wch = sub.add_parser("watch", help="Re-validate a project whenever its files change")
    wch.add_argument("path", help="Project directory")
    wch.add_argument("--interval", type=float, default=2.0, help="Polling interval in seconds")
    wch.add_argument("--iterations", type=int, default=None, help="Stop after this many checks")

    return parser


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_variables(pairs: list[str]) -> dict[str, str]:
    variables: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"invalid --var {pair!r}, expected KEY=VALUE")
        variables[key.strip()] = value
    return variables


async def _project_config(args: argparse.Namespace, manager: WorkflowManager) -> ProjectConfig:
    """Build a ProjectConfig from ``--config`` plus command line overrides."""
    if args.project_config:
        base = await manager.import_configuration(args.project_config) or ProjectConfig()
    else:
        base = ProjectConfig()

    overrides: dict[str, Any] = {}
    if getattr(args, "name", ""):
        overrides["name"] = args.name
    for field in ("template", "description", "author", "email", "license"):
        value = getattr(args, field, None)
        if value is not None:
            overrides[field] = value
    if args.component:
        overrides["components"] = list(dict.fromkeys([*base.components, *args.component]))
    if args.var:
        overrides["variables"] = {**base.variables, **_parse_variables(args.var)}
    return base.model_copy(update=overrides)


def _result_rows(result: WorkflowResult) -> dict[str, str]:
    rows: dict[str, str] = {
        "Workflow": result.workflow_id,
        "Success": "yes" if result.success else "no",
        "Duration": format_duration(result.duration),
    }
    data = result.model_dump()
    if data.get("project_path"):
        rows["Project"] = data["project_path"]
    if "generated_files" in data:
        rows["Generated files"] = str(len(data["generated_files"]))
    if data.get("backup_path"):
        rows["Backup"] = data["backup_path"]
    validation = data.get("validation_result")
    if validation:
        rows["Validation"] = (
            f"{'valid' if validation['valid'] else 'invalid'} "
            f"({validation['error_count']} errors, {validation['warning_count']} warnings)"
        )
    audit = data.get("audit_result")
    if audit:
        rows["Audit"] = f"{audit['overall_score']}/100 ({'passed' if audit['passed'] else 'failed'})"
    if "fixes_applied" in data and data["fixes_applied"]:
        rows["Fixes applied"] = str(len(data["fixes_applied"]))
    if data.get("cache_stats"):
        stats = data["cache_stats"]
        rows["Cache"] = f"{stats['total_entries']} entries, {stats['total_size']} bytes"
        rows["Cache valid"] = "yes" if stats["valid"] else "no"
    if data.get("output_path"):
        rows["Output"] = data["output_path"]
    for path in data.get("report_files") or ([result.report_path] if result.report_path else []):
        rows.setdefault("Report", path)
    return rows


def _emit_result(result: WorkflowResult, args: argparse.Namespace, title: str) -> None:
    if args.output_format == "json":
        print(result.model_dump_json(indent=2))
        return
    print_summary_table(_result_rows(result), title=title)
    for warning in result.warnings:
        print_warning(f"  {warning}")
    if result.success:
        print_success(f"{title} completed.")


async def _run_workflow(
    workflow: Workflow[Any], args: argparse.Namespace, target: str
) -> WorkflowResult:
    """Execute *workflow* with a progress bar in text mode and the CLI timeout."""
    if args.output_format == "json":
        return await asyncio.wait_for(workflow.execute(), timeout=args.timeout)

    print_workflow_header(workflow.kind.value, target)
    with create_progress() as progress:
        task = progress.add_task(workflow.kind.value, total=100)
        unsubscribe = workflow.add_progress_listener(
            lambda p: progress.update(
                task, completed=p.percent_complete, description=f"{p.stage}: {p.step}"
            )
        )
        try:
            return await asyncio.wait_for(workflow.execute(), timeout=args.timeout)
        finally:
            unsubscribe()


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _cmd_generate(args: argparse.Namespace, manager: WorkflowManager, settings: Config) -> int:
    config = await _project_config(args, manager)
    options = ProjectWorkflowOptions(
        output_path=str(args.output or settings.output_dir),
        force=args.force,
        backup_existing=args.backup,
        dry_run=args.dry_run,
        offline=args.offline,
        validate_after=not args.no_validate,
        audit_after=args.audit,
        generate_report=args.report,
        report_format=args.report_format or settings.reports.default_format,
    )
    workflow = manager.create_project_workflow(config, options)
    result = await _run_workflow(workflow, args, config.name)
    _emit_result(result, args, "Project generation")
    return EXIT_OK


def _report_target(args: argparse.Namespace, settings: Config) -> str:
    if args.output_file or settings.reports.output_dir is None:
        return args.output_file
    fmt = args.report_format or settings.reports.default_format
    return str(settings.reports.output_dir / f"{Path(args.path).name}-report.{fmt}")


async def _cmd_validate(args: argparse.Namespace, manager: WorkflowManager, settings: Config) -> int:
    options = ValidationWorkflowOptions(
        validation_options=ValidationOptions(strict=args.strict, rules=args.rule),
        fix_issues=args.fix,
        generate_report=args.report,
        output_format=args.report_format or settings.reports.default_format,
        output_file=_report_target(args, settings),
    )
    result = await _run_workflow(manager.create_validation_workflow(args.path, options), args, args.path)
    _emit_result(result, args, "Validation")
    valid = result.validation_result is not None and result.validation_result.valid
    return EXIT_OK if valid or result.fixes_applied else EXIT_FAILED


async def _cmd_audit(args: argparse.Namespace, manager: WorkflowManager, settings: Config) -> int:
    audit_options = AuditOptions(
        detailed=args.detailed, **{category: False for category in args.skip}
    )
    options = AuditWorkflowOptions(
        audit_options=audit_options,
        generate_report=args.report,
        output_format=args.report_format or settings.reports.default_format,
        output_file=_report_target(args, settings),
    )
    result = await _run_workflow(manager.create_audit_workflow(args.path, options), args, args.path)
    _emit_result(result, args, "Audit")
    passed = result.audit_result is not None and result.audit_result.passed
    return EXIT_OK if passed else EXIT_FAILED


async def _cmd_check(args: argparse.Namespace, manager: WorkflowManager, settings: Config) -> int:
    options = ValidationAuditWorkflowOptions(
        fix_issues=args.fix,
        generate_report=args.report,
        output_format=args.report_format or settings.reports.default_format,
        output_file=_report_target(args, settings),
    )
    workflow = manager.create_validation_audit_workflow(args.path, options)
    result = await _run_workflow(workflow, args, args.path)
    _emit_result(result, args, "Validation and audit")
    return EXIT_OK


async def _cmd_config(args: argparse.Namespace, manager: WorkflowManager, settings: Config) -> int:
    if args.operation == "export":
        config = await _project_config(args, manager)
        fmt = args.config_format or ("json" if args.output.endswith(".json") else "yaml")
        options = ConfigurationWorkflowOptions(
            operation="export", config=config, output_path=args.output, format=fmt
        )
    elif args.operation == "import":
        options = ConfigurationWorkflowOptions(
            operation="import", config_path=args.path, validate_after_import=args.validate
        )
    elif args.operation == "validate":
        options = ConfigurationWorkflowOptions(operation="validate", config_path=args.path)
    else:
        options = ConfigurationWorkflowOptions(
            operation="merge",
            sources=args.sources,
            output_path=args.output,
            format=args.config_format,
        )

    workflow = manager.create_configuration_workflow(options)
    result = await _run_workflow(workflow, args, options.config_path or options.output_path)
    _emit_result(result, args, f"Configuration {args.operation}")
    if args.output_format == "text" and result.configuration is not None and args.operation != "export":
        console.print_json(result.configuration.model_dump_json())
    if result.validation_result is not None and not result.validation_result.valid:
        return EXIT_FAILED
    return EXIT_OK


async def _cmd_offline(args: argparse.Namespace, manager: WorkflowManager, settings: Config) -> int:
    if args.operation == "sync":
        options = OfflineWorkflowOptions(operation="sync", cache_update=not args.no_update)
        target = str(settings.cache.cache_dir)
    elif args.operation == "validate":
        options = OfflineWorkflowOptions(operation="validate", repair_cache=args.repair)
        target = str(settings.cache.cache_dir)
    else:
        config = await _project_config(args, manager)
        options = OfflineWorkflowOptions(
            operation="generate",
            project_config=config,
            output_path=str(args.output or settings.output_dir),
        )
        target = config.name

    result = await _run_workflow(manager.create_offline_workflow(options), args, target)
    _emit_result(result, args, f"Offline {args.operation}")
    return EXIT_OK


async def _cmd_templates(args: argparse.Namespace, manager: WorkflowManager, settings: Config) -> int:
    template_manager = manager.pipeline.template_manager
    templates = await template_manager.list_templates() if template_manager else []
    if args.output_format == "json":
        print("[" + ",".join(t.model_dump_json() for t in templates) + "]")
        return EXIT_OK
    print_summary_table({t.name: t.description or "-" for t in templates}, title="Templates")
    return EXIT_OK


def _snapshot_mtimes(root: Path) -> dict[str, float]:
    snapshot: dict[str, float] = {}
    for path in root.rglob("*"):
        if ".git" in path.parts:
            continue
        try:
            info = path.stat()
        except FileNotFoundError:
            logger.debug("File vanished during scan", fields={"path": str(path)})
            continue
        if stat.S_ISREG(info.st_mode):
            snapshot[str(path)] = info.st_mtime
    return snapshot


async def _cmd_watch(args: argparse.Namespace, manager: WorkflowManager, settings: Config) -> int:
    root = Path(args.path)
    previous: Optional[dict[str, float]] = None
    checks = 0
    exit_code = EXIT_OK
    while args.iterations is None or checks < args.iterations:
        current = await asyncio.to_thread(_snapshot_mtimes, root)
        if current != previous:
            previous = current
            workflow = manager.create_validation_workflow(str(root))
            try:
                result = await asyncio.wait_for(workflow.execute(), timeout=args.timeout)
            except asyncio.TimeoutError:
                print_error(f"Check timed out after {args.timeout}s; retrying on next poll")
                exit_code = EXIT_FAILED
                # force a re-check even if nothing changed
                previous = None
            except WorkflowError as exc:
                print_error(str(exc))
                exit_code = EXIT_FAILED
            else:
                valid = result.validation_result is not None and result.validation_result.valid
                exit_code = EXIT_OK if valid else EXIT_FAILED
                if args.output_format == "json":
                    print(result.model_dump_json())
                else:
                    state = "completed" if valid else "failed"
                    console.print(
                        f"{state_markup(state)} {root}: "
                        f"{result.validation_result.error_count if result.validation_result else 0} errors"
                    )
        checks += 1
        if args.iterations is None or checks < args.iterations:
            await asyncio.sleep(args.interval)
    return exit_code


_COMMANDS: dict[str, Callable[[argparse.Namespace, WorkflowManager, Config], Awaitable[int]]] = {
    "generate": _cmd_generate,
    "validate": _cmd_validate,
    "audit": _cmd_audit,
    "check": _cmd_check,
    "config": _cmd_config,
    "offline": _cmd_offline,
    "templates": _cmd_templates,
    "watch": _cmd_watch,
}


async def run_command(args: argparse.Namespace, manager: WorkflowManager, settings: Config) -> int:
    """Dispatch *args* to its handler, mapping workflow errors to exit codes."""
    try:
        return await _COMMANDS[args.command](args, manager, settings)
    except asyncio.TimeoutError:
        print_error(f"Timed out after {args.timeout}s")
        return EXIT_FAILED
    except PhaseError as exc:
        if args.output_format == "json" and exc.result is not None:
            print(exc.result.model_dump_json(indent=2))
        print_error(f"Error: {exc}")
        return EXIT_FAILED
    except (WorkflowError, ConfigFormatError, ValueError, OSError) as exc:
        print_error(f"Error: {exc}")
        return EXIT_FAILED


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point for ``projgen`` and ``python -m projgen``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Config.load(Path(args.settings)) if args.settings else Config.from_env()
    setup_logging(args.log_level or settings.log_level)

    manager = create_manager(settings)
    try:
        return asyncio.run(run_command(args, manager, settings))
    except KeyboardInterrupt:
        print_warning("Interrupted.")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
