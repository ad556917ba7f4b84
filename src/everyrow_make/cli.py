"""
CLI module - Command line interface for EveryRow Make Toolkit

Entry point for the `erm` command using Typer.
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .bundle import BundleError, list_definition_files, load_bundle, read_component
from .checker import CheckStatus, check_bundle
from .clients import EveryRowClient, MakeClient, module_type_id
from .config import AppConfig, load_config, load_env_files, validate_everyrow, validate_make
from .constants import DEFINITION_SUFFIX, MODULES_DIR
from .iml import render_value
from .log import setup_logging
from .parameters import (
    RECOMMENDATIONS,
    SAMPLE_INPUTS,
    ParameterError,
    find_data_parameters,
    simulate_parameters,
    validate_parameter,
)
from .runners import ComponentResult, DeployRunner, RunnerCallbacks
from .smoke import run_smoke_tests
from .workflow import create_deploy_workflow

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="erm",
    help="EveryRow Make Toolkit - deploy and test the EveryRow Make.com app.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

state = {"verbose": False}


def version_callback(value: bool):
    if value:
        console.print(f"erm version {__version__}")
        raise typer.Exit()


# Type aliases for common options
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file", exists=True, dir_okay=False),
]
EnvFileOption = Annotated[
    Path | None,
    typer.Option("--env-file", "-e", help="Dotenv file with credentials (default: .env or .env.local)", exists=True),
]
AppDirArgument = Annotated[
    Path | None,
    typer.Argument(help="App directory (default: config paths.app_dir, ./app)", file_okay=False),
]


@app.callback()
def main(
    version: Annotated[
        bool, typer.Option("--version", "-V", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
):
    """EveryRow Make Toolkit - deploy and test the EveryRow Make.com app."""
    state["verbose"] = verbose


def get_config(config_path: Path | None = None, env_file: Path | None = None) -> AppConfig:
    """Load credentials from dotenv, then configuration, then set up logging."""
    loaded = load_env_files(env_file)
    config = load_config(config_path)
    setup_logging(config.logging, config.paths.logs_dir, verbose=state["verbose"], console=err_console)
    if loaded:
        console.print(f"[dim]Loaded credentials from {loaded}[/dim]")
    return config


def create_make_client(config: AppConfig) -> MakeClient:
    return MakeClient(
        api_key=config.make.api_key,
        app_id=config.make.app_id,
        app_version=config.make.app_version,
        base_url=config.make.base_url,
        timeout=config.make.timeout,
    )


def create_everyrow_client(config: AppConfig) -> EveryRowClient:
    return EveryRowClient(
        api_key=config.everyrow.api_key,
        base_url=config.everyrow.base_url,
        timeout=config.everyrow.timeout,
    )


def _fail(messages: list[str] | str) -> None:
    for message in [messages] if isinstance(messages, str) else messages:
        console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


def _resolve_app_dir(app_dir: Path | None, config: AppConfig) -> Path:
    resolved = app_dir or config.paths.app_dir
    if not resolved.is_dir():
        _fail(f"App directory not found: {resolved}")
    return resolved


def _parse_assignment(raw: str) -> tuple[str, Any]:
    """Parse key=value; the value is decoded as JSON when possible."""
    if "=" not in raw:
        raise typer.BadParameter(f"Expected key=value, got: {raw}")
    key, value = raw.split("=", 1)
    try:
        return key.strip(), json.loads(value)
    except ValueError:
        return key.strip(), value


@app.command()
def deploy(
    app_dir: AppDirArgument = None,
    app_id: Annotated[str | None, typer.Option("--app-id", help="Make.com app name/ID (MAKE_APP_ID)")] = None,
    app_version: Annotated[
        str | None, typer.Option("--app-version", help="App version (MAKE_APP_VERSION, default 1)")
    ] = None,
    base_url: Annotated[str | None, typer.Option("--base-url", help="Make.com API base URL (MAKE_BASE_URL)")] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Show the API calls without making them")] = False,
    config: ConfigOption = None,
    env_file: EnvFileOption = None,
):
    """
    Deploy the app to Make.com through the SDK API.

    Deploys base, common, connections, modules and RPCs. Connections,
    modules and RPCs are created when missing; module and RPC sections
    are always uploaded.

    [bold]Examples:[/bold]

        erm deploy

        erm deploy ./app --app-id everyrow-abc123 --app-version 2

        erm deploy --dry-run
    """
    cfg = get_config(config, env_file)
    if app_id:
        cfg.make.app_id = app_id
    if app_version:
        cfg.make.app_version = app_version
    if base_url:
        cfg.make.base_url = base_url

    if not dry_run:
        errors = validate_make(cfg)
        if errors:
            _fail(errors)

    source = _resolve_app_dir(app_dir, cfg)
    try:
        bundle = load_bundle(source)
    except BundleError as e:
        _fail(str(e))

    target = cfg.make.app_id or "<MAKE_APP_ID>"
    console.print("[bold]=== Make.com Custom App Deploy ===[/bold]")
    console.print(f"  App:  {target} v{cfg.make.app_version}")
    console.print(f"  API:  {cfg.make.base_url}")
    console.print(f"  From: {source} ({bundle.total_components} components)")
    console.print()

    workflow = create_deploy_workflow(bundle, target, cfg.make.app_version)

    def on_task_start(task_id: str, description: str):
        console.print(f"{description}...")

    def on_component_complete(component: ComponentResult):
        if component.success:
            console.print(f"  [green]✓[/green] {component.component}")
        else:
            console.print(f"  [red]✗[/red] {component.component}: {escape(component.error or '')}")

    callbacks = RunnerCallbacks(on_task_start=on_task_start, on_component_complete=on_component_complete)

    client = None if dry_run else create_make_client(cfg)
    try:
        runner = DeployRunner(client, dry_run=dry_run, connection_aliases=cfg.make.connection_aliases)
        result = runner.run(workflow, callbacks)
    finally:
        if client is not None:
            client.close()

    if dry_run:
        console.print("\n[bold]Planned API calls:[/bold]")
        for call in result.planned_calls:
            console.print(f"  {call}")
        console.print("\n[dim]Dry run - nothing deployed. Remove --dry-run to execute.[/dim]")
        return

    console.print("\n[bold]=== Deploy Summary ===[/bold]")
    console.print(f"Succeeded: {len(result.succeeded)}")
    for component in result.succeeded:
        console.print(f"  [green]✓[/green] {component.component}")

    other_errors = [e for e in result.errors if not any(e.startswith(f"{c.component}:") for c in result.components)]
    if result.failed or other_errors:
        console.print(f"[red]Failed: {len(result.failed) + len(other_errors)}[/red]")
        for component in result.failed:
            console.print(f"  [red]✗[/red] {component.component}: {escape(component.error or '')}")
        for error in other_errors:
            console.print(f"  [red]✗[/red] {escape(error)}")
        raise typer.Exit(1)

    console.print("\n[green]Deploy complete![/green]")


@app.command()
def validate(app_dir: AppDirArgument = None, config: ConfigOption = None):
    """
    Validate module definitions before deploying.

    Checks required fields (label, type, connection), the communication
    array and the definition shape.
    """
    cfg = get_config(config)
    source = _resolve_app_dir(app_dir, cfg)
    report = check_bundle(source)

    if not report.checks:
        console.print(f"[yellow]No module definitions found in {source / MODULES_DIR}[/yellow]")
        return

    table = Table(title="Module Definition Checks")
    table.add_column("Check", style="cyan")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Details", style="dim")

    for chk in report.checks:
        if chk.status == CheckStatus.PASS:
            status_str = "[green]✓ PASS[/green]"
        elif chk.status == CheckStatus.WARN:
            status_str = "[yellow]⚠ WARN[/yellow]"
        else:
            status_str = "[red]✗ FAIL[/red]"
        table.add_row(chk.name, status_str, escape(chk.details or ""))

    console.print(table)
    console.print(f"\nPassed: {report.passed}  Warnings: {report.warnings}  Failed: {report.failed}")

    if not report.is_valid:
        raise typer.Exit(1)


def _print_validation(label: str, param: dict, value: Any) -> None:
    result = validate_parameter(param, value)
    console.print(f"\n  Testing with {label} input:")
    if result.valid:
        console.print("    [green]✓[/green] Input accepted")
    else:
        console.print("    [red]✗[/red] Input rejected:")
        for error in result.errors:
            console.print(f"      - {escape(error)}")
    for warning in result.warnings:
        console.print(f"    [yellow]⚠[/yellow] {escape(warning)}")


@app.command("check-params")
def check_params(
    app_dir: AppDirArgument = None,
    prefix: Annotated[
        str, typer.Option("--prefix", "-p", help="Only modules whose file name starts with this")
    ] = "start",
    config: ConfigOption = None,
):
    """
    Simulate Make.com parameter validation for data parameters.

    Maps a collection and a JSON string into every parameter whose name
    mentions data, table or input, to catch Collection validation errors
    before deploying.
    """
    cfg = get_config(config)
    source = _resolve_app_dir(app_dir, cfg)

    console.print("[bold]=== Make.com Parameter Validation Tests ===[/bold]")
    module_files = [f for f in list_definition_files(source / MODULES_DIR) if f.name.startswith(prefix)]
    if not module_files:
        console.print(f"[yellow]No modules matching '{prefix}*{DEFINITION_SUFFIX}'[/yellow]")

    for path in module_files:
        console.print(f"\n[bold]=== Testing: {path.name.removesuffix(DEFINITION_SUFFIX)} ===[/bold]")
        try:
            module = read_component(path)
        except BundleError as e:
            console.print(f"  [red]✗[/red] {escape(str(e))}")
            continue

        if not module.get("parameters"):
            console.print("  (no parameters to validate)")
            continue

        for param in find_data_parameters(module):
            console.print(f"\n  Parameter: {param.get('name')} (type: {param.get('type')})")
            console.print(f"  Spec: {json.dumps(param.get('spec'))}", markup=False)
            _print_validation("collection", param, SAMPLE_INPUTS["collection"])
            _print_validation("JSON string", param, SAMPLE_INPUTS["json_string"])

    console.print("\n[bold]=== Recommendations ===[/bold]\n")
    console.print('If Make.com rejects collection input with "Validation error: [Collection]":', markup=False)
    for idx, (title, lines) in enumerate(RECOMMENDATIONS, start=1):
        console.print(f"\nOption {idx}: {title}", markup=False)
        for line in lines:
            console.print(f"  {line}", markup=False)


@app.command()
def render(
    module_file: Annotated[Path, typer.Argument(help="Module definition file", exists=True, dir_okay=False)],
    param: Annotated[list[str] | None, typer.Option("--param", "-p", help="Mapped parameter key=value")] = None,
    temp: Annotated[list[str] | None, typer.Option("--temp", "-t", help="Temp variable key=value")] = None,
):
    """
    Preview a module's communication for the given mapped values.

    Values are decoded as JSON when possible, so collections can be passed
    directly: -p 'inputData=[{"name": "OpenAI"}]'

    [bold]Examples:[/bold]

        erm render app/modules/startRankTask.imljson -p task="Rank by size" -p 'inputData=[]'
    """
    try:
        module = read_component(module_file)
    except BundleError as e:
        _fail(str(e))

    inputs = dict(_parse_assignment(p) for p in param or [])
    temps = dict(_parse_assignment(t) for t in temp or [])

    try:
        parameters = simulate_parameters(module.get("parameters") or [], inputs)
        rendered = render_value(module.get("communication"), {"parameters": parameters, "temp": temps})
    except (ParameterError, ValueError) as e:
        _fail(str(e))

    console.print(f"[bold]Module:[/bold] {module.get('label') or module_file.name}")
    console.print("[bold]Parameters:[/bold]")
    console.print_json(data=parameters)
    console.print("[bold]Communication:[/bold]")
    console.print_json(data=rendered)


@app.command("list-modules")
def list_modules(app_dir: AppDirArgument = None, config: ConfigOption = None):
    """List the modules of the app with their Make.com type IDs."""
    cfg = get_config(config)
    source = _resolve_app_dir(app_dir, cfg)
    try:
        bundle = load_bundle(source)
    except BundleError as e:
        _fail(str(e))

    if not bundle.modules:
        console.print("[yellow]No modules defined[/yellow]")
        return

    table = Table(title=f"Modules in {source.name}")
    table.add_column("Name", style="cyan")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Type ID", justify="right")
    table.add_column("Connection", style="dim")

    for module in bundle.modules:
        definition = module.definition
        module_type = definition.get("type") or "action"
        table.add_row(
            module.name,
            module.label,
            module_type,
            str(module_type_id(module_type)),
            definition.get("connection") or "-",
        )

    console.print(table)


@app.command()
def smoke(
    app_dir: AppDirArgument = None,
    wait_results: Annotated[
        bool, typer.Option("--wait-results", help="Wait for the rank task and fetch its results")
    ] = False,
    config: ConfigOption = None,
    env_file: EnvFileOption = None,
):
    """
    Run end-to-end tests against the EveryRow API.

    Checks module structure, then runs the rank task flow
    (session -> artifact -> wait -> rank) and the parseJSON flow.
    """
    cfg = get_config(config, env_file)
    errors = validate_everyrow(cfg)
    if errors:
        _fail(errors)

    source = _resolve_app_dir(app_dir, cfg)

    console.print("[bold]=== Make.com Module Tests ===[/bold]")
    console.print(f"API: {cfg.everyrow.base_url}")

    def on_task_start(task_id: str, description: str):
        console.print(f"  {description}...")

    def on_poll(task_id: str, attempt: int, total: int):
        if attempt > 1:
            console.print(f"    [dim]waiting on {task_id} ({attempt}/{total})[/dim]")

    callbacks = RunnerCallbacks(on_task_start=on_task_start, on_poll=on_poll)

    with create_everyrow_client(cfg) as client:
        report = run_smoke_tests(
            source,
            client,
            poll_attempts=cfg.everyrow.poll_attempts,
            poll_interval=cfg.everyrow.poll_interval,
            wait_for_result=wait_results,
            callbacks=callbacks,
        )

    console.print("\n[bold]=== Test Summary ===[/bold]\n")
    for res in report.results:
        if res.passed:
            console.print(f"  [green]✓[/green] {res.name}")
        else:
            console.print(f"  [red]✗[/red] {res.name}: {escape(res.error or '')}")
        for key, value in res.details.items():
            if key != "result":
                console.print(f"      [dim]{key}: {value}[/dim]")
        if "result" in res.details:
            console.print_json(data=res.details["result"])

    console.print(f"\nPassed: {report.passed}")
    console.print(f"Failed: {len(report.failed)}")

    if report.failed:
        raise typer.Exit(1)


def main_cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main_cli()
