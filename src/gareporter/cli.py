"""CLI entrypoint for gareporter."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import click

from gareporter.config.store import SettingsStore
from gareporter.reporter import Reporter
from gareporter.runtime_logging import configure_runtime_logging
from gareporter.storage import JsonFileStore
from gareporter.version import __version__


class EchoClient:
    """`HttpClient` that prints hit URLs instead of requesting them."""

    async def get(self, url: str) -> int:
        click.echo(url)
        return 200

    async def aclose(self) -> None:
        return


@dataclass(slots=True)
class CliState:
    settings_file: Path | None
    identity_file: Path | None

    def store(self) -> SettingsStore:
        return SettingsStore(self.settings_file)

    def reporter(self, *, dry_run: bool = False, verbose: bool = False) -> Reporter:
        reporter = Reporter.from_settings(
            self.store().load(),
            store=JsonFileStore(self.identity_file),
            http_client=EchoClient() if dry_run else None,
        )
        if verbose:
            reporter.quiet_mode = False
        return reporter


def _parse_params(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> dict[str, str]:  # noqa: ARG001
    result: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {item!r}")
        result[key] = value
    return result


def hit_options(func: Callable[..., None]) -> Callable[..., None]:
    func = click.option("--verbose", "-v", is_flag=True, help="Log diagnostics even in quiet mode")(func)
    func = click.option("--dry-run", is_flag=True, help="Print the hit URL instead of sending it")(func)
    func = click.option(
        "--param",
        "-p",
        "params",
        multiple=True,
        callback=_parse_params,
        help="Extra Measurement Protocol parameter, key=value (repeatable)",
    )(func)
    return func


def _report(state: CliState, send: Callable[[Reporter], None], dry_run: bool, verbose: bool) -> None:
    reporter = state.reporter(dry_run=dry_run, verbose=verbose)
    try:
        if not reporter.tracker_id:
            raise click.ClickException("No tracker ID configured; run `gareporter configure UA-XXXXX-XX` first")
        if reporter.opted_out:
            click.echo("Opted out of analytics; hit not sent")
            return
        send(reporter)
    finally:
        # Waits for the in-flight hit before the process exits.
        reporter.close()


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--settings",
    "settings_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file (defaults to the user config directory)",
)
@click.option(
    "--identity-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Client identifier store (defaults to the user state directory)",
)
@click.option("--log-level", default=None, help="off, error, warning, info or debug")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.pass_context
def main(
    ctx: click.Context,
    settings_file: Path | None,
    identity_file: Path | None,
    log_level: str | None,
    log_file: Path | None,
) -> None:
    """gareporter: send Google Analytics Measurement Protocol hits."""
    configure_runtime_logging(level=log_level, log_file=log_file)
    ctx.obj = CliState(settings_file=settings_file, identity_file=identity_file)


@main.command()
@click.argument("tracker_id")
@click.option("--app-name", default=None)
@click.option("--app-id", "app_identifier", default=None, help="Bundle-style identifier, reported as aid")
@click.option("--app-version", default=None)
@click.option("--app-build", default=None)
@click.option("--dimension", "-d", "dimensions", multiple=True, callback=_parse_params, help="cdN=value")
@click.option("--anonymize-ip/--no-anonymize-ip", default=None)
@click.option("--quiet/--no-quiet", "quiet_mode", default=None)
@click.pass_obj
def configure(
    state: CliState,
    tracker_id: str,
    app_name: str | None,
    app_identifier: str | None,
    app_version: str | None,
    app_build: str | None,
    dimensions: dict[str, str],
    anonymize_ip: bool | None,
    quiet_mode: bool | None,
) -> None:
    """Store the tracker ID and optional application details."""
    if not tracker_id.strip():
        raise click.BadParameter("tracker ID must not be empty", param_hint="TRACKER_ID")

    store = state.store()
    settings = store.load()
    settings.tracker.tracker_id = tracker_id.strip()
    updates = {
        "name": app_name,
        "identifier": app_identifier,
        "version": app_version,
        "build": app_build,
    }
    for key, value in updates.items():
        if value is not None:
            setattr(settings.app, key, value)
    if dimensions:
        settings.tracker.custom_dimensions = {**(settings.tracker.custom_dimensions or {}), **dimensions}
    if anonymize_ip is not None:
        settings.tracker.anonymize_ip = anonymize_ip
    if quiet_mode is not None:
        settings.tracker.quiet_mode = quiet_mode
    store.save(settings)
    click.echo(f"Configured {settings.tracker.tracker_id}")


@main.command("opt-out")
@click.pass_obj
def opt_out(state: CliState) -> None:
    """Stop sending hits."""
    state.store().update("tracker.opted_out", True)
    click.echo("Opted out of analytics")


@main.command("opt-in")
@click.pass_obj
def opt_in(state: CliState) -> None:
    """Resume sending hits."""
    state.store().update("tracker.opted_out", False)
    click.echo("Opted in to analytics")


@main.command()
@click.pass_obj
def settings(state: CliState) -> None:
    """List stored settings."""
    for key, value in state.store().load().setting_items():
        click.echo(f"{key} = {value}")


@main.command("settings-path")
@click.pass_obj
def settings_path_command(state: CliState) -> None:
    """Print settings file path."""
    click.echo(str(state.store().path))


@main.command()
@click.pass_obj
def identity(state: CliState) -> None:
    """Print the anonymous client identifier (cid)."""
    reporter = state.reporter()
    try:
        click.echo(reporter.identifier)
    finally:
        reporter.close()


@main.command()
def about() -> None:
    """Show version and project summary."""
    payload = {
        "name": "gareporter",
        "version": __version__,
        "description": "Fire-and-forget Google Analytics Measurement Protocol reporter",
    }
    click.echo(json.dumps(payload, indent=2))


@main.command()
@click.argument("category")
@click.argument("action")
@click.option("--label", default="", show_default=True)
@hit_options
@click.pass_obj
def event(
    state: CliState,
    category: str,
    action: str,
    label: str,
    params: dict[str, str],
    dry_run: bool,
    verbose: bool,
) -> None:
    """Send an event hit."""
    _report(state, lambda r: r.event(category, action=action, label=label, parameters=params), dry_run, verbose)


@main.command("screen-view")
@click.argument("name")
@hit_options
@click.pass_obj
def screen_view(state: CliState, name: str, params: dict[str, str], dry_run: bool, verbose: bool) -> None:
    """Send a screen view (pageview) hit."""
    _report(state, lambda r: r.screen_view(name, parameters=params), dry_run, verbose)


@main.command()
@click.argument("boundary", type=click.Choice(["start", "end"]))
@hit_options
@click.pass_obj
def session(state: CliState, boundary: str, params: dict[str, str], dry_run: bool, verbose: bool) -> None:
    """Send a session start or end hit."""
    _report(state, lambda r: r.session(boundary == "start", parameters=params), dry_run, verbose)


@main.command()
@click.argument("description")
@click.option("--fatal", is_flag=True)
@hit_options
@click.pass_obj
def exception(
    state: CliState,
    description: str,
    fatal: bool,
    params: dict[str, str],
    dry_run: bool,
    verbose: bool,
) -> None:
    """Send an exception hit."""
    _report(state, lambda r: r.exception(description, is_fatal=fatal, parameters=params), dry_run, verbose)


@main.command()
@click.argument("category")
@click.argument("name")
@click.argument("seconds", type=float)
@click.option("--label", default="", show_default=True)
@hit_options
@click.pass_obj
def timing(
    state: CliState,
    category: str,
    name: str,
    seconds: float,
    label: str,
    params: dict[str, str],
    dry_run: bool,
    verbose: bool,
) -> None:
    """Send a timing hit; SECONDS is converted to milliseconds."""
    _report(
        state,
        lambda r: r.timing(category, name=name, label=label, time=seconds, parameters=params),
        dry_run,
        verbose,
    )


if __name__ == "__main__":
    main()
