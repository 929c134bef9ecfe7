"""CLI entry point: Click group with global options."""

from __future__ import annotations

import logging

import click

from scrubber import __version__


@click.group()
@click.version_option(version=__version__, prog_name="scrubber")
@click.option(
    "--settings",
    "-s",
    type=click.Path(dir_okay=False),
    help="Path to the settings YAML file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, settings: str | None, verbose: bool) -> None:
    """Scrubber: flags secrets, sensitive paths and TODO comments in a git workspace."""
    ctx.ensure_object(dict)
    ctx.obj["settings_path"] = settings
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from scrubber.cli.config import config  # noqa: F811
    from scrubber.cli.fix import fix  # noqa: F811
    from scrubber.cli.scan import scan  # noqa: F811
    from scrubber.cli.watch import watch  # noqa: F811

    main.add_command(scan)
    main.add_command(watch)
    main.add_command(config)
    main.add_command(fix)


_register_commands()
