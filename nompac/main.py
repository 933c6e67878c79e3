"""
nompac command line entry point

Usage:
    nompac --help
    nompac -s 2024_01_15
    nompac -c ~/.config/nompac/configs/config.json -g base,desktop -i yes
"""

import click

from nompac import __version__, config
from nompac.common.config_loader import ConfigLoader
from nompac.common.errors import ConfigError
from nompac.common.logging_utils import setup_logging
from nompac.common.shell_executor import ShellExecutor
from nompac.orchestrator.system_updater import SystemUpdater
from nompac.repo.database_manager import DatabaseManager


@click.command()
@click.version_option(version=__version__, prog_name="nompac")
@click.option(
    "--snapshot",
    "-s",
    default="none",
    show_default=True,
    help="Date of the Arch repository snapshot to use, always in the format YYYY_MM_DD.",
)
@click.option("--pacconfig", "-p", default="none", show_default=True, help="pacman.conf to use instead of the configured one.")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=config.DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the configuration file (JSON or YAML).",
)
@click.option(
    "--packagegroups",
    "-g",
    "package_groups",
    default="none",
    show_default=True,
    help="Comma separated package groups to install ('all' for every group).",
)
@click.option(
    "--initiate",
    "-i",
    type=click.Choice(["yes", "y", "no", "n"], case_sensitive=False),
    default="no",
    show_default=True,
    help="Create a missing local repository and rewrite pacman.conf.",
)
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also write the log to this file.")
@click.pass_context
def cli(ctx: click.Context, snapshot, pacconfig, config_path, package_groups, initiate, debug, log_file):
    """Reconcile the installed Arch Linux system with the nompac configuration."""
    setup_logging(debug_mode=debug, log_file=log_file)

    initiate_run = initiate.lower() in ("yes", "y")
    shell_executor = ShellExecutor(debug_mode=debug)
    database_manager = DatabaseManager(shell_executor)

    loader = ConfigLoader(repo_initializer=database_manager.initialize if initiate_run else None)
    try:
        settings = loader.load(
            config_path,
            snapshot=snapshot,
            pacconfig=pacconfig,
            package_groups=package_groups,
        )
    except ConfigError as e:
        raise click.ClickException(str(e))

    updater = SystemUpdater(settings, shell_executor=shell_executor, initiate=initiate_run)
    ctx.exit(updater.run())


def main():
    cli()


if __name__ == "__main__":
    main()
