#!/usr/bin/env python
# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Command line interface for ringops.

Bootstraps GitOps repositories on Azure DevOps: manages rings, prints
repository urls and pull request links, and onboards deployment introspection.
"""

import logging
import os
import sys
import traceback
from typing import Optional

from . import __version__, DefaultNames, logs
from . import config as configmod
from . import onboard as onboardmod
from . import repo, rings
from .decorators import (
    load_manifest,
    manifest_command,
    option_group,
    populate_inherit_value_from_config,
    validate_for_required_values,
)
from .errors import ErrorCode, build_error
from .logs import Levels
from .yamlloader import dump_yaml

import rich_click as click

# see https://github.com/ewels/rich-click/blob/main/docs/documentation/configuration.md
click.rich_click.STYLE_METAVAR = "dark_orange"
click.rich_click.STYLE_OPTION_ENVVAR = "dim dark_orange"
click.rich_click.STYLE_OPTION = "green"
click.rich_click.STYLE_COMMAND = "bold green"
if os.environ.get("PY_COLORS") == "0":
    click.rich_click.COLOR_SYSTEM = None  # disable colors
click.rich_click.OPTION_ENVVAR_FIRST = False
click.rich_click.ENVVAR_STRING = "(${})"
click.rich_click.OPTION_GROUPS = {
    "ringops": [
        {
            "name": "Global Options",
            "options": ["--config", "--version", "--help"],
        },
        {
            "name": "Logging",
            "options": ["--verbose", "--quiet", "--loglevel", "--logfile"],
        },
    ],
}


globalOptions = option_group(
    click.option(
        "-v",
        "--verbose",
        count=True,
        metavar="",
        help="Verbose mode (-vv or -vvv for more)",
    ),
    click.option(
        "-q",
        "--quiet",
        default=False,
        is_flag=True,
        help="Only output critical errors to the stdout",
    ),
    click.option(
        "--logfile",
        default=None,
        envvar="RINGOPS_LOGFILE",
        show_envvar=True,
        help="Log messages to file (at DEBUG level)",
    ),
    click.option(
        "--loglevel",
        envvar="RINGOPS_LOGGING",
        show_envvar=True,
        help="One of trace debug verbose warning info error critical (overrides -v)",
    ),
    click.option(
        "--config",
        envvar="RINGOPS_CONFIG",
        show_envvar=True,
        type=click.Path(dir_okay=False),
        help=f"Path to the configuration file (Default: ~/{DefaultNames.ConfigDirectory}/{DefaultNames.ConfigFile})",
    ),
)


@click.group()
@globalOptions
@click.version_option(__version__(), prog_name="ringops")
@click.pass_context
def cli(
    ctx,
    verbose=0,
    quiet=False,
    loglevel=None,
    logfile=None,
    config=None,
):
    """A command line tool for bootstrapping GitOps on Azure DevOps."""
    # ensure that ctx.obj exists and is a dict (in case `cli()` is called
    # by means other than main())
    ctx.ensure_object(dict)
    effective_log_level = detect_log_level(loglevel, quiet, verbose)
    ctx.obj["verbose"] = detect_verbose_level(effective_log_level)
    if logfile:
        logs.add_log_file(logfile, effective_log_level)
    logs.set_console_log_level(effective_log_level)
    logging.debug("initialized logging")
    configmod.reset_configuration(config)


def detect_log_level(loglevel: Optional[str], quiet: bool, verbose: int) -> Levels:
    if quiet:
        effective_log_level = Levels.CRITICAL
    else:
        loglevel_env = os.getenv("RINGOPS_LOGGING")
        if loglevel_env:
            effective_log_level = Levels[loglevel_env.upper()]
        else:
            levels = [Levels.INFO, Levels.VERBOSE, Levels.DEBUG, Levels.TRACE]
            effective_log_level = levels[min(verbose, 3)]
    if loglevel:
        effective_log_level = Levels[loglevel.upper()]
    return effective_log_level


def detect_verbose_level(effective_log_level: Levels) -> int:
    if effective_log_level is Levels.VERBOSE:
        verbose = 1
    elif effective_log_level is Levels.DEBUG:
        verbose = 2
    elif effective_log_level is Levels.TRACE:
        verbose = 3
    elif effective_log_level is Levels.CRITICAL:
        verbose = -1
    else:
        verbose = 0
    return verbose


@cli.group()
def deployment():
    """Deployment introspection."""


@manifest_command(deployment, "onboard")
def onboard(**options):
    manifest = load_manifest("onboard")
    populate_inherit_value_from_config(manifest, options)
    missing = validate_for_required_values(manifest, options)
    if missing:
        raise build_error(
            ErrorCode.VALIDATION_ERR,
            ("onboard-err-missing-values", dict(missing=", ".join(missing))),
        )
    configuration = onboardmod.onboard(options)
    click.echo(f"Saved storage account and table names to {configuration.path}")


@cli.group()
def ring():
    """Manage the rings (deployment environments) of a project."""


def _push_ring_change(project_dir: str, branch_name: str, message: str) -> None:
    link = repo.checkout_commit_push_create_pr_link(
        branch_name, DefaultNames.RingsFile, repo_dir=project_dir, message=message
    )
    click.echo(link)


@manifest_command(ring, "ring-create")
def create(ring_name, project_dir, git_push):
    rings.create_ring(project_dir, ring_name)
    if git_push:
        _push_ring_change(
            project_dir, f"add-ring-{ring_name}", f"Adding ring: {ring_name}"
        )


@manifest_command(ring, "ring-delete")
def delete(ring_name, project_dir, git_push):
    rings.delete_ring(project_dir, ring_name)
    if git_push:
        _push_ring_change(
            project_dir, f"delete-ring-{ring_name}", f"Deleting ring: {ring_name}"
        )


@manifest_command(ring, "ring-set-default")
def set_default(ring_name, project_dir):
    rings.set_default_ring(project_dir, ring_name)


@cli.group("repo")
def repo_cli():
    """Git repository helpers."""


@manifest_command(repo_cli, "repo-info")
def info(path, repo_url):
    origin_url = repo.try_get_git_origin(path)
    click.echo(f"origin: {repo.safe_git_url_for_logging(origin_url)}")
    click.echo(f"name: {repo.get_repository_name(origin_url)}")
    click.echo(f"url: {repo.validate_repo_url(dict(repo_url=repo_url), origin_url)}")


@manifest_command(repo_cli, "pr-link")
def pr_link(base_branch, new_branch, origin_url):
    origin_url = origin_url or repo.try_get_git_origin()
    click.echo(repo.get_pull_request_link(base_branch, new_branch, origin_url))


@cli.group("config")
def config_cli():
    """Inspect the configuration file."""


@config_cli.command(short_help="Print the configuration.")
def show():
    """Print the configuration with defaults applied. Secrets are redacted."""
    configuration = configmod.get_config()
    click.echo(f"# {configuration.path}")
    click.echo(dump_yaml(configuration.display_values()), nl=False)


def main():
    obj = {"standalone_mode": False}
    try:
        rv = cli(standalone_mode=False, obj=obj)
        sys.exit(rv or 0)
    except click.Abort:
        click.secho("Aborted!", fg="red", err=True)
        sys.exit(1)
    except click.ClickException as e:
        if obj.get("verbose", 0) > 0:
            traceback.print_exc(file=sys.stderr)
        click.secho(f"Error: {e.format_message()}", fg="red", err=True)
        sys.exit(e.exit_code)
    except Exception as err:
        if obj.get("verbose", 0) > 0:
            traceback.print_exc(file=sys.stderr)
        else:
            click.secho("Exiting with error: " + str(err), fg="red", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
