"""CLI interface for pydrsync."""

import logging
from typing import Any, Optional

import click

from . import __version__
from .api import DrimeClient
from .backends.registry import BackendRegistry
from .config import config
from .exceptions import DrimeAPIError, FatalPathError, ValidationError
from .output import OutputFormatter
from .sync import SyncEngine, SyncOptions


@click.group()
@click.option("--api-key", "-k", envvar="DRIME_API_KEY", help="Drime Cloud API key")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: Any, api_key: Optional[str], quiet: bool, debug: bool) -> None:
    """pydrsync - rsync-like sync between local directories and Drime Cloud.

    Remote paths are written as drime://Folder/Sub; drime:// is the root.
    """
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["out"] = OutputFormatter(quiet=quiet)

    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pydrsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--api-key",
    "-k",
    prompt="Enter your Drime Cloud API key",
    help="Drime Cloud API key",
)
@click.pass_context
def init(ctx: Any, api_key: str) -> None:
    """Initialize Drime Cloud configuration.

    Stores your API key in ~/.config/pydrsync/config.json for future use.
    """
    out: OutputFormatter = ctx.obj["out"]

    out.info("Validating API key...")
    try:
        with DrimeClient(api_key=api_key) as client:
            user_info = client.get_logged_user()
    except DrimeAPIError as e:
        out.error(f"API key validation failed: {e}")
        if not click.confirm("Save API key anyway?", default=False):
            out.warning("Configuration cancelled.")
            ctx.exit(1)
    else:
        if not user_info or not user_info.get("user"):
            out.error("API key validation failed: Invalid API key")
            if not click.confirm("Save API key anyway?", default=False):
                out.warning("Configuration cancelled.")
                ctx.exit(1)
        else:
            out.success("API key is valid")

    config.save_api_key(api_key)
    out.print_summary(
        "Initialization Complete",
        [
            ("Status", "Configuration saved"),
            ("Config file", str(config.get_config_path())),
        ],
    )


@main.command()
@click.option("--email", "-e", prompt="Email", help="Account email")
@click.option(
    "--password",
    "-p",
    prompt="Password",
    hide_input=True,
    help="Account password",
)
@click.pass_context
def login(ctx: Any, email: str, password: str) -> None:
    """Log in with email and password and store the session token.

    The token is used whenever no API key is configured.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        with DrimeClient(require_auth=False) as client:
            response = client.login(email, password)
    except DrimeAPIError as e:
        out.error(f"Login failed: {e}")
        ctx.exit(1)
        return

    user = response.get("user") if isinstance(response, dict) else None
    token = user.get("access_token") if isinstance(user, dict) else None
    if not token:
        out.error("Login failed: no access token in response")
        ctx.exit(1)
        return

    config.save_session_token(token)
    out.success(f"Logged in as {user.get('email', email)}")


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Check API key validity and connection status."""
    api_key = ctx.obj.get("api_key")
    out: OutputFormatter = ctx.obj["out"]

    if not api_key and not config.is_configured() and not config.session_token:
        out.error("API key not configured.")
        out.info("Run 'pydrsync init' to configure your API key")
        ctx.exit(1)

    try:
        with DrimeClient(api_key=api_key) as client:
            user_info = client.get_logged_user()
    except DrimeAPIError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    user = user_info.get("user") if isinstance(user_info, dict) else None
    if not user:
        out.error("Invalid API key")
        ctx.exit(1)
        return

    out.print_summary(
        "Status",
        [
            ("User", str(user.get("email", "unknown"))),
            ("API URL", config.api_url),
            ("Workspace", str(config.workspace_id)),
        ],
    )


@main.command()
@click.argument("src", nargs=-1, required=True)
@click.argument("dest", nargs=1)
@click.option(
    "--checksum",
    "-c",
    is_flag=True,
    help="Skip based on checksum, not mod-time & size",
)
@click.option("--archive", "-a", is_flag=True, help="Archive mode; equals -rt")
@click.option("--recursive", "-r", is_flag=True, help="Recurse into directories")
@click.option(
    "--update",
    "-u",
    is_flag=True,
    help="Skip files that are newer on the receiver",
)
@click.option(
    "--dirs",
    "-d",
    is_flag=True,
    help="Transfer directories without recursing",
)
@click.option("--times", "-t", is_flag=True, help="Preserve modification times")
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    help="Perform a trial run with no changes made",
)
@click.option("--existing", is_flag=True, help="Skip creating new files on receiver")
@click.option(
    "--ignore-existing",
    is_flag=True,
    help="Skip updating files that exist on receiver",
)
@click.option(
    "--remove-source-files",
    is_flag=True,
    help="Sender removes synchronized files (non-dir)",
)
@click.option("--delete", is_flag=True, help="Delete extraneous files from dest dirs")
@click.option(
    "--max-size",
    metavar="SIZE",
    help="Don't transfer any file larger than SIZE",
)
@click.option(
    "--min-size",
    metavar="SIZE",
    help="Don't transfer any file smaller than SIZE",
)
@click.option(
    "--ignore-times",
    "-I",
    is_flag=True,
    help="Don't skip files that match size and time",
)
@click.option("--size-only", is_flag=True, help="Skip files that match in size")
@click.option("--verbose", "-v", is_flag=True, help="Increase verbosity")
@click.option(
    "--workspace",
    "-w",
    type=int,
    default=None,
    help="Workspace ID for drime:// paths (uses configured workspace if not set)",
)
@click.pass_context
def sync(
    ctx: Any,
    src: tuple[str, ...],
    dest: str,
    checksum: bool,
    archive: bool,
    recursive: bool,
    update: bool,
    dirs: bool,
    times: bool,
    dry_run: bool,
    existing: bool,
    ignore_existing: bool,
    remove_source_files: bool,
    delete: bool,
    max_size: Optional[str],
    min_size: Optional[str],
    ignore_times: bool,
    size_only: bool,
    verbose: bool,
    workspace: Optional[int],
) -> None:
    """Synchronize SRC... into DEST.

    A trailing slash on a source directory copies its contents; without it
    the directory itself is created inside DEST.

    Examples:
        pydrsync sync -av ./photos/ drime://Photos
        pydrsync sync -r --delete drime://Backup/ ./restore
        pydrsync sync -rn --max-size=10mb ./docs drime://
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        options = SyncOptions.from_flags(
            archive=archive,
            min_size=min_size,
            max_size=max_size,
            checksum=checksum,
            recursive=recursive,
            update=update,
            dirs=dirs,
            preserve_time=times,
            dry_run=dry_run,
            existing=existing,
            ignore_existing=ignore_existing,
            remove_source_files=remove_source_files,
            delete=delete,
            ignore_times=ignore_times,
            size_only=size_only,
            verbose=verbose,
            error_hook=out.error,
        )
    except ValidationError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if dry_run:
        out.info("Dry run: No changes will be made")

    try:
        with BackendRegistry(
            api_key=ctx.obj.get("api_key"), workspace_id=workspace
        ) as registry:
            SyncEngine(options, registry, output=out).run(list(src), dest)
    except (FatalPathError, DrimeAPIError) as e:
        out.error(str(e))
        ctx.exit(1)


if __name__ == "__main__":
    main()
