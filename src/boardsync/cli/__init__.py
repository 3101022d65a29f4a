"""
boardsync command line.

Every board command opens a store from the merged configuration, runs one
operation through it and exits non-zero when the operation does not
succeed.
"""

import logging

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from boardsync import __version__
from boardsync.cli import auth, board
from boardsync.core.config.env import load_layered_env
from boardsync.core.config.loader import get_storage_path, load_config

PANEL_ACCOUNT = "Account"
PANEL_BOARDS = "Boards"
PANEL_SETUP = "Setup"

app = typer.Typer(
    name="boardsync",
    help="Kanban boards with optimistic sync against a local file, REST or GraphQL backend",
    no_args_is_help=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Log HTTP, config and store activity"),
) -> None:
    """
    Kanban boards from the command line.

    Example session:
        boardsync register
        boardsync dashboard create "Roadmap"
        boardsync dashboard show <dashboard-id>
        boardsync card move <dashboard-id> <from-col> 0 <to-col> 1
    """
    load_layered_env()
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    ctx.obj = {"debug": debug}


app.command(name="login", rich_help_panel=PANEL_ACCOUNT)(auth.login)
app.command(name="register", rich_help_panel=PANEL_ACCOUNT)(auth.register)
app.command(name="logout", rich_help_panel=PANEL_ACCOUNT)(auth.logout)
app.command(name="change-password", rich_help_panel=PANEL_ACCOUNT)(auth.change_password)

app.command(name="dashboards", rich_help_panel=PANEL_BOARDS)(board.list_dashboards)
app.add_typer(board.dashboard_app, name="dashboard", rich_help_panel=PANEL_BOARDS)
app.add_typer(board.column_app, name="column", rich_help_panel=PANEL_BOARDS)
app.add_typer(board.card_app, name="card", rich_help_panel=PANEL_BOARDS)
app.command(name="invite", rich_help_panel=PANEL_BOARDS)(board.invite)
app.add_typer(board.invitation_app, name="invitation", rich_help_panel=PANEL_BOARDS)


@app.command(name="config", rich_help_panel=PANEL_SETUP)
def show_config() -> None:
    """Show the effective configuration after every layer is merged."""
    try:
        config = load_config()
    except ValidationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e

    table = Table(show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("data source", config.data_source.value)
    table.add_row("api url", config.api.base_url)
    table.add_row("graphql endpoint", config.api.endpoints.graphql)
    table.add_row("timeout", f"{config.api.timeout:g}s")
    table.add_row("read retries", str(config.api.max_retries))
    table.add_row("storage file", str(get_storage_path(config)))
    table.add_row("serialize mutations", "yes" if config.store.serialize_mutations else "no")
    table.add_row("event log", "on" if config.logging.events else "off")
    console.print(table)


@app.command(rich_help_panel=PANEL_SETUP)
def version() -> None:
    """Show boardsync version and exit."""
    console.print(f"boardsync version {__version__}")


__all__ = ["app"]
