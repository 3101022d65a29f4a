"""
boardsync CLI - account commands.
"""

import asyncio

import typer

from boardsync.cli.context import console, ensure, open_store, save_session


def login(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Account password"
    ),
) -> None:
    """Log in and remember the session for later commands."""

    async def run() -> None:
        async with open_store() as store:
            ensure(store, await store.login(email, password))
            save_session(store.auth)
            console.print(f"[green]Logged in as[/green] {email}")

    asyncio.run(run())


def register(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    full_name: str = typer.Option(..., "--name", "-n", prompt="Full name", help="Display name"),
    password: str = typer.Option(
        ...,
        "--password",
        "-p",
        prompt=True,
        hide_input=True,
        confirmation_prompt=True,
        help="Password (8+ chars with upper, lower, digit and special character)",
    ),
) -> None:
    """Create an account and log in."""

    async def run() -> None:
        async with open_store() as store:
            ensure(store, await store.register(email, password, full_name))
            save_session(store.auth)
            console.print(f"[green]Registered[/green] {email}")

    asyncio.run(run())


def logout() -> None:
    """End the current session."""

    async def run() -> None:
        async with open_store() as store:
            ensure(store, await store.logout())
            save_session(None)
            console.print("Logged out")

    asyncio.run(run())


def change_password(
    old_password: str = typer.Option(..., "--old", prompt="Current password", hide_input=True),
    new_password: str = typer.Option(
        ..., "--new", prompt="New password", hide_input=True, confirmation_prompt=True
    ),
) -> None:
    """Change the password of the logged-in user."""

    async def run() -> None:
        async with open_store() as store:
            ensure(store, await store.change_password(old_password, new_password))
            console.print("[green]Password changed[/green]")

    asyncio.run(run())
