"""User management CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlmodel import select

from userhub.config import settings
from userhub.database import get_session_context
from userhub.models import User
from userhub.services.accounts import AccountService
from userhub.services.email import email_service
from userhub.services.errors import AccountError
from userhub.services.tokens import TokenLifecycle

console = Console()
app = typer.Typer(help="User management commands")


@app.command("list")
def list_users():
    """List all users."""

    async def _list():
        async with get_session_context() as session:
            users = await AccountService(session, settings, email_service).get_all()

            table = Table(title="Users")
            table.add_column("ID", style="cyan")
            table.add_column("Email", style="green")
            table.add_column("Username")
            table.add_column("Verified", style="magenta")
            table.add_column("Created", style="dim")

            for user in users:
                verified_str = "[green]Yes[/green]" if user.is_verified else "No"
                created = user.created_at.strftime("%Y-%m-%d") if user.created_at else "-"
                table.add_row(user.id, user.email, user.username, verified_str, created)

            console.print(table)

    asyncio.run(_list())


@app.command("create")
def create_user(
    email: str = typer.Argument(..., help="User email"),
    username: str = typer.Option(..., "--username", "-u", help="Username"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password"
    ),
    verified: bool = typer.Option(False, "--verified", help="Mark the email as already verified"),
):
    """Create a new user without sending any email."""

    async def _create():
        async with get_session_context() as session:
            accounts = AccountService(session, settings, email_service)
            try:
                user = await accounts.create(email, username, password, verified=verified)
            except AccountError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(1) from e
            console.print(f"[green]Created user:[/green] {user.email} ({user.id}, verified={verified})")

    asyncio.run(_create())


@app.command("delete")
def delete_user(
    user_id: str = typer.Argument(..., help="User ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Delete a user permanently."""
    if not force and not typer.confirm(f"Delete user {user_id}?"):
        console.print("[dim]Cancelled[/dim]")
        raise typer.Exit(0)

    async def _delete():
        async with get_session_context() as session:
            try:
                await AccountService(session, settings, email_service).delete(user_id)
            except AccountError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(1) from e
            console.print(f"[green]Deleted user:[/green] {user_id}")

    asyncio.run(_delete())


@app.command("reset-token")
def reset_token(email: str = typer.Argument(..., help="User email")):
    """Open a password reset for a user and print the token instead of emailing it."""

    async def _issue():
        async with get_session_context() as session:
            result = await session.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()

            if not user:
                console.print(f"[red]Error:[/red] User {email} not found")
                raise typer.Exit(1)

            token, expires_at = await TokenLifecycle(session, settings).issue_reset_token(user)
            await session.commit()

            console.print(f"[green]Reset token:[/green] {token}")
            console.print(f"[dim]Expires: {expires_at}[/dim]")

    asyncio.run(_issue())
