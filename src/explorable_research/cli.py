"""Admin CLI: database setup, API keys, and the HTTP server."""

import asyncio

from rich.console import Console
from rich.panel import Panel
import typer
import uvicorn

from .config import get_settings
from .database import create_engine, create_session_maker, init_models
from .stores.users import UserStore

app = typer.Typer(
    name="explorable-research",
    help="Admin CLI for the Explorable Research service",
    add_completion=False,
)
console = Console()


async def _init_db(database_url: str) -> None:
    engine = create_engine(database_url)
    try:
        await init_models(engine)
    finally:
        await engine.dispose()


async def _create_api_key(database_url: str, user_id: str, description: str) -> str:
    engine = create_engine(database_url)
    try:
        return await UserStore(create_session_maker(engine)).issue(user_id, description)
    finally:
        await engine.dispose()


@app.command("init-db")
def init_db():
    """Create all database tables."""
    settings = get_settings()
    asyncio.run(_init_db(settings.database_url))
    console.print("[bold green]Database tables created.[/bold green]")


@app.command("create-api-key")
def create_api_key(
    user_id: str = typer.Option(..., "--user-id", "-u", help="Owner of the key"),
    description: str = typer.Option("", "--description", "-d", help="What the key is for"),
):
    """Issue an API key. The key is shown once and cannot be recovered."""
    settings = get_settings()
    key = asyncio.run(_create_api_key(settings.database_url, user_id, description))
    console.print(Panel(key, title=f"API key for {user_id}", border_style="green"))
    console.print("[yellow]Store it now; only its hash is kept.[/yellow]")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the API server."""
    uvicorn.run("explorable_research.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
