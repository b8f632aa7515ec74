"""Command line interface for the forwarder."""

import asyncio
import mimetypes
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .app import configure_logging
from .config import settings
from .models import InboundRequest, UploadedFile
from .services import Forwarder, ForwardingError

app = typer.Typer(help="Forwarder - transparent HTTP forwarding gateway")
console = Console()


@app.command()
def serve(
    host: str = typer.Option(settings.api_host, "--host", help="Host to bind to"),
    port: int = typer.Option(settings.api_port, "--port", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Start the forwarding server."""
    import uvicorn

    console.print(
        f"[bold blue]Forwarding {host}:{port}{settings.mount_path} "
        f"-> {settings.upstream_base_url}[/bold blue]"
    )

    uvicorn.run(
        "forwarder.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command("config")
def show_config() -> None:
    """Show the effective configuration."""
    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="yellow")

    for name, value in settings.model_dump().items():
        table.add_row(name, str(value))

    console.print(table)


@app.command()
def probe(
    path: str = typer.Argument("", help="Path suffix, query string included"),
    file: Optional[Path] = typer.Option(
        None, "--file", exists=True, dir_okay=False, help="File to upload via POST"
    ),
    cookie: Optional[str] = typer.Option(None, "--cookie", help="Cookie header"),
    referer: Optional[str] = typer.Option(None, "--referer", help="Referer header"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Send one request through the forwarder and show the translated reply."""
    configure_logging(settings, debug=debug)

    headers = []
    if cookie:
        headers.append(("Cookie", cookie))
    if referer:
        headers.append(("Referer", referer))

    upload = None
    if file is not None:
        upload = UploadedFile(
            filename=file.name,
            content_type=mimetypes.guess_type(file.name)[0]
            or "application/octet-stream",
            content=file.read_bytes(),
        )

    inbound = InboundRequest(
        method="POST" if upload else "GET",
        path_suffix=path,
        headers=headers,
        upload=upload,
    )

    try:
        reply = asyncio.run(Forwarder(settings).handle(inbound))
    except ForwardingError as e:
        console.print(f"[bold red]Error ({e.status_code}): {e.detail}[/bold red]")
        raise typer.Exit(1)

    console.print(f"[bold green]Status {reply.status_code}[/bold green]")

    table = Table(title="Relayed headers")
    table.add_column("Header", style="cyan")
    table.add_column("Value", style="yellow")
    for name, value in reply.headers:
        table.add_row(name, value)
    console.print(table)

    console.print(f"Body: {len(reply.content)} bytes")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
