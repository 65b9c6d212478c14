"""
Command-line interface for repochat.

Commands:
    serve   - Start the FastAPI server
    index   - Index a GitHub repository
    ask     - Ask a question about a repository
    version - Show version information
"""

import logging

import typer
from rich.console import Console
from rich.table import Table

from repochat.config import settings
from repochat.errors import RepoChatError

app = typer.Typer(
    name="repochat",
    help="Chat with GitHub repositories using retrieval-augmented generation",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override the configured log level"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def serve(
    host: str = typer.Option(settings.api_host, help="Host to bind"),
    port: int = typer.Option(settings.api_port, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Start the FastAPI server."""
    import uvicorn

    console.print(f"[green]Starting repochat server on {host}:{port}[/green]")

    uvicorn.run(
        "repochat.api.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1,  # one process owns the in-memory vector index
    )


@app.command()
def index(
    repository: str = typer.Argument(..., help="owner/name or GitHub URL"),
) -> None:
    """Index a repository's default branch."""
    from repochat.github.client import resolve_repository_id
    from repochat.retrieval.repository_indexer import index_repository

    try:
        repository_id = resolve_repository_id(repository)
        console.print(f"[blue]Indexing {repository_id}...[/blue]")
        with console.status("[bold green]Fetching, chunking and embedding files..."):
            result = index_repository(repository_id)
    except RepoChatError as e:
        console.print(f"[red]Indexing failed: {e}[/red]")
        raise typer.Exit(1)

    if result.already_indexed:
        console.print(f"[yellow]{result.repository_id} is already indexed (or indexing).[/yellow]")
        return

    console.print("[bold green]✓ Indexing complete![/bold green]")
    console.print(f"  Files processed: {result.files_processed}")
    console.print(f"  Chunks indexed: {result.chunks_indexed}")


@app.command()
def ask(
    repository: str = typer.Argument(..., help="owner/name or GitHub URL"),
    question: str = typer.Argument(..., help="Question to ask"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
) -> None:
    """Ask a single question about a repository."""
    from repochat.github.client import resolve_repository_id
    from repochat.graph.workflow import run_answer

    console.print(f"[blue]Question:[/blue] {question}\n")

    try:
        repository_id = resolve_repository_id(repository)
        with console.status("[bold green]Processing..."):
            result = run_answer(question, repository_id)
    except RepoChatError as e:
        console.print(f"[red]Could not answer: {e}[/red]")
        raise typer.Exit(1)

    if not result.get("is_indexed"):
        console.print(
            f"[yellow]{repository_id} is not indexed; run `repochat index {repository_id}` "
            "for answers grounded in its code.[/yellow]\n"
        )

    console.print("[green]Answer:[/green]")
    console.print(result.get("generation") or "No answer generated.")
    console.print()

    if verbose:
        table = Table(title="Metadata")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Latency", f"{result.get('processing_time_ms', 0):.0f}ms")
        table.add_row("Indexed", str(result.get("is_indexed", False)))
        table.add_row("Retrieval Calls", str(result.get("retrieval_calls", 0)))
        table.add_row("Generation Calls", str(result.get("generation_calls", 0)))
        table.add_row("First-Round Chunks", str(len(result.get("first_matches", []))))
        table.add_row("Additional Chunks", str(len(result.get("additional_matches", []))))

        console.print(table)

        sources = result.get("first_matches", []) + result.get("additional_matches", [])
        if sources:
            console.print("[blue]Sources:[/blue]")
            for match in sources:
                chunk = match.chunk
                console.print(f"  • {chunk.file_path}:{chunk.start_line}-{chunk.end_line} ({match.score:.2f})")


@app.command()
def version() -> None:
    """Show version information."""
    from repochat import __version__

    console.print(f"repochat v{__version__}")


if __name__ == "__main__":
    app()
