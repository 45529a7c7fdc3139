import typer
from rich import print, print_json
from comment_insights.config.settings import get_settings
from comment_insights.models.schemas import PipelineRequest
from comment_insights.services.gemini_client import GeminiClient
from comment_insights.services.result_store import ResultStore
from comment_insights.workflows.run_pipeline import run_pipeline
from comment_insights.tools.logging_setup import setup_logging
setup_logging()


app = typer.Typer(help="Comment enrichment pipeline")

@app.command()
def doctor():
    """Check config + storage."""
    s = get_settings()
    print("[bold green]Config loaded[/bold green]")
    print("Models:", ", ".join(GeminiClient(s).candidate_models()))
    if s.gemini_api_key:
        print("GEMINI_API_KEY: set")
    else:
        print("[bold yellow]GEMINI_API_KEY: missing[/bold yellow] (every uncached item will fail analysis)")
    print("Source:", s.source_url, "| max items:", s.max_items)
    store = ResultStore.from_settings(s)
    print("Storage:", store.path)
    print("Stored records:", len(store.load()))
    print("[bold green]Storage OK[/bold green]")

@app.command()
def run(
    email: str = typer.Option(None, help="Notification email for this batch"),
    source: str = typer.Option(None, help="Source label stored with new results"),
):
    """Run one pipeline execution."""
    result = run_pipeline(PipelineRequest(email=email, source=source))
    if result.errors:
        print(f"[bold yellow]Run complete with {len(result.errors)} error(s)[/bold yellow]")
    else:
        print("[bold green]Run complete[/bold green]")
    print_json(data=result.to_json_dict())

@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address (default API_HOST)"),
    port: int = typer.Option(None, help="Port (default API_PORT)"),
):
    """Serve the HTTP endpoint."""
    import uvicorn

    s = get_settings()
    uvicorn.run("comment_insights.api.app:app", host=host or s.api_host, port=port or s.api_port)


if __name__ == "__main__":
    app()
