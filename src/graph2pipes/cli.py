import logging
from pathlib import Path
import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from typing import Optional

from .config import load_settings
from .deserializer import deserialize
from .documents import load_document, load_graph, save_document, save_graph
from .exceptions import Graph2PipesError
from .serializer import build_document
from .validator import validate_document
from .visualize import ascii_plan

app = typer.Typer(no_args_is_help=True, help="graph2pipes CLI: editor graphs to pipeline documents and back")

_state = {"config": None}


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug diagnostics."),
         config: Optional[Path] = typer.Option(None, help="Settings YAML file.")):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format="%(message)s", handlers=[RichHandler(show_path=False)], force=True)
    _state["config"] = config


def _fail(e: Exception):
    rprint(f"[bold red]Error:[/] {e}")
    raise typer.Exit(code=1)


@app.command("export")
def export_graph(graph_file: Path,
                 out: Path = typer.Option(Path("pipeline.json"), help="Where to write the pipeline document"),
                 name: Optional[str] = typer.Option(None, help="Flow name"),
                 flow_id: Optional[str] = typer.Option(None, help="Flow id")):
    """Compile an editor graph (JSON/YAML) into a pipeline document."""
    try:
        settings = load_settings(_state["config"])
        doc = build_document(load_graph(graph_file), flow_name=name, flow_id=flow_id, settings=settings)
    except (Graph2PipesError, ValidationError, OSError) as e:
        _fail(e)
    save_document(doc, out)
    rprint(Panel.fit(f"Exported [bold]{len(doc.flow_pipeline)}[/] node(s) to [cyan]{out}[/]"))


@app.command("import")
def import_document(doc_file: Path,
                    out: Path = typer.Option(Path("graph.json"), help="Where to write the editor graph")):
    """Rebuild an editor graph from a pipeline document."""
    try:
        settings = load_settings(_state["config"])
        graph = deserialize(load_document(doc_file), settings=settings)
    except (Graph2PipesError, OSError) as e:
        _fail(e)
    save_graph(graph, out)
    rprint(Panel.fit(f"Imported [bold]{len(graph.nodes)}[/] node(s), "
                     f"[bold]{len(graph.edges)}[/] edge(s) to [cyan]{out}[/]"))


@app.command()
def check(doc_file: Path):
    """Check a pipeline document (ids, references, outputs, cycles)."""
    try:
        ok, messages = validate_document(load_document(doc_file))
    except (Graph2PipesError, ValidationError, OSError) as e:
        _fail(e)
    table = Table(title="Flow Check", show_lines=True)
    table.add_column("Status", justify="center", style="bold")
    table.add_column("Message")
    for m in messages:
        status = "OK" if m.startswith("OK:") else "ERR"
        table.add_row(status, m)
    rprint(table)
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def explain(doc_file: Path):
    """Print an ASCII plan of the pipeline."""
    try:
        print(ascii_plan(load_document(doc_file)))
    except (Graph2PipesError, ValidationError, OSError) as e:
        _fail(e)


if __name__ == "__main__":
    app()
