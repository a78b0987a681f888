"""
Aplicación CLI de converge.

Solo compone comandos y formatea salida; la lógica vive en core y providers.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from converge import __version__
from converge.core.engine import ResourceStatus, RunReport, converge
from converge.core.errors import ConfigError, ConvergeError
from converge.core.graph import build_graph
from converge.core.manifest import Catalog, load_manifest, plan_from_report, validate_manifest_data
from converge.core.resource.models import EdgeKind
from converge.core.runtime.facts import Facts
from converge.core.runtime.resolver import reports_dir, state_root
from converge.providers import default_providers
from converge.providers.facts import gather_facts, load_facts_file
from converge.providers.secrets import default_secret_provider

app = typer.Typer(
    name="converge",
    help="converge - Convergencia declarativa de recursos del host",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

REPORT_NAME = "last_run_report.yaml"

_STATUS_STYLE = {
    ResourceStatus.UNCHANGED: "dim",
    ResourceStatus.CHANGED: "green",
    ResourceStatus.NOOP: "yellow",
    ResourceStatus.FAILED: "bold red",
    ResourceStatus.SKIPPED: "magenta",
}


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Logs de depuración"),
    env_file: Path = typer.Option(Path(".env"), "--env-file", help="Archivo .env a cargar"),
):
    """Carga .env y configura logging antes de cualquier comando."""
    if env_file.exists():
        load_dotenv(env_file)
    level = "DEBUG" if verbose else os.environ.get("CONVERGE_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _parse_fact_overrides(pairs: Optional[List[str]]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ConfigError(f"--fact espera clave=valor: {pair!r}")
        overrides[key.strip()] = value.strip()
    return overrides


def _facts(pairs: Optional[List[str]], facts_file: Optional[Path]) -> Facts:
    """Facts del host + archivo de overrides + --fact (en ese orden de prioridad creciente)."""
    facts = gather_facts()
    if facts_file is not None:
        facts = facts.merged(load_facts_file(facts_file))
    return facts.merged(_parse_fact_overrides(pairs))


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[red]❌ {escape(str(error))}[/red]")
    return typer.Exit(1)


def _load(manifest: Path, facts: Facts, lenient: bool, persist_secrets: bool) -> Catalog:
    catalog = load_manifest(
        manifest,
        facts=facts,
        secrets=default_secret_provider(persist=persist_secrets),
        strict=not lenient,
    )
    for error in catalog.errors:
        console.print(f"[yellow]⚠️  En cuarentena: {escape(str(error))}[/yellow]")
    return catalog


def _print_report(report: RunReport, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Recurso", style="cyan")
    table.add_column("Acción")
    table.add_column("Estado")
    table.add_column("Detalle", style="dim")
    for entry in report.log:
        style = _STATUS_STYLE.get(entry.status, "")
        detail = entry.reason or entry.message
        if entry.changes and not detail:
            detail = ", ".join(d.field for d in entry.changes)
        table.add_row(
            escape(str(entry.resource_id)),
            entry.action,
            f"[{style}]{entry.status.value}[/{style}]",
            escape(detail),
        )
    console.print(table)

    counts = report.counts()
    summary = "  ".join(f"{name}: {counts[name]}" for name in counts if counts[name])
    border = {"failed": "red", "changed": "green"}.get(report.status.value, "cyan")
    console.print(Panel.fit(
        f"[bold]Estado:[/bold] {report.status.value}\n"
        f"[bold]Resumen:[/bold] {summary or 'sin recursos'}\n"
        f"[bold]Duración:[/bold] {report.duration:.2f}s",
        border_style=border,
    ))


def write_report(report: RunReport, path: Optional[Path] = None) -> Path:
    """Persiste el reporte como YAML (secretos enmascarados)."""
    path = path or reports_dir() / REPORT_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(report.as_dict(), f, sort_keys=False, allow_unicode=True)
    return path


def _save_report(report: RunReport, path: Optional[Path]) -> None:
    try:
        saved = write_report(report, path)
    except OSError as e:
        console.print(f"[yellow]⚠️  No se pudo guardar el reporte: {escape(str(e))}[/yellow]")
        return
    console.print(f"[dim]Reporte: {escape(str(saved))}[/dim]")


@app.command()
def apply(
    manifest: Path = typer.Argument(..., help="Manifiesto YAML a converger"),
    fact: Optional[List[str]] = typer.Option(None, "--fact", help="Override de fact (clave=valor), repetible"),
    facts_file: Optional[Path] = typer.Option(None, "--facts", help="YAML con facts a aplicar sobre los del host"),
    fail_fast: bool = typer.Option(False, "--fail-fast", help="Abortar el resto de la corrida al primer fallo"),
    detailed_exitcodes: bool = typer.Option(
        False, "--detailed-exitcodes", help="0 sin cambios, 2 cambios, 4 fallos, 6 cambios y fallos"
    ),
    lenient: bool = typer.Option(False, "--lenient", help="Recursos inválidos en cuarentena en vez de abortar"),
    report_path: Optional[Path] = typer.Option(None, "--report", help="Ruta del reporte YAML"),
):
    """Converge el host al estado declarado en el manifiesto"""
    try:
        facts = _facts(fact, facts_file)
        catalog = _load(manifest, facts, lenient, persist_secrets=True)
        report = converge(
            catalog.registry,
            catalog.edges,
            facts=facts,
            providers=default_providers(facts),
            fail_fast=fail_fast,
        )
    except ConvergeError as e:
        raise _fail(e)

    _print_report(report, f"Convergencia: {manifest.name}")
    _save_report(report, report_path)
    raise typer.Exit(report.exit_code(detailed=detailed_exitcodes))


@app.command()
def plan(
    manifest: Path = typer.Argument(..., help="Manifiesto YAML a evaluar"),
    fact: Optional[List[str]] = typer.Option(None, "--fact", help="Override de fact (clave=valor), repetible"),
    facts_file: Optional[Path] = typer.Option(None, "--facts", help="YAML con facts a aplicar sobre los del host"),
    detailed_exitcodes: bool = typer.Option(
        False, "--detailed-exitcodes", help="0 sin cambios, 2 cambios pendientes, 4 fallos"
    ),
    lenient: bool = typer.Option(False, "--lenient", help="Recursos inválidos en cuarentena en vez de abortar"),
):
    """Muestra qué cambiaría (noop): lee y compara, no aplica nada"""
    try:
        facts = _facts(fact, facts_file)
        catalog = _load(manifest, facts, lenient, persist_secrets=False)
        report = converge(
            catalog.registry,
            catalog.edges,
            facts=facts,
            providers=default_providers(facts),
            noop=True,
        )
    except ConvergeError as e:
        raise _fail(e)

    _print_report(report, f"Plan (noop): {manifest.name}")
    actions = plan_from_report(report)
    if actions:
        console.print("\n[bold]Acciones pendientes:[/bold]")
        for action in actions:
            console.print(f"  • {escape(action)}")
    else:
        console.print("[green]✅ Sin cambios pendientes[/green]")
    raise typer.Exit(report.exit_code(detailed=detailed_exitcodes))


@app.command()
def graph(
    manifest: Path = typer.Argument(..., help="Manifiesto YAML"),
    fact: Optional[List[str]] = typer.Option(None, "--fact", help="Override de fact (clave=valor), repetible"),
    facts_file: Optional[Path] = typer.Option(None, "--facts", help="YAML con facts a aplicar sobre los del host"),
    dot: bool = typer.Option(False, "--dot", help="Salida en formato Graphviz"),
):
    """Muestra el orden de aplicación y las relaciones entre recursos"""
    try:
        facts = _facts(fact, facts_file)
        catalog = _load(manifest, facts, lenient=False, persist_secrets=False)
        dependency_graph = build_graph(catalog.registry, catalog.edges)
        order = dependency_graph.order()
    except ConvergeError as e:
        raise _fail(e)

    if dot:
        typer.echo(dependency_graph.to_dot())
        return

    table = Table(title=f"Orden de aplicación: {manifest.name}", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Recurso", style="cyan")
    table.add_column("Después de", style="green")
    table.add_column("Notifica a", style="yellow")
    for position, rid in enumerate(order, 1):
        table.add_row(
            str(position),
            escape(str(rid)),
            escape(", ".join(str(p) for p in dependency_graph.predecessors(rid, EdgeKind.ORDER))),
            escape(", ".join(str(s) for s in dependency_graph.successors(rid, EdgeKind.NOTIFY))),
        )
    console.print(table)
    if catalog.excluded:
        console.print(f"[dim]Excluidos por facts: {', '.join(str(r) for r in catalog.excluded)}[/dim]")


@app.command()
def validate(
    manifest: Path = typer.Argument(..., help="Manifiesto YAML a validar"),
    fact: Optional[List[str]] = typer.Option(None, "--fact", help="Override de fact (clave=valor), repetible"),
    facts_file: Optional[Path] = typer.Option(None, "--facts", help="YAML con facts a aplicar sobre los del host"),
):
    """Valida estructura, atributos, referencias y ciclos sin tocar el host"""
    if not manifest.exists():
        raise _fail(ConfigError(f"Manifiesto no encontrado: {manifest}"))
    try:
        with open(manifest, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise _fail(ConfigError(f"Error al parsear YAML {manifest}: {e}"))

    errors = validate_manifest_data(data)
    if errors:
        console.print(f"[red]❌ {manifest.name}: {len(errors)} error(es)[/red]")
        for error in errors:
            console.print(f"  • {escape(error)}")
        raise typer.Exit(1)

    try:
        facts = _facts(fact, facts_file)
        catalog = load_manifest(manifest, facts=facts, secrets=default_secret_provider(persist=False))
        dependency_graph = build_graph(catalog.registry, catalog.edges)
    except ConvergeError as e:
        raise _fail(e)
    console.print(
        f"[green]✅ {manifest.name} válido[/green] "
        f"[dim]({len(dependency_graph)} recursos, {len(dependency_graph.edges())} aristas)[/dim]"
    )


@app.command()
def facts(
    fact: Optional[List[str]] = typer.Option(None, "--fact", help="Override de fact (clave=valor), repetible"),
    facts_file: Optional[Path] = typer.Option(None, "--facts", help="YAML con facts a aplicar sobre los del host"),
):
    """Muestra los facts del host tal como los verá el manifiesto"""
    try:
        snapshot = _facts(fact, facts_file)
    except ConvergeError as e:
        raise _fail(e)
    table = Table(title="Facts", show_header=False, box=None)
    table.add_column("Fact", style="cyan", width=20)
    table.add_column("Valor", style="green")
    for key, value in snapshot.as_dict().items():
        table.add_row(key, "—" if value is None else escape(str(value)))
    console.print(table)


@app.command()
def version():
    """Muestra la versión de converge"""
    console.print(Panel.fit(
        "[bold cyan]converge[/bold cyan]\n"
        "[dim]Convergencia declarativa de recursos del host[/dim]\n\n"
        f"[bold]Versión:[/bold] {__version__}\n"
        f"[bold]Estado:[/bold] {state_root()}",
        border_style="cyan"
    ))


def main():
    app()


if __name__ == "__main__":
    main()
