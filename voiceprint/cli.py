"""
voiceprint.cli - Typer CLI entry point.

Provides the subcommands for analyzing creators and generating scripts
inside a Voiceprint workspace.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from voiceprint import __version__
from voiceprint.config import VoiceprintConfig, load_config
from voiceprint.exceptions import PersonaNotFoundError
from voiceprint.logging import configure_logging
from voiceprint.models import ErrorInfo, PersonaProfile
from voiceprint.utils import format_duration, score_style, truncate
from voiceprint.workspace import Workspace, find_workspace_dir

app = typer.Typer(
    name="voiceprint",
    help="Creator voice analysis and persona-faithful script generation.\n\n"
    "Derives a persona profile from a creator's transcripts, writes new "
    "five-phase scripts in that voice, and scores how authentic they sound.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"voiceprint {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Voiceprint - creator voice analysis and script generation."""
    configure_logging(verbose)


def _open_workspace() -> tuple[Workspace, VoiceprintConfig]:
    workspace_dir = find_workspace_dir()
    if not workspace_dir:
        console.print("[red]Error: Not in a Voiceprint workspace[/red]")
        console.print("[dim]Run 'voiceprint init' first or cd into a workspace directory[/dim]")
        raise typer.Exit(1)
    try:
        config = load_config(workspace_dir)
    except ValueError as e:
        console.print(f"[red]Error: Invalid voiceprint.yaml: {e}[/red]")
        raise typer.Exit(1)
    return Workspace(workspace_dir), config


def _print_error(error: ErrorInfo | None, show_details: bool = False) -> None:
    if error is None:
        console.print("[red]Error: the request returned no result[/red]")
        return
    console.print(f"[red]Error [{error.code}]: {error.message}[/red]")
    if show_details:
        for key, value in error.details.items():
            console.print(f"[dim]  {key}: {value}[/dim]")


def _load_persona(workspace: Workspace, persona_id: str) -> PersonaProfile:
    try:
        return workspace.store().get_profile(persona_id)
    except PersonaNotFoundError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        console.print("[dim]Run 'voiceprint personas' to list stored personas[/dim]")
        raise typer.Exit(1)


@app.command("init")
def init_workspace(
    name: str = typer.Argument(..., help="Workspace name"),
    sensitivity: str = typer.Option(
        "medium",
        "--sensitivity",
        "-s",
        help="Pattern sensitivity: low, medium, or high",
    ),
    path: str = typer.Option(".", "--path", "-d", help="Directory to create workspace in"),
) -> None:
    """Create a new Voiceprint workspace.

    Creates a workspace directory with configuration, prompts, and data structure.
    """
    if sensitivity not in ("low", "medium", "high"):
        console.print(f"[red]Error: Unknown sensitivity '{sensitivity}'[/red]")
        raise typer.Exit(1)

    workspace_path = Path(path) / name
    if workspace_path.exists():
        console.print(f"[red]Error: Directory '{workspace_path}' already exists[/red]")
        raise typer.Exit(1)

    workspace = Workspace(workspace_path)
    try:
        copied = workspace.create(sensitivity=sensitivity)
    except OSError as e:
        console.print(f"[red]Error creating workspace: {e}[/red]")
        raise typer.Exit(1)

    if copied:
        console.print(f"[dim]  Copied prompt templates to {workspace.prompts_dir}[/dim]")
    console.print(f"[green]✓[/green] Created workspace '{name}' with sensitivity '{sensitivity}'")
    console.print(f"[dim]  {workspace_path}[/dim]")
    console.print("\nNext steps:")
    console.print(f"  cd {name}")
    console.print("  put transcripts under transcripts/<handle>/")
    console.print("  voiceprint analyze <handle>")


@app.command("analyze")
def analyze_creator(
    handle: str = typer.Argument(..., help="Creator handle (with or without @)"),
    platform: str = typer.Option("tiktok", "--platform", "-p", help="tiktok or instagram"),
    source: str | None = typer.Option(
        None, "--source", "-s", help="Transcript directory (default: workspace transcripts/)"
    ),
) -> None:
    """Build a persona profile from a creator's transcripts."""
    workspace, config = _open_workspace()

    from voiceprint.analyze.corpus import DirectoryCollector
    from voiceprint.api import analyze_voice_persona

    collector = DirectoryCollector(Path(source) if source else workspace.transcripts_dir)
    console.print(f"[cyan]Analyzing @{handle.lstrip('@')} on {platform}...[/cyan]\n")

    result = analyze_voice_persona(
        {"handle": handle, "platform": platform}, collector, config, store=workspace.store()
    )

    profile = result.persona_profile
    if not result.success or profile is None:
        _print_error(result.error, show_details=True)
        raise typer.Exit(1)

    table = Table(title=f"Persona {profile.persona_id}")
    table.add_column("Aspect", style="cyan")
    table.add_column("Value")
    metadata = result.metadata
    table.add_row(
        "Videos", f"{metadata.videos_processed} analyzed, {metadata.videos_failed} failed"
    )
    table.add_row(
        "Energy",
        f"{profile.speech_patterns.baseline.typical_energy} ({profile.voice_profile.energy_wave})",
    )
    table.add_row("Hooks", str(len(profile.voice_profile.hooks)))
    table.add_row("Bridges", str(len(profile.voice_profile.bridges)))
    table.add_row("Rotation", profile.generation_parameters.pattern_rotation)
    table.add_row("Optimal length", format_duration(profile.generation_parameters.optimal_length))
    console.print(table)

    console.print(f"\n[green]✓[/green] Analyzed in {metadata.processing_time:.1f}s")
    console.print(f"\nNext step: [cyan]voiceprint generate {profile.persona_id} \"<topic>\"[/cyan]")


@app.command("personas")
def list_personas() -> None:
    """List the latest persona for each analyzed creator."""
    workspace, _ = _open_workspace()
    store = workspace.store()
    profiles = store.list_personas()

    if not profiles:
        console.print("[yellow]No personas yet. Run 'voiceprint analyze' first.[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Personas")
    table.add_column("Persona", style="cyan")
    table.add_column("Creator")
    table.add_column("Videos", justify="right")
    table.add_column("Versions", justify="right")
    table.add_column("Analyzed", style="dim")
    for profile in profiles:
        table.add_row(
            profile.persona_id,
            f"@{profile.user_identifier.handle} ({profile.user_identifier.platform})",
            str(profile.metadata.videos_analyzed),
            str(len(store.versions(profile.user_identifier))),
            profile.analysis_date.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command("show")
def show_persona(
    persona_id: str = typer.Argument(..., help="Persona id"),
    as_json: bool = typer.Option(False, "--json", help="Print the stored profile as JSON"),
) -> None:
    """Show a persona's summary and signature patterns."""
    workspace, _ = _open_workspace()
    profile = _load_persona(workspace, persona_id)

    if as_json:
        console.print_json(data=profile.to_wire())
        return

    from voiceprint.api import summarize_persona

    summary = summarize_persona(profile)
    console.print(f"[bold]{summary.overview}[/bold]\n")

    table = Table(title="Signature Patterns")
    table.add_column("Slot", style="cyan")
    table.add_column("Element")
    table.add_column("Frequency", justify="right")
    for slot, element in profile.pattern_mapping:
        table.add_row(
            slot.replace("_", " "), truncate(element.element, 50), f"{element.frequency:.0%}"
        )
    console.print(table)

    for title, items in (
        ("Key characteristics", summary.key_characteristics),
        ("Strengths", summary.strengths),
        ("Recommendations", summary.recommendations),
    ):
        console.print(f"\n[bold]{title}[/bold]")
        for item in items:
            console.print(f"  • {item}")


@app.command("generate")
def generate_script(
    persona_id: str = typer.Argument(..., help="Persona id"),
    topic: str = typer.Argument(..., help="Script topic"),
    length: int | None = typer.Option(
        None, "--length", "-l", help="Target length in seconds (15-90)"
    ),
    style: str | None = typer.Option(
        None, "--style", help="hook-heavy, educational, conversational, or energetic"
    ),
    instructions: str | None = typer.Option(
        None, "--instructions", "-i", help="Extra instructions"
    ),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Also write the script to a file"
    ),
) -> None:
    """Generate a five-phase script in a persona's voice."""
    workspace, config = _open_workspace()
    profile = _load_persona(workspace, persona_id)

    from voiceprint.api import create_writer, generate_script_with_persona
    from voiceprint.generate.writers import LLMWriter
    from voiceprint.io import write_text
    from voiceprint.scoring import effective_threshold

    request = {
        "personaId": persona_id,
        "topic": topic,
        "targetLength": length or config.generation.default_target_length,
        "style": style,
        "customInstructions": instructions,
    }
    writer = create_writer(config, workspace.prompts_dir)
    result = generate_script_with_persona(
        request, profile, config, store=workspace.store(), writer=writer
    )

    script = result.script
    if not result.success or script is None:
        _print_error(result.error)
        raise typer.Exit(1)

    table = Table(title=f"Script {script.id}")
    table.add_column("Phase", style="cyan")
    table.add_column("Time", style="dim")
    table.add_column("Text")
    start = 0
    for phase, text in zip(script.metadata.phase_durations, script.structure.phases()):
        end = start + script.metadata.phase_durations[phase]
        timing = f"{format_duration(start)}-{format_duration(end)}"
        table.add_row(phase.replace("_", " "), timing, text)
        start = end
    console.print(table)

    threshold = effective_threshold(profile, config.rules)
    style_name = score_style(script.authenticity.overall_score, threshold)
    console.print(
        f"\nAuthenticity: [{style_name}]{script.authenticity.overall_score:.1f}[/{style_name}]"
        f"  ·  {script.metadata.word_count} words  ·  ~{script.metadata.actual_length:.0f}s"
    )
    for warning in script.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")
    if isinstance(writer, LLMWriter):
        usage = writer.client.get_token_usage()
        console.print(
            f"[dim]LLM tokens: {usage['total_tokens']} "
            f"({usage['prompt_tokens']} prompt, {usage['completion_tokens']} completion)[/dim]"
        )

    if output:
        write_text(Path(output), script.script + "\n")
        console.print(f"[green]✓[/green] Wrote {output}")


@app.command("score")
def score_text(
    persona_id: str = typer.Argument(..., help="Persona id"),
    script_file: str = typer.Argument(..., help="File holding the script text"),
    topic: str = typer.Option(
        "", "--topic", "-t", help="Topic words to ignore in vocabulary match"
    ),
) -> None:
    """Score an existing script against a persona and check it against the rules."""
    workspace, config = _open_workspace()
    profile = _load_persona(workspace, persona_id)

    path = Path(script_file)
    if not path.exists():
        console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(1)

    from voiceprint.api import validate_content
    from voiceprint.io import read_text
    from voiceprint.scoring import effective_threshold

    result = validate_content(read_text(path), profile, config, topic=topic)
    metrics = result.authenticity
    if not result.success or metrics is None:
        _print_error(result.error)
        raise typer.Exit(1)
    threshold = effective_threshold(profile, config.rules)

    table = Table(title="Authenticity")
    table.add_column("Check", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Detail", style="dim")
    for name, component in metrics.components().items():
        table.add_row(name, f"{component.score:.1f}", component.check)
    console.print(table)

    style_name = score_style(metrics.overall_score, threshold)
    verdict = "PASSING" if metrics.overall_score >= threshold else "NEEDS IMPROVEMENT"
    console.print(
        f"\nOverall: [{style_name}]{metrics.overall_score:.1f}[/{style_name}] "
        f"(threshold {threshold:.0f}) {verdict}"
    )

    if result.violations:
        console.print(f"\n[bold]Rule violations[/bold] ({len(result.violations)})")
        for violation in result.violations:
            console.print(f"  [red]✗[/red] {violation}")
    console.print("\n[bold]Recommendations[/bold]")
    for recommendation in result.recommendations:
        console.print(f"  • {recommendation}")
