"""CLI entry point for avr-stack."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .analysis.traverser import StackAnalysis
from .image.decoder import DecodeError
from .image.hexfile import load_image
from .report.generator import ReportGenerator, Verdict, verdict_for

console = Console()

_LOG_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def _configure_logging(verbosity: int) -> None:
    level = _LOG_LEVELS[min(verbosity, len(_LOG_LEVELS) - 1)]
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _collect_gate_violations(report: dict, stack_size: int | None) -> list[str]:
    violations: list[str] = []
    verdict = Verdict(report["verdict"])
    if verdict is Verdict.UNBOUNDED:
        location = report.get("unbounded_at")
        where = f" (back-edge at pc 0x{location:04X})" if location is not None else ""
        violations.append(f"Unbounded stack gate failed: stack usage cannot be statically bounded{where}.")
    elif verdict is Verdict.EXCEEDS_LIMIT:
        violations.append(
            f"Stack size gate failed: worst-case usage {report['max_height']} > stack size {stack_size} bytes."
        )
    return violations


def _render_gate_evaluation_markdown(gate_evaluation: dict) -> str:
    lines = [
        "## Gate Evaluation",
        "",
        f"- **Passed:** {'Yes' if gate_evaluation['passed'] else 'No'}",
    ]
    stack_size = gate_evaluation.get("policies", {}).get("stack_size")
    if stack_size is not None:
        lines.append("")
        lines.append("### Active Policies")
        lines.append("")
        lines.append(f"- `stack_size`: {stack_size}")
    lines.append("")
    lines.append("### Violations")
    lines.append("")
    violations = gate_evaluation.get("violations", [])
    if violations:
        for violation in violations:
            lines.append(f"- {violation}")
    else:
        lines.append("- none")
    return "\n".join(lines)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Worst-case stack usage analyzer for AVR firmware."""


@main.command()
@click.argument("firmware", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(), help="Output file path")
@click.option("--format", "fmt", type=click.Choice(["json", "markdown"]), default="markdown")
@click.option(
    "--stack-size",
    type=click.IntRange(min=0),
    default=None,
    help="Exit with code 3 if worst-case stack usage is greater than this many bytes.",
)
@click.option(
    "--call-overhead",
    type=click.IntRange(min=0),
    default=StackAnalysis.CALL_OVERHEAD,
    show_default=True,
    help="Bytes of return address pushed by a call (3 on parts with a 22-bit PC).",
)
@click.option("--no-verify-checksum", is_flag=True, default=False, help="Accept Intel HEX records with bad checksums.")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug).")
def analyze(
    firmware: str,
    output: str | None,
    fmt: str,
    stack_size: int | None,
    call_overhead: int,
    no_verify_checksum: bool,
    verbose: int,
) -> None:
    """Compute the worst-case stack usage of a firmware image (Intel HEX or raw binary)."""
    _configure_logging(verbose)

    console.print(f"[bold blue]AVR Stack Analyzer v{__version__}[/]")
    console.print(f"Analyzing: {firmware}\n")

    path = Path(firmware)
    try:
        image = load_image(path.read_bytes(), verify_checksum=not no_verify_checksum, name=path.stem)
    except ValueError as e:
        console.print(f"[red]Failed to load firmware: {e}[/]")
        sys.exit(1)

    console.print(f"  Image size: {image.size} bytes")
    console.print(f"  Call overhead: {call_overhead} bytes\n")

    analysis = StackAnalysis(image)
    analysis.CALL_OVERHEAD = call_overhead

    with console.status("[bold green]Exploring control flow..."):
        try:
            usage = analysis.apply()
        except DecodeError as e:
            console.print(f"[red]Failed to decode firmware: {e}[/]")
            sys.exit(2)

    verdict = verdict_for(usage, stack_size)
    verdict_colors = {
        Verdict.WITHIN_LIMIT: "green",
        Verdict.UNCHECKED: "white",
        Verdict.EXCEEDS_LIMIT: "bright_red",
        Verdict.UNBOUNDED: "red",
    }
    table = Table(title="Stack Usage")
    table.add_column("Image", style="bold")
    table.add_column("Worst Case")
    table.add_column("Stack Size")
    table.add_column("States")
    table.add_column("Verdict")
    table.add_row(
        image.name,
        str(usage),
        "-" if stack_size is None else f"{stack_size} bytes",
        str(usage.states_visited),
        f"[{verdict_colors[verdict]}]{verdict.value.upper()}[/]",
    )
    console.print(table)
    if usage.underflow_possible:
        console.print(f"[yellow]Some path pops more than it pushes (lowest height {usage.min_height}).[/]")

    # Generate report
    gen = ReportGenerator(image.name, call_overhead=call_overhead)
    report_dict = gen.to_dict(usage, stack_size)
    gate_violations = _collect_gate_violations(report_dict, stack_size)
    gate_evaluation = {
        "passed": not gate_violations,
        "violations": list(gate_violations),
        "policies": {"stack_size": stack_size},
    }
    report_dict["gate_evaluation"] = gate_evaluation

    if fmt == "json":
        report = json.dumps(report_dict, indent=2)
    else:
        report = gen.to_markdown(usage, stack_size)
        report = f"{report}\n\n{_render_gate_evaluation_markdown(gate_evaluation)}"

    if output:
        Path(output).write_text(report)
        console.print(f"[green]Report saved to {output}[/]")
    else:
        console.print(report)
    if gate_violations:
        for violation in gate_violations:
            console.print(f"[red]{violation}[/]")
        sys.exit(3)


if __name__ == "__main__":
    main()
