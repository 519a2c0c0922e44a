"""Typer CLI entrypoint for blueprint validation and batch screening."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from pydantic import ValidationError

from .container import create_container
from .core.validator import validate_document
from .logging import configure_logging
from .pipeline import AuditLogger
from .schemas.config import load_config

app = typer.Typer(help="Assessment blueprint validation and candidate screening CLI.")


def _load_settings(config: Optional[Path]) -> dict[str, Any]:
    if not config:
        return {}
    with config.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    try:
        return load_config(loaded).to_settings()
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid config: {exc}", param_hint="config") from exc


@app.command()
def validate(
    blueprint: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="Blueprint JSON path."),
    generator: bool = typer.Option(False, help="Input is a generator document (meta.duration_min shape)."),
) -> None:
    """Check a blueprint and print every violated invariant."""
    with blueprint.open("r", encoding="utf-8") as handle:
        try:
            document = json.load(handle)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"Invalid blueprint JSON: {exc}", param_hint="blueprint") from exc
    if not isinstance(document, dict):
        raise typer.BadParameter("Blueprint must be a JSON object", param_hint="blueprint")

    if generator:
        document = _from_generator(document)
    _, violations = validate_document(document)
    if violations:
        for violation in violations:
            typer.echo(f"{violation.kind}\t{violation.field}\t{violation.message}")
        typer.echo(f"{len(violations)} violation(s) found.", err=True)
        raise typer.Exit(code=1)
    typer.echo("Blueprint is valid.")


@app.command()
def evaluate(
    candidates: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Candidates JSONL path."),
    rubric: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Screening rubric JSON path."),
    output: Path = typer.Option(
        ...,
        exists=False,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Output JSON path.",
    ),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
) -> None:
    """Score and rank candidate records against a screening rubric."""
    settings = _load_settings(config)

    configure_logging(log_level)

    container = create_container(settings=settings)
    pipeline = container.pipeline()
    audit_logger = AuditLogger(audit_log) if audit_log else None

    results = pipeline.run(
        candidates_path=candidates,
        rubric_path=rubric,
        output_path=output,
        audit_logger=audit_logger,
    )
    typer.echo(f"Processed {len(results)} candidates. Results saved to {output}.")


def _from_generator(document: dict[str, Any]) -> dict[str, Any]:
    payload = dict(document)
    meta = payload.get("meta")
    if isinstance(meta, dict) and "duration_min" in meta:
        payload["meta"] = {key: value for key, value in meta.items() if key != "duration_min"}
        payload.setdefault("duration_minutes", meta["duration_min"])
    return payload


def main() -> None:
    app()


if __name__ == "__main__":
    main()
