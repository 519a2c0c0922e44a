"""Batch CV-screening pipeline assembly and execution."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List

import pendulum
import structlog
from pydantic import ValidationError

from . import __version__
from .adapters import NativeRecordAdapter, ParsedCVAdapter, ResumeAdapter
from .core.scoring import ScoringEngine
from .schemas import CandidateRecord, CategoryWeights, ScreeningRubric


class AdapterRegistry:
    """Registry mapping providers to candidate adapters."""

    def __init__(self, adapters: Iterable[ResumeAdapter]):
        self._adapters = {adapter.provider: adapter for adapter in adapters}

    def get(self, provider: str) -> ResumeAdapter:
        try:
            return self._adapters[provider]
        except KeyError as exc:
            raise KeyError(f"Unsupported provider: {provider!r}") from exc

    def detect(self, record: dict) -> ResumeAdapter | None:
        for adapter in self._adapters.values():
            if adapter.can_handle(json.dumps(record, ensure_ascii=False, default=str), {}):
                return adapter
        return None

    def providers(self) -> List[str]:
        return list(self._adapters.keys())


class CandidateLoadError(ValueError):
    """Raised when candidate loading encounters invalid records."""

    def __init__(self, errors: list[str], partial: list[CandidateRecord]):
        super().__init__("Candidate loading failed")
        self.errors = errors
        self.partial = partial

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Candidate loading failed: {self.errors}"


class CandidateLoader:
    """Load candidate records from JSON lines through adapters.

    A line names its adapter with ``provider``; lines without one are
    offered to each registered adapter in turn.
    """

    def __init__(self, registry: AdapterRegistry):
        self._registry = registry

    def load(self, path: Path) -> list[CandidateRecord]:
        candidates: list[CandidateRecord] = []
        errors: list[str] = []
        with path.open("r", encoding="utf-8") as handle:
            for idx, line in enumerate(handle, start=1):
                raw = line.strip()
                if not raw:
                    continue
                try:
                    record = json.loads(raw)
                except json.JSONDecodeError as exc:
                    errors.append(f"line {idx}: invalid JSON ({exc})")
                    continue
                if not isinstance(record, dict):
                    errors.append(f"line {idx}: expected a JSON object")
                    continue
                provider = record.get("provider")
                if provider:
                    try:
                        adapter = self._registry.get(provider)
                    except KeyError:
                        errors.append(f"line {idx}: unsupported provider '{provider}'")
                        continue
                else:
                    adapter = self._registry.detect(record)
                    if adapter is None:
                        errors.append(f"line {idx}: no adapter recognizes this record")
                        continue
                try:
                    candidate_dict = adapter.parse_candidate(
                        json.dumps(record, ensure_ascii=False)
                    )
                    candidate = CandidateRecord.model_validate(candidate_dict)
                except (ValueError, ValidationError) as exc:
                    errors.append(f"line {idx}: {exc}")
                    continue
                candidates.append(candidate)
        if errors:
            raise CandidateLoadError(errors, candidates)
        return candidates


class RubricLoader:
    """Load screening rubric documents."""

    def load(self, path: Path) -> ScreeningRubric:
        with path.open("r", encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid rubric JSON: {exc}") from exc
        return ScreeningRubric.model_validate(data)


class OutputWriter:
    """Persist screening results."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False))
            handle.write("\n")


class ScreeningPipeline:
    """End-to-end CV screening: load, score, rank, write."""

    def __init__(
        self,
        *,
        engine: ScoringEngine,
        registry: AdapterRegistry,
        candidate_loader: CandidateLoader | None = None,
        rubric_loader: RubricLoader | None = None,
        writer: OutputWriter | None = None,
        weight_overrides: dict[str, float] | None = None,
    ) -> None:
        self._engine = engine
        self._registry = registry
        self._candidates = candidate_loader or CandidateLoader(registry)
        self._rubrics = rubric_loader or RubricLoader()
        self._writer = writer or OutputWriter()
        self._weight_overrides = weight_overrides or {}
        self._logger = structlog.get_logger(__name__)

    def run(
        self,
        *,
        candidates_path: Path,
        rubric_path: Path,
        output_path: Path,
        audit_logger: AuditLogger | None = None,
    ) -> list[dict]:
        rubric = self._apply_overrides(self._rubrics.load(rubric_path))
        load_errors: list[str] = []
        try:
            candidates = self._candidates.load(candidates_path)
        except CandidateLoadError as exc:
            candidates = exc.partial
            load_errors.extend(exc.errors)
            self._logger.warning("candidates.partial_load", errors=exc.errors)

        results = self._engine.evaluate_batch(candidates, rubric)
        names = {candidate.candidate_id: candidate.full_name for candidate in candidates}

        serialized_results: list[dict] = []
        for result in results:
            entry = result.model_dump(mode="json")
            entry["full_name"] = names.get(result.subject_id, "")
            serialized_results.append(entry)
            if audit_logger:
                audit_logger.append(
                    {
                        "candidate_id": result.subject_id,
                        "job_title": rubric.job_title,
                        "score_total": result.score_total,
                        "rank": result.rank,
                        "is_knockout": result.knockout.is_knockout,
                        "knockout_reasons": list(result.knockout.reasons),
                        "flags": result.flags.model_dump(mode="json"),
                    }
                )

        metadata = {
            "job_title": rubric.job_title,
            "candidate_count": len(candidates),
            "knockout_count": sum(1 for result in results if result.knockout.is_knockout),
            "errors": load_errors,
            "timestamp": pendulum.now().to_iso8601_string(),
            "app_version": __version__,
        }
        self._writer.write(output_path, {"metadata": metadata, "results": serialized_results})
        self._logger.info(
            "screening.completed",
            job_title=rubric.job_title,
            candidates=len(candidates),
            errors=len(load_errors),
        )
        return serialized_results

    def _apply_overrides(self, rubric: ScreeningRubric) -> ScreeningRubric:
        if not self._weight_overrides:
            return rubric
        merged = rubric.weights.model_dump()
        merged.update(self._weight_overrides)
        return rubric.model_copy(update={"weights": CategoryWeights.model_validate(merged)})


def default_registry() -> AdapterRegistry:
    """Return the default adapter registry."""
    return AdapterRegistry(adapters=[ParsedCVAdapter(), NativeRecordAdapter()])


__all__ = [
    "AdapterRegistry",
    "AuditLogger",
    "CandidateLoadError",
    "CandidateLoader",
    "OutputWriter",
    "RubricLoader",
    "ScreeningPipeline",
    "default_registry",
]
