"""Must-have and nice-to-have skill coverage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ...schemas import CandidateRecord, ScreeningRubric
from .matching import match_keywords


@dataclass
class SkillsConfig:
    """Configuration for rule-based skill matching."""

    min_similarity: float = 85.0
    must_weight: float = 0.75
    nice_weight: float = 0.25


class SkillsEvaluator:
    """Evaluate keyword coverage between rubric skills and the candidate record."""

    category = "skills"

    def __init__(self, *, config: SkillsConfig | None = None) -> None:
        self._config = config or SkillsConfig()

    def evaluate(self, subject: CandidateRecord, rubric: ScreeningRubric) -> dict[str, Any]:
        corpus = subject.corpus()
        must_hits, must_missing = match_keywords(
            corpus, rubric.must_have_skills, min_similarity=self._config.min_similarity
        )
        nice_hits, nice_missing = match_keywords(
            corpus, rubric.nice_to_have_skills, min_similarity=self._config.min_similarity
        )

        groups = {
            "must": (must_hits, must_missing, self._config.must_weight),
            "nice": (nice_hits, nice_missing, self._config.nice_weight),
        }
        weighted_sum = 0.0
        total_weight = 0.0
        coverage: dict[str, float] = {}
        for name, (hits, missing, weight) in groups.items():
            total = len(hits) + len(missing)
            if total == 0 or weight <= 0:
                continue
            coverage[name] = len(hits) / total
            weighted_sum += weight * coverage[name]
            total_weight += weight

        reasons: list[str] = []
        if total_weight == 0:
            score = 100.0 if corpus else 0.0
            reasons.append(
                "no skills listed in the rubric"
                if corpus
                else "no skills listed in the rubric or on the record"
            )
        else:
            score = 100.0 * weighted_sum / total_weight
        if not corpus and total_weight > 0:
            reasons.append("no skills data on the record")
        if must_hits:
            reasons.append(f"matched must-have skills: {', '.join(must_hits)}")
        if must_missing:
            reasons.append(f"missing must-have skills: {', '.join(must_missing)}")
        if nice_hits:
            reasons.append(f"matched nice-to-have skills: {', '.join(nice_hits)}")

        return {
            "category": self.category,
            "score": score,
            "reasons": reasons,
            "must_haves_satisfied": must_hits,
            "missing_must_haves": must_missing,
            "metadata": {
                "coverage": coverage,
                "nice_hits": nice_hits,
                "nice_missing": nice_missing,
                "corpus_size": len(corpus),
                "min_similarity": self._config.min_similarity,
            },
        }
