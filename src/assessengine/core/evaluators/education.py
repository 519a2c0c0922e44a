"""Education and certification evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ...schemas import CandidateRecord, ScreeningRubric
from .matching import match_keywords, normalize

DEFAULT_LADDER: tuple[tuple[str, float], ...] = (
    ("phd", 100.0),
    ("doctor", 100.0),
    ("master", 90.0),
    ("mba", 90.0),
    ("honours", 80.0),
    ("bachelor", 75.0),
    ("degree", 75.0),
    ("bsc", 75.0),
    ("ba ", 75.0),
    ("diploma", 60.0),
    ("certificate", 45.0),
    ("matric", 30.0),
    ("high school", 30.0),
)


@dataclass
class EducationConfig:
    min_similarity: float = 80.0
    certification_bonus: float = 5.0
    max_certification_bonus: float = 15.0
    ladder: tuple[tuple[str, float], ...] = field(default=DEFAULT_LADDER)


class EducationEvaluator:
    """Required-qualification coverage, or the highest level on the ladder."""

    category = "education"

    def __init__(self, *, config: EducationConfig | None = None) -> None:
        self._config = config or EducationConfig()

    def evaluate(self, subject: CandidateRecord, rubric: ScreeningRubric) -> dict[str, Any]:
        qualifications = [
            normalize(entry.qualification) for entry in subject.education if entry.qualification
        ]
        certifications = [normalize(cert.name) for cert in subject.certifications if cert.name]
        if not qualifications and not certifications:
            return {
                "category": self.category,
                "score": 0.0,
                "reasons": ["no education data on the record"],
                "metadata": {"qualifications": 0, "certifications": 0},
            }

        reasons: list[str] = []
        metadata: dict[str, Any] = {
            "qualifications": len(qualifications),
            "certifications": len(certifications),
        }
        if rubric.required_qualifications:
            matched, missing = match_keywords(
                qualifications + certifications,
                rubric.required_qualifications,
                min_similarity=self._config.min_similarity,
            )
            base = 100.0 * len(matched) / (len(matched) + len(missing))
            if matched:
                reasons.append(f"meets required qualifications: {', '.join(matched)}")
            if missing:
                reasons.append(f"missing required qualifications: {', '.join(missing)}")
            metadata["missing_qualifications"] = missing
        else:
            base = max((self._level(text) for text in qualifications), default=0.0)
            reasons.append(f"highest qualification level scores {base:g}")

        bonus = min(
            self._config.certification_bonus * len(certifications),
            self._config.max_certification_bonus,
        )
        if bonus:
            reasons.append(f"{len(certifications)} certification(s) add {bonus:g}")
        metadata["certification_bonus"] = bonus
        return {
            "category": self.category,
            "score": base + bonus,
            "reasons": reasons,
            "metadata": metadata,
        }

    def _level(self, qualification: str) -> float:
        padded = f"{qualification} "
        for term, level in self._config.ladder:
            if term in padded:
                return level
        return 0.0
