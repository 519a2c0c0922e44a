"""Quantified achievements evaluation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from ...schemas import CandidateRecord, ScreeningRubric

_QUANTIFIED = re.compile(r"\d")


@dataclass
class AchievementsConfig:
    target_count: int = 3
    bullet_credit: float = 0.5


class AchievementsEvaluator:
    """Reward measurable outcomes; bullets with numbers earn partial credit."""

    category = "achievements"

    def __init__(self, *, config: AchievementsConfig | None = None) -> None:
        self._config = config or AchievementsConfig()

    def evaluate(self, subject: CandidateRecord, rubric: ScreeningRubric) -> dict[str, Any]:
        quantified = [
            item
            for item in subject.achievements
            if _QUANTIFIED.search(f"{item.value} {item.metric}")
        ]
        bullets = [
            bullet
            for entry in subject.experience
            for bullet in entry.bullets
            if _QUANTIFIED.search(bullet)
        ]
        if not subject.achievements and not bullets:
            return {
                "category": self.category,
                "score": 0.0,
                "reasons": ["no quantified achievements on the record"],
                "metadata": {"quantified": 0, "quantified_bullets": 0},
            }

        credit = len(quantified) + self._config.bullet_credit * len(bullets)
        target = max(self._config.target_count, 1)
        score = 100.0 * min(credit / target, 1.0)

        reasons = [
            f"{len(quantified)} quantified achievement(s) and {len(bullets)} quantified bullet(s)"
        ]
        reasons.extend(
            f"{item.metric}: {item.value}".strip(": ") for item in quantified[: target]
        )
        return {
            "category": self.category,
            "score": score,
            "reasons": reasons,
            "metadata": {
                "quantified": len(quantified),
                "quantified_bullets": len(bullets),
                "credit": credit,
            },
        }
