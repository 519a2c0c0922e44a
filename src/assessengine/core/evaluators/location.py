"""Location and work-authorization evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ...schemas import CandidateRecord, ScreeningRubric
from .matching import normalize

REMOTE_WORK_TYPES = {"remote", "fully remote"}
NEGATIVE_WORDS = {"no", "none", "not", "pending", "without"}
NEGATIVE_TERMS = ("sponsor", "require", "visa needed")


@dataclass
class LocationConfig:
    location_weight: float = 0.6
    authorization_weight: float = 0.4


def is_authorized(work_authorization: str | None) -> bool | None:
    """Tri-state read of a free-text authorization statement."""
    if not work_authorization or not work_authorization.strip():
        return None
    text = normalize(work_authorization)
    if NEGATIVE_WORDS & set(text.split()) or any(term in text for term in NEGATIVE_TERMS):
        return False
    return True


def location_fit(subject: CandidateRecord, rubric: ScreeningRubric) -> tuple[float, str]:
    """Return a 0-1 fit and a reason."""
    work_type = normalize(rubric.location.work_type or "")
    if work_type in REMOTE_WORK_TYPES:
        return 1.0, "remote role"
    city = normalize(subject.contact.city or "")
    country = normalize(subject.contact.country or "")
    wanted_city = normalize(rubric.location.city or "")
    wanted_country = normalize(rubric.location.country or "")
    if not wanted_city and not wanted_country:
        return 1.0, "no location requirement"
    if not city and not country:
        return 0.0, "candidate location unknown"
    if wanted_city and city == wanted_city:
        return 1.0, f"based in {subject.contact.city}"
    if wanted_country and country == wanted_country:
        fit = 0.75 if wanted_city else 1.0
        return fit, f"based in {subject.contact.country}"
    return 0.0, "outside the role's location"


class LocationAuthEvaluator:
    category = "location_auth"

    def __init__(self, *, config: LocationConfig | None = None) -> None:
        self._config = config or LocationConfig()

    def evaluate(self, subject: CandidateRecord, rubric: ScreeningRubric) -> dict[str, Any]:
        fit, location_reason = location_fit(subject, rubric)
        authorized = is_authorized(subject.work_authorization)
        if authorized is None:
            auth_score, auth_reason = 0.0, "work authorization not stated"
        elif authorized:
            auth_score, auth_reason = 1.0, f"work authorization: {subject.work_authorization}"
        else:
            auth_score, auth_reason = 0.0, f"work authorization: {subject.work_authorization}"

        score = 100.0 * (
            self._config.location_weight * fit + self._config.authorization_weight * auth_score
        )
        return {
            "category": self.category,
            "score": score,
            "reasons": [location_reason, auth_reason],
            "metadata": {"location_fit": fit, "authorized": authorized},
        }
