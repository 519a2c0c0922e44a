"""Adapter for CV-parser output documents."""

from __future__ import annotations

import re
import uuid
from typing import Any

from ..schemas import (
    Achievement,
    CandidateRecord,
    Certification,
    ContactInfo,
    EducationEntry,
    ExperienceEntry,
)
from ..schemas.candidate import CandidateLinks
from ._json import load_payload

_ID_NAMESPACE = uuid.UUID("6f1c1f4e-64a5-4c55-9d8f-3f0f6c6c2b1a")


class ParsedCVAdapter:
    """Convert a parsed-CV document (``full_name``, ``contact``, ...) into a candidate record.

    Parsed CVs carry no identifier, so one is derived from the email
    address or the name when the envelope does not supply it.
    """

    provider = "parsed_cv"

    def can_handle(self, blob: bytes | str, metadata: dict[str, Any]) -> bool:
        provider = metadata.get("provider")
        if provider:
            return str(provider).lower() == self.provider
        try:
            data = load_payload(blob, source="parsed CV")
        except ValueError:
            return False
        payload = data.get("payload", data)
        return "full_name" in payload and "candidate_id" not in payload

    def parse_candidate(self, section: str) -> dict[str, Any]:
        data = load_payload(section, source="parsed CV")
        payload = data.get("payload", data)
        contact = payload.get("contact") or {}

        experience = [
            ExperienceEntry(
                title=item.get("title") or "",
                company=item.get("company") or "",
                industry=item.get("industry"),
                location=item.get("location"),
                start_date=item.get("start_date"),
                end_date=item.get("end_date"),
                bullets=[bullet for bullet in item.get("bullets") or [] if bullet],
            )
            for item in payload.get("experience") or []
        ]
        education = [
            EducationEntry(
                institution=item.get("institution") or "",
                qualification=item.get("qualification") or "",
                grad_date=item.get("grad_date"),
            )
            for item in payload.get("education") or []
        ]
        certifications = [
            Certification(name=item["name"], issuer=item.get("issuer"), year=_text(item.get("year")))
            for item in payload.get("certifications") or []
            if item.get("name")
        ]
        achievements = [
            Achievement(
                metric=item.get("metric") or "",
                value=_text(item.get("value")) or "",
                note=item.get("note") or "",
            )
            for item in payload.get("achievements") or []
        ]
        links = payload.get("links") or {}

        candidate = CandidateRecord(
            candidate_id=data.get("candidate_id") or payload.get("candidate_id") or _derive_id(payload),
            full_name=payload.get("full_name") or "",
            contact=ContactInfo(
                email=contact.get("email") or None,
                phone=contact.get("phone") or None,
                city=contact.get("city") or None,
                country=contact.get("country") or None,
            ),
            headline=payload.get("headline") or None,
            skills=[skill.strip() for skill in payload.get("skills") or [] if skill and skill.strip()],
            experience=experience,
            education=education,
            certifications=certifications,
            achievements=achievements,
            links=CandidateLinks(
                linkedin=links.get("linkedin") or None,
                portfolio=links.get("portfolio") or None,
                github=links.get("github") or None,
            ),
            work_authorization=payload.get("work_authorization") or None,
            salary_expectation=payload.get("salary_expectation") or None,
            availability=payload.get("availability") or None,
            submitted_at=data.get("submitted_at") or payload.get("submitted_at"),
        )
        return candidate.model_dump(mode="python")


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _derive_id(payload: dict[str, Any]) -> str:
    contact = payload.get("contact") or {}
    key = (contact.get("email") or payload.get("full_name") or "").strip().lower()
    if not key:
        raise ValueError("parsed CV has neither an email address nor a name")
    key = re.sub(r"\s+", " ", key)
    return uuid.uuid5(_ID_NAMESPACE, key).hex
