"""Provider-neutral candidate record used by CV screening."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ContactInfo(BaseModel):
    """Contact channels for a candidate."""

    email: str | None = None
    phone: str | None = None
    city: str | None = None
    country: str | None = None

    model_config = ConfigDict(extra="forbid")


class ExperienceEntry(BaseModel):
    """Employment history entry."""

    title: str = ""
    company: str = ""
    industry: str | None = None
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    bullets: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class EducationEntry(BaseModel):
    """Structured education history entry."""

    institution: str = ""
    qualification: str = ""
    grad_date: str | None = None

    model_config = ConfigDict(extra="forbid")


class Certification(BaseModel):
    name: str
    issuer: str | None = None
    year: str | None = None

    model_config = ConfigDict(extra="forbid")


class Achievement(BaseModel):
    """Quantified outcome claimed on a CV."""

    metric: str = ""
    value: str = ""
    note: str = ""

    model_config = ConfigDict(extra="forbid")


class CandidateLinks(BaseModel):
    linkedin: str | None = None
    portfolio: str | None = None
    github: str | None = None

    model_config = ConfigDict(extra="forbid")


class CandidateRecord(BaseModel):
    """External candidate document scored against a screening rubric."""

    candidate_id: str
    full_name: str = ""
    contact: ContactInfo = Field(default_factory=ContactInfo)
    headline: str | None = None
    skills: list[str] = Field(default_factory=list)
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    achievements: list[Achievement] = Field(default_factory=list)
    links: CandidateLinks = Field(default_factory=CandidateLinks)
    work_authorization: str | None = None
    salary_expectation: str | float | None = None
    availability: str | None = None
    submitted_at: datetime | None = None

    model_config = ConfigDict(extra="ignore")

    @property
    def subject_id(self) -> str:
        return self.candidate_id

    def corpus(self) -> list[str]:
        """Lower-cased searchable text fragments."""
        texts: list[str] = []
        texts.extend(self.skills)
        if self.headline:
            texts.append(self.headline)
        for entry in self.experience:
            if entry.title:
                texts.append(entry.title)
            if entry.industry:
                texts.append(entry.industry)
            texts.extend(entry.bullets)
        texts.extend(cert.name for cert in self.certifications)
        texts.extend(edu.qualification for edu in self.education if edu.qualification)
        return [text.lower() for text in texts if text]
