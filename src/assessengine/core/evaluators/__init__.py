"""Evaluator implementations for the scoring core."""

from .achievements import AchievementsConfig, AchievementsEvaluator
from .education import EducationConfig, EducationEvaluator
from .experience import ExperienceConfig, ExperienceEvaluator
from .flags import CandidateFlagger, CompletionFlagger, IntegrityFlagConfig, IntegrityFlagger, TenureConfig
from .knockouts import CutScoreKnockouts, KnockoutConfig, RubricKnockouts
from .location import LocationAuthEvaluator, LocationConfig
from .salary import SalaryAvailabilityEvaluator, SalaryConfig
from .sections import SectionConfig, SectionEvaluator, section_evaluators
from .skills import SkillsConfig, SkillsEvaluator

__all__ = [
    "AchievementsConfig",
    "AchievementsEvaluator",
    "CandidateFlagger",
    "CompletionFlagger",
    "CutScoreKnockouts",
    "EducationConfig",
    "EducationEvaluator",
    "ExperienceConfig",
    "ExperienceEvaluator",
    "IntegrityFlagConfig",
    "IntegrityFlagger",
    "KnockoutConfig",
    "LocationAuthEvaluator",
    "LocationConfig",
    "RubricKnockouts",
    "SalaryAvailabilityEvaluator",
    "SalaryConfig",
    "SectionConfig",
    "SectionEvaluator",
    "SkillsConfig",
    "SkillsEvaluator",
    "TenureConfig",
    "section_evaluators",
]
