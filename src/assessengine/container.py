"""Dependency injection container for the assessment engine."""

from __future__ import annotations

from dependency_injector import containers, providers

from .adapters import NativeRecordAdapter, ParsedCVAdapter
from .core.delivery import DeliverySession
from .core.engines import AttemptScorer
from .core.evaluators import (
    AchievementsConfig,
    AchievementsEvaluator,
    CandidateFlagger,
    EducationConfig,
    EducationEvaluator,
    ExperienceConfig,
    ExperienceEvaluator,
    IntegrityFlagConfig,
    KnockoutConfig,
    LocationAuthEvaluator,
    LocationConfig,
    RubricKnockouts,
    SalaryAvailabilityEvaluator,
    SalaryConfig,
    SectionConfig,
    SkillsConfig,
    SkillsEvaluator,
    TenureConfig,
)
from .core.outbound import RetryPolicy
from .core.scoring import ScoringEngine
from .pipeline import AdapterRegistry, ScreeningPipeline
from .store.memory import InMemoryAttemptStore, InMemoryBlueprintRepository


class AssessmentContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    parsed_cv_adapter = providers.Singleton(ParsedCVAdapter)
    native_adapter = providers.Singleton(NativeRecordAdapter)

    adapter_registry = providers.Singleton(
        AdapterRegistry,
        adapters=providers.List(parsed_cv_adapter, native_adapter),
    )

    skills_evaluator = providers.Singleton(SkillsEvaluator)
    experience_evaluator = providers.Singleton(ExperienceEvaluator)
    achievements_evaluator = providers.Singleton(AchievementsEvaluator)
    education_evaluator = providers.Singleton(EducationEvaluator)
    location_evaluator = providers.Singleton(LocationAuthEvaluator)
    salary_evaluator = providers.Singleton(SalaryAvailabilityEvaluator)

    evaluators = providers.List(
        skills_evaluator,
        experience_evaluator,
        achievements_evaluator,
        education_evaluator,
        location_evaluator,
        salary_evaluator,
    )

    rubric_knockouts = providers.Singleton(RubricKnockouts)
    candidate_flagger = providers.Singleton(CandidateFlagger)

    candidate_engine = providers.Singleton(
        ScoringEngine,
        evaluators=evaluators,
        knockouts=providers.List(rubric_knockouts),
        flaggers=providers.List(candidate_flagger),
        subject_kind="candidate",
    )

    attempt_scorer = providers.Singleton(AttemptScorer)

    blueprint_repository = providers.Singleton(InMemoryBlueprintRepository)

    attempt_store = providers.Singleton(
        InMemoryAttemptStore,
        blueprints=blueprint_repository,
        scorer=attempt_scorer,
    )

    retry_policy = providers.Singleton(RetryPolicy)

    delivery_session = providers.Factory(
        DeliverySession,
        store=attempt_store,
        retry_policy=retry_policy,
        tick_interval=config.delivery.tick_interval_seconds,
    )

    pipeline = providers.Factory(
        ScreeningPipeline,
        engine=candidate_engine,
        registry=adapter_registry,
        weight_overrides=config.scoring.category_weights,
    )


def create_container(*, settings: dict | None = None) -> AssessmentContainer:
    """Instantiate container with optional overrides."""

    container = AssessmentContainer()

    if not settings:
        return container

    config_values: dict = {}
    scoring_settings = settings.get("scoring", {}) if isinstance(settings, dict) else {}
    if scoring_settings:
        config_values["scoring"] = scoring_settings

    evaluator_settings = settings.get("evaluators", {}) if isinstance(settings, dict) else {}

    if "skills" in evaluator_settings:
        skills_config = SkillsConfig(**evaluator_settings["skills"])
        container.skills_evaluator.override(
            providers.Singleton(SkillsEvaluator, config=skills_config)
        )

    if "experience" in evaluator_settings:
        experience_config = ExperienceConfig(**evaluator_settings["experience"])
        container.experience_evaluator.override(
            providers.Singleton(ExperienceEvaluator, config=experience_config)
        )

    if "achievements" in evaluator_settings:
        achievements_config = AchievementsConfig(**evaluator_settings["achievements"])
        container.achievements_evaluator.override(
            providers.Singleton(AchievementsEvaluator, config=achievements_config)
        )

    if "education" in evaluator_settings:
        education_config = EducationConfig(**evaluator_settings["education"])
        container.education_evaluator.override(
            providers.Singleton(EducationEvaluator, config=education_config)
        )

    if "location" in evaluator_settings:
        location_config = LocationConfig(**evaluator_settings["location"])
        container.location_evaluator.override(
            providers.Singleton(LocationAuthEvaluator, config=location_config)
        )

    if "salary" in evaluator_settings:
        salary_config = SalaryConfig(**evaluator_settings["salary"])
        container.salary_evaluator.override(
            providers.Singleton(SalaryAvailabilityEvaluator, config=salary_config)
        )

    if "knockouts" in evaluator_settings:
        knockout_config = KnockoutConfig(**evaluator_settings["knockouts"])
        container.rubric_knockouts.override(
            providers.Singleton(RubricKnockouts, config=knockout_config)
        )

    if "tenure" in evaluator_settings:
        tenure_config = TenureConfig(**evaluator_settings["tenure"])
        container.candidate_flagger.override(
            providers.Singleton(CandidateFlagger, config=tenure_config)
        )

    integrity_settings = {
        key: scoring_settings[key]
        for key in ("integrity_red_threshold", "fast_completion_ratio")
        if key in scoring_settings
    }
    if "sections" in evaluator_settings or integrity_settings:
        section_config = SectionConfig(**evaluator_settings.get("sections", {}))
        integrity_config = IntegrityFlagConfig(
            red_threshold=integrity_settings.get("integrity_red_threshold", IntegrityFlagConfig.red_threshold),
            fast_completion_ratio=integrity_settings.get(
                "fast_completion_ratio", IntegrityFlagConfig.fast_completion_ratio
            ),
        )
        container.attempt_scorer.override(
            providers.Singleton(
                AttemptScorer,
                section_config=section_config,
                integrity_config=integrity_config,
            )
        )

    delivery_settings = settings.get("delivery", {}) if isinstance(settings, dict) else {}
    if "retry" in delivery_settings:
        container.retry_policy.override(
            providers.Singleton(RetryPolicy, **delivery_settings["retry"])
        )
    if "tick_interval_seconds" in delivery_settings:
        config_values["delivery"] = {"tick_interval_seconds": delivery_settings["tick_interval_seconds"]}

    if config_values:
        container.config.override(config_values)

    return container
