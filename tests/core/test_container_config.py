from __future__ import annotations

import pytest
from pydantic import ValidationError

from assessengine.container import create_container
from assessengine.core.delivery import DeliverySession
from assessengine.schemas.config import AppConfig, load_config


def test_create_container_with_overrides():
    container = create_container(
        settings={
            "scoring": {"category_weights": {"skills": 50, "experience": 50}, "integrity_red_threshold": 5},
            "evaluators": {
                "skills": {"min_similarity": 70},
                "tenure": {"average_threshold_months": 24},
                "salary": {"tolerance_ratio": 0.15},
                "knockouts": {"min_similarity": 90},
                "sections": {"ungraded_score": 50},
            },
            "delivery": {"retry": {"max_attempts": 5, "base_delay": 0.5}, "tick_interval_seconds": 2},
        }
    )

    skills = container.skills_evaluator()
    flagger = container.candidate_flagger()
    salary = container.salary_evaluator()
    knockouts = container.rubric_knockouts()
    scorer = container.attempt_scorer()
    pipeline = container.pipeline()
    retry = container.retry_policy()

    assert skills._config.min_similarity == 70
    assert flagger._config.average_threshold_months == 24
    assert salary._config.tolerance_ratio == 0.15
    assert knockouts._config.min_similarity == 90
    assert scorer._section_config.ungraded_score == 50
    assert scorer._flaggers[0]._config.red_threshold == 5
    assert pipeline._weight_overrides == {"skills": 50, "experience": 50}
    assert (retry.max_attempts, retry.base_delay, retry.factor) == (5, 0.5, 2.0)


def test_delivery_sessions_share_the_container_store():
    container = create_container(settings={"delivery": {"tick_interval_seconds": 2}})

    session = container.delivery_session("att-1")
    other = container.delivery_session("att-2")

    assert isinstance(session, DeliverySession)
    assert session is not other
    assert session.tick_interval == 2
    assert session._store is container.attempt_store()
    assert container.attempt_store().blueprints is container.blueprint_repository()


def test_default_container_uses_built_in_settings():
    container = create_container()

    session = container.delivery_session("att-1")

    assert session.tick_interval == 1.0
    assert container.retry_policy().max_attempts == 3
    assert container.pipeline()._weight_overrides == {}


def test_load_config_validation():
    data = {
        "scoring": {"category_weights": {"skills": 60, "experience": 40}},
        "evaluators": {"skills": {"min_similarity": 80}},
        "delivery": {"tick_interval_seconds": 0.5},
    }
    app_config = load_config(data)
    assert isinstance(app_config, AppConfig)
    settings = app_config.to_settings()
    assert settings["scoring"]["category_weights"]["skills"] == 60
    assert settings["evaluators"] == {"skills": {"min_similarity": 80}}
    assert settings["delivery"] == {"tick_interval_seconds": 0.5}


def test_load_config_rejects_non_mapping_documents():
    with pytest.raises(ValidationError):
        load_config(["not", "a", "mapping"])
    with pytest.raises(ValidationError):
        load_config({"delivery": {"tick_interval_seconds": "soon"}})
