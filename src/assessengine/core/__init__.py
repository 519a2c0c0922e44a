"""Core assessment components: validation, codec, timer, integrity, delivery and scoring."""

from .codec import FreeText, LikertRating, MultiChoice, Ranking, SingleChoice, decode, encode
from .delivery import Cursor, DeliverySession, DeliveryState, SubmitConfirmation
from .engines import AttemptScorer, candidate_engine, cut_score_verdict
from .grading import GradedAttempt, grade_attempt
from .integrity import IntegrityMonitor, PresentationCapability, PresentationStateAdapter
from .outbound import OutboundQueue, RetryPolicy
from .scoring import ScoringEngine, rank_results
from .timer import remaining
from .validator import ensure_valid, validate, validate_document

__all__ = [
    "AttemptScorer",
    "Cursor",
    "DeliverySession",
    "DeliveryState",
    "FreeText",
    "GradedAttempt",
    "IntegrityMonitor",
    "LikertRating",
    "MultiChoice",
    "OutboundQueue",
    "PresentationCapability",
    "PresentationStateAdapter",
    "Ranking",
    "RetryPolicy",
    "ScoringEngine",
    "SingleChoice",
    "SubmitConfirmation",
    "candidate_engine",
    "cut_score_verdict",
    "decode",
    "encode",
    "ensure_valid",
    "grade_attempt",
    "rank_results",
    "remaining",
    "validate",
    "validate_document",
]
