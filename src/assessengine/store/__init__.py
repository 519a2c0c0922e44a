"""Attempt stores: the delivery contract and its implementations."""

from .base import AttemptStore
from .http import HTTPAttemptStore
from .memory import InMemoryAttemptStore

__all__ = ["AttemptStore", "HTTPAttemptStore", "InMemoryAttemptStore"]
