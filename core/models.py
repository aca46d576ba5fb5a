# =============================================================================
# core/models.py - Conversion data models
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List
from enum import Enum


class Classification(Enum):
    """Where an account's records come from"""
    LOCAL = "local"
    DIRECTORY_BACKED = "directory_backed"
    UNKNOWN = "unknown"


class ConversionResult(Enum):
    """Per-account outcome of a run"""
    SKIPPED_LOCAL = "skipped-local"
    CONVERTED = "converted"
    FAILED = "failed"
    UNKNOWN = "unknown"


class BindingState(Enum):
    """Machine-level Active Directory binding"""
    BOUND = "bound"
    UNBOUND = "unbound"


FAILURE_RESULTS = (ConversionResult.FAILED, ConversionResult.UNKNOWN)


@dataclass
class AccountOutcome:
    """Result of driving one account through the conversion pipeline"""
    username: str
    classification: Classification
    result: ConversionResult
    fixups_applied: bool = False
    removed_attributes: List[str] = field(default_factory=list)
    removed_authenticators: List[str] = field(default_factory=list)
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.result in FAILURE_RESULTS


@dataclass
class RefreshToken:
    """Returned once a directory cache refresh has settled"""
    settle_delay: float
    triggered_at: datetime
    settled_at: datetime


@dataclass
class RunSummary:
    """Aggregated outcomes for one run"""
    outcomes: List[AccountOutcome] = field(default_factory=list)

    def add(self, outcome: AccountOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def failed(self) -> bool:
        return any(outcome.failed for outcome in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    @property
    def result_counts(self) -> Dict[ConversionResult, int]:
        counts: Dict[ConversionResult, int] = {}
        for outcome in self.outcomes:
            counts[outcome.result] = counts.get(outcome.result, 0) + 1
        return counts

    def outcome_for(self, username: str) -> AccountOutcome:
        for outcome in self.outcomes:
            if outcome.username == username:
                return outcome
        raise KeyError(username)
