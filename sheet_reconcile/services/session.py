from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from ..models.classification import ApplyOutcome, ClassificationResult, ClassifiedRecord, UserDecision
from .engine import ReconciliationEngine, pair_decisions
from .errors import InvalidTransitionError

"""Review session: lifecycle of one archive's reconciliation.

State transitions::

    STAGED --classify--> CLASSIFIED --apply--> APPLIED --cleanup--> PURGED
    STAGED/CLASSIFIED --cancel--> PURGED

- classify may be repeated while STAGED or CLASSIFIED (pure read)
- apply happens at most once, and only after classify
- cleanup/cancel in PURGED are no-ops
"""

__all__ = [
    "ReviewState",
    "ReviewSession",
]

logger = logging.getLogger(__name__)


class ReviewState(Enum):
    STAGED = "staged"
    CLASSIFIED = "classified"
    APPLIED = "applied"
    PURGED = "purged"


class ReviewSession:
    def __init__(self, engine: ReconciliationEngine, archive_id: int, key_column: str | None = None) -> None:
        self.engine = engine
        self.archive_id = archive_id
        self.key_column = key_column
        self.state = ReviewState.STAGED
        self.result: ClassificationResult | None = None
        self.outcome: ApplyOutcome | None = None

    def _transition(self, target: ReviewState) -> None:
        logger.debug("archive_id=%s %s -> %s", self.archive_id, self.state.value, target.value)
        self.state = target

    def classify(self) -> ClassificationResult:
        if self.state not in (ReviewState.STAGED, ReviewState.CLASSIFIED):
            raise InvalidTransitionError(
                f"archive {self.archive_id}: cannot classify in state {self.state.value}"
            )
        self.result = self.engine.identify_matching_records(self.archive_id, self.key_column)
        self._transition(ReviewState.CLASSIFIED)
        return self.result

    def apply(self, decide: Callable[[ClassifiedRecord], UserDecision | None]) -> ApplyOutcome:
        """Apply ``decide(record)`` for every classified record (None = leave out).

        A ``DecisionApplicationError`` leaves the session in CLASSIFIED so the
        caller can re-run the whole classify -> decide -> apply cycle.
        """
        if self.state is not ReviewState.CLASSIFIED or self.result is None:
            raise InvalidTransitionError(
                f"archive {self.archive_id}: cannot apply decisions in state {self.state.value}"
            )
        new, match, disagreement = pair_decisions(self.result, decide)
        self.outcome = self.engine.process_user_decisions(new, match, disagreement)
        self._transition(ReviewState.APPLIED)
        return self.outcome

    def cleanup(self) -> int:
        if self.state is ReviewState.PURGED:
            return 0
        deleted = self.engine.cleanup_indexed_content(self.archive_id)
        self._transition(ReviewState.PURGED)
        return deleted

    def cancel(self) -> int:
        """Abandon the review: discard staged content, leave master data untouched."""
        if self.state is ReviewState.APPLIED:
            logger.info("archive_id=%s: cancel after apply only purges staged content", self.archive_id)
        return self.cleanup()
