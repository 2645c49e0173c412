"""Recovery policy: record and log errors without aborting a pass."""

from __future__ import annotations

import logging
from typing import List, Optional

from .errors import ErrorCategory, ErrorRecord

logger = logging.getLogger(__name__)


class ErrorPolicy:
    """Collects recovered errors so callers can report them afterwards."""

    def __init__(self) -> None:
        self.records: List[ErrorRecord] = []

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        details: Optional[str] = None,
    ) -> None:
        """Record a recovered error; processing always continues."""

        self.records.append(ErrorRecord(category=category, message=message, details=details))
        if details:
            logger.warning("%s (%s)", message, details)
        else:
            logger.warning("%s", message)

    def count(self, category: ErrorCategory) -> int:
        return sum(1 for record in self.records if record.category is category)

    @property
    def messages(self) -> List[str]:
        return [record.message for record in self.records]


def report(
    policy: Optional[ErrorPolicy],
    category: ErrorCategory,
    message: str,
    details: Optional[str] = None,
) -> None:
    """Record through the policy when given, otherwise just log."""

    if policy is not None:
        policy.handle_error(category, message, details)
    else:
        logger.debug("%s", message)
