"""High-level orchestration for annotating document files."""

from __future__ import annotations

import logging
import pathlib
import time
from dataclasses import dataclass, field
from typing import List

from .documents import detect_handler
from .errors import FocusMateError, OverwriteRefusedError
from .policy import ErrorPolicy
from .preferences import Preferences
from .rules import RuleConfiguration

logger = logging.getLogger(__name__)


@dataclass
class AnnotationSummary:
    """Report returned after processing a document."""

    input_path: pathlib.Path
    output_path: pathlib.Path
    document_type: str
    reset_only: bool
    total_units: int
    annotated_units: int
    unchanged_units: int
    failed_units: int
    restored_elements: int
    total_errors: int
    elapsed_seconds: float
    error_messages: List[str] = field(default_factory=list)


class AnnotationRunner:
    """Coordinates loading, annotation or reset, and saving of one file."""

    def __init__(
        self,
        *,
        input_path: pathlib.Path,
        output_path: pathlib.Path,
        config: RuleConfiguration,
        prefs: Preferences,
        reset_only: bool = False,
        policy: ErrorPolicy | None = None,
    ) -> None:
        self.input_path = input_path
        self.output_path = output_path
        self.config = config
        self.prefs = prefs
        self.reset_only = reset_only
        self.error_policy = policy or ErrorPolicy()

    def run(self) -> AnnotationSummary:
        start_time = time.time()

        document_type, handler = detect_handler(self.input_path)
        logger.info("Loaded %s document %s.", document_type, self.input_path)

        total_units = annotated_units = unchanged_units = failed_units = 0
        restored = 0
        if self.reset_only:
            restored = handler.reset()
        else:
            report = handler.annotate(self.config, self.prefs, policy=self.error_policy)
            total_units = report.total_units
            annotated_units = report.annotated_units
            unchanged_units = report.unchanged_units
            failed_units = report.failed_units

        handler.save(self.output_path)
        logger.info("Saved %s.", self.output_path)

        return AnnotationSummary(
            input_path=self.input_path,
            output_path=self.output_path,
            document_type=document_type,
            reset_only=self.reset_only,
            total_units=total_units,
            annotated_units=annotated_units,
            unchanged_units=unchanged_units,
            failed_units=failed_units,
            restored_elements=restored,
            total_errors=len(self.error_policy.records),
            elapsed_seconds=time.time() - start_time,
            error_messages=self.error_policy.messages,
        )


def validate_paths(
    input_path: pathlib.Path,
    output_path: pathlib.Path,
    force_overwrite: bool,
) -> None:
    """Refuse runs that would read nothing or clobber a file."""

    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")
    if not input_path.is_file():
        raise FocusMateError(f"{input_path} is not a file.")
    if input_path.resolve() == output_path.resolve():
        raise OverwriteRefusedError("Output and input are the same file; the source is never overwritten.")
    if output_path.exists() and not force_overwrite:
        raise OverwriteRefusedError(f"{output_path} already exists. Pass --force to replace it.")
