"""Command line interface for FocusMate."""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import Iterable, Optional

from .annotator import render
from .configuration import FocusMateSettings, get_settings, optional_path
from .errors import ConfigurationError, FocusMateError
from .policy import ErrorPolicy
from .preferences import KNOWN_MODES, Preferences, load_preferences_file
from .renderer import SAMPLE_TEXT, build_preview, build_stylesheet, to_html
from .rules import RuleConfiguration, load_rules_file
from .runner import AnnotationRunner, AnnotationSummary, validate_paths


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="focusmate",
        description=(
            "Annotate HTML (.html) and Word (.docx) documents with dyslexia-friendly "
            "letter highlighting and bold word starts."
        ),
    )
    parser.add_argument(
        "input_file",
        nargs="?",
        help="Path to the .html or .docx file to annotate.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output file path. Defaults to appending '_focusmate' to the input name.",
    )
    parser.add_argument(
        "-r",
        "--rules",
        help="JSON rules file (letter groups, colors, bounds). Defaults to the built-in rules.",
    )
    parser.add_argument(
        "-p",
        "--preferences",
        help="JSON preferences file. Defaults to the rules' user_preferences.",
    )
    parser.add_argument(
        "-m",
        "--mode",
        action="append",
        choices=KNOWN_MODES,
        help="Active mode (repeatable); replaces the preference's active modes.",
    )
    parser.add_argument(
        "-g",
        "--group",
        action="append",
        help="Active letter group key in priority order (repeatable).",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Remove existing FocusMate annotations instead of adding them.",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting the output file if it already exists.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--stylesheet",
        action="store_true",
        help="Print the generated stylesheet and exit.",
    )
    parser.add_argument(
        "--preview",
        nargs="?",
        const="",
        metavar="TEXT",
        help="Print the preview HTML of TEXT (or a sample sentence) and exit.",
    )
    parser.add_argument(
        "--gui",
        action="store_true",
        help="Open a preview window for the current rules and preferences.",
    )
    return parser


def derive_output_path(input_path: pathlib.Path) -> pathlib.Path:
    return input_path.with_name(f"{input_path.stem}_focusmate{input_path.suffix}")


def execute_annotation(
    *,
    input_file: str,
    output_file: str | None,
    config: RuleConfiguration,
    prefs: Preferences,
    reset_only: bool,
    force_overwrite: bool,
    policy: ErrorPolicy,
) -> tuple[int, AnnotationSummary | None, str | None]:
    """Execute an annotation run and return the exit code, summary, and message."""

    input_path = pathlib.Path(input_file).expanduser().resolve()
    output_path = (
        pathlib.Path(output_file).expanduser().resolve()
        if output_file
        else derive_output_path(input_path)
    )

    try:
        validate_paths(input_path, output_path, force_overwrite=force_overwrite)
    except (FileNotFoundError, FocusMateError) as exc:
        return 1, None, str(exc)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    runner = AnnotationRunner(
        input_path=input_path,
        output_path=output_path,
        config=config,
        prefs=prefs,
        reset_only=reset_only,
        policy=policy,
    )
    try:
        return 0, runner.run(), None
    except FocusMateError as exc:
        return 1, None, str(exc)
    except (OSError, UnicodeDecodeError) as exc:
        return 1, None, f"Could not read or write the document: {exc}"
    except KeyboardInterrupt:
        return 2, None, "Annotation interrupted by user."


def print_summary(summary: AnnotationSummary) -> None:
    """Output a friendly report once processing completes."""

    print("\nReset complete." if summary.reset_only else "\nAnnotation complete.")
    print(f"  Input file:      {summary.input_path}")
    print(f"  Output file:     {summary.output_path}")
    print(f"  Document type:   {summary.document_type}")
    if summary.reset_only:
        print(f"  Restored:        {summary.restored_elements} elements")
    else:
        print(
            "  Text units:      "
            f"{summary.annotated_units} annotated / {summary.total_units} total "
            f"({summary.unchanged_units} unchanged, {summary.failed_units} failed)"
        )
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.total_errors:
        print("  Notes:")
        for message in summary.error_messages:
            print(f"    - {message}")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _settings_path(flag: str | None, configured: str | None) -> pathlib.Path | None:
    if flag:
        return pathlib.Path(flag).expanduser()
    return optional_path(configured)


def load_inputs(
    args: argparse.Namespace,
    settings: FocusMateSettings,
    policy: ErrorPolicy,
) -> tuple[RuleConfiguration, Preferences]:
    """Resolve the rules and preferences a run should use.

    Command line paths win over configured ones; ``-m``/``-g`` replace the
    loaded active modes and groups.
    """

    config = load_rules_file(
        _settings_path(args.rules, settings.FOCUSMATE_RULES_FILE), policy=policy
    )
    prefs = load_preferences_file(
        _settings_path(args.preferences, settings.FOCUSMATE_PREFERENCES_FILE),
        config,
        policy=policy,
    )
    return config, prefs.with_overrides(modes=args.mode, groups=args.group)


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        print(exc)
        return 1
    configure_logging("DEBUG" if args.verbose else settings.FOCUSMATE_LOG_LEVEL)

    policy = ErrorPolicy()
    config, prefs = load_inputs(args, settings, policy)

    if args.stylesheet:
        sys.stdout.write(build_stylesheet(config, prefs))
        return 0
    if args.preview is not None:
        units = render(args.preview or SAMPLE_TEXT, config, prefs)
        print(to_html(build_preview(units, config, prefs)))
        return 0
    if args.gui:
        from .gui import launch_gui

        return launch_gui(config=config, prefs=prefs, text=SAMPLE_TEXT)
    if args.input_file is None:
        parser.error("the following arguments are required: input_file")

    exit_code, summary, message = execute_annotation(
        input_file=args.input_file,
        output_file=args.output,
        config=config,
        prefs=prefs,
        reset_only=args.reset,
        force_overwrite=args.force,
        policy=policy,
    )
    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
