"""Core data structures for the FocusMate annotation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence


class ClassKind(Enum):
    """Kinds of character classification."""

    NONE = "none"
    VOWEL = "vowel"
    GROUP = "group"


@dataclass(frozen=True)
class Classification:
    """Tagged classification result: none, vowel, or a letter group."""

    kind: ClassKind
    group: Optional[str] = None

    @property
    def tag(self) -> str:
        if self.kind is ClassKind.GROUP:
            return f"group:{self.group}"
        return self.kind.value

    @property
    def is_styled(self) -> bool:
        return self.kind is not ClassKind.NONE


NO_CLASS = Classification(ClassKind.NONE)
VOWEL_CLASS = Classification(ClassKind.VOWEL)


def group_class(key: str) -> Classification:
    return Classification(ClassKind.GROUP, key)


@dataclass(frozen=True)
class AnnotatedRun:
    """Contiguous characters sharing one classification and bold state."""

    text: str
    classification: Classification = NO_CLASS
    color: Optional[str] = None
    bold: bool = False

    @property
    def tag(self) -> str:
        return self.classification.tag

    @property
    def is_plain(self) -> bool:
        return not self.bold and not self.classification.is_styled


@dataclass(frozen=True)
class WordUnit:
    """A maximal whitespace run or a word with its annotated runs."""

    text: str
    is_whitespace: bool
    runs: Sequence[AnnotatedRun] = ()
    anchor_applied: bool = False
    anchor_boundary: int = 0

    @property
    def is_plain(self) -> bool:
        return all(run.is_plain for run in self.runs)


def units_text(units: Sequence[WordUnit]) -> str:
    """Reassemble the original text from segmented units."""

    return "".join(unit.text for unit in units)


def has_styling(units: Sequence[WordUnit]) -> bool:
    return any(not unit.is_whitespace and not unit.is_plain for unit in units)


UnitSetter = Callable[[Sequence[WordUnit]], None]


@dataclass
class TextUnit:
    """A piece of document text that can be rewritten with annotated units."""

    unit_id: str
    original_text: str
    setter: UnitSetter
    location: str


@dataclass
class PreviewNode:
    """Element of the preview tree; leaf nodes carry text only."""

    tag: Optional[str] = None
    text: str = ""
    style: List[tuple[str, str]] = field(default_factory=list)
    children: List["PreviewNode"] = field(default_factory=list)

    @property
    def is_text(self) -> bool:
        return self.tag is None

    def plain_text(self) -> str:
        if self.is_text:
            return self.text
        return "".join(child.plain_text() for child in self.children)
