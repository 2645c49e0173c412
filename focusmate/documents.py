"""Document handlers implementing the in-place annotation back end."""

from __future__ import annotations

import logging
import pathlib
from abc import ABC, abstractmethod
from copy import deepcopy
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from .colors import hex_to_rgb
from .errors import DocumentError, FocusMateError, UnsupportedFileTypeError
from .policy import ErrorPolicy
from .preferences import Preferences
from .renderer import (
    STYLE_ELEMENT_ID,
    WRAPPER_CLASS,
    ApplyReport,
    apply_in_place,
    build_stylesheet,
    run_class_names,
)
from .rules import RuleConfiguration
from .structures import ClassKind, TextUnit, WordUnit

logger = logging.getLogger(__name__)

SKIPPED_TAGS = ["head", "script", "style", "textarea", "input", "noscript", "template"]

HtmlRoot = Union[BeautifulSoup, Tag]


# --- HTML -----------------------------------------------------------------


def _owning_soup(root: HtmlRoot) -> BeautifulSoup:
    if isinstance(root, BeautifulSoup):
        return root
    for parent in root.parents:
        if isinstance(parent, BeautifulSoup):
            return parent
    return BeautifulSoup("", "html.parser")


def _is_prose_string(node: NavigableString) -> bool:
    """Accept only visible text outside script-like and form containers."""

    if isinstance(node, PreformattedString):
        return False
    if node.find_parent(SKIPPED_TAGS) is not None:
        return False
    if node.find_parent("span", class_=WRAPPER_CLASS) is not None:
        return False
    return bool(str(node).strip())


def _build_wrapper(soup: BeautifulSoup, words: Sequence[WordUnit]) -> Tag:
    wrapper = soup.new_tag("span", attrs={"class": [WRAPPER_CLASS]})
    buffer: List[str] = []

    def flush() -> None:
        if buffer:
            wrapper.append(NavigableString("".join(buffer)))
            buffer.clear()

    for unit in words:
        if unit.is_whitespace:
            buffer.append(unit.text)
            continue
        for run in unit.runs:
            if run.is_plain:
                buffer.append(run.text)
                continue
            flush()
            span = soup.new_tag("span", attrs={"class": run_class_names(run)})
            span.string = run.text
            wrapper.append(span)
    flush()
    return wrapper


def _html_setter(soup: BeautifulSoup, node: NavigableString):
    def _setter(words: Sequence[WordUnit]) -> None:
        if node.parent is None:
            raise DocumentError("Text node is no longer attached to the document.")
        node.replace_with(_build_wrapper(soup, words))

    return _setter


def extract_html_units(root: HtmlRoot) -> List[TextUnit]:
    """Collect annotatable text nodes below ``root``."""

    soup = _owning_soup(root)
    units: List[TextUnit] = []
    for n_idx, node in enumerate(list(root.find_all(string=True))):
        if not _is_prose_string(node):
            continue
        parent_name = node.parent.name if node.parent is not None else "document"
        units.append(
            TextUnit(
                unit_id=f"html.n{n_idx}",
                original_text=str(node),
                setter=_html_setter(soup, node),
                location=f"<{parent_name}> text node {n_idx + 1}",
            )
        )
    return units


def inject_stylesheet(root: HtmlRoot, css: str) -> Tag:
    """Insert or refresh the FocusMate ``<style>`` element.

    The element goes into the document head even when ``root`` is only a
    part of the document such as ``<body>``.
    """

    soup = _owning_soup(root)
    style = soup.find("style", id=STYLE_ELEMENT_ID)
    if style is None:
        style = soup.new_tag("style", attrs={"id": STYLE_ELEMENT_ID})
        head = soup.find("head")
        if head is None:
            html_tag = soup.find("html")
            if html_tag is not None:
                head = soup.new_tag("head")
                html_tag.insert(0, head)
        if head is not None:
            head.append(style)
        else:
            root.insert(0, style)
    style.string = css
    return style


def reset_document(root: HtmlRoot) -> int:
    """Remove all annotations below ``root``; returns the nodes restored."""

    restored = 0
    for wrapper in list(root.find_all("span", class_=WRAPPER_CLASS)):
        parent = wrapper.parent
        wrapper.replace_with(NavigableString(wrapper.get_text()))
        if parent is not None:
            parent.smooth()
        restored += 1
    style = _owning_soup(root).find("style", id=STYLE_ELEMENT_ID)
    if style is not None:
        style.decompose()
    return restored


def apply_to_document(
    root: HtmlRoot,
    config: RuleConfiguration,
    prefs: Preferences,
    *,
    policy: Optional[ErrorPolicy] = None,
    stylesheet: bool = True,
) -> ApplyReport:
    """Annotate an HTML tree in place.

    Existing annotations are removed first, so repeated calls on unchanged
    content give the same tree and a new preference snapshot replaces the
    previous one.
    """

    reset_document(root)
    report = apply_in_place(extract_html_units(root), config, prefs, policy=policy)
    if stylesheet:
        inject_stylesheet(root, build_stylesheet(config, prefs, policy=policy))
    return report


# --- Handlers -------------------------------------------------------------


def _import_docx():
    try:
        import docx  # type: ignore
    except ImportError as exc:  # pragma: no cover - import guard
        raise FocusMateError(
            "python-docx is required to process .docx files. "
            "Install it with `pip install python-docx`."
        ) from exc
    return docx


class BaseDocumentHandler(ABC):
    """Common base class for document handlers."""

    def __init__(self, source_path: pathlib.Path):
        self.source_path = source_path
        self.units: List[TextUnit] = []

    @abstractmethod
    def extract_text_units(self) -> List[TextUnit]:
        """Extract annotatable text units."""

    @abstractmethod
    def reset(self) -> int:
        """Remove annotations; returns how many elements were restored."""

    @abstractmethod
    def save(self, destination: pathlib.Path) -> None:
        """Persist the document."""

    def finish(
        self,
        config: RuleConfiguration,
        prefs: Preferences,
        policy: Optional[ErrorPolicy],
    ) -> None:
        """Hook run after the text units were annotated."""

    def annotate(
        self,
        config: RuleConfiguration,
        prefs: Preferences,
        *,
        policy: Optional[ErrorPolicy] = None,
    ) -> ApplyReport:
        self.reset()
        units = self.register_units(self.extract_text_units())
        report = apply_in_place(units, config, prefs, policy=policy)
        self.finish(config, prefs, policy)
        return report

    def register_units(self, units: List[TextUnit]) -> List[TextUnit]:
        self.units = list(units)
        return self.units


class HtmlDocumentHandler(BaseDocumentHandler):
    """Annotates HTML pages."""

    def __init__(self, source_path: pathlib.Path):
        super().__init__(source_path)
        markup = source_path.read_text(encoding="utf-8")
        self.soup = BeautifulSoup(markup, "html.parser")

    def extract_text_units(self) -> List[TextUnit]:
        return extract_html_units(self.soup)

    def reset(self) -> int:
        return reset_document(self.soup)

    def finish(self, config, prefs, policy) -> None:
        inject_stylesheet(self.soup, build_stylesheet(config, prefs, policy=policy))

    def save(self, destination: pathlib.Path) -> None:
        destination.write_text(str(self.soup), encoding="utf-8")


DOCX_STYLE_PREFIX = "FocusMate "
_PLAIN_STYLE = "FocusMate Plain"

DocxPiece = Tuple[str, str, Optional[str], bool]


def _docx_pieces(words: Sequence[WordUnit]) -> List[DocxPiece]:
    """Map annotated units to (text, style name, color, bold) pieces."""

    pieces: List[DocxPiece] = []

    def push(text: str, name: str, color: Optional[str], bold: bool) -> None:
        if pieces and pieces[-1][1] == name:
            pieces[-1] = (pieces[-1][0] + text, name, color, bold)
        else:
            pieces.append((text, name, color, bold))

    for unit in words:
        if unit.is_whitespace:
            push(unit.text, _PLAIN_STYLE, None, False)
            continue
        for run in unit.runs:
            kind = run.classification.kind
            parts = ["FocusMate"]
            if run.bold:
                parts.append("Anchor")
            if kind is ClassKind.VOWEL:
                parts.append("Vowel")
            elif kind is ClassKind.GROUP:
                parts.extend(["Group", run.classification.group])
            if len(parts) == 1:
                parts.append("Plain")
            push(run.text, " ".join(parts), run.color, run.bold or kind is ClassKind.GROUP)
    return pieces


class DocxDocumentHandler(BaseDocumentHandler):
    """Annotates Word documents by splitting runs into styled pieces."""

    def __init__(self, source_path: pathlib.Path):
        super().__init__(source_path)
        self._docx = _import_docx()
        self.document = self._docx.Document(str(source_path))

    def extract_text_units(self) -> List[TextUnit]:
        units: List[TextUnit] = []
        for prefix, location, paragraph in self._paragraphs():
            for r_idx, run in enumerate(paragraph.runs):
                if not self._is_eligible(run):
                    continue
                units.append(
                    TextUnit(
                        unit_id=f"{prefix}.r{r_idx}",
                        original_text=run.text,
                        setter=self._run_setter(paragraph, run),
                        location=location,
                    )
                )
        return units

    def reset(self) -> int:
        restored = 0
        for _, _, paragraph in self._paragraphs():
            previous = None
            for run in list(paragraph.runs):
                if not self._is_annotation(run):
                    previous = None
                    continue
                run.style = None
                signature = _formatting_signature(run)
                if previous is not None and previous[1] == signature:
                    previous[0].text = previous[0].text + run.text
                    run._r.getparent().remove(run._r)  # type: ignore[attr-defined]
                else:
                    previous = (run, signature)
                    restored += 1
        return restored

    def save(self, destination: pathlib.Path) -> None:
        self.document.save(str(destination))

    # --- Internal helpers -------------------------------------------------

    def _is_eligible(self, run) -> bool:
        """Plain text runs only; page and column breaks stay untouched."""

        from docx.oxml.ns import qn

        allowed = {qn("w:rPr"), qn("w:t"), qn("w:tab"), qn("w:br")}
        if not run.text.strip():
            return False
        if run._r.style is not None:  # type: ignore[attr-defined]
            logger.debug("Skipping run with its own character style: %r", run.text)
            return False
        for child in run._r:  # type: ignore[attr-defined]
            if child.tag not in allowed:
                return False
            if child.tag == qn("w:br") and child.get(qn("w:type")) not in (None, "textWrapping"):
                logger.debug("Skipping run with a %s break: %r", child.get(qn("w:type")), run.text)
                return False
        return True

    def _is_annotation(self, run) -> bool:
        if run._r.style is None:  # type: ignore[attr-defined]
            return False
        return run.style.name.startswith(DOCX_STYLE_PREFIX)

    def _style(self, name: str, color: Optional[str], bold: bool):
        from docx.enum.style import WD_STYLE_TYPE
        from docx.shared import RGBColor

        styles = self.document.styles
        try:
            style = styles[name]
        except KeyError:
            style = styles.add_style(name, WD_STYLE_TYPE.CHARACTER)
        rgb = hex_to_rgb(color) if color else None
        style.font.color.rgb = RGBColor(*rgb) if rgb else None
        style.font.bold = True if bold else None
        return style

    def _run_setter(self, paragraph, run):
        from docx.text.run import Run

        def _setter(words: Sequence[WordUnit]) -> None:
            element = run._r  # type: ignore[attr-defined]
            parent = element.getparent()
            if parent is None:
                raise DocumentError("Run is no longer part of the document.")
            for text, name, color, bold in _docx_pieces(words):
                new_element = deepcopy(element)
                element.addprevious(new_element)
                piece = Run(new_element, paragraph)
                piece.text = text
                piece.style = self._style(name, color, bold)
            parent.remove(element)

        return _setter

    def _paragraphs(self) -> Iterator[Tuple[str, str, object]]:
        for p_idx, paragraph in enumerate(self.document.paragraphs):
            yield f"body.p{p_idx}", f"Body paragraph {p_idx + 1}", paragraph
        yield from self._table_paragraphs(
            self.document.tables, prefix="body", location="Table"
        )
        for s_idx, section in enumerate(self.document.sections):
            for name, container in (("header", section.header), ("footer", section.footer)):
                if container.is_linked_to_previous:
                    continue
                for p_idx, paragraph in enumerate(container.paragraphs):
                    yield (
                        f"section{s_idx}.{name}.p{p_idx}",
                        f"Section {s_idx + 1} {name}",
                        paragraph,
                    )
                yield from self._table_paragraphs(
                    container.tables,
                    prefix=f"section{s_idx}.{name}",
                    location=f"Section {s_idx + 1} {name} table",
                )

    def _table_paragraphs(self, tables, *, prefix: str, location: str):
        processed_cells = set()
        for t_idx, table in enumerate(tables):
            for r_idx, row in enumerate(table.rows):
                for c_idx, cell in enumerate(row.cells):
                    cell_key = id(cell._tc)  # type: ignore[attr-defined]
                    if cell_key in processed_cells:
                        continue
                    processed_cells.add(cell_key)
                    for p_idx, paragraph in enumerate(cell.paragraphs):
                        yield (
                            f"{prefix}.table{t_idx}.row{r_idx}.cell{c_idx}.p{p_idx}",
                            f"{location} {t_idx + 1}, row {r_idx + 1}, column {c_idx + 1}",
                            paragraph,
                        )


def _formatting_signature(run) -> str:
    rpr = run._r.rPr  # type: ignore[attr-defined]
    return rpr.xml if rpr is not None else ""


def detect_handler(path: pathlib.Path) -> Tuple[str, BaseDocumentHandler]:
    """Select an appropriate handler for the provided file."""

    suffix = path.suffix.lower()
    if suffix in {".html", ".htm"}:
        handler: BaseDocumentHandler = HtmlDocumentHandler(path)
        return "html", handler
    if suffix == ".docx":
        handler = DocxDocumentHandler(path)
        return "docx", handler
    raise UnsupportedFileTypeError(
        "This file type isn't supported. Please use .html, .htm or .docx."
    )
