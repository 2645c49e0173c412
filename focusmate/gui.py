"""Tkinter preview window showing annotated sample text."""

from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Tuple

from .annotator import render
from .preferences import Preferences
from .rules import RuleConfiguration
from .renderer import build_preview
from .structures import PreviewNode


class PreviewWindow:
    """Read-only window drawing the preview tree into a Text widget."""

    def __init__(
        self,
        *,
        root: tk.Tk,
        config: RuleConfiguration,
        prefs: Preferences,
        text: str,
    ) -> None:
        self.root = root
        self.config = config
        self.prefs = prefs
        self.text = text
        self._configured_tags: set[str] = set()

        self._build_ui()
        self.refresh()

    def _build_ui(self) -> None:
        """Construct the Tkinter layout."""

        self.root.title("FocusMate Preview")
        self.root.geometry("640x380")

        main_frame = ttk.Frame(self.root, padding=20)
        main_frame.grid(row=0, column=0, sticky="nsew")
        main_frame.columnconfigure(0, weight=1)
        main_frame.rowconfigure(1, weight=1)

        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)

        modes = ", ".join(mode.replace("_", " ") for mode in self.prefs.active_modes) or "none"
        groups = ", ".join(self.prefs.active_letter_groups) or "none"
        ttk.Label(
            main_frame,
            text=f"Live sample preview  |  modes: {modes}  |  groups: {groups}",
            foreground="#555",
        ).grid(row=0, column=0, sticky="w", pady=(0, 10))

        self.text_widget = tk.Text(main_frame, wrap="word", relief="flat", padx=16, pady=16)
        self.text_widget.grid(row=1, column=0, sticky="nsew")

        ttk.Button(main_frame, text="Close", command=self.root.destroy).grid(
            row=2, column=0, sticky="e", pady=(10, 0)
        )
        self.root.bind("<Escape>", lambda _event: self.root.destroy())

    def refresh(self) -> None:
        """Re-render the preview from the current text and preferences."""

        tree = build_preview(render(self.text, self.config, self.prefs), self.config, self.prefs)
        container = dict(tree.style)
        size = int(float(container["font-size"].rstrip("px")))
        self._base_font = (self.prefs.font, size)
        self.text_widget.configure(
            state="normal",
            background=container["background-color"],
            foreground=container["color"],
            font=self._base_font,
            spacing2=int((float(container["line-height"]) - 1) * size),
        )
        self.text_widget.delete("1.0", "end")
        self._insert(tree, ())
        self.text_widget.configure(state="disabled")

    def _insert(self, node: PreviewNode, tags: Tuple[str, ...]) -> None:
        if node.is_text:
            self.text_widget.insert("end", node.text, tags)
            return
        node_tags = tags + self._tags_for(node)
        for child in node.children:
            self._insert(child, node_tags)

    def _tags_for(self, node: PreviewNode) -> Tuple[str, ...]:
        tags = []
        if node.tag == "b":
            tags.append(self._tag("bold", font=self._base_font + ("bold",)))
        for prop, value in node.style if node.tag != "div" else ():
            if prop == "color":
                tags.append(self._tag(f"fg{value}", foreground=value))
            elif prop == "border-bottom":
                tags.append(self._tag("underline", underline=True))
        return tuple(tags)

    def _tag(self, name: str, **options: object) -> str:
        if name not in self._configured_tags:
            self.text_widget.tag_configure(name, **options)
            self._configured_tags.add(name)
        return name


def launch_gui(*, config: RuleConfiguration, prefs: Preferences, text: str) -> int:
    """Entry point called from the CLI when --gui is provided."""

    root = tk.Tk()
    PreviewWindow(root=root, config=config, prefs=prefs, text=text)
    root.mainloop()
    return 0
