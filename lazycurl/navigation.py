"""lazycurl navigation - focus model and every bounds check for moving it.

A Focus is {kind, optional index}; its tab follows from its kind. All list
lengths are read from the command at call time, so a focus that went stale
after a list shrank simply stops moving instead of failing.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum

from lazycurl.models import CurlCommand
from lazycurl.options import OptionCategory, OptionDefinition, catalog


class Tab(Enum):
    URL = "URL"
    HEADERS = "Headers"
    BODY = "Body"
    OPTIONS = "Options"

    def next(self) -> Tab:
        tabs = list(Tab)
        return tabs[(tabs.index(self) + 1) % len(tabs)]

    def prev(self) -> Tab:
        tabs = list(Tab)
        return tabs[(tabs.index(self) - 1) % len(tabs)]


class FieldKind(Enum):
    URL = "url"
    METHOD = "method"
    QUERY_PARAM = "query_param"
    HEADER = "header"
    BODY_TYPE = "body_type"
    BODY_CONTENT = "body_content"
    OPTION = "option"


_KIND_TAB = {
    FieldKind.URL: Tab.URL,
    FieldKind.METHOD: Tab.URL,
    FieldKind.QUERY_PARAM: Tab.URL,
    FieldKind.HEADER: Tab.HEADERS,
    FieldKind.BODY_TYPE: Tab.BODY,
    FieldKind.BODY_CONTENT: Tab.BODY,
    FieldKind.OPTION: Tab.OPTIONS,
}

INDEXED_KINDS = frozenset({FieldKind.QUERY_PARAM, FieldKind.HEADER, FieldKind.OPTION})


@dataclass(frozen=True)
class Focus:
    kind: FieldKind
    index: int | None = None

    @property
    def tab(self) -> Tab:
        return _KIND_TAB[self.kind]

    @property
    def indexed(self) -> bool:
        return self.kind in INDEXED_KINDS

    def at(self, index: int) -> Focus:
        return Focus(self.kind, index)


METHOD_FOCUS = Focus(FieldKind.METHOD)

_FIRST_FOCUS = {
    Tab.URL: Focus(FieldKind.URL),
    Tab.HEADERS: Focus(FieldKind.HEADER, 0),
    Tab.BODY: Focus(FieldKind.BODY_CONTENT),
    Tab.OPTIONS: Focus(FieldKind.OPTION, 0),
}


def first_focus(tab: Tab) -> Focus:
    return _FIRST_FOCUS[tab]


# ── Options view ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OptionRow:
    """One row of the Options tab: an attached option or an unattached catalog entry."""

    flag: str
    definition: OptionDefinition | None
    attached_index: int | None = None

    @property
    def attached(self) -> bool:
        return self.attached_index is not None


def options_rows(command: CurlCommand) -> tuple[OptionRow, ...]:
    """Attached options in stored order, then unattached CommandLine entries by flag."""
    return _options_rows(tuple((o.id, o.flag) for o in command.options))


@functools.lru_cache(maxsize=64)
def _options_rows(signature: tuple[tuple[str, str], ...]) -> tuple[OptionRow, ...]:
    cat = catalog()
    rows = [OptionRow(flag, cat.lookup(flag), i) for i, (_, flag) in enumerate(signature)]
    attached = {flag for _, flag in signature}
    rows.extend(
        OptionRow(d.flag, d)
        for d in cat.by_category(OptionCategory.COMMAND_LINE)
        if d.flag not in attached
    )
    return tuple(rows)


# ── Movement ────────────────────────────────────────────────────────────


def list_length(command: CurlCommand, kind: FieldKind) -> int:
    if kind == FieldKind.QUERY_PARAM:
        return len(command.query_params)
    if kind == FieldKind.HEADER:
        return len(command.headers)
    if kind == FieldKind.OPTION:
        return len(options_rows(command))
    return 0


def move_up(focus: Focus, command: CurlCommand) -> Focus:
    """One step up; never wraps. Url tab climbs QueryParam(0) -> Method -> Url."""
    if focus.kind == FieldKind.METHOD:
        return Focus(FieldKind.URL)
    if focus.kind == FieldKind.BODY_CONTENT:
        return Focus(FieldKind.BODY_TYPE)
    if not focus.indexed:
        return focus

    index = focus.index or 0
    if index > 0:
        last = max(list_length(command, focus.kind) - 1, 0)
        return focus.at(min(index - 1, last))
    if focus.kind == FieldKind.QUERY_PARAM:
        return METHOD_FOCUS
    return focus


def move_down(focus: Focus, command: CurlCommand) -> Focus:
    """One step down; a no-op at the last row of a list."""
    if focus.kind == FieldKind.URL:
        return METHOD_FOCUS
    if focus.kind == FieldKind.METHOD:
        if command.query_params:
            return Focus(FieldKind.QUERY_PARAM, 0)
        return focus
    if focus.kind == FieldKind.BODY_TYPE:
        return Focus(FieldKind.BODY_CONTENT)
    if not focus.indexed:
        return focus

    index = focus.index or 0
    if index + 1 < list_length(command, focus.kind):
        return focus.at(index + 1)
    return focus


def move_clamped(index: int, delta: int, count: int) -> int:
    """Move a template or history index by ``delta``, clamped to the list; no wraparound."""
    if count <= 0:
        return index
    return min(max(index + delta, 0), count - 1)


def scroll_to(selected: int, scroll: int, visible: int, total: int) -> int:
    """Smallest adjustment of ``scroll`` that keeps ``selected`` on screen."""
    visible = max(visible, 1)
    if selected < scroll:
        scroll = selected
    elif selected >= scroll + visible:
        scroll = selected - visible + 1
    return max(0, min(scroll, max(total - visible, 0)))
