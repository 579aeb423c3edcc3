"""lazycurl tui - curses front end.

Keys are translated into Intents by key_to_intent(); the draw functions only
read from the App.
"""

from __future__ import annotations

import curses
import logging
from collections.abc import Callable

from lazycurl.app import App, EditField, Intent, Mode
from lazycurl.models import DROPDOWN_METHODS, BodyKind, CurlCommand
from lazycurl.navigation import FieldKind, Tab, scroll_to

logger = logging.getLogger(__name__)

KEY_ESCAPE = 27
KEY_TAB = 9
KEY_CTRL_S = 19
KEY_CTRL_R = 18
ENTER_KEYS = (curses.KEY_ENTER, 10, 13)
BACKSPACE_KEYS = (curses.KEY_BACKSPACE, 127, 8)

TEMPLATE_PANEL_WIDTH = 26
BODY_TOP = 3
PREVIEW_ROWS = 5

_ARROWS = {
    curses.KEY_UP: Intent.UP,
    curses.KEY_DOWN: Intent.DOWN,
    curses.KEY_LEFT: Intent.LEFT,
    curses.KEY_RIGHT: Intent.RIGHT,
}

_NORMAL_KEYS = {
    ord("q"): Intent.QUIT,
    ord("?"): Intent.HELP,
    KEY_TAB: Intent.NEXT_TAB,
    curses.KEY_BTAB: Intent.PREV_TAB,
    ord(" "): Intent.TOGGLE,
    ord("k"): Intent.EDIT_KEY,
    ord("a"): Intent.ADD,
    ord("d"): Intent.DELETE,
    curses.KEY_DC: Intent.DELETE,
    ord("x"): Intent.EXECUTE,
    KEY_CTRL_R: Intent.EXECUTE,
    curses.KEY_F5: Intent.EXECUTE,
    ord("s"): Intent.SAVE_TEMPLATE,
    ord("v"): Intent.EDIT_ENVIRONMENT,
    ord("n"): Intent.NEXT_ENVIRONMENT,
    ord("h"): Intent.HISTORY,
}

HELP_TEXT = [
    "Tab / Shift-Tab   switch tabs",
    "Arrows            move; Left from Method opens templates",
    "Enter             edit field / load template / open method list",
    "k                 edit the key of a header or query param",
    "Space             enable or disable the selected row, cycle body type",
    "a                 add a query param (URL tab) or header (Headers tab)",
    "d / Del           delete the selected row",
    "x / Ctrl-R / F5   execute",
    "s                 save the command as a template",
    "v                 set an environment variable (KEY=VALUE, !KEY=VALUE for secrets)",
    "n                 next environment",
    "h                 browse history; Enter loads the selected run",
    "Esc               cancel editing",
    "Ctrl-S            save the body while editing it",
    "q                 quit",
    "",
    "Press ? or Esc to close",
]


def _normalize(key: int | str) -> tuple[int | None, str | None]:
    """Split a get_wch() result into (key code, printable character)."""
    if isinstance(key, str):
        if len(key) == 1 and (ord(key) < 32 or ord(key) == 127):
            return ord(key), None
        return None, key
    if 32 <= key < 127:
        return key, chr(key)
    return key, None


def key_to_intent(app: App, key: int | str) -> tuple[Intent, str | None] | None:
    """Translate a key from get_wch() into an intent for the app's current mode."""
    mode = app.mode
    key, char = _normalize(key)
    if key is None:
        key = ord(char)

    if mode == Mode.NORMAL:
        if key in ENTER_KEYS:
            return Intent.EDIT, None
        if key in _ARROWS:
            return _ARROWS[key], None
        if key in _NORMAL_KEYS:
            return _NORMAL_KEYS[key], None
        return None

    if mode == Mode.HELP:
        if key in (ord("?"), KEY_ESCAPE, ord("q")):
            return Intent.CANCEL, None
        return None

    if mode == Mode.HISTORY:
        if key in ENTER_KEYS:
            return Intent.COMMIT, None
        if key in (KEY_ESCAPE, ord("h"), ord("q")):
            return Intent.CANCEL, None
        if key in (curses.KEY_UP, curses.KEY_DOWN):
            return _ARROWS[key], None
        return None

    if mode == Mode.METHOD_DROPDOWN:
        if key in ENTER_KEYS:
            return Intent.COMMIT, None
        if key == KEY_ESCAPE:
            return Intent.CANCEL, None
        if key in (curses.KEY_UP, curses.KEY_DOWN):
            return _ARROWS[key], None
        return None

    # Text entry modes
    editing_body = (
        mode == Mode.EDITING
        and app.ui.editing is not None
        and app.ui.editing.field == EditField.BODY
    )
    if key == KEY_ESCAPE:
        return Intent.CANCEL, None
    if key in BACKSPACE_KEYS:
        return Intent.BACKSPACE, None
    if editing_body:
        if key == KEY_CTRL_S:
            return Intent.SAVE, None
        if key in ENTER_KEYS:
            return Intent.NEWLINE, None
        if key in _ARROWS:
            return _ARROWS[key], None
    elif key in ENTER_KEYS:
        return Intent.COMMIT, None
    if char is not None:
        return Intent.CHAR, char
    return None


# ── Drawing ─────────────────────────────────────────────────────────────


def _put(win, y: int, x: int, text: str, attr: int = 0) -> None:
    height, width = win.getmaxyx()
    if y < 0 or y >= height or x >= width:
        return
    try:
        win.addnstr(y, x, text, max(width - x - 1, 0), attr)
    except curses.error:
        pass


def _selected(flag: bool) -> int:
    return curses.A_REVERSE if flag else curses.A_NORMAL


def layout(height: int) -> tuple[int, int]:
    """Rows for the tab content and the output panel on a screen ``height`` tall."""
    output_rows = max(height - BODY_TOP - PREVIEW_ROWS - 10, 3)
    content_rows = max(height - BODY_TOP - PREVIEW_ROWS - output_rows - 3, 3)
    return content_rows, output_rows


def draw(stdscr, app: App) -> None:
    stdscr.erase()
    height, width = stdscr.getmaxyx()
    ui = app.ui

    title = f" lazycurl | env: {app.current_environment} | {app.command.name} "
    _put(stdscr, 0, 1, title, curses.A_BOLD)

    history_top = max(height // 2, 6)
    _draw_templates(stdscr, app, 2, history_top - 1)
    _draw_history(stdscr, app, history_top + 1, height - 1)
    left = TEMPLATE_PANEL_WIDTH + 2

    # Tabs
    x = left
    for tab in Tab:
        label = f" {tab.value} "
        _put(stdscr, 1, x, label, _selected(tab == ui.active_tab) | curses.A_BOLD)
        x += len(label) + 1

    content_rows, output_rows = layout(height)

    drawer = {
        Tab.URL: _draw_url_tab,
        Tab.HEADERS: _draw_headers_tab,
        Tab.BODY: _draw_body_tab,
        Tab.OPTIONS: _draw_options_tab,
    }[ui.active_tab]
    drawer(stdscr, app, BODY_TOP, left, content_rows)

    preview_top = BODY_TOP + content_rows + 1
    _put(stdscr, preview_top, left, "Command:", curses.A_BOLD)
    for i, line in enumerate(app.preview().split("\n")[: PREVIEW_ROWS - 1]):
        _put(stdscr, preview_top + 1 + i, left, line)

    output_top = preview_top + PREVIEW_ROWS
    _put(stdscr, output_top, left, "Output:", curses.A_BOLD)
    if app.output:
        for i, line in enumerate(app.output.split("\n")[:output_rows]):
            _put(stdscr, output_top + 1 + i, left, line)

    _draw_status(stdscr, app, height - 1)

    if app.mode == Mode.METHOD_DROPDOWN:
        _draw_method_dropdown(stdscr, app, BODY_TOP + 2, left + 2)
    elif app.mode == Mode.HELP:
        _draw_help(stdscr, width)

    stdscr.refresh()


def _draw_templates(stdscr, app: App, top: int, height: int) -> None:
    _put(stdscr, top - 1, 1, "Templates", curses.A_BOLD)
    selected = app.ui.selected_template
    for i, template in enumerate(app.templates[: max(height - top - 2, 0)]):
        label = template.name[: TEMPLATE_PANEL_WIDTH - 2]
        _put(stdscr, top + i, 1, label, _selected(selected == i))
    if selected is not None and not app.templates:
        _put(stdscr, top, 1, "(no templates)", curses.A_REVERSE)


def history_label(command: CurlCommand) -> str:
    method = command.method.value if command.method else "GET"
    label = command.name if command.name and command.name != "New Command" else command.url
    return f"{method} {label}"


def _draw_history(stdscr, app: App, top: int, bottom: int) -> None:
    _put(stdscr, top - 1, 1, f"History ({len(app.history)})", curses.A_BOLD)
    rows = max(bottom - top - 1, 0)
    total = len(app.history)
    selected = app.ui.selected_history
    if selected is None:
        first = max(total - rows, 0)
    else:
        first = scroll_to(selected, 0, rows, total)
    for row, index in enumerate(range(first, min(first + rows, total))):
        label = history_label(app.history[index])[: TEMPLATE_PANEL_WIDTH - 2]
        _put(stdscr, top + row, 1, label, _selected(selected == index))
    if app.mode == Mode.HISTORY and not app.history:
        _put(stdscr, top, 1, "(no history)", curses.A_REVERSE)


def _field_text(app: App, field: EditField, index: int | None, value: str) -> str:
    editing = app.ui.editing
    if app.mode == Mode.EDITING and editing is not None:
        if editing.field == field and editing.index == index:
            return app.ui.edit_buffer + "_"
    return value


def _draw_url_tab(stdscr, app: App, top: int, left: int, rows: int) -> None:
    focus = app.ui.focus
    cmd = app.command
    in_templates = app.ui.selected_template is not None

    url = _field_text(app, EditField.URL, None, cmd.url)
    _put(
        stdscr,
        top,
        left,
        f"URL:    {url}",
        _selected(focus.kind == FieldKind.URL and not in_templates),
    )
    method = cmd.method.value if cmd.method else "GET"
    _put(
        stdscr,
        top + 1,
        left,
        f"Method: [{method}]",
        _selected(focus.kind == FieldKind.METHOD and not in_templates),
    )
    _put(stdscr, top + 2, left, "Query params:", curses.A_BOLD)
    for i, param in enumerate(cmd.query_params[: max(rows - 3, 0)]):
        key = _field_text(app, EditField.QUERY_PARAM_KEY, i, param.key)
        value = _field_text(app, EditField.QUERY_PARAM_VALUE, i, param.value)
        mark = "[x]" if param.enabled else "[ ]"
        chosen = focus.kind == FieldKind.QUERY_PARAM and focus.index == i and not in_templates
        _put(stdscr, top + 3 + i, left, f"{mark} {key} = {value}", _selected(chosen))


def _draw_headers_tab(stdscr, app: App, top: int, left: int, rows: int) -> None:
    focus = app.ui.focus
    if not app.command.headers:
        _put(stdscr, top, left, "No headers. Press 'a' to add one.", curses.A_DIM)
    for i, header in enumerate(app.command.headers[:rows]):
        key = _field_text(app, EditField.HEADER_KEY, i, header.key)
        value = _field_text(app, EditField.HEADER_VALUE, i, header.value)
        mark = "[x]" if header.enabled else "[ ]"
        chosen = focus.kind == FieldKind.HEADER and focus.index == i
        _put(stdscr, top + i, left, f"{mark} {key}: {value}", _selected(chosen))


def _draw_body_tab(stdscr, app: App, top: int, left: int, rows: int) -> None:
    focus = app.ui.focus
    body = app.command.body
    kind = body.kind if body is not None else BodyKind.NONE
    _put(stdscr, top, left, f"Type: <{kind.value}>", _selected(focus.kind == FieldKind.BODY_TYPE))

    area = app.ui.body_area
    if app.mode == Mode.EDITING and area is not None:
        for i, line in enumerate(area.lines[: rows - 1]):
            _put(stdscr, top + 1 + i, left, line)
        if area.row < rows - 1:
            try:
                stdscr.move(top + 1 + area.row, left + area.col)
            except curses.error:
                pass
        return

    if kind == BodyKind.RAW:
        lines = body.content.split("\n")
    elif kind == BodyKind.FORM_DATA:
        lines = [f"{'[x]' if i.enabled else '[ ]'} {i.key}={i.value}" for i in body.items]
    elif kind == BodyKind.BINARY:
        lines = [f"@{body.path}"]
    else:
        lines = ["(no body)"]
    chosen = focus.kind == FieldKind.BODY_CONTENT
    for i, line in enumerate(lines[: rows - 1]):
        _put(stdscr, top + 1 + i, left, line or " ", _selected(chosen))


def _draw_options_tab(stdscr, app: App, top: int, left: int, rows: int) -> None:
    focus = app.ui.focus
    scroll = app.ui.options_scroll
    all_rows = app.options_rows()
    for offset, row in enumerate(all_rows[scroll : scroll + rows]):
        index = scroll + offset
        description = row.definition.description if row.definition else ""
        if row.attached:
            option = app.command.options[row.attached_index]
            mark = "[x]" if option.enabled else "[ ]"
            value = ""
            if option.value is not None:
                value = " " + _field_text(app, EditField.OPTION_VALUE, index, option.value)
            text = f"{mark} {row.flag}{value}  {description}"
        else:
            text = f" +  {row.flag}  {description}"
        chosen = focus.kind == FieldKind.OPTION and focus.index == index
        _put(stdscr, top + offset, left, text, _selected(chosen))


def _draw_method_dropdown(stdscr, app: App, top: int, left: int) -> None:
    for i, method in enumerate(DROPDOWN_METHODS):
        _put(stdscr, top + i, left, f" {method.value:<8}", _selected(i == app.ui.method_index))


def _draw_help(stdscr, width: int) -> None:
    for i, line in enumerate(HELP_TEXT):
        _put(stdscr, 2 + i, 4, line.ljust(min(width - 8, 80)), curses.A_REVERSE)


def _draw_status(stdscr, app: App, y: int) -> None:
    mode = app.mode
    if mode == Mode.EDITING_TEMPLATE_NAME:
        text = f"Template name: {app.ui.edit_buffer}_"
    elif mode == Mode.EDITING_ENVIRONMENT:
        text = f"Set variable in {app.current_environment} (KEY=VALUE): {app.ui.edit_buffer}_"
    elif mode == Mode.HISTORY:
        text = "Up/Down: select  Enter: load  Esc: close"
    elif mode == Mode.EDITING:
        text = "Enter: save  Esc: cancel"
        if app.ui.editing is not None and app.ui.editing.field == EditField.BODY:
            text = "Ctrl-S: save  Esc: cancel"
    else:
        text = "?: help  Tab: switch  Enter: edit  Space: toggle  x: run  s: save  q: quit"
        if app.validation is not None and app.validation.messages:
            text = app.validation.messages[0]
    _put(stdscr, y, 1, text, curses.A_BOLD)


# ── Loop ────────────────────────────────────────────────────────────────


def _loop(stdscr, app: App) -> None:
    curses.curs_set(0)
    stdscr.keypad(True)
    curses.set_escdelay(25)
    while not app.exiting:
        height, _ = stdscr.getmaxyx()
        app.set_viewport(layout(height)[0])
        draw(stdscr, app)
        key = stdscr.get_wch()
        if key == curses.KEY_RESIZE:
            curses.update_lines_cols()
            continue
        translated = key_to_intent(app, key)
        if translated is None:
            continue
        intent, text = translated
        app.handle(intent, text)


def run(app: App, on_exit: Callable[[App], None] | None = None) -> None:
    """Run the editor until the user quits; ``on_exit`` runs even on error."""
    try:
        curses.wrapper(_loop, app)
    finally:
        if on_exit is not None:
            on_exit(app)
