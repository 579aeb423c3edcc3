"""lazycurl app - the application state and the intent-driven state machine.

Every user action reaches the app as an Intent (plus text for CHAR). The
renderer only reads from App; it never mutates it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from lazycurl import navigation
from lazycurl.builder import build, build_masked, mask_secrets
from lazycurl.executor import CommandExecutor, ExecutionResult, format_result
from lazycurl.models import (
    DROPDOWN_METHODS,
    BodyKind,
    CommandTemplate,
    CurlCommand,
    Environment,
    HttpMethod,
    RequestBody,
)
from lazycurl.navigation import METHOD_FOCUS, FieldKind, Focus, Tab
from lazycurl.options import catalog
from lazycurl.textbuffer import TextArea
from lazycurl.validation import ValidationResult, validate

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "Default"
DEFAULT_HISTORY_LIMIT = 100
NO_EXECUTOR_MESSAGE = "Error: curl executable not found in PATH"


class Mode(Enum):
    NORMAL = "normal"
    EDITING = "editing"
    METHOD_DROPDOWN = "method_dropdown"
    EDITING_TEMPLATE_NAME = "editing_template_name"
    EDITING_ENVIRONMENT = "editing_environment"
    HISTORY = "history"
    HELP = "help"
    EXITING = "exiting"


class EditField(Enum):
    URL = "url"
    METHOD = "method"
    HEADER_KEY = "header_key"
    HEADER_VALUE = "header_value"
    QUERY_PARAM_KEY = "query_param_key"
    QUERY_PARAM_VALUE = "query_param_value"
    BODY = "body"
    OPTION_VALUE = "option_value"


@dataclass(frozen=True)
class EditTarget:
    field: EditField
    index: int | None = None


class Intent(Enum):
    NEXT_TAB = "next_tab"
    PREV_TAB = "prev_tab"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    EDIT = "edit"
    EDIT_KEY = "edit_key"
    TOGGLE = "toggle"
    ADD = "add"
    DELETE = "delete"
    CHAR = "char"
    BACKSPACE = "backspace"
    NEWLINE = "newline"
    COMMIT = "commit"
    SAVE = "save"
    CANCEL = "cancel"
    EXECUTE = "execute"
    SAVE_TEMPLATE = "save_template"
    EDIT_ENVIRONMENT = "edit_environment"
    NEXT_ENVIRONMENT = "next_environment"
    HISTORY = "history"
    HELP = "help"
    QUIT = "quit"


@dataclass
class UiState:
    active_tab: Tab = Tab.URL
    focus: Focus = field(default_factory=lambda: navigation.first_focus(Tab.URL))
    selected_template: int | None = None
    selected_history: int | None = None
    editing: EditTarget | None = None
    edit_buffer: str = ""
    body_area: TextArea | None = None
    method_index: int = 0
    options_scroll: int = 0
    options_visible_rows: int = 10


class App:
    """Owns the command, environments, templates, history and UI state."""

    def __init__(
        self,
        command: CurlCommand | None = None,
        environments: dict[str, Environment] | None = None,
        templates: list[CommandTemplate] | None = None,
        history: list[CurlCommand] | None = None,
        executor: CommandExecutor | None = None,
        current_environment: str = DEFAULT_ENVIRONMENT,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.mode = Mode.NORMAL
        self.command = command or CurlCommand()
        self.environments: dict[str, Environment] = dict(environments or {})
        if DEFAULT_ENVIRONMENT not in self.environments:
            self.environments[DEFAULT_ENVIRONMENT] = Environment(DEFAULT_ENVIRONMENT)
        self.current_environment = (
            current_environment if current_environment in self.environments else DEFAULT_ENVIRONMENT
        )
        self.templates: list[CommandTemplate] = list(templates or [])
        self.history: list[CurlCommand] = list(history or [])
        self.history_limit = history_limit
        self.executor = executor
        self.ui = UiState()
        self.output: str | None = None
        self.execution_result: ExecutionResult | None = None
        self.validation: ValidationResult | None = None

    # ── Read-only views ──────────────────────────────────────────────────

    @property
    def environment(self) -> Environment:
        return self.environments[self.current_environment]

    @property
    def exiting(self) -> bool:
        return self.mode == Mode.EXITING

    def preview(self) -> str:
        """The command string as it would run, secrets masked."""
        return build_masked(self.command, self.environment)

    def options_rows(self) -> tuple[navigation.OptionRow, ...]:
        return navigation.options_rows(self.command)

    # ── Dispatch ─────────────────────────────────────────────────────────

    def handle(self, intent: Intent, text: str | None = None) -> bool:
        """Apply one intent. Returns True once the app is exiting."""
        handler = {
            Mode.NORMAL: self._handle_normal,
            Mode.EDITING: self._handle_editing,
            Mode.METHOD_DROPDOWN: self._handle_method_dropdown,
            Mode.EDITING_TEMPLATE_NAME: self._handle_template_name,
            Mode.EDITING_ENVIRONMENT: self._handle_environment,
            Mode.HISTORY: self._handle_history,
            Mode.HELP: self._handle_help,
            Mode.EXITING: lambda intent, text: None,
        }[self.mode]
        before = self.mode
        handler(intent, text)
        if self.mode != before:
            logger.debug("mode %s -> %s", before.value, self.mode.value)
        return self.exiting

    def _handle_normal(self, intent: Intent, text: str | None) -> None:
        if intent == Intent.QUIT:
            self.mode = Mode.EXITING
        elif intent == Intent.HELP:
            self.mode = Mode.HELP
        elif intent == Intent.NEXT_TAB:
            self.switch_tab(self.ui.active_tab.next())
        elif intent == Intent.PREV_TAB:
            self.switch_tab(self.ui.active_tab.prev())
        elif intent == Intent.UP:
            self.move_vertical(-1)
        elif intent == Intent.DOWN:
            self.move_vertical(1)
        elif intent == Intent.LEFT:
            self.navigate_left()
        elif intent == Intent.RIGHT:
            self.navigate_right()
        elif intent == Intent.EDIT:
            if self.ui.selected_template is not None:
                if self.load_template(self.ui.selected_template):
                    self.ui.selected_template = None
            else:
                self.start_editing()
        elif intent == Intent.EDIT_KEY:
            self.start_editing_key()
        elif intent == Intent.TOGGLE:
            self.toggle_selected()
        elif intent == Intent.ADD:
            self.add_entry()
        elif intent == Intent.DELETE:
            self.delete_selected()
        elif intent == Intent.EXECUTE:
            self.execute()
        elif intent == Intent.SAVE_TEMPLATE:
            self.ui.edit_buffer = self.command.name
            self.mode = Mode.EDITING_TEMPLATE_NAME
        elif intent == Intent.EDIT_ENVIRONMENT:
            self.ui.edit_buffer = ""
            self.mode = Mode.EDITING_ENVIRONMENT
        elif intent == Intent.NEXT_ENVIRONMENT:
            self.cycle_environment()
        elif intent == Intent.HISTORY:
            self.open_history()

    # ── Selection ────────────────────────────────────────────────────────

    def switch_tab(self, tab: Tab) -> None:
        """Activate ``tab`` and reset to its first field; template selection is kept."""
        self.ui.active_tab = tab
        self.ui.focus = navigation.first_focus(tab)
        if tab == Tab.OPTIONS:
            self.ui.options_scroll = 0

    def move_vertical(self, delta: int) -> None:
        if self.ui.selected_template is not None:
            self.ui.selected_template = navigation.move_clamped(
                self.ui.selected_template,
                delta,
                len(self.templates),
            )
            return
        move = navigation.move_up if delta < 0 else navigation.move_down
        self.ui.focus = move(self.ui.focus, self.command)
        self._sync_options_scroll()

    def navigate_left(self) -> None:
        if self.ui.selected_template is not None:
            return
        if self.ui.focus == METHOD_FOCUS:
            # An empty template list is still a legal, inert selection.
            self.ui.selected_template = 0
            return
        self.ui.focus = METHOD_FOCUS
        self.ui.active_tab = Tab.URL

    def navigate_right(self) -> None:
        if self.ui.selected_template is not None:
            self.ui.selected_template = None
            self.ui.focus = METHOD_FOCUS
            self.ui.active_tab = Tab.URL
        elif self.ui.focus == METHOD_FOCUS:
            self.ui.focus = navigation.first_focus(self.ui.active_tab)

    def _sync_options_scroll(self) -> None:
        focus = self.ui.focus
        if focus.kind != FieldKind.OPTION:
            return
        self.ui.options_scroll = navigation.scroll_to(
            focus.index or 0,
            self.ui.options_scroll,
            self.ui.options_visible_rows,
            len(self.options_rows()),
        )

    def set_viewport(self, options_rows: int) -> None:
        """Record how many option rows fit on screen and keep the focus visible."""
        self.ui.options_visible_rows = max(options_rows, 1)
        self._sync_options_scroll()

    # ── Mutations from NORMAL ────────────────────────────────────────────

    def toggle_selected(self) -> None:
        """Flip ``enabled`` on the selected row; selection and mode are untouched."""
        focus = self.ui.focus
        if self.ui.selected_template is not None:
            return
        if focus.kind == FieldKind.HEADER:
            self.command.toggle_header(focus.index or 0)
        elif focus.kind == FieldKind.QUERY_PARAM:
            self.command.toggle_query_param(focus.index or 0)
        elif focus.kind == FieldKind.OPTION:
            self.command.toggle_option(focus.index or 0)
        elif focus.kind == FieldKind.BODY_TYPE:
            body = self.command.body or RequestBody.none()
            self.command.set_body(
                RequestBody(
                    kind=body.kind.next(),
                    content=body.content,
                    items=body.items,
                    path=body.path,
                ),
            )

    def add_entry(self) -> None:
        """Append an empty header/query param and start editing its key."""
        if self.ui.selected_template is not None:
            return
        tab = self.ui.active_tab
        if tab == Tab.URL:
            self.command.add_query_param("", "")
            index = len(self.command.query_params) - 1
            self.ui.focus = Focus(FieldKind.QUERY_PARAM, index)
            self._begin_edit(EditTarget(EditField.QUERY_PARAM_KEY, index), "")
        elif tab == Tab.HEADERS:
            self.command.add_header("", "")
            index = len(self.command.headers) - 1
            self.ui.focus = Focus(FieldKind.HEADER, index)
            self._begin_edit(EditTarget(EditField.HEADER_KEY, index), "")

    def delete_selected(self) -> None:
        focus = self.ui.focus
        if self.ui.selected_template is not None or not focus.indexed:
            return
        index = focus.index or 0
        if focus.kind == FieldKind.OPTION:
            # Unattached catalog rows cannot be deleted.
            if self.command.remove_option(index) is None:
                return
            self.ui.focus = focus.at(max(0, index - 1))
            self._sync_options_scroll()
        elif focus.kind == FieldKind.HEADER:
            if self.command.remove_header(index) is not None:
                self.ui.focus = focus.at(max(0, index - 1))
        elif focus.kind == FieldKind.QUERY_PARAM:
            if self.command.remove_query_param(index) is None:
                return
            if self.command.query_params:
                self.ui.focus = focus.at(max(0, index - 1))
            else:
                self.ui.focus = METHOD_FOCUS

    def cycle_environment(self) -> None:
        names = sorted(self.environments)
        position = names.index(self.current_environment)
        self.current_environment = names[(position + 1) % len(names)]

    # ── Entering edit mode ───────────────────────────────────────────────

    def start_editing(self) -> None:
        """Commit-to-edit on the selected field; behaviour depends on the field kind."""
        focus = self.ui.focus
        command = self.command
        index = focus.index or 0

        if focus.kind == FieldKind.URL:
            self._begin_edit(EditTarget(EditField.URL), command.url)
        elif focus.kind == FieldKind.METHOD:
            self.open_method_dropdown()
        elif focus.kind == FieldKind.QUERY_PARAM:
            if index < len(command.query_params):
                self._begin_edit(
                    EditTarget(EditField.QUERY_PARAM_VALUE, index),
                    command.query_params[index].value,
                )
        elif focus.kind == FieldKind.HEADER:
            if index < len(command.headers):
                self._begin_edit(
                    EditTarget(EditField.HEADER_VALUE, index),
                    command.headers[index].value,
                )
        elif focus.kind == FieldKind.BODY_CONTENT:
            body = command.body
            content = body.content if body is not None and body.kind == BodyKind.RAW else ""
            self.ui.body_area = TextArea(content)
            self._begin_edit(EditTarget(EditField.BODY), content)
        elif focus.kind == FieldKind.OPTION:
            self._activate_option_row(index)

    def start_editing_key(self) -> None:
        focus = self.ui.focus
        index = focus.index or 0
        if self.ui.selected_template is not None:
            return
        if focus.kind == FieldKind.HEADER and index < len(self.command.headers):
            self._begin_edit(
                EditTarget(EditField.HEADER_KEY, index),
                self.command.headers[index].key,
            )
        elif focus.kind == FieldKind.QUERY_PARAM and index < len(self.command.query_params):
            self._begin_edit(
                EditTarget(EditField.QUERY_PARAM_KEY, index),
                self.command.query_params[index].key,
            )

    def _activate_option_row(self, index: int) -> None:
        """Edit an attached option's value, or attach an unattached catalog row."""
        cat = catalog()
        options = self.command.options
        if index < len(options):
            option = options[index]
            if cat.takes_value(option.flag) and option.value is not None:
                self._begin_edit(EditTarget(EditField.OPTION_VALUE, index), option.value)
            return

        rows = self.options_rows()
        if index >= len(rows):
            return
        flag = rows[index].flag
        if self.command.has_option(flag):
            return
        option = cat.create_option(flag)
        if option is None:
            return
        options.append(option)
        self.command.touch()
        self.ui.focus = Focus(FieldKind.OPTION, len(options) - 1)
        self._sync_options_scroll()

    def _begin_edit(self, target: EditTarget, value: str) -> None:
        self.ui.editing = target
        self.ui.edit_buffer = value
        self.mode = Mode.EDITING

    def open_method_dropdown(self) -> None:
        current = self.command.method or HttpMethod.GET
        self.ui.method_index = (
            DROPDOWN_METHODS.index(current) if current in DROPDOWN_METHODS else 0
        )
        self.mode = Mode.METHOD_DROPDOWN

    # ── EDITING ──────────────────────────────────────────────────────────

    def _handle_editing(self, intent: Intent, text: str | None) -> None:
        target = self.ui.editing
        if target is None:
            self._finish_edit()
            return
        if target.field == EditField.BODY:
            self._handle_body_editing(intent, text)
            return

        if intent == Intent.CHAR and text:
            self.ui.edit_buffer += text
        elif intent == Intent.BACKSPACE:
            self.ui.edit_buffer = self.ui.edit_buffer[:-1]
        elif intent == Intent.COMMIT:
            self.commit_edit()
        elif intent == Intent.CANCEL:
            self._finish_edit()

    def _handle_body_editing(self, intent: Intent, text: str | None) -> None:
        area = self.ui.body_area
        if area is None:
            area = self.ui.body_area = TextArea(self.ui.edit_buffer)
        if intent == Intent.CHAR and text:
            area.insert(text)
        elif intent == Intent.NEWLINE:
            area.newline()
        elif intent == Intent.BACKSPACE:
            area.backspace()
        elif intent == Intent.LEFT:
            area.move_left()
        elif intent == Intent.RIGHT:
            area.move_right()
        elif intent == Intent.UP:
            area.move_up()
        elif intent == Intent.DOWN:
            area.move_down()
        elif intent == Intent.SAVE:
            self.ui.edit_buffer = area.text
            self.commit_edit()
        elif intent == Intent.CANCEL:
            self._finish_edit()

    def commit_edit(self) -> None:
        """Write the edit buffer back to its target; a stale index writes nothing."""
        target = self.ui.editing
        value = self.ui.edit_buffer
        command = self.command
        if target is not None:
            index = target.index or 0
            if target.field == EditField.URL:
                command.url = value
                command.touch()
            elif target.field == EditField.METHOD:
                command.set_method(HttpMethod.parse(value))
            elif target.field == EditField.BODY:
                command.set_body(RequestBody.raw(value))
            elif target.field in (EditField.HEADER_KEY, EditField.HEADER_VALUE):
                if index < len(command.headers):
                    header = command.headers[index]
                    if target.field == EditField.HEADER_KEY:
                        header.key = value
                    else:
                        header.value = value
                    command.touch()
            elif target.field in (EditField.QUERY_PARAM_KEY, EditField.QUERY_PARAM_VALUE):
                if index < len(command.query_params):
                    param = command.query_params[index]
                    if target.field == EditField.QUERY_PARAM_KEY:
                        param.key = value
                    else:
                        param.value = value
                    command.touch()
            elif target.field == EditField.OPTION_VALUE:
                if index < len(command.options):
                    command.options[index].value = value
                    command.touch()
        self._finish_edit()

    def _finish_edit(self) -> None:
        self.ui.editing = None
        self.ui.edit_buffer = ""
        self.ui.body_area = None
        self.mode = Mode.NORMAL

    # ── Other modes ──────────────────────────────────────────────────────

    def _handle_method_dropdown(self, intent: Intent, text: str | None) -> None:
        count = len(DROPDOWN_METHODS)
        if intent == Intent.UP:
            self.ui.method_index = (self.ui.method_index - 1) % count
        elif intent == Intent.DOWN:
            self.ui.method_index = (self.ui.method_index + 1) % count
        elif intent in (Intent.COMMIT, Intent.EDIT):
            self.command.set_method(DROPDOWN_METHODS[self.ui.method_index % count])
            self.mode = Mode.NORMAL
        elif intent == Intent.CANCEL:
            self.mode = Mode.NORMAL

    def _handle_template_name(self, intent: Intent, text: str | None) -> None:
        if intent == Intent.CHAR and text:
            self.ui.edit_buffer += text
        elif intent == Intent.BACKSPACE:
            self.ui.edit_buffer = self.ui.edit_buffer[:-1]
        elif intent == Intent.COMMIT:
            name = self.ui.edit_buffer.strip()
            if not name:
                return
            self.save_template(name)
            self.ui.edit_buffer = ""
            self.mode = Mode.NORMAL
        elif intent == Intent.CANCEL:
            self.ui.edit_buffer = ""
            self.mode = Mode.NORMAL

    def _handle_environment(self, intent: Intent, text: str | None) -> None:
        if intent == Intent.CHAR and text:
            self.ui.edit_buffer += text
        elif intent == Intent.BACKSPACE:
            self.ui.edit_buffer = self.ui.edit_buffer[:-1]
        elif intent == Intent.COMMIT:
            self.apply_variable_assignment(self.ui.edit_buffer)
            self.ui.edit_buffer = ""
            self.mode = Mode.NORMAL
        elif intent == Intent.CANCEL:
            self.ui.edit_buffer = ""
            self.mode = Mode.NORMAL

    def _handle_history(self, intent: Intent, text: str | None) -> None:
        selected = self.ui.selected_history
        if intent in (Intent.UP, Intent.DOWN):
            if selected is not None:
                delta = -1 if intent == Intent.UP else 1
                self.ui.selected_history = navigation.move_clamped(
                    selected,
                    delta,
                    len(self.history),
                )
        elif intent in (Intent.EDIT, Intent.COMMIT):
            if selected is not None and self.load_history_entry(selected):
                self.close_history()
        elif intent in (Intent.HISTORY, Intent.CANCEL):
            self.close_history()

    def _handle_help(self, intent: Intent, text: str | None) -> None:
        if intent in (Intent.HELP, Intent.CANCEL):
            self.mode = Mode.NORMAL

    # ── Templates, environments, history ─────────────────────────────────

    def save_template(self, name: str, **kwargs) -> CommandTemplate:
        template = CommandTemplate.from_command(name, self.command, **kwargs)
        self.templates.append(template)
        return template

    def load_template(self, index: int) -> bool:
        """Replace the current command with a clone of template ``index``."""
        if index < 0 or index >= len(self.templates):
            return False
        self.command = self.templates[index].command.clone()
        self.ui.focus = navigation.first_focus(self.ui.active_tab)
        self.ui.options_scroll = 0
        return True

    def apply_variable_assignment(self, text: str) -> bool:
        """Set a variable from 'KEY=VALUE'; a leading '!' marks it secret."""
        text = text.strip()
        is_secret = text.startswith("!")
        if is_secret:
            text = text[1:]
        key, sep, value = text.partition("=")
        key = key.strip()
        if not sep or not key:
            return False
        self.environment.set_variable(key, value.strip(), is_secret=is_secret)
        return True

    def open_history(self) -> None:
        """Browse past runs, starting from the most recent one."""
        self.ui.selected_history = len(self.history) - 1 if self.history else None
        self.mode = Mode.HISTORY

    def close_history(self) -> None:
        self.ui.selected_history = None
        self.mode = Mode.NORMAL

    def load_history_entry(self, index: int) -> bool:
        """Replace the current command with a clone of history entry ``index``."""
        if index < 0 or index >= len(self.history):
            return False
        self.command = self.history[index].clone()
        self.ui.focus = navigation.first_focus(self.ui.active_tab)
        self.ui.options_scroll = 0
        return True

    def record_history(self, command: CurlCommand) -> None:
        self.history.append(command.clone())
        overflow = len(self.history) - self.history_limit
        if overflow > 0:
            del self.history[:overflow]

    # ── Execution ────────────────────────────────────────────────────────

    def execute(self) -> ExecutionResult | None:
        """Build, validate and run the current command; store the outcome for display.

        Validation errors are reported alongside the output but do not stop
        the run.
        """
        if self.executor is None:
            self.output = NO_EXECUTOR_MESSAGE
            self.execution_result = None
            return None

        environment = self.environment
        command_string = build(self.command, environment)
        self.validation = validate(self.command)

        result = self.executor.execute(command_string)
        self.execution_result = result

        report = format_result(result, command=build_masked(self.command, environment))
        if self.validation.has_errors():
            problems = "\n".join(f"  - {m}" for m in self.validation.errors)
            report = f"Validation errors:\n{problems}\n\n{report}"
        self.output = mask_secrets(report, environment)

        if result.exit_code == 0:
            self.record_history(self.command)
        return result
