"""lazycurl builder - turn a CurlCommand + Environment into a curl command line.

The build is pure: the same command and environment always yield the same
string, and nothing here touches the network or the filesystem.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from urllib.parse import quote

from lazycurl.models import BodyKind, CurlCommand, Environment, HttpMethod

logger = logging.getLogger(__name__)

MAX_LINE_LENGTH = 80
CONTINUATION = " \\\n      "
CONTINUATION_INDENT = 6
SECRET_MASK = "••••"
# Shorter secrets are hidden only where they are substituted, never in free text.
MIN_MASKED_SECRET_LENGTH = 4

# {{name}} or {{name:default}}
_VAR_RE = re.compile(r"\{\{([^:}]+)(?::([^}]*))?\}\}")

# Characters that stay special inside double quotes.
_DQUOTE_ESCAPABLE = frozenset('"\\$`\n')


class ArgumentSplitError(ValueError):
    """Raised when a command string cannot be split into arguments."""


# ── Variable substitution ───────────────────────────────────────────────


def substitute(text: str, environment: Environment | None) -> str:
    """Resolve {{name}} / {{name:default}} placeholders from an environment.

    - Known variable -> its value (first match by key)
    - Unknown with default -> the default (may be empty)
    - Unknown without default -> the placeholder is left as-is

    Replacement is left to right and never re-scans inserted text, so a
    value that itself contains '{{' cannot cause a loop.
    """
    if not text or "{{" not in text:
        return text

    out: list[str] = []
    pos = 0
    while True:
        m = _VAR_RE.search(text, pos)
        if m is None:
            out.append(text[pos:])
            break
        out.append(text[pos : m.start()])
        name, default = m.group(1), m.group(2)
        value = environment.get_variable(name) if environment is not None else None
        if value is not None:
            out.append(value)
        elif default is not None:
            out.append(default)
        else:
            out.append(m.group(0))
        pos = m.end()
    return "".join(out)


def masked_environment(environment: Environment | None) -> Environment | None:
    """Copy of ``environment`` whose secret variables substitute as SECRET_MASK."""
    if environment is None:
        return None
    variables = [
        replace(v, value=SECRET_MASK) if v.is_secret and v.value else v
        for v in environment.variables
    ]
    return replace(environment, variables=variables)


def mask_secrets(text: str, environment: Environment | None) -> str:
    """Hide secret values that show up in free text such as curl output."""
    if environment is None:
        return text
    secrets = [s for s in environment.secret_values() if len(s) >= MIN_MASKED_SECRET_LENGTH]
    for secret in sorted(secrets, key=len, reverse=True):
        text = text.replace(secret, SECRET_MASK)
    return text


# ── Argument assembly ───────────────────────────────────────────────────


def build_url(command: CurlCommand, environment: Environment | None) -> str:
    """Substitute the base URL and append enabled query params, percent-encoded."""
    base_url = substitute(command.url, environment)
    enabled = [p for p in command.query_params if p.enabled]
    if not enabled:
        return base_url

    query = "&".join(
        f"{p.key}={quote(substitute(p.value, environment), safe='')}" for p in enabled
    )
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{query}"


def build_args(command: CurlCommand, environment: Environment | None) -> list[str]:
    """Assemble the argument list in curl order: options, method, headers, body, URL."""
    args = ["curl"]

    for option in command.options:
        if not option.enabled:
            continue
        args.append(option.flag)
        if option.value is not None:
            args.append(substitute(option.value, environment))

    if command.method is not None and command.method != HttpMethod.GET:
        args.extend(["-X", command.method.value])

    for header in command.headers:
        if header.enabled:
            args.extend(["-H", f"{header.key}: {substitute(header.value, environment)}"])

    body = command.body
    if body is not None:
        if body.kind == BodyKind.RAW:
            if body.content.strip():
                args.extend(["-d", substitute(body.content, environment)])
        elif body.kind == BodyKind.FORM_DATA:
            for item in body.items:
                if item.enabled:
                    args.extend(["-F", f"{item.key}={substitute(item.value, environment)}"])
        elif body.kind == BodyKind.BINARY:
            args.extend(["--data-binary", f"@{body.path}"])

    args.append(build_url(command, environment))
    return args


def build(command: CurlCommand, environment: Environment | None) -> str:
    """Build the display/command string for ``command``."""
    result = format_command(build_args(command, environment))
    logger.debug("built command for %s (%d chars)", command.name, len(result))
    return result


def build_masked(command: CurlCommand, environment: Environment | None) -> str:
    """Build for display: secret variables show as SECRET_MASK where substituted."""
    return build(command, masked_environment(environment))


# ── Quoting and formatting ──────────────────────────────────────────────


def needs_quoting(arg: str) -> bool:
    """True when the splitter would not give ``arg`` back verbatim.

    A leading quote always opens a group in parse_command_args, so an
    argument starting with one is quoted even if it looks pre-quoted.
    """
    if arg == "" or arg.startswith(("'", '"')):
        return True
    return "\\" in arg or any(c.isspace() for c in arg)


def quote_arg(arg: str) -> str:
    """Double-quote an argument for display when the shell would split or eat it."""
    if not needs_quoting(arg):
        return arg
    escaped = "".join("\\" + c if c in _DQUOTE_ESCAPABLE and c != "\n" else c for c in arg)
    return f'"{escaped}"'


def format_command(args: list[str], width: int = MAX_LINE_LENGTH) -> str:
    """Space-join arguments, wrapping with a backslash continuation past ``width``."""
    parts: list[str] = []
    line_length = 0
    for i, arg in enumerate(args):
        if i > 0 and line_length + len(arg) > width:
            parts.append(CONTINUATION)
            line_length = CONTINUATION_INDENT
        if i > 0:
            parts.append(" ")
            line_length += 1
        quoted = quote_arg(arg)
        parts.append(quoted)
        line_length += len(quoted)
    return "".join(parts)


# ── Splitting ───────────────────────────────────────────────────────────


def parse_command_args(text: str) -> list[str]:
    """Split a built command string back into arguments.

    Mirrors the quoting in format_command:
    - whitespace separates words; backslash-newline is a line continuation
    - a quote opens a group only at the start of a word, so quote
      characters inside a word (JSON bodies) stay literal
    - inside "...": \\" \\\\ \\$ \\` and \\<newline> are escapes
    - inside '...': only \\' is unescaped
    - outside quotes a backslash escapes the next character
    """
    args: list[str] = []
    current: list[str] = []
    in_word = False
    i = 0
    n = len(text)

    while i < n:
        c = text[i]

        if c == "\\" and i + 1 < n and text[i + 1] == "\n":
            i += 2
            continue
        if c.isspace():
            if in_word:
                args.append("".join(current))
                current = []
                in_word = False
            i += 1
            continue

        if not in_word and c in ('"', "'"):
            in_word = True
            i = _read_quoted(text, i, current)
            continue

        in_word = True
        if c == "\\" and i + 1 < n:
            current.append(text[i + 1])
            i += 2
            continue
        current.append(c)
        i += 1

    if in_word:
        args.append("".join(current))
    return args


def _read_quoted(text: str, start: int, out: list[str]) -> int:
    """Consume one quoted group starting at ``start``; return the index after it."""
    quote_char = text[start]
    i = start + 1
    n = len(text)
    while i < n:
        c = text[i]
        if c == quote_char:
            return i + 1
        if c == "\\" and i + 1 < n:
            nxt = text[i + 1]
            if quote_char == '"' and nxt in _DQUOTE_ESCAPABLE:
                if nxt != "\n":
                    out.append(nxt)
                i += 2
                continue
            if quote_char == "'" and nxt == "'":
                out.append("'")
                i += 2
                continue
        out.append(c)
        i += 1
    raise ArgumentSplitError(f"Unterminated {quote_char} quote in command")
