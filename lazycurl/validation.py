"""lazycurl validation - advisory checks over a CurlCommand.

Nothing here blocks execution; callers decide what to do with an ERROR.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit

from lazycurl.models import BodyKind, CurlCommand

# Flags that are meaningless without a value.
VALUE_REQUIRED_FLAGS = frozenset(
    {
        "-X",
        "--request",
        "-d",
        "--data",
        "--data-binary",
        "--data-urlencode",
        "-F",
        "--form",
        "-u",
        "--user",
        "--oauth2-bearer",
        "--connect-timeout",
        "--max-time",
        "-H",
        "--header",
        "-A",
        "--user-agent",
        "-e",
        "--referer",
        "-b",
        "--cookie",
        "-c",
        "--cookie-jar",
        "--cacert",
        "--cert",
        "--key",
        "--ciphers",
        "--tls-max",
        "-x",
        "--proxy",
        "--noproxy",
        "-o",
        "--output",
        "-w",
        "--write-out",
    },
)

LONG_TIMEOUT_SECONDS = 300

# Schemes that must carry a host, as in the WHATWG "special" schemes.
_HOST_SCHEMES = frozenset({"http", "https", "ws", "wss", "ftp"})
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_BAD_HOST_CHARS = frozenset(" \t\n\r#%/:<>?@[\\]^|")


class ValidationStatus(Enum):
    VALID = "valid"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ValidationResult:
    status: ValidationStatus
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def is_valid(self) -> bool:
        return self.status == ValidationStatus.VALID

    def has_warnings(self) -> bool:
        return self.status == ValidationStatus.WARNING

    def has_errors(self) -> bool:
        return self.status == ValidationStatus.ERROR

    @property
    def messages(self) -> list[str]:
        """Errors when there are any, otherwise warnings."""
        return self.errors if self.errors else self.warnings


def validate(command: CurlCommand) -> ValidationResult:
    """Run every check; errors never short-circuit the remaining checks."""
    errors: list[str] = []
    warnings: list[str] = []

    url_error = validate_url(command.url)
    if url_error:
        errors.append(f"Invalid URL: {url_error}")

    _check_conflicts(command, errors)
    _check_missing_values(command, errors)
    _check_problematic(command, warnings)

    # Warnings are still collected alongside errors so callers can show both.
    if errors:
        return ValidationResult(ValidationStatus.ERROR, errors, warnings)
    if warnings:
        return ValidationResult(ValidationStatus.WARNING, errors, warnings)
    return ValidationResult(ValidationStatus.VALID)


def validate_url(url: str) -> str | None:
    """Return a parser-style error message for ``url``, or None when acceptable.

    URLs still holding {{placeholders}} are accepted as-is; they cannot be
    judged until substitution.
    """
    if not url.strip():
        return "URL cannot be empty"
    if "{{" in url and "}}" in url:
        return None
    try:
        _parse_absolute_url(url)
    except ValueError as e:
        return str(e)
    return None


def _parse_absolute_url(url: str) -> None:
    url = url.strip()
    scheme, sep, _ = url.partition(":")
    if not sep or not _SCHEME_RE.match(scheme):
        raise ValueError("relative URL without a base")

    parts = urlsplit(url)
    if parts.scheme.lower() not in _HOST_SCHEMES:
        return

    hostname = parts.hostname or ""
    if not hostname:
        raise ValueError("empty host")
    if any(c in _BAD_HOST_CHARS for c in hostname):
        raise ValueError("invalid domain character")
    try:
        parts.port  # noqa: B018 - raises on a bad port
    except ValueError:
        raise ValueError("invalid port number") from None


def _body_is_set(command: CurlCommand) -> bool:
    return command.body is not None and command.body.kind != BodyKind.NONE


def _check_conflicts(command: CurlCommand, errors: list[str]) -> None:
    enabled = set(command.enabled_flags())
    if "-s" in enabled and "-v" in enabled:
        errors.append(
            "Conflicting options: -s (silent) and -v (verbose) cannot be used together",
        )
    if "-I" in enabled and _body_is_set(command):
        errors.append("Conflicting options: -I (head) cannot be used with a request body")


def _check_missing_values(command: CurlCommand, errors: list[str]) -> None:
    for option in command.options:
        if not option.enabled or option.flag not in VALUE_REQUIRED_FLAGS:
            continue
        if option.value is None or not option.value.strip():
            errors.append(f"Option {option.flag} requires a value")


def _check_problematic(command: CurlCommand, warnings: list[str]) -> None:
    enabled = set(command.enabled_flags())
    if "-k" in enabled or "--insecure" in enabled:
        warnings.append(
            "The -k/--insecure option disables SSL certificate verification, "
            "which may be insecure",
        )

    for option in command.options:
        if not option.enabled or option.flag not in ("--max-time", "-m"):
            continue
        if option.value is None:
            continue
        try:
            timeout = float(option.value.strip())
        except ValueError:
            continue
        if timeout > LONG_TIMEOUT_SECONDS:
            shown = int(timeout) if timeout.is_integer() else timeout
            warnings.append(f"Long timeout value ({shown}s) may cause the command to hang")
