"""lazycurl core - config loading, storage of templates/environments/history, curl import."""

from __future__ import annotations

import json
import logging
import os
import re
import shlex
from pathlib import Path
from urllib.parse import parse_qsl, urlsplit, urlunsplit

import yaml
from dotenv import dotenv_values

from lazycurl.models import (
    BodyKind,
    CommandTemplate,
    CurlCommand,
    Environment,
    FormDataItem,
    Header,
    HttpMethod,
    RequestBody,
)
from lazycurl.options import catalog

logger = logging.getLogger(__name__)

GLOBAL_DIR = Path.home() / ".lazycurl"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    ".lazycurl.yaml",
    ".lazycurl.yml",
    "lazycurl.yaml",
    "lazycurl.yml",
]

TEMPLATES_FILE = "templates.yaml"
ENVIRONMENTS_FILE = "environments.yaml"
HISTORY_FILE = "history.json"

DEFAULT_ENVIRONMENT = "Default"
DEFAULT_TIMEOUT = 30
DEFAULT_HISTORY_LIMIT = 100


# ── Config ───────────────────────────────────────────────────────────────


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else ``default``."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (hard, no fallthrough if missing)
      2. .lazycurl.yaml (variants) in CWD
      3. ~/.lazycurl/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config file. Returns empty defaults if not found.

    String values under ``defaults`` have $VAR / ${VAR} resolved from the
    process environment. '_config_dir' is kept so relative paths in the
    config resolve against the config file, not the CWD.
    """
    if config_path is None:
        return {"defaults": {}, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": {}, "_config_dir": None}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        logger.warning("ignoring config %s: top level is not a mapping", path)
        data = {}
    defaults = data.get("defaults") or {}
    return {
        "defaults": {k: resolve_value(v, os.environ) for k, v in defaults.items()},
        "_config_dir": path.resolve().parent,
    }


def resolve_value(value, env) -> str | None:
    """Resolve $VAR and ${VAR} references in a string value.

    Unknown names are left untouched; non-strings pass through.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, m.group(0))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def _config_relative(value: str, config: dict) -> Path:
    p = Path(value).expanduser()
    config_dir = config.get("_config_dir")
    if not p.is_absolute() and config_dir:
        p = Path(config_dir) / p
    return p


def resolve_storage_dir(config: dict, override: str | None = None) -> Path:
    """Directory holding templates.yaml, environments.yaml and history.json.

    Resolution order:
      1. override (absolute or relative to CWD)
      2. storage_dir from config defaults (relative to the config file)
      3. ~/.lazycurl/
    """
    if override:
        p = Path(override).expanduser()
        return p if p.is_absolute() else Path.cwd() / p
    storage_dir = config.get("defaults", {}).get("storage_dir")
    if storage_dir:
        return _config_relative(str(storage_dir), config)
    return GLOBAL_DIR


def load_env_file(env_file: str | None, base_dir: str | Path = ".") -> dict[str, str]:
    """Read a dotenv file into a plain dict. Missing files yield {}."""
    if not env_file:
        return {}
    dotenv_path = Path(env_file)
    if not dotenv_path.is_absolute():
        dotenv_path = Path(base_dir) / dotenv_path
    if not dotenv_path.exists():
        logger.warning("env file %s not found", dotenv_path)
        return {}
    values = dotenv_values(str(dotenv_path))
    return {k: v for k, v in values.items() if v is not None}


def merge_env(environment: Environment, values: dict[str, str]) -> None:
    """Set every entry of ``values`` on ``environment`` (update-or-add)."""
    for key, value in values.items():
        environment.set_variable(key, value)


# ── Seed data ────────────────────────────────────────────────────────────


def seed_templates() -> list[CommandTemplate]:
    """Example templates written on first run."""
    get_example = CurlCommand(url="https://httpbin.org/get", name="GET Example")
    get_example.add_option("-i")

    post_json = CurlCommand(url="https://httpbin.org/post", name="POST JSON")
    post_json.set_method(HttpMethod.POST)
    post_json.add_header("Content-Type", "application/json")
    post_json.set_body(RequestBody.raw('{"key": "value"}'))
    post_json.add_option("-i")

    return [
        CommandTemplate.from_command(
            "GET Example",
            get_example,
            description="Simple GET request",
            category="Examples",
        ),
        CommandTemplate.from_command(
            "POST JSON",
            post_json,
            description="POST request with a JSON body",
            category="Examples",
        ),
    ]


def seed_environments() -> dict[str, Environment]:
    return {DEFAULT_ENVIRONMENT: Environment(DEFAULT_ENVIRONMENT)}


# ── Storage ──────────────────────────────────────────────────────────────


def _read_yaml_list(path: Path) -> list | None:
    """Read a YAML file that must hold a list. None when missing or unreadable."""
    if not path.exists():
        return None
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except Exception as e:
        logger.warning("could not read %s: %s", path, e)
        return None
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning("could not read %s: expected a list", path)
        return None
    return data


def _write_yaml(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)


def load_templates(storage_dir: Path) -> list[CommandTemplate]:
    """Load saved templates; seed data when the file is missing or unreadable."""
    data = _read_yaml_list(storage_dir / TEMPLATES_FILE)
    if data is None:
        return seed_templates()
    templates = []
    for entry in data:
        if isinstance(entry, dict):
            templates.append(CommandTemplate.from_dict(entry))
    return templates


def save_templates(storage_dir: Path, templates: list[CommandTemplate]) -> Path:
    path = storage_dir / TEMPLATES_FILE
    _write_yaml(path, [t.to_dict() for t in templates])
    return path


def load_environments(storage_dir: Path) -> dict[str, Environment]:
    """Load environments keyed by name; always includes "Default"."""
    data = _read_yaml_list(storage_dir / ENVIRONMENTS_FILE)
    if data is None:
        return seed_environments()
    environments: dict[str, Environment] = {}
    for entry in data:
        if isinstance(entry, dict):
            env = Environment.from_dict(entry)
            environments[env.name] = env
    if DEFAULT_ENVIRONMENT not in environments:
        environments[DEFAULT_ENVIRONMENT] = Environment(DEFAULT_ENVIRONMENT)
    return environments


def save_environments(storage_dir: Path, environments: dict[str, Environment]) -> Path:
    path = storage_dir / ENVIRONMENTS_FILE
    _write_yaml(path, [environments[name].to_dict() for name in sorted(environments)])
    return path


def load_history(storage_dir: Path) -> list[CurlCommand]:
    """Executed commands, oldest first."""
    path = storage_dir / HISTORY_FILE
    try:
        if path.exists():
            data = json.loads(path.read_text())
            return [CurlCommand.from_dict(c) for c in data if isinstance(c, dict)]
    except Exception as e:
        logger.warning("could not read %s: %s", path, e)
    return []


def save_history(
    storage_dir: Path,
    history: list[CurlCommand],
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> Path:
    path = storage_dir / HISTORY_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    kept = history[-limit:] if limit > 0 else []
    path.write_text(json.dumps([c.to_dict() for c in kept], indent=2))
    return path


def find_template(templates: list[CommandTemplate], name: str) -> CommandTemplate | None:
    """Exact name match first, then case-insensitive."""
    for t in templates:
        if t.name == name:
            return t
    lowered = name.lower()
    for t in templates:
        if t.name.lower() == lowered:
            return t
    return None


# ── Curl import ──────────────────────────────────────────────────────────

_DATA_FLAGS = ("-d", "--data", "--data-raw", "--data-ascii")
_IGNORED_FLAGS = ("-G", "--get", "--url")


def import_curl(curl_command: str) -> CurlCommand:
    """Parse a curl command line into a CurlCommand.

    Handles -X, -H, -d/--data/--data-raw, --data-binary (@file or inline),
    -F, --json, quoted strings and escaped newlines. Flags known to the
    option catalog become attached options; other flags are skipped.
    A query string on the URL is split into query params.

    Raises ValueError when the text cannot be tokenized.
    """
    cmd = curl_command.replace("\\\r\n", " ").replace("\\\n", " ").strip()
    try:
        tokens = shlex.split(cmd)
    except ValueError as e:
        raise ValueError(f"Parse error: {e}") from None

    if tokens and tokens[0] == "curl":
        tokens = tokens[1:]

    command = CurlCommand(url="", name="Imported Command")
    explicit_method = False
    form_items: list[FormDataItem] = []
    cat = catalog()

    i = 0
    while i < len(tokens):
        tok = tokens[i]
        value = tokens[i + 1] if i + 1 < len(tokens) else None

        # --flag=value
        if tok.startswith("--") and "=" in tok:
            tok, value = tok.split("=", 1)
            tokens[i : i + 1] = [tok, value]

        if tok in ("-X", "--request") and value is not None:
            command.method = HttpMethod.from_label(value) or HttpMethod.GET
            explicit_method = True
            i += 2
        elif tok in ("-H", "--header") and value is not None:
            key, sep, val = value.partition(":")
            if sep:
                command.headers.append(Header(key=key.strip(), value=val.strip()))
            i += 2
        elif tok in _DATA_FLAGS and value is not None:
            command.body = RequestBody.raw(value)
            i += 2
        elif tok == "--data-binary" and value is not None:
            if value.startswith("@"):
                command.body = RequestBody.binary(value[1:])
            else:
                command.body = RequestBody.raw(value)
            i += 2
        elif tok in ("-F", "--form") and value is not None:
            key, _, val = value.partition("=")
            form_items.append(FormDataItem(key=key.strip(), value=val))
            i += 2
        elif tok == "--json" and value is not None:
            command.body = RequestBody.raw(value)
            _set_default_header(command, "Content-Type", "application/json")
            _set_default_header(command, "Accept", "application/json")
            i += 2
        elif tok in _IGNORED_FLAGS:
            if tok == "--url" and value is not None:
                _set_url(command, value)
                i += 2
            else:
                i += 1
        elif tok.startswith("-") and len(tok) > 1:
            definition = cat.lookup_any(tok)
            if definition is None:
                logger.debug("skipping unknown curl flag %s", tok)
                # Consume a value unless it looks like the URL or another flag
                if value is not None and not value.startswith("-") and "://" not in value:
                    i += 2
                else:
                    i += 1
            elif definition.takes_value and value is not None:
                command.options.append(cat.create_option(definition.flag))
                command.options[-1].value = value
                i += 2
            else:
                command.options.append(cat.create_option(definition.flag))
                i += 1
        else:
            # Positional argument = URL
            if not command.url:
                _set_url(command, tok)
            i += 1

    if form_items:
        command.body = RequestBody.form_data(form_items)
    body_set = command.body is not None and command.body.kind != BodyKind.NONE
    if body_set and not explicit_method and command.method == HttpMethod.GET:
        command.method = HttpMethod.POST
    if not command.url:
        command.url = "https://"
    command.touch()
    return command


def _set_default_header(command: CurlCommand, key: str, value: str) -> None:
    if not any(h.key.lower() == key.lower() for h in command.headers):
        command.headers.append(Header(key=key, value=value))


def _set_url(command: CurlCommand, url: str) -> None:
    parts = urlsplit(url)
    if not parts.query:
        command.url = url
        return
    command.url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", parts.fragment))
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        command.add_query_param(key, value)


# ── Scaffolding ──────────────────────────────────────────────────────────


def generate_config(storage_dir: str | None = None) -> str:
    """Return .lazycurl.yaml content string."""
    storage_line = f"  storage_dir: {storage_dir}" if storage_dir else "  # storage_dir: .lazycurl"
    return f"""\
# lazycurl configuration
# See: lazycurl --help

defaults:
  environment: {DEFAULT_ENVIRONMENT}
  # env_file: .env
  timeout: {DEFAULT_TIMEOUT}
{storage_line}
  history_limit: {DEFAULT_HISTORY_LIMIT}
"""
