"""lazycurl CLI - build, check and run curl commands from saved templates."""

import logging
import sys
from pathlib import Path

import click

TOOL_HELP = """\
lazycurl — Build, edit and run curl commands.

Without an action flag, opens the full-screen editor. Templates and
environments are stored under ~/.lazycurl/ (or storage_dir from config).

\b
EDITOR
──────
  lazycurl                        Open the editor
  lazycurl -t "POST JSON"         Open the editor with a template loaded

\b
NON-INTERACTIVE
───────────────
  lazycurl -t NAME --build        Print the curl command for a template
  lazycurl -t NAME --validate     Check a template for problems
  lazycurl -t NAME --run          Execute a template with curl
  lazycurl -t NAME -v id=42 --build
                                  Override environment variables for one call

\b
IMPORT
──────
  lazycurl --import-curl "curl -X POST https://api.example.com -d x=1"
  lazycurl --import-curl "curl ..." --save "My Request"

\b
ENVIRONMENTS
────────────
  lazycurl --list-envs
  lazycurl -e staging --set-var base_url=https://staging.example.com
  lazycurl -e staging --set-var token=abc123 --secret
  Placeholders in commands: {{name}} or {{name:default}}

\b
LISTING
───────
  lazycurl --list-templates
  lazycurl --history

\b
SETUP
─────
  lazycurl --init                 Scaffold .lazycurl.yaml in CWD
"""


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.option(
    "-t",
    "--template",
    "template_name",
    default=None,
    help="Template name. Use --list-templates to see available.",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .lazycurl.yaml in CWD, then ~/.lazycurl/config.yaml.",
)
@click.option(
    "--storage-dir",
    "storage_dir_override",
    default=None,
    help="Override the storage directory. Default: storage_dir from config or ~/.lazycurl/.",
)
@click.option(
    "-e",
    "--env",
    "env_name",
    default=None,
    help="Environment to use. Default: 'environment' from config, else Default.",
)
@click.option(
    "--env-file",
    default=None,
    help="Dotenv file merged into the environment for this run.",
)
@click.option(
    "-v",
    "--var",
    multiple=True,
    help="Variable override as key=value for this run only. Repeatable.",
)
@click.option("--build", "do_build", is_flag=True, default=False, help="Print the curl command.")
@click.option(
    "--validate",
    "do_validate",
    is_flag=True,
    default=False,
    help="Validate the command. Exit 1 on errors.",
)
@click.option(
    "--run",
    "do_run",
    is_flag=True,
    default=False,
    help="Execute the command with curl. Exit 1 on failure.",
)
@click.option(
    "--timeout",
    type=int,
    default=None,
    help="Execution timeout in seconds. Default: 30.",
)
@click.option(
    "--import-curl",
    "import_curl_text",
    default=None,
    help="Parse a curl command string.",
)
@click.option(
    "--save",
    "save_name",
    default=None,
    metavar="NAME",
    help="Save the imported command as a template.",
)
@click.option(
    "--set-var",
    "set_vars",
    multiple=True,
    metavar="KEY=VALUE",
    help="Store a variable in the selected environment. Repeatable.",
)
@click.option(
    "--secret",
    is_flag=True,
    default=False,
    help="Mark variables stored with --set-var as secret.",
)
@click.option(
    "--list-templates",
    "show_list_templates",
    is_flag=True,
    default=False,
    help="List saved templates.",
)
@click.option(
    "--list-envs",
    "show_list_envs",
    is_flag=True,
    default=False,
    help="List environments and their variables.",
)
@click.option("--history", is_flag=True, default=False, help="Show executed commands.")
@click.option(
    "--init",
    "do_init",
    is_flag=True,
    default=False,
    help="Scaffold .lazycurl.yaml in CWD.",
)
@click.option("--debug", is_flag=True, default=False, help="Log debug output to stderr.")
def main(
    template_name,
    config_file,
    storage_dir_override,
    env_name,
    env_file,
    var,
    do_build,
    do_validate,
    do_run,
    timeout,
    import_curl_text,
    save_name,
    set_vars,
    secret,
    show_list_templates,
    show_list_envs,
    history,
    do_init,
    debug,
):
    """Build, edit and run curl commands."""
    from lazycurl.core import (
        DEFAULT_ENVIRONMENT,
        DEFAULT_HISTORY_LIMIT,
        find_template,
        import_curl,
        load_config,
        load_env_file,
        load_environments,
        load_history,
        load_templates,
        merge_env,
        resolve_config_path,
        resolve_storage_dir,
    )
    from lazycurl.models import Environment

    _configure_logging(debug)

    if do_init:
        _cmd_init()
        return

    # --- Load config ---
    config_path = resolve_config_path(config_file)
    if config_file and config_path is None:
        click.echo(f"ERROR: Config file not found: {config_file}", err=True)
        sys.exit(1)
    config = load_config(config_path)
    defaults = config.get("defaults", {})
    storage_dir = resolve_storage_dir(config, storage_dir_override)
    history_limit = _int_setting(defaults.get("history_limit"), DEFAULT_HISTORY_LIMIT)

    templates = load_templates(storage_dir)
    environments = load_environments(storage_dir)
    current_env = env_name or defaults.get("environment") or DEFAULT_ENVIRONMENT
    if current_env not in environments:
        if set_vars:
            environments[current_env] = Environment(current_env)
        else:
            click.echo(
                f"ERROR: Environment '{current_env}' not found. "
                f"Available: {', '.join(sorted(environments))}",
                err=True,
            )
            sys.exit(1)

    # --- Stored-state commands ---

    if set_vars:
        _cmd_set_vars(storage_dir, environments, current_env, set_vars, secret)
        return

    if show_list_templates:
        _cmd_list_templates(templates, storage_dir)
        return

    if show_list_envs:
        _cmd_list_envs(environments, current_env)
        return

    if history:
        _cmd_history(load_history(storage_dir))
        return

    # --- Session environment: dotenv file, then -v overrides ---
    config_dir = config.get("_config_dir") or Path.cwd()
    session_env = environments[current_env]
    dotenv_file = env_file or defaults.get("env_file")
    overrides = _parse_vars(var)
    if dotenv_file or overrides:
        session_env = Environment.from_dict(session_env.to_dict())
        if dotenv_file:
            base = Path.cwd() if env_file else config_dir
            merge_env(session_env, load_env_file(dotenv_file, base))
        merge_env(session_env, overrides)

    # --- Pick the command to work on ---
    command = None
    if import_curl_text:
        try:
            command = import_curl(import_curl_text)
        except ValueError as e:
            click.echo(f"Error parsing curl: {e}", err=True)
            sys.exit(1)
        if save_name:
            _cmd_save_template(storage_dir, templates, save_name, command)
    elif template_name:
        template = find_template(templates, template_name)
        if template is None:
            click.echo(
                f"Template '{template_name}' not found.\n"
                f"Available: {', '.join(t.name for t in templates) or '(none)'}\n"
                f"Use --list-templates for details.",
                err=True,
            )
            sys.exit(1)
        command = template.command.clone()

    run_timeout = _int_setting(timeout or defaults.get("timeout"), 30)

    if command is not None and (do_build or do_validate or do_run):
        failed = False
        if do_validate:
            failed = not _cmd_validate(command)
        if do_build:
            _cmd_build(command, session_env)
        if do_run:
            failed = not _cmd_run(
                command, session_env, run_timeout, storage_dir, history_limit
            ) or failed
        if failed:
            sys.exit(1)
        return

    if (do_build or do_validate or do_run) and command is None:
        click.echo("ERROR: --build/--validate/--run need -t TEMPLATE or --import-curl.", err=True)
        sys.exit(1)

    if import_curl_text:
        # Import without an action: show what was parsed.
        if not save_name:
            _cmd_build(command, session_env)
        return

    _cmd_tui(
        command,
        templates,
        environments,
        current_env,
        storage_dir,
        history_limit,
        run_timeout,
    )


# ── Subcommand implementations ──────────────────────────────────────────


def _configure_logging(debug):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )
    logging.getLogger("lazycurl").setLevel(logging.DEBUG if debug else logging.WARNING)


def _cmd_set_vars(storage_dir, environments, env_name, set_vars, secret):
    from lazycurl.core import save_environments

    env = environments[env_name]
    pairs = []
    for spec in set_vars:
        if "=" not in spec:
            click.echo(f"ERROR: Invalid variable '{spec}'. Use KEY=VALUE.", err=True)
            sys.exit(1)
        key, value = spec.split("=", 1)
        pairs.append((key.strip(), value.strip()))

    for key, value in pairs:
        env.set_variable(key, value, is_secret=secret)
        click.echo(f"  {key} set in {env_name}" + (" (secret)" if secret else ""))
    save_environments(storage_dir, environments)


def _cmd_list_templates(templates, storage_dir):
    if not templates:
        click.echo(f"No templates found in: {storage_dir}")
        return

    click.echo(f"Templates from: {storage_dir}")
    click.echo(f"{len(templates)} available:\n")
    for tpl in templates:
        label = f"  {tpl.name} — {tpl.description}" if tpl.description else f"  {tpl.name}"
        if tpl.category:
            label += f"  [{tpl.category}]"
        click.echo(label)
        cmd = tpl.command
        method = cmd.method.value if cmd.method else "GET"
        detail_parts = [f"{method} {cmd.url}"]
        enabled = cmd.enabled_flags()
        if enabled:
            detail_parts.append(f"options: {' '.join(enabled)}")
        if cmd.headers:
            detail_parts.append(f"headers: {len(cmd.headers)}")
        click.echo(f"    {' | '.join(detail_parts)}")


def _cmd_list_envs(environments, current_env):
    from lazycurl.builder import SECRET_MASK

    for name in sorted(environments):
        env = environments[name]
        marker = "*" if name == current_env else " "
        click.echo(f"{marker} {name} ({len(env.variables)} variables)")
        for v in env.variables:
            shown = SECRET_MASK if v.is_secret else v.value
            click.echo(f"    {v.key}={shown}")


def _cmd_history(hist):
    if not hist:
        click.echo("No command history.")
        return
    click.echo("Command history:\n")
    # Most recent first; index 0 is the latest run
    for i, cmd in enumerate(reversed(hist)):
        method = cmd.method.value if cmd.method else "GET"
        ts = cmd.updated_at.strftime("%Y-%m-%d %H:%M:%S")
        click.echo(f"  [{i}] {method:<7} {cmd.url}  ({ts})")


def _cmd_save_template(storage_dir, templates, name, command):
    from lazycurl.core import save_templates
    from lazycurl.models import CommandTemplate

    templates.append(CommandTemplate.from_command(name, command))
    path = save_templates(storage_dir, templates)
    click.echo(f"Saved template '{name}' to {path}")


def _cmd_build(command, environment):
    from lazycurl.builder import build

    click.echo(build(command, environment))


def _cmd_validate(command) -> bool:
    from lazycurl.validation import validate

    result = validate(command)
    if result.is_valid():
        click.echo("Valid")
        return True
    for message in result.errors:
        click.echo(f"ERROR: {message}", err=True)
    for message in result.warnings:
        click.echo(f"WARNING: {message}", err=True)
    return not result.has_errors()


def _cmd_run(command, environment, timeout, storage_dir, history_limit) -> bool:
    from lazycurl.app import NO_EXECUTOR_MESSAGE
    from lazycurl.builder import build, build_masked, mask_secrets
    from lazycurl.core import load_history, save_history
    from lazycurl.executor import CommandExecutor, ExecutorUnavailable, format_result

    try:
        executor = CommandExecutor.create(timeout=timeout)
    except ExecutorUnavailable:
        click.echo(NO_EXECUTOR_MESSAGE, err=True)
        return False

    result = executor.execute(build(command, environment))
    report = format_result(result, command=build_masked(command, environment))
    click.echo(mask_secrets(report, environment))
    if result.succeeded:
        hist = load_history(storage_dir)
        hist.append(command.clone())
        save_history(storage_dir, hist, history_limit)
    return result.succeeded


def _cmd_tui(command, templates, environments, current_env, storage_dir, history_limit, timeout):
    from lazycurl import tui
    from lazycurl.app import App
    from lazycurl.core import load_history
    from lazycurl.executor import CommandExecutor, ExecutorUnavailable

    try:
        executor = CommandExecutor.create(timeout=timeout)
    except ExecutorUnavailable:
        logging.getLogger(__name__).warning("curl not found; execution disabled")
        executor = None

    app = App(
        command=command,
        environments=environments,
        templates=templates,
        history=load_history(storage_dir),
        executor=executor,
        current_environment=current_env,
        history_limit=history_limit,
    )
    tui.run(app, on_exit=lambda a: _persist(a, storage_dir))


def _persist(app, storage_dir):
    from lazycurl.core import save_environments, save_history, save_templates

    save_templates(storage_dir, app.templates)
    save_environments(storage_dir, app.environments)
    save_history(storage_dir, app.history, app.history_limit)


def _cmd_init():
    """Scaffold .lazycurl.yaml in CWD."""
    from lazycurl.core import generate_config

    config_file = Path(".lazycurl.yaml")

    if config_file.exists():
        click.echo(f"  {config_file} (skipped, already exists)")
    else:
        config_file.write_text(generate_config())
        click.echo(f"  {config_file} (created)")

    click.echo("\nProject initialized. Run 'lazycurl --help' to get started.")


def _parse_vars(var_specs):
    variables = {}
    for v_str in var_specs:
        if "=" in v_str:
            k, val = v_str.split("=", 1)
            variables[k.strip()] = val.strip()
    return variables


def _int_setting(value, default):
    """Coerce a config/CLI value to a positive int, or default."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default
