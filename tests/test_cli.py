"""CLI integration tests: init, listing, environments, import, build/validate/run, editor launch."""

import json
from unittest.mock import patch

import yaml

from lazycurl import core
from lazycurl.cli import main
from lazycurl.executor import ExecutorUnavailable
from lazycurl.models import CommandTemplate, CurlCommand, Environment, HttpMethod
from tests.conftest import FakeExecutor, make_execution_result


def _write_config(path, **defaults):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump({"defaults": defaults}))


def _save_template(storage_dir, name, command):
    templates = core.load_templates(storage_dir)
    templates.append(CommandTemplate.from_command(name, command))
    core.save_templates(storage_dir, templates)


# ── --init ───────────────────────────────────────────────────────────────


class TestInit:
    def test_creates_config(self, runner, tmp_project):
        result = runner.invoke(main, ["--init"])
        assert result.exit_code == 0
        assert ".lazycurl.yaml (created)" in result.output
        data = yaml.safe_load((tmp_project / ".lazycurl.yaml").read_text())
        assert data["defaults"]["environment"] == "Default"

    def test_skips_existing(self, runner, tmp_project):
        (tmp_project / ".lazycurl.yaml").write_text("defaults: {}\n")
        result = runner.invoke(main, ["--init"])
        assert "skipped, already exists" in result.output
        assert (tmp_project / ".lazycurl.yaml").read_text() == "defaults: {}\n"


# ── Config errors ────────────────────────────────────────────────────────


class TestConfigErrors:
    def test_explicit_config_missing(self, runner, tmp_project):
        result = runner.invoke(main, ["-c", "missing.yaml", "--list-templates"])
        assert result.exit_code == 1
        assert "Config file not found: missing.yaml" in result.output

    def test_unknown_environment(self, runner, tmp_project):
        result = runner.invoke(main, ["-e", "nope", "--list-envs"])
        assert result.exit_code == 1
        assert "Environment 'nope' not found" in result.output
        assert "Available: Default" in result.output

    def test_config_storage_dir_used(self, runner, tmp_project):
        _write_config(tmp_project / ".lazycurl.yaml", storage_dir="store")
        result = runner.invoke(main, ["--list-templates"])
        assert f"Templates from: {tmp_project.resolve() / 'store'}" in result.output


# ── --list-templates ─────────────────────────────────────────────────────


class TestListTemplates:
    def test_seeded(self, runner, tmp_project, global_lazycurl_dir):
        result = runner.invoke(main, ["--list-templates"])
        assert result.exit_code == 0
        assert f"Templates from: {global_lazycurl_dir}" in result.output
        assert "2 available:" in result.output
        assert "GET Example — Simple GET request  [Examples]" in result.output
        assert "POST https://httpbin.org/post | options: -i | headers: 1" in result.output

    def test_empty(self, runner, tmp_project):
        storage = tmp_project / "store"
        core.save_templates(storage, [])
        result = runner.invoke(main, ["--storage-dir", "store", "--list-templates"])
        assert "No templates found in:" in result.output


# ── Environments ─────────────────────────────────────────────────────────


class TestEnvironments:
    def test_set_and_list(self, runner, tmp_project, global_lazycurl_dir):
        result = runner.invoke(main, ["--set-var", "host=example.org", "--set-var", "id=7"])
        assert result.exit_code == 0
        assert "  host set in Default" in result.output
        result = runner.invoke(main, ["--list-envs"])
        assert "* Default (2 variables)" in result.output
        assert "    host=example.org" in result.output

    def test_secret_masked(self, runner, tmp_project):
        runner.invoke(main, ["--set-var", "token=abc123", "--secret"])
        result = runner.invoke(main, ["--list-envs"])
        assert "abc123" not in result.output
        assert "token=••••" in result.output

    def test_set_var_creates_environment(self, runner, tmp_project, global_lazycurl_dir):
        result = runner.invoke(main, ["-e", "staging", "--set-var", "a=1"])
        assert result.exit_code == 0
        envs = core.load_environments(global_lazycurl_dir)
        assert envs["staging"].get_variable("a") == "1"

    def test_set_var_without_equals(self, runner, tmp_project):
        result = runner.invoke(main, ["--set-var", "oops"])
        assert result.exit_code == 1
        assert "Use KEY=VALUE" in result.output


# ── --import-curl ────────────────────────────────────────────────────────


class TestImport:
    def test_prints_built_command(self, runner, tmp_project):
        result = runner.invoke(main, ["--import-curl", "curl -X POST -d x=1 https://x.io"])
        assert result.exit_code == 0
        assert result.output.strip() == "curl -X POST -d x=1 https://x.io"

    def test_save(self, runner, tmp_project, global_lazycurl_dir):
        result = runner.invoke(
            main,
            ["--import-curl", "curl -H 'A: b' https://x.io", "--save", "Imported"],
        )
        assert result.exit_code == 0
        assert "Saved template 'Imported'" in result.output
        names = [t.name for t in core.load_templates(global_lazycurl_dir)]
        assert names == ["GET Example", "POST JSON", "Imported"]

    def test_parse_error(self, runner, tmp_project):
        result = runner.invoke(main, ["--import-curl", "curl -H 'oops"])
        assert result.exit_code == 1
        assert "Error parsing curl:" in result.output

    def test_import_and_validate(self, runner, tmp_project):
        result = runner.invoke(main, ["--import-curl", "curl -s -v https://x.io", "--validate"])
        assert result.exit_code == 1
        assert "ERROR:" in result.output


# ── Template actions ─────────────────────────────────────────────────────


class TestTemplateActions:
    def test_build_with_variables(self, runner, tmp_project, global_lazycurl_dir):
        cmd = CurlCommand(url="https://{{host}}/users/{{id:1}}")
        _save_template(global_lazycurl_dir, "User", cmd)
        result = runner.invoke(main, ["-t", "user", "--build", "-v", "host=api.io", "-v", "id=42"])
        assert result.exit_code == 0
        assert result.output.strip() == "curl https://api.io/users/42"

    def test_build_prints_runnable_command(self, runner, tmp_project, global_lazycurl_dir):
        env = Environment("Default")
        env.add_variable("token", "hunter2", is_secret=True)
        core.save_environments(global_lazycurl_dir, {"Default": env})
        cmd = CurlCommand(url="https://x.io")
        cmd.add_header("Authorization", "Bearer {{token}}")
        _save_template(global_lazycurl_dir, "Auth", cmd)
        result = runner.invoke(main, ["-t", "Auth", "--build"])
        assert result.output.strip() == 'curl -H "Authorization: Bearer hunter2" https://x.io'

    @patch("lazycurl.executor.CommandExecutor.create")
    def test_run_report_masks_secrets(self, mock_create, runner, tmp_project, global_lazycurl_dir):
        env = Environment("Default")
        env.add_variable("token", "hunter2", is_secret=True)
        core.save_environments(global_lazycurl_dir, {"Default": env})
        cmd = CurlCommand(url="https://x.io")
        cmd.add_header("Authorization", "Bearer {{token}}")
        _save_template(global_lazycurl_dir, "Auth", cmd)
        executor = FakeExecutor()
        mock_create.return_value = executor
        result = runner.invoke(main, ["-t", "Auth", "--run"])
        assert "hunter2" in executor.commands[0]
        assert "hunter2" not in result.output
        assert "Bearer ••••" in result.output

    def test_env_file_overrides(self, runner, tmp_project, global_lazycurl_dir):
        (tmp_project / ".env").write_text("host=from-dotenv.io\n")
        _save_template(global_lazycurl_dir, "H", CurlCommand(url="https://{{host}}"))
        result = runner.invoke(main, ["-t", "H", "--build", "--env-file", ".env"])
        assert result.output.strip() == "curl https://from-dotenv.io"
        # Dotenv values are never persisted
        envs = core.load_environments(global_lazycurl_dir)
        assert envs["Default"].get_variable("host") is None

    def test_validate_valid(self, runner, tmp_project):
        result = runner.invoke(main, ["-t", "GET Example", "--validate"])
        assert result.exit_code == 0
        assert "Valid" in result.output

    def test_validate_warning_only(self, runner, tmp_project, global_lazycurl_dir):
        cmd = CurlCommand(url="https://x.io")
        cmd.add_option("-k")
        _save_template(global_lazycurl_dir, "Insecure", cmd)
        result = runner.invoke(main, ["-t", "Insecure", "--validate"])
        assert result.exit_code == 0
        assert "WARNING:" in result.output

    def test_unknown_template(self, runner, tmp_project):
        result = runner.invoke(main, ["-t", "nope", "--build"])
        assert result.exit_code == 1
        assert "Template 'nope' not found." in result.output
        assert "GET Example" in result.output

    def test_action_without_command(self, runner, tmp_project):
        result = runner.invoke(main, ["--build"])
        assert result.exit_code == 1
        assert "need -t TEMPLATE or --import-curl" in result.output


# ── --run ────────────────────────────────────────────────────────────────


class TestRun:
    @patch("lazycurl.executor.CommandExecutor.create")
    def test_success_records_history(self, mock_create, runner, tmp_project, global_lazycurl_dir):
        executor = FakeExecutor()
        mock_create.return_value = executor
        result = runner.invoke(main, ["-t", "GET Example", "--run"])
        assert result.exit_code == 0
        assert executor.commands == ["curl -i https://httpbin.org/get"]
        assert "Exit Code: 0" in result.output
        data = json.loads((global_lazycurl_dir / core.HISTORY_FILE).read_text())
        assert data[0]["url"] == "https://httpbin.org/get"

    @patch("lazycurl.executor.CommandExecutor.create")
    def test_failure_exits_nonzero(self, mock_create, runner, tmp_project, global_lazycurl_dir):
        mock_create.return_value = FakeExecutor(
            make_execution_result(exit_code=7, error="Failed to connect to host"),
        )
        result = runner.invoke(main, ["-t", "GET Example", "--run"])
        assert result.exit_code == 1
        assert "ERROR: Failed to connect to host" in result.output
        assert not (global_lazycurl_dir / core.HISTORY_FILE).exists()

    @patch("lazycurl.executor.CommandExecutor.create")
    def test_timeout_passed_through(self, mock_create, runner, tmp_project):
        mock_create.return_value = FakeExecutor()
        runner.invoke(main, ["-t", "GET Example", "--run", "--timeout", "7"])
        mock_create.assert_called_once_with(timeout=7)

    @patch("lazycurl.executor.CommandExecutor.create")
    def test_config_timeout(self, mock_create, runner, tmp_project):
        _write_config(tmp_project / ".lazycurl.yaml", timeout=12)
        mock_create.return_value = FakeExecutor()
        runner.invoke(main, ["-t", "GET Example", "--run"])
        mock_create.assert_called_once_with(timeout=12)

    @patch("lazycurl.executor.CommandExecutor.create")
    def test_curl_missing(self, mock_create, runner, tmp_project):
        mock_create.side_effect = ExecutorUnavailable("curl executable not found in PATH")
        result = runner.invoke(main, ["-t", "GET Example", "--run"])
        assert result.exit_code == 1
        assert "curl executable not found in PATH" in result.output


# ── --history ────────────────────────────────────────────────────────────


class TestHistory:
    def test_empty(self, runner, tmp_project):
        result = runner.invoke(main, ["--history"])
        assert "No command history." in result.output

    def test_newest_first(self, runner, tmp_project, global_lazycurl_dir):
        old = CurlCommand(url="https://old.io")
        new = CurlCommand(url="https://new.io")
        new.set_method(HttpMethod.DELETE)
        core.save_history(global_lazycurl_dir, [old, new])
        result = runner.invoke(main, ["--history"])
        lines = [line for line in result.output.splitlines() if line.strip().startswith("[")]
        assert lines[0].startswith("  [0] DELETE  https://new.io")
        assert lines[1].startswith("  [1] GET     https://old.io")


# ── Editor launch ────────────────────────────────────────────────────────


class TestEditorLaunch:
    @patch("lazycurl.tui.run")
    @patch("lazycurl.executor.CommandExecutor.create")
    def test_template_loaded_into_app(self, mock_create, mock_run, runner, tmp_project):
        mock_create.return_value = FakeExecutor()
        result = runner.invoke(main, ["-t", "POST JSON"])
        assert result.exit_code == 0
        app = mock_run.call_args[0][0]
        assert app.command.url == "https://httpbin.org/post"
        assert app.command.method == HttpMethod.POST
        assert [t.name for t in app.templates] == ["GET Example", "POST JSON"]

    @patch("lazycurl.tui.run")
    @patch("lazycurl.executor.CommandExecutor.create")
    def test_exit_persists_state(
        self, mock_create, mock_run, runner, tmp_project, global_lazycurl_dir
    ):
        mock_create.side_effect = ExecutorUnavailable("missing")
        runner.invoke(main, [])
        app = mock_run.call_args[0][0]
        assert app.executor is None
        app.save_template("Fresh")
        app.apply_variable_assignment("k=v")
        on_exit = mock_run.call_args.kwargs["on_exit"]
        on_exit(app)
        assert "Fresh" in [t.name for t in core.load_templates(global_lazycurl_dir)]
        assert core.load_environments(global_lazycurl_dir)["Default"].get_variable("k") == "v"
