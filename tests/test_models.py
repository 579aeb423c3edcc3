"""Tests for the command model, environments and templates."""

import datetime

from lazycurl.models import (
    DROPDOWN_METHODS,
    BodyKind,
    CommandTemplate,
    CurlCommand,
    Environment,
    FormDataItem,
    HttpMethod,
    RequestBody,
)

# ── HttpMethod ───────────────────────────────────────────────────────────


class TestHttpMethod:
    def test_parse_is_case_insensitive(self):
        assert HttpMethod.parse("post") == HttpMethod.POST
        assert HttpMethod.parse(" Patch ") == HttpMethod.PATCH

    def test_parse_defaults_to_get(self):
        assert HttpMethod.parse("FETCH") == HttpMethod.GET
        assert HttpMethod.parse("") == HttpMethod.GET
        assert HttpMethod.parse(None) == HttpMethod.GET

    def test_parse_only_knows_dropdown_methods(self):
        assert HttpMethod.parse("TRACE") == HttpMethod.GET

    def test_from_label_knows_all_nine(self):
        assert HttpMethod.from_label("trace") == HttpMethod.TRACE
        assert HttpMethod.from_label("CONNECT") == HttpMethod.CONNECT
        assert HttpMethod.from_label("bogus") is None

    def test_dropdown_order(self):
        assert [m.value for m in DROPDOWN_METHODS] == [
            "GET",
            "POST",
            "PUT",
            "DELETE",
            "PATCH",
            "HEAD",
            "OPTIONS",
        ]


# ── CurlCommand mutation API ─────────────────────────────────────────────


class TestCommandMutation:
    def test_defaults(self):
        cmd = CurlCommand()
        assert cmd.url == "https://"
        assert cmd.name == "New Command"
        assert cmd.method == HttpMethod.GET
        assert cmd.body is None
        assert cmd.headers == [] and cmd.query_params == [] and cmd.options == []

    def test_add_header_appends_and_touches(self):
        cmd = CurlCommand()
        before = cmd.updated_at
        h = cmd.add_header("Accept", "text/plain")
        assert cmd.headers == [h]
        assert cmd.updated_at >= before

    def test_entries_get_unique_ids(self):
        cmd = CurlCommand()
        a = cmd.add_query_param("a", "1")
        b = cmd.add_query_param("b", "2")
        o = cmd.add_option("-v")
        assert len({a.id, b.id, o.id}) == 3

    def test_remove_keeps_relative_order(self):
        cmd = CurlCommand()
        for k in "abcd":
            cmd.add_header(k, k)
        removed = cmd.remove_header(1)
        assert removed.key == "b"
        assert [h.key for h in cmd.headers] == ["a", "c", "d"]

    def test_remove_stale_index_is_noop(self):
        cmd = CurlCommand()
        cmd.add_option("-v")
        assert cmd.remove_option(5) is None
        assert cmd.remove_query_param(0) is None
        assert cmd.remove_header(-1) is None
        assert len(cmd.options) == 1

    def test_toggle_twice_restores_state_and_order(self):
        cmd = CurlCommand()
        cmd.add_header("A", "1")
        cmd.add_header("B", "2")
        ids = [h.id for h in cmd.headers]
        assert cmd.toggle_header(0) is True
        assert cmd.headers[0].enabled is False
        cmd.toggle_header(0)
        assert cmd.headers[0].enabled is True
        assert [h.id for h in cmd.headers] == ids

    def test_toggle_stale_index(self):
        assert CurlCommand().toggle_option(0) is False

    def test_set_method_and_body(self):
        cmd = CurlCommand()
        cmd.set_method(HttpMethod.PUT)
        cmd.set_body(RequestBody.raw("x"))
        assert cmd.method == HttpMethod.PUT
        assert cmd.body.kind == BodyKind.RAW

    def test_enabled_flags(self):
        cmd = CurlCommand()
        cmd.add_option("-v")
        cmd.add_option("-s")
        cmd.toggle_option(0)
        assert cmd.enabled_flags() == ["-s"]

    def test_clone_is_independent(self):
        cmd = CurlCommand()
        cmd.add_header("A", "1")
        copy = cmd.clone()
        copy.headers[0].value = "changed"
        copy.add_header("B", "2")
        assert cmd.headers[0].value == "1"
        assert len(cmd.headers) == 1


# ── Serialization ────────────────────────────────────────────────────────


class TestCommandDict:
    def test_round_trip(self):
        cmd = CurlCommand(url="https://x.io", name="X", description="d")
        cmd.set_method(HttpMethod.DELETE)
        cmd.add_header("A", "1")
        cmd.add_query_param("q", "v")
        cmd.add_option("-o", "out.txt")
        cmd.toggle_header(0)
        restored = CurlCommand.from_dict(cmd.to_dict())
        assert restored == cmd

    def test_form_body_round_trip(self):
        body = RequestBody.form_data([FormDataItem(key="f", value="v")])
        restored = RequestBody.from_dict(body.to_dict())
        assert restored.kind == BodyKind.FORM_DATA
        assert restored.items[0].key == "f"

    def test_binary_body_round_trip(self):
        restored = RequestBody.from_dict(RequestBody.binary("/tmp/a.bin").to_dict())
        assert restored.path == "/tmp/a.bin"

    def test_missing_fields_get_defaults(self):
        cmd = CurlCommand.from_dict({"url": "https://x.io"})
        assert cmd.method == HttpMethod.GET
        assert cmd.name == "New Command"
        assert isinstance(cmd.created_at, datetime.datetime)
        assert cmd.id

    def test_unknown_body_kind_is_dropped(self):
        assert RequestBody.from_dict({"kind": "weird"}) is None


# ── BodyKind ─────────────────────────────────────────────────────────────


class TestBodyKind:
    def test_cycle(self):
        assert BodyKind.NONE.next() == BodyKind.RAW
        assert BodyKind.RAW.next() == BodyKind.FORM_DATA
        assert BodyKind.FORM_DATA.next() == BodyKind.BINARY
        assert BodyKind.BINARY.next() == BodyKind.NONE


# ── Environment ──────────────────────────────────────────────────────────


class TestEnvironment:
    def test_get_variable_first_match(self):
        env = Environment("E")
        env.add_variable("k", "first")
        env.add_variable("k", "second")
        assert env.get_variable("k") == "first"

    def test_get_missing(self):
        assert Environment("E").get_variable("nope") is None

    def test_update_variable(self):
        env = Environment("E")
        env.add_variable("k", "v")
        assert env.update_variable("k", "new") is True
        assert env.update_variable("missing", "x") is False
        assert env.get_variable("k") == "new"

    def test_set_variable_adds_or_updates(self):
        env = Environment("E")
        env.set_variable("k", "1")
        env.set_variable("k", "2")
        assert len(env.variables) == 1
        assert env.get_variable("k") == "2"

    def test_remove_variable(self):
        env = Environment("E")
        env.add_variable("k", "v")
        assert env.remove_variable("k") is True
        assert env.remove_variable("k") is False

    def test_secret_values(self):
        env = Environment("E")
        env.add_variable("a", "public")
        env.add_variable("b", "hidden", is_secret=True)
        assert env.secret_values() == ["hidden"]

    def test_round_trip(self):
        env = Environment("E")
        env.add_variable("b", "hidden", is_secret=True)
        assert Environment.from_dict(env.to_dict()) == env


# ── CommandTemplate ──────────────────────────────────────────────────────


class TestTemplate:
    def test_from_command_snapshots(self):
        cmd = CurlCommand(url="https://x.io")
        tpl = CommandTemplate.from_command("Saved", cmd, category="Mine")
        cmd.url = "https://changed.io"
        assert tpl.command.url == "https://x.io"
        assert tpl.command.name == "Saved"
        assert tpl.category == "Mine"

    def test_round_trip(self):
        tpl = CommandTemplate.from_command("T", CurlCommand(url="https://x.io"))
        assert CommandTemplate.from_dict(tpl.to_dict()) == tpl
