"""lazycurl models - the command under construction, environments, templates."""

from __future__ import annotations

import copy
import datetime
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _parse_time(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.datetime.fromisoformat(value)
        except ValueError:
            pass
    return utcnow()


class HttpMethod(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str | None) -> HttpMethod:
        """Case-insensitive match against the dropdown methods, GET on no match."""
        label = (text or "").strip().upper()
        for method in DROPDOWN_METHODS:
            if method.value == label:
                return method
        return cls.GET

    @classmethod
    def from_label(cls, text: str | None) -> HttpMethod | None:
        """Exact lookup over all nine methods, used when loading stored data."""
        label = (text or "").strip().upper()
        try:
            return cls(label)
        except ValueError:
            return None


DROPDOWN_METHODS: tuple[HttpMethod, ...] = (
    HttpMethod.GET,
    HttpMethod.POST,
    HttpMethod.PUT,
    HttpMethod.DELETE,
    HttpMethod.PATCH,
    HttpMethod.HEAD,
    HttpMethod.OPTIONS,
)


# ── Key/value entries ───────────────────────────────────────────────────


@dataclass
class KeyValue:
    """A key/value row that can be switched off without being deleted."""

    key: str
    value: str
    enabled: bool = True
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {"id": self.id, "key": self.key, "value": self.value, "enabled": self.enabled}

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            key=str(data.get("key", "")),
            value=str(data.get("value", "")),
            enabled=bool(data.get("enabled", True)),
            id=str(data.get("id") or new_id()),
        )


class Header(KeyValue):
    pass


class QueryParam(KeyValue):
    pass


class FormDataItem(KeyValue):
    pass


@dataclass
class CurlOption:
    flag: str
    value: str | None = None
    enabled: bool = True
    id: str = field(default_factory=new_id)

    @classmethod
    def new(cls, flag: str, value: str | None = None) -> CurlOption:
        return cls(flag=flag, value=value)

    def to_dict(self) -> dict:
        return {"id": self.id, "flag": self.flag, "value": self.value, "enabled": self.enabled}

    @classmethod
    def from_dict(cls, data: dict) -> CurlOption:
        value = data.get("value")
        return cls(
            flag=str(data.get("flag", "")),
            value=None if value is None else str(value),
            enabled=bool(data.get("enabled", True)),
            id=str(data.get("id") or new_id()),
        )


# ── Request body ────────────────────────────────────────────────────────


class BodyKind(Enum):
    NONE = "none"
    RAW = "raw"
    FORM_DATA = "form_data"
    BINARY = "binary"

    def next(self) -> BodyKind:
        members = list(BodyKind)
        return members[(members.index(self) + 1) % len(members)]


@dataclass
class RequestBody:
    """Tagged body variant. Only the field matching ``kind`` is meaningful."""

    kind: BodyKind = BodyKind.NONE
    content: str = ""
    items: list[FormDataItem] = field(default_factory=list)
    path: str = ""

    @classmethod
    def none(cls) -> RequestBody:
        return cls(BodyKind.NONE)

    @classmethod
    def raw(cls, content: str) -> RequestBody:
        return cls(BodyKind.RAW, content=content)

    @classmethod
    def form_data(cls, items: list[FormDataItem] | None = None) -> RequestBody:
        return cls(BodyKind.FORM_DATA, items=list(items or []))

    @classmethod
    def binary(cls, path: str) -> RequestBody:
        return cls(BodyKind.BINARY, path=str(path))

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"kind": self.kind.value}
        if self.kind == BodyKind.RAW:
            data["content"] = self.content
        elif self.kind == BodyKind.FORM_DATA:
            data["items"] = [item.to_dict() for item in self.items]
        elif self.kind == BodyKind.BINARY:
            data["path"] = self.path
        return data

    @classmethod
    def from_dict(cls, data: dict | None) -> RequestBody | None:
        if not data:
            return None
        try:
            kind = BodyKind(data.get("kind", "none"))
        except ValueError:
            return None
        if kind == BodyKind.RAW:
            return cls.raw(str(data.get("content", "")))
        if kind == BodyKind.FORM_DATA:
            return cls.form_data([FormDataItem.from_dict(i) for i in data.get("items") or []])
        if kind == BodyKind.BINARY:
            return cls.binary(str(data.get("path", "")))
        return cls.none()


# ── Command ─────────────────────────────────────────────────────────────


@dataclass
class CurlCommand:
    """One request under construction.

    List entries carry synthetic ids so that their identity survives
    inserts and removals; disabled entries stay in place and are skipped
    by the builder.
    """

    url: str = "https://"
    name: str = "New Command"
    description: str | None = None
    method: HttpMethod | None = HttpMethod.GET
    headers: list[Header] = field(default_factory=list)
    query_params: list[QueryParam] = field(default_factory=list)
    body: RequestBody | None = None
    options: list[CurlOption] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime.datetime = field(default_factory=utcnow)
    updated_at: datetime.datetime = field(default_factory=utcnow)

    def touch(self) -> None:
        self.updated_at = utcnow()

    def clone(self) -> CurlCommand:
        return copy.deepcopy(self)

    # -- additions --

    def add_header(self, key: str, value: str) -> Header:
        header = Header(key=key, value=value)
        self.headers.append(header)
        self.touch()
        return header

    def add_query_param(self, key: str, value: str) -> QueryParam:
        param = QueryParam(key=key, value=value)
        self.query_params.append(param)
        self.touch()
        return param

    def add_option(self, flag: str, value: str | None = None) -> CurlOption:
        option = CurlOption.new(flag, value)
        self.options.append(option)
        self.touch()
        return option

    def set_method(self, method: HttpMethod | None) -> None:
        self.method = method
        self.touch()

    def set_body(self, body: RequestBody | None) -> None:
        self.body = body
        self.touch()

    # -- removals (stale index is a no-op) --

    def remove_header(self, index: int) -> Header | None:
        return self._remove(self.headers, index)

    def remove_query_param(self, index: int) -> QueryParam | None:
        return self._remove(self.query_params, index)

    def remove_option(self, index: int) -> CurlOption | None:
        return self._remove(self.options, index)

    def _remove(self, entries: list, index: int):
        if index < 0 or index >= len(entries):
            return None
        removed = entries.pop(index)
        self.touch()
        return removed

    # -- toggles --

    def toggle_header(self, index: int) -> bool:
        return self._toggle(self.headers, index)

    def toggle_query_param(self, index: int) -> bool:
        return self._toggle(self.query_params, index)

    def toggle_option(self, index: int) -> bool:
        return self._toggle(self.options, index)

    def _toggle(self, entries: list, index: int) -> bool:
        if index < 0 or index >= len(entries):
            return False
        entries[index].enabled = not entries[index].enabled
        self.touch()
        return True

    def has_option(self, flag: str) -> bool:
        return any(o.flag == flag for o in self.options)

    def enabled_flags(self) -> list[str]:
        return [o.flag for o in self.options if o.enabled]

    # -- persistence --

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "url": self.url,
            "method": self.method.value if self.method else None,
            "headers": [h.to_dict() for h in self.headers],
            "query_params": [p.to_dict() for p in self.query_params],
            "body": self.body.to_dict() if self.body else None,
            "options": [o.to_dict() for o in self.options],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> CurlCommand:
        method = data.get("method", "GET")
        return cls(
            url=str(data.get("url", "")),
            name=str(data.get("name") or "New Command"),
            description=data.get("description"),
            method=HttpMethod.from_label(method) if method else None,
            headers=[Header.from_dict(h) for h in data.get("headers") or []],
            query_params=[QueryParam.from_dict(p) for p in data.get("query_params") or []],
            body=RequestBody.from_dict(data.get("body")),
            options=[CurlOption.from_dict(o) for o in data.get("options") or []],
            id=str(data.get("id") or new_id()),
            created_at=_parse_time(data.get("created_at")),
            updated_at=_parse_time(data.get("updated_at")),
        )


# ── Environment ─────────────────────────────────────────────────────────


@dataclass
class EnvironmentVariable:
    key: str
    value: str
    is_secret: bool = False
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {"id": self.id, "key": self.key, "value": self.value, "is_secret": self.is_secret}

    @classmethod
    def from_dict(cls, data: dict) -> EnvironmentVariable:
        return cls(
            key=str(data.get("key", "")),
            value=str(data.get("value", "")),
            is_secret=bool(data.get("is_secret", False)),
            id=str(data.get("id") or new_id()),
        )


@dataclass
class Environment:
    """A named set of substitutable variables. Lookups use the first match."""

    name: str
    variables: list[EnvironmentVariable] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime.datetime = field(default_factory=utcnow)
    updated_at: datetime.datetime = field(default_factory=utcnow)

    def get_variable(self, key: str) -> str | None:
        for var in self.variables:
            if var.key == key:
                return var.value
        return None

    def add_variable(self, key: str, value: str, is_secret: bool = False) -> EnvironmentVariable:
        var = EnvironmentVariable(key=key, value=value, is_secret=is_secret)
        self.variables.append(var)
        self.updated_at = utcnow()
        return var

    def update_variable(self, key: str, value: str) -> bool:
        for var in self.variables:
            if var.key == key:
                var.value = value
                self.updated_at = utcnow()
                return True
        return False

    def set_variable(self, key: str, value: str, is_secret: bool = False) -> None:
        """Update the first variable named ``key`` or append a new one."""
        for var in self.variables:
            if var.key == key:
                var.value = value
                var.is_secret = var.is_secret or is_secret
                self.updated_at = utcnow()
                return
        self.add_variable(key, value, is_secret)

    def remove_variable(self, key: str) -> bool:
        before = len(self.variables)
        self.variables = [v for v in self.variables if v.key != key]
        self.updated_at = utcnow()
        return len(self.variables) < before

    def secret_values(self) -> list[str]:
        return [v.value for v in self.variables if v.is_secret and v.value]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "variables": [v.to_dict() for v in self.variables],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Environment:
        return cls(
            name=str(data.get("name") or "Default"),
            variables=[EnvironmentVariable.from_dict(v) for v in data.get("variables") or []],
            id=str(data.get("id") or new_id()),
            created_at=_parse_time(data.get("created_at")),
            updated_at=_parse_time(data.get("updated_at")),
        )


# ── Template ────────────────────────────────────────────────────────────


@dataclass
class CommandTemplate:
    name: str
    command: CurlCommand
    description: str | None = None
    category: str | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime.datetime = field(default_factory=utcnow)
    updated_at: datetime.datetime = field(default_factory=utcnow)

    @classmethod
    def from_command(cls, name: str, command: CurlCommand, **kwargs) -> CommandTemplate:
        """Snapshot ``command``; the template and the live command diverge afterwards."""
        snapshot = command.clone()
        snapshot.name = name
        return cls(name=name, command=snapshot, **kwargs)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "command": self.command.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> CommandTemplate:
        return cls(
            name=str(data.get("name") or "Untitled"),
            command=CurlCommand.from_dict(data.get("command") or {}),
            description=data.get("description"),
            category=data.get("category"),
            id=str(data.get("id") or new_id()),
            created_at=_parse_time(data.get("created_at")),
            updated_at=_parse_time(data.get("updated_at")),
        )
