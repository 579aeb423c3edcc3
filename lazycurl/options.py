"""lazycurl options - the static catalog of known curl flags."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum

from lazycurl.models import CurlOption


class OptionCategory(Enum):
    BASIC = "Basic Options"
    REQUEST = "Request Options"
    AUTHENTICATION = "Authentication Options"
    CONNECTION = "Connection Options"
    HEADER = "Header Options"
    SSL = "SSL/TLS Options"
    PROXY = "Proxy Options"
    OUTPUT = "Output Options"
    COMMAND_LINE = "Command Line Options"


class OptionTier(Enum):
    BASIC = "basic"
    ADVANCED = "advanced"
    EXPERT = "expert"


@dataclass(frozen=True)
class OptionDefinition:
    flag: str
    long_flag: str | None
    description: str
    takes_value: bool
    category: OptionCategory
    tier: OptionTier

    @property
    def label(self) -> str:
        """Flag plus long form, e.g. '-L, --location'."""
        if self.long_flag:
            return f"{self.flag}, {self.long_flag}"
        return self.flag


_B, _A, _E = OptionTier.BASIC, OptionTier.ADVANCED, OptionTier.EXPERT
_C = OptionCategory

# (flag, long_flag, description, takes_value, category, tier)
_DEFINITIONS: tuple[tuple, ...] = (
    # Basic
    ("-#", "--progress-bar", "Display transfer progress as a bar", False, _C.BASIC, _B),
    ("-L", "--location", "Follow redirects", False, _C.BASIC, _B),
    ("-f", "--fail", "Fail silently on server errors", False, _C.BASIC, _B),
    # Request
    ("-X", "--request", "HTTP method to use", True, _C.REQUEST, _B),
    ("-d", "--data", "HTTP POST data", True, _C.REQUEST, _B),
    ("--data-binary", None, "HTTP POST binary data", True, _C.REQUEST, _A),
    ("--data-urlencode", None, "HTTP POST data url encoded", True, _C.REQUEST, _A),
    ("-F", "--form", "Specify multipart MIME data", True, _C.REQUEST, _A),
    # Authentication
    ("-u", "--user", "Server user and password", True, _C.AUTHENTICATION, _B),
    ("--basic", None, "Use HTTP Basic Authentication", False, _C.AUTHENTICATION, _B),
    ("--digest", None, "Use HTTP Digest Authentication", False, _C.AUTHENTICATION, _A),
    ("--ntlm", None, "Use HTTP NTLM authentication", False, _C.AUTHENTICATION, _A),
    ("--oauth2-bearer", None, "OAuth 2 Bearer Token", True, _C.AUTHENTICATION, _B),
    # Connection
    ("-k", "--insecure", "Allow insecure server connections", False, _C.CONNECTION, _B),
    ("--connect-timeout", None, "Maximum time allowed for connection", True, _C.CONNECTION, _B),
    ("--max-time", "-m", "Maximum time allowed for the transfer", True, _C.CONNECTION, _B),
    ("-4", "--ipv4", "Resolve names to IPv4 addresses", False, _C.CONNECTION, _A),
    ("-6", "--ipv6", "Resolve names to IPv6 addresses", False, _C.CONNECTION, _A),
    # Header
    ("-H", "--header", "Pass custom header(s) to server", True, _C.HEADER, _B),
    ("-A", "--user-agent", "Send User-Agent to server", True, _C.HEADER, _B),
    ("-e", "--referer", "Referer URL", True, _C.HEADER, _B),
    ("-b", "--cookie", "Send cookies from string/file", True, _C.HEADER, _B),
    ("-c", "--cookie-jar", "Write cookies to file after operation", True, _C.HEADER, _A),
    # SSL/TLS
    ("--cacert", None, "CA certificate to verify peer against", True, _C.SSL, _A),
    ("--cert", None, "Client certificate file", True, _C.SSL, _A),
    ("--key", None, "Private key file name", True, _C.SSL, _A),
    ("--ciphers", None, "SSL ciphers to use", True, _C.SSL, _E),
    ("--tls-max", None, "Set maximum allowed TLS version", True, _C.SSL, _E),
    # Proxy
    ("-x", "--proxy", "Use proxy", True, _C.PROXY, _B),
    ("--proxy-basic", None, "Use Basic authentication on the proxy", False, _C.PROXY, _A),
    ("--proxy-digest", None, "Use Digest authentication on the proxy", False, _C.PROXY, _A),
    ("--noproxy", None, "List of hosts which do not use proxy", True, _C.PROXY, _A),
    (
        "-p",
        "--proxytunnel",
        "Operate through an HTTP proxy tunnel (using CONNECT)",
        False,
        _C.PROXY,
        _A,
    ),
    # Output
    ("-o", "--output", "Write to file instead of stdout", True, _C.OUTPUT, _B),
    (
        "-O",
        "--remote-name",
        "Write output to a file named as the remote file",
        False,
        _C.OUTPUT,
        _B,
    ),
    ("-J", "--remote-header-name", "Use the header-provided filename", False, _C.OUTPUT, _A),
    ("--create-dirs", None, "Create necessary local directory hierarchy", False, _C.OUTPUT, _A),
    ("-w", "--write-out", "Use output FORMAT after completion", True, _C.OUTPUT, _A),
    # Command line
    ("-v", "--verbose", "Make the operation more talkative", False, _C.COMMAND_LINE, _B),
    ("-s", "--silent", "Silent mode", False, _C.COMMAND_LINE, _B),
    ("-S", "--show-error", "Show error even when silent", False, _C.COMMAND_LINE, _B),
    (
        "-i",
        "--include",
        "Include protocol response headers in the output",
        False,
        _C.COMMAND_LINE,
        _B,
    ),
    ("-I", "--head", "Show document info only", False, _C.COMMAND_LINE, _B),
    ("-q", "--disable", "Disable .curlrc", False, _C.COMMAND_LINE, _B),
    ("-V", "--version", "Show version number and quit", False, _C.COMMAND_LINE, _B),
    ("-h", "--help", "Show help text", False, _C.COMMAND_LINE, _B),
    ("--trace", None, "Write a debug trace to FILE", True, _C.COMMAND_LINE, _B),
    ("--trace-ascii", None, "Like --trace, but without hex output", True, _C.COMMAND_LINE, _B),
    (
        "--trace-time",
        None,
        "Add time stamps to trace/verbose output",
        False,
        _C.COMMAND_LINE,
        _B,
    ),
    ("-K", "--config", "Read config from a file", True, _C.COMMAND_LINE, _B),
)


class OptionCatalog:
    """Read-only lookup over the flag table, keyed by flag."""

    def __init__(self, definitions: tuple[OptionDefinition, ...]):
        self._by_flag: dict[str, OptionDefinition] = {d.flag: d for d in definitions}

    def __len__(self) -> int:
        return len(self._by_flag)

    def __contains__(self, flag: str) -> bool:
        return flag in self._by_flag

    def lookup(self, flag: str) -> OptionDefinition | None:
        return self._by_flag.get(flag)

    def lookup_any(self, token: str) -> OptionDefinition | None:
        """Find a definition by its short flag or its long form."""
        found = self._by_flag.get(token)
        if found is not None:
            return found
        for definition in self._by_flag.values():
            if definition.long_flag == token:
                return definition
        return None

    def all(self) -> list[OptionDefinition]:
        return sorted(self._by_flag.values(), key=lambda d: d.flag)

    def by_category(self, category: OptionCategory) -> list[OptionDefinition]:
        return [d for d in self.all() if d.category == category]

    def by_tier(self, tier: OptionTier) -> list[OptionDefinition]:
        return [d for d in self.all() if d.tier == tier]

    def by_category_and_tier(
        self,
        category: OptionCategory,
        tier: OptionTier,
    ) -> list[OptionDefinition]:
        return [d for d in self.all() if d.category == category and d.tier == tier]

    def takes_value(self, flag: str) -> bool:
        definition = self.lookup(flag)
        return definition is not None and definition.takes_value

    def create_option(self, flag: str) -> CurlOption | None:
        """Build a fresh enabled CurlOption for a catalog flag.

        Value-taking flags start with an empty value so they are editable;
        switches carry no value at all. Unknown flags return None.
        """
        definition = self.lookup(flag)
        if definition is None:
            return None
        return CurlOption.new(definition.flag, "" if definition.takes_value else None)


@functools.lru_cache(maxsize=1)
def catalog() -> OptionCatalog:
    """Return the process-wide option catalog, built on first use."""
    return OptionCatalog(tuple(OptionDefinition(*row) for row in _DEFINITIONS))
