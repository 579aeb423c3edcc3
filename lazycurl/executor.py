"""lazycurl executor - run a built curl command and capture what it printed."""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from dataclasses import dataclass, field

from lazycurl.builder import ArgumentSplitError, parse_command_args

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

CURL_ERRORS: dict[int, str] = {
    1: "Unsupported protocol",
    2: "Failed to initialize",
    3: "URL malformed",
    4: "A feature or option that was needed to perform the desired request was not enabled",
    5: "Couldn't resolve proxy",
    6: "Couldn't resolve host",
    7: "Failed to connect to host",
    8: "FTP weird server reply",
    9: "FTP access denied",
    10: "FTP accept failed",
    11: "FTP weird PASS reply",
    12: "FTP accept timeout",
    13: "FTP weird PASV reply",
    14: "FTP weird 227 format",
    15: "FTP can't get host",
    16: "HTTP/2 framing layer error",
    17: "FTP couldn't set binary",
    18: "Partial file transfer",
    19: "FTP couldn't download/access the given file",
    21: "FTP quote error",
    22: "HTTP page not retrieved",
    23: "Write error",
    25: "Upload failed",
    26: "Read error",
    27: "Out of memory",
    28: "Operation timeout",
    30: "FTP PORT failed",
    31: "FTP couldn't use REST",
    33: "HTTP range error",
    34: "HTTP post error",
    35: "SSL connect error",
    36: "Bad download resume",
    37: "FILE couldn't read file",
    38: "LDAP cannot bind",
    39: "LDAP search failed",
    42: "Aborted by callback",
    43: "Bad function argument",
    45: "Interface error",
    47: "Too many redirects",
    48: "Unknown option specified",
    49: "Malformed telnet option",
    52: "The server didn't reply anything",
    53: "SSL crypto engine not found",
    54: "Cannot set SSL crypto engine as default",
    55: "Failed sending network data",
    56: "Failure in receiving network data",
    58: "Problem with the local certificate",
    59: "Couldn't use specified cipher",
    60: "Peer certificate cannot be authenticated with known CA certificates",
    61: "Unrecognized transfer encoding",
    63: "Maximum file size exceeded",
    64: "Requested FTP SSL level failed",
    65: "Sending the data requires a rewind that failed",
    66: "Failed to initialise SSL Engine",
    67: "The user name, password, or similar was not accepted and curl failed to log in",
    68: "File not found on TFTP server",
    69: "Permission problem on TFTP server",
    70: "Out of disk space on TFTP server",
    71: "Illegal TFTP operation",
    72: "Unknown transfer ID",
    73: "File already exists",
    74: "No such user",
    77: "Problem with reading the SSL CA cert",
    78: "The resource referenced in the URL does not exist",
    79: "An unspecified error occurred during the SSH session",
    80: "Failed to shut down the SSL connection",
    82: "Could not load CRL file",
    83: "Issuer check failed",
    84: "The FTP PRET command failed",
    85: "RTSP: mismatch of CSeq numbers",
    86: "RTSP: mismatch of Session Identifiers",
    87: "Unable to parse FTP file list",
    88: "FTP chunk callback reported error",
    89: "No connection available, the session will be queued",
    90: "SSL public key does not matched pinned public key",
    91: "Invalid SSL certificate status",
    92: "Stream error in HTTP/2 framing layer",
    93: "An API function was called from inside a callback",
    94: "An authentication function returned an error",
    95: "A problem was detected in the HTTP/3 layer",
    96: "QUIC connection error",
    97: "Proxy handshake error",
    98: "SSL client certificate required",
    99: "Unrecoverable error in poll",
}


def curl_error_message(exit_code: int) -> str:
    return CURL_ERRORS.get(exit_code, "Unknown error")


class ExecutorUnavailable(RuntimeError):
    """The curl binary could not be found."""


class ExecutionResult:
    """Result of one curl run."""

    def __init__(self, command: str = ""):
        self.command: str = command
        self.exit_code: int | None = None  # None: killed by a signal or never ran
        self.stdout: str = ""
        self.stderr: str = ""
        self.execution_time: float = 0.0  # seconds
        self.error: str | None = None
        self.signal: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class CommandExecutor:
    """Runs curl commands produced by the builder.

    Construct through create() so a missing curl binary is reported once,
    up front, instead of on every execute.
    """

    def __init__(self, curl_path: str, timeout: int = DEFAULT_TIMEOUT):
        self.curl_path = curl_path
        self.timeout = timeout

    @classmethod
    def create(cls, timeout: int = DEFAULT_TIMEOUT) -> CommandExecutor:
        curl_path = shutil.which("curl")
        if curl_path is None:
            raise ExecutorUnavailable("curl executable not found in PATH")
        return cls(curl_path, timeout=timeout)

    def execute(self, command: str) -> ExecutionResult:
        """Run ``command`` and return a structured result.

        Never raises - failures are reported through ``result.error``:
        - nonzero exit -> curl's own explanation of the code
        - negative return code -> terminated by a signal, exit_code None
        - timeout / spawn failure -> exit_code None
        """
        result = ExecutionResult(command)
        start = time.monotonic()

        try:
            argv = parse_command_args(command)
        except ArgumentSplitError as e:
            result.error = f"Invalid curl command: {e}"
            return result
        if not argv or argv[0] != "curl":
            result.error = "Invalid curl command"
            return result

        logger.debug("executing curl with %d arguments", len(argv) - 1)
        try:
            completed = subprocess.run(
                [self.curl_path, *argv[1:]],
                capture_output=True,
                text=True,
                errors="replace",
                stdin=subprocess.DEVNULL,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            result.stdout = _as_text(e.stdout)
            result.stderr = _as_text(e.stderr)
            result.error = f"Command timed out after {self.timeout}s"
        except OSError as e:
            result.error = f"Failed to execute command: {e}"
        else:
            result.stdout = completed.stdout or ""
            result.stderr = completed.stderr or ""
            code = completed.returncode
            if code < 0:
                result.signal = -code
                result.error = f"Process terminated by signal {-code}"
            else:
                result.exit_code = code
                if code != 0:
                    result.error = (
                        f"Command failed with exit code {code}: {curl_error_message(code)}"
                    )
        finally:
            result.execution_time = time.monotonic() - start

        if result.error:
            logger.warning("curl run failed: %s", result.error)
        return result


def _as_text(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


# ── Output ──────────────────────────────────────────────────────────────


@dataclass
class ResponseInfo:
    status_code: int | None = None
    status_message: str | None = None
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: str = ""
    size: int = 0
    time: float = 0.0


def parse_response(result: ExecutionResult) -> ResponseInfo:
    """Split curl output into status line, headers and body.

    Only meaningful when curl printed headers (-i); otherwise everything up to
    the first blank line is taken as headers, matching how curl -i lays out
    its output.
    """
    output = result.stdout + result.stderr
    info = ResponseInfo(time=result.execution_time)

    lines = output.splitlines()
    body_lines: list[str] = []
    in_body = False
    for line in lines:
        if in_body:
            body_lines.append(line)
            continue
        stripped = line.rstrip("\r")
        if stripped.startswith("HTTP/"):
            parts = stripped.split()
            if info.status_code is None and len(parts) >= 2 and parts[1].isdigit():
                info.status_code = int(parts[1])
                info.status_message = " ".join(parts[2:])
            continue
        if not stripped:
            in_body = True
            continue
        key, sep, value = stripped.partition(":")
        if sep:
            info.headers.append((key.strip(), value.strip()))

    info.body = "\n".join(body_lines).strip()
    info.size = len(info.body.encode("utf-8"))
    return info


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    if size < 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024):.1f} MB"
    return f"{size / (1024 * 1024 * 1024):.1f} GB"


def format_result(result: ExecutionResult, command: str | None = None) -> str:
    """Textual report of a run for the output panel and the CLI.

    ``command`` replaces the executed command line, e.g. with a masked one.
    """
    lines = [f"Command: {result.command if command is None else command}"]
    if result.exit_code is not None:
        lines.append(f"Exit Code: {result.exit_code}")
    elif result.signal is not None:
        lines.append(f"Terminated by signal {result.signal}")
    lines.append(f"Execution Time: {result.execution_time * 1000:.0f}ms")
    response = parse_response(result)
    if response.status_code is not None:
        status = f"{response.status_code} {response.status_message or ''}".rstrip()
        lines.append(f"Status: {status}")
        lines.append(f"Size: {format_size(response.size)}")
    lines.append("")

    if result.stdout:
        lines.append("STDOUT:")
        lines.append(result.stdout.rstrip("\n"))
        lines.append("")
    if result.stderr:
        lines.append("STDERR:")
        lines.append(result.stderr.rstrip("\n"))
        lines.append("")
    if result.error:
        lines.append(f"ERROR: {result.error}")
    return "\n".join(lines).rstrip("\n")
