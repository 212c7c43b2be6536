"""JSON-RPC 2.0 request handling: command registry, HTTP framing and authentication."""

from __future__ import annotations

import re
import string
import threading
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable

from dinari.jsonvalue import JSONObject, JSONValue
from dinari.logger import get_logger
from dinari.security import RateLimiter, base64_decode, constant_time_compare

_UNAUTHORIZED = 'HTTP/1.1 401 Unauthorized\r\nWWW-Authenticate: Basic realm="dinari-rpc"\r\n\r\n'
_BAD_REQUEST = "HTTP/1.1 400 Bad Request\r\n\r\n"
_AUTH_PREFIX = "Authorization:"
_BASIC_PREFIX = "Basic "
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_LEADING_INT = re.compile(r"-?\d+")

_RATE_LIMIT_REQUESTS = 10
_RATE_LIMIT_WINDOW = 60
_BAN_SECONDS = 3600
_RATE_BAN_THRESHOLD = 50
_AUTH_BAN_THRESHOLD = 10


class RPCErrorCode(IntEnum):
    """Error codes compatible with the Bitcoin JSON-RPC interface."""

    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    PARSE_ERROR = -32700

    MISC_ERROR = -1
    TYPE_ERROR = -3
    INVALID_ADDRESS_OR_KEY = -5
    OUT_OF_MEMORY = -7
    INVALID_PARAMETER = -8
    DATABASE_ERROR = -20
    DESERIALIZATION_ERROR = -22
    VERIFY_ERROR = -25
    VERIFY_REJECTED = -26
    VERIFY_ALREADY_IN_CHAIN = -27
    IN_WARMUP = -28

    WALLET_ERROR = -4
    WALLET_INSUFFICIENT_FUNDS = -6
    WALLET_INVALID_LABEL_NAME = -11
    WALLET_KEYPOOL_RAN_OUT = -12
    WALLET_UNLOCK_NEEDED = -13
    WALLET_PASSPHRASE_INCORRECT = -14
    WALLET_WRONG_ENC_STATE = -15
    WALLET_ENCRYPTION_FAILED = -16
    WALLET_ALREADY_UNLOCKED = -17


class RPCError(RuntimeError):
    """Raised by command handlers to report an RPC failure."""

    def __init__(self, code: int, message: str) -> None:
        self.code = int(code)
        self.message = message
        super().__init__(f"RPC Error {self.code}: {message}")


@dataclass
class RPCRequest:
    """A JSON-RPC request."""

    method: str = ""
    params: list[JSONValue] = field(default_factory=list)
    id: JSONValue = field(default_factory=JSONValue)
    jsonrpc: str = "2.0"

    @classmethod
    def parse(cls, text: str) -> RPCRequest:
        """Extract the method name and id from a request body.

        Only ``method`` and ``id`` are read; ``params`` is left empty.
        Raises ValueError if a numeric id cannot be read as an integer.
        """
        request = cls()

        method_pos = text.find('"method"')
        if method_pos != -1:
            colon = text.find(":", method_pos)
            if colon != -1:
                start = text.find('"', colon)
                if start != -1:
                    end = text.find('"', start + 1)
                    if end != -1:
                        request.method = text[start + 1:end]

        id_pos = text.find('"id"')
        if id_pos != -1:
            colon = text.find(":", id_pos)
            if colon != -1:
                request.id = _parse_id(text, colon + 1, request.id)

        return request


def _parse_id(text: str, pos: int, default: JSONValue) -> JSONValue:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    if pos >= len(text):
        return default
    char = text[pos]
    if char == '"':
        end = text.find('"', pos + 1)
        return JSONValue(text[pos + 1:] if end == -1 else text[pos + 1:end])
    if char in string.digits or char == "-":
        end = pos
        while end < len(text) and (text[end] in string.digits or text[end] in "-."):
            end += 1
        match = _LEADING_INT.match(text, pos, end)
        if match is None:
            raise ValueError(f"invalid numeric id: {text[pos:end]!r}")
        value = int(match.group())
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise ValueError(f"numeric id out of range: {value}")
        return JSONValue(value)
    return default


@dataclass
class RPCResponse:
    """A JSON-RPC response carrying either a result or an error object."""

    result: JSONValue = field(default_factory=JSONValue)
    error: JSONObject = field(default_factory=JSONObject)
    id: JSONValue = field(default_factory=JSONValue)
    is_error: bool = False
    jsonrpc: str = "2.0"

    def serialize(self) -> str:
        obj = JSONObject()
        obj.set_string("jsonrpc", self.jsonrpc)
        if self.is_error:
            obj.set_object("error", self.error)
            obj.set_null("result")
        else:
            obj.set("result", self.result)
            obj.set_null("error")
        obj.set("id", self.id)
        return obj.serialize()

    @classmethod
    def error_response(cls, request_id: JSONValue, code: int, message: str) -> RPCResponse:
        response = cls(id=request_id, is_error=True)
        response.error.set_int("code", int(code))
        response.error.set_string("message", message)
        return response


Handler = Callable[[RPCRequest, Any, Any, Any], JSONValue]


@dataclass
class RPCCommand:
    """A named command and the handler that runs it."""

    name: str
    handler: Handler
    category: str = ""
    description: str = ""
    usage: str = ""
    requires_wallet: bool = False


@dataclass
class RPCServerConfig:
    bind_address: str = "127.0.0.1"
    port: int = 9334
    rpc_user: str = "dinariuser"
    rpc_password: str = ""
    allow_from_all: bool = False


class RPCServer:
    """Dispatches JSON-RPC requests to registered commands."""

    AUTH_FAILURE_DELAY = 2.0

    def __init__(self, chain: Any, wallet: Any = None, node: Any = None) -> None:
        self.chain = chain
        self.wallet = wallet
        self.node = node
        self.config = RPCServerConfig()
        self.rate_limiter = RateLimiter()
        self.auth_failure_delay = self.AUTH_FAILURE_DELAY
        self._commands: dict[str, RPCCommand] = {}
        self._commands_lock = threading.Lock()
        self._failed_auth_attempts = 0
        self._failed_lock = threading.Lock()
        self._running = False
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._log = get_logger()

    @property
    def failed_auth_attempts(self) -> int:
        return self._failed_auth_attempts

    def initialize(self, config: RPCServerConfig) -> None:
        self.config = config
        self._log.info("RPC", f"Initializing RPC server on {config.bind_address}:{config.port}")
        with self._commands_lock:
            count = len(self._commands)
        self._log.info("RPC", f"Registered {count} RPC commands")

    def start(self) -> None:
        if self._running:
            return
        self._log.info("RPC", "Starting RPC server")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._serve, name="rpc-server", daemon=True)
        self._thread.start()
        self._running = True
        self._log.info("RPC", "RPC server started")

    def stop(self) -> None:
        if not self._running:
            return
        self._log.info("RPC", "Stopping RPC server")
        self._stop_event.set()
        self._running = False
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._log.info("RPC", "RPC server stopped")

    def is_running(self) -> bool:
        return self._running

    def _serve(self) -> None:
        self._log.info("RPC", "RPC server thread started")
        while not self._stop_event.wait(0.1):
            pass
        self._log.info("RPC", "RPC server thread stopped")

    def register_command(self, command: RPCCommand) -> None:
        """Register ``command``, replacing any command of the same name."""
        with self._commands_lock:
            self._commands[command.name] = command
        self._log.debug("RPC", f"Registered command: {command.name}")

    def commands(self) -> list[RPCCommand]:
        """Return the registered commands ordered by name."""
        with self._commands_lock:
            return [self._commands[name] for name in sorted(self._commands)]

    def execute_command(self, request: RPCRequest) -> RPCResponse:
        with self._commands_lock:
            command = self._commands.get(request.method)
        if command is None:
            return RPCResponse.error_response(
                request.id, RPCErrorCode.METHOD_NOT_FOUND, f"Method not found: {request.method}"
            )
        if command.requires_wallet and self.wallet is None:
            return RPCResponse.error_response(
                request.id, RPCErrorCode.WALLET_ERROR, "Wallet not loaded"
            )
        try:
            result = command.handler(request, self.chain, self.wallet, self.node)
        except Exception as exc:
            self._log.error("RPC", f"Command execution error: {exc}")
            return RPCResponse.error_response(request.id, RPCErrorCode.INTERNAL_ERROR, str(exc))
        self._log.debug("RPC", f"Executed command: {request.method}")
        return RPCResponse(result=result, id=request.id)

    def handle_http_request(self, request: str, client_ip: str) -> str:
        """Authenticate and run one HTTP request, returning the raw HTTP response."""
        header_end = request.find("\r\n\r\n")
        if header_end == -1:
            return _BAD_REQUEST
        headers = request[:header_end]
        body = request[header_end + 4:]

        auth_pos = headers.find(_AUTH_PREFIX)
        if auth_pos != -1:
            value_start = auth_pos + len(_AUTH_PREFIX) + 1
            line_end = headers.find("\r\n", auth_pos)
            auth_header = headers[value_start:] if line_end == -1 else headers[value_start:line_end]
            if not self.authenticate(auth_header, client_ip):
                return _UNAUTHORIZED
        elif self.config.rpc_password:
            return _UNAUTHORIZED

        response_body = self.execute_command(RPCRequest.parse(body)).serialize()
        return (
            "HTTP/1.1 200 OK\r\n"
            "Content-Type: application/json\r\n"
            f"Content-Length: {len(response_body.encode('utf-8'))}\r\n"
            "\r\n"
            f"{response_body}"
        )

    def _record_failure(self) -> int:
        with self._failed_lock:
            self._failed_auth_attempts += 1
            return self._failed_auth_attempts

    def _delay(self) -> None:
        if self.auth_failure_delay > 0:
            time.sleep(self.auth_failure_delay)

    def authenticate(self, auth_header: str, client_ip: str) -> bool:
        """Check HTTP Basic credentials, applying rate limits and bans."""
        if self.rate_limiter.is_banned(client_ip):
            self._log.warning("RPC", f"Rejected request from banned IP: {client_ip}")
            return False

        if not self.rate_limiter.check_limit(client_ip, _RATE_LIMIT_REQUESTS, _RATE_LIMIT_WINDOW):
            if self._record_failure() > _RATE_BAN_THRESHOLD:
                self.rate_limiter.ban(client_ip, _BAN_SECONDS)
                self._log.warning("RPC", f"Banned IP due to excessive requests: {client_ip}")
            return False

        auth = auth_header.lstrip(" \t").rstrip(" \t\r\n")
        if not auth.startswith(_BASIC_PREFIX):
            self._log.warning("RPC", f"Invalid auth header format from {client_ip}")
            self._delay()
            return False

        credentials = base64_decode(auth[len(_BASIC_PREFIX):])
        username, sep, supplied = credentials.partition(b":")
        if not sep:
            self._log.warning("RPC", f"Invalid credentials format from {client_ip}")
            self._delay()
            return False

        user_ok = constant_time_compare(username, self.config.rpc_user)
        pass_ok = constant_time_compare(supplied, self.config.rpc_password)
        if not (user_ok and pass_ok):
            attempts = self._record_failure()
            self._log.warning(
                "RPC", f"Authentication failed for {client_ip} (attempt #{attempts})"
            )
            self._delay()
            if attempts > _AUTH_BAN_THRESHOLD:
                self.rate_limiter.ban(client_ip, _BAN_SECONDS)
                self._log.warning("RPC", f"Banned IP due to failed authentication: {client_ip}")
            return False

        self._log.debug("RPC", f"Authentication successful for {client_ip}")
        return True

    def __enter__(self) -> RPCServer:
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


def check_params(request: RPCRequest, expected: int) -> None:
    count = len(request.params)
    if count != expected:
        raise RPCError(
            RPCErrorCode.INVALID_PARAMS, f"Expected {expected} parameters, got {count}"
        )


def check_params_at_least(request: RPCRequest, minimum: int) -> None:
    count = len(request.params)
    if count < minimum:
        raise RPCError(
            RPCErrorCode.INVALID_PARAMS, f"Expected at least {minimum} parameters, got {count}"
        )


def check_params_range(request: RPCRequest, minimum: int, maximum: int) -> None:
    count = len(request.params)
    if count < minimum or count > maximum:
        raise RPCError(
            RPCErrorCode.INVALID_PARAMS,
            f"Expected {minimum}-{maximum} parameters, got {count}",
        )


def _param(request: RPCRequest, index: int, check: Callable[[JSONValue], bool], kind: str) -> JSONValue:
    if not 0 <= index < len(request.params):
        raise RPCError(RPCErrorCode.INVALID_PARAMS, "Parameter index out of range")
    value = request.params[index]
    if not check(value):
        raise RPCError(RPCErrorCode.TYPE_ERROR, f"Parameter {index} must be {kind}")
    return value


def get_string_param(request: RPCRequest, index: int) -> str:
    return _param(request, index, JSONValue.is_string, "a string").as_str()


def get_int_param(request: RPCRequest, index: int) -> int:
    return _param(request, index, JSONValue.is_number, "a number").as_int()


def get_bool_param(request: RPCRequest, index: int) -> bool:
    return _param(request, index, JSONValue.is_bool, "a boolean").as_bool()


def get_double_param(request: RPCRequest, index: int) -> float:
    return _param(request, index, JSONValue.is_number, "a number").as_float()