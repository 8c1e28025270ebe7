"""Custom exception classes for MCP Meta Proxy."""

from typing import Dict, Iterable, Optional


class ProxyBaseError(Exception):
    """Base class for all custom exceptions in MCP Meta Proxy."""

    pass


class ConfigurationError(ProxyBaseError):
    """Raised when loading or validating the configuration fails."""

    pass


class BackendConnectionError(ProxyBaseError):
    """
    Raised when a backend process cannot be started, the protocol
    handshake fails, or the backend cannot list its tools.
    """

    def __init__(
        self,
        message: str,
        backend_id: Optional[str] = None,
        orig_exc: Optional[BaseException] = None,
    ):
        self.backend_id = backend_id
        self.orig_exc = orig_exc

        full_msg = "Backend connection error"
        if backend_id:
            full_msg += f" (backend: {backend_id})"
        full_msg += f": {message}"
        if orig_exc:
            full_msg += f" (original error: {type(orig_exc).__name__})"
        super().__init__(full_msg)


class StartupError(BackendConnectionError):
    """Raised when one or more backends fail during an all-or-nothing startup."""

    def __init__(self, failures: Dict[str, BaseException]):
        self.failures = dict(failures)
        details = "; ".join(
            f"'{name}': {type(exc).__name__}: {exc}" for name, exc in self.failures.items()
        )
        super().__init__(
            f"{len(self.failures)} backend(s) failed to start, aborting startup. {details}"
        )


class BackendExecutionError(ProxyBaseError):
    """Raised when a backend fails while executing a forwarded call."""

    def __init__(
        self,
        message: str,
        backend_id: Optional[str] = None,
        method: Optional[str] = None,
        orig_exc: Optional[BaseException] = None,
    ):
        self.backend_id = backend_id
        self.method = method
        self.orig_exc = orig_exc

        full_msg = "Backend execution error"
        if backend_id:
            full_msg += f" (backend: {backend_id}"
            if method:
                full_msg += f", method: {method}"
            full_msg += ")"
        full_msg += f": {message}"
        super().__init__(full_msg)


class UnknownBackendError(ProxyBaseError):
    """Raised when ``execute`` names a tool id that is not in the catalog."""

    def __init__(self, tool_id: str, known_ids: Iterable[str]):
        self.tool_id = tool_id
        self.known_ids = list(known_ids)
        super().__init__(
            f"Tool ID '{tool_id}' not found. "
            f"Available tool IDs: {', '.join(self.known_ids) or '(none)'}"
        )


class UnknownFunctionError(ProxyBaseError):
    """Raised when a local function name is not registered."""

    def __init__(self, name: str, known_names: Iterable[str]):
        self.name = name
        self.known_names = list(known_names)
        super().__init__(
            f"Local function '{name}' not found. "
            f"Available functions: {', '.join(self.known_names) or '(none)'}"
        )


class ServiceNotReadyError(ProxyBaseError):
    """Raised when discover/execute is called before the proxy is serving."""

    pass
