"""In-process functions exposed through the catalog like backend tools."""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from mcp_metaproxy.bridge.provider import ContextFactory, ProviderKind
from mcp_metaproxy.constants import LOCAL_TOOL_ID
from mcp_metaproxy.errors import UnknownFunctionError
from mcp_metaproxy.runtime.models import ToolDescriptor

logger = logging.getLogger(__name__)

# Called with ``(args, context)``; may be a plain function or a coroutine function.
LocalCallable = Callable[[Dict[str, Any], Any], Any]
RegisterHook = Callable[[ToolDescriptor], None]


@dataclass
class LocalFunction:
    """A registered in-process function."""

    name: str
    description: str
    input_schema: Dict[str, Any] = field(default_factory=dict)
    fn: Optional[LocalCallable] = None

    def to_descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            tool_id=LOCAL_TOOL_ID,
            method=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )


class LocalFunctionRegistry:
    """Holds in-process callables and invokes them by name.

    Mirrors the external shape of a backend connection: it lists its
    functions as :class:`ToolDescriptor` objects under the reserved
    ``local`` tool id and executes them via :meth:`call`.
    """

    def __init__(self) -> None:
        self._functions: Dict[str, LocalFunction] = {}
        self._on_register: Optional[RegisterHook] = None

    @property
    def provider_id(self) -> str:
        return LOCAL_TOOL_ID

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.LOCAL

    @property
    def names(self) -> List[str]:
        return list(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)

    def bind_index(self, hook: Optional[RegisterHook]) -> None:
        """Forward every later registration to *hook* (the catalog upsert)."""
        self._on_register = hook

    def register(
        self,
        name: str,
        description: str,
        input_schema: Optional[Dict[str, Any]],
        fn: LocalCallable,
    ) -> LocalFunction:
        """Store *fn* under *name*, overwriting any previous registration."""
        if not name:
            raise ValueError("Local function name must be a non-empty string")
        if not callable(fn):
            raise TypeError(f"Local function '{name}' implementation is not callable")

        entry = LocalFunction(
            name=name,
            description=description or "",
            input_schema=dict(input_schema or {}),
            fn=fn,
        )
        replaced = name in self._functions
        self._functions[name] = entry
        logger.info("%s local function '%s'.", "Replaced" if replaced else "Registered", name)

        if self._on_register is not None:
            self._on_register(entry.to_descriptor())
        return entry

    async def list_tools(self) -> List[ToolDescriptor]:
        return [entry.to_descriptor() for entry in self._functions.values()]

    async def invoke(
        self,
        name: str,
        args: Dict[str, Any],
        context_factory: Optional[ContextFactory] = None,
    ) -> Any:
        """Run function *name* with *args* and return its result unchanged.

        The context factory, when supplied, is awaited exactly once and only
        after the function has been found. Errors raised by the function are
        logged and propagate unchanged.

        Raises:
            UnknownFunctionError: If *name* is not registered.
        """
        entry = self._functions.get(name)
        if entry is None or entry.fn is None:
            raise UnknownFunctionError(name, self._functions)

        context = None
        if context_factory is not None:
            context = await context_factory()

        try:
            result = entry.fn(args, context)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.exception("Error executing local function '%s'.", name)
            raise
        return result

    async def call(
        self,
        method: str,
        args: Dict[str, Any],
        context_factory: Optional[ContextFactory] = None,
    ) -> Any:
        return await self.invoke(method, args, context_factory)
