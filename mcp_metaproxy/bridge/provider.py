"""Common capability interface shared by remote backends and local functions."""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, runtime_checkable

from mcp_metaproxy.runtime.models import ToolDescriptor

ContextFactory = Callable[[], Awaitable[Any]]


class ProviderKind(str, Enum):
    """Where a provider's tools execute."""

    LOCAL = "local"
    REMOTE = "remote"


@runtime_checkable
class ToolProvider(Protocol):
    """Anything that can list tools and execute them by method name."""

    @property
    def provider_id(self) -> str: ...

    @property
    def kind(self) -> ProviderKind: ...

    async def list_tools(self) -> List[ToolDescriptor]: ...

    async def call(
        self,
        method: str,
        args: Dict[str, Any],
        context_factory: Optional[ContextFactory] = None,
    ) -> Any: ...
