"""The ``execute`` operation: route a call to the provider that owns the tool."""

import logging
from typing import Any, Dict, List, Optional

from mcp_metaproxy.bridge.provider import ContextFactory, ToolProvider
from mcp_metaproxy.errors import UnknownBackendError

logger = logging.getLogger(__name__)


class ExecutionRouter:
    """Dispatches ``execute`` calls by tool id.

    Remote backends and the local function registry are both registered as
    :class:`ToolProvider` objects; the router never inspects the tool id
    beyond looking it up.
    """

    def __init__(self) -> None:
        self._providers: Dict[str, ToolProvider] = {}

    def add_provider(self, provider: ToolProvider) -> None:
        provider_id = provider.provider_id
        if provider_id in self._providers and self._providers[provider_id] is not provider:
            logger.warning("Replacing provider registered under '%s'.", provider_id)
        self._providers[provider_id] = provider
        logger.debug("Provider '%s' (%s) added to router.", provider_id, provider.kind.value)

    def remove_provider(self, provider_id: str) -> Optional[ToolProvider]:
        return self._providers.pop(provider_id, None)

    def get_provider(self, provider_id: str) -> Optional[ToolProvider]:
        return self._providers.get(provider_id)

    @property
    def provider_ids(self) -> List[str]:
        return list(self._providers)

    async def execute(
        self,
        tool_id: str,
        method: str,
        args: Optional[Dict[str, Any]] = None,
        context_factory: Optional[ContextFactory] = None,
    ) -> Any:
        """Forward ``method(args)`` to the provider registered as *tool_id*.

        The context factory is handed to the provider untouched; only local
        functions invoke it.

        Raises:
            UnknownBackendError: If no provider is registered as *tool_id*.
        """
        logger.info("Executing: tool_id='%s', method='%s'", tool_id, method)
        provider = self._providers.get(tool_id)
        if provider is None:
            logger.warning(
                "Unable to resolve tool id '%s' (known: %s).",
                tool_id,
                ", ".join(self._providers),
            )
            raise UnknownBackendError(tool_id, self._providers)

        return await provider.call(method, args or {}, context_factory)
