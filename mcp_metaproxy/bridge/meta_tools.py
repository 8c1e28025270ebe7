"""Definitions of the two tools the proxy exposes: ``discover`` and ``execute``."""

from __future__ import annotations

from typing import List, Optional

from mcp import types as mcp_types

from mcp_metaproxy.constants import DISCOVER_DESCRIPTION, EXECUTE_DESCRIPTION

DISCOVER_TOOL_NAME = "discover"
EXECUTE_TOOL_NAME = "execute"

DISCOVER_INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "queries": {
            "type": "array",
            "items": {
                "type": "string",
                "description": (
                    "Sentence used to query for tools, "
                    "it should be as short and concise as possible"
                ),
            },
            "description": (
                "List of sentences of intentions used to discover whether there are "
                "tools available that can be used"
            ),
        },
    },
    "required": ["queries"],
}

EXECUTE_INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "toolId": {"type": "string", "description": "Tool id to execute"},
        "method": {"type": "string", "description": "The tool method to be executed"},
        "args": {
            "type": "object",
            "additionalProperties": True,
            "description": "Arguments to be passed to the tool",
        },
    },
    "required": ["toolId", "method"],
}

EXECUTE_TOOL_DEF = mcp_types.Tool(
    name=EXECUTE_TOOL_NAME,
    description=EXECUTE_DESCRIPTION,
    inputSchema=EXECUTE_INPUT_SCHEMA,
)


def discover_description(
    description: Optional[str] = None, extras: Optional[str] = None
) -> str:
    """Return the discover tool description, with *extras* on a new line."""
    text = description or DISCOVER_DESCRIPTION
    if extras:
        text += "\n" + extras
    return text


def build_meta_tools(
    description: Optional[str] = None, extras: Optional[str] = None
) -> List[mcp_types.Tool]:
    """Return the ``discover`` and ``execute`` tool definitions."""
    discover_def = mcp_types.Tool(
        name=DISCOVER_TOOL_NAME,
        description=discover_description(description, extras),
        inputSchema=DISCOVER_INPUT_SCHEMA,
    )
    return [discover_def, EXECUTE_TOOL_DEF]


DISCOVER_TOOL_DEF = build_meta_tools()[0]
