"""Shared constants for MCP Meta Proxy."""

SERVER_NAME = "MCP Meta Proxy"
SERVER_VERSION = "1.0.0"
CLIENT_NAME = "mcp-metaproxy"

# Tool id reserved for in-process functions
LOCAL_TOOL_ID = "local"

# Discovery defaults
DEFAULT_DISCOVER_LIMIT = 5
DISCOVER_DESCRIPTION = (
    "Discover enables you the possibility to find other tools. "
    "Send a context composed of one or more sentences, as short as possible, "
    "synthesising the requirements you need a tool for. "
    "If tools are found they are returned as a JSON array indicating their "
    "toolId, method and input schema. "
    "To use a returned tool call the execute method with the toolId, method "
    "and the arguments to be used."
)
EXECUTE_DESCRIPTION = (
    "Execute a tool. This method acts as a proxy and calls the required "
    "tool method with the given arguments."
)

# Search defaults
DEFAULT_FUZZY = 0.1
MAX_FUZZY_DISTANCE = 6
DEFAULT_FIELD_BOOST = {"description": 2.0}

# Network defaults (SSE transport)
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9000
SSE_PATH = "/sse"
POST_MESSAGES_PATH = "/messages/"

# Logging defaults
LOG_DIR = "logs"
DEFAULT_LOG_FILE = "unknown_metaproxy.log"
DEFAULT_LOG_LEVEL = "INFO"
