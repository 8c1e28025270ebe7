"""Launch command resolution for stdio backends."""

import logging
import os
import shutil
from typing import Optional

logger = logging.getLogger(__name__)


def resolve_command_path(command: str, backend_id: Optional[str] = None) -> str:
    """Resolve *command* to an executable path, never failing.

    Resolution order (first success wins):

    1. An absolute path is returned unchanged.
    2. The command is looked up on ``PATH``.
    3. A regular file of that name relative to the current working directory.
    4. The command string as given, unresolved. A launch failure then
       surfaces later as :class:`~mcp_metaproxy.errors.BackendConnectionError`.
    """
    prefix = f"[{backend_id}] " if backend_id else ""

    if os.path.isabs(command):
        return command

    resolved = shutil.which(command)
    if resolved:
        logger.debug("%sCommand '%s' resolved on PATH: %s", prefix, command, resolved)
        return os.path.abspath(resolved)
    logger.warning("%sCommand '%s' not found in PATH.", prefix, command)

    cwd_path = os.path.join(os.getcwd(), command)
    if os.path.isfile(cwd_path):
        logger.debug("%sCommand '%s' resolved relative to cwd: %s", prefix, command, cwd_path)
        return cwd_path
    logger.warning(
        "%sCommand '%s' not found relative to the current directory (%s); using it unresolved.",
        prefix,
        command,
        os.getcwd(),
    )
    return command
