"""
Tool registry for the interview monitor.

Maps tool names to their descriptor (what the model may call) and handler
(what actually runs), and tracks which tools are enabled, globally or per session.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Union

from interview_monitor.models.session import SessionContext
from interview_monitor.models.tools import ToolDescriptor, ToolName, ToolResult

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any], SessionContext, str], Awaitable[ToolResult]]


@dataclass
class RegisteredTool:
    """A descriptor paired with its handler."""
    descriptor: ToolDescriptor
    handler: ToolHandler
    # A successful call moves the interview to its next turn
    advances_turn: bool = False


class ToolRegistry:
    """
    Registry of callable tools.

    The enabled set is process-wide by default; a session may carry its own
    override which then replaces the default for that session only.
    """

    def __init__(self, enabled: Optional[Iterable[str]] = None):
        self._tools: Dict[str, RegisteredTool] = {}
        self._default_enabled: Set[str] = set(enabled or [])
        self._session_enabled: Dict[str, Set[str]] = {}

        logger.info("ToolRegistry initialized")

    def register(
        self,
        descriptor: ToolDescriptor,
        handler: ToolHandler,
        advances_turn: bool = False,
    ):
        """Add or replace a tool by name."""
        if descriptor.name in self._tools:
            logger.info(f"Replacing registered tool: {descriptor.name}")
        self._tools[descriptor.name] = RegisteredTool(descriptor, handler, advances_turn)

    def set_enabled(self, names: Iterable[Union[str, ToolName]], session_id: Optional[str] = None) -> List[str]:
        """
        Replace the enabled subset.

        Unknown names are accepted; they simply never match a registered tool.

        Args:
            names: Tool names to enable
            session_id: Scope the change to one session instead of the default

        Returns:
            The enabled names, sorted
        """
        enabled = {n.value if isinstance(n, ToolName) else str(n) for n in names}
        unknown = enabled - set(self._tools)
        if unknown:
            logger.warning(f"Enabling unregistered tools: {', '.join(sorted(unknown))}")

        if session_id is None:
            self._default_enabled = enabled
            logger.info(f"Updated default enabled tools: {sorted(enabled)}")
        else:
            self._session_enabled[session_id] = enabled
            logger.info(f"Updated enabled tools for session {session_id}: {sorted(enabled)}")
        return sorted(enabled)

    def clear_session_override(self, session_id: str):
        self._session_enabled.pop(session_id, None)

    def enabled_names(self, session_id: Optional[str] = None) -> Set[str]:
        if session_id is not None and session_id in self._session_enabled:
            return set(self._session_enabled[session_id])
        return set(self._default_enabled)

    def get_enabled_descriptors(self, session_id: Optional[str] = None) -> List[ToolDescriptor]:
        """Descriptors the model may call, in registration order."""
        enabled = self.enabled_names(session_id)
        return [tool.descriptor for name, tool in self._tools.items() if name in enabled]

    def all_descriptors(self) -> List[ToolDescriptor]:
        return [tool.descriptor for tool in self._tools.values()]

    def get(self, name: str) -> Optional[RegisteredTool]:
        return self._tools.get(name)

    async def execute(
        self,
        name: str,
        args: Dict[str, Any],
        context: SessionContext,
        session_id: str,
    ) -> ToolResult:
        """
        Run a tool's handler.

        Unknown names and handler failures come back as failed results; this
        method never raises for them.
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.error(f"Unknown tool: {name}")
            return ToolResult.fail(f"Unknown tool: {name}")

        try:
            result = await tool.handler(args, context, session_id)
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=True)
            return ToolResult.fail(f"Tool {name} failed: {e}")

        logger.info(f"Tool {name} executed for session {session_id}: success={result.success}")
        return result

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
