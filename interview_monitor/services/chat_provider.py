"""
Chat/tool-calling provider used by the monitor.

The monitor only needs "send a conversation plus callable tools, get back
free text or tool-call requests". GeminiToolCallingProvider implements that
with langchain's Google Generative AI chat model.
"""
import asyncio
import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from langchain_core.messages import BaseMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from interview_monitor.models.tools import ProviderResponse, ToolCallRequest, ToolDescriptor
from interview_monitor.utils.config import get_llm_config
from interview_monitor.utils.errors import ProviderError

logger = logging.getLogger(__name__)


class ChatToolProvider(Protocol):
    """Anything that can complete a conversation with optional tool calls."""

    async def complete(
        self,
        system_prompt: str,
        messages: List[BaseMessage],
        tools: List[ToolDescriptor],
    ) -> ProviderResponse:
        ...


def _content_text(content: Any) -> str:
    """Flatten message content, which may be a string or a list of parts."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content)


def to_provider_response(message: Any) -> ProviderResponse:
    """
    Convert a chat model reply into a ProviderResponse.

    Parsed tool calls are re-serialized to JSON; calls the model produced with
    unparseable arguments keep their raw argument string, so the monitor can
    report the parse failure back to the model.
    """
    tool_calls: List[ToolCallRequest] = []
    for call in getattr(message, "tool_calls", None) or []:
        tool_calls.append(ToolCallRequest(
            id=call.get("id") or f"call_{uuid.uuid4().hex[:12]}",
            name=call.get("name") or "",
            arguments=json.dumps(call.get("args") or {}),
        ))
    for call in getattr(message, "invalid_tool_calls", None) or []:
        raw_args = call.get("args")
        tool_calls.append(ToolCallRequest(
            id=call.get("id") or f"call_{uuid.uuid4().hex[:12]}",
            name=call.get("name") or "",
            arguments=raw_args if isinstance(raw_args, str) else json.dumps(raw_args or {}),
        ))

    text = _content_text(getattr(message, "content", None)).strip()
    return ProviderResponse(text=text or None, tool_calls=tool_calls)


class GeminiToolCallingProvider:
    """ChatToolProvider backed by ChatGoogleGenerativeAI."""

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        llm_config = get_llm_config()
        self.model_name = model or llm_config["model"]
        self.temperature = temperature if temperature is not None else llm_config["temperature"]
        self.timeout = timeout if timeout is not None else llm_config["timeout"]
        self._llm: Optional[ChatGoogleGenerativeAI] = None

        logger.info(f"GeminiToolCallingProvider initialized with model {self.model_name}")

    def _get_llm(self) -> ChatGoogleGenerativeAI:
        if self._llm is None:
            self._llm = ChatGoogleGenerativeAI(
                model=self.model_name,
                temperature=self.temperature,
            )
        return self._llm

    async def complete(
        self,
        system_prompt: str,
        messages: List[BaseMessage],
        tools: List[ToolDescriptor],
    ) -> ProviderResponse:
        """
        Run one completion.

        Raises:
            ProviderError: On any model failure, including timeouts
        """
        try:
            llm = self._get_llm()
            if tools:
                llm = llm.bind_tools([tool.to_openai_tool() for tool in tools])
            request = [SystemMessage(content=system_prompt), *messages]

            logger.info(f"Calling {self.model_name} with {len(messages)} messages and {len(tools)} tools")
            reply = await asyncio.wait_for(llm.ainvoke(request), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Model call timed out after {self.timeout} seconds")
            raise ProviderError(f"Model call timed out after {self.timeout} seconds") from e
        except Exception as e:
            logger.error(f"Model call failed: {e}", exc_info=True)
            raise ProviderError(f"Model call failed: {e}") from e

        response = to_provider_response(reply)
        logger.info(
            f"Model replied with {len(response.tool_calls)} tool calls"
            f"{' and text' if response.text else ''}"
        )
        return response


def tool_message_content(payload: Dict[str, Any]) -> str:
    """Serialize a tool payload for a ToolMessage."""
    return json.dumps(payload, default=str)
