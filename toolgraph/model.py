"""
Model Invocation Adapter
========================
The single point of contact with the hosted language model.

Nodes never hold a LangChain chat model directly; they receive a ChatModel
capability with two calls:

    invoke(system_prompt, messages)          → AIMessage (text or tool calls)
    invoke_structured(schema, messages)      → an instance of `schema`

LangChainChatModel implements it over any LangChain chat model. Tests pass a
scripted stub with the same two coroutines instead.

Provider failures of any kind surface as ModelInvocationError. There is no
retry here; a run that hits one ends.
"""
import logging
from typing import Protocol, Sequence, TypeVar

from langchain_core.messages import AIMessage, BaseMessage, SystemMessage
from pydantic import BaseModel

from .errors import ModelInvocationError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ChatModel(Protocol):
    async def invoke(self, system_prompt: str, messages: Sequence[BaseMessage]) -> AIMessage: ...

    async def invoke_structured(self, schema: type[SchemaT], messages: Sequence[BaseMessage]) -> SchemaT: ...


def _provider_error(exc: Exception) -> ModelInvocationError:
    status = getattr(exc, "status_code", None)
    category = type(exc).__name__
    logger.warning("[model] provider call failed: category=%s status=%s", category, status)
    return ModelInvocationError(f"Model call failed: {exc}", status=status, category=category)


class LangChainChatModel:
    """
    ChatModel over a LangChain chat model.

    Args:
        llm:   Any LangChain BaseChatModel (ChatOpenAI, ChatGroq, ...).
        tools: Tool declarations to bind for invoke(); structured calls always
               use the unbound model.
    """

    def __init__(self, llm, tools: list | None = None):
        self._llm = llm
        self._llm_with_tools = llm.bind_tools(tools) if tools else llm

    async def invoke(self, system_prompt: str, messages: Sequence[BaseMessage]) -> AIMessage:
        try:
            response = await self._llm_with_tools.ainvoke(
                [SystemMessage(content=system_prompt), *messages]
            )
        except Exception as exc:
            raise _provider_error(exc) from exc

        if not isinstance(response, AIMessage):
            raise ModelInvocationError(
                f"Expected an AIMessage, got {type(response).__name__}", category="BadResponse"
            )

        logger.debug("[model] reply tool_calls=%d", len(response.tool_calls or []))
        return response

    async def invoke_structured(self, schema: type[SchemaT], messages: Sequence[BaseMessage]) -> SchemaT:
        try:
            result = await self._llm.with_structured_output(schema).ainvoke(list(messages))
        except Exception as exc:
            raise _provider_error(exc) from exc

        if isinstance(result, dict):
            result = schema.model_validate(result)
        if not isinstance(result, schema):
            raise ModelInvocationError(
                f"Structured output did not match {schema.__name__}", category="BadResponse"
            )
        return result
