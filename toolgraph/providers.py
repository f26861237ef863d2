"""
LLM Providers
=============
Turns environment variables into the ChatModel both workflows run on.

  build_chat_model(tools)  → LangChainChatModel with the workflow's tool
                             declarations bound (what AgentSession uses)
  build_llm()              → the bare LangChain chat model
  detect_provider()        → "groq" | "azure" | "openai"

LLM_PROVIDER forces a provider. Without it the first provider whose API key
is set wins, in the order of PROVIDER_KEYS; OpenAI is the fallback.

The same model crops and judges crops, so for the crop workflow the chosen
deployment must accept image_url content parts (gpt-4o does).
"""
import logging
import os

from .model import LangChainChatModel

logger = logging.getLogger(__name__)

PROVIDER_KEYS = (
    ("groq", "GROQ_API_KEY"),
    ("azure", "AZURE_OPENAI_API_KEY"),
)
PROVIDERS = ("groq", "azure", "openai")


def detect_provider() -> str:
    forced = os.getenv("LLM_PROVIDER", "").strip().lower()
    if forced in PROVIDERS:
        return forced
    if forced:
        logger.warning("[LLM] LLM_PROVIDER=%r is not one of %s, detecting from keys", forced, PROVIDERS)

    for provider, key_var in PROVIDER_KEYS:
        if os.getenv(key_var):
            return provider
    return "openai"


def _groq():
    from langchain_groq import ChatGroq
    return ChatGroq(
        model=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"),
        api_key=os.getenv("GROQ_API_KEY"),
        temperature=0,
    )


def _azure():
    from langchain_openai import AzureChatOpenAI
    # no temperature: reasoning deployments reject it
    return AzureChatOpenAI(
        azure_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT"),
        azure_deployment=os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4o"),
        api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-12-01-preview"),
        api_key=os.getenv("AZURE_OPENAI_API_KEY"),
    )


def _openai():
    from langchain_openai import ChatOpenAI
    return ChatOpenAI(
        model=os.getenv("OPENAI_MODEL", "gpt-4o"),
        api_key=os.getenv("OPENAI_API_KEY"),
        temperature=0,
    )


_BUILDERS = {"groq": _groq, "azure": _azure, "openai": _openai}


def build_llm():
    provider = detect_provider()
    logger.info("[LLM] Provider: %s", provider)
    return _BUILDERS[provider]()


def build_chat_model(tools: list | None = None) -> LangChainChatModel:
    """
    ChatModel for a workflow run.

    tools are bound for the tool-calling turns only; the approver's structured
    verdict call goes to the unbound model (see LangChainChatModel).
    """
    return LangChainChatModel(build_llm(), tools=tools)
