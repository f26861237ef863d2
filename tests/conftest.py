"""
pytest configuration for the toolgraph test suite.

Sets PYTHONPATH so tests can import from the project root.
Provides a scripted ChatModel so no test ever reaches a real LLM.

asyncio_mode = "auto" (set in pyproject.toml) means all async test functions
are automatically collected as asyncio tests — no @pytest.mark.asyncio needed
on individual tests.
"""
import base64
import os
import sys
from io import BytesIO

import pytest
from PIL import Image

# Ensure the project root is on sys.path so `import toolgraph` and `import demo` work
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

# Tests use scripted models and should not need real keys
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("LLM_PROVIDER", "openai")


class ScriptedChatModel:
    """
    ChatModel stub that replays scripted answers in order.

    replies  — AIMessages returned by invoke(); an Exception instance is raised
    verdicts — dicts (or schema instances) returned by invoke_structured()
    default  — callable producing a reply once `replies` runs out
    """

    def __init__(self, replies=(), verdicts=(), default=None):
        self.replies = list(replies)
        self.verdicts = list(verdicts)
        self.default = default
        self.calls: list[dict] = []
        self.structured_calls: list[dict] = []

    async def invoke(self, system_prompt, messages):
        self.calls.append({"system_prompt": system_prompt, "messages": list(messages)})
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default()
        else:
            raise AssertionError("ScriptedChatModel ran out of replies")
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def invoke_structured(self, schema, messages):
        self.structured_calls.append({"schema": schema, "messages": list(messages)})
        if not self.verdicts:
            raise AssertionError("ScriptedChatModel ran out of verdicts")
        verdict = self.verdicts.pop(0)
        if isinstance(verdict, Exception):
            raise verdict
        return schema.model_validate(verdict) if isinstance(verdict, dict) else verdict


def make_png(width: int = 40, height: int = 30, color=(200, 30, 30)) -> bytes:
    image = Image.new("RGB", (width, height), color)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def scripted_model():
    """Factory fixture: scripted_model(replies=[...], verdicts=[...])."""
    return ScriptedChatModel


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def png_data_uri(png_bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def png_file(tmp_path, png_bytes):
    path = tmp_path / "source.png"
    path.write_bytes(png_bytes)
    return path
