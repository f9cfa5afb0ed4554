"""
Pytest configuration.

Registers the integration marker and command-line option, and resets the
shared settings and in-memory invoice store around every test so no test
reaches a real OpenAI or Supabase endpoint by accident.
"""

import copy
import json
from types import SimpleNamespace

import pytest
from openai.types.chat import ChatCompletion

from src.core.config import settings
from src.services.storage import invoice_store


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against real OpenAI and Supabase"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring real OpenAI / Supabase"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def isolated_backends(request):
    """Mock OpenAI off, in-memory store, fresh rows"""
    if "integration" in request.keywords:
        yield
        return

    fields = [
        "openai_api_key",
        "openai_base_url",
        "supabase_url",
        "supabase_service_key",
        "high_fee_percentage",
        "market_region",
        "chat_max_tool_rounds",
    ]
    original = {name: getattr(settings, name) for name in fields}
    settings.openai_api_key = None
    settings.openai_base_url = None
    settings.supabase_url = None
    settings.supabase_service_key = None
    settings.high_fee_percentage = 25.0
    settings.market_region = "Cleveland"
    settings.chat_max_tool_rounds = 5
    invoice_store.clear()

    yield

    for name, value in original.items():
        setattr(settings, name, value)
    invoice_store.clear()


class FakeOpenAI:
    """
    Stand-in for the OpenAI client.

    Records the kwargs of every chat.completions.create() call and answers
    with queued replies: completion bodies (dicts) or exceptions to raise.
    The last queued reply is repeated once the others are used up.
    """

    def __init__(self):
        self.requests = []
        self._replies = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def reply_with(self, *replies):
        self._replies = list(replies)

    @property
    def last_request(self):
        return self.requests[-1]

    def _create(self, **kwargs):
        # Copied: the caller keeps appending to the same messages list
        self.requests.append(copy.deepcopy(kwargs))
        if not self._replies:
            raise AssertionError("FakeOpenAI called with no reply queued")
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        return ChatCompletion.model_validate(reply)


@pytest.fixture
def fake_openai(monkeypatch):
    """Configure an OpenAI key and hand the services a FakeOpenAI client"""
    settings.openai_api_key = "sk-test"
    fake = FakeOpenAI()
    monkeypatch.setattr("src.services.vision_extractor.get_openai_client", lambda: fake)
    monkeypatch.setattr("src.services.assistant.get_openai_client", lambda: fake)
    return fake


def chat_completion(content=None, tool_calls=None, finish_reason="stop"):
    """Build an OpenAI chat.completion response body"""
    message = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": call_id,
                "type": "function",
                "function": {"name": name, "arguments": json.dumps(arguments)},
            }
            for call_id, name, arguments in tool_calls
        ]
        finish_reason = "tool_calls"
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1760000000,
        "model": "gpt-4o",
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 10, "total_tokens": 20},
    }


@pytest.fixture
def completion():
    return chat_completion
