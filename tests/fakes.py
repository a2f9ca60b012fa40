import os
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest import mock

import httpx
from mistralai import Mistral
from mistralai.models import SDKError

import strokecoach.storage.sqlite_store as memory


def chat_response(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def sdk_error(status: int) -> SDKError:
    raw = httpx.Response(status, request=httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions"))
    return SDKError("API error occurred", raw_response=raw, body='{"error": "denied"}')


class FakeChat:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def complete_async(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return chat_response(reply)


class FakeClient:
    """Stands in for the mistralai client: exposes chat.complete_async only."""

    def __init__(self, *replies):
        self.chat = FakeChat(replies)


class MemoryStore:
    def __init__(self):
        self.records = []

    def append_session(self, record):
        self.records.append(record)


class StepClock:
    def __init__(self, start=None, step_seconds=30):
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        self.step = timedelta(seconds=step_seconds)

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


async def no_sleep(_seconds):
    return None


class TempDbTestCase(unittest.TestCase):
    """Points the sqlite store at a throwaway file for each test."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self._patch = mock.patch.object(memory, "_DB_PATH", os.path.join(self._tmp.name, "db", "test.db"))
        self._patch.start()
        memory.init_db()

    def tearDown(self):
        self._patch.stop()
        self._tmp.cleanup()


def mistral_on(handler):
    """Real mistralai client whose HTTP traffic goes to `handler`."""
    return Mistral(
        api_key="sk-test",
        server_url="https://provider.test/api",
        async_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def json_reply(body):
    return lambda request: httpx.Response(200, json=body)
