import asyncio

import pytest

from content_bot.bot.conversation import Conversation
from content_bot.bot.storage import StateStore
from content_bot.services.gemini_client import GenerationResult

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32

HASHTAGS = [f"#Tag{i}" for i in range(15)]


class RecordingDelivery:
    """Delivery double that records every outbound call."""

    def __init__(self):
        self.calls = []
        self._next_ref = 100

    def _ref(self):
        self._next_ref += 1
        return self._next_ref

    async def send_text(self, user_id, text):
        self.calls.append(("send_text", user_id, text))
        return self._ref()

    async def show_prompt(self, user_id, text, markup):
        self.calls.append(("show_prompt", user_id, text, markup))
        return self._ref()

    async def replace_prompt(self, user_id, message_ref, text, markup):
        self.calls.append(("replace_prompt", user_id, message_ref, text, markup))
        return message_ref

    async def clear_prompt(self, user_id, message_ref):
        self.calls.append(("clear_prompt", user_id, message_ref))

    async def delete_message(self, user_id, message_ref):
        self.calls.append(("delete_message", user_id, message_ref))

    def named(self, name):
        return [call for call in self.calls if call[0] == name]

    @property
    def texts(self):
        return [call[2] for call in self.named("send_text")]


class FakeGenerator:
    """Generator double; optionally waits on ``gate`` before answering."""

    def __init__(self, result=None, error=None):
        self.result = result or GenerationResult(
            captions=["Caption one", "Caption two", "Caption three"],
            hashtags=list(HASHTAGS),
            feedback="Great lighting.",
        )
        self.error = error
        self.calls = []
        self.started = asyncio.Event()
        self.gate = None

    async def generate_content(self, params):
        self.calls.append(params)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def delivery():
    return RecordingDelivery()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def conversation(store, delivery, generator):
    return Conversation(store=store, delivery=delivery, generator=generator)
