"""Inbound conversation events, independent of Telegram types."""

from dataclasses import dataclass

from content_bot.choices import CONTROL, PLATFORM, SERVICE, TONE

CALLBACK_CATEGORIES = frozenset({PLATFORM, TONE, SERVICE, CONTROL})


@dataclass(frozen=True)
class PhotoReceived:
    user_id: int
    image: bytes
    mime_type: str

    @property
    def trigger(self) -> str:
        return "photo"


@dataclass(frozen=True)
class ChoiceSelected:
    user_id: int
    category: str
    value: str

    @property
    def trigger(self) -> str:
        return self.category


@dataclass(frozen=True)
class ControlAction:
    user_id: int
    action: str

    @property
    def trigger(self) -> str:
        return self.action


@dataclass(frozen=True)
class FreeText:
    user_id: int
    text: str

    @property
    def trigger(self) -> str:
        return "text"


@dataclass(frozen=True)
class Command:
    user_id: int
    name: str

    @property
    def trigger(self) -> str:
        return "command"


Event = PhotoReceived | ChoiceSelected | ControlAction | FreeText | Command


def callback_data(category: str, value: str) -> str:
    """Encode a button payload as ``category:value``."""
    return f"{category}:{value}"


def event_from_callback(user_id: int, data: str) -> ChoiceSelected | ControlAction | None:
    """Decode button payload into an event.

    Returns None unless the payload is ``category:value`` with a known category.
    """
    category, sep, value = data.partition(":")
    if not sep or category not in CALLBACK_CATEGORIES or not value:
        return None
    if category == CONTROL:
        return ControlAction(user_id=user_id, action=value)
    return ChoiceSelected(user_id=user_id, category=category, value=value)
