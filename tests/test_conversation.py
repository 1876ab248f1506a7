"""Tests for the guided conversation state machine."""

import asyncio

import pytest

from conftest import HASHTAGS, JPEG_BYTES, FakeGenerator, RecordingDelivery
from content_bot.bot.conversation import (
    BAD_PHOTO_TEXT,
    BUSY_TEXT,
    CANCELLED_TEXT,
    STEP_HINTS,
    THINKING_TEXT,
    UNKNOWN_COMMAND_TEXT,
    WELCOME_TEXT,
    Conversation,
)
from content_bot.bot.events import (
    ChoiceSelected,
    Command,
    ControlAction,
    FreeText,
    PhotoReceived,
)
from content_bot.bot.states import STEP_SEQUENCE, Step
from content_bot.bot.storage import StateStore
from content_bot.services.errors import BlockedPromptError, GenerationError

USER = 42


def photo(user_id=USER):
    return PhotoReceived(user_id=user_id, image=JPEG_BYTES, mime_type="image/jpeg")


def platform(value, user_id=USER):
    return ChoiceSelected(user_id=user_id, category="platform", value=value)


def tone(value, user_id=USER):
    return ChoiceSelected(user_id=user_id, category="tone", value=value)


def service(value, user_id=USER):
    return ChoiceSelected(user_id=user_id, category="service", value=value)


def control(action, user_id=USER):
    return ControlAction(user_id=user_id, action=action)


async def run_events(conversation, *events):
    for event in events:
        await conversation.handle(event)


async def reach_services(conversation):
    await run_events(conversation, photo(), platform("Instagram"), tone("Luxury"))


async def reach_context(conversation):
    await reach_services(conversation)
    await conversation.handle(control("done_services"))


def test_photo_starts_flow(conversation, store, delivery):
    async def scenario():
        await conversation.handle(photo())
        return await store.get(USER)

    state = asyncio.run(scenario())

    assert state.step is Step.AWAITING_PLATFORM
    assert state.image == JPEG_BYTES
    assert state.mime_type == "image/jpeg"
    prompts = delivery.named("show_prompt")
    assert len(prompts) == 1
    buttons = [b.callback_data for row in prompts[0][3].inline_keyboard for b in row]
    assert buttons == ["platform:LinkedIn", "platform:Instagram", "platform:Facebook", "platform:X"]
    assert state.pending_message_ref == 101


def test_empty_photo_is_rejected(conversation, store, delivery):
    async def scenario():
        await conversation.handle(PhotoReceived(user_id=USER, image=b"", mime_type=""))
        return await store.get(USER)

    state = asyncio.run(scenario())

    assert state.step is Step.IDLE
    assert delivery.texts == [BAD_PHOTO_TEXT]
    assert delivery.named("show_prompt") == []


def test_steps_advance_through_fixed_sequence(conversation, store):
    async def scenario():
        steps = [(await store.get(USER)).step]
        for event in (
            photo(),
            platform("LinkedIn"),
            tone("Technical"),
            control("done_services"),
        ):
            await conversation.handle(event)
            steps.append((await store.get(USER)).step)
        await conversation.handle(FreeText(user_id=USER, text="Spring line"))
        steps.append((await store.get(USER)).step)
        return steps

    steps = asyncio.run(scenario())

    assert tuple(steps[:-1]) == STEP_SEQUENCE
    assert steps[-1] is Step.IDLE


def test_prompts_are_edited_in_place(conversation, delivery):
    asyncio.run(reach_context(conversation))

    assert len(delivery.named("show_prompt")) == 1
    replaced = delivery.named("replace_prompt")
    assert len(replaced) == 3
    assert {call[2] for call in replaced} == {101}


class TestRejectedEvents:
    """Events that do not match the current step leave state untouched."""

    def test_tone_before_platform(self, conversation, store, delivery):
        async def scenario():
            await conversation.handle(photo())
            await conversation.handle(tone("Luxury"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.AWAITING_PLATFORM
        assert state.tone == ""
        assert delivery.texts == [STEP_HINTS[Step.AWAITING_PLATFORM]]

    def test_platform_outside_choice_set(self, conversation, store, delivery):
        async def scenario():
            await conversation.handle(photo())
            await conversation.handle(platform("MySpace"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.AWAITING_PLATFORM
        assert state.platform == ""
        assert delivery.texts == [STEP_HINTS[Step.AWAITING_PLATFORM]]

    def test_platform_choice_during_context_step(self, conversation, store, delivery):
        async def scenario():
            await reach_context(conversation)
            before = await store.get(USER)
            await conversation.handle(platform("X"))
            return before, await store.get(USER)

        before, after = asyncio.run(scenario())

        assert after == before
        assert after.step is Step.AWAITING_CONTEXT
        assert delivery.texts[-1] == STEP_HINTS[Step.AWAITING_CONTEXT]

    def test_text_while_idle(self, conversation, store, delivery):
        async def scenario():
            await conversation.handle(FreeText(user_id=USER, text="hello"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.IDLE
        assert delivery.texts == [STEP_HINTS[Step.IDLE]]

    def test_photo_mid_flow(self, conversation, store, delivery):
        async def scenario():
            await conversation.handle(photo())
            await conversation.handle(
                PhotoReceived(user_id=USER, image=b"\x89PNG other", mime_type="image/png")
            )
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.AWAITING_PLATFORM
        assert state.image == JPEG_BYTES

    def test_skip_before_context_step(self, conversation, store, generator):
        async def scenario():
            await reach_services(conversation)
            await conversation.handle(control("skip_context"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.AWAITING_SERVICES
        assert generator.calls == []

    def test_control_action_named_like_category(self, conversation, store, delivery):
        async def scenario():
            await conversation.handle(photo())
            await conversation.handle(control("platform"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.AWAITING_PLATFORM
        assert state.platform == ""
        assert delivery.texts == [STEP_HINTS[Step.AWAITING_PLATFORM]]

    def test_choice_named_like_control_action(self, conversation, store, delivery):
        async def scenario():
            await reach_services(conversation)
            await conversation.handle(
                ChoiceSelected(user_id=USER, category="done_services", value="x")
            )
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.AWAITING_SERVICES
        assert delivery.texts == [STEP_HINTS[Step.AWAITING_SERVICES]]

    def test_choice_named_like_text_during_context(self, conversation, store, generator):
        async def scenario():
            await reach_context(conversation)
            await conversation.handle(ChoiceSelected(user_id=USER, category="text", value="x"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.AWAITING_CONTEXT
        assert generator.calls == []


class TestServices:
    def test_toggle_twice_restores_selection(self, conversation, store):
        async def scenario():
            await reach_services(conversation)
            await conversation.handle(service("Bulk"))
            first = (await store.get(USER)).services
            await conversation.handle(service("Bulk"))
            return first, await store.get(USER)

        first, state = asyncio.run(scenario())

        assert first == ["Bulk"]
        assert state.services == []
        assert state.step is Step.AWAITING_SERVICES

    def test_menu_reflects_selection(self, conversation, delivery):
        async def scenario():
            await reach_services(conversation)
            await conversation.handle(service("OEM"))

        asyncio.run(scenario())

        markup = delivery.named("replace_prompt")[-1][4]
        labels = [row[0].text for row in markup.inline_keyboard]
        assert labels[0] == "✅ OEM / Private Label"
        assert labels[1] == "Custom Branding"

    def test_unknown_service_is_noop_rerender(self, conversation, store, delivery):
        async def scenario():
            await reach_services(conversation)
            await conversation.handle(service("OEM"))
            await conversation.handle(service("Dyeing"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.services == ["OEM"]
        assert state.step is Step.AWAITING_SERVICES
        assert len(delivery.named("replace_prompt")) == 4


class TestCommands:
    @pytest.mark.parametrize("steps_taken", [0, 1, 2, 3, 4])
    def test_cancel_resets_from_any_step(self, conversation, store, delivery, steps_taken):
        flow = [
            photo(),
            platform("Facebook"),
            tone("Enthusiastic"),
            control("done_services"),
        ][:steps_taken]

        async def scenario():
            await run_events(conversation, *flow)
            before = await store.get(USER)
            await conversation.handle(Command(user_id=USER, name="cancel"))
            return before, await store.get(USER)

        before, after = asyncio.run(scenario())

        assert after.step is Step.IDLE
        assert after.image == b""
        assert after.platform == after.tone == after.context == ""
        assert after.services == []
        assert after.pending_message_ref is None
        assert delivery.texts[-1] == CANCELLED_TEXT
        if before.pending_message_ref is not None:
            assert delivery.named("clear_prompt") == [
                ("clear_prompt", USER, before.pending_message_ref)
            ]
        else:
            assert delivery.named("clear_prompt") == []

    def test_start_greets_and_resets(self, conversation, store, delivery):
        async def scenario():
            await reach_services(conversation)
            await conversation.handle(Command(user_id=USER, name="start"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.IDLE
        assert WELCOME_TEXT in delivery.texts
        assert len(delivery.named("clear_prompt")) == 1

    def test_unknown_command_keeps_state(self, conversation, store, delivery):
        async def scenario():
            await reach_services(conversation)
            before = await store.get(USER)
            await conversation.handle(Command(user_id=USER, name="help"))
            return before, await store.get(USER)

        before, after = asyncio.run(scenario())

        assert after == before
        assert delivery.texts[-1] == UNKNOWN_COMMAND_TEXT
        assert delivery.named("clear_prompt") == []

    def test_cancel_while_prompt_is_sent_clears_it(self, store, generator):
        class CancellingDelivery(RecordingDelivery):
            """Cancels the conversation while the first prompt is in flight."""

            conversation = None

            async def show_prompt(self, user_id, text, markup):
                ref = await super().show_prompt(user_id, text, markup)
                await self.conversation.handle(Command(user_id=user_id, name="cancel"))
                return ref

        delivery = CancellingDelivery()
        conversation = Conversation(store=store, delivery=delivery, generator=generator)
        delivery.conversation = conversation

        async def scenario():
            await conversation.handle(photo())
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.IDLE
        assert state.pending_message_ref is None
        assert CANCELLED_TEXT in delivery.texts
        assert delivery.named("clear_prompt") == [("clear_prompt", USER, 101)]


class TestGeneration:
    def test_end_to_end_instagram_flow(self, conversation, store, delivery, generator):
        async def scenario():
            await run_events(
                conversation,
                photo(),
                platform("Instagram"),
                tone("Luxury"),
                service("OEM"),
                service("Fabric"),
                control("done_services"),
                FreeText(user_id=USER, text="New winter line"),
            )
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert len(generator.calls) == 1
        params = generator.calls[0]
        assert params.platform == "Instagram"
        assert params.tone == "Luxury"
        assert params.services == ("OEM", "Fabric")
        assert params.context == "New winter line"
        assert params.image == JPEG_BYTES

        texts = delivery.texts
        assert texts[0] == THINKING_TEXT
        options = [t for t in texts if "Option" in t]
        assert len(options) == 3
        assert "Caption one" in options[0]
        assert "Caption three" in options[2]
        assert all(tag in texts[-1] for tag in HASHTAGS)
        assert "Great lighting." in texts[-1]

        thinking_ref = 101 + 1  # prompt took 101
        assert ("delete_message", USER, thinking_ref) in delivery.calls
        assert ("clear_prompt", USER, 101) in delivery.calls

        assert state.step is Step.IDLE
        assert state.image == b""
        assert state.services == []
        assert not state.generating

    def test_skip_keeps_context_empty(self, conversation, store, generator):
        async def scenario():
            await reach_context(conversation)
            await conversation.handle(control("skip_context"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert generator.calls[0].context == ""
        assert state.context == ""
        assert state.step is Step.IDLE

    def test_failure_shows_no_captions_and_resets(self, store, delivery):
        generator = FakeGenerator(error=GenerationError("API request failed with status 500: boom"))
        conversation = Conversation(store=store, delivery=delivery, generator=generator)

        async def scenario():
            await reach_context(conversation)
            await conversation.handle(FreeText(user_id=USER, text="ctx"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert not any("Option" in t for t in delivery.texts)
        assert "status 500" in delivery.texts[-1]
        assert state.step is Step.IDLE
        assert state.image == b""

    def test_blocked_reason_is_shown(self, store, delivery):
        generator = FakeGenerator(error=BlockedPromptError("SAFETY"))
        conversation = Conversation(store=store, delivery=delivery, generator=generator)

        async def scenario():
            await reach_context(conversation)
            await conversation.handle(control("skip_context"))

        asyncio.run(scenario())

        assert "prompt was blocked: SAFETY" in delivery.texts[-1]

    def test_unexpected_error_still_resets(self, store, delivery):
        generator = FakeGenerator(error=RuntimeError("kaboom"))
        conversation = Conversation(store=store, delivery=delivery, generator=generator)

        async def scenario():
            await reach_context(conversation)
            await conversation.handle(control("skip_context"))
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert state.step is Step.IDLE
        assert state.image == b""
        assert "kaboom" not in delivery.texts[-1]

    def test_captions_are_html_escaped(self, store, delivery):
        generator = FakeGenerator()
        generator.result.captions = ["<b>bold</b> & co", "two", "three"]
        conversation = Conversation(store=store, delivery=delivery, generator=generator)

        async def scenario():
            await reach_context(conversation)
            await conversation.handle(control("skip_context"))

        asyncio.run(scenario())

        option = next(t for t in delivery.texts if "Option 1" in t)
        assert "&lt;b&gt;bold&lt;/b&gt; &amp; co" in option

    def test_cancel_during_generation_discards_result(self, store, delivery, generator):
        conversation = Conversation(store=store, delivery=delivery, generator=generator)
        generator.gate = asyncio.Event()

        async def scenario():
            await reach_context(conversation)
            task = asyncio.create_task(
                conversation.handle(FreeText(user_id=USER, text="ctx"))
            )
            await generator.started.wait()
            await conversation.handle(Command(user_id=USER, name="cancel"))
            generator.gate.set()
            await task
            return await store.get(USER)

        state = asyncio.run(scenario())

        assert not any("Option" in t for t in delivery.texts)
        assert CANCELLED_TEXT in delivery.texts
        assert state.step is Step.IDLE
        assert not state.generating

    def test_photo_while_generating_is_refused(self, store, delivery, generator):
        conversation = Conversation(store=store, delivery=delivery, generator=generator)
        generator.gate = asyncio.Event()

        async def scenario():
            await reach_context(conversation)
            task = asyncio.create_task(conversation.handle(control("skip_context")))
            await generator.started.wait()
            await conversation.handle(photo())
            during = await store.get(USER)
            generator.gate.set()
            await task
            return during, await store.get(USER)

        during, after = asyncio.run(scenario())

        assert BUSY_TEXT in delivery.texts
        assert during.step is Step.IDLE
        assert during.generating
        assert len([t for t in delivery.texts if "Option" in t]) == 3
        assert after.step is Step.IDLE
        assert not after.generating


def test_users_are_independent():
    store = StateStore()
    delivery = RecordingDelivery()
    conversation = Conversation(store=store, delivery=delivery, generator=FakeGenerator())

    async def scenario():
        await conversation.handle(photo(user_id=1))
        await conversation.handle(photo(user_id=2))
        await conversation.handle(platform("X", user_id=1))
        return await store.get(1), await store.get(2)

    first, second = asyncio.run(scenario())

    assert first.step is Step.AWAITING_TONE
    assert second.step is Step.AWAITING_PLATFORM
