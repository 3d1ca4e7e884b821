"""Tests for MessageInbox: sync, listing, drafting, review and sending."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from voiceprint.core.context import VoiceContext
from voiceprint.core.exceptions import InvalidInputError
from voiceprint.schemas.message import Channel, MessageStatus, Priority
from voiceprint.services.channels import fetch_from_channel


@pytest.fixture
def inbox(context):
    return context.inbox


class TestSync:
    """Pulling incoming messages from every adapter."""

    @pytest.mark.asyncio
    async def test_failing_channel_does_not_stop_others(self, unreachable_llm, settings, adapter_factory, make_message):
        adapters = [
            adapter_factory(Channel.EMAIL, inbox=[make_message(external_id="g1"), make_message(external_id="g2")]),
            adapter_factory(Channel.SLACK, error=RuntimeError("rate limited")),
            adapter_factory(Channel.TEAMS, connected=False),
        ]
        context = VoiceContext(llm=unreachable_llm, adapters=adapters, settings=settings)

        report = await context.inbox.sync_channels()

        by_channel = {r.channel: r for r in report.results}
        assert by_channel[Channel.EMAIL].count == 2
        assert by_channel[Channel.EMAIL].error is None
        assert by_channel[Channel.SLACK].count == 0
        assert by_channel[Channel.SLACK].error == "rate limited"
        assert by_channel[Channel.TEAMS].error == "not connected"
        assert report.total_messages == 2

    @pytest.mark.asyncio
    async def test_resync_skips_known_messages(self, unreachable_llm, settings, adapter_factory, make_message):
        messages = [make_message(external_id="g1"), make_message(external_id="g2")]
        context = VoiceContext(
            llm=unreachable_llm, adapters=[adapter_factory(Channel.EMAIL, inbox=messages)], settings=settings
        )

        await context.inbox.sync_channels()
        report = await context.inbox.sync_channels()

        assert report.results[0].count == 0
        assert report.total_messages == 2

    @pytest.mark.asyncio
    async def test_resync_keeps_drafted_message(self, unreachable_llm, settings, adapter_factory, make_message):
        message = make_message("Deploy is red, can you look?", id="slack-1", channel=Channel.SLACK)
        context = VoiceContext(
            llm=unreachable_llm, adapters=[adapter_factory(Channel.SLACK, inbox=[message])], settings=settings
        )
        await context.inbox.sync_channels()
        result = await context.inbox.draft_message("slack-1")

        report = await context.inbox.sync_channels()

        stored = context.inbox.get("slack-1")
        assert stored.status == MessageStatus.AI_DRAFTED
        assert stored.ai_draft == result.draft_text
        assert report.results[0].count == 0

        assert (await context.inbox.draft_all()).processed == 0

    def test_known_id_is_not_replaced(self, inbox, make_message):
        assert inbox.add(make_message(id="m1")) is True
        assert inbox.add(make_message("Different body", id="m1")) is False
        assert inbox.get("m1").full_message == "Can you review the Q3 budget proposal by Friday?"

    @pytest.mark.asyncio
    async def test_hanging_channel_is_cut_off(self, unreachable_llm, settings, adapter_factory, make_message):
        adapters = [
            adapter_factory(Channel.EMAIL, inbox=[make_message(external_id="g1")]),
            adapter_factory(Channel.SLACK, inbox=[make_message(channel=Channel.SLACK)], delay=1),
        ]
        context = VoiceContext(
            llm=unreachable_llm,
            adapters=adapters,
            settings=settings.model_copy(update={"channel_timeout_seconds": 0.01}),
        )

        report = await context.inbox.sync_channels()

        by_channel = {r.channel: r for r in report.results}
        assert by_channel[Channel.SLACK].count == 0
        assert by_channel[Channel.SLACK].error == "timed out"
        assert by_channel[Channel.EMAIL].count == 1

    @pytest.mark.asyncio
    async def test_fetch_timeout_gives_empty_result(self, adapter_factory, make_message):
        adapter = adapter_factory(Channel.TEAMS, inbox=[make_message(channel=Channel.TEAMS)], delay=1)

        result = await fetch_from_channel(adapter, 10, sent=False, timeout=0.01)

        assert result.messages == []
        assert result.error == "timed out"
        assert result.success is False

    def test_same_external_id_on_other_channel_is_kept(self, inbox, make_message):
        assert inbox.add(make_message(external_id="x1")) is True
        assert inbox.add(make_message(external_id="x1")) is False
        assert inbox.add(make_message(external_id="x1", channel=Channel.SLACK)) is True
        assert len(inbox) == 2


class TestListMessages:
    """Filtering, search and ordering."""

    @pytest.fixture
    def filled(self, inbox, make_message):
        inbox.add(make_message("Deploy failed on staging", channel=Channel.SLACK, subject=None, priority=Priority.HIGH))
        inbox.add(make_message("Lunch on Friday?", sender="Sam Ortiz", subject="Lunch"))
        inbox.add(make_message(status=MessageStatus.SENT))
        return inbox

    def test_newest_first(self, filled):
        listing = filled.list_messages()

        assert [m.id for m in listing.messages] == ["msg-3", "msg-2", "msg-1"]
        assert listing.total == 3
        assert listing.channels == {"email": 2, "slack": 1, "teams": 0}

    def test_filters(self, filled):
        assert [m.id for m in filled.list_messages(channel=Channel.SLACK).messages] == ["msg-1"]
        assert [m.id for m in filled.list_messages(priority=Priority.HIGH).messages] == ["msg-1"]
        assert [m.id for m in filled.list_messages(status=MessageStatus.SENT).messages] == ["msg-3"]

    def test_search_covers_sender_subject_and_body(self, filled):
        assert [m.id for m in filled.list_messages(search="sam").messages] == ["msg-2"]
        assert [m.id for m in filled.list_messages(search="q3 BUDGET").messages] == ["msg-3"]
        assert [m.id for m in filled.list_messages(search="staging").messages] == ["msg-1"]

    def test_counts_ignore_filters(self, filled):
        listing = filled.list_messages(channel=Channel.SLACK, limit=1)

        assert listing.total == 1
        assert listing.channels["email"] == 2


class TestDrafting:
    """Per-message and batch drafting."""

    @pytest.mark.asyncio
    async def test_draft_message_updates_status(self, inbox, make_message):
        inbox.add(make_message())

        result = await inbox.draft_message("msg-1")

        stored = inbox.get("msg-1")
        assert stored.status == MessageStatus.AI_DRAFTED
        assert stored.ai_draft == result.draft_text
        assert stored.ai_confidence == result.confidence

    @pytest.mark.asyncio
    async def test_draft_with_feedback_regenerates(self, inbox, make_message):
        inbox.add(make_message())

        result = await inbox.draft_message("msg-1", feedback="Keep it short")

        assert result.reasoning_trace == ['Regenerated with user feedback: "Keep it short"']

    @pytest.mark.asyncio
    async def test_unknown_message(self, inbox):
        assert await inbox.draft_message("missing") is None

    @pytest.mark.asyncio
    async def test_draft_all_in_batches_with_one_failure(self, unreachable_llm, settings, make_message):
        context = VoiceContext(
            llm=unreachable_llm, settings=settings.model_copy(update={"draft_batch_size": 2})
        )
        inbox = context.inbox
        for _ in range(4):
            inbox.add(make_message())
        inbox.add(make_message(status=MessageStatus.SENT))

        real_generate = context.engine.generate_response

        async def _generate(message, cancel_event=None):
            if message.id == "msg-2":
                raise RuntimeError("generator exploded")
            return await real_generate(message)

        context.engine.generate_response = AsyncMock(side_effect=_generate)

        report = await inbox.draft_all()

        assert report.processed == 4
        assert report.successful == 3
        failed = [r for r in report.results if not r.success]
        assert [(r.message_id, r.error) for r in failed] == [("msg-2", "generator exploded")]
        assert inbox.get("msg-2").status == MessageStatus.PENDING
        assert inbox.get("msg-1").status == MessageStatus.AI_DRAFTED
        assert inbox.get("msg-5").status == MessageStatus.SENT

    @pytest.mark.asyncio
    async def test_draft_all_empty(self, inbox):
        report = await inbox.draft_all()

        assert report.processed == 0
        assert report.successful == 0

    @pytest.mark.asyncio
    async def test_batch_items_run_concurrently_and_batches_in_sequence(
        self, unreachable_llm, settings, make_message
    ):
        context = VoiceContext(
            llm=unreachable_llm, settings=settings.model_copy(update={"draft_batch_size": 2})
        )
        inbox = context.inbox
        for _ in range(5):
            inbox.add(make_message())

        in_flight = 0
        peak = 0
        events: list[tuple[str, str]] = []
        real_generate = context.engine.generate_response

        async def _generate(message, cancel_event=None):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            events.append(("start", message.id))
            await asyncio.sleep(0.01)
            events.append(("end", message.id))
            in_flight -= 1
            return await real_generate(message)

        context.engine.generate_response = AsyncMock(side_effect=_generate)

        report = await inbox.draft_all()

        assert report.successful == 5
        assert peak == 2
        # The second batch starts only after both items of the first have finished
        assert events.index(("start", "msg-3")) > events.index(("end", "msg-1"))
        assert events.index(("start", "msg-3")) > events.index(("end", "msg-2"))
        assert events.index(("start", "msg-5")) > events.index(("end", "msg-4"))


class TestReviewAndSend:
    """Editing drafts and sending them through the channel."""

    def test_update_message(self, inbox, make_message):
        inbox.add(make_message(id="m1"))

        updated = inbox.update_message(
            "m1", status=MessageStatus.APPROVED, ai_draft="Approved, thanks.", priority=Priority.HIGH
        )

        assert updated.status == MessageStatus.APPROVED
        assert updated.ai_draft == "Approved, thanks."
        assert updated.priority == Priority.HIGH
        assert inbox.get("m1") is updated

    def test_update_keeps_fields_not_given(self, inbox, make_message):
        inbox.add(make_message(id="m1", ai_draft="Draft", priority=Priority.LOW))

        updated = inbox.update_message("m1", status=MessageStatus.ESCALATED)

        assert updated.status == MessageStatus.ESCALATED
        assert updated.ai_draft == "Draft"
        assert updated.priority == Priority.LOW

    def test_update_unknown_message(self, inbox):
        assert inbox.update_message("missing", status=MessageStatus.APPROVED) is None

    @pytest.mark.asyncio
    async def test_send_stored_draft(self, unreachable_llm, settings, adapter_factory, make_message):
        adapter = adapter_factory(Channel.EMAIL)
        context = VoiceContext(llm=unreachable_llm, adapters=[adapter], settings=settings)
        context.inbox.add(make_message(id="m1", ai_draft="Will do.", status=MessageStatus.APPROVED))

        result = await context.inbox.send("m1")

        assert result.sent is True
        assert result.status == MessageStatus.SENT
        assert context.inbox.get("m1").status == MessageStatus.SENT
        assert adapter.replies == [("m1", "Will do.")]

    @pytest.mark.asyncio
    async def test_send_given_text_overrides_draft(self, unreachable_llm, settings, adapter_factory, make_message):
        adapter = adapter_factory(Channel.EMAIL)
        context = VoiceContext(llm=unreachable_llm, adapters=[adapter], settings=settings)
        context.inbox.add(make_message(id="m1", ai_draft="Will do."))

        await context.inbox.send("m1", draft="On it, will reply by noon.")

        assert adapter.replies == [("m1", "On it, will reply by noon.")]

    @pytest.mark.asyncio
    async def test_send_without_draft_is_rejected(self, inbox, make_message):
        inbox.add(make_message(id="m1"))

        with pytest.raises(InvalidInputError, match="No draft to send"):
            await inbox.send("m1")

    @pytest.mark.asyncio
    async def test_send_unknown_message(self, inbox):
        assert await inbox.send("missing", draft="Hello") is None

    @pytest.mark.asyncio
    async def test_failed_send_keeps_status(self, unreachable_llm, settings, adapter_factory, make_message):
        adapters = [
            adapter_factory(Channel.EMAIL, accepts_replies=False),
            adapter_factory(Channel.SLACK, error=RuntimeError("channel archived")),
        ]
        context = VoiceContext(llm=unreachable_llm, adapters=adapters, settings=settings)
        context.inbox.add(make_message(id="m1", ai_draft="Will do.", status=MessageStatus.APPROVED))
        context.inbox.add(
            make_message(id="m2", ai_draft="Will do.", status=MessageStatus.APPROVED, channel=Channel.SLACK)
        )
        context.inbox.add(
            make_message(id="m3", ai_draft="Will do.", status=MessageStatus.APPROVED, channel=Channel.TEAMS)
        )

        for message_id in ("m1", "m2", "m3"):
            result = await context.inbox.send(message_id)
            assert result.sent is False
            assert context.inbox.get(message_id).status == MessageStatus.APPROVED
