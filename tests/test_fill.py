import json

import pytest

from meeting_wizard.services.fill import (
    TEMPLATE_UPDATED,
    FillInputError,
    TemplateFillService,
    build_chat_messages,
    build_fill_messages,
)
from meeting_wizard.services.llm import LLMProvider, LLMProviderError, LLMRateLimitError
from meeting_wizard.services.retry import RateLimitExhaustedError
from meeting_wizard.services.session import ChatMessage, WizardSession, WizardStep


class ScriptedProvider(LLMProvider):
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def chat(self, messages, temperature=0.2, model=None):
        self.calls.append((messages, temperature, model))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def service(store, settings):
    return TemplateFillService(store, settings, max_retries=3, base_delay_ms=1)


@pytest.fixture
def session(store, agenda):
    meeting_id = store.create_meeting()["meetingId"]
    store.save_agenda(meeting_id, agenda)
    store.save_transcript(meeting_id, "Vi beslutade att godkänna budgeten.")
    return WizardSession.from_state(store.load_meeting(meeting_id))


def use_provider(service, settings, provider):
    service._get_provider = lambda: (provider, settings.llm())


def test_build_chat_messages_order():
    history = [ChatMessage("user", "första"), ChatMessage("assistant", TEMPLATE_UPDATED)]

    messages = build_chat_messages("sys", "# Mall", "transkript", history, "gör kortare")

    assert [m["role"] for m in messages] == ["system", "user", "user", "assistant", "user"]
    assert messages[1]["content"].startswith("MALL ATT FYLLA I:\n# Mall\n\nMÖTESTRANSKRIPT:\ntranskript")
    assert messages[-1] == {"role": "user", "content": "gör kortare"}


def test_build_fill_messages():
    messages = build_fill_messages("sys", "Fyll i", "# Mall", "text")

    assert messages[1]["content"] == "Fyll i\n\nMALL:\n# Mall\n\nTRANSKRIPT:\ntext"


@pytest.mark.asyncio
async def test_chat_with_mock_provider_updates_session_and_store(service, store, session):
    result = await service.chat(session, "Fyll i mallen")

    assert result.filled_template.startswith("# Mall för protokoll\n## Sammanfattning\n- ")
    assert "Demo-beslut" in result.filled_template
    assert session.filled == result.filled_template
    assert session.current_step is WizardStep.TEMPLATE
    assert [m.to_dict() for m in session.chat] == [
        {"role": "user", "content": "Fyll i mallen"},
        {"role": "assistant", "content": TEMPLATE_UPDATED},
    ]
    stored = store.load_meeting(session.meeting_id)
    assert stored["filled"] == result.filled_template
    assert json.loads(stored["chatDialog"])[0]["content"] == "Fyll i mallen"
    assert stored["currentStep"] == "template"


@pytest.mark.asyncio
async def test_chat_history_is_sent_on_next_turn(service, settings, session):
    provider = ScriptedProvider(["v1", "v2"])
    use_provider(service, settings, provider)

    await service.chat(session, "första")
    result = await service.chat(session, "andra", model="gpt-x", temperature=0.9)

    messages, temperature, model = provider.calls[1]
    assert result.response == "v2"
    assert [m["content"] for m in messages[2:]] == ["första", TEMPLATE_UPDATED, "andra"]
    assert (temperature, model) == (0.9, "gpt-x")
    assert len(session.chat) == 4


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "agenda_text, transcript, message",
    [
        ("", "text", "Ingen agenda hittad"),
        ("# Agenda\n# Mall\n## Beslut", "", "Inget transkript hittat"),
        ("# Bara agenda\n- punkt", "text", "Kunde inte hitta mall-sektion"),
    ],
)
async def test_chat_requires_inputs(service, agenda_text, transcript, message):
    session = WizardSession(meeting_id="m1", agenda=agenda_text, transcript=transcript)

    with pytest.raises(FillInputError, match=message):
        await service.chat(session, "Fyll i")


@pytest.mark.asyncio
async def test_chat_retries_rate_limits(service, settings, session):
    provider = ScriptedProvider([LLMRateLimitError("Rate limit nådd"), "ifylld"])
    use_provider(service, settings, provider)

    result = await service.chat(session, "Fyll i")

    assert result.response == "ifylld"
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_chat_exhaustion_leaves_store_untouched(service, settings, store, session):
    provider = ScriptedProvider([LLMRateLimitError("Rate limit nådd")] * 3)
    use_provider(service, settings, provider)

    with pytest.raises(RateLimitExhaustedError):
        await service.chat(session, "Fyll i")

    assert len(provider.calls) == 3
    assert store.load_filled(session.meeting_id) is None
    assert session.chat == []


@pytest.mark.asyncio
async def test_fill_propagates_provider_errors_without_retry(service, settings, session):
    provider = ScriptedProvider([LLMProviderError("LLM API error (status: 500)", 500)])
    use_provider(service, settings, provider)

    with pytest.raises(LLMProviderError):
        await service.fill(session.meeting_id, "# Mall\n## Beslut\n")

    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_fill_stores_result(service, store, session):
    filled = await service.fill(session.meeting_id, "# Mall\n## Beslut\n\n")

    assert filled == "# Mall\n## Beslut\n- Beslut: Demo-beslut\n"
    assert store.load_filled(session.meeting_id) == filled


@pytest.mark.asyncio
async def test_fill_rejects_blank_template(service, session):
    with pytest.raises(FillInputError):
        await service.fill(session.meeting_id, "   ")
