import json

from meeting_wizard.services.session import (
    ChatMessage,
    WizardSession,
    WizardStep,
    parse_chat_dialog,
)


def test_step_parse_falls_back_to_agenda():
    assert WizardStep.parse("export") is WizardStep.EXPORT
    assert WizardStep.parse(None) is WizardStep.AGENDA
    assert WizardStep.parse("okänt") is WizardStep.AGENDA


def test_parse_chat_dialog_shapes():
    messages = [{"role": "user", "content": "hej"}]

    assert parse_chat_dialog(json.dumps(messages)) == [ChatMessage("user", "hej")]
    assert parse_chat_dialog({"messages": messages}) == [ChatMessage("user", "hej")]
    assert parse_chat_dialog(messages + ["skräp"]) == [ChatMessage("user", "hej")]
    assert parse_chat_dialog("{trasig") == []
    assert parse_chat_dialog("") == []


def test_from_state_and_back():
    meeting = {
        "meetingId": "m1",
        "currentStep": "transcribe",
        "agenda": "# A",
        "transcript": "text",
        "filled": None,
        "settings": {"lang": "sv"},
        "chatDialog": json.dumps([{"role": "assistant", "content": "Mall uppdaterad"}]),
    }

    session = WizardSession.from_state(meeting)

    assert session.current_step is WizardStep.TRANSCRIBE
    assert session.filled == ""
    assert session.chat == [ChatMessage("assistant", "Mall uppdaterad")]
    assert session.to_state() == {
        "currentStep": "transcribe",
        "agenda": "# A",
        "transcript": "text",
        "filled": "",
        "settings": {"lang": "sv"},
    }
    assert json.loads(session.chat_json()) == [{"role": "assistant", "content": "Mall uppdaterad"}]
