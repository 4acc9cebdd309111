from src.dashboard.config import settings
from src.dashboard.domain.models.note import Note
from src.dashboard.presentation.notes import (
    NoteForm,
    NotesListState,
    PatientNotesPanel,
    render_notes_list,
)
from src.dashboard.services.notes.service import PatientNotesSync


def _fmt(timestamp: str) -> str:
    return f"fmt:{timestamp}"


NOTES = [
    Note(id="n2", content="B", timestamp="2024-01-02"),
    Note(id="n1", content="A", timestamp="2024-01-01"),
]


def test_loading_takes_precedence_over_notes_and_emptiness():
    assert render_notes_list(NOTES, True, _fmt).state == NotesListState.LOADING
    assert render_notes_list([], True, _fmt).state == NotesListState.LOADING


def test_empty_state_offers_first_note_only_when_form_closed():
    view = render_notes_list([], False, _fmt)
    assert view.state == NotesListState.EMPTY
    assert view.show_add_first_note is True
    assert view.items == []

    assert render_notes_list([], False, _fmt, is_adding_note=True).show_add_first_note is False


def test_list_state_keeps_order_and_formats_timestamps():
    view = render_notes_list(NOTES, False, _fmt)
    assert view.state == NotesListState.LIST
    assert [item.id for item in view.items] == ["n2", "n1"]
    assert view.items[0].formatted_timestamp == "fmt:2024-01-02"


async def test_form_clears_draft_only_on_successful_save():
    outcomes = [False, True]
    saved = []

    async def on_save(content):
        saved.append(content)
        return outcomes.pop(0)

    form = NoteForm(on_save=on_save, is_saving=lambda: False)
    form.update("First draft")

    assert await form.submit() is False
    assert form.draft == "First draft"

    assert await form.submit() is True
    assert form.draft == ""
    assert saved == ["First draft", "First draft"]


async def test_form_blank_draft_never_reaches_module():
    calls = []

    async def on_save(content):
        calls.append(content)
        return True

    form = NoteForm(on_save=on_save, is_saving=lambda: False)
    form.update("   ")
    assert form.can_submit is False
    assert await form.submit() is False
    assert calls == []


def test_form_cannot_submit_while_saving_and_cancel_discards():
    async def on_save(content):
        return True

    form = NoteForm(on_save=on_save, is_saving=lambda: True)
    form.update("Pending")
    assert form.can_submit is False

    form.cancel()
    assert form.draft == ""


async def test_panel_closes_form_after_save(gateway, session):
    sync = await PatientNotesSync.mount(gateway, session, "p-001")
    panel = PatientNotesPanel(sync)

    assert panel.render().notes_list.show_add_first_note is True

    form = panel.open_form()
    assert panel.render().is_adding_note is True
    form.update("Stable overnight")
    assert await form.submit() is True

    view = panel.render()
    assert view.is_adding_note is False
    assert view.notes_list.state == NotesListState.LIST
    assert view.notes_list.items[0].content == "Stable overnight"


async def test_panel_keeps_form_open_when_save_fails(gateway, session):
    sync = await PatientNotesSync.mount(gateway, session, "p-001")
    panel = PatientNotesPanel(sync)
    gateway.fail_on(settings.notes_add_rpc)

    form = panel.open_form()
    form.update("Will fail")
    assert await form.submit() is False
    assert panel.is_adding_note is True
    assert panel.form is form
    assert form.draft == "Will fail"

    panel.cancel()
    assert panel.is_adding_note is False
    assert form.draft == ""


async def test_note_item_delete_calls_back_into_module(gateway, session):
    gateway.seed_note(patient_id="p-001", user_id=session.user_id, content="Remove me", note_id="n1")
    sync = await PatientNotesSync.mount(gateway, session, "p-001")
    panel = PatientNotesPanel(sync)

    [item] = panel.items()
    assert item.render().content == "Remove me"
    assert await item.delete() is True
    assert sync.notes == []
    assert panel.render().notes_list.state == NotesListState.EMPTY
