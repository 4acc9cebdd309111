from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from src.dashboard.domain.models.note import Note
from src.dashboard.services.notes.service import PatientNotesSync

FormatDate = Callable[[str], str]
DeleteHandler = Callable[[str], Awaitable[bool]]
SaveHandler = Callable[[str], Awaitable[bool]]


class NotesListState(str, Enum):
    LOADING = "loading"
    EMPTY = "empty"
    LIST = "list"


class NoteItemView(BaseModel):
    id: str
    content: str
    timestamp: str
    formatted_timestamp: str


class NotesListView(BaseModel):
    state: NotesListState
    message: Optional[str] = None
    show_add_first_note: bool = False
    items: List[NoteItemView] = Field(default_factory=list)


class NotesPanelView(BaseModel):
    patient_id: str
    is_adding_note: bool
    is_saving: bool
    notes_list: NotesListView


def render_note_item(note: Note, format_date: FormatDate) -> NoteItemView:
    return NoteItemView(
        id=note.id,
        content=note.content,
        timestamp=note.timestamp,
        formatted_timestamp=format_date(note.timestamp),
    )


class NoteItem:
    """One rendered note plus its delete affordance."""

    def __init__(self, note: Note, format_date: FormatDate, on_delete: DeleteHandler) -> None:
        self.note = note
        self._format_date = format_date
        self._on_delete = on_delete

    def render(self) -> NoteItemView:
        return render_note_item(self.note, self._format_date)

    async def delete(self) -> bool:
        return await self._on_delete(self.note.id)


def render_notes_list(
    notes: Sequence[Note],
    is_loading: bool,
    format_date: FormatDate,
    *,
    is_adding_note: bool = False,
) -> NotesListView:
    """Derive the list view; loading wins over the empty state."""

    if is_loading:
        return NotesListView(state=NotesListState.LOADING, message="Loading notes...")

    if not notes:
        return NotesListView(
            state=NotesListState.EMPTY,
            message="No notes have been added for this patient yet.",
            show_add_first_note=not is_adding_note,
        )

    return NotesListView(
        state=NotesListState.LIST,
        items=[render_note_item(note, format_date) for note in notes],
    )


class NoteForm:
    """Add-note form holding a draft that stays local until a save succeeds."""

    def __init__(self, on_save: SaveHandler, is_saving: Callable[[], bool]) -> None:
        self._on_save = on_save
        self._is_saving = is_saving
        self.draft = ""

    def update(self, text: str) -> None:
        self.draft = text

    @property
    def can_submit(self) -> bool:
        return bool(self.draft.strip()) and not self._is_saving()

    async def submit(self) -> bool:
        if not self.draft.strip():
            return False
        saved = await self._on_save(self.draft)
        if saved:
            self.draft = ""
        return saved

    def cancel(self) -> None:
        self.draft = ""


class PatientNotesPanel:
    """Container wiring the notes module to the list, items and add-form."""

    def __init__(self, sync: PatientNotesSync) -> None:
        self.sync = sync
        self.is_adding_note = False
        self.form: Optional[NoteForm] = None

    def open_form(self) -> NoteForm:
        if self.form is None:
            self.form = NoteForm(on_save=self._handle_add, is_saving=lambda: self.sync.is_saving)
        self.is_adding_note = True
        return self.form

    async def _handle_add(self, content: str) -> bool:
        saved = await self.sync.add_note(content)
        if saved:
            self.is_adding_note = False
            self.form = None
        return saved

    def cancel(self) -> None:
        if self.form is not None:
            self.form.cancel()
        self.form = None
        self.is_adding_note = False

    def items(self) -> List[NoteItem]:
        return [NoteItem(note, self.sync.format_date, self.sync.delete_note) for note in self.sync.notes]

    def render(self) -> NotesPanelView:
        return NotesPanelView(
            patient_id=self.sync.patient_id,
            is_adding_note=self.is_adding_note,
            is_saving=self.sync.is_saving,
            notes_list=render_notes_list(
                self.sync.notes,
                self.sync.is_loading,
                self.sync.format_date,
                is_adding_note=self.is_adding_note,
            ),
        )
