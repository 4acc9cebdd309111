from datetime import datetime, timezone

import pytest

from src.dashboard.config import settings
from src.dashboard.domain.models.notification import NotificationVariant
from src.dashboard.domain.models.session import Session
from src.dashboard.domain.models.sync_policy import UpdatePolicy
from src.dashboard.errors import UnauthenticatedError
from src.dashboard.infra.gateway.inmemory import InMemoryGateway
from src.dashboard.services.notes.service import PatientNotesSync, format_note_timestamp


def _gateway_with_two_notes(session: Session) -> InMemoryGateway:
    gateway = InMemoryGateway(
        clock=lambda: datetime(2024, 1, 3, tzinfo=timezone.utc),
        id_factory=lambda: "n3",
    )
    gateway.seed_note(patient_id="p-001", user_id=session.user_id, content="A", note_id="n1", created_at="2024-01-01")
    gateway.seed_note(patient_id="p-001", user_id=session.user_id, content="B", note_id="n2", created_at="2024-01-02")
    return gateway


async def test_load_add_delete_scenario(session):
    gateway = _gateway_with_two_notes(session)

    sync = await PatientNotesSync.mount(gateway, session, "p-001")
    assert [(n.id, n.content, n.timestamp) for n in sync.notes] == [
        ("n2", "B", "2024-01-02"),
        ("n1", "A", "2024-01-01"),
    ]

    assert await sync.add_note("Patient stable") is True
    assert [n.id for n in sync.notes] == ["n3", "n2", "n1"]
    assert sync.notes[0].content == "Patient stable"

    assert await sync.delete_note("n2") is True
    assert [n.id for n in sync.notes] == ["n3", "n1"]

    titles = [n.title for n in sync.notifier.notifications]
    assert titles == ["Note saved", "Note deleted"]


async def test_load_with_no_rows_gives_empty_list(gateway, session):
    sync = await PatientNotesSync.mount(gateway, session, "p-empty")
    assert sync.notes == []
    assert sync.is_loading is False
    assert sync.notifier.notifications == ()


async def test_load_failure_keeps_previous_notes(session):
    gateway = _gateway_with_two_notes(session)
    sync = await PatientNotesSync.mount(gateway, session, "p-001")
    before = list(sync.notes)

    gateway.fail_on(settings.notes_get_rpc)
    assert await sync.load() is False

    assert [n.id for n in sync.notes] == [n.id for n in before]
    assert sync.is_loading is False
    failure = sync.notifier.notifications[-1]
    assert failure.variant == NotificationVariant.DESTRUCTIVE
    assert failure.title == "Failed to load notes"


async def test_load_requires_patient_id(gateway, session):
    sync = PatientNotesSync(gateway, session)
    with pytest.raises(ValueError):
        await sync.load()


async def test_read_path_does_not_provision_tables(gateway, session):
    await PatientNotesSync.mount(gateway, session, "p-001")
    assert settings.notes_provision_function not in gateway.calls


@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
async def test_blank_note_is_rejected_without_gateway_call(gateway, session, content):
    sync = await PatientNotesSync.mount(gateway, session, "p-001")
    calls_before = list(gateway.calls)

    assert await sync.add_note(content) is False
    assert gateway.calls == calls_before
    assert sync.is_saving is False
    assert sync.notes == []


async def test_add_failure_leaves_notes_unchanged(session):
    gateway = _gateway_with_two_notes(session)
    sync = await PatientNotesSync.mount(gateway, session, "p-001")

    gateway.fail_on(settings.notes_add_rpc)
    assert await sync.add_note("Will not persist") is False
    assert [n.id for n in sync.notes] == ["n2", "n1"]
    assert sync.notifier.notifications[-1].title == "Failed to save note"


async def test_add_with_empty_gateway_response_is_a_failure(gateway, session):
    gateway.register_procedure(settings.notes_add_rpc, lambda params, s: None)
    sync = PatientNotesSync(gateway, session, patient_id="p-001")

    assert await sync.add_note("Lost in transit") is False
    assert sync.notes == []
    assert sync.is_saving is False


class SavingFlagGateway(InMemoryGateway):
    """Records the module's saving flag while the add call is in flight."""

    def __init__(self) -> None:
        super().__init__()
        self.sync = None
        self.saving_during_call = []

    async def rpc(self, procedure, params, *, session):
        if procedure == settings.notes_add_rpc:
            self.saving_during_call.append(self.sync.is_saving)
        return await super().rpc(procedure, params, session=session)


@pytest.mark.parametrize("fail", [False, True])
async def test_is_saving_only_true_during_add(session, fail):
    gateway = SavingFlagGateway()
    sync = PatientNotesSync(gateway, session, patient_id="p-001")
    gateway.sync = sync
    if fail:
        gateway.fail_on(settings.notes_add_rpc)

    assert sync.is_saving is False
    result = await sync.add_note("Check saving flag")
    assert sync.is_saving is False
    assert result is (not fail)
    if not fail:
        assert gateway.saving_during_call == [True]


async def test_delete_absent_id_leaves_notes_unchanged(session):
    gateway = _gateway_with_two_notes(session)
    sync = await PatientNotesSync.mount(gateway, session, "p-001")

    assert await sync.delete_note("does-not-exist") is True
    assert [n.id for n in sync.notes] == ["n2", "n1"]

    gateway.fail_on(settings.notes_delete_rpc)
    assert await sync.delete_note("does-not-exist") is False
    assert [n.id for n in sync.notes] == ["n2", "n1"]


async def test_delete_failure_keeps_note(session):
    gateway = _gateway_with_two_notes(session)
    sync = await PatientNotesSync.mount(gateway, session, "p-001")
    gateway.fail_on(settings.notes_delete_rpc)

    assert await sync.delete_note("n2") is False
    assert [n.id for n in sync.notes] == ["n2", "n1"]
    assert sync.notifier.notifications[-1].variant == NotificationVariant.DESTRUCTIVE


async def test_notes_are_scoped_to_the_session_user(session):
    gateway = _gateway_with_two_notes(session)
    other = Session(user_id="user-2", access_token="token-2")

    sync = await PatientNotesSync.mount(gateway, other, "p-001")
    assert sync.notes == []


async def test_changing_patient_reloads_and_same_patient_does_not(session):
    gateway = _gateway_with_two_notes(session)
    gateway.seed_note(patient_id="p-002", user_id=session.user_id, content="C", note_id="n9", created_at="2024-02-01")
    sync = await PatientNotesSync.mount(gateway, session, "p-001")
    load_calls = gateway.calls.count(settings.notes_get_rpc)

    await sync.set_patient_id("p-001")
    assert gateway.calls.count(settings.notes_get_rpc) == load_calls

    await sync.set_patient_id("p-002")
    assert [n.id for n in sync.notes] == ["n9"]

    await sync.set_patient_id("")
    assert sync.notes == []
    assert gateway.calls.count(settings.notes_get_rpc) == load_calls + 1


def test_module_requires_a_valid_session(gateway):
    with pytest.raises(UnauthenticatedError):
        PatientNotesSync(gateway, None)

    expired = Session(
        user_id="user-1",
        access_token="token-1",
        expires_at=datetime(2000, 1, 1, tzinfo=timezone.utc),
    )
    with pytest.raises(UnauthenticatedError):
        PatientNotesSync(gateway, expired)


def test_operations_declare_confirm_then_apply():
    assert PatientNotesSync.add_note.update_policy == UpdatePolicy.CONFIRM_THEN_APPLY
    assert PatientNotesSync.delete_note.update_policy == UpdatePolicy.CONFIRM_THEN_APPLY


@pytest.mark.parametrize(
    "timestamp, expected",
    [
        ("2024-01-02T10:30:00Z", "January 2, 2024, 10:30 AM"),
        ("2024-01-02T22:05:00+00:00", "January 2, 2024, 10:05 PM"),
        ("2024-01-01", "January 1, 2024, 12:00 AM"),
        ("2024-07-04T12:00:00.123456+00:00", "July 4, 2024, 12:00 PM"),
    ],
)
def test_format_note_timestamp(timestamp, expected):
    assert format_note_timestamp(timestamp, "UTC") == expected


def test_format_note_timestamp_uses_display_timezone():
    assert format_note_timestamp("2024-01-02T15:05:00+00:00", "America/New_York") == "January 2, 2024, 10:05 AM"


@pytest.mark.parametrize(
    "timestamp, tz_name",
    [
        ("not a date", "UTC"),
        ("0001-01-01T00:00:00+01:00", "UTC"),
        ("9999-12-31T23:30:00+00:00", "Asia/Tokyo"),
    ],
)
def test_format_note_timestamp_returns_unparseable_input_unchanged(timestamp, tz_name):
    assert format_note_timestamp(timestamp, tz_name) == timestamp
