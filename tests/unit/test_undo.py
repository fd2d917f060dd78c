"""Unit tests for the undo manager and reversal descriptors."""

import pytest

from lam_engine.actions.base import ActionContext, RiskTier
from lam_engine.actions.errors import CrossTenantError
from lam_engine.events import AuditEventType, AuditTrail
from lam_engine.store import CONTACTS, PROFILES, TASKS
from lam_engine.undo import DeleteRecord, RestoreFields, UndoManager

from helpers import OTHER_TENANT, TENANT, call


@pytest.fixture
def undo(store, clock):
    return UndoManager(store, window_seconds=60, clock=clock, audit=AuditTrail())


class TestUndoRoundTrip:
    """Test undo through the engine."""

    @pytest.mark.asyncio
    async def test_restores_previous_value(self, engine, add_contact, store):
        """Test undo writes back the field value from before the run."""
        contact = await add_contact("Jane Doe", email="old@example.com")

        run = await engine.submit(TENANT, [call("updateContact", id=contact["id"], patch={"email": "new@example.com"})])
        assert (await store.get(CONTACTS, contact["id"]))["email"] == "new@example.com"
        assert await engine.can_undo(TENANT)

        result = await engine.undo_last_run(TENANT)

        assert result.success
        assert result.message == "Undid 1 change(s) from the last run."
        assert result.data == {"runId": run.id, "changesReverted": 1}
        restored = await store.get(CONTACTS, contact["id"])
        assert restored["email"] == "old@example.com"
        assert restored["updated_at"] == contact["updated_at"]
        assert (await engine.get_run(TENANT, run.id)).undone

    @pytest.mark.asyncio
    async def test_second_undo_fails(self, engine, add_contact):
        """Test a consumed record cannot be undone again."""
        contact = await add_contact("Jane Doe")
        await engine.submit(TENANT, [call("updateContact", id=contact["id"], patch={"notes": "x"})])

        first = await engine.undo_last_run(TENANT)
        second = await engine.undo_last_run(TENANT)

        assert first.success
        assert not second.success
        assert second.message == "Nothing to undo: the last run was already undone."
        assert not await engine.can_undo(TENANT)

    @pytest.mark.asyncio
    async def test_undo_creations_in_reverse_order(self, engine, store):
        """Test every change of the run is reverted."""
        await engine.submit(
            TENANT,
            [
                call("createContact", name="Jane Doe"),
                call("createTask", title="Call Jane"),
                call("setTheme", theme="green"),
            ],
        )

        result = await engine.undo_last_run(TENANT)

        assert result.success
        assert result.data["changesReverted"] == 3
        assert await store.find(CONTACTS, TENANT) == []
        assert await store.find(TASKS, TENANT) == []
        assert await store.get(PROFILES, TENANT) is None

    @pytest.mark.asyncio
    async def test_theme_restored(self, engine, store):
        await engine.submit(TENANT, [call("setTheme", theme="ember")])
        await engine.submit(TENANT, [call("setTheme", theme="violet")])

        await engine.undo_last_run(TENANT)

        assert (await store.get(PROFILES, TENANT))["theme"] == "ember"

    @pytest.mark.asyncio
    async def test_only_latest_run_undone(self, engine, store):
        """Test undo reverses the most recent run only."""
        await engine.submit(TENANT, [call("createContact", name="First")])
        await engine.submit(TENANT, [call("createContact", name="Second")])

        await engine.undo_last_run(TENANT)

        assert [c["name"] for c in await store.find(CONTACTS, TENANT)] == ["First"]
        second = await engine.undo_last_run(TENANT)
        assert not second.success

    @pytest.mark.asyncio
    async def test_nothing_to_undo(self, engine):
        result = await engine.undo_last_run(TENANT)

        assert not result.success
        assert result.message == "Nothing to undo."

    @pytest.mark.asyncio
    async def test_read_only_run_has_nothing_to_undo(self, engine):
        await engine.submit(TENANT, [call("getPipelineSummary")])

        assert not await engine.can_undo(TENANT)

    @pytest.mark.asyncio
    async def test_tenants_isolated(self, engine, store):
        """Test one tenant cannot undo another tenant's run."""
        await engine.submit(TENANT, [call("createContact", name="Jane Doe")])

        result = await engine.undo_last_run(OTHER_TENANT)

        assert not result.success
        assert len(await store.find(CONTACTS, TENANT)) == 1


class TestUndoWindow:
    """Test undo record expiry."""

    @pytest.mark.asyncio
    async def test_expired_record(self, engine, clock, store):
        """Test undo after the window reports expiry."""
        await engine.submit(TENANT, [call("createContact", name="Jane Doe")])

        clock.advance(61)

        assert not await engine.can_undo(TENANT)
        result = await engine.undo_last_run(TENANT)
        assert not result.success
        assert result.message == "Nothing to undo: the undo window for the last run has expired."
        assert len(await store.find(CONTACTS, TENANT)) == 1

    @pytest.mark.asyncio
    async def test_within_window(self, engine, clock):
        await engine.submit(TENANT, [call("createContact", name="Jane Doe")])

        clock.advance(59)

        assert await engine.can_undo(TENANT)


class TestUndoManager:
    """Test UndoManager directly."""

    @pytest.mark.asyncio
    async def test_capture_ignores_non_mutations(self, undo):
        """Test tier-0 and tier-2 results are never captured."""
        context = ActionContext(tenant_id=TENANT, run_id="r1")

        await undo.capture(context, DeleteRecord(CONTACTS, "c1"), RiskTier.EXTERNAL)
        await undo.capture(context, DeleteRecord(CONTACTS, "c1"), RiskTier.READ_ONLY)

        assert not await undo.can_undo(TENANT)

    @pytest.mark.asyncio
    async def test_capture_requires_run(self, undo):
        await undo.capture(ActionContext(tenant_id=TENANT), DeleteRecord(CONTACTS, "c1"))

        assert not await undo.can_undo(TENANT)

    @pytest.mark.asyncio
    async def test_revoke(self, undo):
        """Test a revoked record explains why it cannot be undone."""
        await undo.capture(ActionContext(tenant_id=TENANT, run_id="r1"), DeleteRecord(CONTACTS, "c1"))

        assert await undo.revoke("r1", "the last run sent external communication, which cannot be unsent")
        result = await undo.undo_last(TENANT)

        assert not result.success
        assert result.message == "Nothing to undo: the last run sent external communication, which cannot be unsent."

    @pytest.mark.asyncio
    async def test_interleaved_runs_keep_their_reversals(self, undo, store):
        """Test captures of overlapping runs land on their own run's record."""
        a1 = await store.insert(CONTACTS, {"tenant_id": TENANT, "name": "A1"})
        b1 = await store.insert(CONTACTS, {"tenant_id": TENANT, "name": "B1"})
        a2 = await store.insert(CONTACTS, {"tenant_id": TENANT, "name": "A2"})
        run_a = ActionContext(tenant_id=TENANT, run_id="run-a")
        run_b = ActionContext(tenant_id=TENANT, run_id="run-b")

        await undo.capture(run_a, DeleteRecord(CONTACTS, a1["id"]))
        await undo.capture(run_b, DeleteRecord(CONTACTS, b1["id"]))
        await undo.capture(run_a, DeleteRecord(CONTACTS, a2["id"]))

        assert await undo.undoable_run_id(TENANT) == "run-a"
        result = await undo.undo_last(TENANT)

        assert result.success
        assert result.data == {"runId": "run-a", "changesReverted": 2}
        assert [c["name"] for c in await store.find(CONTACTS, TENANT)] == ["B1"]

    @pytest.mark.asyncio
    async def test_later_capture_appends_to_earlier_record(self, undo, store):
        """Test a run resuming after another run keeps its first reversals."""
        b1 = await store.insert(CONTACTS, {"tenant_id": TENANT, "name": "B1"})
        a1 = await store.insert(CONTACTS, {"tenant_id": TENANT, "name": "A1"})
        b2 = await store.insert(CONTACTS, {"tenant_id": TENANT, "name": "B2"})

        await undo.capture(ActionContext(tenant_id=TENANT, run_id="run-b"), DeleteRecord(CONTACTS, b1["id"]))
        await undo.capture(ActionContext(tenant_id=TENANT, run_id="run-a"), DeleteRecord(CONTACTS, a1["id"]))
        await undo.capture(ActionContext(tenant_id=TENANT, run_id="run-b"), DeleteRecord(CONTACTS, b2["id"]))

        result = await undo.undo_last(TENANT)

        assert result.data == {"runId": "run-b", "changesReverted": 2}
        assert [c["name"] for c in await store.find(CONTACTS, TENANT)] == ["A1"]

    @pytest.mark.asyncio
    async def test_revoke_targets_one_run(self, undo):
        await undo.capture(ActionContext(tenant_id=TENANT, run_id="r1"), DeleteRecord(CONTACTS, "c1"))
        await undo.capture(ActionContext(tenant_id=TENANT, run_id="r2"), DeleteRecord(CONTACTS, "c2"))

        assert await undo.revoke("r1", "reason")
        assert await undo.can_undo(TENANT)
        assert await undo.undoable_run_id(TENANT) == "r2"

    @pytest.mark.asyncio
    async def test_revoke_unknown_run(self, undo):
        assert not await undo.revoke("missing", "reason")

    @pytest.mark.asyncio
    async def test_undoable_run_id(self, undo):
        await undo.capture(ActionContext(tenant_id=TENANT, run_id="r1"), DeleteRecord(CONTACTS, "c1"))

        assert await undo.undoable_run_id(TENANT) == "r1"
        assert await undo.undoable_run_id(OTHER_TENANT) is None

    @pytest.mark.asyncio
    async def test_partial_undo(self, undo, store):
        """Test a missing record makes the undo incomplete but still consumed."""
        contact = await store.insert(CONTACTS, {"tenant_id": TENANT, "name": "Jane"})
        context = ActionContext(tenant_id=TENANT, run_id="r1")
        await undo.capture(context, DeleteRecord(CONTACTS, contact["id"]))
        await undo.capture(context, DeleteRecord(CONTACTS, "gone"))

        result = await undo.undo_last(TENANT)

        assert not result.success
        assert result.message.startswith("Undo incomplete: reverted 1 of 2 change(s).")
        assert result.data["changesReverted"] == 1
        assert await store.get(CONTACTS, contact["id"]) is None
        assert not await undo.can_undo(TENANT)

    @pytest.mark.asyncio
    async def test_audit_event(self, store, clock):
        audit = AuditTrail()
        undo = UndoManager(store, window_seconds=60, clock=clock, audit=audit)
        await undo.capture(ActionContext(tenant_id=TENANT, run_id="r1"), DeleteRecord(CONTACTS, "c1"))

        await undo.undo_last(TENANT)

        events = await audit.events_for("r1")
        assert [e.event_type for e in events] == [AuditEventType.RUN_UNDONE]


class TestReversals:
    """Test reversal descriptors."""

    @pytest.mark.asyncio
    async def test_restore_fields_from_snapshot(self, store):
        before = await store.insert(CONTACTS, {"tenant_id": TENANT, "name": "Jane", "email": "a@x.com"})
        await store.update(CONTACTS, before["id"], {"email": "b@x.com"})

        reversal = RestoreFields.from_snapshot(CONTACTS, before, ["email"])
        await reversal.apply(store, TENANT)

        restored = await store.get(CONTACTS, before["id"])
        assert restored["email"] == "a@x.com"
        assert restored["updated_at"] == before["updated_at"]
        assert set(reversal.fields) == {"email", "updated_at"}

    @pytest.mark.asyncio
    async def test_reversal_checks_tenant(self, store):
        """Test reversals refuse records of another tenant."""
        record = await store.insert(CONTACTS, {"tenant_id": OTHER_TENANT, "name": "Mallory"})

        with pytest.raises(CrossTenantError):
            await DeleteRecord(CONTACTS, record["id"]).apply(store, TENANT)

        assert await store.get(CONTACTS, record["id"]) is not None

    def test_describe(self):
        assert DeleteRecord(TASKS, "t1").describe() == "delete tasks/t1"
        assert RestoreFields(TASKS, "t1", {"completed": False}).describe() == "restore completed on tasks/t1"
