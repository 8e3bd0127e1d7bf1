"""
Tests for the Supabase-backed stores with a mocked client.
"""
from unittest.mock import MagicMock

import pytest

from naturalization.core.exceptions import RecordStoreError, SupabaseError
from naturalization.domain.schemas import MetaWrite
from naturalization.infrastructure.supabase_store import (
    SupabaseRecordStore,
    SupabaseUserMetaStore,
    create_supabase_client,
    supabase_breaker,
)
from naturalization.services.lockout.lockout_service import LockoutService


@pytest.fixture(autouse=True)
def closed_breaker():
    """The breaker is module-global; failures in one test must not open it for the next."""
    supabase_breaker.close()
    yield
    supabase_breaker.close()


def make_client(*responses):
    """Client whose query builder chains to itself; execute() yields responses in order."""
    query = MagicMock()
    for method in ("select", "eq", "in_", "limit", "upsert", "delete"):
        getattr(query, method).return_value = query
    query.execute.side_effect = [MagicMock(data=data) for data in responses]

    client = MagicMock()
    client.table.return_value = query
    return client, query


class TestClientFactory:
    def test_requires_credentials(self, settings):
        with pytest.raises(SupabaseError):
            create_supabase_client(settings)


class TestSupabaseRecordStore:
    def test_read_field(self, settings):
        client, query = make_client([{"meta_value": "LPR"}])
        store = SupabaseRecordStore(client, settings)

        assert store.read_field("75", "894") == "LPR"
        client.table.assert_called_with("entry_meta")
        query.eq.assert_any_call("meta_key", "894")

    def test_read_field_missing(self, settings):
        client, _ = make_client([])
        assert SupabaseRecordStore(client, settings).read_field("75", "894") is None

    def test_read_fields(self, settings):
        client, _ = make_client(
            [{"meta_key": "894", "meta_value": "DM"}, {"meta_key": "895", "meta_value": None}]
        )
        store = SupabaseRecordStore(client, settings)

        assert store.read_fields("75", ["894", "895"]) == {"894": "DM"}

    def test_find_records_by_field_filters_by_form(self, settings):
        client, query = make_client(
            [{"entry_id": 10}, {"entry_id": 11}],
            [{"id": 11}],
        )
        store = SupabaseRecordStore(client, settings)

        assert store.find_records_by_field(42, "12", "75") == ["11"]
        query.in_.assert_called_with("id", ["10", "11"])

    def test_write_field_upserts(self, settings):
        client, query = make_client([])
        store = SupabaseRecordStore(client, settings)

        assert store.write_field("75", "894", "SC") is True
        query.upsert.assert_called_once_with(
            {"entry_id": "75", "meta_key": "894", "meta_value": "SC"},
            on_conflict="entry_id,meta_key",
        )

    def test_failure_raises_store_error(self, settings):
        client = MagicMock()
        client.table.side_effect = Exception("connection refused")
        store = SupabaseRecordStore(client, settings)

        with pytest.raises(RecordStoreError):
            store.record_exists("75")


class TestSupabaseUserMetaStore:
    def test_get_user_meta(self, settings):
        client, _ = make_client([{"meta_value": "2025-03-15"}])
        store = SupabaseUserMetaStore(client, settings)

        assert store.get_user_meta("42", "nme_eligibility_unlock_date") == "2025-03-15"
        client.table.assert_called_with("user_meta")

    def test_apply_user_meta_single_upsert(self, settings):
        client, query = make_client([])
        store = SupabaseUserMetaStore(client, settings)

        ok = store.apply_user_meta(
            "42",
            [
                MetaWrite(key="nme_eligibility_unlock_date", value="2025-03-15"),
                MetaWrite(key="nme_purgatory_message", value="wait"),
                MetaWrite(key="nme_controlling_desc", value=None),
            ],
        )

        assert ok is True
        query.upsert.assert_called_once_with(
            [
                {"user_id": "42", "meta_key": "nme_eligibility_unlock_date", "meta_value": "2025-03-15"},
                {"user_id": "42", "meta_key": "nme_purgatory_message", "meta_value": "wait"},
                {"user_id": "42", "meta_key": "nme_controlling_desc", "meta_value": None},
            ],
            on_conflict="user_id,meta_key",
        )
        query.delete.assert_not_called()
        assert query.execute.call_count == 1

    def test_apply_user_meta_last_write_per_key_wins(self, settings):
        client, query = make_client([])
        store = SupabaseUserMetaStore(client, settings)

        store.apply_user_meta(
            "42",
            [
                MetaWrite(key="nme_purgatory_message", value="wait"),
                MetaWrite(key="nme_purgatory_message", value=None),
            ],
        )

        query.upsert.assert_called_once_with(
            [{"user_id": "42", "meta_key": "nme_purgatory_message", "meta_value": None}],
            on_conflict="user_id,meta_key",
        )

    def test_apply_user_meta_empty_batch_skips_store(self, settings):
        client, _ = make_client()
        assert SupabaseUserMetaStore(client, settings).apply_user_meta("42", []) is True
        client.table.assert_not_called()

    def test_delete_user_meta_writes_null(self, settings):
        client, query = make_client([])
        store = SupabaseUserMetaStore(client, settings)

        assert store.delete_user_meta("42", "anumber") is True
        query.upsert.assert_called_once_with(
            [{"user_id": "42", "meta_key": "anumber", "meta_value": None}],
            on_conflict="user_id,meta_key",
        )
        query.delete.assert_not_called()

    def test_deleted_key_reads_back_as_absent(self, settings):
        client, _ = make_client([{"meta_value": None}])
        store = SupabaseUserMetaStore(client, settings)

        assert store.get_user_meta("42", "nme_controlling_desc") is None

    def test_failed_write_never_issues_a_separate_delete(self, settings):
        client, query = make_client()
        query.execute.side_effect = Exception("statement timeout")
        store = SupabaseUserMetaStore(client, settings)

        with pytest.raises(SupabaseError):
            store.apply_user_meta(
                "42",
                [
                    MetaWrite(key="nme_eligibility_unlock_date", value="2025-03-15"),
                    MetaWrite(key="nme_controlling_desc", value=None),
                ],
            )

        query.delete.assert_not_called()
        # Every attempt is the same single statement
        assert query.upsert.call_count == query.execute.call_count


# =============================================================================
# Circuit breaker
# =============================================================================


class TestOpenCircuit:
    def test_open_circuit_raises_store_error_on_read(self, settings):
        client, _ = make_client([{"meta_value": "2025-03-15"}])
        store = SupabaseUserMetaStore(client, settings)
        supabase_breaker.open()

        with pytest.raises(SupabaseError) as exc_info:
            store.get_user_meta("42", "nme_eligibility_unlock_date")

        assert isinstance(exc_info.value, RecordStoreError)
        assert exc_info.value.details == {"operation": "get_user_meta"}
        client.table.assert_not_called()

    def test_open_circuit_raises_store_error_on_record_lookup(self, settings):
        client, _ = make_client([{"id": 75}])
        supabase_breaker.open()

        with pytest.raises(RecordStoreError):
            SupabaseRecordStore(client, settings).record_exists("75")

    def test_lockout_service_reports_open_circuit_as_failure(self, settings):
        client, _ = make_client()
        service = LockoutService(SupabaseUserMetaStore(client, settings))
        supabase_breaker.open()

        assert service.set_lockout("42", "2025-03-15", "wait") is False
        assert service.clear_lockout("42") is False
        assert service.is_locked_out("42") is False
        client.table.assert_not_called()
