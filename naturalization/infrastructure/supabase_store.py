import functools
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

import structlog  # type: ignore[import-not-found]
from pybreaker import CircuitBreaker, CircuitBreakerError  # type: ignore[import-not-found]
from tenacity import retry  # type: ignore[import-not-found]
from tenacity import stop_after_attempt, wait_exponential

import supabase  # type: ignore[import-not-found]
from naturalization.core.config import Settings, get_settings
from naturalization.core.exceptions import SupabaseError
from naturalization.domain.schemas import MetaWrite

logger = structlog.get_logger(__name__)

# Circuit breaker for Supabase calls
supabase_breaker = CircuitBreaker(fail_max=5, reset_timeout=60)

F = TypeVar("F", bound=Callable[..., Any])


def translate_open_circuit(func: F) -> F:
    """Surface an open (or tripping) circuit as SupabaseError so callers see one store error type."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except CircuitBreakerError as e:
            logger.error("supabase_circuit_open", operation=func.__name__, error=str(e))
            raise SupabaseError(
                "Supabase circuit breaker is open", details={"operation": func.__name__}
            ) from e

    return wrapper  # type: ignore[return-value]


def create_supabase_client(settings: Optional[Settings] = None) -> Any:
    """Service-role client with session handling and realtime disabled."""
    settings = settings or get_settings()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise SupabaseError(
            "Supabase store requires SUPABASE_URL and SUPABASE_SERVICE_KEY",
            details={"supabase_url": settings.supabase_url},
        )

    client_options: Any = None
    # Use ClientOptions if present in the installed supabase package; otherwise pass None
    if hasattr(supabase, "ClientOptions"):
        client_options = supabase.ClientOptions(  # type: ignore[attr-defined]
            auto_refresh_token=False,
            persist_session=False,
        )
    return supabase.create_client(  # type: ignore[attr-defined]
        settings.supabase_url, settings.supabase_service_key, options=client_options
    )


class SupabaseRecordStore:
    """
    Form records kept as an entries table (id, form_id) plus an entry meta
    table of (entry_id, meta_key, meta_value) rows.
    """

    def __init__(self, client: Any = None, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.client: Any = client or create_supabase_client(settings)
        self.entries_table = settings.record_table
        self.meta_table = settings.record_meta_table

    @translate_open_circuit
    @supabase_breaker
    @retry(
        wait=wait_exponential(multiplier=1, min=2, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def record_exists(self, record_id: str) -> bool:
        try:
            response = (
                self.client.table(self.entries_table)
                .select("id")
                .eq("id", str(record_id))
                .limit(1)
                .execute()
            )
            return bool(response.data)
        except Exception as e:
            logger.error("record_exists_error", record_id=record_id, error=str(e))
            raise SupabaseError(f"Failed to look up record: {str(e)}")

    @translate_open_circuit
    @supabase_breaker
    @retry(
        wait=wait_exponential(multiplier=1, min=2, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def read_field(self, record_id: str, field_id: str) -> Optional[str]:
        try:
            response = (
                self.client.table(self.meta_table)
                .select("meta_value")
                .eq("entry_id", str(record_id))
                .eq("meta_key", str(field_id))
                .limit(1)
                .execute()
            )
            if not response.data:
                return None
            return response.data[0].get("meta_value")
        except Exception as e:
            logger.error(
                "read_field_error", record_id=record_id, field_id=field_id, error=str(e)
            )
            raise SupabaseError(f"Failed to read field: {str(e)}")

    @translate_open_circuit
    @supabase_breaker
    @retry(
        wait=wait_exponential(multiplier=1, min=2, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def read_fields(self, record_id: str, field_ids: Sequence[str]) -> Dict[str, str]:
        try:
            response = (
                self.client.table(self.meta_table)
                .select("meta_key, meta_value")
                .eq("entry_id", str(record_id))
                .in_("meta_key", [str(f) for f in field_ids])
                .execute()
            )
            return {
                row["meta_key"]: row["meta_value"]
                for row in response.data or []
                if row.get("meta_value") is not None
            }
        except Exception as e:
            logger.error("read_fields_error", record_id=record_id, error=str(e))
            raise SupabaseError(f"Failed to read fields: {str(e)}")

    @translate_open_circuit
    @supabase_breaker
    @retry(
        wait=wait_exponential(multiplier=1, min=2, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def write_field(self, record_id: str, field_id: str, value: str) -> bool:
        try:
            self.client.table(self.meta_table).upsert(
                {
                    "entry_id": str(record_id),
                    "meta_key": str(field_id),
                    "meta_value": value,
                },
                on_conflict="entry_id,meta_key",
            ).execute()
            return True
        except Exception as e:
            logger.error(
                "write_field_error", record_id=record_id, field_id=field_id, error=str(e)
            )
            raise SupabaseError(f"Failed to write field: {str(e)}")

    @translate_open_circuit
    @supabase_breaker
    @retry(
        wait=wait_exponential(multiplier=1, min=2, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def find_records_by_field(self, form_id: int, field_id: str, value: str) -> List[str]:
        try:
            matches = (
                self.client.table(self.meta_table)
                .select("entry_id")
                .eq("meta_key", str(field_id))
                .eq("meta_value", str(value))
                .execute()
            )
            entry_ids = [str(row["entry_id"]) for row in matches.data or []]
            if not entry_ids:
                return []

            entries = (
                self.client.table(self.entries_table)
                .select("id")
                .eq("form_id", form_id)
                .in_("id", entry_ids)
                .execute()
            )
            return [str(row["id"]) for row in entries.data or []]
        except Exception as e:
            logger.error(
                "find_records_error", form_id=form_id, field_id=field_id, error=str(e)
            )
            raise SupabaseError(f"Failed to find records: {str(e)}")


class SupabaseUserMetaStore:
    """User meta as (user_id, meta_key, meta_value) rows."""

    def __init__(self, client: Any = None, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.client: Any = client or create_supabase_client(settings)
        self.table = settings.user_meta_table

    @translate_open_circuit
    @supabase_breaker
    @retry(
        wait=wait_exponential(multiplier=1, min=2, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def get_user_meta(self, user_id: str, key: str) -> Optional[str]:
        try:
            response = (
                self.client.table(self.table)
                .select("meta_value")
                .eq("user_id", str(user_id))
                .eq("meta_key", key)
                .limit(1)
                .execute()
            )
            if not response.data:
                return None
            return response.data[0].get("meta_value")
        except Exception as e:
            logger.error("get_user_meta_error", user_id=user_id, key=key, error=str(e))
            raise SupabaseError(f"Failed to read user meta: {str(e)}")

    def set_user_meta(self, user_id: str, key: str, value: str) -> bool:
        return self.apply_user_meta(user_id, [MetaWrite(key=key, value=value)])

    def delete_user_meta(self, user_id: str, key: str) -> bool:
        return self.apply_user_meta(user_id, [MetaWrite(key=key, value=None)])

    @translate_open_circuit
    @supabase_breaker
    @retry(
        wait=wait_exponential(multiplier=1, min=2, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def apply_user_meta(self, user_id: str, writes: Iterable[MetaWrite]) -> bool:
        """
        All writes go out as a single upsert statement, so the batch lands or
        fails as a whole. A removal is stored as a row with a null meta_value,
        which get_user_meta reads back as absent.

        Concurrent admin edits are last-writer-wins.
        """
        writes = list(writes)
        if not writes:
            return True
        # Last write per key wins within a batch; upsert rejects duplicate conflict keys
        latest = {w.key: w.value for w in writes}
        rows = [
            {"user_id": str(user_id), "meta_key": key, "meta_value": value}
            for key, value in latest.items()
        ]

        try:
            self.client.table(self.table).upsert(rows, on_conflict="user_id,meta_key").execute()
            return True
        except Exception as e:
            logger.error(
                "apply_user_meta_error",
                user_id=user_id,
                keys=[w.key for w in writes],
                error=str(e),
            )
            raise SupabaseError(f"Failed to write user meta: {str(e)}")
