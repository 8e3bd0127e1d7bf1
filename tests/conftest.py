"""Shared fixtures: in-memory stores and a fixed clock."""

from datetime import date

import pytest

from naturalization.core.config import Settings
from naturalization.domain.fields import (
    FORM_MASTER,
    FORM_RESIDENCES,
    FORM_TIME_OUTSIDE,
    MASTER_FIELD_APPLICATION_DATE,
    MASTER_FIELD_CONTROLLING_FACTOR,
    RES_FIELD_DURATION,
    RES_FIELD_FROM_DATE,
    RES_FIELD_PARENT_ENTRY_ID,
    RES_FIELD_STATE,
    RES_FIELD_TO_DATE,
    TOC_FIELD_COUNTRIES,
    TOC_FIELD_DEPARTURE_DATE,
    TOC_FIELD_DURATION,
    TOC_FIELD_PARENT_ENTRY_ID,
    TOC_FIELD_RETURN_DATE,
)
from naturalization.infrastructure import InMemoryRecordStore, InMemoryUserMetaStore
from naturalization.services.lockout import LockoutService

TODAY = date(2025, 6, 1)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def settings():
    return Settings(environment="test", _env_file=None)


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def user_store():
    return InMemoryUserMetaStore()


@pytest.fixture
def lockout_service(user_store):
    return LockoutService(user_store, unlock_lead_months=6)


@pytest.fixture
def make_master(record_store):
    """Create a master record; returns its id."""

    def _make(controlling_factor="LPR", application_date="2026-01-15", **fields):
        values = {
            MASTER_FIELD_CONTROLLING_FACTOR: controlling_factor,
            MASTER_FIELD_APPLICATION_DATE: application_date,
        }
        values.update(fields)
        return record_store.create_record(FORM_MASTER, values)

    return _make


@pytest.fixture
def add_trip(record_store):
    """Attach a time-outside row to a master record; returns its id."""

    def _add(master_id, departure, returned, duration="", countries="Canada"):
        return record_store.create_record(
            FORM_TIME_OUTSIDE,
            {
                TOC_FIELD_PARENT_ENTRY_ID: master_id,
                TOC_FIELD_DEPARTURE_DATE: departure,
                TOC_FIELD_RETURN_DATE: returned,
                TOC_FIELD_DURATION: duration,
                TOC_FIELD_COUNTRIES: countries,
            },
        )

    return _add


@pytest.fixture
def add_residence(record_store):
    """Attach a residence row to a master record; returns its id."""

    def _add(master_id, start, end="", duration="", state="CA"):
        return record_store.create_record(
            FORM_RESIDENCES,
            {
                RES_FIELD_PARENT_ENTRY_ID: master_id,
                RES_FIELD_FROM_DATE: start,
                RES_FIELD_TO_DATE: end,
                RES_FIELD_DURATION: duration,
                RES_FIELD_STATE: state,
            },
        )

    return _add
