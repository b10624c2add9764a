"""
Unit Tests for ProfileRepository and the profile row mapping

Run with: pytest tests/test_profile_repository.py -v
"""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.exc import OperationalError

from models import ProfileEntity
from services.errors import PersistFailure
from services.profile_repository import ProfileRepository, profile_to_row, row_to_profile


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


class TestRowMapping:

    def test_address_serialized_as_json(self, stored_profile):
        row = profile_to_row(stored_profile)

        assert json.loads(row["mailing_address"])["city"] == "Reno"
        assert row["billing_account_id"] == "cus_123"

    def test_missing_address_stays_null(self):
        assert profile_to_row(ProfileEntity(id="u1"))["mailing_address"] is None

    def test_row_with_json_string_address(self):
        profile = row_to_profile({"id": "u1", "mailing_address": '{"city": "Reno"}'})

        assert profile.mailing_address == {"city": "Reno"}

    def test_row_with_decoded_address(self):
        row = MagicMock()
        row._mapping = {"id": "u1", "email": "a@example.com", "mailing_address": {"city": "Reno"}}

        profile = row_to_profile(row)

        assert profile.email == "a@example.com"
        assert profile.mailing_address == {"city": "Reno"}


class TestProfileRepository:

    @pytest.mark.asyncio
    async def test_load_missing_returns_none(self, mock_db):
        result = MagicMock()
        result.fetchone.return_value = None
        mock_db.execute.return_value = result

        assert await ProfileRepository(mock_db).load_by_id("u1") is None

    @pytest.mark.asyncio
    async def test_load_fault_is_persist_failure(self, mock_db):
        mock_db.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(PersistFailure):
            await ProfileRepository(mock_db).load_by_id("u1")

    @pytest.mark.asyncio
    async def test_write_commits_and_stamps(self, mock_db, stored_profile):
        result = MagicMock()
        result.rowcount = 1
        mock_db.execute.return_value = result

        written = await ProfileRepository(mock_db).write(stored_profile)

        assert written.updated_at is not None
        mock_db.commit.assert_awaited_once()
        params = mock_db.execute.call_args.args[1]
        assert "created_at" not in params

    @pytest.mark.asyncio
    async def test_write_of_vanished_row_fails(self, mock_db, stored_profile):
        result = MagicMock()
        result.rowcount = 0
        mock_db.execute.return_value = result

        with pytest.raises(PersistFailure):
            await ProfileRepository(mock_db).write(stored_profile)

    @pytest.mark.asyncio
    async def test_write_fault_rolls_back(self, mock_db, stored_profile):
        mock_db.execute.side_effect = OperationalError("UPDATE", {}, Exception("gone"))

        with pytest.raises(PersistFailure):
            await ProfileRepository(mock_db).write(stored_profile)

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_sets_timestamps(self, mock_db, stored_profile):
        created = await ProfileRepository(mock_db).create(stored_profile)

        assert created.created_at is not None
        assert created.created_at == created.updated_at
        mock_db.commit.assert_awaited_once()
