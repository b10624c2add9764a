"""
Profile Repository

Persistence for ProfileEntity on the `profiles` table. The mapping between the
entity and its storage row is explicit (profile_to_row / row_to_profile).
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import ProfileEntity
from services.errors import PersistFailure

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = (
    "id", "email", "first_name", "last_name", "phone", "mailing_address",
    "billing_account_id", "crm_account_id", "created_at", "updated_at",
)


def profile_to_row(entity: ProfileEntity) -> Dict[str, Any]:
    """Entity -> bind parameters for the profiles table."""
    return {
        "id": entity.id,
        "email": entity.email,
        "first_name": entity.first_name,
        "last_name": entity.last_name,
        "phone": entity.phone,
        "mailing_address": json.dumps(entity.mailing_address) if entity.mailing_address is not None else None,
        "billing_account_id": entity.billing_account_id,
        "crm_account_id": entity.crm_account_id,
        "created_at": entity.created_at,
        "updated_at": entity.updated_at,
    }


def row_to_profile(row: Any) -> ProfileEntity:
    """profiles row -> entity. Accepts SQLAlchemy rows or plain mappings."""
    data = row._mapping if hasattr(row, "_mapping") else row

    address = data.get("mailing_address")
    if isinstance(address, str):
        address = json.loads(address)

    return ProfileEntity(
        id=str(data["id"]),
        email=data.get("email"),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        phone=data.get("phone"),
        mailing_address=address,
        billing_account_id=data.get("billing_account_id"),
        crm_account_id=data.get("crm_account_id"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )


class ProfileRepository:
    """Loads and writes profiles. Storage faults surface as PersistFailure."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_by_id(self, profile_id: str) -> Optional[ProfileEntity]:
        query = text(f"""
            SELECT {', '.join(PROFILE_COLUMNS)}
            FROM profiles WHERE id = :id
        """)
        try:
            result = await self.db.execute(query, {"id": profile_id})
            row = result.fetchone()
        except SQLAlchemyError as e:
            logger.error(f"Error loading profile {profile_id}: {e}")
            raise PersistFailure(f"Unable to load profile {profile_id}") from e

        if not row:
            return None

        return row_to_profile(row)

    async def write(self, entity: ProfileEntity) -> ProfileEntity:
        """Write every mapped field of an existing profile."""
        entity = entity.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        params = profile_to_row(entity)
        params.pop("created_at")

        query = text("""
            UPDATE profiles SET
                email = :email,
                first_name = :first_name,
                last_name = :last_name,
                phone = :phone,
                mailing_address = CAST(:mailing_address AS JSONB),
                billing_account_id = :billing_account_id,
                crm_account_id = :crm_account_id,
                updated_at = :updated_at
            WHERE id = :id
        """)
        try:
            result = await self.db.execute(query, params)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error writing profile {entity.id}: {e}")
            raise PersistFailure(f"Unable to write profile {entity.id}") from e

        if result.rowcount == 0:
            raise PersistFailure(f"Profile {entity.id} disappeared before write")

        return entity

    async def create(self, entity: ProfileEntity) -> ProfileEntity:
        """First durable write for a new profile."""
        now = datetime.now(timezone.utc)
        entity = entity.model_copy(update={"created_at": now, "updated_at": now})

        query = text(f"""
            INSERT INTO profiles ({', '.join(PROFILE_COLUMNS)})
            VALUES (
                :id, :email, :first_name, :last_name, :phone,
                CAST(:mailing_address AS JSONB),
                :billing_account_id, :crm_account_id, :created_at, :updated_at
            )
        """)
        try:
            await self.db.execute(query, profile_to_row(entity))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error creating profile {entity.id}: {e}")
            raise PersistFailure(f"Unable to create profile {entity.id}") from e

        logger.info(f"Profile created: {entity.id}")
        return entity
