"""
Database Migration Script: Create Profiles Table

Creates the profiles table read and written by ProfileRepository. Profiles are
keyed by the identity id issued by the account-creation authority, so `id` is
text rather than a generated UUID.

Run this script directly to create the table:
    cd backend && python migrations/create_profiles_table.py
"""

import asyncio
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text
from database.connection import engine


CREATE_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS public.profiles (
        id VARCHAR(64) PRIMARY KEY,

        -- Contact
        email VARCHAR(320),
        first_name VARCHAR(255),
        last_name VARCHAR(255),
        phone VARCHAR(50),

        -- Free-form address object (line1, line2, city, state, postal_code, country)
        mailing_address JSONB,

        -- External linkage, set once at account creation
        billing_account_id VARCHAR(255),
        crm_account_id VARCHAR(255),

        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_profiles_email ON public.profiles(email)",
    "CREATE INDEX IF NOT EXISTS idx_profiles_billing_account_id ON public.profiles(billing_account_id)",
    "CREATE INDEX IF NOT EXISTS idx_profiles_crm_account_id ON public.profiles(crm_account_id)",
    """
    COMMENT ON TABLE public.profiles IS
        'User profiles; mailing_address is mirrored to billing and CRM on change'
    """,
]


async def create_tables():
    """Create the profiles table and its indexes."""
    print("Creating profiles table...")

    async with engine.begin() as conn:
        try:
            for statement in CREATE_STATEMENTS:
                await conn.execute(text(statement))
            print("✅ Table created successfully!")

            result = await conn.execute(text("""
                SELECT COUNT(*) FROM information_schema.columns
                WHERE table_schema = 'public' AND table_name = 'profiles'
            """))
            print(f"   - profiles: {result.scalar()} columns")

        except Exception as e:
            print(f"❌ Error creating table: {e}")
            raise


async def drop_tables():
    """Drop the table (for testing)."""
    print("Dropping profiles table...")
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE IF EXISTS public.profiles CASCADE"))
        print("✅ Table dropped")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage profiles table")
    parser.add_argument("--drop", action="store_true", help="Drop table instead of create")
    args = parser.parse_args()

    if args.drop:
        asyncio.run(drop_tables())
    else:
        asyncio.run(create_tables())
