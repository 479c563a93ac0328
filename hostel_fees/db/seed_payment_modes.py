"""
Seed script to populate the payment_modes table.

This script:
1. Creates the fees tables if they do not exist (--create-tables)
2. Inserts the standard payment modes, or re-orders existing ones

Usage: python -m hostel_fees.db.seed_payment_modes [--create-tables]
"""
import argparse
import asyncio
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_fees.core.models import PaymentMode
from hostel_fees.db.session import AsyncSessionLocal, Base, engine


# (payment_mode_name, order_index)
PAYMENT_MODES: List[Tuple[str, int]] = [
    ("Cash", 1),
    ("UPI", 2),
    ("Card", 3),
    ("Bank Transfer", 4),
    ("Cheque", 5),
]


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_payment_modes(db: AsyncSession) -> Tuple[int, int]:
    """Insert missing payment modes and refresh the order of existing ones. Returns (created, updated)."""
    created = 0
    updated = 0

    for name, order_index in PAYMENT_MODES:
        stmt = select(PaymentMode).where(PaymentMode.payment_mode_name == name)
        result = await db.execute(stmt)
        existing = result.scalar_one_or_none()

        if existing:
            existing.order_index = order_index
            updated += 1
        else:
            db.add(PaymentMode(payment_mode_name=name, order_index=order_index))
            created += 1

    await db.commit()
    return created, updated


async def main(create: bool = False) -> None:
    if create:
        await create_tables()
        print("Tables created (existing tables left as they are).")
    async with AsyncSessionLocal() as db:
        try:
            created, updated = await seed_payment_modes(db)
        except Exception as e:
            print(f"Error seeding payment modes: {e}")
            await db.rollback()
            raise
    print(f"Payment modes created: {created}, updated: {updated}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed payment modes")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args()
    asyncio.run(main(create=args.create_tables))
