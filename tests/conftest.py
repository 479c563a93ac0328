import os
from decimal import Decimal
from typing import AsyncGenerator, Dict, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from hostel_fees.auth.schemas import CurrentUser
from hostel_fees.auth.security import create_access_token
from hostel_fees.core.enums import Role
from hostel_fees.core.models import FeeCategory, Hostel, PaymentMode, Room, Student, StudentDue
from hostel_fees.db.session import Base, get_db
from hostel_fees.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def test_engine():
    """Fresh in-memory database per test. StaticPool keeps every session on the one connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# --- Callers ---
def auth_headers(user_id: int, role: Role, hostel_id: Optional[int] = None) -> Dict[str, str]:
    token = create_access_token(
        subject={
            "user_id": user_id,
            "email": f"user{user_id}@example.com",
            "role_id": int(role),
            "hostel_id": hostel_id,
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin() -> CurrentUser:
    return CurrentUser(user_id=1, email="admin@example.com", role_id=Role.ADMIN)


@pytest.fixture()
def admin_headers() -> Dict[str, str]:
    return auth_headers(1, Role.ADMIN)


@pytest.fixture()
def owner_headers(hostel: Dict[str, int]) -> Dict[str, str]:
    """Owner bound to the seeded hostel."""
    return auth_headers(2, Role.OWNER, hostel_id=hostel["hostel_id"])


# --- Seed data ---
async def create_hostel(db: AsyncSession, name: str = "Green Nest") -> int:
    hostel = Hostel(hostel_name=name, address="12 MG Road", city="Pune", contact_number="9800000000")
    db.add(hostel)
    await db.flush()
    return hostel.hostel_id


async def create_room(db: AsyncSession, hostel_id: int, room_number: str = "101", rent_per_bed=None) -> int:
    room = Room(hostel_id=hostel_id, room_number=room_number, floor_number=1, rent_per_bed=rent_per_bed)
    db.add(room)
    await db.flush()
    return room.room_id


async def create_student(
    db: AsyncSession,
    hostel_id: int,
    first_name: str,
    room_id: Optional[int] = None,
    monthly_rent=None,
    status: str = "Active",
) -> int:
    student = Student(
        hostel_id=hostel_id,
        room_id=room_id,
        first_name=first_name,
        last_name="Sharma",
        phone="9000000000",
        status=status,
        monthly_rent=monthly_rent,
        due_day=5,
    )
    db.add(student)
    await db.flush()
    return student.student_id


async def create_fee_category(
    db: AsyncSession, hostel_id: int, fee_type: str, amount, frequency: str = "Monthly"
) -> int:
    fc = FeeCategory(hostel_id=hostel_id, fee_type=fee_type, amount=amount, frequency=frequency)
    db.add(fc)
    await db.flush()
    return fc.fee_structure_id


@pytest.fixture()
async def hostel(db_session: AsyncSession) -> Dict[str, int]:
    """
    One hostel with two billable students, plus students that must never be billed.

    Rent comes from fee_structure "Monthly Rent" via each student's rent; Electricity is a flat 500.
    """
    hostel_id = await create_hostel(db_session)
    room_id = await create_room(db_session, hostel_id, "101", rent_per_bed=Decimal("6000"))
    ravi = await create_student(db_session, hostel_id, "Ravi", room_id=room_id, monthly_rent=Decimal("6000"))
    # No frozen rent: falls back to the room's rent per bed
    anil = await create_student(db_session, hostel_id, "Anil", room_id=room_id)
    no_room = await create_student(db_session, hostel_id, "Kiran")
    inactive = await create_student(
        db_session, hostel_id, "Mohan", room_id=room_id, monthly_rent=Decimal("6000"), status="Inactive"
    )
    rent = await create_fee_category(db_session, hostel_id, "Monthly Rent", Decimal("1"))
    electricity = await create_fee_category(db_session, hostel_id, "Electricity", Decimal("500"))
    deposit = await create_fee_category(db_session, hostel_id, "Caution Deposit", Decimal("10000"), "One-Time")
    cash = PaymentMode(payment_mode_name="Cash", order_index=1)
    upi = PaymentMode(payment_mode_name="UPI", order_index=2)
    db_session.add_all([cash, upi])
    await db_session.commit()
    return {
        "hostel_id": hostel_id,
        "room_id": room_id,
        "ravi": ravi,
        "anil": anil,
        "no_room": no_room,
        "inactive": inactive,
        "rent": rent,
        "electricity": electricity,
        "deposit": deposit,
        "cash": cash.payment_mode_id,
        "upi": upi.payment_mode_id,
    }


async def fetch_dues(db: AsyncSession, student_id: int, month: Optional[str] = None):
    """Reload a student's dues from the database, bypassing stale identity-map state."""
    stmt = select(StudentDue).where(StudentDue.student_id == student_id)
    if month is not None:
        stmt = stmt.where(StudentDue.due_month == month)
    stmt = stmt.order_by(StudentDue.due_date, StudentDue.due_id).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalars().all()
