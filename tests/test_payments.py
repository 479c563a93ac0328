import re
from decimal import Decimal

import pydantic
import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import create_hostel, create_student, fetch_dues
from hostel_fees.api.v1.dues.service import generate_monthly_dues
from hostel_fees.api.v1.payments import service
from hostel_fees.api.v1.payments.schemas import PaymentCreate
from hostel_fees.core.exceptions import NotFoundError, ValidationError
from hostel_fees.core.models import StudentFeePayment


RECEIPT_RE = re.compile(r"^RCP-\d{8}-[0-9A-F]{12}$")


def payment(hostel, amount: str, student: str = "ravi", **kwargs) -> PaymentCreate:
    return PaymentCreate(
        student_id=hostel[student],
        hostel_id=hostel["hostel_id"],
        amount_paid=Decimal(amount),
        payment_mode_id=hostel["cash"],
        **kwargs,
    )


def assert_due_invariants(dues) -> None:
    for due in dues:
        assert due.paid_amount + due.balance_amount == due.due_amount
        assert due.is_paid == (due.balance_amount <= 0)


@pytest.mark.asyncio
async def test_payment_settles_oldest_dues_first(db_session: AsyncSession, hostel, admin) -> None:
    await generate_monthly_dues(db_session, hostel["hostel_id"], "2026-01")
    await generate_monthly_dues(db_session, hostel["hostel_id"], "2026-02")

    result = await service.record_payment(db_session, admin, payment(hostel, "6300"))

    assert result.allocated_amount == Decimal("6300")
    assert result.unallocated_amount == 0
    assert result.dues_updated == 2
    assert RECEIPT_RE.match(result.receipt_number)

    dues = await fetch_dues(db_session, hostel["ravi"])
    jan_rent, jan_electricity = dues[0], dues[1]
    assert jan_rent.due_month == "2026-01" and jan_rent.is_paid is True
    assert jan_rent.paid_date is not None
    assert jan_electricity.due_month == "2026-01"
    assert jan_electricity.paid_amount == Decimal("300")
    assert jan_electricity.balance_amount == Decimal("200")
    assert jan_electricity.is_paid is False
    assert jan_electricity.paid_date is None
    # February rows are untouched
    assert all(d.paid_amount == 0 for d in dues if d.due_month == "2026-02")
    assert_due_invariants(dues)


@pytest.mark.asyncio
async def test_payment_follows_due_date_not_creation_order(db_session: AsyncSession, hostel, admin) -> None:
    # February is generated first, so its dues have the lower ids
    await generate_monthly_dues(db_session, hostel["hostel_id"], "2026-02")
    await generate_monthly_dues(db_session, hostel["hostel_id"], "2026-01")

    result = await service.record_payment(db_session, admin, payment(hostel, "6000"))

    assert result.dues_updated == 1
    dues = await fetch_dues(db_session, hostel["ravi"])
    jan_rent = [d for d in dues if d.due_month == "2026-01" and d.fee_category_id == hostel["rent"]][0]
    assert jan_rent.is_paid is True
    assert jan_rent.balance_amount == 0
    assert all(d.paid_amount == 0 for d in dues if d.due_month == "2026-02")
    assert_due_invariants(dues)


@pytest.mark.asyncio
async def test_sub_cent_amounts_are_rejected(
    client: AsyncClient, db_session: AsyncSession, hostel, admin, owner_headers
) -> None:
    await generate_monthly_dues(db_session, hostel["hostel_id"], "2026-01")

    with pytest.raises(pydantic.ValidationError):
        payment(hostel, "0.015")

    response = await client.post(
        "/api/v1/payments",
        json={
            "student_id": hostel["ravi"],
            "hostel_id": hostel["hostel_id"],
            "amount_paid": "0.015",
            "payment_mode_id": hostel["cash"],
        },
        headers=owner_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Required fields: amount_paid"

    dues = await fetch_dues(db_session, hostel["ravi"])
    assert all(d.paid_amount == 0 for d in dues)
    assert_due_invariants(dues)

    # Whole cents are accepted and stored exactly
    result = await service.record_payment(db_session, admin, payment(hostel, "0.05"))
    assert result.allocated_amount == Decimal("0.05")
    dues = await fetch_dues(db_session, hostel["ravi"])
    assert dues[0].paid_amount == Decimal("0.05")
    assert dues[0].balance_amount == Decimal("5999.95")
    assert_due_invariants(dues)


@pytest.mark.asyncio
async def test_overpayment_is_reported_not_credited(db_session: AsyncSession, hostel, admin) -> None:
    await generate_monthly_dues(db_session, hostel["hostel_id"], "2026-01")

    result = await service.record_payment(db_session, admin, payment(hostel, "7000"))

    assert result.allocated_amount == Decimal("6500")
    assert result.unallocated_amount == Decimal("500")
    assert result.dues_updated == 2
    dues = await fetch_dues(db_session, hostel["ravi"])
    assert all(d.is_paid for d in dues)
    assert all(d.balance_amount == 0 for d in dues)
    assert_due_invariants(dues)

    stored = (
        await db_session.execute(select(StudentFeePayment).where(StudentFeePayment.payment_id == result.payment_id))
    ).scalar_one()
    assert stored.amount_paid == Decimal("7000")


@pytest.mark.asyncio
async def test_payment_without_dues_is_recorded(db_session: AsyncSession, hostel, admin) -> None:
    result = await service.record_payment(db_session, admin, payment(hostel, "1000", transaction_reference=" UPI-77 "))

    assert result.dues_updated == 0
    assert result.allocated_amount == 0
    assert result.unallocated_amount == Decimal("1000")
    stored = (
        await db_session.execute(select(StudentFeePayment).where(StudentFeePayment.payment_id == result.payment_id))
    ).scalar_one()
    assert stored.transaction_reference == "UPI-77"
    assert stored.created_by == admin.user_id


@pytest.mark.asyncio
async def test_payment_rejects_unknown_student_and_mode(db_session: AsyncSession, hostel, admin) -> None:
    other = await create_hostel(db_session, "Blue Stay")
    outsider = await create_student(db_session, other, "Vikram")
    await db_session.commit()

    with pytest.raises(NotFoundError):
        await service.record_payment(
            db_session,
            admin,
            PaymentCreate(
                student_id=outsider,
                hostel_id=hostel["hostel_id"],
                amount_paid=Decimal("100"),
                payment_mode_id=hostel["cash"],
            ),
        )
    with pytest.raises(ValidationError):
        await service.record_payment(
            db_session,
            admin,
            PaymentCreate(
                student_id=hostel["ravi"],
                hostel_id=hostel["hostel_id"],
                amount_paid=Decimal("100"),
                payment_mode_id=999,
            ),
        )


@pytest.mark.asyncio
async def test_receipt_numbers_are_unique(db_session: AsyncSession, hostel, admin) -> None:
    receipts = set()
    for _ in range(5):
        result = await service.record_payment(db_session, admin, payment(hostel, "100"))
        receipts.add(result.receipt_number)
    assert len(receipts) == 5


@pytest.mark.asyncio
async def test_receipt_number_collision_is_retried(
    db_session: AsyncSession, hostel, admin, monkeypatch
) -> None:
    await generate_monthly_dues(db_session, hostel["hostel_id"], "2026-01")
    first = await service.record_payment(db_session, admin, payment(hostel, "100"))

    numbers = iter([first.receipt_number, "RCP-20260101-0000000000AB"])
    monkeypatch.setattr(service, "generate_receipt_number", lambda on: next(numbers))

    second = await service.record_payment(db_session, admin, payment(hostel, "100"))

    assert second.receipt_number == "RCP-20260101-0000000000AB"
    rent = (await fetch_dues(db_session, hostel["ravi"]))[0]
    # The failed attempt was rolled back, so the rent was paid down exactly twice
    assert rent.paid_amount == Decimal("200")


@pytest.mark.asyncio
async def test_receipt_number_collision_gives_up_after_retries(
    db_session: AsyncSession, hostel, admin, monkeypatch
) -> None:
    first = await service.record_payment(db_session, admin, payment(hostel, "100"))
    monkeypatch.setattr(service, "generate_receipt_number", lambda on: first.receipt_number)

    with pytest.raises(IntegrityError):
        await service.record_payment(db_session, admin, payment(hostel, "100"))


# --- HTTP ---
@pytest.mark.asyncio
async def test_record_payment_endpoint(client: AsyncClient, db_session: AsyncSession, hostel, owner_headers) -> None:
    await generate_monthly_dues(db_session, hostel["hostel_id"], "2026-01")

    response = await client.post(
        "/api/v1/payments",
        json={
            "student_id": hostel["ravi"],
            "hostel_id": hostel["hostel_id"],
            "amount_paid": 6000,
            "payment_mode_id": hostel["upi"],
            "payment_date": "2026-01-20",
        },
        headers=owner_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["payment_id"] > 0
    assert data["receipt_number"].startswith("RCP-20260120-")
    assert Decimal(data["allocated_amount"]) == Decimal("6000")
    assert data["dues_updated"] == 1


@pytest.mark.asyncio
async def test_record_payment_endpoint_validation(client: AsyncClient, hostel, owner_headers) -> None:
    response = await client.post(
        "/api/v1/payments",
        json={"student_id": hostel["ravi"], "hostel_id": hostel["hostel_id"], "amount_paid": 0, "payment_mode_id": 1},
        headers=owner_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Required fields: amount_paid"

    response = await client.post(
        "/api/v1/payments", json={"student_id": hostel["ravi"], "amount_paid": 100}, headers=owner_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Required fields: hostel_id, payment_mode_id"

    response = await client.post(
        "/api/v1/payments",
        json={"student_id": 999, "hostel_id": hostel["hostel_id"], "amount_paid": 100, "payment_mode_id": hostel["cash"]},
        headers=owner_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_payment_listing_history_and_receipt(
    client: AsyncClient, db_session: AsyncSession, hostel, admin, owner_headers
) -> None:
    first = await service.record_payment(db_session, admin, payment(hostel, "100"))
    second = await service.record_payment(db_session, admin, payment(hostel, "250", student="anil"))

    response = await client.get("/api/v1/payments", headers=owner_headers)
    assert response.status_code == 200
    assert [p["payment_id"] for p in response.json()] == [second.payment_id, first.payment_id]

    response = await client.get(f"/api/v1/payments/student/{hostel['ravi']}", headers=owner_headers)
    history = response.json()
    assert [p["receipt_number"] for p in history] == [first.receipt_number]
    assert history[0]["student_name"] == "Ravi Sharma"
    assert history[0]["payment_mode"] == "Cash"

    response = await client.get(f"/api/v1/payments/receipts/{first.payment_id}", headers=owner_headers)
    assert response.status_code == 200
    receipt = response.json()
    assert receipt["receipt_number"] == first.receipt_number
    assert receipt["room_number"] == "101"
    assert receipt["hostel_name"] == "Green Nest"
    assert receipt["city"] == "Pune"

    response = await client.get("/api/v1/payments/receipts/999", headers=owner_headers)
    assert response.status_code == 404

    response = await client.get("/api/v1/payments/modes", headers=owner_headers)
    assert [m["payment_mode_name"] for m in response.json()] == ["Cash", "UPI"]


@pytest.mark.asyncio
async def test_payment_history_for_unknown_student_is_not_found(
    client: AsyncClient, db_session: AsyncSession, hostel, owner_headers
) -> None:
    other = await create_hostel(db_session, "Blue Stay")
    outsider = await create_student(db_session, other, "Vikram")
    await db_session.commit()

    response = await client.get(f"/api/v1/payments/student/{outsider}", headers=owner_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Student not found"

    response = await client.get("/api/v1/payments/student/999", headers=owner_headers)
    assert response.status_code == 404

    # A known student without payments has an empty history
    response = await client.get(f"/api/v1/payments/student/{hostel['anil']}", headers=owner_headers)
    assert response.status_code == 200
    assert response.json() == []
