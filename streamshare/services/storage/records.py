"""
Record Translation

The store speaks in flat records keyed by column name; the core speaks
in models. Every backend goes through these functions in both
directions, so the column names live in exactly one place.

The services table keeps participants in a `member_ids` column that
may be null for rows created before the column had a default. A null
or missing column reads as "no participants", never as an error.
"""

from decimal import Decimal
from typing import Any, Mapping

from streamshare.models.household import Member, Payment, Service


# Column names per resource
MEMBER_COLUMNS = ["id", "name", "created_at"]
SERVICE_COLUMNS = ["id", "name", "cost", "member_ids", "created_at"]
PAYMENT_COLUMNS = ["id", "member_id", "month", "date"]


# =============================================================================
# READ: record -> model
# =============================================================================

def member_from_record(record: Mapping[str, Any]) -> Member:
    return Member(
        id=record["id"],
        name=record["name"],
        created_at=record.get("created_at") or None,
    )


def service_from_record(record: Mapping[str, Any]) -> Service:
    return Service(
        id=record["id"],
        name=record["name"],
        cost=Decimal(str(record["cost"])),
        member_ids=record.get("member_ids") or [],
        created_at=record.get("created_at") or None,
    )


def payment_from_record(record: Mapping[str, Any]) -> Payment:
    return Payment(
        id=record["id"],
        member_id=record["member_id"],
        month=record["month"],
        date=record.get("date") or "",
    )


# =============================================================================
# WRITE: values -> record
# =============================================================================

def new_member_record(name: str) -> dict:
    return {"name": name}


def new_service_record(name: str, cost: Decimal) -> dict:
    """A fresh service always starts with no participants."""
    return {"name": name, "cost": str(cost), "member_ids": []}


def service_members_to_record(member_ids: list[str]) -> dict:
    return {"member_ids": list(member_ids)}


def new_payment_record(member_id: str, month: str, date: str) -> dict:
    return {"member_id": member_id, "month": month, "date": date}
