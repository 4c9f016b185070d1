"""Transforms from raw query rows to dashboard widget payloads."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote

SALES_FILTER = "Total Sales"
INQUIRY_FILTER = "Total Inquiry"

OVERVIEW_DAYS = 3

# Malay month abbreviations used across the dashboard
MONTH_NAMES = ("Jan", "Feb", "Mac", "Apr", "Mei", "Jun", "Jul", "Ogo", "Sep", "Okt", "Nov", "Dis")

EMPTY_STATS: dict[str, int] = {
    "totalBookings": 0,
    "totalLeads": 0,
    "recentBookings": 0,
    "recentLeads": 0,
    "totalUmrahBookings": 0,
    "totalOutboundBookings": 0,
}


def format_date(day: date) -> str:
    """Format as "5 Mac 2025"."""
    return f"{day.day} {MONTH_NAMES[day.month - 1]} {day.year}"


def avatar_url(name: str) -> str:
    return (
        f"https://ui-avatars.com/api/?name={quote(name, safe='')}"
        "&background=10b981&color=fff&size=40"
    )


def consultant_card(raw: dict[str, Any]) -> dict[str, Any]:
    """Shape a consultant leaderboard row for the dashboard card."""
    name = raw.get("name") or ""
    return {
        "id": raw.get("id"),
        "name": name,
        "total": raw.get("totalRevenue"),
        "recent": raw.get("recentRevenue"),
        "totalBookings": raw.get("totalBookings"),
        "recentBookings": raw.get("recentBookings"),
        "email": raw.get("email"),
        "whatsapp": raw.get("whatsapp"),
        "salesConsultantNumber": raw.get("salesConsultantNumber"),
        "branches": raw.get("branches"),
        "profileImage": avatar_url(name),
        "categoryBookings": raw.get("categoryBookings"),
    }


def _row_date(row: dict[str, Any]) -> date | None:
    created_at = row.get("created_at")
    if not created_at:
        return None
    try:
        parsed = datetime.fromisoformat(str(created_at))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def _percentage(part: int, total: int) -> int:
    # Half-up rounding, matching how the widgets have always displayed it
    return math.floor(part * 100 / total + 0.5) if total > 0 else 0


def process_sales_inquiry_data(
    rows: Iterable[dict[str, Any]],
    filter_name: str,
    today: date,
) -> list[dict[str, Any]]:
    """Daily umrah/outbound split for the last three days, oldest first.

    Bookings count ``bilangan`` participants (at least one) and sum
    ``total_price``; a booking with an umrah category is umrah. Leads count
    one each; a lead with a category is umrah. Everything else is
    "pelancongan" (outbound travel).
    """
    by_day: dict[date, list[dict[str, Any]]] = {}
    for row in rows:
        day = _row_date(row)
        if day is not None:
            by_day.setdefault(day, []).append(row)

    stats = []
    for offset in range(OVERVIEW_DAYS):
        target = today - timedelta(days=offset)
        umrah_count = outbound_count = 0
        umrah_revenue: float = 0
        outbound_revenue: float = 0

        for row in by_day.get(target, []):
            if filter_name == SALES_FILTER:
                participants = row.get("bilangan") or 1
                price = row.get("total_price") or 0
                if row.get("umrah_category_id"):
                    umrah_count += participants
                    umrah_revenue += price
                else:
                    outbound_count += participants
                    outbound_revenue += price
            elif row.get("category_id"):
                umrah_count += 1
            else:
                outbound_count += 1

        total = umrah_count + outbound_count
        stats.append(
            {
                "pelanconganPercentage": _percentage(outbound_count, total),
                "umrahPercentage": _percentage(umrah_count, total),
                "date": format_date(target),
                "pelanconganCount": outbound_count,
                "umrahCount": umrah_count,
                "totalCount": total,
                "pelanconganRevenue": outbound_revenue,
                "umrahRevenue": umrah_revenue,
            }
        )

    stats.reverse()
    return stats
