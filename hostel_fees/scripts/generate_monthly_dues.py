"""
Generate the month's dues for every active hostel. Meant to be run by cron on the 1st of each month.

Idempotent: hostels already generated for the month are reported as skipped.
Usage:
  python -m hostel_fees.scripts.generate_monthly_dues
  python -m hostel_fees.scripts.generate_monthly_dues --month 2026-02
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from hostel_fees.api.v1.dues.service import generate_dues_for_all_hostels
from hostel_fees.core.config import settings
from hostel_fees.core.enums import GenerationOutcome
from hostel_fees.core.exceptions import ServiceError
from hostel_fees.db.session import AsyncSessionLocal


async def run(month_year: Optional[str] = None) -> int:
    async with AsyncSessionLocal() as session:
        try:
            response = await generate_dues_for_all_hostels(session, month_year)
        except ServiceError as e:
            print(f"Error: {e.message}")
            return 2

    print(f"Dues generation for {response.month_year}")
    for r in response.results:
        line = f"  [{r.outcome.value}] {r.hostel_name} (#{r.hostel_id})"
        if r.summary and r.outcome == GenerationOutcome.GENERATED:
            line += (
                f": {r.summary.students_count} students, {r.summary.new_dues_created} new,"
                f" {r.summary.carried_forward_dues} carried forward"
            )
        elif r.reason:
            line += f": {r.reason}"
        print(line)
    print(f"Generated: {response.generated}, skipped: {response.skipped}, failed: {response.failed}")
    return 1 if response.failed else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate monthly dues for all active hostels")
    parser.add_argument("--month", default=None, help="Billing month as YYYY-MM (default: current month)")
    args = parser.parse_args()
    logging.basicConfig(level=settings.log_level.upper())
    sys.exit(asyncio.run(run(args.month)))


if __name__ == "__main__":
    main()
