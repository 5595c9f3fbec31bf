"""
BambooHR demo: print a headcount report straight from the client.

This sample skips the MCP server and drives :class:`BambooHRClient`
directly:

• Directory - count employees per department.
• Who's out - list everyone on leave this week.

Run with:
    python sample_directory_report.py
"""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import date, timedelta
from pathlib import Path

from dotenv import load_dotenv

from bamboohr.sdk.client import BambooHRClient
from bamboohr.sdk.config import ClientConfig
from bamboohr.sdk.exceptions import BambooHRError


async def main() -> None:
    # Load .env
    load_dotenv(Path(__file__).parent.parent / ".env")
    config = ClientConfig.from_environment()

    async with BambooHRClient(config) as client:
        print(f"🔐 Connected to {client.get_base_url()}")

        directory = await client.get("/employees/directory?fields=id,department")
        counts = Counter(
            emp.get("department") or "(none)" for emp in (directory or {}).get("employees", [])
        )
        print("\n🏢 Headcount by department:")
        for department, count in counts.most_common():
            print(f"  • {department:<24} {count}")

        start = date.today()
        end = start + timedelta(days=6)
        calendar = await client.get(f"/time_off/whos_out?start={start}&end={end}")
        print(f"\n🌴 Out between {start} and {end}:")
        for entry in calendar or []:
            print(f"  • {entry.get('name')} ({entry.get('start')} to {entry.get('end')})")

        print(f"\n📦 Cache: {client.get_cache_stats()['size']} entries")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except BambooHRError as exc:
        print(f"❌ {exc.message}")
