"""Print administrators, report count and the first report"""
import asyncio
from sqlalchemy import text
from community_watch.core.database import get_engine, session_scope
from community_watch.services.stats_service import count_reports


async def check():
    engine = get_engine()
    async with engine.connect() as conn:
        # Check users
        print("=== ADMINISTRATORS ===")
        users = await conn.execute(text("SELECT id, username, role FROM users ORDER BY id"))
        user_rows = users.fetchall()
        print(f"Total administrators: {len(user_rows)}")
        for row in user_rows:
            print(f"  ID: {row[0]}, Username: {row[1]}, Role: {row[2]}")
        print()

        # Check reports
        print("=== REPORTS ===")
        async with session_scope() as db:
            print(f"Total reports in DB: {await count_reports(db)}")

        result = await conn.execute(
            text("SELECT id, reference_number, type, location, date, time FROM reports ORDER BY id LIMIT 1")
        )
        row = result.first()
        if row:
            print("First report:")
            print(f"  ID: {row[0]}")
            print(f"  Reference: {row[1]}")
            print(f"  Type: {row[2]}")
            print(f"  Location: {row[3]}")
            print(f"  When: {row[4]} {row[5]}")
            forwards = await conn.execute(
                text("SELECT group_name, sent_by, sent_at FROM forward_entries WHERE report_id = :id ORDER BY id"),
                {"id": row[0]},
            )
            for entry in forwards.fetchall():
                print(f"  Forwarded to {entry[0]} by {entry[1]} at {entry[2]}")

    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(check())
