#!/usr/bin/env python3
"""
Export persisted time-economy state from the database to JSON
"""

import json
import sqlite3
import sys
from datetime import datetime
from pathlib import Path


def export_state_data(db_path: str, output_path: str) -> bool:
    """Export every stored state blob to JSON"""
    try:
        # Connect to database
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row

        print(f"📖 Exporting state from {db_path}")

        cursor = conn.execute("SELECT key, value, updated_at FROM kv_store ORDER BY key")
        rows = [dict(row) for row in cursor.fetchall()]
        print(f"  🗂  Found {len(rows)} state entries")

        state = {}
        corrupted = []
        for row in rows:
            try:
                state[row["key"]] = json.loads(row["value"])
            except json.JSONDecodeError:
                # Keep the raw text so nothing is lost
                state[row["key"]] = row["value"]
                corrupted.append(row["key"])

        if corrupted:
            print(f"  ⚠️  Unreadable entries exported as raw text: {', '.join(corrupted)}")

        export_data = {
            "export_info": {
                "exported_at": datetime.now().isoformat(),
                "database_path": db_path,
                "script_version": "1.0",
            },
            "state": state,
            "updated_at": {row["key"]: row["updated_at"] for row in rows},
            "statistics": {
                "total_entries": len(rows),
                "corrupted_entries": len(corrupted),
            },
        }

        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(export_data, f, indent=2, ensure_ascii=False, default=str)

        print(f"✅ Successfully exported state to {output_path}")
        conn.close()
        return True

    except Exception as e:
        print(f"❌ Export failed: {e}")
        return False


def main():
    """Main export function"""
    if len(sys.argv) != 3:
        print("Usage: python export_state.py <database_path> <output_json_path>")
        print("Example: python export_state.py data/brainbites.db data/brainbites_state.json")
        sys.exit(1)

    db_path = sys.argv[1]
    output_path = sys.argv[2]

    if not Path(db_path).exists():
        print(f"❌ Database file not found: {db_path}")
        sys.exit(1)

    print(f"🚀 Starting export from {db_path} to {output_path}")

    if export_state_data(db_path, output_path):
        print("🎉 Export completed successfully!")
        sys.exit(0)
    else:
        print("💥 Export failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
