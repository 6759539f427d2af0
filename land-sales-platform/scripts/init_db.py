"""
Initialize the configured store: create the schema (SQLite) and seed the
200 plots if the plots table is empty.

For Supabase, apply sql/supabase_schema.sql in the SQL editor first; this
script then seeds the plots.

Usage:
    python scripts/init_db.py
"""

import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.config import create_store, load_settings


def main() -> int:
    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    with create_store(settings) as store:
        stats = store.get_plots_stats()

    print("=" * 50)
    print(f"Store initialized ({store.backend_name})")
    print("=" * 50)
    print(f"Total plots:   {stats.total_plots}")
    for status, count in stats.summary.items():
        print(f"  {status:<11} {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
