from __future__ import annotations

from datetime import datetime
from pathlib import Path
import sys
import traceback

from locker_booking import SqlStore, YamlEventLog, build_repositories, build_schemas
from locker_booking.logging_config import setup_logging
from locker_booking.seed import load_seed_file, seed_repositories

SCRIPT_DIR = Path(__file__).resolve().parent


def main(argv: list[str]) -> int:
    data_dir = Path(argv[0]) if argv else Path("data") / "quickcheck"
    database_path = data_dir / "quickcheck.db"
    events_path = data_dir / "events.yaml"
    if database_path.exists():
        database_path.unlink()

    setup_logging("WARNING")
    print("[INFO] Locker Booking Quick Check")
    print(f"[INFO] Seeding {database_path} from demo_data.yaml...")

    store = SqlStore(f"sqlite:///{database_path}")
    store.init_schema()
    repositories = build_repositories(store, build_schemas(), YamlEventLog(events_path))
    created = seed_repositories(repositories, load_seed_file(SCRIPT_DIR / "demo_data.yaml"), now=datetime(2030, 1, 1))
    for name, count in created.items():
        print(f"[OK] {name}: {count} rows")

    report = repositories["bookings"].check_place(5, "2030-07-07 12:00:00", "2030-07-09 12:00:00")
    print(f"[OK] Place 5 overlap check: conflict={report.has_conflict} {[error['field'] for error in report.messages()]}")

    free = repositories["bookings"].check_place(5, "2030-07-15 11:00:00", "2030-07-20 11:00:00")
    print(f"[OK] Place 5 after last departure is free: {not free.has_conflict}")
    print(f"[OK] Event Log YAML: {events_path.resolve()}")

    store.close()
    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main(sys.argv[1:]))
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
