"""
LeadDesk - Maintenance: compact every record log.
Replays each <kind>.jsonl and rewrites it with one line per live record.
Run with the server stopped: cd backend && python3 scripts/compact_logs.py [data_dir]
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import DATA_DIR
from services.durable_log import DurableLog
from services.store import Store, ALL_KINDS


def count_lines(path: Path) -> int:
    if not path.exists():
        return 0
    with open(path, encoding="utf-8") as f:
        return sum(1 for line in f if line.strip())


async def compact(data_dir: Path):
    log = DurableLog(data_dir)
    store = Store(log)

    before = {kind: count_lines(log.path_for(kind)) for kind in ALL_KINDS}
    await store.load()
    after = await store.compact_all()

    print("\n════════════════════════════════════")
    print("  COMPACTION REPORT")
    print("════════════════════════════════════")
    print(f"  Data dir: {data_dir}")
    for kind in ALL_KINDS:
        print(f"  {kind:<12} {before[kind]:>6} lines -> {after[kind]:>6}")
    print("════════════════════════════════════")

    return {"before": before, "after": after}


if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else DATA_DIR
    asyncio.run(compact(target))
