"""Micro-benchmark for decoding an ISO 8211 file."""

from __future__ import annotations

import io
import sys
import time
from pathlib import Path

from iso8211.records import Iso8211Reader


def benchmark_decode(path: Path, runs: int = 3) -> dict[str, float]:
    data = path.read_bytes()
    total_bytes = len(data)
    records = 0
    best = None
    for _ in range(runs):
        start = time.perf_counter()
        records = sum(1 for _record in Iso8211Reader(io.BytesIO(data)))
        elapsed = time.perf_counter() - start
        best = elapsed if best is None or elapsed < best else best
    mbps = (total_bytes / 1_000_000) / best if best else 0.0
    records_per_second = records / best if best else 0.0
    return {
        "records": records,
        "bytes": total_bytes,
        "best_seconds": best or 0.0,
        "mbps": mbps,
        "records_per_second": records_per_second,
    }


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit("usage: benchmark.py CELL.000")
    result = benchmark_decode(Path(sys.argv[1]))
    print(result)
