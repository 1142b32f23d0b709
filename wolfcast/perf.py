"""Frame-timing log: one JSONL event per timed operation.

Usage:
    from wolfcast.perf import perf

    perf.start()
    perf.stage("load")
    bundle = await perf.atimer("read_file", read(path), file=path.name)

    perf.stage("play")
    with perf.timer("cast"):
        level.cast(raycaster)

    perf.finish()
    perf.summary()       # latency table and frame budget on the shared console
    perf.save()          # runs/YYYYMMDD_HHMMSS.jsonl
"""

import json
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from rich.table import Table

from wolfcast.config import console

# Operations the host times once per frame, in loop order
FRAME_OPERATIONS = ("advance", "cast", "draw")

_STAGE_MARKERS = ("stage_start", "stage_end")


@dataclass
class PerfEvent:
    elapsed_s: float
    stage: str
    operation: str
    duration_ms: float
    success: bool = True
    error: str | None = None
    meta: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        d = {
            "elapsed_s": round(self.elapsed_s, 4),
            "stage": self.stage,
            "operation": self.operation,
            "duration_ms": round(self.duration_ms, 3),
            "success": self.success,
        }
        if self.error:
            d["error"] = self.error
        d.update(self.meta)
        return d


class PerfLogger:
    """In-memory event list; a disabled logger records nothing."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._started = time.time()
        self._t0 = time.perf_counter()
        self._events: list[PerfEvent] = []
        self._stage = ""
        self._stage_t0 = 0.0

    def start(self):
        self._started = time.time()
        self._t0 = time.perf_counter()
        self._events.clear()
        self._stage = ""

    def _record(self, operation: str, duration_ms: float, **fields):
        self._events.append(PerfEvent(
            elapsed_s=time.perf_counter() - self._t0,
            stage=self._stage,
            operation=operation,
            duration_ms=duration_ms,
            **fields,
        ))

    def _end_stage(self):
        if self._stage:
            self._record("stage_end", (time.perf_counter() - self._stage_t0) * 1000)

    def stage(self, name: str):
        """Close the running stage (if any) and open *name*."""
        if not self.enabled:
            return
        self._end_stage()
        self._stage = name
        self._stage_t0 = time.perf_counter()
        self._record("stage_start", 0.0)

    def event(self, operation: str, duration_ms: float, success: bool = True,
              error: str | None = None, **meta):
        if self.enabled:
            self._record(operation, duration_ms, success=success, error=error, meta=meta)

    @contextmanager
    def timer(self, operation: str, **meta):
        """Time the enclosed block; failures are recorded and re-raised."""
        t = time.perf_counter()
        error = None
        try:
            yield
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            raise
        finally:
            self.event(operation, (time.perf_counter() - t) * 1000,
                       success=error is None, error=error, **meta)

    async def atimer(self, operation: str, coro, **meta):
        """Await *coro* under a timer and return its result."""
        with self.timer(operation, **meta):
            return await coro

    def finish(self):
        if self.enabled:
            self._end_stage()
            self._stage = ""

    def operation_stats(self) -> dict[str, dict]:
        """Per-operation count/min/median/p95/max/total in milliseconds."""
        ops: dict[str, list[float]] = {}
        for ev in self._events:
            if ev.operation not in _STAGE_MARKERS:
                ops.setdefault(ev.operation, []).append(ev.duration_ms)

        stats = {}
        for op, durations in sorted(ops.items()):
            durations.sort()
            n = len(durations)
            stats[op] = {
                "count": n,
                "min": durations[0],
                "median": durations[n // 2],
                "p95": durations[min(n - 1, int(n * 0.95))],
                "max": durations[-1],
                "total": sum(durations),
            }
        return stats

    def summary(self):
        """Print operation latencies and the median frame budget."""
        stats = self.operation_stats()
        if not stats:
            return

        table = Table(title="Operation latencies (ms)")
        table.add_column("operation")
        for col in ("count", "median", "p95", "max"):
            table.add_column(col, justify="right")
        for op, s in stats.items():
            table.add_row(op, str(s["count"]), f"{s['median']:.2f}",
                          f"{s['p95']:.2f}", f"{s['max']:.2f}")
        console.print(table)

        frame_ms = sum(stats[op]["median"] for op in FRAME_OPERATIONS if op in stats)
        if frame_ms > 0:
            shares = ", ".join(
                f"{op} {stats[op]['median'] / frame_ms:.0%}"
                for op in FRAME_OPERATIONS if op in stats
            )
            console.print(f"Median frame {frame_ms:.2f} ms ({1000 / frame_ms:.0f} fps): {shares}")

        failed = [ev for ev in self._events if not ev.success]
        for ev in failed[:5]:
            console.print(f"failed {ev.operation}: {ev.error}", style="red", markup=False)

    def save(self, directory: str = "runs") -> str:
        """Write all events as JSONL. Returns the file path."""
        out = Path(directory)
        out.mkdir(parents=True, exist_ok=True)
        path = out / time.strftime("%Y%m%d_%H%M%S.jsonl", time.localtime(self._started))
        with open(path, "w") as f:
            for ev in self._events:
                f.write(json.dumps(ev.to_dict()) + "\n")
        console.print(f"Perf log saved: {path} ({len(self._events)} events)")
        return str(path)

    @property
    def events(self) -> list[PerfEvent]:
        return list(self._events)


# Module-level singleton; the CLI enables it with --perf
perf = PerfLogger(enabled=False)
