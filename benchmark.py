"""
Benchmark and Profiling Module for the Shift Rotation Scheduler.

Provides:
- Function-level profiling with a decorator
- A small benchmark runner with statistical summaries
- An engine benchmark on a synthetic multi-store roster

Usage:
    # Run benchmarks
    python benchmark.py

    # Use profiling decorator
    @profile_function
    def execute(self, ...):
        ...
"""
import time
import statistics
import functools
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field

from rich.console import Console
from rich.table import Table

console = Console()


# =============================================================================
# PROFILING DECORATOR
# =============================================================================

@dataclass
class ProfileResult:
    """Timing of a single profiled call."""
    function_name: str
    execution_time: float
    timestamp: datetime = field(default_factory=datetime.now)
    success: bool = True
    error: Optional[str] = None


# Collected timings, keyed by qualified function name
_profile_data: Dict[str, List[ProfileResult]] = {}


def profile_function(func: Callable) -> Callable:
    """
    Record the wall-clock time of every call to the decorated function.

    Failed calls are recorded too and the exception is re-raised.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        started = time.perf_counter()
        error_msg = None
        try:
            return func(*args, **kwargs)
        except Exception as e:
            error_msg = str(e)
            raise
        finally:
            name = func.__qualname__
            _profile_data.setdefault(name, []).append(ProfileResult(
                function_name=name,
                execution_time=time.perf_counter() - started,
                success=error_msg is None,
                error=error_msg,
            ))

    return wrapper


def get_profile_summary() -> Dict[str, Dict[str, Any]]:
    """
    Per-function call counts and timing statistics.

    Returns:
        Dictionary keyed by function name
    """
    summary = {}
    for name, results in _profile_data.items():
        times = [r.execution_time for r in results]
        failures = sum(1 for r in results if not r.success)
        summary[name] = {
            "call_count": len(results),
            "success_count": len(results) - failures,
            "failure_count": failures,
            "total_time": sum(times),
            "avg_time": statistics.mean(times) if times else 0,
            "min_time": min(times) if times else 0,
            "max_time": max(times) if times else 0,
            "std_dev": statistics.stdev(times) if len(times) > 1 else 0,
        }
    return summary


def clear_profile_data() -> None:
    _profile_data.clear()


def print_profile_report() -> None:
    """Render the profiling summary as a table, slowest first."""
    summary = get_profile_summary()
    if not summary:
        console.print("No profiling data collected.")
        return

    table = Table(title="📊 Profiling Report")
    table.add_column("Function", style="cyan")
    table.add_column("Calls", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Total (s)", justify="right")
    table.add_column("Avg (s)", justify="right")
    table.add_column("Range (s)", justify="right")

    for name, stats in sorted(summary.items(), key=lambda item: item[1]["total_time"], reverse=True):
        table.add_row(
            name,
            str(stats["call_count"]),
            str(stats["failure_count"]),
            f"{stats['total_time']:.4f}",
            f"{stats['avg_time']:.4f}",
            f"{stats['min_time']:.4f} - {stats['max_time']:.4f}",
        )
    console.print(table)


# =============================================================================
# BENCHMARK RUNNER
# =============================================================================

@dataclass
class BenchmarkResult:
    """Timings of one benchmark over several iterations."""
    name: str
    iterations: int
    times: List[float]
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def mean(self) -> float:
        return statistics.mean(self.times) if self.times else 0

    @property
    def median(self) -> float:
        return statistics.median(self.times) if self.times else 0

    @property
    def std_dev(self) -> float:
        return statistics.stdev(self.times) if len(self.times) > 1 else 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "iterations": self.iterations,
            "successful": len(self.times),
            "mean": self.mean,
            "median": self.median,
            "std_dev": self.std_dev,
            "timestamp": self.timestamp.isoformat(),
        }


class Benchmark:
    """
    Benchmark runner.

    Usage:
        bench = Benchmark()
        bench.add("Engine (4 weeks)", run, iterations=5)
        bench.run()
        bench.print_report()
    """

    def __init__(self):
        self.benchmarks: List[Dict] = []
        self.results: List[BenchmarkResult] = []

    def add(self, name: str, func: Callable, iterations: int = 5,
            args: tuple = (), kwargs: dict = None) -> "Benchmark":
        self.benchmarks.append({
            "name": name,
            "func": func,
            "iterations": iterations,
            "args": args,
            "kwargs": kwargs or {},
        })
        return self

    def run(self) -> List[BenchmarkResult]:
        self.results = []
        for bench in self.benchmarks:
            console.print(f"Running benchmark: {bench['name']}...")
            times = []
            for i in range(bench["iterations"]):
                started = time.perf_counter()
                try:
                    bench["func"](*bench["args"], **bench["kwargs"])
                except Exception as e:
                    console.print(f"[red]  Iteration {i + 1} failed: {e}[/red]")
                    continue
                times.append(time.perf_counter() - started)
            self.results.append(BenchmarkResult(bench["name"], bench["iterations"], times))
        return self.results

    def print_report(self) -> None:
        if not self.results:
            console.print("No benchmark results. Run benchmarks first.")
            return

        table = Table(title="🏃 Benchmark Report")
        table.add_column("Benchmark", style="cyan")
        table.add_column("Runs", justify="right")
        table.add_column("Mean (s)", justify="right")
        table.add_column("Median (s)", justify="right")
        table.add_column("Std Dev", justify="right")
        table.add_column("Status")

        for result in self.results:
            if result.mean < 0.5:
                status = "✅ EXCELLENT"
            elif result.mean < 2:
                status = "✅ GOOD"
            else:
                status = "⚠️ SLOW"
            table.add_row(
                result.name,
                f"{len(result.times)}/{result.iterations}",
                f"{result.mean:.4f}",
                f"{result.median:.4f}",
                f"{result.std_dev:.4f}",
                status,
            )
        console.print(table)

    def get_results_dict(self) -> List[dict]:
        return [r.to_dict() for r in self.results]


# =============================================================================
# ENGINE BENCHMARK (MAIN)
# =============================================================================

def build_synthetic_roster(store_count: int = 3, employees_per_store: int = 12):
    """Stores open Mon-Sat 08:00-21:00 with a shared employee pool per store."""
    from models.employee import Employee
    from models.store import OpeningHours, Store, Weekday

    hours = OpeningHours.parse("08:00", "21:00")
    stores = [
        Store(
            id=f"store-{s:02d}",
            name=f"Store {s:02d}",
            opening_hours={day: (None if day == Weekday.SUNDAY else hours) for day in Weekday},
        )
        for s in range(1, store_count + 1)
    ]
    employees = [
        Employee(
            id=f"emp-{s.id}-{n:02d}",
            name=f"Employee {n:02d} ({s.name})",
            contract_hours=40.0 if n % 3 else 24.0,
            store_id=s.id,
        )
        for s in stores
        for n in range(1, employees_per_store + 1)
    ]
    return stores, employees


def run_engine_benchmark(weeks: int = 4, iterations: int = 3) -> List[dict]:
    """Time the rotation engine on a synthetic roster."""
    from agents.rotation_engine import RotationEngineAgent
    from config import DEFAULT_SHIFT_TYPES

    stores, employees = build_synthetic_roster()
    engine = RotationEngineAgent(verbose=False)
    start = date(2025, 1, 6)
    end = start + timedelta(days=7 * weeks - 1)
    run_at = datetime(2025, 1, 1, 8, 0)

    def all_stores():
        return engine.execute(employees=employees, shift_types=DEFAULT_SHIFT_TYPES,
                              start_date=start, end_date=end, stores=stores,
                              run_timestamp=run_at)

    def single_store():
        return engine.execute(employees=employees, shift_types=DEFAULT_SHIFT_TYPES,
                              start_date=start, end_date=end, stores=stores,
                              store_id=stores[0].id, run_timestamp=run_at)

    console.print(f"[bold]SHIFT ROTATION SCHEDULER - BENCHMARK SUITE[/bold] ({datetime.now().isoformat()})")

    bench = Benchmark()
    bench.add(f"Engine, {len(stores)} stores, {weeks} weeks", all_stores, iterations=iterations)
    bench.add(f"Engine, 1 store, {weeks} weeks", single_store, iterations=iterations)
    bench.run()
    bench.print_report()
    print_profile_report()

    return bench.get_results_dict()


if __name__ == "__main__":
    run_engine_benchmark()
