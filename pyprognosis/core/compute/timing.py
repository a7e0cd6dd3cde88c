"""
Wall-clock timing of solver phases.

Every solver records a total plus named phases (replicates, linear
predictor, Newton-Raphson, ...) into Result.timing.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Total run time plus accumulated per-phase times.

        timer = Timer()
        timer.start()
        with timer.section('replicates'):
            chains = run_chains(...)
        timer.stop()
        timer.result()   # {'total_seconds': 0.8, 'replicates': 0.79}

    Re-entering a section adds to its total; sections may nest.
    """

    def __init__(self):
        self._phases: dict[str, float] = {}
        self._began: float | None = None
        self._elapsed: float | None = None

    def start(self) -> None:
        self._began = time.perf_counter()

    def stop(self) -> None:
        if self._began is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._elapsed = time.perf_counter() - self._began

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Add the time spent inside the block to phase `name`."""
        entered = time.perf_counter()
        try:
            yield
        finally:
            self._phases[name] = (
                self._phases.get(name, 0.0) + time.perf_counter() - entered
            )

    def result(self) -> dict[str, float]:
        """{'total_seconds': total, **phases}; requires stop()."""
        if self._elapsed is None:
            raise RuntimeError("Timer.result() called before stop()")
        return {'total_seconds': self._elapsed, **self._phases}
