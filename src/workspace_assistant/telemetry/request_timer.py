"""Per-request phase timing.

``RequestTimer`` records monotonic-clock spans as a request moves through the
pipeline (classification, capability resolution, model turns, tool execution)
so a single ``request_completed`` event can report where the time went.

Usage:
    timer = RequestTimer(trace_id="abc-123")

    with timer.span("classify"):
        intent = classify(message)

    breakdown = timer.to_breakdown()
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator


@dataclass
class TimingSpan:
    """A single timed phase.

    Attributes:
        name: Phase name (e.g. "resolve_external_tools").
        offset_ms: Milliseconds from request start when the phase began.
        duration_ms: Phase duration in milliseconds.
        metadata: Extra key-value pairs attached when the span closed.
    """

    name: str
    offset_ms: float
    duration_ms: float
    metadata: dict[str, Any] = field(default_factory=dict)


class RequestTimer:
    """Records timing spans for one request."""

    def __init__(self, trace_id: str) -> None:  # noqa: D107
        self.trace_id = trace_id
        self._start_ns = time.monotonic_ns()
        self._spans: list[TimingSpan] = []

    @contextmanager
    def span(self, name: str, **metadata: Any) -> Generator[None, None, None]:
        """Time the enclosed block as a named span.

        The span is recorded even when the block raises.
        """
        start_ns = time.monotonic_ns()
        try:
            yield
        finally:
            end_ns = time.monotonic_ns()
            self._spans.append(
                TimingSpan(
                    name=name,
                    offset_ms=round((start_ns - self._start_ns) / 1_000_000, 2),
                    duration_ms=round((end_ns - start_ns) / 1_000_000, 2),
                    metadata=dict(metadata),
                )
            )

    def get_total_ms(self) -> float:
        """Milliseconds elapsed since the timer was created."""
        return round((time.monotonic_ns() - self._start_ns) / 1_000_000, 2)

    def to_breakdown(self) -> list[dict[str, Any]]:
        """Return recorded spans ordered by start offset, as plain dicts."""
        return [
            {
                "phase": span.name,
                "offset_ms": span.offset_ms,
                "duration_ms": span.duration_ms,
                **span.metadata,
            }
            for span in sorted(self._spans, key=lambda s: s.offset_ms)
        ]
