"""Trace context for request correlation."""

import re
import uuid
from dataclasses import dataclass

# Inbound trace ids are echoed into logs, so only accept a conservative charset.
_TRACE_ID_PATTERN = re.compile(r"[A-Za-z0-9_\-]{8,64}")


@dataclass(frozen=True)
class TraceContext:
    """Immutable trace/span identifiers carried through one request.

    Attributes:
        trace_id: Identifier shared by every log event of the request.
        parent_span_id: Span that new child spans hang off, if any.
    """

    trace_id: str
    parent_span_id: str | None = None

    @classmethod
    def new_trace(cls, inbound_trace_id: str | None = None) -> "TraceContext":
        """Start a trace, reusing a well-formed inbound id (e.g. ``X-Request-Id``).

        Args:
            inbound_trace_id: Optional id propagated by the caller.

        Returns:
            A root TraceContext.
        """
        if inbound_trace_id and _TRACE_ID_PATTERN.fullmatch(inbound_trace_id):
            return cls(trace_id=inbound_trace_id)
        return cls(trace_id=str(uuid.uuid4()))

    def new_span(self) -> tuple["TraceContext", str]:
        """Create a child span within this trace.

        Returns:
            (child context whose parent is the new span, new span id)
        """
        span_id = uuid.uuid4().hex[:16]
        return TraceContext(trace_id=self.trace_id, parent_span_id=span_id), span_id
