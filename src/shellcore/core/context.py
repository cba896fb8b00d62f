"""
Per-run context threaded through the slicing stages.

A SliceContext is created once per slicing run and never mutated. It carries
the configuration, the model's layer count and the optional trace callback
used for instrumentation.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from shellcore.core.config import SlicerConfig

# Type alias for trace callback: (event_name, payload)
TraceCallback = Callable[[str, Dict[str, Any]], None]


def _noop_trace(event: str, payload: Dict[str, Any]) -> None:
    pass


def resolve_trace(trace: Optional[TraceCallback]) -> TraceCallback:
    """Return ``trace`` or a callback that ignores every event."""
    return trace or _noop_trace


@dataclass(frozen=True)
class SliceContext:
    """Immutable per-run slicing context."""

    config: SlicerConfig
    total_layers: int
    trace: TraceCallback = field(default=_noop_trace)
