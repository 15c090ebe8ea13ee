import time
from typing import Any, Dict, List


def add_traceback(obj, step: str, info: str) -> None:
    """Record one engine step as {step, info, timestamp} on `obj.traceback_info`."""
    if not hasattr(obj, "traceback_info"):
        raise AttributeError(f"{obj!r} has no attribute 'traceback_info'")

    obj.traceback_info.append({"step": step, "info": info, "timestamp": time.time()})


def recent_traces(obj, count: int = 5) -> List[Dict[str, Any]]:
    """Return the last `count` trace events of `obj` (oldest first)."""
    if count <= 0:
        return []
    return list(obj.traceback_info[-count:])


def format_trace(event: Dict[str, Any]) -> str:
    return f"{event['step']}: {event['info']}"
