from __future__ import annotations

from contextvars import ContextVar


_trace_id: ContextVar[str | None] = ContextVar("trace_id", default=None)
_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_round: ContextVar[int | None] = ContextVar("round", default=None)
_state: ContextVar[str | None] = ContextVar("state", default=None)
_errors: ContextVar[list[str] | None] = ContextVar("errors", default=None)


def bind_context(*, trace_id: str, request_id: str) -> None:
    _trace_id.set(trace_id)
    _request_id.set(request_id)
    _round.set(None)
    _state.set(None)
    _errors.set([])


def set_round(value: int) -> None:
    _round.set(value)


def set_state(state: str) -> None:
    _state.set(state)


def add_error(message: str) -> None:
    errs = list(_errors.get() or [])
    errs.append(message)
    _errors.set(errs)


def snapshot() -> dict[str, object]:
    """Return a snapshot of current observability context for logging."""

    out: dict[str, object] = {}
    if (v := _trace_id.get()) is not None:
        out["trace_id"] = v
    if (v := _request_id.get()) is not None:
        out["request_id"] = v
    if (v := _round.get()) is not None:
        out["round"] = v
    if (v := _state.get()) is not None:
        out["state"] = v
    errs = _errors.get()
    if errs:
        out["errors"] = list(errs)
    return out
