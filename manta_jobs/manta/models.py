"""
Typed result structures for the Manta job client.

The service speaks loosely-typed JSON and header maps; everything handed back
to callers is one of the dataclasses below, with optional fields as
``Optional`` rather than absent keys.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..config import JOB_TASK_ERROR_CODE
from .errors import ValidationError
from .router import ResultCategory, ResultSource


class PhaseType(str, enum.Enum):
    map = "map"
    reduce = "reduce"


@dataclass(frozen=True)
class Phase:
    """One step of a job: a per-input ``map`` or an aggregating ``reduce``."""

    type: PhaseType
    exec: str
    init: Optional[str] = None
    assets: Tuple[str, ...] = ()
    memory: Optional[int] = None
    disk: Optional[int] = None
    count: Optional[int] = None
    image: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.type, str) and not isinstance(self.type, PhaseType):
            try:
                object.__setattr__(self, "type", PhaseType(self.type.strip().lower()))
            except ValueError:
                raise ValidationError(
                    f"phase type must be one of {[t.value for t in PhaseType]}, got {self.type!r}"
                ) from None
        if not isinstance(self.type, PhaseType):
            raise ValidationError(f"phase type must be a string, got {type(self.type).__name__}")
        if not isinstance(self.exec, str) or not self.exec.strip():
            raise ValidationError("phase exec must be a non-empty command string")
        if isinstance(self.assets, str):
            raise ValidationError("phase assets must be a sequence of object paths, not a string")
        object.__setattr__(self, "assets", tuple(str(a) for a in self.assets))
        for name in ("memory", "disk"):
            value = getattr(self, name)
            if value is not None and (not isinstance(value, int) or value <= 0):
                raise ValidationError(f"phase {name} must be a positive integer, got {value!r}")
        if self.count is not None:
            if self.type is not PhaseType.reduce:
                raise ValidationError("phase count (number of reducers) only applies to reduce phases")
            if not isinstance(self.count, int) or self.count < 1:
                raise ValidationError(f"reduce count must be a positive integer, got {self.count!r}")

    @classmethod
    def from_value(cls, value: Any) -> "Phase":
        """Accept a ``Phase`` or a ``{"type": ..., "exec": ...}`` mapping."""
        if isinstance(value, Phase):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError(f"phase must be a Phase or a mapping, got {type(value).__name__}")
        known = {"type", "exec", "init", "assets", "memory", "disk", "count", "image"}
        unknown = set(value) - known
        if unknown:
            raise ValidationError(f"unknown phase field(s): {sorted(unknown)}")
        if "type" not in value or "exec" not in value:
            raise ValidationError("phase requires both 'type' and 'exec'")
        return cls(**dict(value))

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation for the create-job request body."""
        out: Dict[str, Any] = {"type": self.type.value, "exec": self.exec}
        if self.init is not None:
            out["init"] = self.init
        if self.assets:
            out["assets"] = list(self.assets)
        for name in ("memory", "disk", "count", "image"):
            value = getattr(self, name)
            if value is not None:
                out[name] = value
        return out


def validate_phases(phases: Sequence[Any]) -> Tuple[Phase, ...]:
    """Coerce and validate an ordered, non-empty phase sequence."""
    if phases is None or isinstance(phases, (str, bytes, Mapping)):
        raise ValidationError("phases must be an ordered sequence of phases")
    coerced = tuple(Phase.from_value(p) for p in phases)
    if not coerced:
        raise ValidationError("a job needs at least one phase")
    return coerced


@dataclass
class MantaResponse:
    """Headers plus decoded payload of one service response."""

    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None
    status: Optional[int] = None


@dataclass
class Job:
    """A job as known to the client right after creation."""

    job_id: str
    name: str
    phases: Tuple[Phase, ...]
    location: str
    headers: Dict[str, str] = field(default_factory=dict)


def _to_utc_ts(value: Any) -> Optional[pd.Timestamp]:
    """Internal helper for to utc ts."""
    if value is None:
        return None
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return pd.Timestamp(ts)


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass
class JobStats:
    """Server-side task counters."""

    errors: int = 0
    outputs: int = 0
    retries: int = 0
    tasks: int = 0
    tasks_done: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "JobStats":
        p = payload if isinstance(payload, Mapping) else {}
        return cls(
            errors=_to_int(p.get("errors")),
            outputs=_to_int(p.get("outputs")),
            retries=_to_int(p.get("retries")),
            tasks=_to_int(p.get("tasks")),
            tasks_done=_to_int(p.get("tasksDone")),
        )


@dataclass
class JobStatus:
    """Snapshot of a job's server-side record (live status or archived job.json)."""

    job_id: str
    name: Optional[str]
    state: str
    cancelled: bool = False
    input_done: bool = False
    stats: JobStats = field(default_factory=JobStats)
    time_created: Optional[pd.Timestamp] = None
    time_done: Optional[pd.Timestamp] = None
    phases: List[Dict[str, Any]] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], job_id: Optional[str] = None) -> "JobStatus":
        if not isinstance(payload, Mapping):
            raise ValidationError(f"job status payload must be an object, got {type(payload).__name__}")
        state = payload.get("state")
        if not state:
            raise ValidationError("job status payload has no 'state'")
        phases = payload.get("phases")
        return cls(
            job_id=str(payload.get("id") or job_id or ""),
            name=payload.get("name"),
            state=str(state),
            cancelled=bool(payload.get("cancelled", False)),
            input_done=bool(payload.get("inputDone", False)),
            stats=JobStats.from_payload(payload.get("stats")),
            time_created=_to_utc_ts(payload.get("timeCreated")),
            time_done=_to_utc_ts(payload.get("timeDone")),
            phases=list(phases) if isinstance(phases, list) else [],
            raw=dict(payload),
        )

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.time_created is None or self.time_done is None:
            return None
        return float((self.time_done - self.time_created).total_seconds())


@dataclass
class ErrorRecord:
    """A task error reported by the service, kept verbatim.

    ``code`` is the server's classifier (e.g. ``UserTaskError``); every other
    field the server sent that is not modelled here lands in ``extra``.
    """

    code: str
    message: Optional[str] = None
    phase_num: Optional[int] = None
    what: Optional[str] = None
    input: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _MODELLED = ("code", "message", "phaseNum", "what", "input")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ErrorRecord":
        if not isinstance(payload, Mapping) or not payload.get("code"):
            raise ValidationError(f"error record without a 'code': {payload!r}")
        phase_num = payload.get("phaseNum")
        return cls(
            code=str(payload["code"]),
            message=payload.get("message"),
            phase_num=int(phase_num) if phase_num is not None else None,
            what=payload.get("what"),
            input=payload.get("input"),
            extra={k: v for k, v in payload.items() if k not in cls._MODELLED},
        )

    @property
    def is_task_error(self) -> bool:
        """True when the user's own command failed, as opposed to a platform error."""
        return self.code == JOB_TASK_ERROR_CODE

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extra)
        out["code"] = self.code
        if self.message is not None:
            out["message"] = self.message
        if self.phase_num is not None:
            out["phaseNum"] = self.phase_num
        if self.what is not None:
            out["what"] = self.what
        if self.input is not None:
            out["input"] = self.input
        return out


@dataclass
class TerminalState:
    """What the poller saw when the job left the active states."""

    job_id: str
    state: str
    cancelled: bool
    attempts: int
    status: JobStatus

    @property
    def succeeded(self) -> bool:
        return self.state == "done" and not self.cancelled


@dataclass
class JobRunResult:
    """Everything the end-to-end flow collected for one job."""

    job: Job
    terminal: TerminalState
    references: Dict[Tuple[ResultCategory, ResultSource], List[Any]] = field(default_factory=dict)
    contents: Dict[Tuple[ResultCategory, ResultSource], List[str]] = field(default_factory=dict)

    def get(
        self,
        category: ResultCategory,
        source: ResultSource = ResultSource.ARCHIVED,
    ) -> List[Any]:
        return self.references.get((ResultCategory(category), ResultSource(source)), [])

    def content(
        self,
        category: ResultCategory,
        source: ResultSource = ResultSource.ARCHIVED,
    ) -> List[str]:
        return self.contents.get((ResultCategory(category), ResultSource(source)), [])
