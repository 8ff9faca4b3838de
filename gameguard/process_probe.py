"""
Operating-system process access for GameGuard.

WHY: Every call that touches another process can fail independently
(process exited, protected/elevated target, transient OS error). Each
operation here returns an explicit result instead of raising, so the engine
decides per outcome what to log and whether to skip.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

import psutil

from .common import normalize_process_name


class ProbeStatus(Enum):
    OK = "ok"
    DENIED = "denied"  # permission problem, permanent for this instance
    GONE = "gone"  # process exited (or pid was recycled)
    ERROR = "error"  # anything else; treated as transient


@dataclass(frozen=True)
class ProbeResult:
    status: ProbeStatus
    value: Any = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ProbeStatus.OK


@dataclass(frozen=True)
class ProcessInfo:
    """Identity of one running process as seen during enumeration."""

    pid: int
    name: str
    create_time: Optional[float] = None


class TerminationOutcome(Enum):
    KILLED = "killed"
    ACCESS_DENIED = "access_denied"
    ALREADY_EXITED = "already_exited"
    FAILED = "failed"


@dataclass(frozen=True)
class TerminationResult:
    outcome: TerminationOutcome
    reason: str = ""


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class ProcessProbe:
    """psutil-backed implementation of list / resolve / terminate."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def list_by_name(self, process_name: str) -> ProbeResult:
        """
        List running processes whose name matches, ignoring case and extension.

        Returns:
            ProbeResult with a list of ProcessInfo on success
        """
        wanted = normalize_process_name(process_name)
        if not wanted:
            return ProbeResult(ProbeStatus.OK, [])

        matches: List[ProcessInfo] = []
        try:
            for proc in psutil.process_iter(["pid", "name", "create_time"]):
                info = proc.info
                name = info.get("name") or ""
                if normalize_process_name(name) != wanted:
                    continue
                matches.append(
                    ProcessInfo(
                        pid=info["pid"],
                        name=name,
                        create_time=info.get("create_time"),
                    )
                )
        except (psutil.Error, OSError) as e:
            self.logger.warning("Process enumeration for %s failed: %s", process_name, e)
            return ProbeResult(ProbeStatus.ERROR, reason=_describe(e))

        return ProbeResult(ProbeStatus.OK, matches)

    def _open(self, info: ProcessInfo) -> psutil.Process:
        proc = psutil.Process(info.pid)
        if info.create_time is not None and proc.create_time() != info.create_time:
            # Same pid, different process
            raise psutil.NoSuchProcess(info.pid, info.name)
        return proc

    def resolve_executable(self, info: ProcessInfo) -> ProbeResult:
        """
        Resolve the full executable path of a running instance.

        Returns:
            ProbeResult with the path string on success
        """
        try:
            exe = self._open(info).exe()
        except psutil.AccessDenied:
            return ProbeResult(ProbeStatus.DENIED, reason="access_denied")
        except psutil.NoSuchProcess:
            return ProbeResult(ProbeStatus.GONE, reason="exited")
        except (psutil.Error, OSError) as e:
            return ProbeResult(ProbeStatus.ERROR, reason=_describe(e))

        if not exe:
            return ProbeResult(ProbeStatus.ERROR, reason="module_null")
        return ProbeResult(ProbeStatus.OK, exe)

    def terminate(self, info: ProcessInfo) -> TerminationResult:
        """
        Kill an instance without waiting for it to exit.

        WHY: Termination is fire-and-forget; the next tick observes the result.
        """
        try:
            self._open(info).kill()
        except psutil.AccessDenied:
            return TerminationResult(TerminationOutcome.ACCESS_DENIED, "access_denied")
        except psutil.NoSuchProcess:
            return TerminationResult(TerminationOutcome.ALREADY_EXITED, "exited")
        except (psutil.Error, OSError) as e:
            return TerminationResult(TerminationOutcome.FAILED, _describe(e))

        return TerminationResult(TerminationOutcome.KILLED)
