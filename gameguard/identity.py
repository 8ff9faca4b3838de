"""
Identity verification for enforcement candidates.

WHY: Name matching alone is bypassed by renaming an unrelated executable to
the target name (or vice versa). Path pinning closes that gap; when the path
cannot be read we refuse to guess and leave the process alone.
"""

from dataclasses import dataclass
from enum import Enum

from .common import normalize_path, normalize_process_name
from .models import Rule
from .process_probe import ProbeStatus, ProcessInfo, ProcessProbe


class VerdictKind(Enum):
    MATCH = "match"
    NO_MATCH = "no_match"
    UNVERIFIABLE = "unverifiable"


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    reason: str = ""

    @property
    def is_match(self) -> bool:
        return self.kind is VerdictKind.MATCH


MATCH = Verdict(VerdictKind.MATCH)


class IdentityVerifier:
    """Decides whether a running instance is a genuine target of a rule."""

    def __init__(self, probe: ProcessProbe):
        self.probe = probe

    def verify(self, rule: Rule, info: ProcessInfo) -> Verdict:
        if normalize_process_name(info.name) != normalize_process_name(rule.process_name):
            return Verdict(VerdictKind.NO_MATCH, "name")

        if not rule.requires_path_match:
            return MATCH

        resolved = self.probe.resolve_executable(info)
        if resolved.status is ProbeStatus.GONE:
            return Verdict(VerdictKind.NO_MATCH, "exited")
        if not resolved.ok:
            return Verdict(VerdictKind.UNVERIFIABLE, resolved.reason or resolved.status.value)

        if normalize_path(resolved.value) != normalize_path(rule.path):
            return Verdict(VerdictKind.NO_MATCH, "path")

        return MATCH
