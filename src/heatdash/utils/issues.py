"""
Configuration Issues

Collects the non-fatal problems found while normalizing a configuration
document. Nothing in the engine raises for bad data; it records an issue
here and carries on with a default.
"""

from typing import Optional, Callable, Dict, List
from enum import Enum, auto
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)


class IssueSeverity(Enum):
    """Issue severity levels."""
    INFO = auto()       # Value migrated or defaulted
    WARNING = auto()    # Value changed or not understood


class IssueCategory(Enum):
    """Issue categories for filtering in the UI."""
    LEGACY = "legacy"           # Old key spelling or encoding migrated
    UNSUPPORTED = "unsupported" # Unknown role or source kind kept verbatim
    PINNED = "pinned"           # Fixed firmware placement overrode a value
    VALUE = "value"             # Out of range or malformed value corrected


# Issue codes
LEGACY_KEY = "legacy_key"
UNSUPPORTED_ROLE = "unsupported_role"
UNSUPPORTED_SOURCE = "unsupported_source"
PINNED_ROLE = "pinned_role"
PEER_CONFLICT = "peer_conflict"
BAD_WINDOW = "bad_window"
SWAPPED_LIMITS = "swapped_limits"


@dataclass
class ConfigIssue:
    """Single finding recorded during normalization."""
    code: str
    path: str
    message: str
    severity: IssueSeverity = IssueSeverity.INFO
    category: IssueCategory = IssueCategory.VALUE

    @property
    def unsupported(self) -> bool:
        return self.category == IssueCategory.UNSUPPORTED

    def to_dict(self) -> Dict[str, str]:
        return {
            "code": self.code,
            "path": self.path,
            "message": self.message,
            "severity": self.severity.name.lower(),
            "category": self.category.value,
        }

    def __str__(self):
        return f"[{self.severity.name}] {self.path}: {self.message}"


@dataclass
class IssueCollector:
    """
    Accumulates issues for one normalization run.

    Duplicate (code, path) pairs are recorded once, so running a pass
    twice over the same document does not double the report.
    """
    issues: List[ConfigIssue] = field(default_factory=list)
    on_issue: Optional[Callable[[ConfigIssue], None]] = None

    def add(self, code: str, path: str, message: str,
            severity: IssueSeverity = IssueSeverity.INFO,
            category: IssueCategory = IssueCategory.VALUE) -> None:
        for existing in self.issues:
            if existing.code == code and existing.path == path:
                return

        issue = ConfigIssue(code, path, message, severity, category)
        self.issues.append(issue)

        if severity == IssueSeverity.WARNING:
            logger.warning(str(issue))
        else:
            logger.debug(str(issue))

        if self.on_issue:
            self.on_issue(issue)

    def legacy(self, path: str, message: str) -> None:
        self.add(LEGACY_KEY, path, message, IssueSeverity.INFO, IssueCategory.LEGACY)

    def unsupported(self, code: str, path: str, message: str) -> None:
        self.add(code, path, message, IssueSeverity.WARNING, IssueCategory.UNSUPPORTED)

    def pinned(self, path: str, message: str) -> None:
        self.add(PINNED_ROLE, path, message, IssueSeverity.WARNING, IssueCategory.PINNED)

    def by_category(self, category: IssueCategory) -> List[ConfigIssue]:
        return [i for i in self.issues if i.category == category]

    def unsupported_paths(self) -> List[str]:
        """Paths the UI should mark as unsupported."""
        return [i.path for i in self.issues if i.unsupported]

    def __len__(self):
        return len(self.issues)

    def __iter__(self):
        return iter(self.issues)
