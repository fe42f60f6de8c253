"""Value types shared by the reconciliation services"""

from __future__ import annotations

import base64
import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


class CommentMode(str, enum.Enum):
    UPDATE = "update"
    NEW = "new"
    MINIMAL = "minimal"

    @classmethod
    def parse(cls, value: Optional[str]) -> "CommentMode":
        """Parse a mode string, falling back to UPDATE for unknown values."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.UPDATE


class CommentAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    CREATED_MINIMAL = "created_minimal"


class OutcomeStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    # Comment written, but some images could not be attached.
    WARNED = "warned"
    FAILED = "failed"


@dataclass(frozen=True)
class ChangeRequest:
    number: int
    title: str
    body: str
    url: str


@dataclass(frozen=True)
class TrackerConfig:
    base_url: str
    email: str
    api_token: str

    def normalized(self) -> "TrackerConfig":
        return TrackerConfig(
            base_url=(self.base_url or "").rstrip("/"),
            email=self.email,
            api_token=self.api_token,
        )

    def auth_header(self) -> str:
        raw = f"{self.email}:{self.api_token}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")


@dataclass(frozen=True)
class ImageReference:
    alt: str
    url: str
    # Exact source text of the reference; start/end index it in the source document.
    raw: str
    start: int
    end: int


@dataclass(frozen=True)
class FetchedImage:
    url: str
    content: bytes
    filename: str
    content_type: str


@dataclass(frozen=True)
class IssueOutcome:
    issue_key: str
    status: OutcomeStatus
    action: Optional[CommentAction] = None
    message: Optional[str] = None
    uploaded: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "issue_key": self.issue_key,
            "status": self.status.value,
            "action": self.action.value if self.action else None,
            "message": self.message,
            "uploaded": list(self.uploaded),
        }


@dataclass
class ReconcileResult:
    issue_keys: List[str] = field(default_factory=list)
    outcomes: List[IssueOutcome] = field(default_factory=list)

    def outcome_for(self, issue_key: str) -> Optional[IssueOutcome]:
        for outcome in self.outcomes:
            if outcome.issue_key == issue_key:
                return outcome
        return None

    def to_dict(self) -> Dict[str, object]:
        return {
            "issue_keys": list(self.issue_keys),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
