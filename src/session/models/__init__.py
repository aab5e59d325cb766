from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class SessionState(str, Enum):
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class RedirectIntent:
    """Navigate to `path`, remembering `from_path` so the user can be sent back after login."""
    path: str
    from_path: str = "/"
    replace: bool = True


@dataclass
class LivenessRecord:
    active: bool = False
    last_checked: Optional[datetime] = field(default=None)

    def update(self, active: bool) -> bool:
        """Store a fresh check result. Returns True if the flag changed."""
        changed = active != self.active
        self.active = active
        self.last_checked = datetime.now()
        return changed
