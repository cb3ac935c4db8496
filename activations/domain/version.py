"""
Extension version advertisement.

Heartbeats carry the latest published extension version so clients can
prompt for updates. The ``ready*`` fields are set by a daily job once a
release is safe to announce.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

MARKETPLACE_URL = "https://marketplace.visualstudio.com/items?itemName=hic-ai.mouse"


@dataclass(frozen=True)
class VersionInfo:
    latest_version: Optional[str] = None
    release_notes_url: Optional[str] = None
    update_url: Optional[str] = None
    ready_version: Optional[str] = None
    ready_release_notes_url: Optional[str] = None
    ready_update_url: Optional[str] = None
    ready_updated_at: Optional[str] = None

    def to_fields(self) -> Dict[str, Any]:
        """Response fields appended to heartbeat bodies."""
        return {
            "latestVersion": self.latest_version,
            "releaseNotesUrl": self.release_notes_url,
            "updateUrl": self.update_url,
            "readyVersion": self.ready_version,
            "readyReleaseNotesUrl": self.ready_release_notes_url,
            "readyUpdateUrl": self.ready_update_url,
            "readyUpdatedAt": self.ready_updated_at,
        }


NO_VERSION = VersionInfo()
