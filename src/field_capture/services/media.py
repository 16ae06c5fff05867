"""Media file naming and cleanup."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


@dataclass
class MediaLocator:
    """Allocates capture destinations under a media directory."""

    root: Path
    prefix: str = "CAPTURE"

    def new_destination(self, parent_id: int, now: datetime | None = None) -> Path:
        """Return a fresh, unused path for a capture owned by ``parent_id``."""
        self.root.mkdir(parents=True, exist_ok=True)
        stamp = (now or datetime.now(tz=UTC)).strftime("%Y%m%d_%H%M%S")
        name = f"{self.prefix}_{parent_id}_{stamp}_{uuid4().hex[:8]}.jpg"
        return self.root / name

    def remove(self, media_ref: str) -> bool:
        """Delete a media file if it exists. Returns True when a file was removed."""
        path = Path(media_ref)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError:
            logger.warning("Could not remove media file %s", path, exc_info=True)
            return False
        return True
