"""Version history of the image being edited.

Every editing session starts from an "Original" version. Each accepted
inpainting result is appended as "Edit N" and becomes the active version;
any earlier version can be reactivated. Only one version is edited at a
time, and switching versions starts a fresh paint history.
"""

import logging
from dataclasses import dataclass, field

from PIL import Image

logger = logging.getLogger(__name__)


@dataclass
class VersionEntry:
    """One version of the edited image.

    Attributes
    ----------
    id : str
        Stable identifier (``v-1``, ``v-2``, ...)
    label : str
        Display label ("Original", "Edit 1", ...)
    image : Image.Image
        Full-resolution RGBA image of this version
    """

    id: str
    label: str
    image: Image.Image = field(repr=False)

    def to_dict(self, active: bool = False) -> dict:
        """Serialise the entry for host responses (without pixels)."""
        return {
            "id": self.id,
            "label": self.label,
            "width": self.image.width,
            "height": self.image.height,
            "active": active,
        }


class VersionHistory:
    """Ordered list of versions with one active entry."""

    def __init__(self) -> None:
        self.entries: list[VersionEntry] = []
        self.active_id: str | None = None
        self._counter = 0

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def active(self) -> VersionEntry | None:
        """The version currently being edited."""
        if self.active_id is None:
            return None
        return self.get(self.active_id)

    def get(self, version_id: str) -> VersionEntry:
        """Look up a version by ID.

        Raises:
            KeyError: If no version has this ID
        """
        for entry in self.entries:
            if entry.id == version_id:
                return entry
        raise KeyError(f"Unknown version: {version_id}")

    def start(self, image: Image.Image) -> VersionEntry:
        """Discard all versions and begin again from an original image."""
        self._counter = 1
        entry = VersionEntry(id="v-1", label="Original", image=image)
        self.entries = [entry]
        self.active_id = entry.id
        return entry

    def add_result(self, image: Image.Image) -> VersionEntry:
        """Append an edit result and make it the active version."""
        if not self.entries:
            return self.start(image)
        self._counter += 1
        entry = VersionEntry(
            id=f"v-{self._counter}",
            label=f"Edit {len(self.entries)}",
            image=image,
        )
        self.entries.append(entry)
        self.active_id = entry.id
        logger.info(f"Added version {entry.id} ({entry.label})")
        return entry

    def activate(self, version_id: str) -> VersionEntry:
        """Make an existing version the active one.

        Raises:
            KeyError: If no version has this ID
        """
        entry = self.get(version_id)
        self.active_id = entry.id
        return entry

    def clear(self) -> None:
        """Forget every version."""
        self.entries = []
        self.active_id = None
        self._counter = 0

    def to_list(self) -> list[dict]:
        """Serialise all versions in order."""
        return [entry.to_dict(active=entry.id == self.active_id) for entry in self.entries]
