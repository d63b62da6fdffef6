"""
JSON file persistence of patient profiles.
"""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from . import config
from .models import PatientProfile

logger = logging.getLogger(__name__)


class ProfileStoreError(Exception):
    """Raised when the profile file cannot be read or written."""


class ProfileStore:
    """Profiles keyed by id, saved as a JSON list. A missing file is an empty store."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path is not None else config.PROFILE_STORE_PATH
        self._profiles: Dict[str, PatientProfile] = {}
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            logger.info("No profile store at %s, starting empty", self.path)
            self._profiles = {}
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
            if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
                raise ValueError("expected a JSON list of profile objects")
            profiles = [PatientProfile.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProfileStoreError(f"Cannot read profile store {self.path}: {e}") from e
        self._profiles = {p.id: p for p in profiles}
        logger.info("Loaded %d profile(s) from %s", len(self._profiles), self.path)

    def save(self) -> None:
        data = [p.to_dict() for p in self._profiles.values()]
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # the store file is only ever replaced whole
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise ProfileStoreError(f"Cannot write profile store {self.path}: {e}") from e
        logger.info("Saved %d profile(s) to %s", len(data), self.path)

    def get(self, profile_id: str) -> Optional[PatientProfile]:
        return self._profiles.get(profile_id)

    def all(self) -> List[PatientProfile]:
        return sorted(self._profiles.values(), key=lambda p: (p.last_name.lower(), p.first_name.lower()))

    def upsert(self, profile: PatientProfile) -> None:
        self._profiles[profile.id] = profile
        self.save()

    def delete(self, profile_id: str) -> bool:
        if self._profiles.pop(profile_id, None) is None:
            return False
        self.save()
        return True

    def search(self, term: str) -> List[PatientProfile]:
        if not term:
            return self.all()
        return [p for p in self.all() if p.matches(term)]

    def __len__(self) -> int:
        return len(self._profiles)
