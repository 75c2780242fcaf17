"""
Advisory, per-client guard against rating the same module twice.

The record lives on the client only. Clearing it, or using another client,
bypasses the guard; the server accepts any well-formed rating for an active
module without identity checks.
"""
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Set, Union

logger = logging.getLogger(__name__)

ALREADY_RATED_MESSAGE = "You have already rated this module from this device."


class AlreadyRatedError(Exception):
    def __init__(self, module_id, message: str = ALREADY_RATED_MESSAGE):
        super().__init__(message)
        self.module_id = module_id
        self.message = message


class PreferenceStore(ABC):
    """Local read/write storage for the ids of modules this client has rated"""

    @abstractmethod
    def read(self) -> Iterable[str]:
        ...

    @abstractmethod
    def write(self, module_ids: Iterable[str]) -> None:
        ...


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self, module_ids: Iterable = ()):
        self._module_ids = [str(module_id) for module_id in module_ids]

    def read(self):
        return list(self._module_ids)

    def write(self, module_ids):
        self._module_ids = list(module_ids)


class JsonFilePreferenceStore(PreferenceStore):
    """Keeps the rated module ids as a JSON list in a file"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read(self):
        if not self.path.exists():
            return []
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON list in {self.path}")
        return [str(module_id) for module_id in data]

    def write(self, module_ids):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(sorted(module_ids)), encoding="utf-8")


class SubmissionGuard:
    def __init__(self, store: PreferenceStore):
        self.store = store

    def rated_modules(self) -> Set[str]:
        try:
            return {str(module_id) for module_id in self.store.read()}
        except Exception as e:
            # Unreadable record counts as "nothing rated yet"
            logger.warning(f"Could not read rated modules, treating as not rated: {e}")
            return set()

    def has_rated(self, module_id) -> bool:
        return str(module_id) in self.rated_modules()

    def ensure_can_rate(self, module_id) -> None:
        if self.has_rated(module_id):
            logger.info(f"Rating form refused for module {module_id}: already rated on this client")
            raise AlreadyRatedError(module_id)

    def record_rated(self, module_id) -> bool:
        """Remember a successful submission. Failures are logged, never raised."""
        try:
            rated = self.rated_modules()
            if str(module_id) in rated:
                return True
            rated.add(str(module_id))
            self.store.write(rated)
            return True
        except Exception as e:
            logger.error(f"Could not record module {module_id} as rated: {e}")
            return False

    def clear(self) -> None:
        self.store.write([])
