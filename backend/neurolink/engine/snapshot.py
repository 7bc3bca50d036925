from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
from pathlib import Path

from .profile import TrainerContext

logger = logging.getLogger(__name__)

DEFAULT_CHECKSUM_KEY = b"neurolink-local-snapshot-v3"


def _canonical(data: dict) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


class SnapshotStore:
    """Local persistence of the whole TrainerContext as one checksummed document.

    A snapshot whose checksum does not match is treated as absent; it is never
    partially trusted.
    """

    def __init__(self, path: Path, *, key: bytes = DEFAULT_CHECKSUM_KEY) -> None:
        self._path = Path(path)
        self._key = key

    def checksum(self, data: dict) -> str:
        return hmac.new(self._key, _canonical(data), hashlib.sha256).hexdigest()

    def save(self, context: TrainerContext) -> None:
        data = context.to_dict()
        doc = {"data": data, "checksum": self.checksum(data)}
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(doc), encoding="utf-8")
        os.replace(tmp, self._path)

    def load(self) -> TrainerContext | None:
        try:
            doc = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("snapshot unreadable at %s: %s", self._path, exc)
            return None

        if not isinstance(doc, dict) or not isinstance(doc.get("data"), dict):
            logger.warning("snapshot at %s has no data section", self._path)
            return None
        expected = self.checksum(doc["data"])
        if not hmac.compare_digest(expected, str(doc.get("checksum", ""))):
            logger.warning("snapshot checksum mismatch at %s; ignoring it", self._path)
            return None
        try:
            return TrainerContext.from_dict(doc["data"])
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("snapshot at %s could not be decoded: %s", self._path, exc)
            return None
