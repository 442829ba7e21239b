"""User -> custodial wallet id mapping, persisted as a JSON file.

File format: ``{"<telegram user id>": "<wallet id>", ...}``
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from solcustody.errors import StorageError

logger = logging.getLogger(__name__)

UserKey = Union[int, str]


class JsonWalletStore:
    """JSON-file key-value store for wallet mappings.

    A missing file reads as empty. A file that exists but cannot be parsed
    raises StorageError rather than being treated as empty, so a bad file
    never causes users to be issued second wallets.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> dict[str, str]:
        """Read every mapping."""
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read wallet mappings from {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Wallet mappings in {self.path} are not a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def save(self, mappings: dict[str, str]):
        """Replace every mapping atomically (temp file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(mappings, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Cannot write wallet mappings to {self.path}: {e}") from e

    def get(self, user_id: UserKey) -> Optional[str]:
        return self.load().get(str(user_id))

    def set(self, user_id: UserKey, wallet_id: str):
        mappings = self.load()
        mappings[str(user_id)] = wallet_id
        self.save(mappings)
        logger.info(f"Saved wallet mapping for user {user_id}")
