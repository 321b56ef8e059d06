"""JSON file persistence for the Vue API token between runs."""
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from vuesync.schemas.auth import Token

logger = logging.getLogger(__name__)


class TokenStore:
    """Loads and saves a single Token as a JSON document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Token]:
        """Return the stored token, or None when nothing has been saved yet."""
        if not self.path.exists():
            logger.info(f"No saved token at {self.path}")
            return None
        data = self.path.read_text()
        if data.strip() in ("", "null"):
            return None
        try:
            return Token.model_validate_json(data)
        except ValidationError as e:
            raise ValueError(f"could not read token file {self.path}: {e}") from e

    def save(self, token: Optional[Token]) -> None:
        """Atomically replace the token file (owner read/write only)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = token.model_dump_json() if token is not None else "null"
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".auth-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(data)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.debug(f"💾 Saved token to {self.path}")

    def on_token_change(self, old: Optional[Token], new: Optional[Token]) -> None:
        """Atom watcher persisting every new token."""
        self.save(new)
