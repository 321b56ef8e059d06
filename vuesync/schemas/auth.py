from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel

# Tokens this close to expiry are treated as already expired.
EXPIRY_DELTA = timedelta(seconds=10)


class Token(BaseModel):
    access_token: str = ""
    id_token: str = ""  # JWT with the user's identity claims, sent as the authtoken header
    refresh_token: str = ""
    token_type: str = "Bearer"
    expiry: Optional[datetime] = None

    def expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        expiry = self.expiry if self.expiry.tzinfo else self.expiry.replace(tzinfo=timezone.utc)
        return expiry - EXPIRY_DELTA <= now

    def valid(self, now: Optional[datetime] = None) -> bool:
        """Whether the token can be sent as-is."""
        return bool(self.id_token) and not self.expired(now)
