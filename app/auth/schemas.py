from typing import Optional

from pydantic import BaseModel, ConfigDict


class CallerIdentity(BaseModel):
    """The authenticated acting party, passed explicitly into every service call."""
    user_id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(frozen=True)
