from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class CardTypeRef(BaseModel):
    id: str
    type: Optional[str] = None
    name: Optional[str] = None


class IdRef(BaseModel):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def stringify(cls, v):
        return str(v) if isinstance(v, int) else v


class CreatedCardRow(BaseModel):
    """A row echoed back by the bulk-create endpoint."""
    card_id: str
    card_type: Optional[CardTypeRef] = None
    wiegand_format_id: Optional[IdRef] = None
    id: Optional[str] = None
    display_card_id: Optional[str] = None

    # the server echoes more fields than we use
    model_config = {"extra": "allow"}

    @field_validator("card_id", "id", "display_card_id", mode="before")
    @classmethod
    def stringify(cls, v):
        return str(v) if isinstance(v, int) else v


class UserPayload(BaseModel):
    """Body of the user-create call, without the ``User`` envelope."""
    user_id: str
    name: str
    email: str
    department: str
    user_title: str
    password: str
    user_ip: str
    user_group_id: IdRef = Field(default_factory=lambda: IdRef(id="1"))
    start_datetime: str = "2001-01-01T00:00:00.00Z"
    expiry_datetime: str = "2030-12-31T23:59:00.00Z"
    disabled: str = "false"
    cards: List[IdRef] = Field(default_factory=list)

    def envelope(self) -> Dict[str, Any]:
        return {"User": self.model_dump()}
