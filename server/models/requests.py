from typing import Literal

from pydantic import BaseModel


class ToggleRequest(BaseModel):
    field: Literal["required", "provided"]
    value: bool
    view_id: str | None = None
