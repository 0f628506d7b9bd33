from typing import Optional

from pydantic import BaseModel


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
