from pydantic import BaseModel


class EventApproval(BaseModel):
    is_approved: bool


class MessageResponse(BaseModel):
    message: str
