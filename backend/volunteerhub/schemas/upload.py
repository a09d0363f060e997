from pydantic import BaseModel


class UploadResponse(BaseModel):
    reference: str
    content_type: str
    size: int
