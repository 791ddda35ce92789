from pydantic import BaseModel


class UploadResponse(BaseModel):
    """Response schema for a successful POST /upload."""
    url: str


class UploadErrorResponse(BaseModel):
    """Response schema for a rejected or failed POST /upload."""
    error: str
