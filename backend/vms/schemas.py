from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

# Request bodies keep every field optional so that a missing value is reported
# as a 400 with our own message rather than a validation error.

class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None

class StallAuthRequest(BaseModel):
    stall_id: Optional[str] = Field(None, alias="stallId")
    access_code: Optional[str] = Field(None, alias="accessCode")

    model_config = ConfigDict(populate_by_name=True)

class ScanRequest(BaseModel):
    visitor_id: Optional[str] = Field(None, alias="visitorId")
    stall_id: Optional[str] = Field(None, alias="stallId")
    access_code: Optional[str] = Field(None, alias="accessCode")

    model_config = ConfigDict(populate_by_name=True)

class StallPublic(BaseModel):
    id: str
    name: str

class VisitorPublic(BaseModel):
    id: str
    name: str
    email: str

class StallAuthResponse(BaseModel):
    ok: bool = True
    stall: StallPublic

class ScanResponse(BaseModel):
    ok: bool = True
    repeat: bool
    message: str
    visitor: VisitorPublic
    stall: StallPublic

class RegisterResponse(BaseModel):
    id: str
    previewUrl: Optional[str] = None
    email_status: str
    email_error: Optional[str] = None
    qr_url: Optional[str] = None

class VisitorSummary(BaseModel):
    id: str
    name: str
    email: str
    registered_at: str
    email_status: Optional[str] = None
    scans_count: int
    stalls: List[str]

class RecentVisitor(BaseModel):
    id: str
    name: str
    email: str
    registered_at: str
    email_status: Optional[str] = None

class StallStats(BaseModel):
    id: str
    name: str
    scans: int
    unique_visitors: int

class StatsResponse(BaseModel):
    totalVisitors: int
    emailsSent: int
    totalScans: int
    stalls: List[StallStats]
    recentVisitors: List[RecentVisitor]

class ErrorResponse(BaseModel):
    error: str
