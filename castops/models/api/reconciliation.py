# castops/models/api/reconciliation.py
"""
Reconciliation API request and response models.
"""

from pydantic import BaseModel, Field


class DriveLinkSyncRequest(BaseModel):
    page_key: str | None = Field(default=None, description="Notion page ID (dashes allowed)")
    project_name: str | None = Field(default=None, description="Only contacts of this project")
    contact_id: str | None = Field(default=None, description="Update this contact only")


class DriveLinkSyncResponse(BaseModel):
    found: bool = Field(..., description="A drive link existed for the request")
    updated: int = Field(..., description="Contacts updated")
    drive_link: str | None = Field(default=None, description="Link applied in single-key modes")


class ShootDetailSyncRequest(BaseModel):
    page_key: str | None = Field(default=None, description="Notion page ID (dashes allowed)")
    project_name: str | None = Field(default=None, description="Only contacts of this project")


class ShootDetailSyncResponse(BaseModel):
    found: bool
    updated: int


class ShootDetailLookupRequest(BaseModel):
    cast_name: str | None = Field(default=None, description="Cast name as written in the schedule")
    page_key: str | None = Field(default=None, description="Notion page ID (dashes allowed)")
    contact_id: str | None = Field(
        default=None, description="Apply the first record to this contact"
    )


class ShootDetailRecord(BaseModel):
    id: str
    page_key: str
    cast_name: str
    in_time: str = ""
    out_time: str = ""
    location: str = ""
    address: str = ""


class ShootDetailLookupResponse(BaseModel):
    found: bool
    records: list[ShootDetailRecord] = Field(default_factory=list)
    count: int = 0
    applied: int = Field(default=0, description="Contacts updated from the first record")
