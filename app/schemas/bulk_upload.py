from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# --- Per-record report entries ---
class RecordError(BaseModel):
    index: int
    record: Any
    errors: List[str]


class SkippedRecord(BaseModel):
    index: int
    record: Any
    reason: str


class ImageWarning(BaseModel):
    record: str       # title / name / email of the offending record
    field: str        # images | video.thumbnail | logo | profileImage | image | processing
    reason: str


# --- Summary ---
class BulkSummary(BaseModel):
    total: int
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    validated: Optional[int] = None  # only on a rejected batch


# --- Main Response ---
class BulkUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    summary: BulkSummary
    errors: Optional[List[RecordError]] = None
    skipped: Optional[List[SkippedRecord]] = None
    skipped_records: List[SkippedRecord] = Field(default_factory=list, alias="skippedRecords")
    image_warnings: List[ImageWarning] = Field(default_factory=list, alias="imageWarnings")
    error: Optional[str] = None
