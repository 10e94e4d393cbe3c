from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

class UploadStatus(str, Enum):
    UPLOADED = "uploaded"
    SKIPPED = "skipped"

class UploadResult(BaseModel):
    status: UploadStatus
    path: str
    key: Optional[str] = None
    content_type: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    size: Optional[int] = None
    reason: Optional[str] = None

    @property
    def uploaded(self) -> bool:
        return self.status == UploadStatus.UPLOADED

class DirectoryUploadSummary(BaseModel):
    directory: str
    tag: str
    uploaded: int = 0
    skipped: int = 0
    failed: int = 0

class ScanSummary(BaseModel):
    directories: List[DirectoryUploadSummary] = Field(default_factory=list)

    @property
    def uploaded(self) -> int:
        return sum(d.uploaded for d in self.directories)

    @property
    def failed(self) -> int:
        return sum(d.failed for d in self.directories)

class WatchRuleItem(BaseModel):
    dir: str
    tag: str

class WatchesResponse(BaseModel):
    use_wildcard: bool
    upload_existing: bool
    rules: List[WatchRuleItem]
    watched_directories: List[str]

class ScanResponse(BaseModel):
    status: str
    pending_events: int

class IdentityResponse(BaseModel):
    path: str
    identity: str
    s3_key: str
