"""
Pydantic schemas for tag validation.

These models describe the tags of one album as they travel through the
validator: per-file records, the issues found in them and the final
report for the album.
"""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, validator


class Severity(str, Enum):
    CRITICAL = "critical"
    RECOVERABLE = "recoverable"


class ReportStatus(str, Enum):
    VALID = "valid"
    RECOVERABLE = "recoverable"
    CRITICAL = "critical"


class TagRecord(BaseModel):
    """Tags of a single audio file, keys kept in their stored case."""

    file_name: str = Field(..., description="Audio file name inside the album directory")
    tags: Dict[str, str] = Field(default_factory=dict, description="Tag name to value mapping")

    @validator('tags', pre=True)
    def stringify_values(cls, v):
        """Tag stores may hand back non-string values; keep everything as text."""
        if v is None:
            return {}
        return {str(key): str(value) for key, value in dict(v).items()}

    def find_key(self, name: str) -> Optional[str]:
        """Return the stored key matching name case-insensitively, preferring an exact match."""
        if name in self.tags:
            return name
        wanted = name.upper()
        for key in self.tags:
            if key.upper() == wanted:
                return key
        return None

    def value(self, name: str) -> str:
        """Value of a tag looked up case-insensitively, or '' when absent."""
        key = self.find_key(name)
        return self.tags[key] if key is not None else ""

    def set_value(self, name: str, value: str) -> None:
        """Set a tag, reusing an existing key of any case."""
        key = self.find_key(name)
        self.tags[key if key is not None else name] = value

    def rename(self, old_key: str, new_key: str) -> None:
        self.tags[new_key] = self.tags.pop(old_key)

    def working_copy(self) -> "TagRecord":
        return TagRecord(file_name=self.file_name, tags=dict(self.tags))


class ValidationIssue(BaseModel):
    """A single problem found in an album's tags."""

    code: str = Field(..., description="Diagnostic code, e.g. MISSING_TAG_ARTIST")
    severity: Severity
    file_name: Optional[str] = Field(default=None, description="Offending file, None for album-level issues")
    message: str
    tracks: List[int] = Field(default_factory=list, description="Track numbers the issue refers to")

    @property
    def is_critical(self) -> bool:
        return self.severity is Severity.CRITICAL


class ValidationReport(BaseModel):
    """Outcome of validating one album."""

    album_path: Path
    status: ReportStatus
    issues: List[ValidationIssue] = Field(default_factory=list)
    records: List[TagRecord] = Field(default_factory=list)
    corrected: bool = Field(default=False, description="Whether corrections were written to the files")

    @property
    def is_valid(self) -> bool:
        return self.status is ReportStatus.VALID

    @property
    def critical_issues(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_critical]

    @property
    def recoverable_issues(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if not issue.is_critical]

    @property
    def reason(self) -> Optional[str]:
        """Code of the first critical issue."""
        critical = self.critical_issues
        return critical[0].code if critical else None

    @property
    def file(self) -> Optional[str]:
        """File of the first critical issue."""
        critical = self.critical_issues
        return critical[0].file_name if critical else None


class AlbumProcessingResult(BaseModel):
    """Result of processing a single leaf directory."""

    album_path: Path
    album_format: str = Field(..., description="Detected layout code, e.g. FLAC or FAILDETECT")
    success: bool
    pipeline_stage_completed: str = Field(..., description="detected, validated or relocated")
    report: Optional[ValidationReport] = None
    destination: Optional[Path] = None
    error_message: Optional[str] = None
