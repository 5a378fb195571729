from __future__ import annotations

from pydantic import BaseModel, Field


class FileEntryItem(BaseModel):
    name: str
    path: str


class DirectoryEntryItem(BaseModel):
    name: str
    path: str
    subdirectories: list[DirectoryEntryItem] = Field(default_factory=list)
    files: list[FileEntryItem] = Field(default_factory=list)


class RepositoryListResponse(BaseModel):
    items: list[str]


class ConnectionCheckResponse(BaseModel):
    ok: bool


class RevisionResponse(BaseModel):
    path: str
    fingerprint: str | None = None


class ApplyLabelRequest(BaseModel):
    label: str = Field(min_length=1, max_length=200)
    path: str = ""


class ApplyLabelResponse(BaseModel):
    label: str
    path: str


class ExportLatestRequest(BaseModel):
    source_path: str = ""
    target_path: str = Field(min_length=1)


class ExportLabeledRequest(BaseModel):
    label: str = Field(min_length=1, max_length=200)
    source_path: str = ""
    target_path: str = Field(min_length=1)


class ExportResponse(BaseModel):
    source_path: str
    target_path: str
    label: str | None = None
