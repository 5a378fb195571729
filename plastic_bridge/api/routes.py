from pathlib import Path

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from plastic_bridge.models.schemas import (
    ApplyLabelRequest,
    ApplyLabelResponse,
    ConnectionCheckResponse,
    DirectoryEntryItem,
    ExportLabeledRequest,
    ExportLatestRequest,
    ExportResponse,
    FileEntryItem,
    RepositoryListResponse,
    RevisionResponse,
)
from plastic_bridge.services.directory_service import DirectoryEntry
from plastic_bridge.services.provider_service import PlasticProvider, plastic_provider

router = APIRouter()


def get_provider() -> PlasticProvider:
    return plastic_provider


@router.get("/repositories", response_model=RepositoryListResponse)
def list_repositories(
    provider: PlasticProvider = Depends(get_provider),
) -> RepositoryListResponse:
    return RepositoryListResponse(items=provider.list_repositories())


@router.post("/connection/validate", response_model=ConnectionCheckResponse)
def validate_connection(
    provider: PlasticProvider = Depends(get_provider),
) -> ConnectionCheckResponse:
    provider.validate_connection()
    return ConnectionCheckResponse(ok=True)


@router.get("/tree", response_model=DirectoryEntryItem)
def get_tree(
    path: str = Query(default=""),
    provider: PlasticProvider = Depends(get_provider),
) -> DirectoryEntryItem:
    return _to_directory_item(provider.get_directory_entry(path))


@router.get("/files/{file_path:path}")
def get_file(
    file_path: str,
    provider: PlasticProvider = Depends(get_provider),
) -> Response:
    content = provider.get_file_contents(file_path)
    return Response(content=content, media_type="application/octet-stream")


@router.get("/revision", response_model=RevisionResponse)
def get_revision(
    path: str = Query(default=""),
    provider: PlasticProvider = Depends(get_provider),
) -> RevisionResponse:
    fingerprint = provider.get_current_revision(path)
    return RevisionResponse(
        path=path,
        fingerprint=fingerprint.hex() if fingerprint is not None else None,
    )


@router.post("/labels", response_model=ApplyLabelResponse)
def apply_label(
    body: ApplyLabelRequest,
    provider: PlasticProvider = Depends(get_provider),
) -> ApplyLabelResponse:
    provider.apply_label(body.label, body.path)
    return ApplyLabelResponse(label=body.label, path=body.path)


@router.post("/exports/latest", response_model=ExportResponse)
def export_latest(
    body: ExportLatestRequest,
    provider: PlasticProvider = Depends(get_provider),
) -> ExportResponse:
    provider.get_latest(body.source_path, Path(body.target_path))
    return ExportResponse(source_path=body.source_path, target_path=body.target_path)


@router.post("/exports/labeled", response_model=ExportResponse)
def export_labeled(
    body: ExportLabeledRequest,
    provider: PlasticProvider = Depends(get_provider),
) -> ExportResponse:
    provider.get_labeled(body.label, body.source_path, Path(body.target_path))
    return ExportResponse(
        source_path=body.source_path,
        target_path=body.target_path,
        label=body.label,
    )


def _to_directory_item(entry: DirectoryEntry) -> DirectoryEntryItem:
    return DirectoryEntryItem(
        name=entry.name,
        path=entry.path,
        subdirectories=[_to_directory_item(child) for child in entry.subdirectories],
        files=[FileEntryItem(name=item.name, path=item.path) for item in entry.files],
    )
