"""
Document Ingestion Routes

Exposes the ingestion trigger invoked after a PDF has been uploaded to the
blob store and its `documents` row created. The request runs the full
ingestion state machine synchronously and reports how many chunks were
stored.
"""

from fastapi import APIRouter, Depends, status
from typing import Annotated

from .models import ProcessDocumentRequest, ProcessDocumentResponse
from .dependencies import get_ingestion_pipeline
from ..ingestion.pipeline import IngestionPipeline

router = APIRouter(tags=["documents"])


@router.post(
    "/process-document",
    response_model=ProcessDocumentResponse,
    summary="Extract, chunk and index an uploaded document",
    status_code=status.HTTP_200_OK,
)
async def process_document(
    req: ProcessDocumentRequest,
    pipeline: Annotated[IngestionPipeline, Depends(get_ingestion_pipeline)],
) -> ProcessDocumentResponse:
    """
    Run ingestion for the document stored at `filePath`.

    Failures (unknown document, download or insert errors) surface as
    `{"error": ...}` through the registered domain error handler.
    """
    result = await pipeline.process(req.file_path)
    return ProcessDocumentResponse(success=True, chunks=result.chunk_count)
