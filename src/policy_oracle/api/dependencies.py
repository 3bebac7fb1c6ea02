from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session, DocumentStore, ConversationStore
from ..ingestion.pipeline import IngestionPipeline
from ..llm.client import ChatCompletionClient
from ..retrieval.engine import RetrievalEngine
from ..storage.blob_client import BlobStoreClient


@lru_cache
def get_chat_client() -> ChatCompletionClient:
    return ChatCompletionClient()


@lru_cache
def get_blob_client() -> BlobStoreClient:
    return BlobStoreClient()


def get_document_store(
    session: AsyncSession = Depends(get_async_session),
) -> DocumentStore:
    return DocumentStore(session)


def get_conversation_store(
    session: AsyncSession = Depends(get_async_session),
) -> ConversationStore:
    return ConversationStore(session)


def get_ingestion_pipeline(
    store: DocumentStore = Depends(get_document_store),
    blobs: BlobStoreClient = Depends(get_blob_client),
) -> IngestionPipeline:
    return IngestionPipeline(store, blobs)


def get_retrieval_engine(
    store: DocumentStore = Depends(get_document_store),
) -> RetrievalEngine:
    return RetrievalEngine(store)
