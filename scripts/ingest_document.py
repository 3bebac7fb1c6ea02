"""
Run ingestion for one uploaded document from the command line.

Usage:
    python scripts/ingest_document.py <file_path>
"""
import asyncio
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from policy_oracle.core.errors import PolicyOracleError
from policy_oracle.db import AsyncSessionLocal, DocumentStore, async_engine
from policy_oracle.ingestion.pipeline import IngestionPipeline
from policy_oracle.storage.blob_client import BlobStoreClient


async def main(file_path: str) -> int:
    try:
        async with AsyncSessionLocal() as session:
            pipeline = IngestionPipeline(DocumentStore(session), BlobStoreClient())
            result = await pipeline.process(file_path)
    except PolicyOracleError as exc:
        print(f"Ingestion failed: {exc.message}")
        return 1
    finally:
        await async_engine.dispose()

    print(f"Document {result.document_id}: {result.chunk_count} chunks, ~{result.page_count} pages")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1])))
