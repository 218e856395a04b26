import asyncio
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from sqlalchemy import select

from lexrag.config import settings
from lexrag.db import Document, PgVectorStore, init_database, session_scope
from lexrag.embeddings.embedder import Embedder
from lexrag.indexing.indexer import DocumentIndexer, IndexingError
from lexrag.llm.client import build_openai_client


async def main(document_ids):
    embedder = Embedder(build_openai_client(settings))
    if not embedder.available:
        print("OPENAI_API_KEY is not set; cannot create embeddings.")
        return 1

    print("Verifying schema...")
    await init_database()

    async with session_scope() as session:
        stmt = select(Document.id).order_by(Document.id)
        if document_ids:
            stmt = stmt.where(Document.id.in_(document_ids))
        ids = list((await session.execute(stmt)).scalars())
    print(f"Found {len(ids)} documents.")

    failed = 0
    for i, document_id in enumerate(ids):
        print(f"Indexing ({i+1}/{len(ids)}): {document_id}")

        # One transaction per document so a failure only loses that document
        async with session_scope() as session:
            document = await session.get(Document, document_id)
            indexer = DocumentIndexer(embedder, PgVectorStore(session))
            try:
                report = await indexer.index_document(document_id, document.content or "")
            except IndexingError as e:
                print(f"Skipped: {e}")
                failed += 1
                continue

        print(f"  {report.chunks_indexed}/{report.chunks_total} chunks stored")
        if report.chunks_failed:
            failed += 1

    print(f"Done! {len(ids) - failed} documents fully indexed, {failed} with failures.")
    return 0 if not failed else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
