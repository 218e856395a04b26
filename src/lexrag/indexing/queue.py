"""
Async queue for managing background indexing tasks.
"""
import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import AsyncContextManager, Callable

from ..config import settings
from ..db import PgVectorStore, session_scope
from ..embeddings.embedder import Embedder
from ..llm.client import build_openai_client
from .indexer import DocumentIndexer, IndexReport

logger = logging.getLogger("lexrag.indexing.queue")

IndexerFactory = Callable[[], AsyncContextManager[DocumentIndexer]]


@dataclass
class IndexingJob:
    """Represents a request to (re-)index a document."""
    document_id: str
    content: str

    # Metadata for tracing
    request_id: str = "unknown"


class IndexingQueue:
    """FIFO of pending indexing jobs."""
    def __init__(self):
        self._queue: asyncio.Queue[IndexingJob] = asyncio.Queue()

    async def enqueue(self, job: IndexingJob) -> int:
        """Add a job to the queue. Returns current queue size."""
        await self._queue.put(job)
        qsize = self._queue.qsize()
        logger.info("Job enqueued: %s (Queue size: %d)", job.document_id, qsize)
        return qsize

    async def get_next_job(self) -> IndexingJob:
        return await self._queue.get()

    def task_done(self):
        self._queue.task_done()

    async def join(self):
        await self._queue.join()

    def qsize(self) -> int:
        return self._queue.qsize()


indexing_queue = IndexingQueue()


@contextlib.asynccontextmanager
async def database_indexer():
    """
    Default factory: one database session per job, committed when the job
    completes.
    """
    async with session_scope() as session:
        yield DocumentIndexer(
            embedder=Embedder(build_openai_client(settings)),
            store=PgVectorStore(session),
        )


async def process_indexing_worker_task(
    queue: IndexingQueue = indexing_queue,
    indexer_factory: IndexerFactory = database_indexer,
):
    """
    Background worker that consumes jobs from the queue until cancelled.
    A failing job is logged and the worker moves on to the next one.
    """
    logger.info("Indexing worker started.")

    while True:
        try:
            job = await queue.get_next_job()
        except asyncio.CancelledError:
            logger.info("Indexing worker cancelled.")
            break

        try:
            logger.info("Processing indexing job: %s (%s)", job.document_id, job.request_id)
            report = await run_job(job, indexer_factory)
            logger.info(
                "Finished indexing job: %s (%d/%d chunks)",
                job.document_id,
                report.chunks_indexed,
                report.chunks_total,
            )
        except asyncio.CancelledError:
            logger.info("Indexing worker cancelled.")
            break
        except Exception:
            logger.exception("Failed to process indexing job %s", job.document_id)
        finally:
            queue.task_done()


async def run_job(job: IndexingJob, indexer_factory: IndexerFactory) -> IndexReport:
    async with indexer_factory() as indexer:
        return await indexer.index_document(job.document_id, job.content)
