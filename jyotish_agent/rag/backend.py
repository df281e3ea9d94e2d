"""
Remote Index Backend
====================

The operations the retrieval store needs from a hosted document index:

    create_index(display_name)                -> handle
    upload_document(handle, path, name)       -> operation id
    get_upload_status(handle, operation id)   -> in_progress | completed | failed
    grounded_query(handle, query, prompt)     -> answer text

OpenAIIndexBackend implements them with OpenAI vector stores: files are
uploaded, attached to the vector store (processing happens
asynchronously), and questions are answered through the Responses API
with the file_search tool restricted to that store.
"""

from pathlib import Path
from typing import Protocol

from openai import AsyncOpenAI

from jyotish_agent.utils.logger import Logger

logger = Logger("IndexBackend")

UPLOAD_IN_PROGRESS = "in_progress"
UPLOAD_COMPLETED = "completed"
UPLOAD_FAILED = "failed"


class IndexBackend(Protocol):
    async def create_index(self, display_name: str) -> str: ...

    async def upload_document(self, handle: str, path: Path, display_name: str) -> str: ...

    async def get_upload_status(self, handle: str, operation_id: str) -> str: ...

    async def grounded_query(
        self,
        handle: str,
        query: str,
        system_prompt: str,
        timeout: float | None = None
    ) -> str: ...


class OpenAIIndexBackend:
    """
    Index backend on OpenAI vector stores.

    Example:
        backend = OpenAIIndexBackend(AsyncOpenAI(api_key="sk-..."), model="gpt-4o-mini")
        handle = await backend.create_index("Vedic-Astrology-Books-Store")
        op = await backend.upload_document(handle, Path("books/bphs.pdf"), "bphs.pdf")
        while await backend.get_upload_status(handle, op) == "in_progress":
            ...
    """

    def __init__(self, client: AsyncOpenAI, model: str, temperature: float = 0.3):
        """
        Args:
            client: Async OpenAI client
            model: Model used to compose grounded answers
            temperature: Sampling temperature for grounded answers
        """
        self.client = client
        self.model = model
        self.temperature = temperature

    async def create_index(self, display_name: str) -> str:
        store = await self.client.vector_stores.create(name=display_name)
        logger.info(f"Created vector store {store.id} ({display_name})")
        return store.id

    async def upload_document(self, handle: str, path: Path, display_name: str) -> str:
        content = Path(path).read_bytes()
        uploaded = await self.client.files.create(
            file=(display_name, content),
            purpose="assistants",
        )
        attached = await self.client.vector_stores.files.create(
            vector_store_id=handle,
            file_id=uploaded.id,
        )
        logger.debug(f"Attached {display_name} as {attached.id}")
        return attached.id

    async def get_upload_status(self, handle: str, operation_id: str) -> str:
        attached = await self.client.vector_stores.files.retrieve(
            operation_id,
            vector_store_id=handle,
        )
        if attached.status == "completed":
            return UPLOAD_COMPLETED
        if attached.status in ("failed", "cancelled"):
            error = getattr(attached, "last_error", None)
            if error is not None:
                logger.warning(f"Upload {operation_id} failed: {getattr(error, 'message', error)}")
            return UPLOAD_FAILED
        return UPLOAD_IN_PROGRESS

    async def grounded_query(
        self,
        handle: str,
        query: str,
        system_prompt: str,
        timeout: float | None = None
    ) -> str:
        options = {"timeout": timeout} if timeout is not None else {}
        response = await self.client.responses.create(
            model=self.model,
            instructions=system_prompt,
            input=query,
            tools=[{"type": "file_search", "vector_store_ids": [handle]}],
            temperature=self.temperature,
            **options,
        )
        return response.output_text or ""
