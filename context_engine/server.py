"""Context Engine MCP Server.

Incremental codebase indexing against a remote retrieval backend, with
searches coordinated against index freshness.

Tools:
- search_context: Search a project's code, indexing in the background as needed
- index_and_search: Update the index synchronously, then search
- trigger_index_update: Update the index synchronously
- get_index_status: Index status for one project
- get_all_index_status: Index status for every known project
- memory: Remember or recall per-project notes
"""

from __future__ import annotations

import contextlib
import logging
import sys
import typing
from collections.abc import AsyncIterator, Awaitable
from dataclasses import dataclass

import mcp.server.fastmcp
import mcp.types
from mcp.server.fastmcp.exceptions import ToolError

from context_engine.background_tasks import BackgroundTaskGroup
from context_engine.exceptions import ContextEngineError
from context_engine.paths import CONFIG_PATH, DATA_DIR
from context_engine.repositories import BlobRegistryStore, IndexStatusStore, MemoryStore
from context_engine.schemas.status import ProjectIndexStatus
from context_engine.services import IndexCoordinator, IndexingService, MemoryService, SearchService
from context_engine.services.memory import MemoryAction
from context_engine.utils import DualLogger

__all__ = [
    'ServerState',
    'main',
    'server',
]

logger = logging.getLogger(__name__)


@dataclass
class ServerState:
    """Container for all server state - initialized once at startup."""

    registry: BlobRegistryStore
    status: IndexStatusStore
    memory_store: MemoryStore
    background: BackgroundTaskGroup
    coordinator: IndexCoordinator
    memory: MemoryService

    @classmethod
    def create(cls) -> typing.Self:
        """Build stores and services on the default file locations."""
        registry = BlobRegistryStore()
        status = IndexStatusStore()
        memory_store = MemoryStore()
        background = BackgroundTaskGroup('index')

        indexing = IndexingService(registry, status, memory_store)
        search = SearchService(registry)
        # No file-system watcher ships with the server
        coordinator = IndexCoordinator(indexing, search, status, background)

        return cls(
            registry=registry,
            status=status,
            memory_store=memory_store,
            background=background,
            coordinator=coordinator,
            memory=MemoryService(memory_store, coordinator),
        )


def register_tools(state: ServerState) -> None:
    """Register MCP tools with closure over server state."""

    @server.tool(
        annotations=mcp.types.ToolAnnotations(
            title='Search Context',
            destructiveHint=False,
            idempotentHint=False,
            readOnlyHint=False,
            openWorldHint=True,
        ),
    )
    async def search_context(
        project_root_path: str,
        query: str,
        ctx: mcp.server.fastmcp.Context[typing.Any, typing.Any, typing.Any] | None = None,
    ) -> str:
        """Search a project's code for context relevant to a natural language query.

        Searches the existing index without blocking on indexing. If the project
        has never been indexed (or the last run failed) indexing starts in the
        background and the result says so. If indexing is in progress, waits a
        few seconds first so results are more complete.

        Args:
            project_root_path: Absolute path of the project root.
            query: What to look for, e.g. "where are retries configured".

        Returns:
            Formatted code excerpts, plus a hint when indexing is incomplete.
        """
        if ctx is not None:
            await DualLogger(ctx, logger).info(f'Searching {project_root_path}')

        result = await _call(state.coordinator.search_context(project_root_path, query))
        if result.is_error:
            raise ToolError(result.render())
        return result.render()

    @server.tool(
        annotations=mcp.types.ToolAnnotations(
            title='Index And Search',
            destructiveHint=False,
            idempotentHint=False,
            readOnlyHint=False,
            openWorldHint=True,
        ),
    )
    async def index_and_search(
        project_root_path: str,
        query: str,
        ctx: mcp.server.fastmcp.Context[typing.Any, typing.Any, typing.Any] | None = None,
    ) -> str:
        """Bring the project's index up to date, then search it.

        Slower than search_context on large projects because uploads finish
        before the search runs.

        Args:
            project_root_path: Absolute path of the project root.
            query: What to look for.
        """
        if ctx is not None:
            await DualLogger(ctx, logger).info(f'Indexing then searching {project_root_path}')

        result = await _call(state.coordinator.index_and_search(project_root_path, query))
        if result.is_error:
            raise ToolError(result.render())
        return result.render()

    @server.tool(
        annotations=mcp.types.ToolAnnotations(
            title='Trigger Index Update',
            destructiveHint=False,
            idempotentHint=True,
            readOnlyHint=False,
            openWorldHint=True,
        ),
    )
    async def trigger_index_update(
        project_root_path: str,
        ctx: mcp.server.fastmcp.Context[typing.Any, typing.Any, typing.Any] | None = None,
    ) -> str:
        """Index new and changed files of a project and prune removed ones.

        Args:
            project_root_path: Absolute path of the project root.

        Returns:
            Summary with the number of blobs in the index.
        """
        if ctx is not None:
            await DualLogger(ctx, logger).info(f'Updating index for {project_root_path}')

        return await _call(state.coordinator.trigger_index_update(project_root_path))

    @server.tool(
        annotations=mcp.types.ToolAnnotations(
            title='Get Index Status',
            destructiveHint=False,
            idempotentHint=True,
            readOnlyHint=True,
            openWorldHint=False,
        ),
    )
    async def get_index_status(project_root_path: str) -> ProjectIndexStatus:
        """Index status for one project: state, progress, counts and last error."""
        return await state.coordinator.get_index_status(project_root_path)

    @server.tool(
        annotations=mcp.types.ToolAnnotations(
            title='Get All Index Status',
            destructiveHint=False,
            idempotentHint=True,
            readOnlyHint=True,
            openWorldHint=False,
        ),
    )
    async def get_all_index_status() -> dict[str, ProjectIndexStatus]:
        """Index status for every project this server has seen, keyed by project root."""
        return dict(await state.coordinator.get_all_index_status())

    @server.tool(
        annotations=mcp.types.ToolAnnotations(
            title='Memory',
            destructiveHint=False,
            idempotentHint=False,
            readOnlyHint=False,
            openWorldHint=False,
        ),
    )
    async def memory(
        action: MemoryAction,
        project_path: str,
        content: str = '',
        category: str = 'context',
    ) -> str:
        """Remember or recall project notes: rules, preferences, patterns and context.

        Args:
            action: "remember" stores content; "recall" lists the project's notes.
            project_path: Absolute path of the project root.
            content: Note text (required for "remember").
            category: rule, preference, pattern or context. Anything else is
                stored as context.
        """
        match action:
            case 'remember':
                return await _call(state.memory.remember(project_path, content, category))
            case 'recall':
                return await _call(state.memory.recall(project_path))
            case _:
                typing.assert_never(action)


async def _call[T](awaitable: Awaitable[T]) -> T:
    """Await a service call, reporting expected failures as tool errors."""
    try:
        return await awaitable
    except (ContextEngineError, ValueError) as e:
        raise ToolError(str(e)) from e


@contextlib.asynccontextmanager
async def lifespan(mcp_server: mcp.server.fastmcp.FastMCP) -> AsyncIterator[None]:
    """Manage server lifecycle - initialization before requests, cleanup after shutdown."""

    # Configure logging with timestamps to stderr (stdout carries the MCP protocol)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S',
        stream=sys.stderr,
    )
    # Silence noisy third-party loggers
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)

    state = ServerState.create()
    register_tools(state)

    known_projects = state.status.list_all()
    print('✓ Context Engine MCP server initialized', file=sys.stderr)
    print(f'  Config: {CONFIG_PATH}', file=sys.stderr)
    print(f'  Data: {DATA_DIR} ({len(known_projects)} known projects)', file=sys.stderr)

    yield

    # Detached index runs do not outlive the server
    if state.background.pending_count:
        logger.info(f'[BACKGROUND] Cancelling {state.background.pending_count} running index tasks')
    state.background.cancel_all()
    print('✓ Context Engine MCP server shutdown', file=sys.stderr)


server = mcp.server.fastmcp.FastMCP('context-engine', lifespan=lifespan)


def main() -> None:
    """Entry point for the MCP server."""
    server.run()


if __name__ == '__main__':
    main()
