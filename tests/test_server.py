"""Tests for the MCP tool layer."""

from __future__ import annotations

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from context_engine import server
from context_engine.exceptions import NotIndexedError


class TestCall:
    @pytest.mark.asyncio
    async def test_expected_errors_become_tool_errors(self) -> None:
        async def fails() -> str:
            raise NotIndexedError('/repo')

        with pytest.raises(ToolError, match='not been indexed'):
            await server._call(fails())

    @pytest.mark.asyncio
    async def test_results_pass_through(self) -> None:
        async def works() -> str:
            return 'fine'

        assert await server._call(works()) == 'fine'


class TestRegisterTools:
    @pytest.mark.asyncio
    async def test_registers_every_tool(self) -> None:
        state = server.ServerState.create()

        server.register_tools(state)
        tools = {tool.name for tool in await server.server.list_tools()}

        assert tools >= {
            'search_context',
            'index_and_search',
            'trigger_index_update',
            'get_index_status',
            'get_all_index_status',
            'memory',
        }
