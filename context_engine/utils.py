"""Logging helpers for MCP tool handlers."""

from __future__ import annotations

import logging
import typing

import mcp.server.fastmcp

__all__ = [
    'DualLogger',
]


class DualLogger:
    """Logs messages to both the server log and the MCP client context."""

    def __init__(
        self,
        ctx: mcp.server.fastmcp.Context[typing.Any, typing.Any, typing.Any],
        logger: logging.Logger,
    ) -> None:
        self.ctx = ctx
        self.logger = logger

    async def info(self, msg: str) -> None:
        self.logger.info(msg)
        await self.ctx.info(msg)

    async def debug(self, msg: str) -> None:
        self.logger.debug(msg)
        await self.ctx.debug(msg)

    async def warning(self, msg: str) -> None:
        self.logger.warning(msg)
        await self.ctx.warning(msg)

    async def error(self, msg: str) -> None:
        self.logger.error(msg)
        await self.ctx.error(msg)
