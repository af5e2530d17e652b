"""Business logic services — singleton registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

if TYPE_CHECKING:
    from mountgate.services.remote import MachineResolver

logger = logging.getLogger(__name__)

_machine_resolver: MachineResolver | None = None


async def init_services(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Create and wire up all service singletons."""
    global _machine_resolver

    from mountgate.services.ssh_machine import SshMachineRegistry

    _machine_resolver = SshMachineRegistry(session_factory)
    logger.info("Machine registry initialized (SSH/SFTP)")


async def shutdown_services() -> None:
    global _machine_resolver
    _machine_resolver = None


def get_machine_resolver() -> MachineResolver:
    if _machine_resolver is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _machine_resolver
