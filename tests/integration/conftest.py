"""Integration test fixtures: the full application over in-memory storage."""

from collections.abc import AsyncGenerator
from dataclasses import replace
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from timeclock_payroll.api.app import create_app
from timeclock_payroll.api.dependencies import Services, build_services
from timeclock_payroll.config import get_settings


@pytest.fixture
def services(directory, clock) -> Services:
    """Services wired the way the app wires them, with a controllable clock."""
    settings = replace(get_settings(), storage_backend="memory")
    return build_services(settings, directory=directory, clock=clock)


@pytest_asyncio.fixture
async def client(services: Services) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    app = create_app(services)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def identity(employee_id: UUID, role: str = "employee") -> dict[str, str]:
    return {"X-Employee-ID": str(employee_id), "X-Role": role}


@pytest.fixture
def employee_headers(employee_id) -> dict[str, str]:
    return identity(employee_id)


@pytest.fixture
def other_headers(other_employee_id) -> dict[str, str]:
    return identity(other_employee_id)


@pytest.fixture
def manager_headers() -> dict[str, str]:
    return identity(uuid4(), "manager")


@pytest.fixture
def accounting_headers() -> dict[str, str]:
    return identity(uuid4(), "accounting")
