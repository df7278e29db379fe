"""
PURPOSE: Pytest fixtures for the strategy graph engine tests.

Provides shared test data and test doubles including:
- The bundled DSL catalog and a validation context built on it
- Async SQLite session for database testing
- A scripted LLM stand-in for the interpreter
- An HTTP client bound to the FastAPI app with its dependencies overridden
"""

import json

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stratgraph.dsl.catalog import load_catalog
from stratgraph.validation.context import ValidationContext
from stratgraph.validation.validator import StrategyValidator


@pytest.fixture
def catalog():
    """
    PURPOSE: The DSL catalog bundled with the package.

    Returns:
        Catalog: Frozen catalog loaded from dsl/dsl_spec.json.
    """
    return load_catalog()


@pytest.fixture
def ctx(catalog):
    """Validation context with default limits (cycles rejected)."""
    return ValidationContext(catalog=catalog)


@pytest.fixture
def validator(ctx):
    return StrategyValidator(ctx)


@pytest_asyncio.fixture
async def db_engine():
    """
    PURPOSE: In-memory SQLite engine with all tables created.

    StaticPool keeps every session on the same connection, so the
    in-memory database survives across sessions within one test.
    """
    from stratgraph.db.engine import init_db

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(db_engine):
    """
    PURPOSE: Async session on the in-memory test database.

    Returns:
        AsyncSession: SQLAlchemy async session connected to in-memory SQLite.
    """
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


class ScriptedLLM:
    """
    Stand-in for LLMClient that replays canned completions.

    Each complete() call pops the next reply; a reply that is an exception
    instance is raised instead of returned.
    """

    model = "scripted-model"

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def complete(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


@pytest.fixture
def scripted_llm():
    """Factory: scripted_llm(reply, ...) -> ScriptedLLM."""
    return ScriptedLLM


@pytest_asyncio.fixture
async def api_client(db_engine, catalog):
    """
    PURPOSE: HTTP client for the FastAPI app, without lifespan or rate limits.

    The database dependency points at the in-memory test database. Tests
    that exercise interpretation queue replies on `api_client.llm.replies` before calling
    POST /api/strategies/interpret.

    Returns:
        httpx.AsyncClient: Client with `.app` and `.llm` attributes attached.
    """
    from stratgraph.api.routes_strategies import get_interpreter
    from stratgraph.core.rate_limit import limiter
    from stratgraph.db.engine import get_db
    from stratgraph.main import create_app
    from stratgraph.strategy_builder.interpreter import StrategyInterpreter

    app = create_app()
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    llm = ScriptedLLM()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    def override_get_interpreter():
        return StrategyInterpreter(llm, catalog=catalog)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_interpreter] = override_get_interpreter

    limiter.enabled = False
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        client.app = app
        client.llm = llm
        yield client
    limiter.enabled = True
