import asyncio
import json
import os
from typing import Any, Awaitable, Callable, Dict, List, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("GEMINI_API_KEY", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import concierge.models  # noqa: F401
from concierge.db.base import Base
from concierge.db.database import get_session
from concierge.main import app
from concierge.services.concierge_service import SessionLocks, get_session_locks
from concierge.services.gemini_service import FunctionCall, ModelTurn, get_gemini_service
from concierge.stores.notifier import Notifier, get_notifier


class ScriptedChat:
    def __init__(self, gemini: "ScriptedGemini", history: List[Dict[str, Any]], system_instruction, tools) -> None:
        self.gemini = gemini
        self.history = history
        self.system_instruction = system_instruction
        self.tools = tools
        self.sent: List[str] = []
        self.function_responses: List[tuple[str, Dict[str, Any]]] = []

    async def send_message(self, text: str) -> ModelTurn:
        self.sent.append(text)
        return await self.gemini.next_turn()

    async def send_function_response(self, name: str, response: Dict[str, Any]) -> ModelTurn:
        self.function_responses.append((name, response))
        return await self.gemini.next_turn()


class ScriptedGemini:
    """Stands in for GeminiService, replaying queued model turns in order."""

    def __init__(self) -> None:
        self.turns: List[ModelTurn] = []
        self.texts: List[str] = []
        self.prompts: List[str] = []
        self.chats: List[ScriptedChat] = []

    def queue_answer(self, reply: str, sentiment: Optional[str] = "neutral", fenced: bool = False) -> None:
        text = json.dumps({"reply": reply, "sentiment": sentiment})
        if fenced:
            text = f"```json\n{text}\n```"
        self.turns.append(ModelTurn(text=text))

    def queue_text(self, text: str) -> None:
        self.turns.append(ModelTurn(text=text))

    def queue_call(self, name: str, **args: Any) -> None:
        self.turns.append(ModelTurn(function_calls=[FunctionCall(name=name, args=args)]))

    def queue_calls(self, *calls: FunctionCall) -> None:
        self.turns.append(ModelTurn(function_calls=list(calls)))

    def start_chat(self, history, system_instruction=None, tools=None) -> ScriptedChat:
        chat = ScriptedChat(self, list(history), system_instruction, tools)
        self.chats.append(chat)
        return chat

    async def next_turn(self) -> ModelTurn:
        # yield to the loop like a real network call would
        await asyncio.sleep(0)
        return self.turns.pop(0)

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        await asyncio.sleep(0)
        return self.texts.pop(0)


async def create_schema(database_url: str) -> None:
    engine = create_async_engine(database_url, poolclass=NullPool)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()


def make_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(database_url, poolclass=NullPool)
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'concierge.db'}"


@pytest.fixture
async def session_factory(database_url):
    await create_schema(database_url)
    return make_session_factory(database_url)


@pytest.fixture
def fake_gemini() -> ScriptedGemini:
    return ScriptedGemini()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier(queue_size=10)


@pytest.fixture
def run_db(database_url) -> Callable[[Callable[[AsyncSession], Awaitable[Any]]], Any]:
    """Run a coroutine against the test database from synchronous tests."""

    def runner(work: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
        async def _run() -> Any:
            async with make_session_factory(database_url)() as session:
                result = await work(session)
                await session.commit()
                return result

        return asyncio.run(_run())

    return runner


@pytest.fixture
def client(database_url, fake_gemini, notifier):
    asyncio.run(create_schema(database_url))
    factory = make_session_factory(database_url)

    async def override_session():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_gemini_service] = lambda: fake_gemini
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_session_locks] = lambda: SessionLocks()
    yield TestClient(app)
    app.dependency_overrides.clear()
