import asyncio
import time

import httpx

from dotask.main import create_app
from dotask.store.memory import MemoryStore

from conftest import TEST_SETTINGS

DELAY = 0.5


class SlowStore(MemoryStore):
    """list_tasks bloque comme un aller-retour SQL lent"""

    def list_tasks(self, user_id):
        time.sleep(DELAY)
        return super().list_tasks(user_id)


async def fetch_tasks_concurrently(app, token, count):
    transport = httpx.ASGITransport(app=app)
    headers = {"Authorization": f"Bearer {token}"}
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        requests = [client.post("/query", json={"query": "{ tasks { id } }"}, headers=headers)
                    for _ in range(count)]
        return await asyncio.gather(*requests)


def test_blocking_store_calls_do_not_serialize_requests(credentials):
    store = SlowStore()
    user = store.create_user("Slow", "slow@example.com", credentials.hash_password("password123"))
    token = credentials.issue_token(user)
    app = create_app(TEST_SETTINGS, store=store)

    start = time.monotonic()
    responses = asyncio.run(fetch_tasks_concurrently(app, token, 4))
    elapsed = time.monotonic() - start

    for response in responses:
        assert response.status_code == 200
        assert response.json()["data"]["tasks"] == []
    # 4 x 0.5s en série = 2s; en parallèle ~0.5s
    assert elapsed < 4 * DELAY * 0.75


def test_health_answers_while_store_is_busy(credentials):
    store = SlowStore()
    user = store.create_user("Busy", "busy@example.com", credentials.hash_password("password123"))
    token = credentials.issue_token(user)
    app = create_app(TEST_SETTINGS, store=store)

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            slow = asyncio.ensure_future(client.post(
                "/query", json={"query": "{ tasks { id } }"},
                headers={"Authorization": f"Bearer {token}"},
            ))
            await asyncio.sleep(0.05)
            start = time.monotonic()
            health = await client.get("/health")
            health_elapsed = time.monotonic() - start
            await slow
            return health, health_elapsed

    health, health_elapsed = asyncio.run(scenario())
    assert health.status_code == 200
    assert health_elapsed < DELAY / 2
