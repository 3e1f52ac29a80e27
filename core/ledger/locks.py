"""
고객별 잠금

같은 고객에 대한 변경(외상/상환/삭제/카테고리 변경/재보정)은 직렬화,
서로 다른 고객은 독립적으로 진행.
보유자와 대기자가 모두 빠지면 해당 고객의 Lock은 레지스트리에서 제거.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class CustomerLocks:
    """고객 ID별 asyncio.Lock 레지스트리 (사용 중인 항목만 유지)

    사용 예시:
    ```python
    locks = CustomerLocks()
    async with locks.for_customer(customer_id):
        ...
    ```
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def for_customer(self, customer_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(customer_id, asyncio.Lock())
        self._users[customer_id] = self._users.get(customer_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # 대기 중 취소된 경우도 포함
            self._users[customer_id] -= 1
            if self._users[customer_id] == 0:
                del self._users[customer_id]
                del self._locks[customer_id]

    def is_locked(self, customer_id: str) -> bool:
        lock = self._locks.get(customer_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
