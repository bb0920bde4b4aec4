"""
按订单ID的进程内互斥锁

同一订单的“读取-校验-写入”必须串行；不同订单互不影响。
锁按引用计数管理，没有持有者和等待者时自动移除。
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class OrderLockRegistry:

    def __init__(self):
        self._entries: Dict[int, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, order_id: int):
        entry = self._entries.get(order_id)
        if entry is None:
            entry = self._entries[order_id] = _LockEntry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(order_id, None)

    def is_locked(self, order_id: int) -> bool:
        entry = self._entries.get(order_id)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)


# 全局锁注册表（单进程内共享）
order_locks = OrderLockRegistry()
