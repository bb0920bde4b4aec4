"""
订单通知分发

状态转换成功后“发出即忘”：通知在后台任务中投递，投递失败只记录日志并进入重试队列，
绝不影响已经提交的状态转换。实际的 Telegram / 邮件投递由外部模块实现，
通过 sender 注入；默认 sender 只写日志。
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Set

from orderhub.core.config import settings
from orderhub.db.base import utcnow

logger = logging.getLogger(__name__)


@dataclass
class OrderNotification:
    """一条订单状态通知"""

    tenant_id: int
    order_id: int
    order_number: str
    from_status: Optional[str]
    to_status: str
    changed_by: Optional[int] = None
    notes: Optional[str] = None
    attempts: int = 0
    created_at: datetime = field(default_factory=utcnow)


Sender = Callable[[OrderNotification], Awaitable[None]]


async def log_sender(notification: OrderNotification) -> None:
    logger.info(
        f"📨 通知: 订单 {notification.order_number} "
        f"{notification.from_status} → {notification.to_status}"
    )


class NotificationDispatcher:

    def __init__(self, sender: Sender = log_sender, max_attempts: Optional[int] = None):
        self.sender = sender
        self.max_attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS
        self.failed: List[OrderNotification] = []
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, notification: OrderNotification) -> None:
        """在后台投递，立即返回"""
        try:
            task = asyncio.get_running_loop().create_task(self._deliver(notification))
        except RuntimeError:
            logger.warning(f"没有运行中的事件循环，通知进入重试队列: {notification.order_number}")
            self.failed.append(notification)
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def dispatch_many(self, notifications: List[OrderNotification]) -> None:
        for notification in notifications:
            self.dispatch(notification)

    async def _deliver(self, notification: OrderNotification) -> bool:
        notification.attempts += 1
        try:
            await self.sender(notification)
            return True
        except Exception as e:
            if notification.attempts < self.max_attempts:
                logger.warning(
                    f"通知投递失败（第 {notification.attempts} 次），稍后重试: "
                    f"{notification.order_number}: {e}"
                )
                self.failed.append(notification)
            else:
                logger.error(f"❌ 通知投递失败，已放弃: {notification.order_number}: {e}")
            return False

    async def retry_failed(self) -> int:
        """重试失败的通知，返回本次成功投递的数量"""
        if not self.failed:
            return 0
        pending, self.failed = self.failed, []
        delivered = 0
        for notification in pending:
            if await self._deliver(notification):
                delivered += 1
        if delivered:
            logger.info(f"🔁 通知重试: 成功 {delivered}/{len(pending)}")
        return delivered

    async def drain(self) -> None:
        """等待所有后台投递完成（关闭应用或测试时使用）"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


# 全局通知分发器
notifier = NotificationDispatcher()
