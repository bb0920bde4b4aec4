"""
定时任务调度器服务
使用 APScheduler 定期重试投递失败的订单通知
"""

import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from orderhub.core.config import settings
from orderhub.services.notifications import NotificationDispatcher, notifier

logger = logging.getLogger(__name__)

# 全局调度器实例
scheduler: Optional[AsyncIOScheduler] = None


async def retry_notifications(dispatcher: NotificationDispatcher = notifier) -> int:
    """执行通知重试任务"""
    try:
        return await dispatcher.retry_failed()
    except Exception as e:
        logger.error(f"❌ 通知重试任务失败: {str(e)}")
        return 0


def init_scheduler(dispatcher: NotificationDispatcher = notifier):
    """初始化并启动调度器"""
    global scheduler

    if not settings.NOTIFICATION_RETRY_ENABLED:
        logger.info("📨 通知重试已禁用")
        return

    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        retry_notifications,
        trigger=IntervalTrigger(seconds=settings.NOTIFICATION_RETRY_INTERVAL_SECONDS),
        args=[dispatcher],
        id="notification_retry",
        name="订单通知重试",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(f"⏰ 定时任务调度器已启动 - 通知重试间隔: {settings.NOTIFICATION_RETRY_INTERVAL_SECONDS} 秒")


def shutdown_scheduler():
    """关闭调度器"""
    global scheduler
    if scheduler:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("⏰ 定时任务调度器已关闭")


def get_scheduler_status() -> dict:
    """获取调度器状态"""
    if not scheduler:
        return {
            "enabled": settings.NOTIFICATION_RETRY_ENABLED,
            "running": False,
            "jobs": []
        }

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "enabled": settings.NOTIFICATION_RETRY_ENABLED,
        "running": scheduler.running,
        "jobs": jobs
    }
