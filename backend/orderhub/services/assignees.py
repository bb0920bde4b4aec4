"""司机 / 业务员指派校验"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.models.enums import UserRole
from orderhub.models.user import User


class AssigneeValidator:
    """确认指派目标属于当前租户、角色正确且处于启用状态"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _has_role(self, tenant_id: int, user_id: int, role: UserRole) -> bool:
        result = await self.db.execute(
            select(User.id).where(
                User.id == user_id,
                User.tenant_id == tenant_id,
                User.role == role,
                User.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none() is not None

    async def is_valid_driver(self, tenant_id: int, user_id: int) -> bool:
        return await self._has_role(tenant_id, user_id, UserRole.DRIVER)

    async def is_valid_sales_rep(self, tenant_id: int, user_id: int) -> bool:
        return await self._has_role(tenant_id, user_id, UserRole.SALES_REP)
