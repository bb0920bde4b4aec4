from sqlalchemy import Column, Integer, String, Boolean, DateTime

from orderhub.db.base import Base, utcnow
from orderhub.models.enums import UserRole, enum_column_type


class User(Base):
    """租户内用户（仅用于司机/业务员指派校验，用户管理不在本服务内）"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    role = Column(enum_column_type(UserRole, "user_role"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<User {self.id} {self.role}>"

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER

    @property
    def is_sales_rep(self) -> bool:
        return self.role == UserRole.SALES_REP
