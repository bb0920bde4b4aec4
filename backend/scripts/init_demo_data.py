"""
演示数据初始化脚本
- 清空订单相关数据（保留表结构）
- 创建一个租户的管理员、司机、业务员
- 创建处于不同生命周期状态的演示订单（含初始状态历史）
"""

import asyncio
import sys
import os
from datetime import date, timedelta
from decimal import Decimal

# 添加项目路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from orderhub.db.session import SessionLocal
from orderhub.db.init_db import ensure_tables_exist
from orderhub.models import (
    Order, OrderItem, StatusHistoryEntry, User, OrderStatus, UserRole
)
from orderhub.services.order_editor import to_money

DEMO_TENANT_ID = 1


async def clear_all_data(db: AsyncSession):
    """清除所有订单数据（保留表结构）"""
    print("🗑️  清除所有数据...")

    # 按照外键依赖顺序删除（历史表绕过 ORM 的只追加限制）
    tables_to_clear = [
        "order_status_history",
        "order_items",
        "orders",
        "users",
    ]

    for table in tables_to_clear:
        await db.execute(text(f"DELETE FROM {table}"))
        print(f"   ✓ 清除 {table}")

    await db.commit()
    print("   完成！\n")


async def create_users(db: AsyncSession) -> dict:
    """创建租户用户"""
    print("👤 创建用户...")

    users = {}
    for key, name, role in [
        ("admin", "管理员", UserRole.TENANT_ADMIN),
        ("driver", "司机老王", UserRole.DRIVER),
        ("driver_off", "司机小李（停用）", UserRole.DRIVER),
        ("sales", "业务员小张", UserRole.SALES_REP),
    ]:
        user = User(
            tenant_id=DEMO_TENANT_ID,
            name=name,
            role=role,
            is_active=key != "driver_off",
        )
        db.add(user)
        await db.flush()
        users[key] = user
        print(f"   ✓ {role.value}: {name} (ID {user.id})")

    return users


async def create_demo_order(
    db: AsyncSession,
    order_number: str,
    lines: list,
    users: dict,
    path: list,
    discount: Decimal = Decimal("0"),
) -> Order:
    """创建订单，并按 path 写入完整的状态历史"""
    subtotal = to_money(sum((price * qty for price, qty in lines), Decimal("0")))
    order = Order(
        tenant_id=DEMO_TENANT_ID,
        order_number=order_number,
        customer_id=1001,
        sales_rep_id=users["sales"].id,
        created_by_user_id=users["admin"].id,
        status=path[-1],
        subtotal_amount=subtotal,
        discount_amount=to_money(discount),
        total_amount=to_money(subtotal - discount),
        requested_delivery_date=date.today() + timedelta(days=2),
    )
    if OrderStatus.LOADED in path:
        order.driver_id = users["driver"].id
    db.add(order)
    await db.flush()

    for product_id, (price, qty) in enumerate(lines, start=1):
        db.add(OrderItem(
            order_id=order.id,
            product_id=product_id,
            unit_price=to_money(price),
            qty_ordered=qty,
            line_total=to_money(price * qty),
        ))

    previous = None
    for status in path:
        db.add(StatusHistoryEntry(
            order_id=order.id,
            from_status=previous,
            to_status=status,
            changed_by=users["admin"].id if previous else None,
        ))
        previous = status

    await db.flush()
    print(f"   ✓ {order_number}: {path[-1].display} 合计¥{subtotal}")
    return order


async def create_demo_orders(db: AsyncSession, users: dict):
    """创建演示订单"""
    print("📋 创建演示订单...")

    await create_demo_order(
        db, "ORD-1001",
        [(Decimal("10.00"), 3), (Decimal("50.00"), 1)],
        users, [OrderStatus.PENDING],
        discount=Decimal("5.00"),
    )
    await create_demo_order(
        db, "ORD-1002",
        [(Decimal("8.50"), 12)],
        users, [OrderStatus.PENDING, OrderStatus.CONFIRMED],
    )
    await create_demo_order(
        db, "ORD-1003",
        [(Decimal("120.00"), 2)],
        users, [OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.APPROVED, OrderStatus.PICKING, OrderStatus.PICKED],
    )
    await create_demo_order(
        db, "ORD-1004",
        [(Decimal("30.00"), 4)],
        users, [
            OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.APPROVED, OrderStatus.PICKING,
            OrderStatus.PICKED, OrderStatus.LOADED, OrderStatus.DELIVERING, OrderStatus.DELIVERED,
        ],
    )


async def main():
    """主函数"""
    print("=" * 60)
    print("🚀 订单中心演示数据初始化")
    print("=" * 60 + "\n")

    await ensure_tables_exist()

    async with SessionLocal() as db:
        try:
            # 1. 清除所有数据
            await clear_all_data(db)

            # 2. 创建用户
            users = await create_users(db)

            # 3. 创建演示订单
            await create_demo_orders(db, users)

            # 提交所有更改
            await db.commit()

            print("\n" + "=" * 60)
            print("✅ 演示数据初始化完成！")
            print("=" * 60)
            print(f"\n📝 请求头: X-Tenant-Id: {DEMO_TENANT_ID}, X-User-Id: {users['admin'].id}")
            print("\n📦 已创建数据:")
            print("   - 4 个用户（管理员、司机 ×2、业务员）")
            print("   - 4 张订单（待确认、已确认、已拣货、已送达）")

        except SQLAlchemyError as e:
            await db.rollback()
            print(f"\n❌ 初始化失败: {e}")
            raise


if __name__ == "__main__":
    asyncio.run(main())
