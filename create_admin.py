import argparse
import asyncio
import getpass
import os
import sys

# 添加项目根目录到 python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from vestisen.database import AsyncSessionLocal, ensure_admin_user, init_db


async def create_admin():
    parser = argparse.ArgumentParser(description='Create or repair an admin user')
    parser.add_argument('--email', help='Admin Email')
    parser.add_argument('--password', help='Admin Password')
    parser.add_argument('--first-name', default='Admin', help='Admin first name')
    parser.add_argument('--last-name', default='VestiSen', help='Admin last name')
    parser.add_argument('--reset-password', action='store_true', help='Overwrite the password of an existing account')
    args = parser.parse_args()

    print("正在初始化数据库...")
    await init_db()

    email = args.email or input("请输入管理员邮箱: ").strip()
    password = args.password or getpass.getpass("请输入管理员密码: ").strip()
    if not email or not password:
        print("错误: 邮箱和密码不能为空")
        return

    async with AsyncSessionLocal() as session:
        created = await ensure_admin_user(
            session,
            email,
            password,
            first_name=args.first_name,
            last_name=args.last_name,
            reset_password=args.reset_password,
        )
        await session.commit()

    if created:
        print(f"管理员账号 {email} 创建成功！")
    else:
        print(f"用户 {email} 已存在，已确保其为启用的管理员。")


if __name__ == "__main__":
    try:
        asyncio.run(create_admin())
    except KeyboardInterrupt:
        print("\n操作已取消")
