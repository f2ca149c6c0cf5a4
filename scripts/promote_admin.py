# scripts/promote_admin.py
"""把既有使用者升級為 admin：python scripts/promote_admin.py user@example.com"""
import asyncio
import sys

from usermgmt.core.security import build_password_hasher
from usermgmt.db.session import AsyncSessionLocal
from usermgmt.models.users import UserRole
from usermgmt.repositories.users import UserRepository
from usermgmt.services.users import UserService

async def main(email: str) -> int:
    async with AsyncSessionLocal() as db:
        service = UserService(UserRepository(db, build_password_hasher()))
        user = await service.find_by_email(email)
        if not user:
            print(f"user not found: {email}")
            return 1
        user = await service.update(user.id, {"role": UserRole.ADMIN})
    print({"id": user.id, "email": user.email, "role": user.role.value})
    return 0

if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: promote_admin.py <email>")
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1])))
