# scripts/run_cleanup_once.py
import asyncio

from usermgmt.core.config import settings
from usermgmt.db.session import AsyncSessionLocal
from usermgmt.services.token_cleanup import cleanup_expired_tokens

async def main():
    async with AsyncSessionLocal() as db:
        deleted = await cleanup_expired_tokens(db, settings.TOKEN_RETENTION_DAYS)
    print({"deleted": deleted})

if __name__ == "__main__":
    asyncio.run(main())
