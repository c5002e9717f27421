import asyncio
from app.db.session import Base, engine

# Import every model module so all tables are registered on the metadata
import app.users.models
import app.events.models
import app.friends.models


async def create_all():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        print("All tables created")

if __name__ == "__main__":
    asyncio.run(create_all())
