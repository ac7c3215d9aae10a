from motor.motor_asyncio import AsyncIOMotorClient

from app.config.settings import settings

# Connection options mirror what the hosted cluster needs: generous selection
# timeout, keep sockets open between requests, small pool.
client = AsyncIOMotorClient(
    settings.mongodb_uri,
    maxPoolSize=10,
    minPoolSize=1,
    serverSelectionTimeoutMS=30000,
    connectTimeoutMS=30000,
    socketTimeoutMS=45000,
    retryWrites=True,
)
db = client[settings.mongodb_db]

reports_collection = db.get_collection("reports")

