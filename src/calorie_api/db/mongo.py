"""MongoDB connection management using Motor async driver."""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase


class MongoDB:
    """
    MongoDB connection manager.

    One instance is built at startup and shared through the UnitOfWork, so
    the connection pool lives for the application lifecycle.
    """

    def __init__(self, uri: str, db_name: str = "calorie_tracker"):
        """
        Initialize MongoDB connection.

        Args:
            uri: MongoDB connection URI
            db_name: Database name to use
        """
        self.client: AsyncIOMotorClient | None = AsyncIOMotorClient(uri)
        self._db_name = db_name

    def close(self) -> None:
        """Close MongoDB connection."""
        if self.client is not None:
            self.client.close()
            self.client = None

    def get_client(self) -> AsyncIOMotorClient:
        """
        Get the MongoDB client.

        Raises:
            RuntimeError: If the connection was closed
        """
        if self.client is None:
            raise RuntimeError("MongoDB connection is closed.")
        return self.client

    def get_database(self, name: str | None = None) -> AsyncIOMotorDatabase:
        """
        Get a database instance.

        Args:
            name: Database name (uses default if not provided)

        Returns:
            AsyncIOMotorDatabase instance
        """
        client = self.get_client()
        return client[name or self._db_name]
