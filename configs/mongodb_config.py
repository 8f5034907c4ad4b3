# configs/mongodb_config.py

# python -m configs.mongodb_config

from pymongo.mongo_client import MongoClient
from dotenv import load_dotenv
import os

load_dotenv()

mongo_uri = os.getenv("MONGO_URI", "mongodb://localhost:27017")
mongo_db_name = os.getenv("MONGO_DB", "windfarm_db")

_client = None


def get_client():
    """Return the shared MongoClient, creating it on first use."""
    global _client
    if _client is None:
        # MongoClient connects lazily, so importing the app never blocks on the server
        _client = MongoClient(mongo_uri, serverSelectionTimeoutMS=5000, uuidRepresentation="standard")
    return _client


def get_database():
    return get_client()[mongo_db_name]


def ping():
    try:
        get_client().admin.command('ping')
        print("Pinged your deployment. You successfully connected to MongoDB!")
        return True
    except Exception as e:
        print(f"MongoDB connection error: {e}")
        return False


if __name__ == "__main__":
    if ping():
        print(f"Database connection successful. Using database '{mongo_db_name}'.")
    else:
        print("Database connection failed.")
    get_client().close()
