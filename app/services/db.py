import os
from typing import Optional

import motor.motor_asyncio
from bson import ObjectId
from dotenv import load_dotenv

from app.models.models import JobPosting
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

# Load environment variables from .env
load_dotenv()

MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "job_tracker")
JOBS_COLLECTION = os.getenv("JOBS_COLLECTION", "jobs")

logger.info(f"Initializing MongoDB connection to database: {DB_NAME}")

# The client connects lazily on first use
client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

jobs_coll = db[JOBS_COLLECTION]


def _id_query(job_id: str):
    # Jobs created by the main app use ObjectIds; anything else is matched as-is
    return ObjectId(job_id) if ObjectId.is_valid(job_id) else job_id


async def get_job(job_id: str) -> Optional[JobPosting]:
    """Look up a job by id. Only the description is read."""
    doc = await jobs_coll.find_one({"_id": _id_query(job_id)}, {"description": 1})
    if not doc:
        logger.debug(f"Job {job_id} not found in {JOBS_COLLECTION}")
        return None
    return JobPosting(id=str(doc["_id"]), description=doc.get("description"))


def close_client() -> None:
    client.close()
    logger.info("MongoDB client closed")
