import logging
import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.utils.errors import StoreError, UserExistsError

logger = logging.getLogger(__name__)


def _now():
    return datetime.datetime.now(datetime.timezone.utc)


class UserStore:
    """
    Users and usage logs kept in MongoDB.

    users: {username (unique), email, password_hash, created_at}
    logs:  {user_id, action, login_time, updated_at, success_count, failure_count}
    """

    def __init__(self, client=None, uri: str = "mongodb://localhost:27017/",
                 db_name: str = "ppe_detection_db"):
        self.client = client or MongoClient(uri)
        db = self.client[db_name]
        self.users = db["users"]
        self.logs = db["logs"]
        self._indexes_ready = False

    def _ensure_indexes(self):
        if self._indexes_ready:
            return
        try:
            self.users.create_index("username", unique=True)
            self.logs.create_index([("user_id", 1), ("action", 1)])
        except PyMongoError as e:
            logger.error("Error creating indexes: %s", e)
            raise StoreError()
        self._indexes_ready = True

    def create_user(self, username: str, email: str, password_hash: str) -> str:
        self._ensure_indexes()
        doc = {
            "username": username,
            "email": email,
            "password_hash": password_hash,
            "created_at": _now(),
        }
        try:
            result = self.users.insert_one(doc)
        except DuplicateKeyError:
            raise UserExistsError()
        except PyMongoError as e:
            logger.error("Error inserting user %s: %s", username, e)
            raise StoreError()
        return str(result.inserted_id)

    def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        try:
            return self.users.find_one({"username": username})
        except PyMongoError as e:
            logger.error("Error looking up user %s: %s", username, e)
            raise StoreError()

    def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.users.find_one({"_id": ObjectId(user_id)})
        except InvalidId:
            return None
        except PyMongoError as e:
            logger.error("Error looking up user id %s: %s", user_id, e)
            raise StoreError()

    def record_login(self, user_id: str) -> None:
        try:
            self.logs.insert_one({
                "user_id": user_id,
                "action": "login",
                "login_time": _now(),
                "success_count": 1,
                "failure_count": 0,
            })
        except PyMongoError as e:
            logger.error("Error writing login log for %s: %s", user_id, e)
            raise StoreError()

    def record_upload(self, user_id: str, success: bool) -> Dict[str, Any]:
        """
        Bump the running success/failure counter of the user's upload log entry.
        """
        counter = "success_count" if success else "failure_count"
        try:
            return self.logs.find_one_and_update(
                {"user_id": user_id, "action": "upload"},
                {
                    "$inc": {counter: 1},
                    "$set": {"updated_at": _now()},
                    "$setOnInsert": {"login_time": _now()},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error("Error updating upload counters for %s: %s", user_id, e)
            raise StoreError()

    def get_upload_counters(self, user_id: str) -> Dict[str, int]:
        try:
            doc = self.logs.find_one({"user_id": user_id, "action": "upload"}) or {}
        except PyMongoError as e:
            logger.error("Error reading upload counters for %s: %s", user_id, e)
            raise StoreError()
        return {
            "success_count": doc.get("success_count", 0),
            "failure_count": doc.get("failure_count", 0),
        }
