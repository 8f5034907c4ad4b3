# services/repository.py

import logging
import re
import uuid
from contextlib import contextmanager

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from configs.mongodb_config import get_database
from services.errors import ConflictError, PersistenceError
from services.time_utils import utc_now

logger = logging.getLogger(__name__)


def _new_id():
    return str(uuid.uuid4())


@contextmanager
def _guard(action):
    """Translate driver errors into the service error types."""
    try:
        yield
    except DuplicateKeyError as e:
        raise ConflictError(f"Failed to {action}: duplicate key") from e
    except PyMongoError as e:
        logger.error(f"[Repository] Failed to {action}: {e}")
        raise PersistenceError(f"Failed to {action}") from e


def _range(start=None, end=None):
    condition = {}
    if start is not None:
        condition["$gte"] = start
    if end is not None:
        condition["$lte"] = end
    return condition


def turbine_out(doc):
    return {
        "id": doc["_id"],
        "name": doc["name"],
        "latitude": doc.get("latitude"),
        "longitude": doc.get("longitude"),
        "manufacturer": {
            "name": doc.get("manufacturerName"),
            "country": doc.get("manufacturerCountry"),
        },
        "builtDate": doc.get("builtDate"),
        "installationDate": doc.get("installationDate"),
        "active": doc.get("active", True),
        "ratedCapacityKW": doc.get("ratedCapacityKW"),
        "createdAt": doc.get("createdAt"),
        "updatedAt": doc.get("updatedAt"),
    }


def reading_out(doc):
    return {
        "id": doc["_id"],
        "windTurbineId": doc["windTurbineId"],
        "powerKW": doc["powerKW"],
        "timestamp": doc["timestamp"],
        "isOutlier": doc.get("isOutlier", False),
        "outlierKind": doc.get("outlierKind"),
        "createdAt": doc.get("createdAt"),
    }


def work_order_out(doc):
    return {
        "id": doc["_id"],
        "windTurbineId": doc["windTurbineId"],
        "title": doc["title"],
        "description": doc.get("description"),
        "status": doc.get("status", "open"),
        "creationDate": doc.get("creationDate"),
        "resolutionDate": doc.get("resolutionDate"),
        "deletedAt": doc.get("deletedAt"),
        "createdAt": doc.get("createdAt"),
        "updatedAt": doc.get("updatedAt"),
    }


def comment_out(doc):
    return {
        "id": doc["_id"],
        "workOrderId": doc["workOrderId"],
        "userId": doc["userId"],
        "content": doc["content"],
        "createdAt": doc.get("createdAt"),
        "updatedAt": doc.get("updatedAt"),
    }


class WindFarmRepository:
    """Data-mapping layer over the wind farm MongoDB collections."""

    def __init__(self, db):
        self.db = db
        self.turbines = db["wind_turbines"]
        self.work_orders = db["work_orders"]
        self.comments = db["work_order_comments"]
        self.power_outputs = db["power_outputs"]

    @classmethod
    def from_settings(cls):
        return cls(get_database())

    def ping(self):
        with _guard("reach the database"):
            self.db.command("ping")

    def ensure_indexes(self):
        with _guard("create indexes"):
            self.turbines.create_index([("name", ASCENDING)], unique=True)
            self.turbines.create_index([("active", ASCENDING)])
            self.power_outputs.create_index([("windTurbineId", ASCENDING), ("timestamp", DESCENDING)])
            self.power_outputs.create_index([("timestamp", DESCENDING)])
            self.work_orders.create_index([("windTurbineId", ASCENDING)])
            self.comments.create_index([("workOrderId", ASCENDING)])

    def clear_all(self):
        with _guard("clear the database"):
            for collection in (self.power_outputs, self.comments, self.work_orders, self.turbines):
                collection.delete_many({})

    # --- turbines ---

    def list_turbines(self, name=None, manufacturer=None, built_from=None, built_to=None,
                      installed_from=None, installed_to=None, active=None, skip=0, limit=25):
        query = {}
        if name:
            query["name"] = {"$regex": re.escape(name), "$options": "i"}
        if manufacturer:
            query["manufacturerName"] = {"$regex": re.escape(manufacturer), "$options": "i"}
        if built_from or built_to:
            query["builtDate"] = _range(built_from, built_to)
        if installed_from or installed_to:
            query["installationDate"] = _range(installed_from, installed_to)
        if active is not None:
            query["active"] = active

        with _guard("list wind turbines"):
            total = self.turbines.count_documents(query)
            cursor = self.turbines.find(query).sort("name", ASCENDING).skip(skip).limit(limit)
            return [turbine_out(doc) for doc in cursor], total

    def list_active_turbines(self, turbine_ids=None, limit=None):
        query = {"active": True}
        if turbine_ids is not None:
            query["_id"] = {"$in": list(turbine_ids)}

        with _guard("list active wind turbines"):
            cursor = self.turbines.find(query).sort("name", ASCENDING)
            if limit:
                cursor = cursor.limit(limit)
            return [turbine_out(doc) for doc in cursor]

    def get_turbine(self, turbine_id):
        with _guard("fetch wind turbine"):
            doc = self.turbines.find_one({"_id": turbine_id})
        return turbine_out(doc) if doc else None

    def first_turbine(self):
        with _guard("fetch wind turbine"):
            docs = list(self.turbines.find().sort("name", ASCENDING).limit(1))
        return turbine_out(docs[0]) if docs else None

    def create_turbine(self, data):
        now = utc_now()
        doc = {
            "_id": _new_id(),
            "name": data["name"],
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "manufacturerName": data.get("manufacturerName"),
            "manufacturerCountry": data.get("manufacturerCountry"),
            "builtDate": data.get("builtDate"),
            "installationDate": data.get("installationDate"),
            "active": data.get("active", True),
            "ratedCapacityKW": data.get("ratedCapacityKW", 2500),
            "createdAt": now,
            "updatedAt": now,
        }
        with _guard("create wind turbine"):
            self.turbines.insert_one(doc)
        return turbine_out(doc)

    def update_turbine(self, turbine_id, updates):
        updates = dict(updates, updatedAt=utc_now())
        with _guard("update wind turbine"):
            result = self.turbines.update_one({"_id": turbine_id}, {"$set": updates})
        if result.matched_count == 0:
            return None
        return self.get_turbine(turbine_id)

    def delete_turbine(self, turbine_id):
        with _guard("delete wind turbine"):
            return self.turbines.delete_one({"_id": turbine_id}).deleted_count > 0

    def delete_turbines(self, turbine_ids):
        with _guard("delete wind turbines"):
            return self.turbines.delete_many({"_id": {"$in": list(turbine_ids)}}).deleted_count

    def count_turbines(self, active=None):
        query = {} if active is None else {"active": active}
        with _guard("count wind turbines"):
            return self.turbines.count_documents(query)

    # --- power output ---

    def create_reading(self, reading):
        return self.insert_reading(reading.to_document())

    def insert_reading(self, document):
        doc = dict(document, _id=_new_id(), createdAt=utc_now())
        with _guard("save power reading"):
            self.power_outputs.insert_one(doc)
        return reading_out(doc)

    def create_readings(self, documents):
        if not documents:
            return 0
        now = utc_now()
        docs = [dict(doc, _id=_new_id(), createdAt=now) for doc in documents]
        with _guard("save power readings"):
            result = self.power_outputs.insert_many(docs)
        return len(result.inserted_ids)

    def list_readings(self, turbine_id, start=None, end=None, limit=None):
        query = {"windTurbineId": turbine_id}
        if start is not None or end is not None:
            query["timestamp"] = _range(start, end)

        with _guard("fetch power output data"):
            cursor = self.power_outputs.find(query).sort("timestamp", DESCENDING)
            if limit:
                cursor = cursor.limit(limit)
            return [reading_out(doc) for doc in cursor]

    def power_values_since(self, since):
        with _guard("fetch recent power output"):
            cursor = self.power_outputs.find({"timestamp": {"$gte": since}}, {"powerKW": 1})
            return [doc["powerKW"] for doc in cursor]

    # --- work orders ---

    def _attach_turbines(self, orders, fields=("id", "name", "active")):
        turbine_ids = list({order["windTurbineId"] for order in orders})
        with _guard("fetch wind turbines"):
            docs = self.turbines.find({"_id": {"$in": turbine_ids}})
            turbines = {doc["_id"]: turbine_out(doc) for doc in docs}
        for order in orders:
            turbine = turbines.get(order["windTurbineId"])
            order["windTurbine"] = {key: turbine[key] for key in fields} if turbine else None
        return orders

    def list_work_orders(self, turbine_id=None, status=None, created_from=None, created_to=None,
                         resolved_from=None, resolved_to=None, include_deleted=False, skip=0, limit=25):
        query = {}
        if turbine_id:
            query["windTurbineId"] = turbine_id
        if status:
            query["status"] = status
        if created_from or created_to:
            query["creationDate"] = _range(created_from, created_to)
        if resolved_from or resolved_to:
            query["resolutionDate"] = _range(resolved_from, resolved_to)
        if not include_deleted:
            query["deletedAt"] = None

        with _guard("list work orders"):
            total = self.work_orders.count_documents(query)
            cursor = self.work_orders.find(query).sort("creationDate", DESCENDING).skip(skip).limit(limit)
            orders = [work_order_out(doc) for doc in cursor]
        return self._attach_turbines(orders), total

    def recent_work_orders(self, turbine_id, limit=10):
        with _guard("list work orders"):
            cursor = (self.work_orders.find({"windTurbineId": turbine_id, "deletedAt": None})
                      .sort("createdAt", DESCENDING).limit(limit))
            return [work_order_out(doc) for doc in cursor]

    def work_orders_for_stats(self, turbine_id=None):
        """Non-deleted work orders with only the fields statistics need."""
        query = {"deletedAt": None}
        if turbine_id:
            query["windTurbineId"] = turbine_id
        projection = {"status": 1, "creationDate": 1, "resolutionDate": 1}
        with _guard("fetch work order statistics"):
            return list(self.work_orders.find(query, projection))

    def get_work_order(self, work_order_id, include_deleted=True):
        query = {"_id": work_order_id}
        if not include_deleted:
            query["deletedAt"] = None
        with _guard("fetch work order"):
            doc = self.work_orders.find_one(query)
        return work_order_out(doc) if doc else None

    def get_work_order_details(self, work_order_id):
        order = self.get_work_order(work_order_id)
        if order is None:
            return None
        self._attach_turbines([order], fields=("id", "name", "active", "latitude", "longitude"))
        with _guard("fetch work order comments"):
            cursor = self.comments.find({"workOrderId": work_order_id}).sort("createdAt", ASCENDING)
            order["comments"] = [comment_out(doc) for doc in cursor]
        return order

    def get_work_order_with_turbine(self, work_order_id):
        order = self.get_work_order(work_order_id)
        if order is None:
            return None
        return self._attach_turbines([order])[0]

    def create_work_order(self, data):
        now = utc_now()
        doc = {
            "_id": _new_id(),
            "windTurbineId": data["windTurbineId"],
            "title": data["title"],
            "description": data.get("description"),
            "status": data.get("status", "open"),
            "creationDate": data.get("creationDate") or now,
            "resolutionDate": data.get("resolutionDate"),
            "deletedAt": None,
            "createdAt": now,
            "updatedAt": now,
        }
        with _guard("create work order"):
            self.work_orders.insert_one(doc)
        return work_order_out(doc)

    def update_work_order(self, work_order_id, updates):
        updates = dict(updates, updatedAt=utc_now())
        with _guard("update work order"):
            result = self.work_orders.update_one({"_id": work_order_id}, {"$set": updates})
        return result.matched_count > 0

    def soft_delete_work_order(self, work_order_id):
        with _guard("delete work order"):
            result = self.work_orders.update_one(
                {"_id": work_order_id, "deletedAt": None},
                {"$set": {"deletedAt": utc_now()}},
            )
        return result.matched_count > 0

    def count_work_orders(self, status=None):
        query = {"deletedAt": None}
        if status:
            query["status"] = status
        with _guard("count work orders"):
            return self.work_orders.count_documents(query)

    # --- comments ---

    def create_comment(self, work_order_id, user_id, content, created_at=None):
        now = utc_now()
        doc = {
            "_id": _new_id(),
            "workOrderId": work_order_id,
            "userId": user_id,
            "content": content,
            "createdAt": created_at or now,
            "updatedAt": now,
        }
        with _guard("create comment"):
            self.comments.insert_one(doc)
        return comment_out(doc)

    def list_comments(self, work_order_id, skip=0, limit=25):
        query = {"workOrderId": work_order_id}
        with _guard("fetch comments"):
            total = self.comments.count_documents(query)
            cursor = self.comments.find(query).sort("createdAt", ASCENDING).skip(skip).limit(limit)
            return [comment_out(doc) for doc in cursor], total
