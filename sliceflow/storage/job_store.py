"""
Persistent state of campaign queue items.

Updates are partial-field upserts keyed by job id. claim() is the only
conditional write: it moves a job into processing unless it is already there.
"""

import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from sliceflow.core.constants import STATUS_PROCESSING, DEFAULT_QUEUE_TABLE
from sliceflow.core.logging_config import get_logger
from sliceflow.core.models import QueueItem
from sliceflow.core.utils import ensure_dir, load_json_file, save_json_file, utc_now_iso
from sliceflow.storage.rest_client import RestClient

logger = get_logger(__name__)


class JobStore(ABC):
    """
    Base interface for queue item storage.
    """

    @abstractmethod
    def get(self, job_id: str) -> Optional[QueueItem]:
        """
        Load a queue item.

        Args:
            job_id (str): Queue item id

        Returns:
            Optional[QueueItem]: The item, or None if it does not exist
        """
        pass

    @abstractmethod
    def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        """
        Merge fields into a stored queue item.

        Args:
            job_id (str): Queue item id
            fields (Dict[str, Any]): Columns to set
        """
        pass

    @abstractmethod
    def claim(self, job_id: str) -> bool:
        """
        Move a job to processing unless it is already processing.

        Args:
            job_id (str): Queue item id

        Returns:
            bool: True if this caller claimed the job
        """
        pass


class InMemoryJobStore(JobStore):
    """
    Dictionary-backed store. Keeps every update in `history` in write order.
    """

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self._lock = threading.Lock()
        self._records: Dict[str, Dict[str, Any]] = {}
        self.history: List[Dict[str, Any]] = []
        for record in records or []:
            self._records[record["id"]] = dict(record)

    def add(self, record: Dict[str, Any]) -> None:
        with self._lock:
            self._records[record["id"]] = dict(record)

    def get(self, job_id: str) -> Optional[QueueItem]:
        with self._lock:
            record = self._records.get(job_id)
            return QueueItem.from_dict(dict(record)) if record else None

    def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            record = self._records.setdefault(job_id, {"id": job_id})
            record.update(fields)
            record["updated_at"] = utc_now_iso()
            self.history.append(dict(fields))

    def claim(self, job_id: str) -> bool:
        with self._lock:
            record = self._records.get(job_id)
            if record is None or record.get("status") == STATUS_PROCESSING:
                return False
            record["status"] = STATUS_PROCESSING
            record["updated_at"] = utc_now_iso()
            self.history.append({"status": STATUS_PROCESSING})
            return True


class JsonFileJobStore(JobStore):
    """
    Stores each queue item as <directory>/<job_id>.json.
    """

    def __init__(self, directory: str):
        self.directory = ensure_dir(directory)
        self._lock = threading.Lock()

    def _path(self, job_id: str) -> str:
        return os.path.join(self.directory, f"{job_id}.json")

    def _load(self, job_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(job_id)
        if not os.path.exists(path):
            return None
        return load_json_file(path)

    def get(self, job_id: str) -> Optional[QueueItem]:
        with self._lock:
            record = self._load(job_id)
        return QueueItem.from_dict(record) if record else None

    def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            record = self._load(job_id) or {"id": job_id}
            record.update(fields)
            record["updated_at"] = utc_now_iso()
            save_json_file(record, self._path(job_id))

    def claim(self, job_id: str) -> bool:
        with self._lock:
            record = self._load(job_id)
            if record is None or record.get("status") == STATUS_PROCESSING:
                return False
            record["status"] = STATUS_PROCESSING
            record["updated_at"] = utc_now_iso()
            save_json_file(record, self._path(job_id))
            return True


class RestJobStore(JobStore):
    """
    Queue items in a PostgREST table.
    """

    def __init__(self, client: RestClient, table: str = DEFAULT_QUEUE_TABLE):
        self.client = client
        self.table = table

    def get(self, job_id: str) -> Optional[QueueItem]:
        rows = self.client.select(self.table, {"id": f"eq.{job_id}"}, limit=1)
        return QueueItem.from_dict(rows[0]) if rows else None

    def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        self.client.update(self.table, {"id": f"eq.{job_id}"}, {**fields, "updated_at": utc_now_iso()})

    def claim(self, job_id: str) -> bool:
        rows = self.client.update(
            self.table,
            {"id": f"eq.{job_id}", "status": f"neq.{STATUS_PROCESSING}"},
            {"status": STATUS_PROCESSING, "updated_at": utc_now_iso()}
        )
        return bool(rows)
