"""
Session-keyed store for background task results.

Each session key is written once by its background task and read by the
poller until a result appears or the poll times out.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sliceflow.core.logging_config import get_logger
from sliceflow.core.models import EarlyGenerationSession
from sliceflow.storage.rest_client import RestClient

logger = get_logger(__name__)


class EarlyResultStore(ABC):
    """
    Base interface for early result storage.
    """

    @abstractmethod
    def put(self, session_key: str, result: EarlyGenerationSession) -> None:
        """Store the result for a session key. Later writes for the same key are ignored."""
        pass

    @abstractmethod
    def get(self, session_key: str) -> Optional[EarlyGenerationSession]:
        """Return the stored result, or None if nothing has been written yet."""
        pass


class InMemoryEarlyResultStore(EarlyResultStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._results: Dict[str, EarlyGenerationSession] = {}

    def put(self, session_key: str, result: EarlyGenerationSession) -> None:
        with self._lock:
            if session_key in self._results:
                logger.warning(f"Ignoring second write for session {session_key}")
                return
            self._results[session_key] = result

    def get(self, session_key: str) -> Optional[EarlyGenerationSession]:
        with self._lock:
            return self._results.get(session_key)

    def discard(self, session_key: str) -> None:
        with self._lock:
            self._results.pop(session_key, None)


class RestEarlyResultStore(EarlyResultStore):
    """
    Early results in a PostgREST table with a unique session_key column.
    """

    def __init__(self, client: RestClient, table: str, columns: Optional[List[str]] = None):
        """
        Args:
            client (RestClient): REST client
            table (str): Table name
            columns (List[str], optional): Result columns the table has. All when omitted.
        """
        self.client = client
        self.table = table
        self.columns = columns

    def put(self, session_key: str, result: EarlyGenerationSession) -> None:
        row = result.to_dict()
        if self.columns is not None:
            row = {key: value for key, value in row.items() if key in self.columns}
        row["session_key"] = session_key
        self.client.upsert(self.table, row, on_conflict="session_key", ignore_duplicates=True)

    def get(self, session_key: str) -> Optional[EarlyGenerationSession]:
        rows = self.client.select(self.table, {"session_key": f"eq.{session_key}"}, limit=1)
        if not rows:
            return None
        return EarlyGenerationSession.from_dict(rows[0])
