"""
Storage backends for queue items, early results and brands.
"""

from sliceflow.storage.job_store import JobStore, InMemoryJobStore, JsonFileJobStore, RestJobStore
from sliceflow.storage.early_result_store import (
    EarlyResultStore,
    InMemoryEarlyResultStore,
    RestEarlyResultStore,
)
from sliceflow.storage.brand_store import BrandStore, InMemoryBrandStore, YamlBrandStore
from sliceflow.storage.rest_client import RestClient
