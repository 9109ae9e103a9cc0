"""
Brand context storage.

The pipeline reads brands and their link indexes; the only write is the
additive product URL learning cache.
"""

import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

import yaml

from sliceflow.core.logging_config import get_logger
from sliceflow.core.models import Brand

logger = get_logger(__name__)


class BrandStore(ABC):
    """
    Base interface for brand storage.
    """

    @abstractmethod
    def get_brand(self, brand_id: str) -> Optional[Brand]:
        """
        Load a brand with its link index and learned product URLs.

        Args:
            brand_id (str): Brand id

        Returns:
            Optional[Brand]: The brand, or None if unknown
        """
        pass

    @abstractmethod
    def add_product_urls(self, brand_id: str, product_urls: Dict[str, str]) -> int:
        """
        Add learned product URLs, keeping any URL already stored under a key.

        Args:
            brand_id (str): Brand id
            product_urls (Dict[str, str]): Normalized product name to URL

        Returns:
            int: Number of keys added
        """
        pass


def _merge_new_keys(existing: Dict[str, str], additions: Dict[str, str]) -> int:
    added = 0
    for name, url in additions.items():
        if name not in existing:
            existing[name] = url
            added += 1
    return added


class InMemoryBrandStore(BrandStore):

    def __init__(self, brands: Optional[List[Brand]] = None):
        self._lock = threading.Lock()
        self._brands: Dict[str, Brand] = {brand.id: brand for brand in brands or []}

    def get_brand(self, brand_id: str) -> Optional[Brand]:
        with self._lock:
            return self._brands.get(brand_id)

    def add_product_urls(self, brand_id: str, product_urls: Dict[str, str]) -> int:
        with self._lock:
            brand = self._brands.get(brand_id)
            if brand is None:
                logger.warning(f"Cannot store product URLs for unknown brand {brand_id}")
                return 0
            return _merge_new_keys(brand.product_urls, product_urls)


class YamlBrandStore(BrandStore):
    """
    Brands kept in a YAML file with a top-level `brands` list.

    Example:
        brands:
          - id: acme
            name: Acme
            domain: acme.com
            default_destination_url: https://acme.com
            link_index:
              - title: Shoes
                url: https://acme.com/collections/shoes
                link_type: collection
                use_count: 12
    """

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._lock = threading.Lock()

    def _load(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.file_path):
            return []
        with open(self.file_path, 'r') as f:
            data = yaml.safe_load(f) or {}
        return data.get("brands") or []

    def _save(self, brands: List[Dict[str, Any]]) -> None:
        with open(self.file_path, 'w') as f:
            yaml.safe_dump({"brands": brands}, f, sort_keys=False, allow_unicode=True)

    def get_brand(self, brand_id: str) -> Optional[Brand]:
        with self._lock:
            for record in self._load():
                if str(record.get("id")) == str(brand_id):
                    return Brand.from_dict(record)
        return None

    def add_product_urls(self, brand_id: str, product_urls: Dict[str, str]) -> int:
        with self._lock:
            brands = self._load()
            for record in brands:
                if str(record.get("id")) != str(brand_id):
                    continue
                all_links = record.get("all_links") or {}
                record["all_links"] = all_links
                existing = all_links.get("productUrls") or {}
                all_links["productUrls"] = existing
                added = _merge_new_keys(existing, product_urls)
                if added:
                    self._save(brands)
                return added

        logger.warning(f"Cannot store product URLs for unknown brand {brand_id}")
        return 0
