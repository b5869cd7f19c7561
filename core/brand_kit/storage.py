"""
Brand Kit Storage

Saved brand kits live in one JSON file below `storage.brand_kit_dir`.
The whole file is bounded by `storage.max_storage_bytes`.
"""

import json
import logging
import os
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from core.brand_kit.models import BrandKit, SavedBrandKit
from core.config.unified_manager import StorageConfig

logger = logging.getLogger(__name__)

STORAGE_FILE = "saved_brand_kits.json"


class StorageLimitExceeded(Exception):
    """Saving would push the store over its size limit"""


class BrandKitStore:
    """JSON file persistence for brand kits (list/save/get/delete/clear)"""

    def __init__(self, config: Optional[StorageConfig] = None):
        self.config = config or StorageConfig()
        self.directory = Path(self.config.brand_kit_dir)
        self.path = self.directory / STORAGE_FILE
        self.max_bytes = self.config.max_storage_bytes

    def _read(self) -> List[SavedBrandKit]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return [SavedBrandKit.parse_obj(item) for item in raw]
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error(f"Error loading saved brand kits from {self.path}: {e}")
            return []

    @staticmethod
    def _serialize(kits: List[SavedBrandKit]) -> str:
        return json.dumps([json.loads(kit.json()) for kit in kits], ensure_ascii=False)

    def _write(self, serialized: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(serialized, encoding="utf-8")
        os.replace(tmp_path, self.path)

    def list_kits(self) -> List[SavedBrandKit]:
        return self._read()

    def get(self, kit_id: str) -> Optional[SavedBrandKit]:
        return next((kit for kit in self._read() if kit.id == kit_id), None)

    def save(self,
             brand_kit: BrandKit,
             name: Optional[str] = None,
             source_file_name: Optional[str] = None) -> SavedBrandKit:
        """
        Persist a brand kit

        Raises:
            StorageLimitExceeded: store would exceed max_storage_bytes
        """
        kits = self._read()
        now = datetime.now()
        record = SavedBrandKit(
            id=f"brandkit_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
            name=name or f"Brand Kit {now.strftime('%Y-%m-%d')}",
            created_at=now,
            brand_kit=brand_kit,
            source_file_name=source_file_name,
        )

        serialized = self._serialize(kits + [record])
        size = len(serialized.encode("utf-8"))
        if size > self.max_bytes:
            raise StorageLimitExceeded(
                "Storage limit reached. Please delete some saved brand kits first."
            )

        self._write(serialized)
        logger.info(f"Saved brand kit {record.id} ({record.name})")
        return record

    def rename(self, kit_id: str, new_name: str) -> Optional[SavedBrandKit]:
        kits = self._read()
        for kit in kits:
            if kit.id == kit_id:
                kit.name = new_name
                self._write(self._serialize(kits))
                return kit
        return None

    def delete(self, kit_id: str) -> bool:
        kits = self._read()
        remaining = [kit for kit in kits if kit.id != kit_id]
        if len(remaining) == len(kits):
            return False
        self._write(self._serialize(remaining))
        logger.info(f"Deleted brand kit {kit_id}")
        return True

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
        logger.info("Cleared all saved brand kits")

    def storage_info(self) -> Dict[str, Any]:
        used = self.path.stat().st_size if self.path.exists() else 0
        return {
            "used": used,
            "max": self.max_bytes,
            "percentage": used / self.max_bytes * 100 if self.max_bytes else 0.0,
        }
