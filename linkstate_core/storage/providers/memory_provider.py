from typing import Dict, Optional
from linkstate_core.storage.provider import StorageProvider


class InMemoryStorage(StorageProvider):
    name = "memory"

    def __init__(self):
        self.blobs: Dict[str, str] = {}

    def load(self, identity_key: str) -> Optional[str]:
        return self.blobs.get(identity_key)

    def store(self, identity_key: str, blob: str) -> None:
        self.blobs[identity_key] = blob

    def delete(self, identity_key: str) -> None:
        self.blobs.pop(identity_key, None)
