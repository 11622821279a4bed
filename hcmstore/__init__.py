"""hcmstore: content-addressed, versioned JSON storage on a local filesystem.

  - Canonical JSON hashing (key order independent, JS-compatible numbers)
  - Root-anchored storage gateway with atomic per-file writes
  - Versioned records (contracts, documents, project profiles) with
    optimistic concurrency on ``expected_base_hash``
  - Immutable packs and deduplicated artifact blobs
  - Keyword-classified, glob-scoped search over the storage tree
  - Mission working state (journal, evidence, next actions, snapshots)
"""

__version__ = "0.3.0"
__description__ = "Content-addressed, versioned JSON storage with scoped search"

from hcmstore.config import StoreConfig
from hcmstore.core.errors import HcmError
from hcmstore.service import HcmService, StoreContext

__all__ = ["HcmService", "StoreContext", "StoreConfig", "HcmError", "__version__"]
