"""Storage core — hashing, the path-safe gateway and the content engines.

Modules
-------
hasher
    Canonical JSON serialization and SHA-256 content addresses.
gateway
    ``StorageGateway``: the only component that touches the filesystem.
versioned
    ``VersionedRecordEngine`` and the ``RecordKind`` strategy base.
pack_store
    Immutable, idempotent packs with a per-owner index.
blob_store
    Deduplicated artifact blobs plus per-artifact metadata.
errors
    The closed ``HcmError`` taxonomy.
"""
