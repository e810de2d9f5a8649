"""
Upload subsystem.

Components:
- upload_models.py: data structures (PendingFile, UploadGrant, UploadOutcome, ...)
- file_validator.py: pure size/count/duplicate checks before any network call
- grant_client.py: one upload grant per file
- object_store.py: primary (streamed) and fallback (buffered) byte transfer
- coordinator.py: sequential grant -> transfer over a batch, partial-failure tolerant
"""
