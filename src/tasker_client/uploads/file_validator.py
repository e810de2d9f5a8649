# src/tasker_client/uploads/file_validator.py

"""
Local checks applied to freshly picked files before anything touches the network.

Known limitation: duplicates are detected by (name, size) only. Two different files
with the same name and byte length are treated as duplicates, and a renamed copy of
an accepted file is not.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..config import MIB
from .upload_models import PendingFile


@dataclass(slots=True, frozen=True)
class UploadLimits:
    max_file_bytes: int
    max_batch_bytes: int
    max_files: int

    @classmethod
    def for_work(cls, settings=None) -> UploadLimits:
        if settings is None:
            return cls(max_file_bytes=10 * MIB, max_batch_bytes=50 * MIB, max_files=10)
        return cls(
            max_file_bytes=int(settings.max_file_bytes),
            max_batch_bytes=int(settings.max_batch_bytes),
            max_files=int(settings.max_batch_files),
        )

    @classmethod
    def for_dispute(cls, settings=None) -> UploadLimits:
        max_file = 5 * MIB if settings is None else int(settings.max_evidence_bytes)
        return cls(max_file_bytes=max_file, max_batch_bytes=max_file, max_files=1)


@dataclass(slots=True)
class ValidationResult:
    accepted: list[PendingFile] = field(default_factory=list)
    rejected: dict[str, str] = field(default_factory=dict)


def format_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 Bytes"
    size = float(num_bytes)
    for unit in ("Bytes", "KB", "MB"):
        if size < 1024:
            return f"{size:.1f}".rstrip("0").rstrip(".") + f" {unit}"
        size /= 1024
    return f"{size:.1f}".rstrip("0").rstrip(".") + " GB"


def validate_files(
    existing: Iterable[PendingFile],
    picked: Iterable[PendingFile],
    limits: UploadLimits,
) -> ValidationResult:
    """
    Split `picked` into accepted files and rejected names (with a reason).

    Rules, per candidate and in this order: per-file size, aggregate batch size,
    (name, size) duplicate, batch count. The count rule drops the latest arrivals.
    """
    accepted_so_far = list(existing)
    total = sum(f.size_bytes for f in accepted_so_far)
    result = ValidationResult()

    for f in picked:
        if f.size_bytes > limits.max_file_bytes:
            result.rejected[f.name] = f"File exceeds {format_size(limits.max_file_bytes)} limit"
            continue

        if total + f.size_bytes > limits.max_batch_bytes:
            result.rejected[f.name] = f"Total upload size would exceed {format_size(limits.max_batch_bytes)}"
            continue

        if any(a.name == f.name and a.size_bytes == f.size_bytes for a in accepted_so_far):
            result.rejected[f.name] = "File already selected"
            continue

        if len(accepted_so_far) >= limits.max_files:
            result.rejected[f.name] = f"Maximum {limits.max_files} files allowed"
            continue

        accepted_so_far.append(f)
        result.accepted.append(f)
        total += f.size_bytes

    return result
