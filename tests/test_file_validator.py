# tests/test_file_validator.py

from __future__ import annotations

import random

from tasker_client.config import MIB
from tasker_client.uploads.file_validator import UploadLimits, format_size, validate_files

from .fakes import make_file


def test_oversized_file_rejected_with_reason() -> None:
    limits = UploadLimits.for_work()
    result = validate_files([], [make_file("big.mov", 10 * MIB + 1), make_file("ok.png", 10 * MIB)], limits)

    assert [f.name for f in result.accepted] == ["ok.png"]
    assert result.rejected == {"big.mov": "File exceeds 10 MB limit"}


def test_dispute_evidence_limit_is_5_mib() -> None:
    limits = UploadLimits.for_dispute()
    result = validate_files([], [make_file("evidence.jpg", 5 * MIB + 1)], limits)

    assert result.accepted == []
    assert "5 MB" in result.rejected["evidence.jpg"]


def test_aggregate_limit_counts_existing_and_same_pick() -> None:
    limits = UploadLimits.for_work()
    existing = [make_file(f"e{i}.pdf", 9 * MIB) for i in range(4)]  # 36 MiB
    picked = [make_file("a.pdf", 9 * MIB), make_file("b.pdf", 9 * MIB), make_file("c.pdf", 5 * MIB)]

    result = validate_files(existing, picked, limits)

    # 36 + 9 = 45 ok; 45 + 9 = 54 rejected; 45 + 5 = 50 ok (limit is inclusive)
    assert [f.name for f in result.accepted] == ["a.pdf", "c.pdf"]
    assert result.rejected["b.pdf"].startswith("Total upload size would exceed")


def test_duplicate_by_name_and_size_only() -> None:
    limits = UploadLimits.for_work()
    existing = [make_file("photo.png", 2048)]
    picked = [
        make_file("photo.png", 2048),  # duplicate
        make_file("photo.png", 4096),  # same name, different size: admitted
        make_file("copy-of-photo.png", 2048),  # renamed copy: admitted (known limitation)
    ]

    result = validate_files(existing, picked, limits)

    assert [(f.name, f.size_bytes) for f in result.accepted] == [("photo.png", 4096), ("copy-of-photo.png", 2048)]
    assert result.rejected == {"photo.png": "File already selected"}


def test_duplicate_inside_one_pick() -> None:
    result = validate_files([], [make_file("a.txt", 10), make_file("a.txt", 10)], UploadLimits.for_work())

    assert len(result.accepted) == 1
    assert result.rejected == {"a.txt": "File already selected"}


def test_count_limit_drops_latest_arrivals() -> None:
    limits = UploadLimits.for_work()
    existing = [make_file(f"old{i}.png") for i in range(8)]
    picked = [make_file(f"new{i}.png") for i in range(4)]

    result = validate_files(existing, picked, limits)

    assert [f.name for f in result.accepted] == ["new0.png", "new1.png"]
    assert set(result.rejected) == {"new2.png", "new3.png"}
    assert result.rejected["new3.png"] == "Maximum 10 files allowed"


def test_never_admits_more_than_batch_limit_regardless_of_order() -> None:
    limits = UploadLimits.for_work()
    rng = random.Random(7)
    sizes = [rng.randint(1, 10 * MIB) for _ in range(30)]

    for seed in range(20):
        order = list(enumerate(sizes))
        random.Random(seed).shuffle(order)
        accepted: list = []
        # feed in several picks of varying size
        while order:
            take = random.Random(seed + len(order)).randint(1, 5)
            pick = [make_file(f"f{i}.bin", size) for i, size in order[:take]]
            order = order[take:]
            accepted.extend(validate_files(accepted, pick, limits).accepted)

        assert sum(f.size_bytes for f in accepted) <= limits.max_batch_bytes
        assert len(accepted) <= limits.max_files


def test_limits_from_settings(settings) -> None:
    limits = UploadLimits.for_work(settings)
    assert limits.max_file_bytes == 10 * MIB
    assert limits.max_batch_bytes == 50 * MIB
    assert limits.max_files == 10

    evidence = UploadLimits.for_dispute(settings)
    assert evidence.max_file_bytes == 5 * MIB
    assert evidence.max_files == 1


def test_format_size() -> None:
    assert format_size(0) == "0 Bytes"
    assert format_size(512) == "512 Bytes"
    assert format_size(1536) == "1.5 KB"
    assert format_size(50 * MIB) == "50 MB"
