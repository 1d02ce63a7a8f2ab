import hashlib
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from core.errors import AccessError, PathError, RegistryFormatError
from core.file_fingerprint import format_sha1
from core.install_root import InstallRoot
from core.installed_module import InstalledPackageRecord
from shared.module_definition import ModuleDefinition


def test_records_files_and_directories(counting_root, foo_module, install_dir: Path):
    record = InstalledPackageRecord.create(
        counting_root, foo_module, ["GameData/Foo/plugin.dll", "GameData/Foo/"]
    )

    payload = (install_dir / "GameData" / "Foo" / "plugin.dll").read_bytes()
    assert set(record.file_paths()) == {"GameData/Foo/plugin.dll", "GameData/Foo/"}
    assert record.fingerprint("GameData/Foo/plugin.dll").digest() == format_sha1(hashlib.sha1(payload).digest())
    assert record.fingerprint("GameData/Foo/").digest() is None
    assert record.module_identifier() == "Foo"
    assert record.descriptor() is foo_module


def test_install_time_is_current_utc(counting_root, foo_module):
    before = datetime.now(timezone.utc).replace(microsecond=0)
    record = InstalledPackageRecord.create(counting_root, foo_module, ["GameData/Foo/readme.txt"])

    assert record.installed_at.tzinfo is not None
    assert record.installed_at.microsecond == 0
    assert before <= record.installed_at <= datetime.now(timezone.utc) + timedelta(seconds=1)


def test_absolute_path_is_rejected_before_any_access(counting_root, foo_module):
    with pytest.raises(PathError) as exc:
        InstalledPackageRecord.create(counting_root, foo_module, ["/etc/passwd"])

    assert exc.value.path == "/etc/passwd"
    assert "/etc/passwd" in str(exc.value)
    assert "must be relative" in str(exc.value)
    assert counting_root.calls == []


def test_rooted_path_after_valid_ones_still_touches_nothing(counting_root, foo_module):
    with pytest.raises(PathError):
        InstalledPackageRecord.create(
            counting_root, foo_module, ["GameData/Foo/plugin.dll", "C:\\Windows\\system.ini"]
        )

    assert counting_root.calls == []


def test_missing_file_raises_access_error(counting_root, foo_module):
    with pytest.raises(AccessError) as exc:
        InstalledPackageRecord.create(counting_root, foo_module, ["GameData/Foo/missing.dll"])

    assert exc.value.path == "GameData/Foo/missing.dll"


def test_duplicate_paths_collapse(counting_root, foo_module):
    record = InstalledPackageRecord.create(
        counting_root,
        foo_module,
        ["GameData/Foo/plugin.dll", "GameData/Foo/readme.txt", "GameData/Foo/plugin.dll"],
    )

    assert sorted(record.file_paths()) == ["GameData/Foo/plugin.dll", "GameData/Foo/readme.txt"]


def test_empty_file_list_gives_empty_record(counting_root, foo_module):
    record = InstalledPackageRecord.create(counting_root, foo_module, [])

    assert list(record.file_paths()) == []


def test_file_paths_is_restartable(counting_root, foo_module):
    record = InstalledPackageRecord.create(counting_root, foo_module, ["GameData/Foo/plugin.dll"])

    assert list(record.file_paths()) == list(record.file_paths()) == ["GameData/Foo/plugin.dll"]


def test_parallel_fingerprinting_matches_sequential(install_dir: Path, foo_module):
    root = InstallRoot(install_dir)
    paths = ["GameData/Foo/plugin.dll", "GameData/Foo/readme.txt", "GameData/Foo/", "GameData"]

    sequential = InstalledPackageRecord.create(root, foo_module, paths)
    parallel = InstalledPackageRecord.create(root, foo_module, paths, max_workers=4)

    assert dict(parallel.files) == dict(sequential.files)


def test_parallel_reports_first_failure_in_input_order(install_dir: Path, foo_module):
    root = InstallRoot(install_dir)
    paths = ["GameData/Foo/plugin.dll", "missing/first.dll", "missing/second.dll"]

    with pytest.raises(AccessError) as exc:
        InstalledPackageRecord.create(root, foo_module, paths, max_workers=3)

    assert exc.value.path == "missing/first.dll"


def test_record_is_read_only(counting_root, foo_module):
    record = InstalledPackageRecord.create(counting_root, foo_module, ["GameData/Foo/plugin.dll"])

    with pytest.raises(TypeError):
        record.files["GameData/Foo/extra.dll"] = record.fingerprint("GameData/Foo/plugin.dll")
    with pytest.raises(AttributeError):
        record.installed_at = datetime.now(timezone.utc)


def test_module_descriptor_is_required(counting_root):
    with pytest.raises(TypeError):
        InstalledPackageRecord.create(counting_root, None, ["GameData/Foo/plugin.dll"])
    assert counting_root.calls == []


def test_document_shape(counting_root, foo_module):
    record = InstalledPackageRecord.create(
        counting_root, foo_module, ["GameData/Foo/plugin.dll", "GameData/Foo/"]
    )

    document = record.to_document()

    assert set(document) == {"install_time", "source_module", "installed_files"}
    assert document["install_time"].endswith("Z")
    assert document["source_module"]["identifier"] == "Foo"
    assert document["source_module"]["depends"] == [{"name": "Bar"}]
    assert document["installed_files"]["GameData/Foo/"] == {"sha1_sum": None}
    digest = document["installed_files"]["GameData/Foo/plugin.dll"]["sha1_sum"]
    assert digest == digest.upper()
    assert digest.count("-") == 19


def test_round_trip_does_not_rehash(counting_root, foo_module, monkeypatch):
    record = InstalledPackageRecord.create(
        counting_root, foo_module, ["GameData/Foo/plugin.dll", "GameData/Foo/readme.txt", "GameData/Foo/"]
    )
    persisted = json.loads(json.dumps(record.to_document()))

    def _no_hashing(path):
        raise AssertionError(f"unexpected hashing of {path}")

    monkeypatch.setattr("core.file_fingerprint.sha1_sum", _no_hashing)
    calls_before = list(counting_root.calls)
    restored = InstalledPackageRecord.from_document(persisted)

    assert counting_root.calls == calls_before
    assert set(restored.file_paths()) == set(record.file_paths())
    for path in record.file_paths():
        assert restored.fingerprint(path).digest() == record.fingerprint(path).digest()
    assert restored.installed_at == record.installed_at
    assert restored.module_identifier() == "Foo"
    assert restored == record


def test_from_document_trusts_persisted_digests():
    record = InstalledPackageRecord.from_document(
        {
            "install_time": "2024-05-01T10:00:00Z",
            "source_module": {"identifier": "Foo", "version": "1.0"},
            "installed_files": {
                "GameData/Foo/plugin.dll": {"sha1_sum": "3A-F2-00"},
                "GameData/Foo/": {},
            },
        }
    )

    assert record.fingerprint("GameData/Foo/plugin.dll").digest() == "3A-F2-00"
    assert record.fingerprint("GameData/Foo/").is_directory
    assert record.installed_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "document",
    [
        [],
        {"install_time": "yesterday", "source_module": {"identifier": "Foo"}, "installed_files": {}},
        {"install_time": "2024-05-01T10:00:00Z", "source_module": None, "installed_files": {}},
        {"install_time": "2024-05-01T10:00:00Z", "source_module": {"identifier": "Foo"}, "installed_files": []},
    ],
)
def test_from_document_rejects_malformed_documents(document):
    with pytest.raises(RegistryFormatError):
        InstalledPackageRecord.from_document(document)


def test_identifier_reads_through_to_descriptor(counting_root):
    module = ModuleDefinition.from_document({"identifier": "Bar"})
    record = InstalledPackageRecord.create(counting_root, module, [])

    assert record.module_identifier() == record.descriptor().identifier == "Bar"


def test_path_climbing_out_of_root_is_rejected(tmp_path: Path, counting_root, foo_module):
    (tmp_path / "victim.txt").write_text("outside", encoding="utf-8")

    with pytest.raises(PathError) as exc:
        InstalledPackageRecord.create(counting_root, foo_module, ["GameData/Foo/plugin.dll", "../victim.txt"])

    assert exc.value.path == "../victim.txt"
    assert counting_root.calls == []


def test_persisted_descriptor_survives_unchanged():
    source_module = {"identifier": "Foo", "version": 1, "name": " Foo Plugin ", "x_custom": {"k": [1, 2]}}
    document = {
        "install_time": "2024-05-01T10:00:00Z",
        "source_module": source_module,
        "installed_files": {},
    }

    restored = InstalledPackageRecord.from_document(json.loads(json.dumps(document)))

    assert restored.to_document()["source_module"] == source_module
    assert restored.module_identifier() == "Foo"
    assert restored.module.version == "1"


def test_records_and_descriptors_are_hashable(counting_root, foo_module):
    record = InstalledPackageRecord.create(
        counting_root, foo_module, ["GameData/Foo/plugin.dll", "GameData/Foo/"]
    )
    restored = InstalledPackageRecord.from_document(record.to_document())

    assert hash(restored) == hash(record)
    assert len({record, restored}) == 1
    assert hash(foo_module) == hash(ModuleDefinition.from_document(foo_module.to_document()))
