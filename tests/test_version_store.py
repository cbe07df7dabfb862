import pytest
from sqlalchemy.exc import IntegrityError

from versioning_plane.core.exceptions import Conflict, InvalidOperation, NotFound
from versioning_plane.models.file_versions import FileVersion


def _append(store, file_id, location, **kwargs):
    return store.append(
        file_id,
        location=location,
        original_name=kwargs.pop("original_name", "report.pdf"),
        file_type=kwargs.pop("file_type", "document"),
        **kwargs,
    )


def test_append_numbers_from_one_and_keeps_single_current(db, store, file_row):
    v1 = _append(store, file_row.id, "loc://r1")
    v2 = _append(store, file_row.id, "loc://r2")
    v3 = _append(store, file_row.id, "loc://r3")
    db.commit()

    assert [v1.version_number, v2.version_number, v3.version_number] == [1, 2, 3]

    versions = store.list_by_file(file_row.id)
    assert [v.version_number for v in versions] == [3, 2, 1]
    assert [v.is_current for v in versions] == [True, False, False]
    assert store.get_current(file_row.id).id == v3.id


def test_append_default_descriptions(db, store, file_row):
    v1 = _append(store, file_row.id, "loc://r1")
    v2 = _append(store, file_row.id, "loc://r2")
    v3 = _append(store, file_row.id, "loc://r3", description="signed copy")

    assert v1.description == "Initial version"
    assert v2.description == "Version 2"
    assert v3.description == "signed copy"


def test_append_keeps_snapshot_fields(db, store, file_row):
    version = _append(
        store, file_row.id, "loc://r1",
        original_name="old-name.pdf", file_type="template", created_by="emp-7",
    )
    db.commit()

    fetched = store.get_by_id(version.id)
    assert fetched.original_name == "old-name.pdf"
    assert fetched.file_type == "template"
    assert fetched.created_by == "emp-7"
    assert fetched.created_at is not None


def test_append_duplicate_number_is_conflict(db, store, file_row, monkeypatch):
    _append(store, file_row.id, "loc://r1")
    db.commit()

    # simulate a writer that computed its number before the first commit
    monkeypatch.setattr(store, "_next_version_number", lambda file_id: 1)
    with pytest.raises(Conflict):
        _append(store, file_row.id, "loc://r2")
    db.rollback()

    versions = store.list_by_file(file_row.id)
    assert len(versions) == 1
    assert versions[0].is_current


def test_get_by_id_missing(store):
    with pytest.raises(NotFound) as exc:
        store.get_by_id("does-not-exist")
    assert "does-not-exist" in exc.value.message


def test_get_by_number(db, store, file_row):
    _append(store, file_row.id, "loc://r1")
    v2 = _append(store, file_row.id, "loc://r2")
    db.commit()

    assert store.get_by_number(file_row.id, 2).id == v2.id
    assert store.get_by_number(file_row.id, 1).location == "loc://r1"

    with pytest.raises(NotFound) as exc:
        store.get_by_number(file_row.id, 3)
    assert exc.value.message == f"Version 3 of file with ID {file_row.id} not found"


def test_mark_current_moves_flag(db, store, file_row):
    v1 = _append(store, file_row.id, "loc://r1")
    v2 = _append(store, file_row.id, "loc://r2")
    db.commit()

    store.mark_current(v1.id)
    db.commit()

    assert store.get_by_id(v1.id).is_current is True
    assert store.get_by_id(v2.id).is_current is False
    assert store.get_current(file_row.id).id == v1.id


def test_mark_current_on_current_is_noop(db, store, file_row):
    _append(store, file_row.id, "loc://r1")
    v2 = _append(store, file_row.id, "loc://r2")
    db.commit()

    assert store.mark_current(v2.id).is_current
    db.commit()
    assert store.get_current(file_row.id).id == v2.id


def test_mark_current_missing(store):
    with pytest.raises(NotFound):
        store.mark_current("nope")


def test_delete_current_version_rejected(db, store, file_row):
    v1 = _append(store, file_row.id, "loc://r1")
    db.commit()

    with pytest.raises(InvalidOperation):
        store.delete(v1.id)
    db.rollback()

    assert store.get_by_id(v1.id).is_current


def test_delete_non_current_version(db, store, file_row):
    v1 = _append(store, file_row.id, "loc://r1")
    _append(store, file_row.id, "loc://r2")
    db.commit()

    store.delete(v1.id)
    db.commit()

    with pytest.raises(NotFound):
        store.get_by_id(v1.id)
    assert [v.version_number for v in store.list_by_file(file_row.id)] == [2]


def test_delete_all_for_file(db, store, file_row):
    for i in range(3):
        _append(store, file_row.id, f"loc://r{i}")
    db.commit()

    assert store.delete_all_for_file(file_row.id) == 3
    db.commit()
    assert store.list_by_file(file_row.id) == []


def test_schema_rejects_two_current_versions(db, file_row):
    db.add_all([
        FileVersion(
            file_id=file_row.id, location="loc://a", original_name="a",
            file_type="document", version_number=1, is_current=True,
        ),
        FileVersion(
            file_id=file_row.id, location="loc://b", original_name="b",
            file_type="document", version_number=2, is_current=True,
        ),
    ])
    with pytest.raises(IntegrityError):
        db.flush()
    db.rollback()
