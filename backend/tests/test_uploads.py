"""Tests for attachment upload policy, download, delete and the record delete cascade."""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from suivi.models.attachment import Attachment
from suivi.models.purchase import PurchaseEntry
from suivi.models.record import ChangeRecord
from tests.conftest import auth_headers, create_test_record, failing_commit

PDF = ("plan.pdf", b"%PDF-1.4 minimal", "application/pdf")
PNG = ("photo.png", b"\x89PNG\r\n\x1a\n....", "image/png")


def _files_on_disk(storage):
    return sorted(p.name for p in storage.upload_dir.iterdir())


def _upload(client, headers, record_id, *files):
    return client.post(
        f"/api/uploads/{record_id}",
        files=[("files", f) for f in files],
        headers=headers,
    )


class TestUpload:

    def test_upload_batch(self, client, db, editor, storage):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        resp = _upload(client, headers, record["id"], PDF, PNG)
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert [a["original_name"] for a in data] == ["plan.pdf", "photo.png"]
        assert [a["mime_type"] for a in data] == ["application/pdf", "image/png"]
        assert data[0]["size_bytes"] == len(PDF[1])
        assert all("stored_name" not in a for a in data)

        rows = db.query(Attachment).order_by(Attachment.id).all()
        assert len(rows) == 2
        assert _files_on_disk(storage) == sorted(r.stored_name for r in rows)
        assert rows[0].stored_name != rows[1].stored_name
        assert rows[0].stored_name.endswith(".pdf")
        assert rows[0].stored_name != "plan.pdf"

    def test_disallowed_type_rejects_whole_batch(self, client, db, editor, storage):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        resp = _upload(client, headers, record["id"], PDF, ("run.sh", b"#!/bin/sh", "application/x-sh"))
        assert resp.status_code == 400
        assert "not allowed" in resp.json()["error"]
        assert db.query(Attachment).count() == 0
        assert _files_on_disk(storage) == []

    def test_oversize_file_rejects_whole_batch(self, client, db, editor, storage, monkeypatch):
        from suivi.config import settings
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 1)
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        big = ("big.pdf", b"0" * (1024 * 1024 + 1), "application/pdf")
        resp = _upload(client, headers, record["id"], PDF, big)
        assert resp.status_code == 413
        assert db.query(Attachment).count() == 0
        assert _files_on_disk(storage) == []

    def test_file_exactly_at_limit_is_accepted(self, client, editor, monkeypatch):
        from suivi.config import settings
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 1)
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        exact = ("exact.pdf", b"0" * (1024 * 1024), "application/pdf")
        assert _upload(client, headers, record["id"], exact).status_code == 201

    def test_default_limit_is_ten_megabytes(self, client, db, editor, storage):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        big = ("big.pdf", b"0" * (10 * 1024 * 1024 + 1), "application/pdf")
        resp = _upload(client, headers, record["id"], big)
        assert resp.status_code == 413
        assert db.query(Attachment).count() == 0
        assert _files_on_disk(storage) == []

    def test_missing_record_purges_written_files(self, client, db, editor, storage):
        resp = _upload(client, auth_headers(editor), 999, PDF, PNG)
        assert resp.status_code == 404
        assert db.query(Attachment).count() == 0
        assert _files_on_disk(storage) == []

    def test_no_files_is_400(self, client, editor):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        resp = client.post(f"/api/uploads/{record['id']}", headers=headers)
        assert resp.status_code == 400

    def test_too_many_files_is_400(self, client, db, editor, storage):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        files = [(f"f{i}.pdf", b"%PDF", "application/pdf") for i in range(11)]
        resp = _upload(client, headers, record["id"], *files)
        assert resp.status_code == 400
        assert _files_on_disk(storage) == []

    def test_type_guessed_when_client_sends_octet_stream(self, client, editor):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        resp = _upload(client, headers, record["id"], ("scan.jpg", b"\xff\xd8\xff", "application/octet-stream"))
        assert resp.status_code == 201
        assert resp.json()[0]["mime_type"] == "image/jpeg"

    def test_store_failure_purges_written_files(self, client, db, editor, storage, monkeypatch):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        monkeypatch.setattr(Session, "commit", failing_commit(SQLAlchemyError("database is locked")))

        resp = _upload(client, headers, record["id"], PDF, PNG)
        monkeypatch.undo()

        assert resp.status_code == 500
        assert resp.json() == {"error": "Upload failed"}
        assert db.query(Attachment).count() == 0
        assert _files_on_disk(storage) == []


class TestDownloadAndDelete:

    def test_download_returns_bytes_with_original_name(self, client, editor, reader):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        attachment = _upload(client, headers, record["id"], PDF).json()[0]

        resp = client.get(f"/api/uploads/{attachment['id']}/download", headers=auth_headers(reader))
        assert resp.status_code == 200
        assert resp.content == PDF[1]
        assert resp.headers["content-type"].startswith("application/pdf")
        assert "plan.pdf" in resp.headers["content-disposition"]

    def test_download_missing_attachment_is_404(self, client, reader):
        assert client.get("/api/uploads/5/download", headers=auth_headers(reader)).status_code == 404

    def test_download_with_file_gone_is_404(self, client, db, editor, storage):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        attachment = _upload(client, headers, record["id"], PDF).json()[0]
        row = db.query(Attachment).filter(Attachment.id == attachment["id"]).one()
        storage.delete(row.stored_name)

        resp = client.get(f"/api/uploads/{attachment['id']}/download", headers=headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": "File not found"}

    def test_delete_removes_file_and_row(self, client, db, editor, storage):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        attachment = _upload(client, headers, record["id"], PDF).json()[0]

        resp = client.delete(f"/api/uploads/{attachment['id']}", headers=headers)
        assert resp.status_code == 200
        assert db.query(Attachment).count() == 0
        assert _files_on_disk(storage) == []
        detail = client.get(f"/api/records/{record['id']}", headers=headers).json()
        assert detail["attachments"] == []

    def test_delete_tolerates_missing_file(self, client, db, editor, storage):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        attachment = _upload(client, headers, record["id"], PDF).json()[0]
        row = db.query(Attachment).filter(Attachment.id == attachment["id"]).one()
        storage.delete(row.stored_name)

        resp = client.delete(f"/api/uploads/{attachment['id']}", headers=headers)
        assert resp.status_code == 200
        db.expire_all()
        assert db.query(Attachment).count() == 0

    def test_delete_missing_attachment_is_404(self, client, editor):
        assert client.delete("/api/uploads/42", headers=auth_headers(editor)).status_code == 404


class TestRecordDeleteCascade:

    def test_delete_record_removes_children_and_files(self, client, db, editor, storage):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        other = create_test_record(client, headers, reference="KEEP.1")
        _upload(client, headers, record["id"], PDF, PNG)
        _upload(client, headers, other["id"], PDF)
        client.post(f"/api/records/{record['id']}/purchases", json={"designation": "Vis"}, headers=headers)
        kept_file = db.query(Attachment).filter(Attachment.record_id == other["id"]).one().stored_name

        resp = client.delete(f"/api/records/{record['id']}", headers=headers)
        assert resp.status_code == 200

        assert client.get(f"/api/records/{record['id']}", headers=headers).status_code == 404
        assert db.query(ChangeRecord).filter(ChangeRecord.id == record["id"]).count() == 0
        assert db.query(Attachment).filter(Attachment.record_id == record["id"]).count() == 0
        assert db.query(PurchaseEntry).filter(PurchaseEntry.record_id == record["id"]).count() == 0
        assert _files_on_disk(storage) == [kept_file]

    def test_delete_record_with_file_already_gone(self, client, db, editor, storage):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        _upload(client, headers, record["id"], PDF)
        storage.delete(db.query(Attachment).one().stored_name)

        assert client.delete(f"/api/records/{record['id']}", headers=headers).status_code == 200
        assert db.query(Attachment).count() == 0

    def test_delete_missing_record_is_404(self, client, editor):
        assert client.delete("/api/records/31", headers=auth_headers(editor)).status_code == 404

    def test_file_removal_failure_keeps_record(self, client, db, editor, storage, monkeypatch):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        _upload(client, headers, record["id"], PDF, PNG)
        real_delete = storage.delete
        calls = []

        def _delete_then_fail(stored_name):
            calls.append(stored_name)
            if len(calls) > 1:
                raise PermissionError(f"cannot remove {stored_name}")
            return real_delete(stored_name)

        monkeypatch.setattr(storage, "delete", _delete_then_fail)
        resp = client.delete(f"/api/records/{record['id']}", headers=headers)

        assert resp.status_code == 500
        assert resp.json() == {"error": "Record deletion failed"}
        assert db.query(ChangeRecord).filter(ChangeRecord.id == record["id"]).count() == 1
        assert db.query(Attachment).filter(Attachment.record_id == record["id"]).count() == 2
        assert len(_files_on_disk(storage)) == 1

    def test_store_failure_keeps_record_and_children(self, client, db, editor, storage, monkeypatch):
        headers = auth_headers(editor)
        record = create_test_record(client, headers)
        _upload(client, headers, record["id"], PDF)
        client.post(f"/api/records/{record['id']}/purchases", json={"designation": "Vis"}, headers=headers)
        monkeypatch.setattr(Session, "commit", failing_commit(SQLAlchemyError("disk I/O error")))

        resp = client.delete(f"/api/records/{record['id']}", headers=headers)
        monkeypatch.undo()

        assert resp.status_code == 500
        assert resp.json() == {"error": "Record deletion failed"}
        assert db.query(ChangeRecord).filter(ChangeRecord.id == record["id"]).count() == 1
        assert db.query(Attachment).filter(Attachment.record_id == record["id"]).count() == 1
        assert db.query(PurchaseEntry).filter(PurchaseEntry.record_id == record["id"]).count() == 1
        assert _files_on_disk(storage) == []
        assert client.delete(f"/api/records/{record['id']}", headers=headers).status_code == 200
