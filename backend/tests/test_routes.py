"""
Memory Locks API — HTTP Route Tests
====================================

What:  End-to-end checks through the ASGI app: envelopes, status codes,
       authentication and the main user-facing scenarios.
How:   Rows are seeded through a short-lived session that commits before
       the request, so every request sees them through its own session.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from factories import make_lock, make_media, make_user
from memorylocks.models import Lock, MediaObject, User
from memorylocks.services.id_codec import encode_id
from memorylocks.services.notification_service import milestone_notifier


# ══════════════════════════════════════════════════════════════════════════
# Health & Authentication
# ══════════════════════════════════════════════════════════════════════════

class TestHealthAndAuth:

    @pytest.mark.asyncio
    async def test_health_is_public(self, test_client):
        test_client.headers.pop("Worker-API-Key")
        for path in ("/", "/health", "/public/health"):
            response = await test_client.get(path)
            assert response.status_code == 200
            body = response.json()
            assert body["Status"] == "healthy"
            assert body["Database"] == "connected"

    @pytest.mark.asyncio
    async def test_missing_api_key(self, test_client):
        test_client.headers.pop("Worker-API-Key")
        response = await test_client.get("/locks/1")
        assert response.status_code == 401
        body = response.json()
        assert body["Success"] is False
        assert body["Message"] == "Worker API key is required"
        assert body["Code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_wrong_api_key(self, test_client):
        response = await test_client.get("/locks/1", headers={"Worker-API-Key": "nope"})
        assert response.status_code == 401
        assert response.json()["Message"] == "Invalid Worker API key"

    @pytest.mark.asyncio
    async def test_album_is_public(self, test_client):
        test_client.headers.pop("Worker-API-Key")
        response = await test_client.get("/album/123")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_status_requires_key(self, test_client):
        response = await test_client.get("/api/status")
        assert response.status_code == 200
        data = response.json()["Data"]
        assert data["ScanMilestones"] == [10, 25, 50, 100, 250, 500, 1000]
        assert data["RateLimits"]["batch"]["MaxRequests"] == 5

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/locks/999", headers={"X-Request-ID": "trace-1"})
        assert response.status_code == 404
        assert response.headers["X-Request-ID"] == "trace-1"
        assert response.json()["RequestId"] == "trace-1"


# ══════════════════════════════════════════════════════════════════════════
# Locks
# ══════════════════════════════════════════════════════════════════════════

class TestLockRoutes:

    @pytest.mark.asyncio
    async def test_get_lock_dto_shape(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s, lock_name="Paris")
            await s.commit()

        response = await test_client.get(f"/locks/{lock.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["Success"] is True
        assert body["Data"]["LockId"] == lock.id
        assert body["Data"]["LockName"] == "Paris"
        assert body["Data"]["HashedLockId"] == encode_id(lock.id)
        assert body["Data"]["SealDate"] is None

    @pytest.mark.asyncio
    async def test_non_integer_path_id_is_400(self, test_client):
        response = await test_client.get("/locks/user/abc")
        assert response.status_code == 400
        assert response.json()["Code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_list_user_locks(self, test_client, session_factory):
        async with session_factory() as s:
            user = await make_user(s, email="romeo@example.com")
            await make_lock(s, user_id=user.id)
            await make_lock(s, user_id=user.id)
            await s.commit()

        response = await test_client.get(f"/locks/user/{user.id}")

        assert response.status_code == 200
        assert len(response.json()["Data"]) == 2

    @pytest.mark.asyncio
    async def test_connect(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            user = await make_user(s, email="romeo@example.com")
            await s.commit()

        response = await test_client.post(
            "/locks/connect", json={"userId": user.id, "hashedLockId": encode_id(lock.id)}
        )

        assert response.status_code == 200
        assert response.json()["Data"]["UserId"] == user.id

    @pytest.mark.asyncio
    async def test_connect_requires_both_ids(self, test_client):
        response = await test_client.post("/locks/connect", json={"userId": 1})
        assert response.status_code == 400
        assert response.json()["Message"] == "Both userId and hashedLockId are required"

    @pytest.mark.asyncio
    async def test_connect_invalid_hash(self, test_client, session_factory):
        async with session_factory() as s:
            user = await make_user(s)
            await s.commit()

        response = await test_client.post(
            "/locks/connect", json={"userId": user.id, "hashedLockId": "%%%"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_rename(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            await s.commit()

        response = await test_client.patch(
            "/locks/name", json={"lockId": lock.id, "newName": "  Rome  "}
        )
        assert response.status_code == 200
        assert response.json()["Data"]["LockName"] == "Rome"

        blank = await test_client.patch("/locks/name", json={"lockId": lock.id, "newName": " "})
        assert blank.status_code == 400

    @pytest.mark.asyncio
    async def test_seal_toggle_and_upgrade(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            await s.commit()

        sealed = await test_client.patch("/locks/seal", json={"lockId": lock.id})
        assert sealed.json()["Message"] == "Lock sealed successfully"
        assert sealed.json()["Data"]["SealDate"] is not None

        unsealed = await test_client.patch("/locks/seal", json={"lockId": lock.id})
        assert unsealed.json()["Message"] == "Lock unsealed successfully"
        assert unsealed.json()["Data"]["SealDate"] is None

        upgraded = await test_client.patch("/locks/upgrade-storage", json={"lockId": lock.id})
        assert upgraded.json()["Data"]["UpgradedStorage"] is True

    @pytest.mark.asyncio
    async def test_seal_unknown_lock(self, test_client):
        response = await test_client.patch("/locks/seal", json={"lockId": 999})
        assert response.status_code == 404
        assert response.json()["Code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_album_title(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            await s.commit()

        response = await test_client.patch(
            f"/locks/{lock.id}/album-title", json={"albumTitle": "Paris 2025"}
        )
        assert response.json()["Data"]["AlbumTitle"] == "Paris 2025"

        empty = await test_client.patch(f"/locks/{lock.id}/album-title", json={"albumTitle": ""})
        assert empty.status_code == 400

    @pytest.mark.asyncio
    async def test_partial_update_explicit_null(self, test_client, session_factory):
        async with session_factory() as s:
            user = await make_user(s)
            lock = await make_lock(s, lock_name="Paris", user_id=user.id)
            await s.commit()

        response = await test_client.patch(f"/locks/{lock.id}", json={"userId": None})

        assert response.status_code == 200
        data = response.json()["Data"]
        assert data["UserId"] is None
        assert data["LockName"] == "Paris"

    @pytest.mark.asyncio
    async def test_partial_update_null_on_required_column(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            await s.commit()

        response = await test_client.patch(f"/locks/{lock.id}", json={"lockName": None})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_bulk_create(self, test_client, session_factory):
        async with session_factory() as s:
            await make_lock(s, id=100)
            await s.commit()

        response = await test_client.post("/locks/create/5")

        assert response.status_code == 200
        body = response.json()
        assert body["Message"] == "Successfully created 5 locks (101 to 105)"
        assert body["Data"] == [101, 102, 103, 104, 105]

        async with session_factory() as s:
            names = (
                await s.execute(select(Lock.lock_name, Lock.album_title).where(Lock.id > 100))
            ).all()
        assert names == [("Memory Lock", "Romeo & Juliet")] * 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("total", [0, 10001])
    async def test_bulk_create_out_of_range(self, test_client, total):
        response = await test_client.post(f"/locks/create/{total}")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_scan_reaching_milestone_notifies(self, test_client, session_factory, monkeypatch):
        sent = []

        async def fake_send(event):
            sent.append(event)
            return True

        monkeypatch.setattr(milestone_notifier, "send", fake_send)
        async with session_factory() as s:
            user = await make_user(s)
            lock = await make_lock(s, scan_count=9, user_id=user.id, lock_name="Paris")
            await s.commit()

        response = await test_client.post(f"/locks/{lock.id}/scan")

        assert response.status_code == 200
        data = response.json()["Data"]
        assert data["Milestone"] == 10
        assert data["Lock"]["ScanCount"] == 10
        assert data["Lock"]["LastScanMilestone"] == 10
        assert len(sent) == 1
        assert (sent[0].lock_id, sent[0].user_id, sent[0].milestone) == (lock.id, user.id, 10)

    @pytest.mark.asyncio
    async def test_scan_without_milestone_or_owner(self, test_client, session_factory, monkeypatch):
        sent = []

        async def fake_send(event):
            sent.append(event)
            return True

        monkeypatch.setattr(milestone_notifier, "send", fake_send)
        async with session_factory() as s:
            plain = await make_lock(s, scan_count=3)
            unowned = await make_lock(s, scan_count=9)
            await s.commit()

        first = await test_client.post(f"/locks/{plain.id}/scan")
        second = await test_client.post(f"/locks/{unowned.id}/scan")

        assert first.json()["Data"]["Milestone"] is None
        assert second.json()["Data"]["Milestone"] == 10
        assert sent == []

    @pytest.mark.asyncio
    async def test_storage_upgrade_is_one_way(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            await s.commit()

        upgraded = await test_client.patch("/locks/upgrade-storage", json={"lockId": lock.id})
        assert upgraded.json()["Data"]["UpgradedStorage"] is True

        downgrade = await test_client.patch(f"/locks/{lock.id}", json={"upgradedStorage": False})
        assert downgrade.status_code == 400

        current = await test_client.get(f"/locks/{lock.id}")
        assert current.json()["Data"]["UpgradedStorage"] is True

    @pytest.mark.asyncio
    async def test_partial_update_unknown_owner_is_404(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            await s.commit()

        response = await test_client.patch(f"/locks/{lock.id}", json={"userId": 9999})

        assert response.status_code == 404
        assert response.json()["Code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_scan_not_notified_when_commit_fails(
        self, test_client, session_factory, monkeypatch
    ):
        sent = []

        async def fake_send(event):
            sent.append(event)
            return True

        monkeypatch.setattr(milestone_notifier, "send", fake_send)
        async with session_factory() as s:
            user = await make_user(s)
            lock = await make_lock(s, scan_count=9, user_id=user.id)
            await s.commit()

        async def failing_commit(self):
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)

        response = await test_client.post(f"/locks/{lock.id}/scan")

        assert response.status_code == 500
        assert response.json()["Code"] == "SERVER_ERROR"
        assert sent == []

        async with session_factory() as s:
            assert (await s.get(Lock, lock.id)).scan_count == 9


# ══════════════════════════════════════════════════════════════════════════
# Media Objects
# ══════════════════════════════════════════════════════════════════════════

class TestMediaRoutes:

    @pytest.mark.asyncio
    async def test_create_and_list(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            await s.commit()

        created = await test_client.post(
            "/media-objects",
            json={
                "lockId": lock.id,
                "cloudflareId": "cf-1",
                "url": "https://cdn/1",
                "isImage": False,
                "durationSeconds": 12,
            },
        )
        assert created.status_code == 201
        assert created.json()["Data"]["IsImage"] is False

        listed = await test_client.get(f"/media-objects/lock/{lock.id}")
        assert [m["CloudflareId"] for m in listed.json()["Data"]] == ["cf-1"]

    @pytest.mark.asyncio
    async def test_create_requires_lock_id(self, test_client):
        response = await test_client.post("/media-objects", json={"url": "https://cdn/1"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_empty_update_is_400(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            media = await make_media(s, lock.id)
            await s.commit()

        response = await test_client.patch(f"/media-objects/{media.id}", json={})

        assert response.status_code == 400
        assert response.json()["Message"] == "No fields provided for update"

    @pytest.mark.asyncio
    async def test_main_picture_exclusive(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            first = await make_media(s, lock.id, is_main_picture=True)
            second = await make_media(s, lock.id)
            await s.commit()

        response = await test_client.patch(
            f"/media-objects/{second.id}", json={"isMainImage": True}
        )
        assert response.status_code == 200

        listed = (await test_client.get(f"/media-objects/lock/{lock.id}")).json()["Data"]
        flags = {m["Id"]: m["IsMainImage"] for m in listed}
        assert flags == {first.id: False, second.id: True}

    @pytest.mark.asyncio
    async def test_delete(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            media = await make_media(s, lock.id)
            await s.commit()

        assert (await test_client.delete(f"/media-objects/{media.id}")).status_code == 200
        assert (await test_client.delete(f"/media-objects/{media.id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_batch_reorder(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            a = await make_media(s, lock.id, display_order=0)
            b = await make_media(s, lock.id, display_order=1)
            await s.commit()

        response = await test_client.post(
            "/media-objects/batch-reorder",
            json={"items": [
                {"id": a.id, "displayOrder": 1},
                {"id": b.id, "displayOrder": 0},
                {"id": 9999, "displayOrder": 2},
            ]},
        )

        assert response.status_code == 200
        assert response.json()["Data"] == {"Updated": 2, "Failed": 1, "FailedIds": [9999]}

    @pytest.mark.asyncio
    async def test_batch_reorder_item_validation(self, test_client):
        response = await test_client.post(
            "/media-objects/batch-reorder", json={"items": [{"id": 1}]}
        )
        assert response.status_code == 400
        assert response.json()["Message"] == "Each item requires id and displayOrder"


# ══════════════════════════════════════════════════════════════════════════
# Albums
# ══════════════════════════════════════════════════════════════════════════

class TestAlbumRoutes:

    @pytest.mark.asyncio
    async def test_hashed_and_raw_ids_match(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s, album_title="Paris")
            await make_media(s, lock.id, is_main_picture=True)
            await make_media(s, lock.id, is_image=False, duration_seconds=9, display_order=1)
            await s.commit()

        by_hash = await test_client.get(f"/album/{encode_id(lock.id)}")
        by_raw = await test_client.get(f"/album/{lock.id}")
        plural = await test_client.get(f"/albums/{encode_id(lock.id)}")

        assert by_hash.status_code == 200
        assert by_hash.json()["Data"] == by_raw.json()["Data"] == plural.json()["Data"]

        album = by_hash.json()["Data"]
        assert album["AlbumTitle"] == "Paris"
        assert album["HashedLockId"] == encode_id(lock.id)
        assert [m["Type"] for m in album["Media"]] == [0, 1]
        assert album["Media"][0]["IsMainImage"] is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identifier", ["999", "zzzzzzzz", "not-valid!"])
    async def test_unknown_or_invalid_is_404(self, test_client, identifier):
        response = await test_client.get(f"/album/{identifier}")
        assert response.status_code == 404
        assert response.json()["Success"] is False

    @pytest.mark.asyncio
    async def test_viewing_album_does_not_count_scan(self, test_client, session_factory):
        async with session_factory() as s:
            lock = await make_lock(s)
            await s.commit()

        await test_client.get(f"/album/{lock.id}")

        async with session_factory() as s:
            assert (await s.get(Lock, lock.id)).scan_count == 0


# ══════════════════════════════════════════════════════════════════════════
# Users
# ══════════════════════════════════════════════════════════════════════════

class TestUserRoutes:

    @pytest.mark.asyncio
    async def test_create_then_conflict(self, test_client):
        payload = {"name": "Juliet", "email": "juliet@example.com"}

        created = await test_client.post("/users/create", json=payload)
        assert created.status_code == 201
        assert created.json()["Data"] > 0

        duplicate = await test_client.post("/users/create", json=payload)
        assert duplicate.status_code == 409
        assert duplicate.json()["Code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_exist_check_and_find(self, test_client, session_factory):
        async with session_factory() as s:
            user = await make_user(s, phone_number="+15550100")
            await s.commit()

        exists = await test_client.post(
            "/users/exist-check", json={"isEmail": False, "identifier": "+15550100"}
        )
        assert exists.json()["Data"] is True

        found = await test_client.post(
            "/users/find-by-identifier", json={"isEmail": False, "identifier": "+15550100"}
        )
        assert found.json()["Data"] == user.id

    @pytest.mark.asyncio
    async def test_find_missing_is_404_with_zero(self, test_client):
        response = await test_client.post(
            "/users/find-by-identifier", json={"isEmail": True, "identifier": "x@example.com"}
        )
        assert response.status_code == 404
        assert response.json() == {"Success": True, "Message": "User not found", "Data": 0}

        by_provider = await test_client.post(
            "/users/find-by-provider", json={"authProvider": "google", "providerId": "nope"}
        )
        assert by_provider.status_code == 404
        assert by_provider.json()["Data"] == 0

    @pytest.mark.asyncio
    async def test_link_provider_and_find(self, test_client, session_factory):
        async with session_factory() as s:
            user = await make_user(s, email="romeo@example.com")
            await s.commit()

        linked = await test_client.post(
            "/users/link-provider",
            json={"userId": user.id, "authProvider": "google", "providerId": "g-1"},
        )
        assert linked.json()["Data"] is True

        found = await test_client.post(
            "/users/find-by-provider", json={"authProvider": "google", "providerId": "g-1"}
        )
        assert found.json()["Data"] == user.id

    @pytest.mark.asyncio
    async def test_update_auth_metadata(self, test_client, session_factory):
        async with session_factory() as s:
            user = await make_user(s, email="romeo@example.com")
            await s.commit()

        response = await test_client.post(
            "/users/update-auth-metadata",
            json={"userId": user.id, "emailVerified": True, "lastLoginAt": "2025-02-14T12:00:00Z"},
        )
        assert response.status_code == 200

        async with session_factory() as s:
            refreshed = await s.get(User, user.id)
            assert refreshed.email_verified is True
            assert refreshed.last_login_at is not None

        invalid = await test_client.post("/users/update-auth-metadata", json={"userId": 0})
        assert invalid.status_code == 400

    @pytest.mark.asyncio
    async def test_patch_user(self, test_client, session_factory):
        async with session_factory() as s:
            user = await make_user(s, email="romeo@example.com", name="Romeo")
            await s.commit()

        response = await test_client.patch(f"/users/{user.id}", json={"phoneVerified": True})

        data = response.json()["Data"]
        assert data["PhoneVerified"] is True
        assert data["Name"] == "Romeo"

    @pytest.mark.asyncio
    async def test_delete_user_with_media(self, test_client, session_factory):
        async with session_factory() as s:
            await make_user(s, id=42, email="owner@example.com")
            await make_lock(s, id=7, user_id=42)
            for _ in range(3):
                await make_media(s, 7)
            await s.commit()

        response = await test_client.delete("/users/42", params={"deleteMedia": "true"})
        assert response.status_code == 200

        async with session_factory() as s:
            media = await s.execute(select(MediaObject.id).where(MediaObject.lock_id == 7))
            assert media.all() == []
            assert (await s.get(Lock, 7)).user_id is None
            assert await s.get(User, 42) is None
