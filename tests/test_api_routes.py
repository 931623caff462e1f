"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Drives the voice HTTP surface through the FastAPI TestClient, against the
shared SQLite engine and a fake credential issuer.

These tests verify:
- Auth guards (401 / 403) on every mutating endpoint
- Error taxonomy → status code + ``{"error", "code"}`` body
- Response shapes the client renders (camelCase fields)
"""

from __future__ import annotations

import pytest


def _create_channel(client, auth, community_id, user_id, **body):
    payload = {"name": "Lobby", **body}
    return client.post(
        f"/api/communities/{community_id}/voice-channels", json=payload, headers=auth(user_id),
    )


# ===========================================================================
# Health + media config
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestLiveKitConfig:
    def test_reports_configured_without_secrets(self, client):
        resp = client.get("/api/livekit/config")
        assert resp.status_code == 200
        body = resp.json()
        assert body == {"configured": True, "url": "wss://voice.test.example"}


# ===========================================================================
# Auth guards
# ===========================================================================
class TestAuthGuards:
    AUTHED_POSTS = [
        "/api/communities/1/voice-channels",
        "/api/voice-channels/1/join",
        "/api/voice-channels/1/leave",
        "/api/posts/1/voice-channel",
        "/api/post-voice-channels/1/join",
        "/api/post-voice-channels/1/leave",
        "/api/posts",
    ]

    @pytest.mark.parametrize("endpoint", AUTHED_POSTS)
    def test_no_token_returns_401(self, client, endpoint):
        resp = client.post(endpoint, json={})
        assert resp.status_code == 401

    @pytest.mark.parametrize("endpoint", AUTHED_POSTS)
    def test_bad_token_returns_401(self, client, endpoint):
        resp = client.post(endpoint, json={}, headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_delete_channel_requires_token(self, client):
        assert client.delete("/api/voice-channels/1").status_code == 401


# ===========================================================================
# Community voice channels
# ===========================================================================
class TestCommunityVoice:
    def test_create_and_list(self, client, auth, world):
        resp = _create_channel(client, auth, world.community_id, world.alice, maxParticipants=6)
        assert resp.status_code == 201
        created = resp.json()
        assert created["name"] == "Lobby"
        assert created["maxParticipants"] == 6
        assert created["participantCount"] == 0
        assert created["livekitRoom"].startswith("nexus-community-")

        listed = client.get(f"/api/communities/{world.community_id}/voice-channels").json()
        assert [c["id"] for c in listed] == [created["id"]]

    def test_default_capacity(self, client, auth, world):
        resp = _create_channel(client, auth, world.community_id, world.alice)
        assert resp.json()["maxParticipants"] == 10

    def test_capacity_above_ceiling_rejected(self, client, auth, world):
        resp = _create_channel(client, auth, world.community_id, world.alice, maxParticipants=51)
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_capacity"

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    def test_blank_name_rejected(self, client, auth, world, name):
        resp = _create_channel(client, auth, world.community_id, world.alice, name=name)
        assert resp.status_code == 422
        assert client.get(f"/api/communities/{world.community_id}/voice-channels").json() == []

    def test_name_is_trimmed(self, client, auth, world):
        resp = _create_channel(client, auth, world.community_id, world.alice, name="  Lobby  ")
        assert resp.status_code == 201
        assert resp.json()["name"] == "Lobby"

    def test_non_member_cannot_create(self, client, auth, world):
        resp = _create_channel(client, auth, world.community_id, world.dave)
        assert resp.status_code == 403
        assert resp.json()["code"] == "forbidden"

    def test_unknown_community(self, client, auth, world):
        resp = _create_channel(client, auth, 999, world.alice)
        assert resp.status_code == 404

    def test_join_full_and_leave(self, client, auth, world):
        ch = _create_channel(client, auth, world.community_id, world.alice, maxParticipants=2).json()
        join = f"/api/voice-channels/{ch['id']}/join"

        first = client.post(join, headers=auth(world.alice))
        assert first.status_code == 200
        assert first.json()["room"] == ch["livekitRoom"]
        assert first.json()["url"] == "wss://voice.test.example"
        assert client.post(join, headers=auth(world.bob)).status_code == 200

        full = client.post(join, headers=auth(world.carol))
        assert full.status_code == 400
        assert full.json() == {"error": "Voice channel is full", "code": "channel_full"}

        # seated member may rejoin a full room
        assert client.post(join, headers=auth(world.bob)).status_code == 200

        listed = client.get(f"/api/communities/{world.community_id}/voice-channels").json()
        assert listed[0]["participantCount"] == 2

        leave = client.post(f"/api/voice-channels/{ch['id']}/leave", headers=auth(world.bob))
        assert leave.status_code == 204
        assert client.post(join, headers=auth(world.carol)).status_code == 200

    def test_leave_when_not_member(self, client, auth, world):
        ch = _create_channel(client, auth, world.community_id, world.alice).json()
        resp = client.post(f"/api/voice-channels/{ch['id']}/leave", headers=auth(world.dave))
        assert resp.status_code == 204

    def test_join_missing_channel(self, client, auth, world):
        resp = client.post("/api/voice-channels/999/join", headers=auth(world.alice))
        assert resp.status_code == 404
        assert resp.json()["code"] == "channel_not_found"

    def test_join_unconfigured_media(self, client, auth, world, issuer):
        ch = _create_channel(client, auth, world.community_id, world.alice).json()
        issuer.configured = False
        resp = client.post(f"/api/voice-channels/{ch['id']}/join", headers=auth(world.alice))
        assert resp.status_code == 400
        assert resp.json()["code"] == "media_unconfigured"

        listed = client.get(f"/api/communities/{world.community_id}/voice-channels").json()
        assert listed[0]["participantCount"] == 0

    def test_join_issuance_failure(self, client, auth, world, issuer):
        ch = _create_channel(client, auth, world.community_id, world.alice).json()
        issuer.fail = True
        resp = client.post(f"/api/voice-channels/{ch['id']}/join", headers=auth(world.alice))
        assert resp.status_code == 502
        assert resp.json()["code"] == "credential_issuance_failed"

    def test_delete_channel(self, client, auth, world):
        ch = _create_channel(client, auth, world.community_id, world.alice).json()
        client.post(f"/api/voice-channels/{ch['id']}/join", headers=auth(world.bob))

        resp = client.delete(f"/api/voice-channels/{ch['id']}", headers=auth(world.bob))
        assert resp.status_code == 204
        assert client.get(f"/api/communities/{world.community_id}/voice-channels").json() == []

        rejoin = client.post(f"/api/voice-channels/{ch['id']}/join", headers=auth(world.bob))
        assert rejoin.status_code == 404
        assert rejoin.json()["code"] == "channel_not_found"

    def test_delete_channel_non_member(self, client, auth, world):
        ch = _create_channel(client, auth, world.community_id, world.alice).json()
        resp = client.delete(f"/api/voice-channels/{ch['id']}", headers=auth(world.dave))
        assert resp.status_code == 403

    def test_delete_missing_channel(self, client, auth, world):
        resp = client.delete("/api/voice-channels/4040", headers=auth(world.alice))
        assert resp.status_code == 404


# ===========================================================================
# Post voice channels
# ===========================================================================
class TestPostVoice:
    def test_absent_channel_is_null(self, client, world):
        resp = client.get(f"/api/posts/{world.post_id}/voice-channel")
        assert resp.status_code == 200
        assert resp.json() is None

    def test_author_creates_channel(self, client, auth, world):
        resp = client.post(
            f"/api/posts/{world.post_id}/voice-channel", json={"maxSlots": 3},
            headers=auth(world.alice),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["postId"] == world.post_id
        assert body["maxSlots"] == 3
        assert body["isActive"] is True
        assert body["participants"] == []

    def test_non_author_forbidden(self, client, auth, world):
        resp = client.post(
            f"/api/posts/{world.post_id}/voice-channel", json={}, headers=auth(world.bob),
        )
        assert resp.status_code == 403

    def test_second_channel_conflicts(self, client, auth, world):
        url = f"/api/posts/{world.post_id}/voice-channel"
        first = client.post(url, json={"maxSlots": 4}, headers=auth(world.alice))
        assert first.status_code == 201

        second = client.post(url, json={"maxSlots": 8}, headers=auth(world.alice))
        assert second.status_code == 409
        assert second.json()["code"] == "invariant_violation"
        assert client.get(url).json()["id"] == first.json()["id"]
        assert client.get(url).json()["maxSlots"] == 4

    def test_join_lists_participants_without_private_fields(self, client, auth, world):
        ch = client.post(
            f"/api/posts/{world.post_id}/voice-channel", json={}, headers=auth(world.alice),
        ).json()
        resp = client.post(f"/api/post-voice-channels/{ch['id']}/join", headers=auth(world.carol))
        assert resp.status_code == 200

        view = client.get(f"/api/posts/{world.post_id}/voice-channel")
        body = view.json()
        assert body["participantCount"] == 1
        assert body["participants"][0]["user"]["id"] == world.carol
        assert body["participants"][0]["user"]["username"] == "carol"
        assert "mail.test" not in view.text
        assert "argon2" not in view.text

    def test_post_channel_join_full(self, client, auth, world):
        ch = client.post(
            f"/api/posts/{world.post_id}/voice-channel", json={"maxSlots": 1},
            headers=auth(world.alice),
        ).json()
        join = f"/api/post-voice-channels/{ch['id']}/join"
        assert client.post(join, headers=auth(world.alice)).status_code == 200
        assert client.post(join, headers=auth(world.bob)).status_code == 400


# ===========================================================================
# Posts
# ===========================================================================
class TestPosts:
    def test_create_post_with_voice(self, client, auth, world):
        resp = client.post(
            "/api/posts",
            json={
                "communityId": world.community_id,
                "content": "ranked grind",
                "enableVoice": True,
                "maxSlots": 4,
            },
            headers=auth(world.bob),
        )
        assert resp.status_code == 201
        post = resp.json()
        assert post["voiceError"] is None
        assert post["voiceChannel"]["maxSlots"] == 4

        view = client.get(f"/api/posts/{post['id']}/voice-channel").json()
        assert view["maxSlots"] == 4
        assert view["participantCount"] == 0
        assert view["isActive"] is True

    def test_post_created_when_voice_fails(self, client, auth, world, monkeypatch):
        from nexus.services import channel_registry

        def explode(*args, **kwargs):
            raise RuntimeError("db unavailable")

        monkeypatch.setattr(channel_registry, "create_post_voice_channel", explode)
        resp = client.post(
            "/api/posts",
            json={"communityId": world.community_id, "content": "hi", "enableVoice": True},
            headers=auth(world.bob),
        )
        assert resp.status_code == 201
        post = resp.json()
        assert post["voiceChannel"] is None
        assert post["voiceError"] == "Failed to create voice channel"
        assert client.get(f"/api/posts/{post['id']}/voice-channel").json() is None

    def test_non_member_cannot_post(self, client, auth, world):
        resp = client.post(
            "/api/posts",
            json={"communityId": world.community_id, "content": "hi"},
            headers=auth(world.dave),
        )
        assert resp.status_code == 403

    def test_blank_content_rejected(self, client, auth, world):
        resp = client.post(
            "/api/posts",
            json={"communityId": world.community_id, "content": "   "},
            headers=auth(world.bob),
        )
        assert resp.status_code == 422

    def test_delete_post_closes_voice(self, client, auth, world):
        ch = client.post(
            f"/api/posts/{world.post_id}/voice-channel", json={}, headers=auth(world.alice),
        ).json()
        client.post(f"/api/post-voice-channels/{ch['id']}/join", headers=auth(world.bob))

        resp = client.delete(f"/api/posts/{world.post_id}", headers=auth(world.alice))
        assert resp.status_code == 204

        join = client.post(f"/api/post-voice-channels/{ch['id']}/join", headers=auth(world.bob))
        assert join.status_code == 404

    def test_delete_post_by_other_user(self, client, auth, world):
        resp = client.delete(f"/api/posts/{world.post_id}", headers=auth(world.bob))
        assert resp.status_code == 403
