"""
Tests for POST /ssh/keys.
"""
from unittest.mock import patch

import pytest

from capibara.core.keys.registrar import AuthorizedKeysRegistrar

ED25519_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIL7p14I6jkXQeRrB74dcGSG9evn+ItVpmxnhWI77CUc/"
RSA_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7vbqajDhA"
ECDSA_KEY = "ecdsa-sha2-nistp256 AAAAE2VjZHNhLXNoYTItbmlzdHAyNTYAAAAIbmlzdHAyNTYAAABBBEmKSENjQEezOmxkZMy7opKgwFB9nkt5YRrYMjNuG5N87uRgg6CLrbo5wAdT"


def _post_key(client, body, headers=None):
    headers = dict(headers or {})
    headers.setdefault("Content-Type", "text/plain")
    return client.post("/ssh/keys", content=body, headers=headers)


class TestRegistration:
    def test_created(self, client, auth_headers, keys_file):
        response = _post_key(client, f"{ED25519_KEY} alice", auth_headers)
        assert response.status_code == 201
        assert response.headers["Location"] == "/ssh/keys"
        assert response.json()["status"] == "created"
        assert keys_file.read_text(encoding="utf-8") == f"{ED25519_KEY} alice\n"

    def test_trailing_newline_in_body(self, client, auth_headers, keys_file):
        response = _post_key(client, f"{RSA_KEY} bob\r\n", auth_headers)
        assert response.status_code == 201
        assert keys_file.read_text(encoding="utf-8") == f"{RSA_KEY} bob\n"

    def test_body_with_bom(self, client, auth_headers, keys_file):
        response = _post_key(client, b"\xef\xbb\xbf" + f"{ECDSA_KEY} carol".encode("utf-8"), auth_headers)
        assert response.status_code == 201
        assert keys_file.read_bytes() == f"{ECDSA_KEY} carol\n".encode("utf-8")

    def test_exact_duplicate(self, client, auth_headers):
        assert _post_key(client, f"{ED25519_KEY} alice", auth_headers).status_code == 201
        response = _post_key(client, f"{ED25519_KEY} alice", auth_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["status"] == "duplicate_exact"

    def test_content_duplicate(self, client, auth_headers):
        assert _post_key(client, f"{ED25519_KEY} alice", auth_headers).status_code == 201
        response = _post_key(client, f"{ED25519_KEY} bob", auth_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["status"] == "duplicate_content"

    def test_duplicate_messages_differ(self, client, auth_headers):
        _post_key(client, f"{ED25519_KEY} alice", auth_headers)
        exact = _post_key(client, f"{ED25519_KEY} alice", auth_headers).json()["detail"]["message"]
        content = _post_key(client, f"{ED25519_KEY} bob", auth_headers).json()["detail"]["message"]
        assert exact != content


class TestValidation:
    @pytest.mark.parametrize("body, reason", [
        ("", "empty"),
        ("   \n", "empty"),
        ("ssh-rsa AAAA...\nssh-rsa BBBB...", "multiline"),
        ("dsa-key AAAA... x", "unrecognized-type"),
        ("ssh-ed25519", "malformed"),
    ])
    def test_invalid(self, client, auth_headers, keys_file, body, reason):
        response = _post_key(client, body, auth_headers)
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["reason"] == reason
        assert detail["message"]
        assert not keys_file.exists()

    def test_non_utf8_body(self, client, auth_headers, keys_file):
        response = _post_key(client, b"ssh-rsa \xff\xfe", auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "malformed"
        assert not keys_file.exists()


class TestAccessGate:
    def test_missing_credentials(self, client, keys_file):
        response = _post_key(client, f"{ED25519_KEY} alice")
        assert response.status_code == 401
        assert not keys_file.exists()

    def test_invalid_token(self, client, keys_file):
        response = _post_key(client, f"{ED25519_KEY} alice", {"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert not keys_file.exists()

    def test_api_key(self, client, data_root, monkeypatch):
        from capibara.core.config import reload_settings
        monkeypatch.setenv("API_KEY", "static-key")
        reload_settings()
        assert _post_key(client, f"{ED25519_KEY} alice", {"X-API-Key": "static-key"}).status_code == 201
        assert _post_key(client, f"{RSA_KEY} bob", {"X-API-Key": "wrong"}).status_code == 401

    def test_api_key_not_configured(self, client):
        assert _post_key(client, f"{ED25519_KEY} alice", {"X-API-Key": "anything"}).status_code == 401

    def test_auth_disabled(self, client, data_root, monkeypatch):
        from capibara.core.config import reload_settings
        monkeypatch.setenv("AUTH_ENABLED", "false")
        reload_settings()
        assert _post_key(client, f"{ED25519_KEY} alice").status_code == 201


class TestStorageFailure:
    def test_io_error_is_500(self, client, auth_headers, data_root):
        blocker = data_root / "blocker"
        blocker.write_text("not a directory")
        broken = AuthorizedKeysRegistrar(blocker / "authorized_keys")

        with patch("capibara.api.routes.ssh_keys.get_registrar", return_value=broken):
            response = _post_key(client, f"{ED25519_KEY} alice", auth_headers)

        assert response.status_code == 500
        body = response.json()
        assert body["detail"] == "An internal error occurred"
        assert "error_id" in body
