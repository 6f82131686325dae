"""
Unit tests for authorized_keys line parsing.
"""
import pytest

from capibara.core.keys.parser import KeyType, first_token, identity_of, is_multiline


class TestIdentityOf:
    """Identity = first two tokens."""

    def test_drops_comment(self):
        assert identity_of("ssh-ed25519 AAAAC3Nz alice@laptop") == "ssh-ed25519 AAAAC3Nz"

    def test_without_comment(self):
        assert identity_of("ssh-rsa AAAAB3Nz") == "ssh-rsa AAAAB3Nz"

    def test_collapses_tabs_and_space_runs(self):
        assert identity_of("  ssh-rsa\t\t AAAAB3Nz   bob  ") == "ssh-rsa AAAAB3Nz"

    def test_comment_with_spaces_ignored(self):
        assert identity_of("ssh-rsa AAAA my work key") == identity_of("ssh-rsa AAAA other")

    @pytest.mark.parametrize("line", ["", "   ", "\t", "ssh-ed25519", "  ssh-ed25519  "])
    def test_none_for_blank_or_single_token(self, line):
        assert identity_of(line) is None

    def test_does_not_validate_material(self):
        # Structural only, not a base64 check
        assert identity_of("foo bar baz") == "foo bar"


class TestKeyType:
    @pytest.mark.parametrize("token", [
        "ssh-ed25519",
        "ssh-rsa",
        "ecdsa-sha2-nistp256",
        "ecdsa-sha2-nistp384",
        "ecdsa-sha2-nistp521",
    ])
    def test_allow_list(self, token):
        assert KeyType.is_recognized(token)

    @pytest.mark.parametrize("token", ["ssh-dss", "dsa-key", "SSH-RSA", "ssh-ed25519-cert-v01@openssh.com", "", None])
    def test_rejected(self, token):
        assert not KeyType.is_recognized(token)

    def test_allow_list_size(self):
        assert len(KeyType) == 5


class TestHelpers:
    def test_first_token(self):
        assert first_token("  ssh-rsa AAAA c") == "ssh-rsa"
        assert first_token("   ") is None

    @pytest.mark.parametrize("text", ["a\nb", "a\rb", "a\r\nb", "a\u2028b", "a\x85b", "trailing\n"])
    def test_multiline_detected(self, text):
        assert is_multiline(text)

    def test_single_line(self):
        assert not is_multiline("ssh-rsa AAAA comment\twith tab")
