"""Tests for CDN URL and label helpers."""

from levelboard.utils.formatting import avatar_url, guild_icon_url, server_fallback_name


def test_avatar_url_requires_hash():
    assert avatar_url("42", "abc") == "https://cdn.discordapp.com/avatars/42/abc.png"
    assert avatar_url("42", None) is None


def test_guild_icon_url_requires_hash():
    assert guild_icon_url("g1", "ic0n") == "https://cdn.discordapp.com/icons/g1/ic0n.png"
    assert guild_icon_url("g1", "") is None


def test_server_fallback_name_truncates_id():
    assert server_fallback_name("123456789012345678") == "Server 1234567890..."
