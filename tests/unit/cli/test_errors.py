"""Tests for mentor rich error messages."""

from __future__ import annotations

import pytest

from mentor.cli.errors import (
    err_chat_not_found,
    err_embedding_failed,
    err_empty_content,
    err_no_api_key,
    err_no_db,
    err_unknown_user,
)


@pytest.mark.parametrize(
    "msg",
    [
        err_no_api_key("openai"),
        err_no_db(),
        err_unknown_user("ghost"),
        err_chat_not_found("c1"),
        err_empty_content(),
        err_embedding_failed("timeout"),
    ],
)
def test_message_has_cause_and_action(msg):
    lines = msg.splitlines()
    assert len(lines) >= 2
    assert lines[1].startswith("  ")


def test_no_api_key_known_provider():
    assert "ANTHROPIC_API_KEY" in err_no_api_key("anthropic")


def test_no_api_key_unknown_provider():
    assert "ACME_API_KEY" in err_no_api_key("acme")


def test_no_db_mentions_path():
    assert "/tmp/x.db" in err_no_db("/tmp/x.db")
