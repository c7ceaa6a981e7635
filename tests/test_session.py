"""Tests for the session façade contract and backend loading."""

from __future__ import annotations

import pytest

from exporttool.core.errors import ConfigError
from exporttool.core.session import LoginState, Session, load_session_factory


def test_login_states() -> None:
    """Test the protocol has exactly five states."""
    assert [state.value for state in LoginState] == [
        "logged_out",
        "awaiting_totp",
        "awaiting_hv",
        "awaiting_mailbox_password",
        "logged_in",
    ]


def test_load_factory() -> None:
    """Test a dotted path resolves to the callable."""
    factory = load_session_factory("collections:OrderedDict")
    assert callable(factory)


@pytest.mark.parametrize(
    ("spec", "message"),
    [
        (None, "No session backend configured"),
        ("", "No session backend configured"),
        ("no_colon", "expected 'package.module:callable'"),
        ("exporttool_missing_module:create", "Cannot import session backend"),
        ("collections:missing_attribute", "Cannot import session backend"),
        ("exporttool.core.config:APP_NAME", "is not callable"),
    ],
)
def test_load_factory_errors(spec: str | None, message: str) -> None:
    """Test unusable backends raise ConfigError."""
    with pytest.raises(ConfigError, match=message):
        load_session_factory(spec)


def test_optional_methods_have_defaults(fake_session) -> None:
    """Test the base class defaults for the optional façade methods."""
    assert Session.get_latest_version(fake_session) is None
    assert Session.close(fake_session) is None
