"""
CSRF 令牌守卫测试
"""
import pytest

from flawless_csrf.config.settings import CSRFConfig
from flawless_csrf.security.guard import CSRFGuard
from flawless_csrf.security.token import TokenRecord
from flawless_csrf.session.session import Session


class TestEnsureToken:
    """令牌签发测试"""

    def test_issues_token_for_new_session(self, guard, session):
        assert not guard.exists(session)
        record = guard.ensure_token(session)

        assert session.has("_token")
        assert isinstance(session.get("_token"), TokenRecord)
        assert session.get("_token").value
        assert record is session.get("_token")
        assert guard.exists(session)

    def test_keeps_token_within_ttl(self, guard, session, clock):
        first = guard.ensure_token(session).value
        clock.advance(3599)
        assert guard.ensure_token(session).value == first

    def test_reissues_after_expiry(self, session, clock):
        guard = CSRFGuard(CSRFConfig(expire=1))
        first = guard.ensure_token(session).value
        clock.advance(2)

        assert not guard.exists(session)
        second = guard.ensure_token(session).value
        assert second != first
        assert guard.exists(session)

    def test_replaces_malformed_record(self, guard, session):
        session.set("_token", "not-a-record")
        assert not guard.exists(session)
        record = guard.ensure_token(session)
        assert isinstance(record, TokenRecord)

    def test_custom_session_key(self, session):
        guard = CSRFGuard(CSRFConfig(session_key="csrf"))
        guard.ensure_token(session)
        assert session.has("csrf")
        assert not session.has("_token")

    def test_token_length(self, session):
        short = CSRFGuard(CSRFConfig(token_length=8)).regenerate(session).value
        long = CSRFGuard(CSRFConfig(token_length=64)).regenerate(session).value
        assert len(short) < len(long)

    def test_unwritable_session_propagates(self, guard, session):
        session.destroy()
        with pytest.raises(RuntimeError):
            guard.ensure_token(session)


class TestVerifyToken:
    """令牌校验测试"""

    def test_valid_token(self, guard, session):
        token = guard.ensure_token(session).value
        assert guard.verify_token(session, token) is True

    def test_invalid_token(self, guard, session):
        guard.ensure_token(session)
        assert guard.verify_token(session, "invalid_token") is False

    @pytest.mark.parametrize("candidate", ["", None, 42, b"\x00"])
    def test_malformed_candidates(self, guard, session, candidate):
        guard.ensure_token(session)
        assert guard.verify_token(session, candidate) is False

    def test_missing_token(self, guard, session):
        assert guard.verify_token(session, "anything") is False

    def test_expired_token(self, session, clock):
        guard = CSRFGuard(CSRFConfig(expire=1))
        token = guard.ensure_token(session).value
        clock.advance(2)
        assert guard.exists(session) is False
        assert guard.verify_token(session, token) is False

    def test_expire_uses_record_ttl(self, session, clock):
        # 记录按签发时的有效期判断
        token = CSRFGuard(CSRFConfig(expire=1)).ensure_token(session).value
        clock.advance(2)
        assert CSRFGuard(CSRFConfig(expire=3600)).verify_token(session, token) is False

    def test_remove_makes_token_single_use(self, guard, session):
        token = guard.ensure_token(session).value
        assert guard.verify_token(session, token, remove=True) is True
        assert guard.verify_token(session, token) is False
        assert not session.has("_token")

    def test_failed_verification_keeps_token(self, guard, session):
        token = guard.ensure_token(session).value
        assert guard.verify_token(session, "wrong", remove=True) is False
        assert guard.verify_token(session, token) is True

    def test_exists_does_not_mutate(self, guard, session):
        guard.exists(session)
        assert not session.modified


class TestRegenerateAndInvalidate:
    """令牌重签与作废测试"""

    def test_regenerate_overwrites(self, guard, session):
        old = guard.ensure_token(session).value
        new = guard.regenerate(session).value
        assert new != old
        assert guard.verify_token(session, old) is False
        assert guard.verify_token(session, new) is True

    def test_invalidate(self, guard, session):
        guard.ensure_token(session)
        guard.invalidate(session)
        assert guard.get_token(session) is None
        # 没有令牌时作废是空操作
        guard.invalidate(session)

    def test_sessions_are_independent(self, guard):
        a, b = Session("a" * 43), Session("b" * 43)
        token_a = guard.ensure_token(a).value
        guard.ensure_token(b)
        assert guard.verify_token(b, token_a) is False


class TestBoundToken:
    """request.csrf 对象测试"""

    def test_bound_methods(self, guard, session):
        token = guard.bind(session)
        assert token.exists() is False
        value = token.generate_token()
        assert token.exists() is True
        assert token.get_token() == value
        assert token.verify_token(value) is True
        token.invalidate()
        assert token.exists() is False

    def test_token_field_is_escaped_hidden_input(self, session):
        guard = CSRFGuard(CSRFConfig(field_name='x"y'))
        field = guard.bind(session).get_token_field()
        value = guard.get_token(session)

        assert field.startswith('<input type="hidden"')
        assert 'name="x&quot;y"' in field
        assert f'value="{value}"' in field
