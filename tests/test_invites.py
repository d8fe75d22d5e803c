from contextlib import contextmanager
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from tailwatch import invites
from tailwatch.invites import InviteError, check_invite, issue_invite, redeem_invite
from tailwatch.models import InviteCode, User, get_session


@pytest.fixture
def session(db_session_factory):
    with get_session(db_session_factory) as session:
        yield session


def test_issue_invite_creates_code(session) -> None:
    invite = issue_invite(session, '  alice ')

    assert invite.created is True
    assert invite.username == 'alice'
    assert len(invite.code) >= 20
    assert session.scalar(select(InviteCode).where(InviteCode.username == 'alice')).code == invite.code


def test_issue_invite_returns_existing_unused_code(session) -> None:
    first = issue_invite(session, 'alice')
    second = issue_invite(session, 'alice')

    assert second.created is False
    assert second.code == first.code


def test_issue_invite_refuses_existing_user_and_used_code(session) -> None:
    invite = issue_invite(session, 'alice')
    redeem_invite(session, 'alice', invite.code)

    with pytest.raises(InviteError, match='already exists'):
        issue_invite(session, 'alice')

    session.add(InviteCode(code='spent', username='bob'))
    session.flush()
    spent = session.scalar(select(InviteCode).where(InviteCode.code == 'spent'))
    spent.used_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
    with pytest.raises(InviteError, match='already used'):
        issue_invite(session, 'bob')

    with pytest.raises(InviteError, match='Username required'):
        issue_invite(session, '   ')


def test_check_invite(session) -> None:
    invite = issue_invite(session, 'alice')

    assert check_invite(session, 'alice', invite.code) is True
    assert check_invite(session, 'alice', 'wrong') is False
    assert check_invite(session, 'bob', invite.code) is False


def test_redeem_invite_is_single_use(session) -> None:
    invite = issue_invite(session, 'alice')

    user = redeem_invite(session, 'alice', invite.code)

    assert user.username == 'alice'
    assert len(user.id) == 36
    assert check_invite(session, 'alice', invite.code) is False
    with pytest.raises(InviteError, match='already used'):
        redeem_invite(session, 'alice', invite.code)
    with pytest.raises(InviteError, match='Invalid invite code'):
        redeem_invite(session, 'alice', 'wrong')


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------

def _issue(db_session_factory, username):
    with get_session(db_session_factory) as session:
        return issue_invite(session, username).code


def test_invite_check_endpoint(client, db_session_factory) -> None:
    code = _issue(db_session_factory, 'alice')

    response = client.post('/api/auth/invite/check', json={'username': 'alice', 'code': code})
    assert response.status_code == 200
    assert response.get_json() == {'valid': True}

    response = client.post('/api/auth/invite/check', json={'username': 'alice', 'code': 'nope'})
    assert response.status_code == 403
    assert response.get_json()['valid'] is False

    response = client.post('/api/auth/invite/check', json={'username': 'alice'})
    assert response.status_code == 400


def test_invite_redeem_endpoint(client, db_session_factory, signed_in) -> None:
    code = _issue(db_session_factory, 'alice')

    response = client.post('/api/auth/invite/redeem', json={'code': code}, headers=signed_in)
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['username'] == 'alice'

    with get_session(db_session_factory) as session:
        assert session.scalar(select(User).where(User.username == 'alice')).id == body['user_id']

    response = client.post('/api/auth/invite/redeem', json={'code': code}, headers=signed_in)
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Invite code already used'}


def test_invite_redeem_requires_session(client) -> None:
    response = client.post('/api/auth/invite/redeem', json={'code': 'x'})
    assert response.status_code == 401


# -----------------------------------------------------------------------------
# CLI
# -----------------------------------------------------------------------------

@pytest.fixture
def cli_database(monkeypatch, db_session_factory):
    @contextmanager
    def scoped_session():
        with get_session(db_session_factory) as session:
            yield session

    monkeypatch.setattr(invites, 'init_db', lambda: None)
    monkeypatch.setattr(invites, 'get_session', scoped_session)


def test_cli_prints_new_and_existing_codes(cli_database, capsys) -> None:
    assert invites.main(['alice']) == 0
    out = capsys.readouterr().out
    assert 'Invite code generated successfully!' in out
    code = out.split('Invite Code: ')[1].split()[0]

    assert invites.main(['alice']) == 0
    out = capsys.readouterr().out
    assert "An unused invite code already exists for 'alice'" in out
    assert f'Invite Code: {code}' in out


def test_cli_reports_errors(cli_database, capsys) -> None:
    assert invites.main(['  ']) == 1
    assert 'Username required' in capsys.readouterr().err
