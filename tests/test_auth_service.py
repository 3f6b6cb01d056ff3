from types import SimpleNamespace

import pytest

from tableforge.core.exceptions import ApplicationError
from tableforge.modules.auth.service import AuthService, clear_principal_cache


class FakeAuth:
    def __init__(self, user=None, error=None):
        self.user = user
        self.error = error
        self.calls = 0

    def get_user(self, jwt):
        self.calls += 1
        if self.error:
            raise self.error
        return SimpleNamespace(user=self.user)


@pytest.fixture(autouse=True)
def fresh_cache():
    clear_principal_cache()
    yield
    clear_principal_cache()


def test_principal_from_token_is_cached():
    auth = FakeAuth(SimpleNamespace(id="u1", email="u1@example.com", app_metadata={"role": "MANAGER"}))
    service = AuthService(SimpleNamespace(auth=auth))

    first = service.get_principal("token")
    second = service.get_principal("token")

    assert (first.sub, first.role, first.email) == ("u1", "MANAGER", "u1@example.com")
    assert second == first
    assert auth.calls == 1


def test_missing_role_is_none():
    auth = FakeAuth(SimpleNamespace(id="u1", email=None, app_metadata=None))

    assert AuthService(SimpleNamespace(auth=auth)).get_principal("token").role is None


def test_rejected_token_is_unauthorized():
    service = AuthService(SimpleNamespace(auth=FakeAuth(error=RuntimeError("jwt expired"))))

    with pytest.raises(ApplicationError) as raised:
        service.get_principal("token")

    assert (raised.value.code, raised.value.cause) == (401, "AUTHENTICATION_REQUIRED")


def test_unknown_user_is_unauthorized():
    service = AuthService(SimpleNamespace(auth=FakeAuth(user=None)))

    with pytest.raises(ApplicationError):
        service.get_principal("token")
