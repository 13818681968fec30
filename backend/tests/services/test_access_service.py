import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from tests.fakes import ADMIN, MEMBER, OWNER, STRANGER
from wa_hub.core.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from wa_hub.core.security import create_access_token
from wa_hub.services.access_service import check_access, get_current_caller


@pytest.mark.parametrize("caller", [OWNER, ADMIN, MEMBER])
def test_members_pass(db, business, caller):
    assert check_access(db, caller, business.id).id == business.id


def test_gate_errors(db, business):
    with pytest.raises(PermissionDeniedError):
        check_access(db, STRANGER, business.id)
    with pytest.raises(NotFoundError):
        check_access(db, OWNER, "no-such-business")
    with pytest.raises(InvalidArgumentError):
        check_access(db, OWNER, "")


# ---------- Bearer JWT → caller_id ----------
@pytest.fixture
def client():
    app = FastAPI()

    @app.get("/whoami")
    def whoami(caller_id: str = Depends(get_current_caller)):
        return {"caller_id": caller_id}

    return TestClient(app)


def test_bearer_token_resolves_caller(client):
    token = create_access_token({"user_id": OWNER})
    resp = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json() == {"caller_id": OWNER}


@pytest.mark.parametrize("header", [None, "Bearer", "Bearer not-a-jwt", "Basic abc"])
def test_missing_or_bad_token_is_401(client, header):
    headers = {"Authorization": header} if header else {}
    assert client.get("/whoami", headers=headers).status_code == 401


def test_token_without_user_id_is_401(client):
    token = create_access_token({"sub": "someone"})
    assert client.get("/whoami", headers={"Authorization": f"Bearer {token}"}).status_code == 401
