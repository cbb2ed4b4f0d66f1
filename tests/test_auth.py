from datetime import timedelta

import pytest
from fastapi import HTTPException

from core.actor import Role
from models.user import User
from services.auth_service import AuthService


def make_user(db, email, role, password="Senha@123", **links) -> User:
    user = User(
        username=email.split("@")[0],
        email=email,
        hashed_password=AuthService.get_password_hash(password),
        role=role,
        **links,
    )
    db.add(user)
    db.commit()
    return user


def test_password_hash_round_trip():
    hashed = AuthService.get_password_hash("Senha@123")
    assert hashed != "Senha@123"
    assert AuthService.verify_password("Senha@123", hashed)
    assert not AuthService.verify_password("senha@123", hashed)
    assert not AuthService.verify_password("Senha@123", "not-a-bcrypt-hash")


def test_token_round_trip_and_expiry():
    token = AuthService.create_access_token({"sub": "ops@nexor.test", "role": "armazem"})
    assert AuthService.verify_token(token)["sub"] == "ops@nexor.test"

    expired = AuthService.create_access_token({"sub": "ops@nexor.test"}, expires_delta=timedelta(seconds=-1))
    with pytest.raises(HTTPException) as exc:
        AuthService.verify_token(expired)
    assert exc.value.status_code == 401


def test_build_actor_for_warehouse_user(db_session, seed):
    user = make_user(db_session, "ops@nexor.test", "ARMAZEM", armazem_id=seed.armazem.id)
    actor = AuthService.build_actor(user, db_session)

    assert actor.role is Role.ARMAZEM
    assert actor.linked_entity_id == seed.armazem.id
    assert actor.is_warehouse_operator_for(seed.armazem.id)


def test_build_actor_resolves_represented_clients(db_session, seed):
    user = make_user(db_session, "rep@nexor.test", "representante", representante_id=seed.representante.id)
    actor = AuthService.build_actor(user, db_session)

    assert actor.role is Role.REPRESENTANTE
    assert actor.represented_client_ids == frozenset({seed.cliente.id})
    assert actor.can_view(seed.cliente.id, seed.armazem.id)
    assert not actor.can_view(seed.outro_cliente.id, seed.outro_armazem.id)


def test_build_actor_rejects_unknown_role(db_session):
    user = make_user(db_session, "old@nexor.test", "supervisor")
    with pytest.raises(HTTPException) as exc:
        AuthService.build_actor(user, db_session)
    assert exc.value.status_code == 403


def test_login_and_me(client, db_session, seed):
    make_user(db_session, "cliente@nexor.test", "cliente", cliente_id=seed.cliente.id)

    response = client.post("/auth/login", data={"username": "cliente@nexor.test", "password": "Senha@123"})
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "cliente"
    assert body["token_type"] == "bearer"
    assert "access_token" in response.cookies

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "cliente@nexor.test"
    assert me.json()["cliente_id"] == str(seed.cliente.id)

    # The login cookie is enough on its own
    assert client.get("/auth/me").status_code == 200


def test_login_rejects_bad_password(client, db_session):
    make_user(db_session, "ops@nexor.test", "armazem")
    response = client.post("/auth/login", data={"username": "ops@nexor.test", "password": "errada"})
    assert response.status_code == 401


def test_login_rejects_inactive_user(client, db_session):
    user = make_user(db_session, "ops@nexor.test", "armazem")
    user.is_active = False
    db_session.commit()

    response = client.post("/auth/login", data={"username": "ops@nexor.test", "password": "Senha@123"})
    assert response.status_code == 403


def test_me_requires_authentication(client):
    response = client.get("/auth/me")
    assert response.status_code == 401


def test_login_rejects_unknown_role(client, db_session):
    make_user(db_session, "old@nexor.test", "supervisor")
    response = client.post("/auth/login", data={"username": "old@nexor.test", "password": "Senha@123"})
    assert response.status_code == 403
    assert "access_token" not in response.cookies
