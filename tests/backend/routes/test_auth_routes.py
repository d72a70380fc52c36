import jwt

from backend.auth.jwt_handler import create_access_token, decode_access_token, token_for_user
from backend.core import config


def test_access_token_carries_subject_and_role() -> None:
    payload = decode_access_token(create_access_token(subject=7, role='therapist'))

    assert payload['sub'] == '7'
    assert payload['role'] == 'therapist'


def test_me_returns_current_user(client, therapist, auth_headers) -> None:
    response = client.get('/auth/me', headers=auth_headers(therapist))

    assert response.status_code == 200
    assert response.json() == {
        'id': therapist.id,
        'email': 'therapist@example.com',
        'fullName': 'Therapist',
        'role': 'therapist',
    }


def test_me_rejects_token_for_unknown_user(client) -> None:
    token = create_access_token(subject=12345, role='patient')

    response = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 401
    assert response.json() == {'error': 'User not found'}


def test_me_requires_bearer_token(client) -> None:
    response = client.get('/auth/me')

    assert response.status_code == 401
    assert response.json() == {'error': 'Unauthorized'}


def test_me_rejects_token_without_expiry(client, therapist) -> None:
    token = jwt.encode(
        {'sub': str(therapist.id), 'role': therapist.role},
        config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
    )

    response = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 401
    assert response.json() == {'error': 'Invalid token'}


def test_me_rejects_token_issued_for_previous_role(client, db, therapist) -> None:
    token = token_for_user(therapist)
    therapist.role = 'patient'
    db.commit()

    response = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 401
    assert response.json() == {'error': 'Token role no longer matches account'}
