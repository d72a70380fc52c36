from datetime import date, time

from backend.models.therapy_session import TherapySession

MONDAY = date(2025, 3, 10)


def _booking_payload(therapist_id: int, patient_id: int, **overrides) -> dict:
    payload = {
        'therapistId': therapist_id,
        'patientId': patient_id,
        'selectedDate': '2025-03-10',
        'startTime': '09:00',
        'endTime': '09:45',
    }
    payload.update(overrides)
    return payload


def test_book_creates_pending_session(client, therapist, patient, auth_headers) -> None:
    response = client.post(
        '/sessions/book',
        json=_booking_payload(therapist.id, patient.id, issueDescription='Anxiety'),
        headers=auth_headers(patient),
    )

    assert response.status_code == 201
    body = response.json()
    assert body['therapistId'] == therapist.id
    assert body['patientId'] == patient.id
    assert body['scheduledDate'] == '2025-03-10'
    assert body['startTime'] == '09:00'
    assert body['endTime'] == '09:45'
    assert body['status'] == 'pending'
    assert body['issueDescription'] == 'Anxiety'


def test_duplicate_booking_returns_conflict(client, therapist, patient, other_patient, auth_headers) -> None:
    first = client.post('/sessions/book', json=_booking_payload(therapist.id, patient.id), headers=auth_headers(patient))
    second = client.post(
        '/sessions/book',
        json=_booking_payload(therapist.id, other_patient.id),
        headers=auth_headers(other_patient),
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json() == {'error': 'Slot already booked'}


def test_booked_slot_disappears_from_available_slots(
    client, therapist, patient, add_window, auth_headers,
) -> None:
    add_window(therapist.id, 'Monday', time(9, 0), time(11, 0))
    client.post('/sessions/book', json=_booking_payload(therapist.id, patient.id), headers=auth_headers(patient))

    response = client.post('/available-slots', json={'therapistId': therapist.id, 'selectedDate': '2025-03-10'})

    assert response.json() == [{'start': '10:00', 'end': '10:45'}]


def test_book_rejects_missing_fields(client, therapist, patient, auth_headers) -> None:
    payload = _booking_payload(therapist.id, patient.id)
    del payload['startTime']

    response = client.post('/sessions/book', json=payload, headers=auth_headers(patient))

    assert response.status_code == 400
    assert response.json() == {'error': 'Missing required fields'}


def test_book_rejects_inverted_times(client, therapist, patient, auth_headers) -> None:
    response = client.post(
        '/sessions/book',
        json=_booking_payload(therapist.id, patient.id, startTime='10:00', endTime='09:00'),
        headers=auth_headers(patient),
    )

    assert response.status_code == 400
    assert response.json() == {'error': 'End time must be after start time'}


def test_patient_cannot_book_for_someone_else(client, therapist, patient, other_patient, auth_headers) -> None:
    response = client.post(
        '/sessions/book',
        json=_booking_payload(therapist.id, other_patient.id),
        headers=auth_headers(patient),
    )

    assert response.status_code == 403


def test_therapist_cannot_book(client, therapist, patient, auth_headers) -> None:
    response = client.post(
        '/sessions/book',
        json=_booking_payload(therapist.id, patient.id),
        headers=auth_headers(therapist),
    )

    assert response.status_code == 403


def test_accept_then_complete_flow(client, therapist, patient, add_session, auth_headers) -> None:
    session = add_session(therapist.id, patient.id, MONDAY, time(9, 0), time(9, 45))
    headers = auth_headers(therapist)

    accepted = client.post('/sessions/accept', json={'sessionId': session.id}, headers=headers)
    completed = client.patch(f'/sessions/{session.id}/complete', headers=headers)

    assert accepted.status_code == 200
    assert accepted.json()['success'] is True
    assert accepted.json()['session']['status'] == 'accepted'
    assert accepted.json()['session']['meetingRoomId'].startswith(f'therapy-{session.id}-')
    assert completed.status_code == 200
    assert completed.json()['status'] == 'completed'
    assert completed.json()['completedAt'] is not None


def test_decline_accepted_session_conflicts(client, therapist, patient, add_session, auth_headers) -> None:
    session = add_session(therapist.id, patient.id, MONDAY, time(9, 0), time(9, 45), status='accepted')

    response = client.post('/sessions/decline', json={'sessionId': session.id}, headers=auth_headers(therapist))

    assert response.status_code == 409
    assert response.json() == {'error': 'Cannot move session from accepted to declined.'}


def test_decline_pending_session(client, therapist, patient, add_session, auth_headers) -> None:
    session = add_session(therapist.id, patient.id, MONDAY, time(9, 0), time(9, 45))

    response = client.post('/sessions/decline', json={'sessionId': session.id}, headers=auth_headers(therapist))

    assert response.status_code == 200
    assert response.json()['session']['status'] == 'declined'


def test_accept_requires_session_id(client, therapist, auth_headers) -> None:
    response = client.post('/sessions/accept', json={}, headers=auth_headers(therapist))

    assert response.status_code == 400
    assert response.json() == {'error': 'Missing sessionId'}


def test_accept_unknown_session_is_not_found(client, therapist, auth_headers) -> None:
    response = client.post('/sessions/accept', json={'sessionId': 999}, headers=auth_headers(therapist))

    assert response.status_code == 404
    assert response.json() == {'error': 'Session not found'}


def test_patient_can_cancel_and_slot_reopens(client, therapist, patient, add_window, auth_headers) -> None:
    add_window(therapist.id, 'Monday', time(9, 0), time(10, 0))
    booked = client.post('/sessions/book', json=_booking_payload(therapist.id, patient.id), headers=auth_headers(patient))

    cancelled = client.put('/sessions/cancel', json={'sessionId': booked.json()['id']}, headers=auth_headers(patient))
    slots = client.post('/available-slots', json={'therapistId': therapist.id, 'selectedDate': '2025-03-10'})

    assert cancelled.status_code == 200
    assert cancelled.json()['session']['status'] == 'cancelled'
    assert slots.json() == [{'start': '09:00', 'end': '09:45'}]


def test_cancel_by_stranger_is_forbidden(client, therapist, patient, other_patient, add_session, auth_headers) -> None:
    session = add_session(therapist.id, patient.id, MONDAY, time(9, 0), time(9, 45))

    response = client.put('/sessions/cancel', json={'sessionId': session.id}, headers=auth_headers(other_patient))

    assert response.status_code == 403


def test_get_session_detail_for_participant(client, therapist, patient, add_session, auth_headers) -> None:
    session = add_session(therapist.id, patient.id, MONDAY, time(9, 0), time(9, 45))

    response = client.get(f'/sessions/{session.id}', headers=auth_headers(patient))

    assert response.status_code == 200
    assert response.json()['id'] == session.id
    assert response.json()['sessionType'] == 'video_call'


def test_auto_complete_endpoint_completes_elapsed_sessions(db, client, therapist, patient, add_session) -> None:
    session = add_session(therapist.id, patient.id, date(2020, 1, 6), time(9, 0), time(9, 45), status='accepted')

    first = client.post('/sessions/auto-complete')
    second = client.post('/sessions/auto-complete')

    assert first.json() == {'success': True, 'completed': 1}
    assert second.json() == {'success': True, 'completed': 0}
    db.expire_all()
    assert db.get(TherapySession, session.id).status == 'completed'
