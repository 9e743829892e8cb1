import pytest

from face_verification.app import create_app
from face_verification.attendance import AttendanceRecorder
from face_verification.models import StoredPerson
from face_verification.recognition.embedding import embedding_from_box

DETECTION = {'id': 1, 'x': 120, 'y': 80, 'width': 60, 'height': 80, 'confidence': 0.9}


@pytest.fixture
def roster():
    return [
        StoredPerson(
            id='s1', name='Alice', role='student',
            cached_embedding=embedding_from_box(120.0, 80.0, 60.0, 80.0),
        ),
        StoredPerson(id='s2', name='Bob'),
    ]


@pytest.fixture
def recorder():
    return AttendanceRecorder()


@pytest.fixture
def client(config, verifier, roster, recorder):
    app = create_app(config, verifier, roster, recorder)
    app.config['TESTING'] = True
    return app.test_client()


def test_health(client):
    data = client.get('/health').get_json()

    assert data['status'] == 'ok'
    assert data['ready'] is True
    assert data['rosterSize'] == 2
    assert data['threshold'] == 0.6
    assert data['uptime'].endswith('s')


def test_verify_without_recording(client, recorder):
    response = client.post('/verify', json={'detections': [DETECTION]})

    assert response.status_code == 200
    data = response.get_json()
    verified = data['detections'][0]['verifiedPerson']
    assert verified['id'] == 's1'
    assert verified['name'] == 'Alice'
    assert 0.6 < verified['confidence'] <= 1.0
    assert data['records'] == []
    assert recorder.records == []


def test_verify_records_attendance_once(client):
    payload = {'detections': [DETECTION], 'record': True, 'cameraId': 'cam-7', 'cameraName': 'Lab'}

    first = client.post('/verify', json=payload).get_json()
    second = client.post('/verify', json=payload).get_json()

    assert len(first['records']) == 1
    assert first['records'][0]['cameraId'] == 'cam-7'
    assert second['records'] == []

    today = client.get('/attendance/today').get_json()
    assert [r['personId'] for r in today] == ['s1']
    assert len(client.get('/attendance/s1').get_json()) == 1


@pytest.mark.parametrize('payload', [
    None,
    {},
    {'detections': 'nope'},
    {'detections': [{'id': 1, 'x': 1}]},
    {'detections': [{'x': 'a', 'y': 1, 'width': 1, 'height': 1}]},
    {'detections': [{'x': 'nan', 'y': 1, 'width': 1, 'height': 1}]},
])
def test_verify_rejects_bad_payload(client, payload):
    if payload is None:
        response = client.post('/verify', data='not json', content_type='application/json')
    else:
        response = client.post('/verify', json=payload)
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_report_and_clear(client):
    client.post('/verify', json={'detections': [DETECTION], 'record': True})

    report = client.get('/attendance/report').get_json()
    assert report['attendance'] == {'s1': 'present', 's2': 'absent'}

    past = client.get('/attendance/report?date=2020-01-01').get_json()
    assert past['attendance'] == {'s1': 'absent', 's2': 'absent'}

    assert client.get('/attendance/report?date=yesterday').status_code == 400

    assert client.delete('/attendance').get_json() == {'status': 'cleared'}
    assert client.get('/attendance/today').get_json() == []


@pytest.mark.parametrize('bad', ['nan', 'inf'])
def test_non_finite_geometry_is_rejected_and_not_recorded(client, recorder, bad):
    detection = dict(DETECTION, x=bad)

    response = client.post('/verify', json={'detections': [detection], 'record': True})

    assert response.status_code == 400
    assert recorder.records == []
