from helpers import count_all, course_payload


def test_create_and_fetch_round_trip(client):
    body = course_payload(hasTests=False, tests=None, textBlocks=[{"name": "intro", "text": "hello"}])
    r = client.post('/courses', json=body)
    assert r.status_code == 201
    created = r.json()
    assert created['id'] > 0

    r2 = client.get('/courses', params={'id': created['id']})
    assert r2.status_code == 200
    course = r2.json()
    assert course['hasTests'] is False
    assert course['tests'] == []
    assert len(course['textBlocks']) == 1
    block = course['textBlocks'][0]
    assert block['name'] == 'intro'
    assert block['text'] == 'hello'
    assert block['courseId'] == created['id']


def test_create_with_tests_persists_one_right_answer_each(client, engine):
    r = client.post('/courses', json=course_payload())
    assert r.status_code == 201
    course = client.get('/courses', params={'id': r.json()['id']}).json()
    assert course['readingTime'] == '10 min'
    assert len(course['tests']) == 2
    for test in course['tests']:
        assert test['courseId'] == course['id']
        assert sum(1 for a in test['answers'] if a['right']) == 1
        assert all(a['testId'] == test['id'] for a in test['answers'])
    assert count_all(engine) == {'courses': 1, 'text_blocks': 2, 'tests': 2, 'answers': 3}


def test_create_rejects_two_right_answers_without_writing(client, engine):
    body = course_payload(tests=[
        {"question": "ok", "answers": [{"text": "a", "right": True}]},
        {"question": "bad", "answers": [{"text": "a", "right": True}, {"text": "b", "right": True}]},
    ])
    r = client.post('/courses', json=body)
    assert r.status_code == 400
    err = r.json()
    assert err['code'] == 'VALIDATION_ERROR'
    assert err['details']['issues'] == [
        {'loc': ['tests', 1, 'answers'], 'msg': 'At most one answer should be marked as right'}
    ]
    assert count_all(engine) == {'courses': 0, 'text_blocks': 0, 'tests': 0, 'answers': 0}


def test_create_rejects_test_without_right_answer(client, engine):
    body = course_payload(tests=[{"question": "q", "answers": [{"text": "a", "right": False}]}])
    r = client.post('/courses', json=body)
    assert r.status_code == 400
    assert r.json()['details']['issues'][0]['msg'] == 'At least one answer should be marked as right'
    assert count_all(engine)['courses'] == 0


def test_create_rejects_tests_when_has_tests_false(client, engine):
    r = client.post('/courses', json=course_payload(hasTests=False))
    assert r.status_code == 400
    assert r.json()['details']['issues'][0]['loc'] == ['tests']
    assert count_all(engine)['courses'] == 0


def test_create_requires_tests_when_has_tests_true(client):
    r = client.post('/courses', json=course_payload(tests=[]))
    assert r.status_code == 400
    assert r.json()['details']['issues'] == [
        {'loc': ['tests'], 'msg': 'Tests should be provided if hasTests is true'}
    ]


def test_create_shape_errors_are_400(client, engine):
    r = client.post('/courses', json=course_payload(textBlocks=[]))
    assert r.status_code == 400
    assert r.json()['code'] == 'VALIDATION_ERROR'
    r2 = client.post('/courses', json={'theme': 'x'})
    assert r2.status_code == 400
    locs = [issue['loc'][-1] for issue in r2.json()['details']['issues']]
    assert 'readingTime' in locs and 'hasTests' in locs and 'textBlocks' in locs
    r3 = client.post('/courses', json=course_payload(theme=''))
    assert r3.status_code == 400
    assert count_all(engine)['courses'] == 0


def test_get_missing_course_returns_null(client):
    r = client.get('/courses', params={'id': 999})
    assert r.status_code == 200
    assert r.json() is None


def test_invalid_course_id_rejected(client):
    for bad in ('abc', '-1', '1.5', ''):
        assert client.get('/courses', params={'id': bad}).status_code == 400
        r = client.delete('/courses', params={'id': bad})
        assert r.status_code == 400
        assert r.json()['code'] == 'INVALID_INPUT'
    assert client.delete('/courses').status_code == 400


def test_list_filters(client):
    client.post('/courses', json=course_payload(theme='Intro to Python', readingTime='5 min'))
    client.post('/courses', json=course_payload(theme='Advanced SQL', readingTime='1 hour', hasTests=False, tests=None))
    client.post('/courses', json=course_payload(theme='python internals', readingTime='15 min', hasTests=False))

    all_courses = client.get('/courses').json()
    # the third payload was rejected (tests with hasTests=false)
    assert [c['theme'] for c in all_courses] == ['Intro to Python', 'Advanced SQL']

    client.post('/courses', json=course_payload(theme='python internals', readingTime='15 min',
                                                hasTests=False, tests=None))
    themes = [c['theme'] for c in client.get('/courses', params={'theme': 'PYTHON'}).json()]
    assert themes == ['Intro to Python', 'python internals']

    by_time = client.get('/courses', params={'readingTime': 'min'}).json()
    assert len(by_time) == 2
    with_tests = client.get('/courses', params={'hasTests': 'true'}).json()
    assert [c['theme'] for c in with_tests] == ['Intro to Python']
    assert len(with_tests[0]['tests']) == 2
    without_tests = client.get('/courses', params={'hasTests': 'false'}).json()
    assert len(without_tests) == 2
    combined = client.get('/courses', params={'theme': 'python', 'hasTests': 'false'}).json()
    assert [c['theme'] for c in combined] == ['python internals']


def test_list_filter_treats_wildcards_literally(client):
    client.post('/courses', json=course_payload(theme='100% Python', hasTests=False, tests=None))
    client.post('/courses', json=course_payload(theme='1000 Python tips', hasTests=False, tests=None))
    themes = [c['theme'] for c in client.get('/courses', params={'theme': '0%'}).json()]
    assert themes == ['100% Python']


def test_list_filters_match_non_ascii_text(client):
    client.post('/courses', json=course_payload(theme='Über Python', readingTime='10 Минут', hasTests=False, tests=None))
    client.post('/courses', json=course_payload(theme='Basics', readingTime='1 hour', hasTests=False, tests=None))
    for needle in ('Über', 'über', 'ÜBER PY'):
        themes = [c['theme'] for c in client.get('/courses', params={'theme': needle}).json()]
        assert themes == ['Über Python'], needle
    for needle in ('Минут', 'минут', 'МИНУТ'):
        rows = client.get('/courses', params={'readingTime': needle}).json()
        assert [c['readingTime'] for c in rows] == ['10 Минут'], needle


def test_children_come_back_in_insertion_order(client):
    blocks = [{'name': f'block {i}', 'text': str(i)} for i in range(5)]
    tests = [
        {'question': f'q{i}', 'answers': [{'text': f'a{i}-{j}', 'right': j == 0} for j in range(3)]}
        for i in range(3)
    ]
    created = client.post('/courses', json=course_payload(textBlocks=blocks, tests=tests)).json()
    course = client.get('/courses', params={'id': created['id']}).json()
    assert [b['name'] for b in course['textBlocks']] == [b['name'] for b in blocks]
    assert [t['question'] for t in course['tests']] == ['q0', 'q1', 'q2']
    for i, test in enumerate(course['tests']):
        assert [a['text'] for a in test['answers']] == [f'a{i}-0', f'a{i}-1', f'a{i}-2']
        assert [a['id'] for a in test['answers']] == sorted(a['id'] for a in test['answers'])


def test_delete_cascades_and_is_idempotent(client, engine):
    keep = client.post('/courses', json=course_payload(theme='keep')).json()
    gone = client.post('/courses', json=course_payload(theme='gone')).json()
    before = count_all(engine)

    r1 = client.delete('/courses', params={'id': gone['id']})
    assert r1.status_code == 200
    assert r1.json() == {'status': 'ok', 'message': 'Course removed'}
    r2 = client.delete('/courses', params={'id': gone['id']})
    assert r2.status_code == 200

    assert client.get('/courses', params={'id': gone['id']}).json() is None
    after = count_all(engine)
    assert after == {
        'courses': before['courses'] - 1,
        'text_blocks': before['text_blocks'] - 2,
        'tests': before['tests'] - 2,
        'answers': before['answers'] - 3,
    }
    assert client.get('/courses', params={'id': keep['id']}).json()['theme'] == 'keep'


def test_delete_unknown_course_succeeds(client):
    r = client.delete('/courses', params={'id': 12345})
    assert r.status_code == 200


def test_api_prefix_serves_same_routes(client):
    created = client.post('/api/courses', json=course_payload(hasTests=False, tests=None)).json()
    assert client.get('/courses', params={'id': created['id']}).json()['id'] == created['id']
    assert client.delete('/api/courses', params={'id': created['id']}).status_code == 200
    assert client.get('/api/courses').json() == []


def test_request_id_header_exists(client):
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json() == {'status': 'ok'}
    assert 'X-Request-ID' in r.headers
    r2 = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r2.headers['X-Request-ID'] == 'abc123'
