from conftest import send_command, received_messages


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_status_without_connections(client):
    res = client.get('/api/status')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'ok', 'clients': 0}


def test_state_unknown_game(client):
    res = client.get('/api/games/999999/state')
    assert res.status_code == 404
    assert 'error' in res.get_json()


def test_questions_unknown_game(client):
    res = client.get('/api/games/999999/questions')
    assert res.status_code == 404


def test_state_and_history_follow_the_game(client, sio_client, fake_clients):
    send_command(sio_client, type='join', gamePin='4242')
    received_messages(sio_client)
    fake = fake_clients[0]
    fake.dispatch('quizStart', {'name': 'Trivia', 'questionCount': 2})
    fake.dispatch('questionStart', {
        'index': 0,
        'question': 'Two plus two?',
        'choices': [{'answer': '3'}, {'answer': '4'}],
        'timeLimit': 10000,
        'quiz': {'questionCount': 2},
    })
    fake.dispatch('questionEnd', {'questionIndex': 0, 'correctChoices': [False, True]})
    fake.dispatch('questionStart', {
        'index': 1,
        'question': 'Sky colour?',
        'choices': [{'answer': 'Blue'}, {'answer': 'Green'}],
        'timeLimit': 10000,
        'quiz': {'questionCount': 2},
    })

    state = client.get('/api/games/4242/state').get_json()
    assert state['gamePin'] == '4242'
    assert state['connected'] is True
    assert state['currentQuestion']['text'] == 'Sky colour?'
    assert state['previousQuestion'] == {'text': 'Two plus two?', 'correctAnswer': '4'}
    assert state['gameProgress'] == {'current': 2, 'total': 2, 'points': 0}

    history = client.get('/api/games/4242/questions').get_json()
    assert history['session']['gamePin'] == '4242'
    assert history['session']['questionCount'] == 2
    assert history['session']['currentQuestion'] == 1
    assert [q['questionIndex'] for q in history['questions']] == [0, 1]
    assert history['questions'][0]['revealed'] is True
    assert history['questions'][1]['revealed'] is False
