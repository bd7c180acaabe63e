from quizrelay.services import storage
from quizrelay.services.relay import map_answers


def _session_with_questions(pin='5555', count=3):
    session = storage.create_game_session(pin, game_id=f'kahoot-{pin}')
    for index in range(count):
        storage.create_question(
            session.id,
            index,
            question_text=f'Question {index}',
            answers=map_answers([{'answer': 'A'}, {'answer': 'B'}, {'answer': 'C'}]),
        )
    return session


def test_reveal_touches_only_that_question(flask_app):
    session = _session_with_questions()
    revealed = storage.reveal_correct_answers(session.id, 1, [2])
    assert revealed is not None
    assert [a['isCorrect'] for a in revealed.answers] == [False, False, True]
    assert revealed.correct_answer['text'] == 'C'

    for index in (0, 2):
        other = storage.get_question_by_index(session.id, index)
        assert other.revealed is False
        assert other.correct_answer is None
        assert all(a['isCorrect'] is None for a in other.answers)


def test_reveal_is_write_once(flask_app):
    session = _session_with_questions()
    storage.reveal_correct_answers(session.id, 0, [0])
    assert storage.reveal_correct_answers(session.id, 0, [1]) is None
    question = storage.get_question_by_index(session.id, 0)
    assert [a['isCorrect'] for a in question.answers] == [True, False, False]


def test_reveal_unknown_question_is_noop(flask_app):
    session = _session_with_questions(count=1)
    assert storage.reveal_correct_answers(session.id, 7, [0]) is None


def test_reveal_with_no_correct_choice(flask_app):
    session = _session_with_questions(count=1)
    question = storage.reveal_correct_answers(session.id, 0, [])
    assert question.revealed is True
    assert question.correct_answer is None


def test_session_lookup_by_pin_skips_inactive(flask_app):
    old = storage.create_game_session('777', game_id='kahoot-777')
    storage.update_game_session(old.id, active=False)
    assert storage.get_game_session_by_pin('777') is None

    new = storage.create_game_session('777', game_id='kahoot-777')
    assert storage.get_game_session_by_pin('777').id == new.id
    assert new.question_count == 0
    assert new.current_question == 0
    assert new.created_at


def test_missing_records_return_none(flask_app):
    assert storage.get_game_session(404) is None
    assert storage.update_game_session(404, active=False) is None
    assert storage.update_question(404, points=1) is None
    assert storage.get_user(404) is None


def test_questions_are_ordered_by_index(flask_app):
    session = storage.create_game_session('8080')
    for index in (2, 0, 1):
        storage.create_question(session.id, index, answers=[])
    assert [q.question_index for q in storage.get_questions_by_game_session(session.id)] == [0, 1, 2]


def test_create_user_hashes_password(flask_app):
    user = storage.create_user('alice', 'secret')
    assert user.password_hash != 'secret'
    assert user.check_password('secret')
    assert storage.get_user_by_username('alice').id == user.id
    assert storage.get_user(user.id).to_dict() == {'id': user.id, 'username': 'alice'}
