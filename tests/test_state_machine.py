import pytest

from video_interview.orchestrator.state_machine import (
    InterviewStateMachine,
    Phase,
    RecordingBuffer,
    UserAction,
)
from video_interview.utils.error_handlers import AttemptLimitExceededError, InvalidTransitionError


def record_take(machine, *fragments):
    take_id = machine.buffer.take_id
    for fragment in fragments:
        machine.buffer.append(take_id, fragment)


@pytest.fixture
def machine(questions):
    return InterviewStateMachine(questions, max_rerecords=1)


def test_starts_preparing_first_question(machine):
    assert machine.cursor == 0
    assert machine.phase == Phase.PREPARING
    assert machine.attempts == 0
    assert machine.attempt_number == 1
    assert machine.takes_per_question == 2
    assert machine.current_question.id == "q1"
    assert not machine.finished


def test_empty_question_list_is_finished():
    machine = InterviewStateMachine([])
    assert machine.finished
    assert machine.current_question is None
    assert not machine.accepts(UserAction.SUBMIT)


def test_negative_rerecord_limit_rejected(questions):
    with pytest.raises(ValueError):
        InterviewStateMachine(questions, max_rerecords=-1)


def test_full_cycle_advances_question(machine):
    machine.preparation_expired()
    assert machine.phase == Phase.RECORDING
    record_take(machine, b"a", b"b")
    machine.recording_expired()
    assert machine.phase == Phase.COMPLETED

    take = machine.begin_submit("video/webm")
    assert take.question.id == "q1"
    assert take.attempt_number == 1
    assert take.media.data == b"ab"
    assert machine.uploading

    machine.submit_succeeded()
    assert machine.cursor == 1
    assert machine.phase == Phase.PREPARING
    assert machine.attempts == 0
    assert len(machine.buffer) == 0


def test_last_submission_finishes(questions):
    machine = InterviewStateMachine(questions[:1])
    machine.preparation_expired()
    machine.submit_early()
    machine.begin_submit("video/webm")
    machine.submit_succeeded()

    assert machine.finished
    with pytest.raises(InvalidTransitionError):
        machine.preparation_expired()


def test_rerecord_resets_buffer_and_counts_attempt(machine):
    machine.preparation_expired()
    record_take(machine, b"first")
    machine.recording_expired()

    machine.rerecord()

    assert machine.phase == Phase.RECORDING
    assert machine.attempts == 1
    assert machine.attempt_number == 2
    assert len(machine.buffer) == 0


def test_rerecord_at_cap_changes_nothing(machine):
    machine.preparation_expired()
    machine.recording_expired()
    machine.rerecord()
    record_take(machine, b"second")
    machine.recording_expired()
    assert not machine.can_rerecord

    with pytest.raises(AttemptLimitExceededError):
        machine.rerecord()

    assert machine.phase == Phase.COMPLETED
    assert machine.attempts == 1
    assert machine.buffer.fragments == (b"second",)


def test_zero_rerecords_means_single_take(questions):
    machine = InterviewStateMachine(questions, max_rerecords=0)
    machine.preparation_expired()
    machine.recording_expired()

    assert machine.takes_per_question == 1
    assert not machine.can_rerecord
    with pytest.raises(AttemptLimitExceededError):
        machine.rerecord()


def test_failed_submit_keeps_take(machine):
    machine.preparation_expired()
    record_take(machine, b"x")
    machine.submit_early()
    machine.begin_submit("video/webm")

    machine.submit_failed()

    assert not machine.uploading
    assert machine.phase == Phase.COMPLETED
    assert machine.cursor == 0
    assert machine.buffer.fragments == (b"x",)
    assert machine.can_submit


def test_no_transitions_while_uploading(machine):
    machine.preparation_expired()
    machine.recording_expired()
    machine.begin_submit("video/webm")

    assert not machine.accepts(UserAction.SUBMIT)
    assert not machine.accepts(UserAction.RERECORD)
    with pytest.raises(InvalidTransitionError):
        machine.rerecord()
    with pytest.raises(InvalidTransitionError):
        machine.begin_submit("video/webm")


@pytest.mark.parametrize("phase_steps, action, accepted", [
    ([], UserAction.SUBMIT_EARLY, False),
    ([], UserAction.SUBMIT, False),
    (["preparation_expired"], UserAction.SUBMIT_EARLY, True),
    (["preparation_expired"], UserAction.RERECORD, False),
    (["preparation_expired", "recording_expired"], UserAction.SUBMIT_EARLY, False),
    (["preparation_expired", "recording_expired"], UserAction.RERECORD, True),
    (["preparation_expired", "recording_expired"], UserAction.SUBMIT, True),
])
def test_accepts_by_phase(machine, phase_steps, action, accepted):
    for step in phase_steps:
        getattr(machine, step)()
    assert machine.accepts(action) is accepted


def test_out_of_phase_inputs_raise(machine):
    with pytest.raises(InvalidTransitionError):
        machine.recording_expired()
    with pytest.raises(InvalidTransitionError):
        machine.submit_early()
    with pytest.raises(InvalidTransitionError):
        machine.submit_succeeded()
    with pytest.raises(InvalidTransitionError):
        machine.submit_failed()


class TestRecordingBuffer:
    def test_rejects_fragments_until_reset(self):
        buffer = RecordingBuffer()
        assert not buffer.append(0, b"early")

        take_id = buffer.reset()
        assert buffer.append(take_id, b"data")
        assert buffer.fragments == (b"data",)

    def test_rejects_stale_take(self):
        buffer = RecordingBuffer()
        old = buffer.reset()
        new = buffer.reset()

        assert not buffer.append(old, b"stale")
        assert buffer.append(new, b"fresh")
        assert buffer.fragments == (b"fresh",)

    def test_sealed_buffer_drops_late_data(self):
        buffer = RecordingBuffer()
        take_id = buffer.reset()
        buffer.append(take_id, b"a")
        buffer.seal()

        assert not buffer.append(take_id, b"late")
        assert buffer.assemble("video/webm").data == b"a"

    def test_empty_fragments_ignored(self):
        buffer = RecordingBuffer()
        take_id = buffer.reset()
        assert not buffer.append(take_id, b"")
        assert len(buffer) == 0

    def test_clear_keeps_take_id(self):
        buffer = RecordingBuffer()
        take_id = buffer.reset()
        buffer.append(take_id, b"a")
        buffer.clear()

        assert buffer.take_id == take_id
        assert len(buffer) == 0
        assert not buffer.append(take_id, b"b")
