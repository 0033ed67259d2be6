"""
Interview state machine

Per-question flow: PREPARING -> RECORDING -> COMPLETED, with a bounded number
of re-records from COMPLETED straight back to RECORDING and a submit step that
advances to the next question.

The machine is synchronous and performs no I/O. Timer expiries and user
actions are its two input channels; upload outcomes close the submit loop.
Inputs the current phase does not accept raise `InvalidTransitionError`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from video_interview.orchestrator.schema import MediaBlob, Question
from video_interview.utils.error_handlers import AttemptLimitExceededError, InvalidTransitionError


class Phase(str, Enum):
    PREPARING = "preparing"
    RECORDING = "recording"
    COMPLETED = "completed"


class UserAction(str, Enum):
    SUBMIT_EARLY = "submit_early"
    RERECORD = "rerecord"
    SUBMIT = "submit"


class RecordingBuffer:
    """
    Fragments of a single take.

    Each take gets a new id when the buffer is reset. Fragments are accepted
    only for the current take and only until the buffer is sealed.
    """

    def __init__(self):
        self._fragments: list[bytes] = []
        self.take_id = 0
        self.sealed = True

    def reset(self) -> int:
        self._fragments = []
        self.take_id += 1
        self.sealed = False
        return self.take_id

    def append(self, take_id: int, fragment: bytes) -> bool:
        if self.sealed or take_id != self.take_id:
            logger.debug(f"Dropping fragment for take {take_id} (current={self.take_id}, sealed={self.sealed})")
            return False
        if not fragment:
            return False
        self._fragments.append(fragment)
        return True

    def seal(self):
        self.sealed = True

    def clear(self):
        """Drop the fragments but keep the take id, so stale fragments stay rejected."""
        self._fragments = []
        self.sealed = True

    def assemble(self, content_type: str) -> MediaBlob:
        return MediaBlob(data=b"".join(self._fragments), content_type=content_type)

    @property
    def fragments(self) -> tuple[bytes, ...]:
        return tuple(self._fragments)

    def __len__(self) -> int:
        return len(self._fragments)


@dataclass(frozen=True)
class Take:
    question: Question
    attempt_number: int
    media: MediaBlob


class InterviewStateMachine:
    def __init__(self, questions: Sequence[Question], max_rerecords: int = 1):
        if max_rerecords < 0:
            raise ValueError("max_rerecords cannot be negative")
        self.questions = tuple(questions)
        self.max_rerecords = max_rerecords

        self.cursor = 0
        self.attempts = 0
        self.phase = Phase.PREPARING
        self.buffer = RecordingBuffer()
        self.uploading = False
        self.finished = not self.questions

    # --- Queries ---

    @property
    def current_question(self) -> Optional[Question]:
        if self.finished:
            return None
        return self.questions[self.cursor]

    @property
    def attempt_number(self) -> int:
        """1-indexed attempt shown to the candidate and stored with the response."""
        return self.attempts + 1

    @property
    def takes_per_question(self) -> int:
        return self.max_rerecords + 1

    @property
    def can_rerecord(self) -> bool:
        return (
            not self.finished
            and self.phase == Phase.COMPLETED
            and not self.uploading
            and self.attempts < self.max_rerecords
        )

    @property
    def can_submit(self) -> bool:
        return not self.finished and self.phase == Phase.COMPLETED and not self.uploading

    def accepts(self, action: UserAction) -> bool:
        """Whether `action` is meaningful right now (re-record at the cap still is: it gets a notice)."""
        if self.finished or self.uploading:
            return False
        if action == UserAction.SUBMIT_EARLY:
            return self.phase == Phase.RECORDING
        return self.phase == Phase.COMPLETED

    # --- Timer inputs ---

    def preparation_expired(self) -> int:
        self._require(Phase.PREPARING, "preparation_expired")
        self.phase = Phase.RECORDING
        take_id = self.buffer.reset()
        logger.debug(f"Q{self.cursor + 1}: preparation over, take {take_id} recording")
        return take_id

    def recording_expired(self):
        self._require(Phase.RECORDING, "recording_expired")
        self._end_take()

    # --- User inputs ---

    def submit_early(self):
        self._require(Phase.RECORDING, "submit_early")
        self._end_take()

    def rerecord(self) -> int:
        self._require(Phase.COMPLETED, "rerecord")
        self._require_idle("rerecord")
        if self.attempts >= self.max_rerecords:
            raise AttemptLimitExceededError()
        self.attempts += 1
        self.phase = Phase.RECORDING
        take_id = self.buffer.reset()
        logger.debug(f"Q{self.cursor + 1}: re-record #{self.attempts}, take {take_id} recording")
        return take_id

    def begin_submit(self, content_type: str) -> Take:
        self._require(Phase.COMPLETED, "submit")
        self._require_idle("submit")
        self.uploading = True
        return Take(
            question=self.current_question,
            attempt_number=self.attempt_number,
            media=self.buffer.assemble(content_type),
        )

    # --- Upload outcome ---

    def submit_failed(self):
        if not self.uploading:
            raise InvalidTransitionError("submit_failed without an outstanding upload")
        self.uploading = False

    def submit_succeeded(self):
        if not self.uploading:
            raise InvalidTransitionError("submit_succeeded without an outstanding upload")
        self.uploading = False
        self.cursor += 1
        if self.cursor >= len(self.questions):
            self.finished = True
            logger.debug("Last question submitted, session finished")
            return
        self.attempts = 0
        self.phase = Phase.PREPARING
        self.buffer.clear()

    # --- Helpers ---

    def _end_take(self):
        self.buffer.seal()
        self.phase = Phase.COMPLETED

    def _require(self, phase: Phase, event: str):
        if self.finished:
            raise InvalidTransitionError(f"{event}: session already finished")
        if self.phase != phase:
            raise InvalidTransitionError(f"{event}: not allowed in phase {self.phase.value}")

    def _require_idle(self, event: str):
        if self.uploading:
            raise InvalidTransitionError(f"{event}: submission in progress")
