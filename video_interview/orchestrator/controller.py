"""
Interview Session Controller

Drives one candidate through the ordered question list: preparation
countdown, recording countdown, bounded re-records and the upload that
advances to the next question. Timing, devices and uploads live here; every
phase change goes through `InterviewStateMachine`.
"""

import asyncio
import time
from functools import partial
from typing import Awaitable, Callable, Optional, Protocol, Sequence

import aiohttp
from loguru import logger

from video_interview.access.guards import require_authenticated
from video_interview.access.session_context import SessionContext
from video_interview.capture.recorder import MediaRecorder
from video_interview.capture.stream import CaptureStream
from video_interview.orchestrator.countdown import Countdown
from video_interview.orchestrator.schema import Question, SubmittedResponse
from video_interview.orchestrator.state_machine import InterviewStateMachine, Phase, Take, UserAction
from video_interview.utils.error_handlers import (
    AttemptLimitExceededError,
    BackendError,
    CaptureUnavailableError,
    InvalidTransitionError,
    UploadFailedError,
    timeout_handler,
)
from video_interview.utils.notifications import Notification, NotificationStatus, Notifier


class CaptureSource(Protocol):
    async def acquire_stream(self, audio: bool = True) -> CaptureStream: ...


class MediaSink(Protocol):
    async def store(self, key: str, data: bytes, content_type: str = ...) -> str: ...

    def public_location_of(self, key: str) -> str: ...


class SubmissionRecorder(Protocol):
    async def record_submission(
        self, candidate_id: str, question_id: str, media_location: str, attempt_number: int
    ) -> SubmittedResponse: ...


PhaseListener = Callable[[InterviewStateMachine], None]
TickListener = Callable[[Phase, int, int], None]


class InterviewSessionController:
    def __init__(
        self,
        context: SessionContext,
        questions: Sequence[Question],
        capture_device: CaptureSource,
        recorder: MediaRecorder,
        storage: MediaSink,
        responses: SubmissionRecorder,
        notifier: Notifier,
        *,
        preparation_seconds: int = 60,
        recording_seconds: int = 120,
        max_rerecords: int = 1,
        upload_timeout: float = 120.0,
        content_type: str = "video/webm",
        file_extension: str = "webm",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        on_phase: Optional[PhaseListener] = None,
        on_tick: Optional[TickListener] = None,
    ):
        """
        Args:
            context: Signed-in user; the candidate id comes from here.
            questions: Ordered questions for this session.
            capture_device: Hands out a camera/microphone stream per take.
            recorder: Turns the stream into binary fragments.
            storage: Durable sink for assembled takes.
            responses: Registers each stored take.
            notifier: Receives every user-facing outcome.
            sleep: Waits one countdown unit; replaced in tests.
            clock: Wall clock in seconds, used for storage keys.
            on_phase: Called after every phase change.
            on_tick: Called with (phase, remaining, total) on every countdown unit.
        """
        require_authenticated(context)

        self.context = context
        self.machine = InterviewStateMachine(questions, max_rerecords=max_rerecords)
        self.capture_device = capture_device
        self.recorder = recorder
        self.storage = storage
        self.responses = responses
        self.notifier = notifier

        self.preparation_seconds = preparation_seconds
        self.recording_seconds = recording_seconds
        self.upload_timeout = upload_timeout
        self.content_type = content_type
        self.file_extension = file_extension

        self._sleep = sleep
        self._clock = clock
        self._on_phase = on_phase
        self._on_tick = on_tick

        self._actions: asyncio.Queue[UserAction] = asyncio.Queue()
        self._countdown: Optional[Countdown] = None
        # Set between a take's start and its recording countdown
        self._recording_open = False
        self._early_requested = False
        self._last_stamp = 0
        self.submissions: list[SubmittedResponse] = []

    # --- User action channel ---

    def dispatch(self, action: UserAction) -> bool:
        """
        Deliver a user action. Returns False when it was not accepted.

        Submit early interrupts the recording countdown at once; re-record and
        submit are queued for the Completed phase. Nothing is accepted while an
        upload is outstanding.
        """
        if self.machine.uploading:
            self._notify("Submission in progress", "Please wait for the upload to finish", NotificationStatus.WARNING)
            return False
        if not self.machine.accepts(action):
            logger.debug(f"Ignoring {action.value} in phase {self.machine.phase.value}")
            return False

        if action == UserAction.SUBMIT_EARLY:
            if self._countdown is not None:
                self._countdown.cancel()
            elif self._recording_open:
                self._early_requested = True
            else:
                logger.debug("Ignoring submit_early, the take is already stopping")
                return False
            return True

        self._actions.put_nowait(action)
        return True

    # --- Main loop ---

    async def run(self) -> list[SubmittedResponse]:
        """
        Run until the last question is submitted.

        Raises:
            CaptureUnavailableError: no stream for a new take after preparation.
                The session keeps its position; calling `run()` again restarts
                the preparation of the same question.
        """
        while not self.machine.finished:
            phase = self.machine.phase
            if phase == Phase.PREPARING:
                await self._prepare()
            elif phase == Phase.RECORDING:
                await self._record()
            else:
                await self._await_decision()

        self._notify("Interview completed", "Thank you for your responses!", NotificationStatus.SUCCESS)
        logger.success(f"Interview finished: {len(self.submissions)} responses submitted")
        return self.submissions

    async def _prepare(self):
        question = self.machine.current_question
        logger.info(f"Question {self.machine.cursor + 1}/{len(self.machine.questions)}: {question.title}")
        self._phase_changed()
        await self._run_countdown(Phase.PREPARING, self.preparation_seconds)
        await self._start_take(self.machine.preparation_expired)

    async def _record(self):
        expired = await self._run_countdown(Phase.RECORDING, self.recording_seconds)
        await self.recorder.stop()
        self._early_requested = False
        if expired:
            self.machine.recording_expired()
            logger.info(f"Recording time over (attempt {self.machine.attempt_number})")
            self._phase_changed()
            return

        self.machine.submit_early()
        logger.info(f"Submitted early (attempt {self.machine.attempt_number})")
        self._phase_changed()
        await self._submit()

    async def _await_decision(self):
        action = await self._actions.get()
        if not self.machine.accepts(action):
            logger.debug(f"Dropping stale action {action.value}")
            return
        if action == UserAction.RERECORD:
            await self._rerecord()
        elif action == UserAction.SUBMIT:
            await self._submit()

    # --- Steps ---

    async def _run_countdown(self, phase: Phase, duration: int) -> bool:
        on_tick = partial(self._on_tick, phase, total=duration) if self._on_tick else None
        self._countdown = Countdown(duration, on_tick=on_tick, sleep=self._sleep)
        if phase == Phase.RECORDING and self._early_requested:
            self._countdown.cancel()
        self._early_requested = False
        try:
            expired = await self._countdown.run()
            if not expired:
                logger.debug(f"{phase.value} countdown stopped after {self._countdown.elapsed}/{duration} units")
            return expired
        finally:
            self._countdown = None
            if phase == Phase.RECORDING:
                self._recording_open = False

    async def _start_take(self, transition: Callable[[], int]):
        """Acquire a stream and start the recorder, then let the machine enter Recording."""
        self._drain_actions()
        try:
            stream = await self.capture_device.acquire_stream(audio=True)
        except CaptureUnavailableError as e:
            self._notify("Camera or microphone unavailable", e.recovery_suggestion, NotificationStatus.ERROR)
            raise

        take_id = self.machine.buffer.take_id + 1
        self.recorder.on_fragment(partial(self._on_fragment, take_id))
        try:
            await self.recorder.start(stream)
        except CaptureUnavailableError as e:
            stream.release()
            self._notify("Recording could not start", str(e), NotificationStatus.ERROR)
            raise

        started = transition()
        if started != take_id:
            await self.recorder.stop()
            raise InvalidTransitionError(f"Take {started} started but the recorder feeds take {take_id}")
        self._recording_open = True
        self._phase_changed()

    async def _rerecord(self):
        if self.machine.attempts >= self.machine.max_rerecords:
            error = AttemptLimitExceededError()
            self._notify(error.args[0], error.recovery_suggestion, NotificationStatus.WARNING)
            return
        try:
            await self._start_take(self.machine.rerecord)
        except CaptureUnavailableError:
            logger.warning("Re-record rejected, keeping the previous take")

    async def _submit(self):
        take = self.machine.begin_submit(self.content_type)
        self._phase_changed()
        if take.media.size == 0:
            logger.warning(f"Submitting an empty take for question {take.question.id}")

        upload = timeout_handler(self.upload_timeout, "Upload timed out", UploadFailedError)(self._upload)
        try:
            response = await upload(take)
        except UploadFailedError as e:
            self.machine.submit_failed()
            logger.error(f"Upload failed for question {take.question.id}: {e}")
            self._notify("Error submitting recording", e.args[0], NotificationStatus.ERROR, duration=3.0)
            self._phase_changed()
            return
        except Exception:
            # The take stays submittable even if the session cannot continue
            self.machine.submit_failed()
            raise

        self.submissions.append(response)
        self.machine.submit_succeeded()
        self._notify("Recording submitted", status=NotificationStatus.SUCCESS, duration=2.0)
        self._drain_actions()
        if not self.machine.finished:
            self._phase_changed()

    async def _upload(self, take: Take) -> SubmittedResponse:
        """Store the take, then register it. Any failure leaves nothing to roll back on our side."""
        key = self.storage_key(take.question)
        try:
            await self.storage.store(key, take.media.data, take.media.content_type)
            location = self.storage.public_location_of(key)
            return await self.responses.record_submission(
                self.context.user_id, take.question.id, location, take.attempt_number
            )
        except (BackendError, aiohttp.ClientError, ValueError) as e:
            # ValueError covers undecodable bodies and rows that fail validation
            raise UploadFailedError(f"Error uploading video: {e}") from e

    # --- Helpers ---

    def storage_key(self, question: Question) -> str:
        """`{candidate}/{question}/{timestamp_ms}.{ext}`, with strictly increasing timestamps."""
        stamp = int(self._clock() * 1000)
        if stamp <= self._last_stamp:
            stamp = self._last_stamp + 1
        self._last_stamp = stamp
        return f"{self.context.user_id}/{question.id}/{stamp}.{self.file_extension}"

    def _on_fragment(self, take_id: int, fragment: bytes):
        self.machine.buffer.append(take_id, fragment)

    def _drain_actions(self):
        while not self._actions.empty():
            self._actions.get_nowait()

    def _phase_changed(self):
        if self._on_phase:
            self._on_phase(self.machine)

    def _notify(self, title, description=None, status=NotificationStatus.INFO, duration=3.0):
        self.notifier.notify(Notification(title=title, description=description, status=status, duration=duration))
