import asyncio

import pytest

from video_interview.access.session_context import SessionContext
from video_interview.capture.stream import CaptureStream
from video_interview.orchestrator.controller import InterviewSessionController
from video_interview.orchestrator.schema import AuthResult, Question, Role, SubmittedResponse
from video_interview.utils.error_handlers import BackendError, CaptureUnavailableError


class FakeClock:
    """Countdown time that only moves when the controller sleeps."""

    def __init__(self):
        self.now = 0
        self.listeners = []
        self.at = {}

    async def sleep(self, seconds):
        await asyncio.sleep(0)
        self.now += seconds
        for listener in list(self.listeners):
            listener(self.now)
        hook = self.at.pop(self.now, None)
        if hook:
            hook()


class FakeCaptureDevice:
    def __init__(self):
        self.available = True
        self.streams = []

    async def acquire_stream(self, audio=True):
        if not self.available:
            raise CaptureUnavailableError("Camera not available")
        stream = CaptureStream(
            video_input_format="v4l2",
            video_device="/dev/video0",
            audio_input_format="alsa" if audio else None,
            audio_device="default" if audio else None,
        )
        self.streams.append(stream)
        return stream


class FakeRecorder:
    """Emits one fragment per clock unit while recording, labelled with the time."""

    def __init__(self, clock):
        self.callback = None
        self.stream = None
        self.takes = []
        self.starts = 0
        self.stops = 0
        # Runs inside stop() while the encoder is still draining
        self.on_stop = None
        clock.listeners.append(self._tick)

    @property
    def is_recording(self):
        return self.stream is not None

    def on_fragment(self, callback):
        self.callback = callback

    async def start(self, stream):
        if self.stream is not None:
            raise RuntimeError("Recorder already has an active capture")
        self.stream = stream
        self.starts += 1
        self.takes.append([])

    async def stop(self):
        if self.stream is None:
            return
        if self.on_stop:
            self.on_stop()
        await asyncio.sleep(0)
        self.stream.release()
        self.stream = None
        self.stops += 1

    def _tick(self, now):
        if self.is_recording:
            fragment = f"t{int(now)};".encode()
            self.takes[-1].append(fragment)
            self.callback(fragment)

    def leak(self, fragment):
        """Deliver data through the last callback as a late device would."""
        self.callback(fragment)


class FakeStorage:
    def __init__(self):
        self.objects = {}
        self.failures = 0
        self.gate = None

    async def store(self, key, data, content_type="video/webm"):
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            self.failures -= 1
            raise BackendError("storage unavailable", status=503)
        assert key not in self.objects, f"key collision: {key}"
        self.objects[key] = (data, content_type)
        return f"interview-responses/{key}"

    def public_location_of(self, key):
        return f"https://cdn.test/storage/v1/object/public/interview-responses/{key}"


class FakeResponses:
    def __init__(self):
        self.rows = []
        self.malformed = 0

    async def record_submission(self, candidate_id, question_id, media_location, attempt_number):
        fields = {
            "id": f"r{len(self.rows) + 1}",
            "user_id": candidate_id,
            "question_id": question_id,
            "video_url": media_location,
            "attempt_number": attempt_number,
        }
        if self.malformed:
            # The backend echoed a row without its attempt number
            self.malformed -= 1
            fields["attempt_number"] = None
        row = SubmittedResponse(**fields)
        self.rows.append(row)
        return row


class RecordingNotifier:
    def __init__(self):
        self.notifications = []

    def notify(self, notification):
        self.notifications.append(notification)

    @property
    def titles(self):
        return [n.title for n in self.notifications]


class FakeIdentity:
    def __init__(self, accounts=None):
        # email -> (password, role, user_id)
        self.accounts = accounts or {
            "user@example.com": ("user123", Role.CANDIDATE, "user-1"),
            "admin@example.com": ("admin123", Role.ADMINISTRATOR, "admin-1"),
        }
        self.logged_out = []

    async def authenticate(self, email, password):
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            return AuthResult(granted=False)
        _, role, user_id = account
        return AuthResult(granted=True, role=role, user_id=user_id, email=email, access_token=f"token-{user_id}")

    async def logout(self, access_token):
        self.logged_out.append(access_token)


class Harness:
    def __init__(self, context, questions, **options):
        self.clock = FakeClock()
        self.device = FakeCaptureDevice()
        self.recorder = FakeRecorder(self.clock)
        self.storage = FakeStorage()
        self.responses = FakeResponses()
        self.notifier = RecordingNotifier()
        self.snapshots = []
        self.task = None

        self.controller = InterviewSessionController(
            context,
            questions,
            self.device,
            self.recorder,
            self.storage,
            self.responses,
            self.notifier,
            sleep=self.clock.sleep,
            clock=lambda: 1_700_000_000.0,
            on_phase=self._on_phase,
            **options,
        )

    @property
    def machine(self):
        return self.controller.machine

    def _on_phase(self, machine):
        self.snapshots.append({
            "cursor": machine.cursor,
            "phase": machine.phase,
            "uploading": machine.uploading,
            "attempts": machine.attempts,
            "now": self.clock.now,
            "buffer": len(machine.buffer),
        })

    def start(self):
        self.task = asyncio.create_task(self.controller.run())
        return self.task

    async def until(self, predicate, limit=50_000):
        for _ in range(limit):
            if predicate():
                return
            if self.task is not None and self.task.done():
                self.task.result()
                if predicate():
                    return
                raise AssertionError("controller finished before the condition was met")
            await asyncio.sleep(0)
        raise AssertionError("condition not reached")

    async def close(self):
        if self.task is not None and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass


@pytest.fixture
def questions():
    return [
        Question(
            id="q1",
            title="Tell us about yourself",
            description="Give a brief introduction about your background, skills, and what motivates you.",
        ),
        Question(
            id="q2",
            title="Why do you want to join our company?",
            description="Explain what attracts you to our organization and how you can contribute to our mission.",
        ),
    ]


@pytest.fixture
def candidate_context():
    context = SessionContext()
    context.user_id = "user-1"
    context.email = "user@example.com"
    context.role = Role.CANDIDATE
    context.access_token = "token-user-1"
    return context


@pytest.fixture
def admin_context():
    context = SessionContext()
    context.user_id = "admin-1"
    context.email = "admin@example.com"
    context.role = Role.ADMINISTRATOR
    context.access_token = "token-admin-1"
    return context


@pytest.fixture
async def make_harness(candidate_context):
    harnesses = []

    def factory(questions, context=None, **options):
        harness = Harness(context or candidate_context, questions, **options)
        harnesses.append(harness)
        return harness

    yield factory

    for harness in harnesses:
        await harness.close()
