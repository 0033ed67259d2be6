from .schema import (
    Role,
    Profile,
    Question,
    SubmittedResponse,
    ResponseRecord,
    AuthResult,
    MediaBlob,
)
from .state_machine import InterviewStateMachine, Phase, UserAction, RecordingBuffer, Take
from .countdown import Countdown
# The controller pulls in access/capture; import it from .controller directly.


__all__ = [
    'Role',
    'Profile',
    'Question',
    'SubmittedResponse',
    'ResponseRecord',
    'AuthResult',
    'MediaBlob',
    'InterviewStateMachine',
    'Phase',
    'UserAction',
    'RecordingBuffer',
    'Take',
    'Countdown',
]
