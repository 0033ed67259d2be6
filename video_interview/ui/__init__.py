from .console import ConsoleNotifier, InterviewView, KeyboardActions, format_remaining, show_instructions

__all__ = [
    'ConsoleNotifier',
    'InterviewView',
    'KeyboardActions',
    'format_remaining',
    'show_instructions',
]
