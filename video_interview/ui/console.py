"""
Terminal front end for the interview flow: notifications, the question and
countdown display, the instructions screen and keyboard actions.
"""

import asyncio
import sys
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.text import Text

from video_interview.orchestrator.state_machine import InterviewStateMachine, Phase, UserAction
from video_interview.utils.notifications import Notification, NotificationStatus


class ConsoleNotifier:
    """Prints notifications as one-line toasts."""

    _styles = {
        NotificationStatus.SUCCESS: ("✅", "green"),
        NotificationStatus.INFO: ("ℹ️", "cyan"),
        NotificationStatus.WARNING: ("⚠️", "yellow"),
        NotificationStatus.ERROR: ("❌", "red"),
    }

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def notify(self, notification: Notification):
        emoji, style = self._styles[notification.status]
        line = Text(f"{emoji} {notification.title}", style=f"bold {style}")
        if notification.description:
            line.append(f" - {notification.description}", style="dim")
        self.console.print(line)
        logger.debug(f"Notification [{notification.status.value}]: {notification.title}")


def format_remaining(phase: Phase, remaining: int) -> str:
    if phase == Phase.PREPARING:
        return f"{remaining} seconds"
    minutes, seconds = divmod(remaining, 60)
    return f"{minutes}:{seconds:02d}"


class InterviewView:
    """Renders phase changes and countdown ticks coming from the controller."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._progress: Optional[Progress] = None
        self._task = None
        self._phase: Optional[Phase] = None

    def on_phase(self, machine: InterviewStateMachine):
        self._close_progress()
        if machine.finished:
            return

        question = machine.current_question
        if machine.phase == Phase.PREPARING:
            self.console.print(Panel(
                Text(question.description),
                title=f"Question {machine.cursor + 1}: {question.title}",
                border_style="cyan",
            ))
            self.console.print("[bold]⏳ Preparation Time[/bold]")
        elif machine.phase == Phase.RECORDING:
            self.console.print("[bold red]🔴 Recording[/bold red] [dim](type s + Enter to submit early)[/dim]")
        elif not machine.can_submit:
            self.console.print("[yellow]📤 Uploading your recording...[/yellow]")
        else:
            self.console.print(
                f"\nRecording completed! ([cyan]{machine.attempt_number}/{machine.takes_per_question}[/cyan] attempts used)"
            )
            self.console.print("  [green]s[/green] + Enter: Submit Recording")
            if machine.can_rerecord:
                self.console.print("  [orange1]r[/orange1] + Enter: Re-record Response")
            else:
                self.console.print("  [dim]r: Re-record Response (no attempts left)[/dim]")

    def on_tick(self, phase: Phase, remaining: int, total: int):
        if self._progress is None or self._phase != phase:
            self._close_progress()
            self._phase = phase
            self._progress = Progress(
                TextColumn("[bold]{task.description}"),
                BarColumn(complete_style="blue" if phase == Phase.PREPARING else "red"),
                TextColumn("{task.fields[clock]}"),
                console=self.console,
                transient=True,
            )
            self._progress.start()
            label = "Preparing" if phase == Phase.PREPARING else "Recording"
            self._task = self._progress.add_task(label, total=total, clock="")

        self._progress.update(self._task, completed=remaining, clock=format_remaining(phase, remaining))
        if remaining == 0:
            self._close_progress()

    def _close_progress(self):
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None
        self._phase = None


class KeyboardActions:
    """
    Turns lines typed on stdin into controller actions without blocking the
    event loop: `s` submits (early while recording), `r` re-records.
    POSIX only, since it relies on loop.add_reader for stdin.
    """

    def __init__(self, controller, console: Optional[Console] = None, stream=sys.stdin):
        self.controller = controller
        self.console = console or Console()
        self.stream = stream
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def attach(self):
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self.stream.fileno(), self._on_input)

    def detach(self):
        if self._loop is not None:
            self._loop.remove_reader(self.stream.fileno())
            self._loop = None

    def _on_input(self):
        self.handle(self.stream.readline())

    def handle(self, line: str) -> bool:
        key = line.strip().lower()
        if key == "s":
            if self.controller.machine.phase == Phase.RECORDING:
                action = UserAction.SUBMIT_EARLY
            else:
                action = UserAction.SUBMIT
        elif key == "r":
            action = UserAction.RERECORD
        else:
            if key:
                self.console.print("[dim]Type s (submit) or r (re-record) and press Enter[/dim]")
            return False
        return self.controller.dispatch(action)


def show_instructions(console: Console, preparation_seconds: int, recording_seconds: int, takes: int):
    def as_duration(seconds: int) -> str:
        if seconds % 60 == 0:
            minutes = seconds // 60
            return f"{minutes} minute" + ("s" if minutes != 1 else "")
        return f"{seconds} seconds"

    body = Text()
    body.append("Welcome to the video interview platform. Please read the following instructions carefully before proceeding.\n\n")
    body.append("Process Overview\n", style="bold")
    for item in (
        "You will be presented with interview questions one at a time",
        f"For each question, you will get {as_duration(preparation_seconds)} to prepare your answer",
        f"After preparation time, you will have {as_duration(recording_seconds)} to record your response",
        f"You have {takes} attempts for each question if needed",
    ):
        body.append(f"  ✔ {item}\n", style="green")
    body.append("\nImportant Notes\n", style="bold")
    for item in (
        "Ensure your camera and microphone are working properly",
        "Find a quiet place with good lighting",
        "Your responses will be automatically saved and submitted",
        "You cannot pause or resume the recording once started",
    ):
        body.append(f"  • {item}\n")

    console.print(Panel(body, title="Interview Instructions", border_style="cyan"))
