"""
Video Interview Client - Main Program

Candidates sign in, read the instructions and answer timed questions on
camera; administrators manage the question bank and review submissions.
"""

import argparse
import asyncio
import json
import shutil
import sys

import aiohttp
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Prompt, Confirm
from rich.table import Table
from loguru import logger

from config import config
from video_interview.access import Route, SessionContext, resolve_route
from video_interview.admin import AdminDashboard, questions_table, render_dashboard, responses_table
from video_interview.capture import FFmpegRecorder
from video_interview.clients import (
    MediaStorage,
    QuestionRepository,
    ResponseRepository,
    SupabaseClient,
    SupabaseIdentityProvider,
)
from video_interview.orchestrator.controller import InterviewSessionController
from video_interview.orchestrator.schema import SubmittedResponse
from video_interview.ui import ConsoleNotifier, InterviewView, KeyboardActions, show_instructions
from video_interview.utils import (
    AuthenticationRejectedError,
    BackendError,
    CaptureUnavailableError,
    Notification,
    NotificationStatus,
)

console = Console()

MAX_LOGIN_TRIES = 3


class InterviewApp:
    """Main application class"""

    def __init__(self):
        self.console = console
        self.context = SessionContext()
        self.notifier = ConsoleNotifier(self.console)

        self.backend = SupabaseClient(
            config.backend.url,
            config.backend.anon_key,
            timeout=config.backend.request_timeout,
        )
        self.identity = SupabaseIdentityProvider(self.backend)
        self.questions = QuestionRepository(self.backend)
        self.responses = ResponseRepository(self.backend)
        self.storage = MediaStorage(self.backend, config.backend.storage_bucket)

    async def run(self, args):
        """Main application flow"""
        self._show_welcome()

        try:
            if not await self._login(args.email):
                return

            requested = Route.ADMIN if args.admin else Route.INSTRUCTIONS
            route = resolve_route(self.context, requested)
            if route != requested:
                self._notify("Administrator access required", status=NotificationStatus.WARNING)

            if route == Route.ADMIN:
                await self._run_admin()
                return

            if not args.skip_checks and not await self._check_system():
                return
            if self._show_instructions():
                await self._run_interview()

        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Cancelled by user.[/yellow]")
        except Exception as e:
            logger.exception("Unexpected error")
            self.console.print(f"[red]❌ Error: {str(e)}[/red]")
        finally:
            await self._shutdown()

    def _show_welcome(self):
        panel = Panel(
            """🎥  [bold cyan]Video Interview[/bold cyan]

Answer each question on camera after a short preparation time.
Your recordings are uploaded when you submit them.""",
            title="Welcome",
            border_style="cyan"
        )
        self.console.print(panel)

    async def _login(self, email: str | None) -> bool:
        """Login screen; a few tries before giving up"""
        self.console.print("\n[bold]🔐 Login[/bold]")

        for _ in range(MAX_LOGIN_TRIES):
            user_email = email or Prompt.ask("Email")
            password = Prompt.ask("Password", password=True)
            try:
                await self.context.login(self.identity, user_email, password)
            except AuthenticationRejectedError:
                self._notify("Invalid credentials", status=NotificationStatus.ERROR, duration=2.0)
                email = None
                continue
            except (BackendError, aiohttp.ClientError) as e:
                logger.error(f"Login failed: {e}")
                self._notify("Login failed", str(e), NotificationStatus.ERROR)
                return False

            self.backend.set_access_token(self.context.access_token)
            self._notify("Login successful", status=NotificationStatus.SUCCESS, duration=2.0)
            return True

        return False

    async def _check_system(self) -> bool:
        """Check backend settings, ffmpeg and the capture devices"""
        # Imported here so admin sessions do not need OpenCV/PyAudio
        from video_interview.capture.device import CaptureDevice

        self.console.print("\n[bold]🔍 System Checks[/bold]")
        all_ok = True

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console
        ) as progress:

            task = progress.add_task("[cyan]Checking backend settings...", total=1)
            if config.validate():
                progress.update(task, completed=1, description="[green]✅ Backend configured")
            else:
                progress.update(task, completed=1, description="[red]❌ Backend not configured")
                all_ok = False

            task = progress.add_task("[cyan]Looking for ffmpeg...", total=1)
            if shutil.which(config.capture.ffmpeg_path):
                progress.update(task, completed=1, description="[green]✅ ffmpeg found")
            else:
                progress.update(task, completed=1, description="[red]❌ ffmpeg not found")
                all_ok = False

            task = progress.add_task("[cyan]Checking camera and microphone...", total=1)
            device = self._capture_device(CaptureDevice)
            try:
                stream = await device.acquire_stream(audio=True)
                stream.release()
                progress.update(task, completed=1, description="[green]✅ Camera and microphone ready")
                for name in device.list_input_devices():
                    logger.debug(f"Audio input {name}")
            except CaptureUnavailableError as e:
                progress.update(task, completed=1, description=f"[red]❌ {e.args[0]}")
                all_ok = False

        if not all_ok:
            self.console.print("\n[red]Some checks failed. Please check:[/red]")
            self.console.print("1. Are SUPABASE_URL and SUPABASE_ANON_KEY set?")
            self.console.print("2. Is ffmpeg installed? ([cyan]ffmpeg -version[/cyan])")
            self.console.print("3. Are the camera and microphone connected and allowed?")

        return all_ok

    def _show_instructions(self) -> bool:
        show_instructions(
            self.console,
            config.interview.preparation_seconds,
            config.interview.recording_seconds,
            config.interview.max_rerecords + 1,
        )
        return Confirm.ask("Start Interview?", default=True)

    def _capture_device(self, device_cls):
        return device_cls(
            camera_index=config.capture.camera_index,
            video_input_format=config.capture.video_input_format,
            video_device=config.capture.video_device,
            audio_input_format=config.capture.audio_input_format,
            audio_device=config.capture.audio_device,
        )

    async def _run_interview(self):
        """Load the questions and run the recording session"""
        from video_interview.capture.device import CaptureDevice

        if resolve_route(self.context, Route.INTERVIEW) != Route.INTERVIEW:
            return

        try:
            questions = await self.questions.list_active_questions()
        except (BackendError, aiohttp.ClientError) as e:
            self._notify("Error fetching questions", str(e), NotificationStatus.ERROR, duration=5.0)
            return
        if not questions:
            self.console.print("[yellow]There are no active questions right now.[/yellow]")
            return

        self.console.print(f"\n[bold green]🎬 Interview starting! ({len(questions)} questions)[/bold green]")

        view = InterviewView(self.console)
        recorder = FFmpegRecorder(config.capture.ffmpeg_path, config.capture.fragment_size)
        controller = InterviewSessionController(
            self.context,
            questions,
            self._capture_device(CaptureDevice),
            recorder,
            self.storage,
            self.responses,
            self.notifier,
            preparation_seconds=config.interview.preparation_seconds,
            recording_seconds=config.interview.recording_seconds,
            max_rerecords=config.interview.max_rerecords,
            upload_timeout=config.interview.upload_timeout,
            content_type=config.capture.content_type,
            file_extension=config.capture.file_extension,
            on_phase=view.on_phase,
            on_tick=view.on_tick,
        )

        keys = KeyboardActions(controller, self.console)
        keys.attach()
        try:
            while True:
                try:
                    submissions = await controller.run()
                    break
                except CaptureUnavailableError:
                    keys.detach()
                    if not Confirm.ask("Try the camera again?", default=True):
                        return
                    keys.attach()
        finally:
            keys.detach()
            logger.info(f"Recorder statistics: {recorder.get_statistics()}")

        self._show_results(submissions)

    def _show_results(self, submissions: list[SubmittedResponse]):
        self.console.print("\n[bold]📊 Submitted Responses[/bold]")
        table = Table()
        table.add_column("Question", style="cyan")
        table.add_column("Attempt", justify="right")
        table.add_column("Video", style="dim")
        for response in submissions:
            table.add_row(response.question_id, str(response.attempt_number), response.video_url)
        self.console.print(table)

    async def _run_admin(self):
        """Admin dashboard menu"""
        dashboard = AdminDashboard(self.context, self.questions, self.responses, self.notifier)
        await dashboard.refresh()
        render_dashboard(dashboard, self.console)

        while True:
            choice = Prompt.ask(
                "\n[bold]Admin[/bold] (questions / responses / add / refresh / quit)",
                choices=["questions", "responses", "add", "refresh", "quit"],
                default="quit",
            )
            if choice == "quit":
                return
            if choice == "questions":
                self.console.print(questions_table(dashboard.questions))
            elif choice == "responses":
                self.console.print(responses_table(dashboard.responses))
            elif choice == "add":
                title = Prompt.ask("Title")
                description = Prompt.ask("Description")
                if await dashboard.add_question(title, description):
                    self.console.print(questions_table(dashboard.questions))
            elif choice == "refresh":
                await dashboard.refresh()
                render_dashboard(dashboard, self.console)

    async def _shutdown(self):
        if self.context.is_authenticated:
            try:
                await self.context.logout(self.identity)
            except (BackendError, aiohttp.ClientError) as e:
                logger.warning(f"Logout request failed: {e}")
        await self.backend.close()
        logger.info("Application closed")

    def _notify(self, title, description=None, status=NotificationStatus.INFO, duration=3.0):
        self.notifier.notify(Notification(title=title, description=description, status=status, duration=duration))


def main():
    """Program entry point"""
    parser = argparse.ArgumentParser(
        description="Video interview client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                       # Candidate interview
  python main.py --email me@x.com      # Pre-fill the login email
  python main.py --admin               # Admin dashboard
  python main.py --show-config         # Print the configuration summary
        """
    )

    parser.add_argument(
        '--email',
        type=str,
        help='Login email'
    )
    parser.add_argument(
        '--admin',
        action='store_true',
        help='Open the admin dashboard instead of the interview'
    )
    parser.add_argument(
        '--skip-checks',
        action='store_true',
        help='Skip the camera/microphone/ffmpeg checks'
    )
    parser.add_argument(
        '--show-config',
        action='store_true',
        help='Print the configuration summary and exit'
    )

    args = parser.parse_args()

    if args.show_config:
        console.print_json(json.dumps(config.get_summary()))
        return

    app = InterviewApp()

    try:
        asyncio.run(app.run(args))
    except KeyboardInterrupt:
        console.print("\n\n[yellow]Program closed.[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"\n[red]Critical error: {str(e)}[/red]")
        logger.exception("Critical error")
        sys.exit(1)


if __name__ == "__main__":
    main()
