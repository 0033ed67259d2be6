"""
Admin dashboard

Question bank management and review of submitted responses. Backend failures
become error notifications and leave the previously loaded data in place.
"""

from typing import Optional

import aiohttp
from loguru import logger
from rich.console import Console
from rich.table import Table

from video_interview.access.guards import require_admin
from video_interview.access.session_context import SessionContext
from video_interview.clients.repositories import QuestionRepository, ResponseRepository
from video_interview.orchestrator.schema import Question, ResponseRecord
from video_interview.utils.error_handlers import BackendError
from video_interview.utils.notifications import Notification, NotificationStatus, Notifier


class AdminDashboard:
    def __init__(
        self,
        context: SessionContext,
        questions: QuestionRepository,
        responses: ResponseRepository,
        notifier: Notifier,
    ):
        require_admin(context)
        self.context = context
        self.question_repo = questions
        self.response_repo = responses
        self.notifier = notifier

        self.questions: list[Question] = []
        self.responses: list[ResponseRecord] = []

    async def fetch_questions(self) -> list[Question]:
        try:
            self.questions = await self.question_repo.list_questions()
        except (BackendError, aiohttp.ClientError) as e:
            self._error("Error fetching questions", e)
        return self.questions

    async def fetch_responses(self) -> list[ResponseRecord]:
        try:
            self.responses = await self.response_repo.list_responses()
        except (BackendError, aiohttp.ClientError) as e:
            self._error("Error fetching responses", e)
        return self.responses

    async def refresh(self):
        await self.fetch_questions()
        await self.fetch_responses()

    async def add_question(self, title: str, description: str) -> Optional[Question]:
        title, description = title.strip(), description.strip()
        if not title or not description:
            self.notifier.notify(Notification(
                title="Error adding question",
                description="Title and description are required",
                status=NotificationStatus.ERROR,
                duration=5.0,
            ))
            return None

        try:
            question = await self.question_repo.create_question(title, description)
        except (BackendError, aiohttp.ClientError) as e:
            self._error("Error adding question", e)
            return None

        self.notifier.notify(Notification(title="Question added", status=NotificationStatus.SUCCESS))
        await self.fetch_questions()
        return question

    def _error(self, title: str, error: Exception):
        logger.error(f"{title}: {error}")
        self.notifier.notify(Notification(
            title=title,
            description=str(error),
            status=NotificationStatus.ERROR,
            duration=5.0,
        ))


def _date(value) -> str:
    return value.strftime("%Y-%m-%d") if value else "N/A"


def questions_table(questions: list[Question]) -> Table:
    table = Table(title="Questions")
    table.add_column("Title", style="bold")
    table.add_column("Description")
    table.add_column("Status")
    table.add_column("Created At", style="dim")
    for question in questions:
        table.add_row(
            question.title,
            question.description,
            "[green]Active[/green]" if question.active else "[dim]Inactive[/dim]",
            _date(question.created_at),
        )
    return table


def responses_table(responses: list[ResponseRecord]) -> Table:
    table = Table(title="Responses")
    table.add_column("Candidate", style="bold")
    table.add_column("Question")
    table.add_column("Attempt", justify="right")
    table.add_column("Video", style="cyan")
    table.add_column("Submitted At", style="dim")
    for response in responses:
        table.add_row(
            response.profiles.display_name,
            response.questions.title,
            str(response.attempt_number),
            response.video_url,
            _date(response.created_at),
        )
    return table


def render_dashboard(dashboard: AdminDashboard, console: Optional[Console] = None):
    console = console or Console()
    console.print(questions_table(dashboard.questions))
    console.print(responses_table(dashboard.responses))
