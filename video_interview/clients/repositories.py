from loguru import logger

from video_interview.clients.supabase_client import SupabaseClient
from video_interview.orchestrator.schema import Question, ResponseRecord, SubmittedResponse
from video_interview.utils.error_handlers import BackendError, api_retry_handler

RETURN_REPRESENTATION = {"Prefer": "return=representation"}

RESPONSE_JOIN = "*,profiles:user_id(id,email,full_name),questions:question_id(id,title)"


class QuestionRepository:
    def __init__(self, client: SupabaseClient):
        self.client = client

    @api_retry_handler()
    async def list_active_questions(self) -> list[Question]:
        """Active questions in the order they were created: the interview sequence."""
        rows = await self.client.request(
            "GET",
            "/rest/v1/questions",
            params={"select": "*", "active": "eq.true", "order": "created_at.asc"},
        )
        questions = [Question(**row) for row in rows or []]
        logger.info(f"{len(questions)} active questions loaded")
        return questions

    @api_retry_handler()
    async def list_questions(self) -> list[Question]:
        """Every question, newest first (admin view)."""
        rows = await self.client.request(
            "GET",
            "/rest/v1/questions",
            params={"select": "*", "order": "created_at.desc"},
        )
        return [Question(**row) for row in rows or []]

    async def create_question(self, title: str, description: str) -> Question:
        rows = await self.client.request(
            "POST",
            "/rest/v1/questions",
            json=[{"title": title, "description": description, "active": True}],
            headers=RETURN_REPRESENTATION,
        )
        if not rows:
            raise BackendError("Question insert returned no row")
        question = Question(**rows[0])
        logger.info(f"Question created: {question.id} '{question.title}'")
        return question


class ResponseRepository:
    def __init__(self, client: SupabaseClient):
        self.client = client

    @api_retry_handler()
    async def list_responses(self) -> list[ResponseRecord]:
        """Submitted responses joined with candidate and question, newest first."""
        rows = await self.client.request(
            "GET",
            "/rest/v1/responses",
            params={"select": RESPONSE_JOIN, "order": "created_at.desc"},
        )
        return [ResponseRecord(**row) for row in rows or []]

    async def record_submission(
        self,
        candidate_id: str,
        question_id: str,
        media_location: str,
        attempt_number: int,
    ) -> SubmittedResponse:
        rows = await self.client.request(
            "POST",
            "/rest/v1/responses",
            json=[{
                "user_id": candidate_id,
                "question_id": question_id,
                "video_url": media_location,
                "attempt_number": attempt_number,
            }],
            headers=RETURN_REPRESENTATION,
        )
        if not rows:
            raise BackendError("Response insert returned no row")
        response = SubmittedResponse(**rows[0])
        logger.info(f"Response recorded: {response.id} (question {question_id}, attempt {attempt_number})")
        return response
