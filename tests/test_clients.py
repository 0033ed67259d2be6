import pytest
from aiohttp import test_utils, web

from video_interview.clients import (
    MediaStorage,
    QuestionRepository,
    ResponseRepository,
    SupabaseClient,
    SupabaseIdentityProvider,
)
from video_interview.orchestrator.schema import Role
from video_interview.utils.error_handlers import BackendError

QUESTION_ROW = {
    "id": "q1",
    "title": "Tell us about yourself",
    "description": "Give a brief introduction.",
    "active": True,
    "created_by": None,
    "created_at": "2024-01-01T10:00:00+00:00",
    "updated_at": "2024-01-01T10:00:00+00:00",
}


class StubClient:
    """Stands in for SupabaseClient: replays canned replies and records calls."""

    base_url = "https://project.supabase.co"

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def request(self, method, path, **kwargs):
        self.calls.append((method, path, kwargs))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


async def test_active_questions_in_creation_order():
    client = StubClient([QUESTION_ROW])

    questions = await QuestionRepository(client).list_active_questions()

    assert [q.id for q in questions] == ["q1"]
    method, path, kwargs = client.calls[0]
    assert (method, path) == ("GET", "/rest/v1/questions")
    assert kwargs["params"]["active"] == "eq.true"
    assert kwargs["params"]["order"] == "created_at.asc"


async def test_backend_errors_are_not_retried():
    client = StubClient(BackendError("boom", status=500))

    with pytest.raises(BackendError):
        await QuestionRepository(client).list_questions()
    assert len(client.calls) == 1


async def test_create_question_returns_inserted_row():
    client = StubClient([QUESTION_ROW])

    question = await QuestionRepository(client).create_question("Tell us about yourself", "Give a brief introduction.")

    assert question.id == "q1"
    method, path, kwargs = client.calls[0]
    assert method == "POST"
    assert kwargs["json"] == [{"title": "Tell us about yourself", "description": "Give a brief introduction.", "active": True}]
    assert kwargs["headers"]["Prefer"] == "return=representation"


async def test_create_question_without_row_is_an_error():
    with pytest.raises(BackendError):
        await QuestionRepository(StubClient([])).create_question("t", "d")


async def test_record_submission():
    row = {"id": "r1", "user_id": "user-1", "question_id": "q1", "video_url": "https://x/v.webm", "attempt_number": 2}
    client = StubClient([row])

    response = await ResponseRepository(client).record_submission("user-1", "q1", "https://x/v.webm", 2)

    assert response.attempt_number == 2
    _, path, kwargs = client.calls[0]
    assert path == "/rest/v1/responses"
    assert kwargs["json"][0]["user_id"] == "user-1"
    assert kwargs["json"][0]["attempt_number"] == 2


async def test_list_responses_joins_candidate_and_question():
    row = {
        "id": "r1",
        "user_id": "user-1",
        "question_id": "q1",
        "video_url": "https://x/v.webm",
        "attempt_number": 1,
        "created_at": "2024-01-02T09:30:00+00:00",
        "profiles": {"id": "user-1", "email": "user@example.com", "full_name": None},
        "questions": {"id": "q1", "title": "Tell us about yourself"},
    }
    client = StubClient([row])

    records = await ResponseRepository(client).list_responses()

    assert records[0].profiles.display_name == "user@example.com"
    assert records[0].questions.title == "Tell us about yourself"
    assert "profiles:user_id" in client.calls[0][2]["params"]["select"]


async def test_identity_grants_role_from_profile():
    client = StubClient(
        {"access_token": "jwt", "user": {"id": "admin-1", "email": "admin@example.com"}},
        [{"id": "admin-1", "email": "admin@example.com", "full_name": None, "is_admin": True}],
    )

    result = await SupabaseIdentityProvider(client).authenticate("admin@example.com", "admin123")

    assert result.granted
    assert result.role == Role.ADMINISTRATOR
    assert result.user_id == "admin-1"
    assert result.access_token == "jwt"
    assert client.calls[0][2]["params"] == {"grant_type": "password"}
    assert client.calls[1][2]["access_token"] == "jwt"


async def test_identity_without_profile_is_candidate():
    client = StubClient({"access_token": "jwt", "user": {"id": "user-1", "email": "user@example.com"}}, [])

    result = await SupabaseIdentityProvider(client).authenticate("user@example.com", "user123")

    assert result.role == Role.CANDIDATE


async def test_identity_rejects_bad_credentials():
    client = StubClient(BackendError("invalid_grant", status=400))

    result = await SupabaseIdentityProvider(client).authenticate("user@example.com", "nope")

    assert not result.granted
    assert result.user_id is None


async def test_identity_propagates_server_errors():
    client = StubClient(BackendError("down", status=503))

    with pytest.raises(BackendError):
        await SupabaseIdentityProvider(client).authenticate("user@example.com", "user123")


async def test_storage_never_overwrites_and_builds_public_url():
    client = StubClient({"Key": "interview-responses/user-1/q1/1.webm"})
    storage = MediaStorage(client, "interview-responses")

    path = await storage.store("user-1/q1/1.webm", b"data", "video/webm")

    assert path == "interview-responses/user-1/q1/1.webm"
    method, url, kwargs = client.calls[0]
    assert (method, url) == ("POST", "/storage/v1/object/interview-responses/user-1/q1/1.webm")
    assert kwargs["data"] == b"data"
    assert kwargs["headers"] == {"Content-Type": "video/webm", "x-upsert": "false"}
    assert storage.public_location_of("user-1/q1/1.webm") == (
        "https://project.supabase.co/storage/v1/object/public/interview-responses/user-1/q1/1.webm"
    )


def test_headers_prefer_user_token():
    client = SupabaseClient("https://project.supabase.co/", "anon")
    assert client.base_url == "https://project.supabase.co"
    assert client._headers(None, None)["Authorization"] == "Bearer anon"

    client.set_access_token("user-token")
    headers = client._headers(None, {"Prefer": "return=representation"})
    assert headers["Authorization"] == "Bearer user-token"
    assert headers["apikey"] == "anon"
    assert headers["Prefer"] == "return=representation"
    assert client._headers("other", None)["Authorization"] == "Bearer other"


async def test_request_against_local_server():
    async def questions(request):
        assert request.headers["apikey"] == "anon"
        assert request.headers["Authorization"] == "Bearer user-token"
        assert request.query["active"] == "eq.true"
        return web.json_response([QUESTION_ROW])

    async def logout(request):
        return web.Response(status=204)

    async def missing(request):
        return web.Response(status=404, text="not found")

    app = web.Application()
    app.router.add_get("/rest/v1/questions", questions)
    app.router.add_post("/auth/v1/logout", logout)
    app.router.add_get("/rest/v1/missing", missing)

    server = test_utils.TestServer(app)
    await server.start_server()
    client = SupabaseClient(f"http://{server.host}:{server.port}/", "anon")
    client.set_access_token("user-token")
    try:
        rows = await client.request("GET", "/rest/v1/questions", params={"active": "eq.true"})
        assert rows[0]["id"] == "q1"

        assert await client.request("POST", "/auth/v1/logout") is None

        with pytest.raises(BackendError) as info:
            await client.request("GET", "/rest/v1/missing")
        assert info.value.status == 404
        assert client.total_requests == 3
    finally:
        await client.close()
        await server.close()
