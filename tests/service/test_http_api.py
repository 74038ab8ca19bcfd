"""HTTP API tests through ASGITransport with in-memory capabilities."""

import base64

from httpx import ASGITransport, AsyncClient
import pytest
import pytest_asyncio

from explorable_research.capabilities import Capabilities
from explorable_research.config import Settings, get_settings
from explorable_research.llm import MODELS
from explorable_research.main import create_app
from explorable_research.pipeline.templates import TemplateRegistry
from explorable_research.tests.mocks.llm import make_fragment
from explorable_research.tests.mocks.stores import MockUserStore

API_KEY = "er_test_key"
OTHER_KEY = "er_other_key"
AUTH = {"X-API-Key": API_KEY}
PAPER = "https://arxiv.org/abs/2301.00001"


@pytest.fixture
def capabilities(project_store, blob_store, resolver, orchestrator, processor):
    return Capabilities(
        projects=project_store,
        blobs=blob_store,
        users=MockUserStore({API_KEY: "user-1", OTHER_KEY: "user-2"}),
        resolver=resolver,
        sandboxes=orchestrator,
        templates=TemplateRegistry("production"),
        processor=processor,
    )


@pytest.fixture
def app(capabilities):
    app = create_app()
    app.state.capabilities = capabilities
    app.dependency_overrides[get_settings] = lambda: Settings(
        database_url="sqlite+aiosqlite:///:memory:", max_pdf_size=64, _env_file=None
    )
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


class TestService:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.json()["name"] == "Explorable Research API"

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self, client):
        response = await client.get("/health", headers={"X-Correlation-ID": "req_abc"})

        assert response.headers["X-Correlation-ID"] == "req_abc"


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_key(self, client):
        response = await client.get("/api/projects")

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": {"code": "UNAUTHORIZED", "message": "API key is required"},
        }

    @pytest.mark.asyncio
    async def test_invalid_key(self, client):
        response = await client.get("/api/projects", headers={"X-API-Key": "er_nope"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid API key"

    @pytest.mark.asyncio
    async def test_bearer_token(self, client):
        response = await client.get(
            "/api/projects", headers={"Authorization": f"Bearer {API_KEY}"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "projects": []}


class TestV1Create:
    @pytest.mark.asyncio
    async def test_create_sync(self, client):
        response = await client.post(
            "/api/v1/projects/create",
            headers=AUTH,
            json={"arxiv_url": PAPER, "include_code": True, "include_messages": True},
        )

        assert response.status_code == 200
        project = response.json()["project"]
        assert project["status"] == "ready"
        assert project["preview_url"] == "https://3000-sbx-1.e2b.app"
        assert project["sandbox_id"] == "sbx-1"
        assert project["template"] == "explorable-research-developer"
        assert project["code"] == make_fragment().code
        assert [m["role"] for m in project["messages"]] == ["user", "assistant"]
        assert "error_message" not in project

    @pytest.mark.asyncio
    async def test_create_sync_with_uploaded_pdf(self, client):
        response = await client.post(
            "/api/v1/projects/create",
            headers=AUTH,
            json={
                "pdf_file": base64.b64encode(b"%PDF-1.7").decode(),
                "pdf_filename": "paper.pdf",
                "template": "html-developer",
                "model": "anthropic/claude-sonnet-4.5",
                "model_config": {"temperature": 0.4, "maxTokens": 4096},
            },
        )

        assert response.status_code == 200
        assert response.json()["project"]["template"] == "html-developer"
        assert "code" not in response.json()["project"]

    @pytest.mark.asyncio
    async def test_model_config_reaches_the_llm(self, client, llm_factory):
        await client.post(
            "/api/v1/projects/create",
            headers=AUTH,
            json={"arxiv_url": PAPER, "model_config": {"topK": 20}},
        )

        [(model, config, _)] = llm_factory.created
        assert model == "google/gemini-3-pro-preview"
        assert config.top_k == 20

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"pdf_file": "JVBERi0="},
            {"arxiv_url": PAPER, "template": "nextjs-developer"},
            {"arxiv_url": PAPER, "instruction": "x" * 10_001},
            {"arxiv_url": PAPER, "images": [{"data": "iVBOR", "mimeType": "image/tiff"}]},
            {"arxiv_url": PAPER, "images": [{"data": "iVBOR", "mimeType": "image/png"}] * 9},
            {"arxiv_url": PAPER, "model_config": {"temperature": 3}},
        ],
    )
    async def test_validation_errors(self, client, body):
        response = await client.post("/api/v1/projects/create", headers=AUTH, json=body)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]

    @pytest.mark.asyncio
    async def test_invalid_base64(self, client):
        response = await client.post(
            "/api/v1/projects/create",
            headers=AUTH,
            json={"pdf_file": "not base64!", "pdf_filename": "paper.pdf"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_FORMAT"

    @pytest.mark.asyncio
    async def test_invalid_model(self, client):
        response = await client.post(
            "/api/v1/projects/create",
            headers=AUTH,
            json={"arxiv_url": PAPER, "model": "openai/gpt-2"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == {"code": "INVALID_MODEL", "message": "Invalid model ID"}

    @pytest.mark.asyncio
    async def test_invalid_arxiv_url(self, client):
        response = await client.post(
            "/api/v1/projects/create", headers=AUTH, json={"arxiv_url": "https://example.com/x"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_URL"

    @pytest.mark.asyncio
    async def test_sandbox_failure(self, client, sandbox_provider):
        sandbox_provider.fail_on["create"] = RuntimeError("quota exceeded")

        response = await client.post(
            "/api/v1/projects/create", headers=AUTH, json={"arxiv_url": PAPER}
        )

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "SANDBOX_CREATION_FAILED",
            "message": "Failed to create sandbox: quota exceeded",
        }


class TestV1Async:
    @pytest.mark.asyncio
    async def test_end_to_end_ready(self, client, processor):
        response = await client.post(
            "/api/v1/projects/create-async", headers=AUTH, json={"arxiv_url": PAPER}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "created"

        await processor.drain()
        status = await client.get(f"/api/v1/projects/{body['id']}/status", headers=AUTH)

        project = status.json()["project"]
        assert project["status"] == "ready"
        assert project["preview_url"] == "https://3000-sbx-1.e2b.app"
        assert project["title"] == "Attention Explorer"
        assert "error_message" not in project

    @pytest.mark.asyncio
    async def test_end_to_end_sandbox_failure(self, client, processor, sandbox_provider):
        sandbox_provider.fail_on["create"] = RuntimeError("quota exceeded")

        response = await client.post(
            "/api/v1/projects/create-async", headers=AUTH, json={"arxiv_url": PAPER}
        )
        await processor.drain()
        status = await client.get(
            f"/api/v1/projects/{response.json()['id']}/status", headers=AUTH
        )

        project = status.json()["project"]
        assert project["status"] == "failed"
        assert "Failed to create sandbox" in project["error_message"]
        assert "preview_url" not in project
        assert "sandbox_id" not in project

    @pytest.mark.asyncio
    async def test_status_of_other_users_project(self, client, processor):
        response = await client.post(
            "/api/v1/projects/create-async", headers=AUTH, json={"arxiv_url": PAPER}
        )
        await processor.drain()

        status = await client.get(
            f"/api/v1/projects/{response.json()['id']}/status", headers={"X-API-Key": OTHER_KEY}
        )

        assert status.status_code == 404
        assert status.json()["error"]["code"] == "NOT_FOUND"


class TestV1Continue:
    async def _ready_project(self, client) -> str:
        response = await client.post(
            "/api/v1/projects/create", headers=AUTH, json={"arxiv_url": PAPER}
        )
        return response.json()["project"]["id"]

    @pytest.mark.asyncio
    async def test_continue_sync(self, client):
        project_id = await self._ready_project(client)

        response = await client.post(
            f"/api/v1/projects/{project_id}/continue",
            headers=AUTH,
            json={"instruction": "Add a legend", "include_messages": True},
        )

        assert response.status_code == 200
        project = response.json()["project"]
        assert project["status"] == "ready"
        assert len(project["messages"]) == 4

    @pytest.mark.asyncio
    async def test_continue_async(self, client, processor):
        project_id = await self._ready_project(client)

        response = await client.post(
            f"/api/v1/projects/{project_id}/continue-async",
            headers=AUTH,
            json={"instruction": "Add a legend"},
        )
        await processor.drain()

        assert response.status_code == 202
        assert response.json() == {"success": True, "id": project_id, "status": "created"}

    @pytest.mark.asyncio
    async def test_continue_not_ready(self, client, project_store, llm_factory):
        record = await project_store.insert("user-1", template="explorable-research-developer")

        response = await client.post(
            f"/api/v1/projects/{record.id}/continue",
            headers=AUTH,
            json={"instruction": "Add a legend"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == {
            "code": "PROJECT_NOT_READY",
            "message": "Project is not ready (current status: created)",
        }
        assert llm_factory.invocations == []

    @pytest.mark.asyncio
    async def test_blank_instruction(self, client):
        response = await client.post(
            "/api/v1/projects/some-id/continue", headers=AUTH, json={"instruction": "   "}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_project(self, client):
        response = await client.post(
            "/api/v1/projects/missing/continue", headers=AUTH, json={"instruction": "More"}
        )

        assert response.status_code == 404


class TestModels:
    @pytest.mark.asyncio
    async def test_list_models(self, client):
        response = await client.get("/api/v1/models", headers=AUTH)

        body = response.json()
        assert body["count"] == len(MODELS)
        assert body["default_model"] == "google/gemini-3-pro-preview"
        assert {"id", "name", "provider", "provider_id"} <= set(body["models"][0])


class TestProjects:
    @pytest.mark.asyncio
    async def test_create_from_fragment_then_fetch_and_delete(
        self, client, processor, sandbox_provider
    ):
        fragment = make_fragment(template="html-developer", port=None, file_path="index.html")

        created = await client.post(
            "/api/projects",
            headers=AUTH,
            json={"fragment": fragment.model_dump(mode="json"), "title": "My explorable"},
        )
        await processor.drain()

        assert created.status_code == 201
        project_id = created.json()["id"]

        listed = await client.get("/api/projects", headers=AUTH)
        assert [p["id"] for p in listed.json()["projects"]] == [project_id]

        fetched = await client.get(f"/api/projects/{project_id}", headers=AUTH)
        project = fetched.json()["project"]
        assert project["title"] == "My explorable"
        assert project["status"] == "ready"
        assert project["fragment"]["template"] == "html-developer"
        assert project["code"] == fragment.code

        deleted = await client.delete(f"/api/projects/{project_id}", headers=AUTH)
        assert deleted.status_code == 204
        assert sandbox_provider.killed == ["sbx-1"]

        again = await client.delete(f"/api/projects/{project_id}", headers=AUTH)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_fragment(self, client):
        fragment = make_fragment().model_dump(mode="json")
        fragment["has_additional_dependencies"] = True

        response = await client.post("/api/projects", headers=AUTH, json={"fragment": fragment})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_fragment_with_unknown_template(self, client, sandbox_provider):
        fragment = make_fragment(template="nextjs-developer").model_dump(mode="json")

        response = await client.post("/api/projects", headers=AUTH, json={"fragment": fragment})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "TEMPLATE_NOT_FOUND"
        assert sandbox_provider.sandboxes == {}
        listed = await client.get("/api/projects", headers=AUTH)
        assert listed.json()["projects"] == []


class TestArxiv:
    @pytest.mark.asyncio
    async def test_anonymous_gets_inline_pdf(self, client):
        response = await client.post("/api/arxiv", json={"url": PAPER})

        body = response.json()
        assert body["arxiv_id"] == "2301.00001"
        assert body["title"] == "Attention Is All You Need"
        assert body["pdf"]["kind"] == "inline"
        assert base64.b64decode(body["pdf"]["data"]) == b"%PDF-1.7 paper"

    @pytest.mark.asyncio
    async def test_authenticated_gets_storage_reference(self, client, blob_store):
        response = await client.post("/api/arxiv", headers=AUTH, json={"url": PAPER})

        pdf = response.json()["pdf"]
        assert pdf["kind"] == "storage"
        assert pdf["storage_path"] in blob_store.blobs

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        response = await client.post("/api/arxiv", json={"url": "2301.99999"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestPdf:
    @pytest.mark.asyncio
    async def test_upload_and_download(self, client):
        upload = await client.post(
            "/api/pdf/upload",
            headers=AUTH,
            json={"data": base64.b64encode(b"%PDF-1.7").decode(), "filename": "paper.pdf"},
        )

        assert upload.status_code == 201
        path = upload.json()["storage_path"]
        assert path.startswith("user-1/")
        assert upload.json()["size"] == 8

        download = await client.get(f"/api/pdf/{path}", headers=AUTH)
        assert download.status_code == 200
        assert download.content == b"%PDF-1.7"
        assert download.headers["content-type"] == "application/pdf"

        foreign = await client.get(f"/api/pdf/{path}", headers={"X-API-Key": OTHER_KEY})
        assert foreign.status_code == 404

    @pytest.mark.asyncio
    async def test_rejects_non_pdf(self, client):
        response = await client.post(
            "/api/pdf/upload",
            headers=AUTH,
            json={"data": "aGVsbG8=", "filename": "notes.txt", "mimeType": "text/plain"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_FORMAT"

    @pytest.mark.asyncio
    async def test_rejects_oversized_upload(self, client):
        response = await client.post(
            "/api/pdf/upload",
            headers=AUTH,
            json={"data": base64.b64encode(b"x" * 65).decode(), "filename": "big.pdf"},
        )

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "TOO_LARGE"

    @pytest.mark.asyncio
    async def test_storage_failure(self, client, blob_store):
        blob_store.fail_put = RuntimeError("bucket unavailable")

        response = await client.post(
            "/api/pdf/upload",
            headers=AUTH,
            json={"data": base64.b64encode(b"%PDF").decode(), "filename": "paper.pdf"},
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "STORAGE_FAILED"
