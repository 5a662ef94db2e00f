"""FastAPI app factory.

Endpoints are thin wrappers over :class:`AssignmentService`; the button and the
headless command share the exact same flow. Run with any ASGI server, e.g.
``uvicorn --factory aha_assign_copilot.server.app:create_app``.
"""

from __future__ import annotations

import logging

from fastapi import Body, FastAPI, HTTPException, Response

from aha_assign_copilot import __version__
from aha_assign_copilot.orchestrator.assignment import AssignmentService, read_assignment
from aha_assign_copilot.orchestrator.config import OrchestratorSettings
from aha_assign_copilot.orchestrator.errors import AssignCopilotError, UnsupportedRecordError
from aha_assign_copilot.orchestrator.fetcher import (
    ContentFetcher,
    JsonRecordSource,
    RecordDataSource,
)
from aha_assign_copilot.orchestrator.field_store import EXTENSION_ID, FIELD_NAME, JsonFieldStore
from aha_assign_copilot.orchestrator.github.client import (
    AuthBroker,
    GitHubClient,
    StaticTokenBroker,
)
from aha_assign_copilot.orchestrator.records import RecordRef, parse_record_ref
from aha_assign_copilot.orchestrator.view import (
    ButtonStatus,
    ButtonView,
    initial_view,
    view_for_snapshot,
)
from aha_assign_copilot.server.models import AssignRequest, HealthResponse

logger = logging.getLogger(__name__)

_RECORD_PATH = "/api/records/{typename}/{reference_num}/copilot"


def _record_or_400(typename: str, reference_num: str) -> RecordRef:
    try:
        return parse_record_ref(typename, reference_num)
    except (UnsupportedRecordError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def create_app(
    settings: OrchestratorSettings | None = None,
    *,
    record_source: RecordDataSource | None = None,
    broker: AuthBroker | None = None,
) -> FastAPI:
    settings = settings or OrchestratorSettings()
    source = record_source or JsonRecordSource(settings.records_path)
    token_broker = broker or StaticTokenBroker(settings.github_token)
    field_store = JsonFieldStore(settings.extension_fields_file)

    app = FastAPI(
        title="Aha! Assign Copilot",
        version=__version__,
        description="Send Aha! Features and Requirements to the GitHub Copilot coding agent.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.state.settings = settings

    def _service(github: GitHubClient) -> AssignmentService:
        return AssignmentService(
            fetcher=ContentFetcher(source),
            github=github,
            field_store=field_store,
            assignee=settings.copilot_assignee,
        )

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__, repository=settings.repository)

    @app.get(_RECORD_PATH, response_model=ButtonView)
    def get_button(typename: str, reference_num: str) -> ButtonView:
        record = _record_or_400(typename, reference_num)
        try:
            existing = read_assignment(field_store, record.reference_num)
        except AssignCopilotError as e:
            return ButtonView(status=ButtonStatus.ERROR, message=f"Error: {e}")
        return initial_view(settings.extension_settings(), existing)

    @app.post(_RECORD_PATH, response_model=ButtonView)
    def click_button(
        typename: str,
        reference_num: str,
        req: AssignRequest | None = Body(default=None),
    ) -> ButtonView:
        record = _record_or_400(typename, reference_num)
        overrides = req or AssignRequest()
        extension_settings = settings.extension_settings(
            repository=overrides.repository,
            base_branch=overrides.base_branch,
            custom_instructions=overrides.custom_instructions,
        )

        github = GitHubClient(broker=token_broker, base_url=settings.github_base_url)
        try:
            snapshot = _service(github).run(record, extension_settings)
        finally:
            github.close()
        return view_for_snapshot(snapshot)

    @app.delete(_RECORD_PATH, status_code=204)
    def clear_assignment(typename: str, reference_num: str) -> Response:
        record = _record_or_400(typename, reference_num)
        try:
            cleared = field_store.clear(record.reference_num, EXTENSION_ID, FIELD_NAME)
        except AssignCopilotError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e
        if not cleared:
            raise HTTPException(status_code=404, detail="Record is not assigned to Copilot")
        logger.info("Copilot assignment cleared", extra={"reference_num": record.reference_num})
        return Response(status_code=204)

    return app
