"""Dashboard pages: task board, task and category actions, view options and profile."""

import logging

from fastapi import APIRouter, Depends, Form, Request, Response, status
from fastapi.responses import RedirectResponse

from src.core import auth_client
from src.core.db_client import AuthError, DatabaseError, RecordNotFoundError
from src.core.errors import classify_backend_error
from src.domain.create_models import ProfileCreate
from src.domain.profile import Profile
from src.domain.task import TaskPriority
from src.domain.update_models import ProfileUpdate
from src.interface.web_session import (
    SessionBoard,
    WebSession,
    boards,
    clear_session_cookie,
    client_now,
    require_session,
    set_session_cookie,
    templates,
)
from src.services import profile_service
from src.services.board_view import SortKey, TaskProperty, ViewOptions, build_dashboard
from src.services.task_store import (
    AddCategory,
    Command,
    CommandResult,
    CreateTask,
    DeleteCompletedTasks,
    DeleteTask,
    DuplicateTask,
    Notification,
    NotificationLevel,
    PatchTask,
    RenameCategory,
    TaskStore,
)


logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


def _parse_edit(edit: str | None) -> tuple[str, str] | None:
    """Split an ``<id>:<field>`` edit toggle; anything else means view mode."""
    if not edit or ":" not in edit:
        return None
    target, field_name = edit.rsplit(":", 1)
    return (target, field_name) if target and field_name else None


def _failure(message: str, error: Exception) -> CommandResult:
    _, detail = classify_backend_error(error)
    return CommandResult(
        success=False,
        notification=Notification(level=NotificationLevel.ERROR, message=message, detail=detail),
    )


def _render(
    request: Request,
    session: WebSession,
    board: SessionBoard,
    *,
    result: CommandResult | None = None,
    edit: tuple[str, str] | None = None,
) -> Response:
    view = build_dashboard(board.store.state, board.options, now=client_now(request))
    context = {
        "view": view,
        "email": session.email,
        "notification": result.notification if result else None,
        "field_errors": result.field_errors if result else {},
        "edit_target": edit[0] if edit else None,
        "edit_field": edit[1] if edit else None,
        "priorities": list(TaskPriority),
        "sort_keys": list(SortKey),
        "properties": list(TaskProperty),
    }
    return templates.TemplateResponse(request, name="dashboard.html", context=context)


def _signed_out_redirect(session: WebSession) -> Response:
    boards.drop(session.sid)
    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    clear_session_cookie(response)
    return response


async def _session_board(session: WebSession) -> SessionBoard:
    """The cached board for this session, loading it when the cache is empty.

    Raises:
        DatabaseError: If the board has to be loaded and the fetch fails
    """
    board = boards.get(session.sid)
    if board is None:
        board = SessionBoard(store=TaskStore(owner_id=session.user_id, token=session.token))
        await board.store.load()
        boards.put(session.sid, board)
    return board


async def _run(request: Request, session: WebSession, command: Command) -> Response:
    """Dispatch a command against the session's board and re-render the dashboard."""
    try:
        board = await _session_board(session)
    except AuthError:
        return _signed_out_redirect(session)
    except DatabaseError as e:
        logger.error("dashboard_load_failed", extra={"user_id": session.user_id, "error": str(e)})
        empty = SessionBoard(store=TaskStore(owner_id=session.user_id, token=session.token))
        return _render(request, session, empty, result=_failure("Failed to load tasks.", e))

    try:
        result = await board.store.dispatch(command)
    except AuthError:
        return _signed_out_redirect(session)
    return _render(request, session, board, result=result)


@router.get("/dashboard")
async def get_dashboard(
    request: Request,
    edit: str | None = None,
    session: WebSession = Depends(require_session),
) -> Response:
    """Render the board.

    A plain page load verifies the session and rebuilds the board from a fresh
    fetch. With ``edit`` present and a cached board, only the edit toggle changes
    and nothing is fetched.
    """
    cached = boards.get(session.sid)
    edit_target = _parse_edit(edit)
    if edit is not None and cached is not None:
        return _render(request, session, cached, edit=edit_target)

    try:
        refreshed = await auth_client.get_current_session(session.token)
    except DatabaseError as e:
        logger.warning("session_refresh_unavailable", extra={"user_id": session.user_id, "error": str(e)})
        refreshed = session
    if refreshed is None:
        return _signed_out_redirect(session)

    options = cached.options if cached is not None else ViewOptions()
    board = SessionBoard(store=TaskStore(owner_id=refreshed.user_id, token=refreshed.token), options=options)
    boards.put(session.sid, board)

    result = None
    try:
        await board.store.load()
    except DatabaseError as e:
        logger.error("dashboard_load_failed", extra={"user_id": refreshed.user_id, "error": str(e)})
        result = _failure("Failed to load tasks.", e)

    web_session = WebSession(**refreshed.model_dump(exclude={"sid"}), sid=session.sid)
    response = _render(request, web_session, board, result=result, edit=edit_target)
    set_session_cookie(response, refreshed, sid=session.sid)
    return response


@router.post("/tasks")
async def create_task(
    *,
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    priority: str = Form(""),
    category_id: str = Form(""),
    due_date: str = Form(""),
    due_time: str = Form(""),
    session: WebSession = Depends(require_session),
) -> Response:
    command = CreateTask(
        title=title,
        description=description,
        priority=priority,
        category_id=category_id,
        due_date=due_date,
        due_time=due_time,
    )
    return await _run(request, session, command)


@router.post("/tasks/delete-completed")
async def delete_completed_tasks(request: Request, session: WebSession = Depends(require_session)) -> Response:
    return await _run(request, session, DeleteCompletedTasks())


@router.post("/tasks/{task_id}/patch")
async def patch_task(
    *,
    request: Request,
    task_id: str,
    field: str = Form(...),
    value: str = Form(""),
    session: WebSession = Depends(require_session),
) -> Response:
    """Change one field of one task; an unchecked completion box submits an empty value."""
    return await _run(request, session, PatchTask(task_id=task_id, field=field, value=value))


@router.post("/tasks/{task_id}/duplicate")
async def duplicate_task(request: Request, task_id: str, session: WebSession = Depends(require_session)) -> Response:
    return await _run(request, session, DuplicateTask(task_id=task_id))


@router.post("/tasks/{task_id}/delete")
async def delete_task(request: Request, task_id: str, session: WebSession = Depends(require_session)) -> Response:
    return await _run(request, session, DeleteTask(task_id=task_id))


@router.post("/categories")
async def add_category(
    *,
    request: Request,
    name: str = Form(""),
    session: WebSession = Depends(require_session),
) -> Response:
    return await _run(request, session, AddCategory(name=name))


@router.post("/categories/{category_id}/rename")
async def rename_category(
    *,
    request: Request,
    category_id: str,
    name: str = Form(""),
    session: WebSession = Depends(require_session),
) -> Response:
    return await _run(request, session, RenameCategory(category_id=category_id, name=name))


@router.post("/view")
async def update_view(
    *,
    request: Request,
    sort: SortKey = Form(SortKey.NONE),
    descending: bool = Form(False),
    show_completed: bool = Form(False),
    visible: list[TaskProperty] = Form([]),
    session: WebSession = Depends(require_session),
) -> Response:
    """Change sorting, completed-task visibility and shown properties; no backend call."""
    try:
        board = await _session_board(session)
    except AuthError:
        return _signed_out_redirect(session)
    except DatabaseError as e:
        empty = SessionBoard(store=TaskStore(owner_id=session.user_id, token=session.token))
        return _render(request, session, empty, result=_failure("Failed to load tasks.", e))

    board.options = ViewOptions(sort=sort, descending=descending, show_completed=show_completed, visible=set(visible))
    return _render(request, session, board)


def _render_profile(
    request: Request,
    session: WebSession,
    profile: Profile,
    notification: Notification | None = None,
) -> Response:
    context = {"profile": profile, "email": session.email, "notification": notification}
    return templates.TemplateResponse(request, name="profile.html", context=context)


@router.get("/profile")
async def get_profile(request: Request, session: WebSession = Depends(require_session)) -> Response:
    """Show the signed-in user's name and biography."""
    notification = None
    try:
        profile = await profile_service.get_profile(owner_id=session.user_id, token=session.token)
    except RecordNotFoundError:
        profile = Profile(id=session.user_id)
    except AuthError:
        return _signed_out_redirect(session)
    except DatabaseError as e:
        profile = Profile(id=session.user_id)
        notification = _failure("Failed to load profile.", e).notification

    return _render_profile(request, session, profile, notification)


@router.post("/profile")
async def post_profile(
    *,
    request: Request,
    full_name: str = Form(""),
    bio: str = Form(""),
    session: WebSession = Depends(require_session),
) -> Response:
    """Update name and biography, creating the profile if sign-up never did."""
    update = ProfileUpdate(full_name=full_name, bio=bio)
    try:
        try:
            profile = await profile_service.update_profile(owner_id=session.user_id, update=update, token=session.token)
        except RecordNotFoundError:
            profile = await profile_service.create_profile(
                profile=ProfileCreate(id=session.user_id, **update.to_record()),
                token=session.token,
            )
    except AuthError:
        return _signed_out_redirect(session)
    except DatabaseError as e:
        logger.error("profile_update_failed", extra={"user_id": session.user_id, "error": str(e)})
        unsaved = Profile(id=session.user_id, full_name=full_name, bio=bio or None)
        return _render_profile(request, session, unsaved, _failure("Failed to update profile.", e).notification)

    notification = Notification(level=NotificationLevel.SUCCESS, message="Profile updated.")
    return _render_profile(request, session, profile, notification)
