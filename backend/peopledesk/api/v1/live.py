"""
Live views over WebSocket.

    /live/{view}?token=<bearer>&search=..&status=..&department=..

The server sends {"type": "snapshot", ...} with the complete current result
after the initial load and after every relevant change, never a delta. A
client may send {"search": .., "status": .., "department": ..} to change the
filters of a list view; the next snapshot reflects them. Load failures are
sent as {"type": "error", ...} and the connection stays open.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from peopledesk.auth.resolver import lookup_identity
from peopledesk.controllers import views
from peopledesk.controllers.live import LiveList, LiveView
from peopledesk.controllers.notifier import Notice, Notifier
from peopledesk.core.exceptions import AuthError
from peopledesk.runtime import Runtime
from peopledesk.services.departments import department_list_query
from peopledesk.services.employees import employee_list_query
from peopledesk.services.leave import leave_list_query
from peopledesk.store.query import ALL, QuerySpec

logger = logging.getLogger(__name__)

router = APIRouter()

LIST_VIEWS = {"employees", "departments", "leave_requests"}
VIEWS = LIST_VIEWS | {"metrics", "activities"}


def _list_query(name: str, filters: Dict[str, Any]) -> QuerySpec:
    search = filters.get("search")
    status_value = filters.get("status") or ALL
    if name == "employees":
        return employee_list_query(search, filters.get("department") or ALL, status_value)
    if name == "departments":
        return department_list_query(search, status_value)
    return leave_list_query(status_value)


def _build_view(name: str, runtime: Runtime, scoped, notifier: Notifier, filters: Dict[str, Any], send) -> LiveView:
    subscriptions = runtime.subscriptions
    search = filters.get("search")
    status_value = filters.get("status") or ALL
    if name == "employees":
        return views.employee_table(
            scoped, subscriptions, notifier, search, filters.get("department") or ALL, status_value, on_rows=send
        )
    if name == "departments":
        return views.department_grid(scoped, subscriptions, notifier, search, status_value, on_rows=send)
    if name == "leave_requests":
        return views.leave_list(scoped, subscriptions, notifier, status_value, on_rows=send)
    if name == "metrics":
        return views.dashboard_metrics(scoped, subscriptions, notifier, on_update=send)
    return views.activity_feed(scoped, subscriptions, notifier, on_update=send)


@router.websocket("/{view_name}")
async def live_view(
    websocket: WebSocket,
    view_name: str,
    token: Optional[str] = None,
):
    runtime: Runtime = websocket.app.state.runtime

    if view_name not in VIEWS:
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
        return
    try:
        session = await runtime.auth.session_from_token(token or "")
    except AuthError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    identity = await lookup_identity(runtime.store, session.user.id)
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    pending: Set[asyncio.Task] = set()

    async def send(value: Any) -> None:
        await websocket.send_json({"type": "snapshot", "view": view_name, "data": jsonable_encoder(value)})

    def forward_notice(notice: Notice) -> None:
        task = asyncio.create_task(
            websocket.send_json({"type": "error", "message": notice.message, "detail": notice.detail})
        )
        pending.add(task)
        task.add_done_callback(pending.discard)

    notifier = Notifier(history_size=20, sink=forward_notice)
    filters = {key: websocket.query_params.get(key) for key in ("search", "status", "department")}
    view = _build_view(view_name, runtime, runtime.scoped(identity), notifier, filters, send)
    logger.info(f"Live view {view_name} opened for {identity.id}")

    try:
        async with view:
            while True:
                message = await websocket.receive_text()
                if not isinstance(view, LiveList):
                    continue
                try:
                    update = json.loads(message)
                except ValueError:
                    continue
                if isinstance(update, dict):
                    filters.update({k: v for k, v in update.items() if k in filters})
                    await view.set_query(_list_query(view_name, filters))
    except WebSocketDisconnect:
        pass
    finally:
        view.close()
        for task in list(pending):
            task.cancel()
        logger.info(f"Live view {view_name} closed for {identity.id}")
