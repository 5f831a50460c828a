"""
The application's live views, one factory per screen.

Each factory wires a service's read to the subscriptions that invalidate it.
"""

from datetime import date
from typing import Any, Optional

from peopledesk.access.scoped import ScopedStore
from peopledesk.controllers.live import LiveList, LiveView, UpdateCallback
from peopledesk.controllers.notifier import Notifier
from peopledesk.realtime.events import EventMask
from peopledesk.realtime.subscriptions import SubscriptionManager
from peopledesk.services.dashboard import DashboardService
from peopledesk.services.departments import DepartmentService, department_list_query
from peopledesk.services.employees import employee_list_query
from peopledesk.services.leave import LeaveService, leave_list_query
from peopledesk.store.query import ALL, Collection


def employee_table(
    scoped: ScopedStore,
    subscriptions: SubscriptionManager,
    notifier: Notifier,
    search: Optional[str] = None,
    department: Any = ALL,
    status: Any = ALL,
    on_rows: Optional[UpdateCallback] = None,
) -> LiveList:
    return LiveList(
        scoped,
        subscriptions,
        Collection.EMPLOYEES,
        employee_list_query(search, department, status),
        notifier,
        on_rows=on_rows,
        error_message="Error fetching employees",
    )


def department_grid(
    scoped: ScopedStore,
    subscriptions: SubscriptionManager,
    notifier: Notifier,
    search: Optional[str] = None,
    status: Any = ALL,
    on_rows: Optional[UpdateCallback] = None,
) -> LiveList:
    return LiveList(
        scoped,
        subscriptions,
        Collection.DEPARTMENTS,
        department_list_query(search, status),
        notifier,
        on_rows=on_rows,
        transform=DepartmentService(scoped).with_counts,
        error_message="Error fetching departments",
        # Headcounts move with employee changes
        extra_sources=[(Collection.EMPLOYEES, EventMask.ALL_CHANGES)],
    )


def leave_list(
    scoped: ScopedStore,
    subscriptions: SubscriptionManager,
    notifier: Notifier,
    status: Any = ALL,
    on_rows: Optional[UpdateCallback] = None,
) -> LiveList:
    return LiveList(
        scoped,
        subscriptions,
        Collection.LEAVE_REQUESTS,
        leave_list_query(status),
        notifier,
        on_rows=on_rows,
        transform=LeaveService(scoped).with_names,
        error_message="Error fetching leave requests",
    )


def leave_calendar(
    scoped: ScopedStore,
    subscriptions: SubscriptionManager,
    notifier: Notifier,
    start: date,
    end: date,
    status: Any = ALL,
    on_update: Optional[UpdateCallback] = None,
) -> LiveView:
    service = LeaveService(scoped)
    return LiveView(
        subscriptions,
        lambda: service.calendar(start, end, status),
        [(Collection.LEAVE_REQUESTS, EventMask.ALL_CHANGES), (Collection.EMPLOYEES, EventMask.ALL_CHANGES)],
        notifier,
        on_update=on_update,
        error_message="Error fetching leave calendar",
    )


def dashboard_metrics(
    scoped: ScopedStore,
    subscriptions: SubscriptionManager,
    notifier: Notifier,
    on_update: Optional[UpdateCallback] = None,
) -> LiveView:
    return LiveView(
        subscriptions,
        DashboardService(scoped).metrics,
        [(Collection.EMPLOYEES, EventMask.ALL_CHANGES), (Collection.DEPARTMENTS, EventMask.ALL_CHANGES)],
        notifier,
        on_update=on_update,
        error_message="Error fetching metrics",
    )


def activity_feed(
    scoped: ScopedStore,
    subscriptions: SubscriptionManager,
    notifier: Notifier,
    on_update: Optional[UpdateCallback] = None,
) -> LiveView:
    return LiveView(
        subscriptions,
        DashboardService(scoped).activities,
        [(Collection.EMPLOYEES, EventMask.INSERT_ONLY)],
        notifier,
        on_update=on_update,
        error_message="Error fetching activities",
    )
