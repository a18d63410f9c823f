"""Per-application service container stored in ``app.extensions``."""

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from .datastore import DataStore
from .optimistic import NotificationLog, TaskBoard
from .repository import ProfileRepository, TaskRepository
from .store import TaskStore

EXTENSION_KEY = "teamboard"


@dataclass
class Services:
    data_store: DataStore
    tasks: TaskRepository
    profiles: ProfileRepository
    store: TaskStore
    board: TaskBoard
    notifications: NotificationLog


def init_services(app: Flask, data_store: DataStore) -> Services:
    """Wire repositories, the task store and the board around ``data_store``."""
    tasks = TaskRepository(data_store)
    store = TaskStore(tasks)
    notifications = NotificationLog(app.config.get("NOTIFICATION_LOG_SIZE", 100))
    services = Services(
        data_store=data_store,
        tasks=tasks,
        profiles=ProfileRepository(data_store),
        store=store,
        board=TaskBoard(tasks, store, notify=notifications),
        notifications=notifications,
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
