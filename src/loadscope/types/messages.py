"""Notification types pushed from the session core to its observers."""

from __future__ import annotations

import types
from dataclasses import dataclass

from mashumaro import DataClassDictMixin
from mashumaro.types import Discriminator

STATUS_LEVEL = types.SimpleNamespace()
STATUS_LEVEL.INFO = "info"
STATUS_LEVEL.SUCCESS = "success"
STATUS_LEVEL.WARNING = "warning"
STATUS_LEVEL.ERROR = "error"


@dataclass
class Message(DataClassDictMixin):
    """Base class for all messages."""

    def __repr__(self):
        body = ", ".join(f"{key}={val}" for key, val in self.__dict__.items())
        return f"{self.__class__.__name__}({body})"


@dataclass(kw_only=True, repr=False)
class Notification(Message):
    type: str

    class Config:
        discriminator = Discriminator(field="type", include_subtypes=True)


@dataclass(kw_only=True, repr=False)
class StatusUpdate(Notification):
    """Human readable status line, e.g. for a status badge."""

    type: str = "status"
    text: str
    level: str = STATUS_LEVEL.INFO


@dataclass(kw_only=True, repr=False)
class ControlsState(Notification):
    """Which user actions are currently allowed."""

    type: str = "controls"
    connect: bool = True
    start: bool = True
    stop: bool = False
    download: bool = False
