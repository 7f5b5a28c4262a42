from .calendar import CalendarEvent, CalendarPlugin, EventProvider, resolve_event_window
from .email import EmailMessage, EmailPlugin, MailAccount, MailService
from .files import FilesPlugin
from .goodreads import GoodreadsPlugin
from .paperless import PaperlessPlugin

__all__ = [
    "CalendarEvent",
    "CalendarPlugin",
    "EmailMessage",
    "EmailPlugin",
    "EventProvider",
    "FilesPlugin",
    "GoodreadsPlugin",
    "MailAccount",
    "MailService",
    "PaperlessPlugin",
    "resolve_event_window",
]
