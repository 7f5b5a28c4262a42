"""
Email source

Mail is never indexed: every tool is answered live through an injected
``MailService`` (IMAP, Gmail API, ...), across all of the user's enabled
accounts concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from ...errors import UnknownToolError
from ...rag.types import SearchResult
from ..base import (
    DataSourceCapabilities,
    MetadataField,
    Scanner,
    ScanOptions,
    ScanResult,
    ToolDefinition,
    ToolExecutingPlugin,
    ToolParameter,
)
from .common import positive_limit

logger = logging.getLogger(__name__)

BODY_PREVIEW_CHARS = 500


@dataclass
class MailAccount:
    email: str
    label: str | None = None
    can_archive: bool = False
    can_delete: bool = False


@dataclass
class EmailMessage:
    id: str
    subject: str
    sender: str
    date: datetime
    account_email: str
    account_label: str | None = None
    is_read: bool = True
    has_attachments: bool = False
    snippet: str | None = None
    body: str | None = None


class MailService(Protocol):
    async def has_enabled_accounts(self) -> bool: ...

    async def list_accounts(self, user_id: str, account_email: str | None = None) -> list[MailAccount]: ...

    async def search(self, account: MailAccount, criteria: dict[str, Any]) -> list[EmailMessage]: ...

    async def list_unread(self, account: MailAccount, limit: int) -> list[EmailMessage]: ...

    async def get_message(self, account: MailAccount, message_id: str) -> EmailMessage | None: ...

    async def archive(self, account: MailAccount, message_id: str) -> None: ...

    async def delete(self, account: MailAccount, message_id: str) -> None: ...


def format_message(message: EmailMessage, index: int, detailed: bool = False) -> str:
    entry = f"{index}. **{message.subject}**"
    entry += f"\n   From: {message.sender}"
    entry += f"\n   Date: {message.date:%a, %b %d, %Y %I:%M %p}"
    entry += f"\n   Account: {message.account_label or message.account_email}"
    entry += f"\n   ID: {message.id}"
    if not message.is_read:
        entry += " [UNREAD]"
    if message.has_attachments:
        entry += " [ATTACHMENT]"

    if detailed and message.body:
        body = message.body
        if len(body) > BODY_PREVIEW_CHARS:
            body = body[:BODY_PREVIEW_CHARS] + "..."
        entry += f"\n   Body:\n{body}"
    elif message.snippet:
        entry += f"\n   Preview: {message.snippet}"
    return entry


class EmailPlugin(ToolExecutingPlugin):
    name = "email"
    display_name = "Email"
    capabilities = DataSourceCapabilities(
        supports_metadata_query=False,
        supports_semantic_search=False,
        supports_scanning=False,
        requires_authentication=True,
    )

    def __init__(self, mail_service: MailService | None = None, scanner: Scanner | None = None) -> None:
        super().__init__(scanner=scanner)
        self.mail_service = mail_service

    def get_metadata_schema(self) -> list[MetadataField]:
        return [
            MetadataField("from", "From", "string", True, True, "Email sender"),
            MetadataField("to", "To", "string", True, True, "Email recipient"),
            MetadataField("subject", "Subject", "string", True, True, "Email subject"),
            MetadataField("date", "Date", "date", True, True, "Email date"),
            MetadataField("accountEmail", "Account", "string", True, True, "Email account"),
        ]

    async def query_by_metadata(self, params: dict[str, Any]) -> list[SearchResult]:
        # Nothing is stored for email; every tool is custom-executed
        return []

    async def scan(self, options: ScanOptions | None = None) -> ScanResult:
        return ScanResult(indexed=0, deleted=0)

    def get_available_tools(self) -> list[ToolDefinition]:
        account_param = ToolParameter("accountEmail", "string", False, "Filter to a specific email account")
        required_account = ToolParameter(
            "accountEmail", "string", True, "The email account this message belongs to"
        )
        return [
            ToolDefinition(
                name="search_email",
                description=(
                    "Search the user's email accounts live. Use this for questions about "
                    "messages from someone, about a subject, or within a date range."
                ),
                parameters=(
                    ToolParameter("query", "string", False, "Free-text search query"),
                    ToolParameter("sender", "string", False, "Filter by sender email or name"),
                    ToolParameter("subject", "string", False, "Filter by subject text"),
                    ToolParameter("after", "string", False, "Only emails after this date (YYYY-MM-DD)"),
                    ToolParameter("before", "string", False, "Only emails before this date (YYYY-MM-DD)"),
                    ToolParameter("unreadOnly", "boolean", False, "Only unread/new emails"),
                    account_param,
                    ToolParameter("limit", "number", False, "Max results (default: 25)"),
                ),
                has_custom_execution=True,
            ),
            ToolDefinition(
                name="list_unread_email",
                description="List unread emails across the user's accounts.",
                parameters=(
                    account_param,
                    ToolParameter("limit", "number", False, "Max results per account (default: 15)"),
                ),
                has_custom_execution=True,
            ),
            ToolDefinition(
                name="get_email_detail",
                description="Get the full content of one email found by a previous search.",
                parameters=(
                    ToolParameter("messageId", "string", True, "The message ID from a previous search result"),
                    required_account,
                ),
                has_custom_execution=True,
            ),
            ToolDefinition(
                name="archive_email",
                description="Archive one email. Only use this when the user explicitly asks.",
                parameters=(
                    ToolParameter("messageId", "string", True, "The message ID to archive"),
                    required_account,
                ),
                has_custom_execution=True,
            ),
            ToolDefinition(
                name="delete_email",
                description="Delete one email. Only use this when the user explicitly asks.",
                parameters=(
                    ToolParameter("messageId", "string", True, "The message ID to delete"),
                    required_account,
                ),
                has_custom_execution=True,
            ),
        ]

    async def is_configured(self) -> bool:
        if self.mail_service is None:
            return False
        return await self.mail_service.has_enabled_accounts()

    async def execute_tool(
        self,
        tool_name: str,
        params: dict[str, Any],
        original_query: str | None = None,
    ) -> str:
        handlers = {
            "search_email": self._search,
            "list_unread_email": self._list_unread,
            "get_email_detail": self._get_detail,
            "archive_email": self._archive,
            "delete_email": self._delete,
        }
        handler = handlers.get(tool_name)
        if handler is None:
            raise UnknownToolError(tool_name, self.name)

        user_id = params.get("userId")
        if not user_id:
            logger.error("No userId in email tool params. Keys: %s", list(params))
            return "Error: Unable to determine user. Please log in and try again."
        if self.mail_service is None:
            return "No email accounts configured. Add an email account in Settings."

        # Models sometimes pass a provider name ("gmail") instead of an address
        account_filter = params.get("accountEmail")
        if account_filter and "@" not in str(account_filter):
            logger.info("Ignoring non-email accountEmail filter: %s", account_filter)
            account_filter = None

        accounts = await self.mail_service.list_accounts(user_id, account_filter)
        if not accounts:
            if account_filter:
                return f"No enabled email account found for {account_filter}. Check your email configuration."
            return "No email accounts configured. Add an email account in Settings."

        try:
            return await handler(accounts, params)
        except Exception as e:
            logger.error("Error executing %s: %s", tool_name, e, exc_info=True)
            return f"Error executing {tool_name}: {e}"

    async def _gather(self, accounts: list[MailAccount], fetch) -> tuple[list[EmailMessage], list[str]]:
        results = await asyncio.gather(*(fetch(a) for a in accounts), return_exceptions=True)
        messages: list[EmailMessage] = []
        errors: list[str] = []
        for account, result in zip(accounts, results):
            if isinstance(result, BaseException):
                logger.error("Mail request failed for %s: %s", account.email, result)
                errors.append(str(result) or "failed")
            else:
                messages.extend(result)
        messages.sort(key=lambda m: m.date, reverse=True)
        return messages, errors

    async def _search(self, accounts: list[MailAccount], params: dict[str, Any]) -> str:
        limit = positive_limit(params, 25)
        criteria = {
            key: params.get(key)
            for key in ("query", "subject", "after", "before", "unreadOnly")
            if params.get(key) is not None
        }
        if params.get("sender"):
            criteria["from"] = params["sender"]
        criteria["limit"] = limit

        messages, errors = await self._gather(
            accounts, lambda account: self.mail_service.search(account, criteria)
        )
        messages = messages[:limit]
        if not messages:
            note = f"\n\nErrors: {'; '.join(errors)}" if errors else ""
            return f"No emails found matching the search criteria.{note}"

        formatted = "\n\n".join(format_message(m, i) for i, m in enumerate(messages, start=1))
        note = f"\n\n(Errors on some accounts: {'; '.join(errors)})" if errors else ""
        return f"Found {len(messages)} email(s):\n\n{formatted}{note}"

    async def _list_unread(self, accounts: list[MailAccount], params: dict[str, Any]) -> str:
        limit = positive_limit(params, 15)
        messages, errors = await self._gather(
            accounts, lambda account: self.mail_service.list_unread(account, limit)
        )
        if not messages:
            note = f"\n\nErrors: {'; '.join(errors)}" if errors else ""
            return f"No unread emails found.{note}"

        formatted = "\n\n".join(format_message(m, i) for i, m in enumerate(messages, start=1))
        note = f"\n\n(Errors on some accounts: {'; '.join(errors)})" if errors else ""
        return f"Found {len(messages)} unread email(s):\n\n{formatted}{note}"

    def _account_for(self, accounts: list[MailAccount], params: dict[str, Any]) -> MailAccount | None:
        return next((a for a in accounts if a.email == params.get("accountEmail")), None)

    async def _get_detail(self, accounts: list[MailAccount], params: dict[str, Any]) -> str:
        account = self._account_for(accounts, params)
        if account is None:
            return f"Account {params.get('accountEmail')} not found or not accessible."
        message = await self.mail_service.get_message(account, str(params["messageId"]))
        if message is None:
            return f"Email with ID {params['messageId']} not found."
        return format_message(message, 1, detailed=True)

    async def _archive(self, accounts: list[MailAccount], params: dict[str, Any]) -> str:
        account = self._account_for(accounts, params)
        if account is None:
            return f"Account {params.get('accountEmail')} not found or not accessible."
        if not account.can_archive:
            return f"Account {account.email} has read-only permissions. Update permissions in Settings to archive emails."
        await self.mail_service.archive(account, str(params["messageId"]))
        return f"Email {params['messageId']} archived."

    async def _delete(self, accounts: list[MailAccount], params: dict[str, Any]) -> str:
        account = self._account_for(accounts, params)
        if account is None:
            return f"Account {params.get('accountEmail')} not found or not accessible."
        if not account.can_delete:
            return f"Account {account.email} does not have delete permissions. Update permissions in Settings."
        await self.mail_service.delete(account, str(params["messageId"]))
        return f"Email {params['messageId']} deleted."
