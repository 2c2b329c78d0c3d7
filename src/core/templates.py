"""Reply placeholder expansion (core domain).

Supported placeholders: ``{name}``, ``{time}``, ``{date}``, ``{phone}``,
``{message}``, ``{group}`` and ``{memberCount}``. Anything else that looks
like a placeholder is left as written.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.models import ChatContext, IncomingMessage

DIRECT_MESSAGE_LABEL = "Direct Message"
FALLBACK_NAME = "there"
TIME_FORMAT = "%H:%M:%S"
DATE_FORMAT = "%d-%m-%Y"


@dataclass(frozen=True)
class TemplateContext:
    """Per-message values available to reply templates."""

    display_name: str
    now_time: str
    now_date: str
    phone_number: str
    message_body: str
    group_name: str
    member_count: str

    def values(self) -> dict[str, str]:
        return {
            "{name}": self.display_name,
            "{time}": self.now_time,
            "{date}": self.now_date,
            "{phone}": self.phone_number,
            "{message}": self.message_body,
            "{group}": self.group_name,
            "{memberCount}": self.member_count,
        }


PLACEHOLDERS = tuple(TemplateContext("", "", "", "", "", "", "").values())
_PLACEHOLDER_RE = re.compile("|".join(re.escape(token) for token in PLACEHOLDERS))


def expand(template: str, context: TemplateContext) -> str:
    """Replace every known placeholder in one pass.

    Substituted values are not scanned again, so a message body containing
    ``{name}`` stays literal.
    """

    values = context.values()
    return _PLACEHOLDER_RE.sub(lambda match: values[match.group(0)], template)


def build_template_context(
    message: IncomingMessage,
    chat: ChatContext,
    now: Optional[datetime] = None,
) -> TemplateContext:
    """Collect template values for one message."""

    now = now or datetime.now().astimezone()
    if chat.is_group:
        group_name = chat.group_name or chat.chat_id
        member_count = str(chat.size)
    else:
        group_name = DIRECT_MESSAGE_LABEL
        member_count = "1"

    return TemplateContext(
        display_name=message.sender_display_name or FALLBACK_NAME,
        now_time=now.strftime(TIME_FORMAT),
        now_date=now.strftime(DATE_FORMAT),
        phone_number=message.phone_number or "",
        message_body=message.body,
        group_name=group_name,
        member_count=member_count,
    )
