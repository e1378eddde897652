from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from rental_client.core.config import settings
from rental_client.core.errors import ApiError


class Composer:
    """
    Draft state behind a message input box.

    ``submit()`` clears the draft while the send is in flight and puts the
    typed text back if the send fails, so nothing the user wrote is lost.
    """

    def __init__(
        self,
        send: Callable[[str], Awaitable[Any]],
        *,
        max_length: int | None = None,
        templates: list[str] | None = None,
    ) -> None:
        self._send = send
        self.max_length = max_length or settings.message_max_length
        self.quick_templates = list(
            templates if templates is not None else settings.quick_message_templates
        )
        self.draft = ""
        self.sending = False
        self.error: str | None = None

    def update(self, text: str) -> None:
        self.draft = text[: self.max_length]

    def use_template(self, template: str) -> None:
        self.update(template)

    @property
    def remaining(self) -> int:
        return self.max_length - len(self.draft)

    @property
    def can_submit(self) -> bool:
        return bool(self.draft.strip()) and not self.sending

    async def submit(self) -> Any:
        if not self.can_submit:
            return None

        original = self.draft
        self.sending = True
        self.error = None
        self.draft = ""
        try:
            return await self._send(original.strip())
        except ApiError as exc:
            self.draft = original
            self.error = str(exc)
            raise
        finally:
            self.sending = False
