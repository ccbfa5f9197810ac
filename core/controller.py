"""Search flow: Bib Number in, one notification out.

`CertificateController.search` is the only entry point. It owns the busy flag
and the single current notification. A UI reads both after (or during, via
`on_change`) a search to decide what to show and whether the input is
enabled.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from core.certificate import CertificateExport, CertificateRenderer
from core.participants import ParticipantDirectory, normalize_identifier

logger = logging.getLogger(__name__)

MISSING_IDENTIFIER = "Please enter a Bib Number to search"
DATA_LOADING = "Participant data is still loading. Please wait a moment and try again."
NOT_FOUND = 'No participant found with Bib Number "{bib}". Please verify your Bib Number and try again.'
SUCCESS = "Certificate downloaded successfully!"
GENERATION_FAILED = (
    "An error occurred while generating your certificate. Please try again or contact support."
)


class NotificationKind(str, Enum):
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str


class CertificateController:
    def __init__(
        self,
        directory: ParticipantDirectory,
        renderer: CertificateRenderer,
        *,
        pacing_delay: float = 0.8,
        on_change: Optional[Callable[["CertificateController"], None]] = None,
    ):
        self.directory = directory
        self.renderer = renderer
        self.pacing_delay = pacing_delay
        self._on_change = on_change
        self._busy = False
        self._notification: Optional[Notification] = None
        self.last_export: Optional[CertificateExport] = None

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def notification(self) -> Optional[Notification]:
        return self._notification

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)

    def _notify(self, kind: NotificationKind, message: str) -> Notification:
        self._notification = Notification(kind, message)
        self._changed()
        return self._notification

    def _enter_busy(self) -> None:
        self._busy = True
        self._notification = None
        self.last_export = None
        self._changed()

    def _exit_busy(self) -> None:
        self._busy = False
        self._changed()

    async def search(self, raw_input: str) -> Optional[Notification]:
        """Look up `raw_input` and render its certificate.

        Returns the notification shown, or None when ignored because a search
        is already in progress.
        """
        if self._busy:
            logger.debug("Search ignored: another search is in progress")
            return None

        bib = normalize_identifier(raw_input)
        if not bib:
            return self._notify(NotificationKind.WARNING, MISSING_IDENTIFIER)

        if not self.directory.is_ready():
            return self._notify(NotificationKind.WARNING, DATA_LOADING)

        self._enter_busy()
        try:
            kind, message = await self._run(bib)
        except Exception:
            logger.exception("Certificate generation failed for bib %s", bib)
            kind, message = NotificationKind.ERROR, GENERATION_FAILED
        finally:
            self._exit_busy()
        return self._notify(kind, message)

    async def _run(self, bib: str) -> tuple[NotificationKind, str]:
        await asyncio.sleep(self.pacing_delay)

        record = self.directory.find_by_identifier(bib)
        if record is None:
            return NotificationKind.ERROR, NOT_FOUND.format(bib=bib)

        self.last_export = await self.renderer.render(record)
        return NotificationKind.SUCCESS, SUCCESS
