"""Ticket codes and their QR artifacts.

A code looks like ``TICKET-20260211-AB12CD34``: prefix, generation date and a
random suffix. The QR payload embeds the code, the event title and the
generation timestamp so a scanner can show what it just read without a
lookup. Nothing here touches the network or the database.
"""
from __future__ import annotations

import base64
import io
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

import qrcode
from qrcode.constants import ERROR_CORRECT_M

SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 8
DATA_URL_PREFIX = "data:image/png;base64,"


@dataclass(frozen=True)
class GeneratedTicket:
    code: str
    qr_code_data: str  # PNG as a data URL

    @property
    def png(self) -> bytes:
        return data_url_to_bytes(self.qr_code_data)


def data_url_to_bytes(data_url: str) -> bytes:
    _, _, encoded = data_url.partition(",")
    return base64.b64decode(encoded or data_url)


def render_qr_png(payload: str) -> bytes:
    qr = qrcode.QRCode(version=None, error_correction=ERROR_CORRECT_M, box_size=10, border=2)
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TicketGenerator:
    def __init__(
        self,
        prefix: str = "TICKET",
        clock: Callable[[], datetime] = _utc_now,
        choice: Callable[[str], str] = secrets.choice,
        renderer: Callable[[str], bytes] = render_qr_png,
    ) -> None:
        self.prefix = prefix
        self._clock = clock
        self._choice = choice
        self._render = renderer

    def new_code(self, at: datetime) -> str:
        suffix = "".join(self._choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
        return f"{self.prefix}-{at.strftime('%Y%m%d')}-{suffix}"

    def artifact(self, code: str, event_title: str, at: datetime) -> str:
        payload = f"{code}|{event_title}|{at.isoformat()}"
        return DATA_URL_PREFIX + base64.b64encode(self._render(payload)).decode("ascii")

    def generate(self, count: int, event_title: str) -> list[GeneratedTicket]:
        if count < 1:
            raise ValueError("count must be at least 1")
        at = self._clock()
        codes: list[str] = []
        seen: set[str] = set()
        while len(codes) < count:
            code = self.new_code(at)
            if code in seen:
                continue
            seen.add(code)
            codes.append(code)
        return [GeneratedTicket(code=c, qr_code_data=self.artifact(c, event_title, at)) for c in codes]
