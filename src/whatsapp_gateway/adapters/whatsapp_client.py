"""WhatsApp Web client adapter driven by Playwright."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from playwright.async_api import (
    Browser,
    BrowserContext,
    Locator,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from whatsapp_gateway.config import DEFAULT_USER_AGENT
from whatsapp_gateway.domain.events import (
    STATE_CLOSED,
    STATE_CONNECTED,
    STATE_DISCONNECTED,
    STATE_INITIALIZING,
    STATE_LOGGED_OUT,
    STATE_QRCODE,
    ClientEvent,
    QrChallenge,
    StateChanged,
)

logger = logging.getLogger(__name__)

WHATSAPP_WEB_URL = "https://web.whatsapp.com/"

_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
]

_QR_SELECTORS = [
    'canvas[aria-label="Scan this QR code to link a device!"]',
    'canvas[aria-label*="QR"]',
    'div[data-ref] canvas',
    'div[data-testid="qrcode"] canvas',
]

_LOGGED_IN_SELECTORS = [
    '[data-testid="chat-list"]',
    'div[aria-label="Chat list"]',
    "#side",
]

_COMPOSE_SELECTORS = [
    '[data-testid="conversation-compose-box-input"]',
    'footer div[contenteditable="true"][role="textbox"]',
    '#main footer div[contenteditable="true"]',
]

_SEND_SELECTORS = [
    '[data-testid="send"]',
    'button[aria-label="Send"]',
    'span[data-icon="send"]',
    'div[role="button"][aria-label="Send"]',
]

_ATTACH_SELECTORS = [
    '[data-testid="attach-menu-plus"]',
    'span[data-icon="plus-rounded"]',
    'span[data-icon="attach-menu-plus"]',
    'button[aria-label="Attach"]',
    'div[aria-label="Attach"]',
]

_CAPTION_SELECTORS = [
    'div[aria-label="Add a caption"]',
    '[data-testid="media-caption-input-container"] [contenteditable="true"]',
    'div[contenteditable="true"][data-tab="6"]',
]

_MENU_SELECTORS = [
    '[data-testid="menu-bar-menu"]',
    'span[data-icon="menu"]',
    'div[aria-label="Menu"]',
    'button[aria-label="Menu"]',
]

_LOGOUT_ITEM_SELECTORS = [
    'div[aria-label="Log out"]',
    'li:has-text("Log out")',
]

_LOGOUT_CONFIRM_SELECTORS = [
    '[data-testid="popup-controls-ok"]',
    'div[role="dialog"] button:has-text("Log out")',
]

_INVALID_NUMBER_POPUP = 'div[data-testid="popup-controls-ok"]'

_POLL_INTERVAL_SECONDS = 2.0
_CHAT_LOAD_TIMEOUT_MS = 30_000
_PAGE_LOAD_TIMEOUT_MS = 60_000

_FINAL_STATES = frozenset({STATE_CLOSED, STATE_LOGGED_OUT})


class WhatsAppClientError(RuntimeError):
    """Raised when WhatsApp Web cannot perform a requested action."""


class WhatsAppClient(Protocol):
    """Interface for an automated WhatsApp Web session."""

    async def send_text(self, chat_id: str, message: str) -> None:
        """Send a text message to a chat."""

    async def send_file(
        self, chat_id: str, path: str, filename: str, caption: str = ""
    ) -> None:
        """Send a file from disk to a chat."""

    async def logout(self) -> None:
        """Unlink the device from the WhatsApp account."""

    async def close(self) -> None:
        """Stop the browser session."""

    async def get_session_token(self) -> dict[str, object]:
        """Return the serialized browser state for this session."""


@dataclass(frozen=True)
class ClientOptions:
    """Arguments used to start a WhatsApp Web session."""

    session: str
    events: asyncio.Queue[ClientEvent]
    session_data: dict[str, object] | None = None
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT


ClientFactory = Callable[[ClientOptions], Awaitable[WhatsAppClient]]


@dataclass
class PlaywrightWhatsAppClient:
    """WhatsApp Web session running in a Playwright-controlled Chromium."""

    session: str
    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page
    events: asyncio.Queue[ClientEvent]
    state: str = STATE_INITIALIZING
    _page_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _monitor: asyncio.Task[None] | None = field(default=None, init=False)
    _last_qr: str | None = field(default=None, init=False)
    _qr_attempts: int = field(default=0, init=False)

    @classmethod
    async def create(cls, options: ClientOptions) -> PlaywrightWhatsAppClient:
        """Launch Chromium, open WhatsApp Web and start watching the page."""
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=options.headless, args=_BROWSER_ARGS
            )
            context = await browser.new_context(
                storage_state=options.session_data,  # type: ignore[arg-type]
                user_agent=options.user_agent,
                viewport={"width": 1280, "height": 800},
                locale="en-US",
            )
            page = await context.new_page()
            await page.goto(
                WHATSAPP_WEB_URL,
                wait_until="domcontentloaded",
                timeout=_PAGE_LOAD_TIMEOUT_MS,
            )
        except Exception:
            await playwright.stop()
            raise
        client = cls(
            session=options.session,
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
            events=options.events,
        )
        client._monitor = asyncio.create_task(client._watch())
        logger.info("WhatsApp Web opened for session %s", options.session)
        return client

    async def send_text(self, chat_id: str, message: str) -> None:
        """Send a text message through the chat URL scheme."""
        self._ensure_connected()
        async with self._page_lock:
            await self._open_chat(chat_id, text=message)
            send_button = await self._first_present(_SEND_SELECTORS)
            if send_button is not None:
                await send_button.click()
            else:
                compose = await self._require(_COMPOSE_SELECTORS, "message input")
                await compose.press("Enter")
        logger.info("Sent text message to %s", chat_id)

    async def send_file(
        self, chat_id: str, path: str, filename: str, caption: str = ""
    ) -> None:
        """Attach a file to a chat, keeping its original name."""
        self._ensure_connected()
        content = Path(path).read_bytes()
        mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        async with self._page_lock:
            await self._open_chat(chat_id)
            attach = await self._require(_ATTACH_SELECTORS, "attach button")
            await attach.click()
            await self.page.locator('input[type="file"]').first.set_input_files(
                files=[{"name": filename, "mimeType": mime_type, "buffer": content}]
            )
            if caption:
                caption_box = await self._require(_CAPTION_SELECTORS, "caption input")
                await caption_box.fill(caption)
            send_button = await self._require(_SEND_SELECTORS, "send button")
            await send_button.click()
        logger.info("Sent file %s to %s", filename, chat_id)

    async def logout(self) -> None:
        """Log out through the WhatsApp Web menu."""
        async with self._page_lock:
            menu = await self._require(_MENU_SELECTORS, "menu button")
            await menu.click()
            item = await self._require(_LOGOUT_ITEM_SELECTORS, "log out item")
            await item.click()
            confirm = await self._first_present(_LOGOUT_CONFIRM_SELECTORS)
            if confirm is not None:
                await confirm.click()
        self._set_state(STATE_LOGGED_OUT)

    async def close(self) -> None:
        """Stop watching the page and shut down the browser."""
        if self.state == STATE_CLOSED:
            return
        if self._monitor is not None:
            self._monitor.cancel()
        self._set_state(STATE_CLOSED)
        try:
            await self.context.close()
            await self.browser.close()
        finally:
            await self.playwright.stop()

    async def get_session_token(self) -> dict[str, object]:
        """Export cookies, local storage and IndexedDB for reconnection."""
        state = await self.context.storage_state(indexed_db=True)
        return dict(state)

    async def poll_page(self) -> None:
        """Inspect the page once and publish QR challenges and state changes.

        The poll is skipped while an action is driving the page.
        """
        if self._page_lock.locked():
            return
        async with self._page_lock:
            if self.state in _FINAL_STATES:
                return
            if await self._first_present(_LOGGED_IN_SELECTORS) is not None:
                self._set_state(STATE_CONNECTED)
                return
            qr_code = await self._read_qr_code()
        if qr_code and qr_code != self._last_qr:
            self._last_qr = qr_code
            self._qr_attempts += 1
            self._set_state(STATE_QRCODE)
            self._emit(
                QrChallenge(
                    session=self.session,
                    qr_code=qr_code,
                    attempt=self._qr_attempts,
                )
            )
        elif self.state == STATE_CONNECTED:
            self._set_state(STATE_DISCONNECTED)

    async def _watch(self) -> None:
        while self.state not in _FINAL_STATES:
            try:
                await self.poll_page()
            except PlaywrightError:
                if self.state in _FINAL_STATES:
                    return
                logger.exception("Failed to inspect WhatsApp Web page")
            await asyncio.sleep(_POLL_INTERVAL_SECONDS)

    async def _read_qr_code(self) -> str | None:
        canvas = await self._first_present(_QR_SELECTORS)
        if canvas is None:
            return None
        return await canvas.evaluate("canvas => canvas.toDataURL('image/png')")

    async def _open_chat(self, chat_id: str, text: str | None = None) -> None:
        phone = chat_id.split("@", maxsplit=1)[0]
        url = f"{WHATSAPP_WEB_URL}send?phone={quote(phone)}"
        if text is not None:
            url += f"&text={quote(text)}"
        await self.page.goto(url, wait_until="domcontentloaded")
        selectors = [*_COMPOSE_SELECTORS, _INVALID_NUMBER_POPUP]
        await self.page.wait_for_selector(
            ", ".join(selectors), timeout=_CHAT_LOAD_TIMEOUT_MS
        )
        popup = self.page.locator(_INVALID_NUMBER_POPUP)
        if await popup.count() > 0:
            await popup.first.click()
            raise WhatsAppClientError(f"Chat {chat_id} is not available")

    async def _first_present(self, selectors: list[str]) -> Locator | None:
        for selector in selectors:
            locator = self.page.locator(selector).first
            if await locator.count() > 0:
                return locator
        return None

    async def _require(self, selectors: list[str], description: str) -> Locator:
        locator = await self._first_present(selectors)
        if locator is None:
            raise WhatsAppClientError(f"Could not find {description}")
        return locator

    def _ensure_connected(self) -> None:
        if self.state != STATE_CONNECTED:
            raise WhatsAppClientError(
                f"WhatsApp session is not connected (state: {self.state})"
            )

    def _set_state(self, state: str) -> None:
        if state == self.state:
            return
        logger.info("Client state: %s", state)
        self.state = state
        self._emit(StateChanged(session=self.session, state=state, client=self))

    def _emit(self, event: ClientEvent) -> None:
        self.events.put_nowait(event)
