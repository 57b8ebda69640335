"""
Connects to a running Chromium-based browser over CDP so its Page and Network
events can be recorded.
"""
import requests
from playwright.async_api import async_playwright, Browser, Page, Playwright
from typing import Optional
import logging

logger = logging.getLogger("harpipe.connection")


class CDPConnection:
    """A Playwright CDP session on the first tab of an existing browser."""

    def __init__(self, cdp_port: int, host: str = "localhost"):
        self.cdp_port = cdp_port
        self.host = host
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.page: Optional[Page] = None
        self.client = None

    @property
    def endpoint(self) -> str:
        return f"http://{self.host}:{self.cdp_port}"

    def browser_version(self) -> Optional[str]:
        """
        Asks the DevTools HTTP endpoint which browser is listening.
        Returns None when nothing usable answers on the port.
        """
        try:
            response = requests.get(f"{self.endpoint}/json/version", timeout=5)
        except requests.ConnectionError:
            logger.error(f"Connection refused on {self.endpoint}.")
            logger.error("Start the browser with --remote-debugging-port=<port> and try again.")
            return None
        except requests.RequestException as e:
            logger.error(f"DevTools endpoint check failed on {self.endpoint}: {e}")
            return None

        if response.status_code != 200:
            logger.error(f"Browser on {self.endpoint} is not accessible. (HTTP Status: {response.status_code})")
            return None
        return response.json().get('Browser', 'Unknown Version')

    async def connect(self) -> bool:
        """Attaches Playwright to the browser and opens a CDP session on its first tab."""
        browser_info = self.browser_version()
        if browser_info is None:
            return False
        logger.info(f"Located browser: {browser_info}")

        try:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.connect_over_cdp(self.endpoint)

            context = self.browser.contexts[0]
            self.page = context.pages[0] if context.pages else await context.new_page()
            self.client = await context.new_cdp_session(self.page)
            return True
        except Exception as e:
            logger.error(f"Playwright failed to establish the CDP connection: {e}")
            await self.disconnect()
            return False

    async def disconnect(self):
        """Stops the Playwright instance. The browser itself keeps running."""
        if self.playwright:
            await self.playwright.stop()
            self.playwright = None
            logger.info("Playwright connection stopped.")
